"""SSH config file editing.

The config is treated as a list of host-alias blocks. A block starts at a
``Host <alias>`` line and runs up to, but not including, the next ``Host``
line or the end of the file.
"""

import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .exceptions import ConfigConflictError, GitkeysError
from .providers import PlatformType

logger = logging.getLogger(__name__)

HOST_PREFIX = "Host "
DEFAULT_USER = "git"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

ConfirmReplace = Callable[[str], bool]


class UpsertOutcome(Enum):
    """Result of a config upsert."""
    ADDED = "added"
    REPLACED = "replaced"
    SKIPPED = "skipped"


@dataclass
class ConfigBlock:
    """A host alias entry in the SSH config."""
    host_alias: str
    host_name: str = ""
    user: str = DEFAULT_USER
    identity_file: Optional[Path] = None
    identities_only: bool = True

    def render(self) -> str:
        """Render the block in the config file format."""
        lines = [
            f"Host {self.host_alias}",
            f"    HostName {self.host_name}",
            f"    User {self.user}",
            f"    IdentityFile {self.identity_file}",
            f"    IdentitiesOnly {'yes' if self.identities_only else 'no'}",
        ]
        return "\n".join(lines) + "\n"


def host_alias(platform: "str | PlatformType", identifier: str, hostname: str = "") -> str:
    """Build the host alias for a key.

    ``<platform>.com-<identifier>`` for hosted platforms and
    ``<hostname>-<identifier>`` for self-hosted GitLab.
    """
    if str(platform) == PlatformType.GITLAB_SELFHOSTED.value:
        return f"{hostname}-{identifier}"
    return f"{platform}.com-{identifier}"


def is_host_line(line: str) -> bool:
    return line.lstrip().startswith(HOST_PREFIX)


def _header_alias(line: str) -> str:
    return line.strip()[len(HOST_PREFIX):].strip()


def _split_blocks(lines: List[str]) -> tuple[List[str], List[List[str]]]:
    """Split config lines into a preamble and host blocks."""
    preamble: List[str] = []
    blocks: List[List[str]] = []
    for line in lines:
        if is_host_line(line):
            blocks.append([line])
        elif blocks:
            blocks[-1].append(line)
        else:
            preamble.append(line)
    return preamble, blocks


def _parse_block(lines: List[str]) -> ConfigBlock:
    block = ConfigBlock(host_alias=_header_alias(lines[0]), identities_only=False)
    for line in lines[1:]:
        parts = line.strip().split(None, 1)
        if len(parts) != 2 or parts[0].startswith("#"):
            continue
        key, value = parts[0].lower(), parts[1].strip()
        if key == "hostname":
            block.host_name = value
        elif key == "user":
            block.user = value
        elif key == "identityfile":
            block.identity_file = Path(value)
        elif key == "identitiesonly":
            block.identities_only = value.lower() == "yes"
    return block


def _identity_names(lines: List[str]) -> List[str]:
    """Get the file names referenced by IdentityFile lines of a block."""
    names = []
    for line in lines[1:]:
        parts = line.strip().split(None, 1)
        if len(parts) == 2 and parts[0].lower() == "identityfile":
            names.append(Path(parts[1].strip()).name)
    return names


def _join(lines: List[str]) -> str:
    content = "\n".join(lines).rstrip()
    return content + "\n" if content else ""


class ConfigEditor:
    """Maintains host alias blocks in an SSH config file."""

    def __init__(self, config_file: Path, backup_dir: Path) -> None:
        self.config_file = config_file
        self.backup_dir = backup_dir
        self.last_backup: Optional[Path] = None

    def read(self) -> str:
        if not self.config_file.exists():
            return ""
        try:
            return self.config_file.read_text()
        except OSError as e:
            raise GitkeysError(f"Failed to read SSH config: {e}") from e

    def _write(self, content: str) -> None:
        try:
            self.config_file.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            self.config_file.write_text(content)
            self.config_file.chmod(0o600)
        except OSError as e:
            raise GitkeysError(f"Failed to update SSH config: {e}") from e

    def backup(self) -> Optional[Path]:
        """Copy the config to a timestamped file in the backup directory.

        Returns:
            Backup path, or None if there is no config yet
        """
        if not self.config_file.exists():
            return None

        self.backup_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        timestamp = datetime.now().strftime(TIMESTAMP_FORMAT)
        backup_path = self.backup_dir / f"config_{timestamp}"
        counter = 1
        while backup_path.exists():
            backup_path = self.backup_dir / f"config_{timestamp}_{counter}"
            counter += 1

        try:
            shutil.copy2(self.config_file, backup_path)
            backup_path.chmod(0o600)
        except OSError as e:
            raise GitkeysError(f"Failed to back up SSH config: {e}") from e
        logger.info(f"SSH config backed up to {backup_path}")
        self.last_backup = backup_path
        return backup_path

    def blocks(self) -> List[ConfigBlock]:
        """Parse all host blocks."""
        _, blocks = _split_blocks(self.read().splitlines())
        return [_parse_block(lines) for lines in blocks]

    def find(self, alias: str) -> Optional[ConfigBlock]:
        """Find a block by alias."""
        for block in self.blocks():
            if block.host_alias == alias:
                return block
        return None

    def find_by_identity(self, key_path: Path) -> List[ConfigBlock]:
        """Find blocks that use a key file."""
        return [
            block for block in self.blocks()
            if block.identity_file is not None and block.identity_file.name == key_path.name
        ]

    def upsert(
        self,
        platform: "str | PlatformType",
        identifier: str,
        key_path: Path,
        hostname: str,
        confirm_replace: Optional[ConfirmReplace] = None,
    ) -> UpsertOutcome:
        """Add or replace the host block for a key.

        Args:
            platform: Platform identifier
            identifier: Key identifier
            key_path: Private key path
            hostname: Real hostname of the platform
            confirm_replace: Asked with the alias when it already exists

        Returns:
            ADDED, REPLACED or SKIPPED (replace declined)

        Raises:
            ConfigConflictError: If the alias exists and nobody can confirm
        """
        self.last_backup = None
        self.backup()
        if not self.config_file.exists():
            self._write("")

        alias = host_alias(platform, identifier, hostname)
        preamble, blocks = _split_blocks(self.read().splitlines())
        existing = [b for b in blocks if _header_alias(b[0]) == alias]

        outcome = UpsertOutcome.ADDED
        if existing:
            if confirm_replace is None:
                raise ConfigConflictError(f"Entry for '{alias}' already exists in SSH config", alias=alias)
            if not confirm_replace(alias):
                logger.info(f"Kept existing config entry {alias}")
                return UpsertOutcome.SKIPPED
            blocks = [b for b in blocks if _header_alias(b[0]) != alias]
            outcome = UpsertOutcome.REPLACED

        new_block = ConfigBlock(
            host_alias=alias,
            host_name=hostname,
            identity_file=key_path.absolute(),
        )

        sections = [_join(preamble)] + [_join(b) for b in blocks] + [new_block.render()]
        content = "\n".join(s for s in sections if s)
        self._write(content)
        logger.info(f"SSH config entry {alias} {outcome.value}")
        return outcome

    def remove_by_identity(self, key_name: str, block: bool = True) -> int:
        """Remove config entries that reference a key.

        Args:
            key_name: File name of the private key
            block: Remove whole blocks whose IdentityFile is the key. When
                False, only lines matching ``IdentityFile.*<key_name>`` are
                removed and their Host headers stay behind.

        Returns:
            Number of blocks (or lines) removed
        """
        self.last_backup = None
        if not self.config_file.exists():
            return 0

        lines = self.read().splitlines()
        if block:
            preamble, blocks = _split_blocks(lines)
            kept = [b for b in blocks if key_name not in _identity_names(b)]
            removed = len(blocks) - len(kept)
            sections = [_join(preamble)] + [_join(b) for b in kept]
            content = "\n".join(s for s in sections if s)
        else:
            pattern = re.compile(rf"IdentityFile.*{re.escape(key_name)}")
            kept_lines = [line for line in lines if not pattern.search(line)]
            removed = len(lines) - len(kept_lines)
            content = _join(kept_lines)

        if removed:
            self.backup()
            self._write(content)
            logger.info(f"Removed {removed} config entries for {key_name}")
        return removed
