"""Key management workflows shared by the CLI flags and the menu."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from . import backup
from .agent import AgentResult, SSHAgent
from .backup import BackupArtifact
from .connection import ConnectionResult, ConnectionTester
from .exceptions import GitkeysError, ValidationError
from .keystore import KeyEntry, KeyStore
from .providers import Platform, PlatformType, platform_for_key_name
from .settings import Settings
from .ssh import DEFAULT_KEY_TYPE, KeyGenerator, key_exists
from .ssh_config import ConfigEditor, ConfirmReplace, UpsertOutcome, host_alias
from .system_utils import check_requirements, copy_to_clipboard

logger = logging.getLogger(__name__)


class Operation(Enum):
    """User intents, from flags or the interactive menu."""
    CREATE = "create"
    LIST = "list"
    TEST = "test"
    AGENT = "agent"
    SHOW = "show"
    CONFIGURE = "configure"
    REMOVE = "remove"
    BACKUP = "backup"
    REPORT = "report"
    EXPORT = "export"
    EXIT = "exit"


@dataclass
class CreatedKey:
    """Result of the create workflow."""
    entry: KeyEntry
    platform: Platform
    alias: str
    agent: AgentResult
    config: UpsertOutcome
    snapshot: Optional[BackupArtifact] = None


@dataclass
class RemovedKey:
    """Result of the remove workflow."""
    entry: KeyEntry
    removed_files: List[Path]
    agent: AgentResult
    config_entries_removed: int
    snapshot: Optional[BackupArtifact] = None


def split_key_name(name: str) -> Tuple[PlatformType, str]:
    """Split ``<platform>_<identifier>`` into its parts."""
    ptype = platform_for_key_name(name)
    prefix = f"{ptype.value}_" if ptype else ""
    if ptype is None or not name.startswith(prefix) or len(name) == len(prefix):
        raise ValidationError(
            f"Key '{name}' does not follow the <platform>_<identifier> naming",
            details="Only keys created by gitkeys can be configured automatically",
        )
    return ptype, name[len(prefix):]


class KeyManager:
    """Wires the components together around one Settings instance."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.store = KeyStore(settings.ssh_dir)
        self.generator = KeyGenerator(settings.ssh_dir)
        self.editor = ConfigEditor(settings.config_file, settings.backup_dir)
        self.agent = SSHAgent(settings.system)
        self.tester = ConnectionTester(settings.probe_timeout)

    def prepare(self) -> None:
        """Check dependencies and set up the key directory.

        Raises:
            MissingDependencyError: If OpenSSH tools are missing
        """
        check_requirements(self.settings.system)
        self.ensure_ssh_directory()

    def ensure_ssh_directory(self) -> None:
        """Create the key and backup directories with owner-only access."""
        try:
            for directory in (self.settings.ssh_dir, self.settings.backup_dir):
                directory.mkdir(mode=0o700, parents=True, exist_ok=True)
                directory.chmod(0o700)
        except OSError as e:
            raise GitkeysError(f"Failed to set up SSH directory: {e}") from e

    def key_exists(self, platform: Platform, identifier: str) -> bool:
        return key_exists(self.generator.key_path(platform.name, identifier))

    def create_key(
        self,
        platform: Platform,
        identifier: str,
        key_type: str = DEFAULT_KEY_TYPE,
        email: Optional[str] = None,
        overwrite: bool = False,
        confirm_replace: Optional[ConfirmReplace] = None,
    ) -> CreatedKey:
        """Generate a key, load it into the agent and add its config entry.

        Agent failures do not fail the workflow; they are returned in
        the result.
        """
        entry = self.generator.generate(platform.name, identifier, key_type, email, overwrite=overwrite)
        agent_result = self.agent.add(entry.private_path)
        if not agent_result:
            logger.warning(f"Key {entry.name} created but not loaded: {agent_result.message}")

        outcome = self.editor.upsert(
            platform.name, identifier, entry.private_path, platform.hostname, confirm_replace
        )
        alias = host_alias(platform.name, identifier, platform.hostname)
        return CreatedKey(
            entry=entry, platform=platform, alias=alias, agent=agent_result, config=outcome,
            snapshot=self.config_snapshot(),
        )

    def list_keys(self) -> List[KeyEntry]:
        return list(self.store)

    def keys_for(self, platform: Optional[PlatformType]) -> List[KeyEntry]:
        """Keys for a platform, or all keys when platform is None."""
        if platform is None:
            return self.list_keys()
        return self.store.for_platform(platform.value)

    def test_platform(self, platform: Platform) -> ConnectionResult:
        """Probe a platform with its first key, or the default identity."""
        keys = self.keys_for(platform.type)
        if not keys:
            logger.info(f"No keys for {platform.name}, testing default identity")
            return self.tester.test(platform.ssh_target)
        return self.tester.test(platform.ssh_target, keys[0].private_path)

    def test_connection(self, target: str, entry: Optional[KeyEntry] = None) -> ConnectionResult:
        return self.tester.test(target, entry.private_path if entry else None)

    def test_all(self, target: str, entries: List[KeyEntry]) -> Tuple[bool, List[ConnectionResult]]:
        return self.tester.test_all(target, entries)

    def add_to_agent(self, entries: List[KeyEntry]) -> List[AgentResult]:
        return [self.agent.add(entry.private_path) for entry in entries]

    def copy_public_key(self, entry: KeyEntry) -> bool:
        return copy_to_clipboard(entry.get_public_key(), self.settings.system)

    def platform_of(self, entry: KeyEntry) -> Optional[Platform]:
        """Platform profile for a key, using its config entry for the hostname."""
        ptype = platform_for_key_name(entry.name)
        if ptype is None:
            return None
        hostname = None
        blocks = self.editor.find_by_identity(entry.private_path)
        if blocks and blocks[0].host_name:
            hostname = blocks[0].host_name
        try:
            return Platform.create(ptype, hostname)
        except ValidationError:
            return None

    def configure(
        self,
        entry: KeyEntry,
        hostname: Optional[str] = None,
        confirm_replace: Optional[ConfirmReplace] = None,
    ) -> Tuple[str, UpsertOutcome]:
        """Write the config entry for an existing key."""
        ptype, identifier = split_key_name(entry.name)
        platform = Platform.create(ptype, hostname)
        outcome = self.editor.upsert(
            platform.name, identifier, entry.private_path, platform.hostname, confirm_replace
        )
        return host_alias(platform.name, identifier, platform.hostname), outcome

    def remove_key(self, entry: KeyEntry, remove_config: bool = False, block: bool = True) -> RemovedKey:
        """Delete a key pair, unload it and optionally drop its config entries."""
        # ssh-add -d reads the key file to find the identity
        agent_result = self.agent.remove(entry.private_path)
        removed = self.store.delete(entry)
        count = 0
        if remove_config:
            count = self.editor.remove_by_identity(entry.name, block=block)
        return RemovedKey(
            entry=entry, removed_files=removed, agent=agent_result, config_entries_removed=count,
            snapshot=self.config_snapshot() if remove_config else None,
        )

    def config_snapshot(self) -> Optional[BackupArtifact]:
        """Copy of the SSH config taken before the last config change."""
        return backup.snapshot_config(self.editor)

    def backup(self) -> BackupArtifact:
        return backup.create_full_archive(self.settings)

    def report(self) -> BackupArtifact:
        return backup.generate_report(self.settings, self.store, self.agent)

    def export(self) -> BackupArtifact:
        return backup.export_configuration(self.settings)
