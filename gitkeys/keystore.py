"""Key store scanning."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from .exceptions import GitkeysError
from .settings import CONFIG_NAME, KNOWN_HOSTS_NAME

logger = logging.getLogger(__name__)

PUBLIC_SUFFIX = ".pub"
UNKNOWN = "unknown"
INSPECT_TIMEOUT = 10

_EXCLUDED_NAMES = {CONFIG_NAME, KNOWN_HOSTS_NAME}


@dataclass
class KeyEntry:
    """An SSH key pair found in the key directory."""
    name: str
    private_path: Path
    public_path: Path
    algorithm: str = UNKNOWN
    bit_length: Optional[int] = None
    fingerprint: Optional[str] = None

    def get_public_key(self) -> str:
        """Get the contents of the public key file."""
        try:
            return self.public_path.read_text().strip()
        except OSError as e:
            raise GitkeysError(f"Failed to read {self.public_path}: {e}") from e

    @property
    def bits_display(self) -> str:
        return str(self.bit_length) if self.bit_length is not None else UNKNOWN


def public_path_for(private_path: Path) -> Path:
    """Get the public key path that pairs with a private key."""
    return private_path.with_name(private_path.name + PUBLIC_SUFFIX)


def inspect_key(key_path: Path) -> tuple[str, Optional[int], Optional[str]]:
    """Get algorithm, bit length and fingerprint of a key.

    Output of ``ssh-keygen -l`` looks like
    ``256 SHA256:abc... user@host (ED25519)``.

    Returns:
        Tuple of (algorithm, bits, fingerprint); unknown values on failure
    """
    try:
        result = subprocess.run(
            ["ssh-keygen", "-l", "-f", str(key_path)],
            capture_output=True,
            text=True,
            check=True,
            timeout=INSPECT_TIMEOUT,
        )
        parts = result.stdout.strip().split()
        bits = int(parts[0])
        fingerprint = parts[1]
        algorithm = parts[-1].strip("()") if len(parts) >= 3 else UNKNOWN
        return algorithm, bits, fingerprint
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
        logger.debug(f"Could not inspect {key_path}: {e}")
    except (ValueError, IndexError):
        logger.debug(f"Unparsable ssh-keygen output for {key_path}")
    return UNKNOWN, None, None


def is_private_key(path: Path) -> bool:
    """Check if a directory entry looks like a private key with a public pair."""
    name = path.name
    if not path.is_file() or name.endswith(PUBLIC_SUFFIX) or name in _EXCLUDED_NAMES:
        return False
    return public_path_for(path).is_file()


class KeyStore:
    """Restartable view over the key pairs in a directory.

    Every iteration rescans the directory, so the view always reflects
    what is on disk.
    """

    def __init__(self, ssh_dir: Path, inspect: bool = True) -> None:
        self.ssh_dir = ssh_dir
        self.inspect = inspect

    def __iter__(self) -> Iterator[KeyEntry]:
        if not self.ssh_dir.is_dir():
            return
        for path in sorted(self.ssh_dir.iterdir(), key=lambda p: p.name):
            if not is_private_key(path):
                continue
            yield self._entry(path)

    def _entry(self, path: Path) -> KeyEntry:
        entry = KeyEntry(name=path.name, private_path=path, public_path=public_path_for(path))
        if self.inspect:
            entry.algorithm, entry.bit_length, entry.fingerprint = inspect_key(path)
        return entry

    def names(self) -> List[str]:
        """Get names of all keys without inspecting them."""
        return [entry.name for entry in KeyStore(self.ssh_dir, inspect=False)]

    def get(self, name: str) -> Optional[KeyEntry]:
        """Get a key by name."""
        path = self.ssh_dir / name
        if not is_private_key(path):
            return None
        return self._entry(path)

    def for_platform(self, platform: str) -> List[KeyEntry]:
        """Get keys named ``<platform>_<identifier>``."""
        prefix = f"{platform}_"
        return [entry for entry in self if entry.name.startswith(prefix)]

    def delete(self, entry: KeyEntry) -> List[Path]:
        """Delete both files of a key pair.

        Returns:
            Paths that were removed
        """
        removed = []
        for path in (entry.private_path, entry.public_path):
            if path.exists():
                try:
                    path.unlink()
                except OSError as e:
                    raise GitkeysError(f"Failed to remove {path}: {e}") from e
                removed.append(path)
                logger.info(f"Removed {path}")
        return removed
