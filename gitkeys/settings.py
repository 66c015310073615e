"""Runtime configuration."""

import logging
import math
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .system_utils import SystemType

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 15.0
MIN_PROBE_TIMEOUT = 1.0

CONFIG_NAME = "config"
KNOWN_HOSTS_NAME = "known_hosts"
BACKUP_DIR_NAME = "backups"


@dataclass(frozen=True)
class Settings:
    """Paths and options shared by every component.

    Built once at startup with ``Settings.from_env()`` and passed down.
    """
    ssh_dir: Path
    state_dir: Path
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    system: SystemType = field(default_factory=SystemType.detect)

    @property
    def config_file(self) -> Path:
        return self.ssh_dir / CONFIG_NAME

    @property
    def known_hosts(self) -> Path:
        return self.ssh_dir / KNOWN_HOSTS_NAME

    @property
    def backup_dir(self) -> Path:
        return self.ssh_dir / BACKUP_DIR_NAME

    @property
    def log_file(self) -> Path:
        return self.state_dir / "gitkeys.log"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from GITKEYS_* environment variables."""
        ssh_dir = Path(os.environ.get("GITKEYS_SSH_DIR") or Path.home() / ".ssh").expanduser()
        state_dir = Path(os.environ.get("GITKEYS_HOME") or Path.home() / ".gitkeys").expanduser()

        timeout = DEFAULT_PROBE_TIMEOUT
        raw_timeout = os.environ.get("GITKEYS_PROBE_TIMEOUT")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                logger.warning(f"Ignoring invalid GITKEYS_PROBE_TIMEOUT: {raw_timeout}")
            if not math.isfinite(timeout):
                logger.warning(f"Ignoring invalid GITKEYS_PROBE_TIMEOUT: {raw_timeout}")
                timeout = DEFAULT_PROBE_TIMEOUT
            elif timeout < MIN_PROBE_TIMEOUT:
                logger.warning(f"GITKEYS_PROBE_TIMEOUT below {MIN_PROBE_TIMEOUT}s, using {MIN_PROBE_TIMEOUT}s")
                timeout = MIN_PROBE_TIMEOUT

        return cls(ssh_dir=ssh_dir.absolute(), state_dir=state_dir.absolute(), probe_timeout=timeout)


def setup_logging(settings: Settings, debug: bool = False) -> None:
    """Configure logging to the state directory log file and stderr."""
    handlers: list[logging.Handler] = []
    try:
        settings.state_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file))
    except OSError:
        pass  # file logging is optional

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    handlers.append(stderr_handler)

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )
    logger.debug("Logging configured")
