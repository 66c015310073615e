"""Backup and report utilities."""

import logging
import tarfile
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from .agent import SSHAgent
from .exceptions import BackupError
from .keystore import KeyEntry
from .settings import Settings
from .ssh_config import TIMESTAMP_FORMAT, ConfigEditor

logger = logging.getLogger(__name__)

RULE = "═" * 39


class ArtifactKind(Enum):
    """Kinds of files written to the backup directory."""
    CONFIG_SNAPSHOT = "config-snapshot"
    FULL_ARCHIVE = "full-archive"
    REPORT = "report"
    EXPORT = "export"


@dataclass(frozen=True)
class BackupArtifact:
    """A file written to the backup directory."""
    path: Path
    created_at: datetime
    kind: ArtifactKind
    content: Optional[str] = None

    @property
    def size(self) -> int:
        return self.path.stat().st_size


def create_backup_dir(settings: Settings) -> Path:
    """Create backup directory if it doesn't exist."""
    backup_dir = settings.backup_dir
    try:
        backup_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        backup_dir.chmod(0o700)
    except OSError as e:
        raise BackupError(f"Failed to create backup directory: {e}") from e
    logger.debug(f"Backup directory: {backup_dir}")
    return backup_dir


def _artifact_path(settings: Settings, prefix: str, suffix: str, now: datetime) -> Path:
    """Build a timestamped path that does not overwrite an earlier artifact."""
    backup_dir = create_backup_dir(settings)
    stamp = now.strftime(TIMESTAMP_FORMAT)
    path = backup_dir / f"{prefix}_{stamp}{suffix}"
    counter = 1
    while path.exists():
        path = backup_dir / f"{prefix}_{stamp}_{counter}{suffix}"
        counter += 1
    return path


def _write_artifact(path: Path, content: str) -> None:
    try:
        path.write_text(content)
        path.chmod(0o600)
    except OSError as e:
        raise BackupError(f"Failed to write {path}: {e}") from e


def format_size(size: int) -> str:
    """Format a byte count for display."""
    value = float(size)
    for unit in ("B", "K", "M", "G"):
        if value < 1024 or unit == "G":
            return f"{value:.0f}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1024
    return f"{size}B"


def snapshot_config(editor: ConfigEditor) -> Optional[BackupArtifact]:
    """Get the config copy taken by the editor's last change.

    Returns:
        The snapshot artifact, or None if the last change needed no copy
    """
    if editor.last_backup is None:
        return None
    return BackupArtifact(path=editor.last_backup, created_at=datetime.now(), kind=ArtifactKind.CONFIG_SNAPSHOT)


def create_full_archive(settings: Settings) -> BackupArtifact:
    """Archive the whole key directory as a tar.gz.

    The backups directory itself is left out of the archive.
    """
    ssh_dir = settings.ssh_dir
    if not ssh_dir.is_dir():
        raise BackupError(f"SSH directory not found: {ssh_dir}")

    now = datetime.now()
    archive_path = _artifact_path(settings, "ssh_full_backup", ".tar.gz", now)

    def exclude_backups(info: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
        parts = Path(info.name).parts
        if len(parts) > 1 and parts[1] == settings.backup_dir.name:
            return None
        return info

    try:
        with tarfile.open(archive_path, "w:gz") as tar:
            tar.add(ssh_dir, arcname=".ssh", filter=exclude_backups)
        archive_path.chmod(0o600)
    except (OSError, tarfile.TarError) as e:
        logger.error(f"Failed to create archive: {e}", exc_info=True)
        archive_path.unlink(missing_ok=True)
        raise BackupError(f"Failed to create backup: {e}") from e

    logger.info(f"Full backup written to {archive_path}")
    return BackupArtifact(path=archive_path, created_at=now, kind=ArtifactKind.FULL_ARCHIVE)


def fingerprint_line(entry: KeyEntry) -> str:
    """Render a key the way ``ssh-keygen -l`` prints it."""
    if entry.fingerprint is None:
        return "  (fingerprint unavailable)"
    return f"{entry.bit_length} {entry.fingerprint} {entry.private_path} ({entry.algorithm})"


def build_report(
    settings: Settings,
    entries: Iterable[KeyEntry],
    agent_keys: List[str],
    now: datetime,
) -> str:
    """Build the text of a key report."""
    lines = [
        RULE,
        "  SSH Key Report",
        f"  Generated: {now.strftime('%Y-%m-%d %H:%M:%S')}",
        f"  System: {settings.system.display_name}",
        RULE,
        "",
        "Keys Found:",
        "",
    ]
    for entry in entries:
        lines.append(f"● {entry.name}")
        lines.append(fingerprint_line(entry))
        lines.append(f"  Path: {entry.private_path}")
        lines.append("")

    lines.extend([RULE, "SSH Config:", ""])
    if settings.config_file.exists():
        lines.append(settings.config_file.read_text().rstrip())
    else:
        lines.append("Config file not found")

    lines.extend(["", RULE, "Keys in SSH Agent:", ""])
    lines.extend(agent_keys or ["No keys in agent"])
    return "\n".join(lines) + "\n"


def generate_report(settings: Settings, entries: Iterable[KeyEntry], agent: SSHAgent) -> BackupArtifact:
    """Write a report of keys, config and agent state."""
    now = datetime.now()
    try:
        content = build_report(settings, entries, agent.list_loaded(), now)
    except OSError as e:
        raise BackupError(f"Failed to build report: {e}") from e
    path = _artifact_path(settings, "ssh_report", ".txt", now)
    _write_artifact(path, content)
    logger.info(f"Report written to {path}")
    return BackupArtifact(path=path, created_at=now, kind=ArtifactKind.REPORT, content=content)


def build_export(settings: Settings, now: datetime) -> str:
    """Build the text of a configuration export."""
    lines = [
        "# SSH Configuration Export",
        f"# Generated: {now.strftime('%Y-%m-%d %H:%M:%S')}",
        f"# System: {settings.system.display_name}",
        "",
    ]
    if settings.config_file.exists():
        lines.extend(["# SSH Config File", "# ================"])
        lines.append(settings.config_file.read_text().rstrip())

    lines.extend(["", "# Available Keys", "# =============="])
    if settings.ssh_dir.is_dir():
        for pub in sorted(settings.ssh_dir.glob("*.pub")):
            if pub.is_file():
                lines.append(f"# {pub.name}")
                lines.append(pub.read_text().strip())
                lines.append("")
    return "\n".join(lines) + "\n"


def export_configuration(settings: Settings) -> BackupArtifact:
    """Export the config and all public keys to a text file."""
    now = datetime.now()
    try:
        content = build_export(settings, now)
    except OSError as e:
        raise BackupError(f"Failed to build export: {e}") from e
    path = _artifact_path(settings, "ssh_export", ".txt", now)
    _write_artifact(path, content)
    logger.info(f"Configuration exported to {path}")
    return BackupArtifact(path=path, created_at=now, kind=ArtifactKind.EXPORT, content=content)
