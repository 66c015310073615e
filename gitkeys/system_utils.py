"""System utilities for gitkeys."""

import logging
import platform
import shutil
import subprocess
from enum import Enum, auto
from typing import List, Optional

from .exceptions import MissingDependencyError

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("ssh-keygen", "ssh-add", "ssh-agent")


class SystemType(Enum):
    """Supported system types."""
    LINUX = auto()
    MACOS = auto()
    WSL = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    @classmethod
    def detect(cls) -> "SystemType":
        """Detect the current system type."""
        system = platform.system().lower()

        if system == "darwin":
            return cls.MACOS
        elif system == "linux":
            # Check if running under WSL
            try:
                with open('/proc/version', 'r') as f:
                    if 'microsoft' in f.read().lower():
                        return cls.WSL
            except OSError:
                pass
            return cls.LINUX
        elif system == "windows" or system.startswith(("cygwin", "mingw", "msys")):
            return cls.WINDOWS

        return cls.UNKNOWN

    @property
    def display_name(self) -> str:
        return {
            SystemType.LINUX: "Linux",
            SystemType.MACOS: "macOS",
            SystemType.WSL: "Windows (WSL)",
            SystemType.WINDOWS: "Windows",
        }.get(self, "Unknown")


def install_hints(system: SystemType) -> List[str]:
    """Get OpenSSH install instructions for a system."""
    if system in (SystemType.LINUX, SystemType.WSL):
        return [
            "sudo apt-get install openssh-client  # Debian/Ubuntu",
            "sudo yum install openssh-clients     # RHEL/CentOS",
        ]
    if system == SystemType.MACOS:
        return ["OpenSSH ships with macOS; check that /usr/bin is on your PATH"]
    if system == SystemType.WINDOWS:
        return ["Install Git Bash or use WSL"]
    return ["Install the OpenSSH client tools for your system"]


def check_requirements(system: SystemType) -> None:
    """Check that the OpenSSH tools are installed.

    Raises:
        MissingDependencyError: If any required tool is missing
    """
    missing = [tool for tool in REQUIRED_TOOLS if shutil.which(tool) is None]
    if missing:
        logger.error(f"Missing dependencies: {missing}")
        raise MissingDependencyError(missing, details="\n".join(install_hints(system)))
    logger.debug("All required OpenSSH tools found")


def clipboard_command(system: SystemType) -> Optional[List[str]]:
    """Get the clipboard command available on this system."""
    if system == SystemType.MACOS:
        return ["pbcopy"] if shutil.which("pbcopy") else None
    if system in (SystemType.WSL, SystemType.WINDOWS):
        for cmd in ("clip.exe", "clip"):
            if shutil.which(cmd):
                return [cmd]
        return None
    if system == SystemType.LINUX:
        if shutil.which("xclip"):
            return ["xclip", "-selection", "clipboard"]
        if shutil.which("xsel"):
            return ["xsel", "--clipboard", "--input"]
        if shutil.which("wl-copy"):
            return ["wl-copy"]
    return None


def copy_to_clipboard(text: str, system: SystemType) -> bool:
    """Copy text to clipboard.

    Returns:
        True if the text was copied
    """
    cmd = clipboard_command(system)
    if cmd is None:
        logger.debug("No clipboard command available")
        return False

    try:
        # xclip and wl-copy leave a child running that inherits stdout and stderr
        process = subprocess.Popen(
            cmd, stdin=subprocess.PIPE, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
        )
        process.communicate(text.encode())
    except OSError as e:
        logger.warning(f"Clipboard copy failed: {e}")
        return False

    if process.returncode != 0:
        logger.warning(f"Clipboard command exited with {process.returncode}")
        return False
    return True
