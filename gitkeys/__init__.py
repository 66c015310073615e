"""gitkeys - Manage SSH keys for GitHub, GitLab and Bitbucket."""

from gitkeys.cli import cli, main
from gitkeys.manager import KeyManager, Operation
from gitkeys.settings import Settings
from gitkeys.version import __version__

__all__ = ["KeyManager", "Operation", "Settings", "__version__", "cli", "main"]
