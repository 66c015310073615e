"""Custom exceptions for gitkeys."""


class GitkeysError(Exception):
    """Base exception for gitkeys."""

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    @staticmethod
    def _escape_markup(text: str) -> str:
        """Escape Rich markup in text."""
        return str(text).replace("[", "\\[").replace("]", "\\]")

    def __str__(self) -> str:
        return self.message


class ValidationError(GitkeysError):
    """Invalid identifier, email, key type or platform."""
    pass


class KeyExistsError(GitkeysError):
    """A key with the requested name already exists."""

    def __init__(self, message: str, key_name: str | None = None) -> None:
        self.key_name = key_name
        super().__init__(
            message,
            details="Pick another identifier or remove the existing key first",
        )


class GenerationError(GitkeysError):
    """ssh-keygen failed to produce a key pair."""
    pass


class MissingDependencyError(GitkeysError):
    """A required OpenSSH tool is not installed."""

    def __init__(self, missing: list[str], details: str | None = None) -> None:
        self.missing = missing
        super().__init__(f"Missing dependencies: {', '.join(missing)}", details)


class ConfigConflictError(GitkeysError):
    """A host alias already exists in the SSH config."""

    def __init__(self, message: str, alias: str | None = None) -> None:
        self.alias = alias
        super().__init__(message)


class AgentError(GitkeysError):
    """SSH agent could not be reached or started."""
    pass


class ConnectionFailure(GitkeysError):
    """SSH connection probe failed."""
    pass


class BackupError(GitkeysError):
    """Backup-related errors."""
    pass
