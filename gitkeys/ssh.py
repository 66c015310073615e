"""SSH key generation module for gitkeys."""

import logging
import re
import subprocess
from pathlib import Path
from typing import Literal, Optional

from .exceptions import GenerationError, KeyExistsError, ValidationError
from .keystore import KeyEntry, public_path_for
from .providers import PlatformType

logger = logging.getLogger(__name__)

SSHKeyType = Literal["ed25519", "rsa"]
KEY_TYPES = ("ed25519", "rsa")
DEFAULT_KEY_TYPE = "ed25519"
DEFAULT_RSA_BITS = 4096
ED25519_BITS = 256

IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


def validate_identifier(identifier: str) -> str:
    """Validate a key identifier (letters, digits, hyphens and underscores)."""
    if not identifier:
        raise ValidationError("Identifier cannot be empty")
    if not IDENTIFIER_PATTERN.fullmatch(identifier):
        raise ValidationError(
            "Identifier must contain only letters, numbers, hyphens and underscores",
            details=f"Got: {identifier!r}",
        )
    return identifier


def validate_email(email: Optional[str]) -> Optional[str]:
    """Validate an email address. Empty means no email."""
    if not email:
        return None
    if not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError(f"Invalid email format: {email}")
    return email


def validate_key_type(key_type: str) -> SSHKeyType:
    """Validate the key algorithm."""
    normalized = key_type.lower().strip()
    if normalized not in KEY_TYPES:
        raise ValidationError(
            f"Invalid key type: {key_type}",
            details="Choose ed25519 (default) or rsa",
        )
    return normalized  # type: ignore[return-value]


def key_name(platform: "str | PlatformType", identifier: str) -> str:
    """Build the file name of a key."""
    return f"{platform}_{identifier}"


def key_exists(key_path: Path) -> bool:
    """Check if either file of a key pair is present."""
    return key_path.exists() or public_path_for(key_path).exists()


def set_key_permissions(key_path: Path) -> None:
    """Set private key 600, public key 644 and directory 700."""
    key_path.chmod(0o600)
    public_path = public_path_for(key_path)
    if public_path.exists():
        public_path.chmod(0o644)
    key_path.parent.chmod(0o700)


class KeyGenerator:
    """Generates key pairs with ssh-keygen."""

    def __init__(self, ssh_dir: Path) -> None:
        self.ssh_dir = ssh_dir

    def key_path(self, platform: "str | PlatformType", identifier: str) -> Path:
        return self.ssh_dir / key_name(platform, identifier)

    def build_command(self, key_path: Path, key_type: SSHKeyType, email: Optional[str]) -> list[str]:
        """Build the ssh-keygen command line.

        The passphrase is always empty so keys load into the agent
        without prompting.
        """
        cmd = ["ssh-keygen", "-t", key_type]
        if key_type == "rsa":
            cmd.extend(["-b", str(DEFAULT_RSA_BITS)])
        if email:
            cmd.extend(["-C", email])
        cmd.extend(["-f", str(key_path), "-N", ""])
        return cmd

    def generate(
        self,
        platform: "str | PlatformType",
        identifier: str,
        key_type: str = DEFAULT_KEY_TYPE,
        email: Optional[str] = None,
        overwrite: bool = False,
    ) -> KeyEntry:
        """Generate a new SSH key pair.

        Args:
            platform: Platform identifier, used as name prefix
            identifier: Unique identifier for the key
            key_type: ed25519 or rsa
            email: Optional comment for the key
            overwrite: Replace an existing key with the same name

        Returns:
            The created key

        Raises:
            ValidationError: On invalid identifier, email or key type
            KeyExistsError: If the key exists and overwrite is False
            GenerationError: If ssh-keygen fails
        """
        validate_identifier(identifier)
        email = validate_email(email)
        key_type = validate_key_type(key_type)

        key_path = self.key_path(platform, identifier)
        public_path = public_path_for(key_path)
        name = key_path.name

        if key_exists(key_path):
            if not overwrite:
                raise KeyExistsError(f"Key '{name}' already exists", key_name=name)
            logger.info(f"Overwriting existing key {name}")
            for path in (key_path, public_path):
                path.unlink(missing_ok=True)

        self.ssh_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

        cmd = self.build_command(key_path, key_type, email)
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            self._discard(key_path)
            raise GenerationError(
                f"Failed to generate SSH key: {name}",
                details=(e.stderr or "").strip() or None,
            ) from e
        except FileNotFoundError as e:
            raise GenerationError("ssh-keygen not found", details="Install the OpenSSH client") from e

        if not key_path.exists() or not public_path.exists():
            self._discard(key_path)
            raise GenerationError(f"ssh-keygen did not produce the key pair for {name}")

        try:
            set_key_permissions(key_path)
        except OSError as e:
            raise GenerationError(f"Failed to set key permissions: {e}") from e

        logger.info(f"Generated {key_type} key {key_path}")
        return KeyEntry(
            name=name,
            private_path=key_path,
            public_path=public_path,
            algorithm=key_type.upper(),
            bit_length=DEFAULT_RSA_BITS if key_type == "rsa" else ED25519_BITS,
        )

    @staticmethod
    def _discard(key_path: Path) -> None:
        """Remove partial output of a failed generation."""
        for path in (key_path, public_path_for(key_path)):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove partial key file {path}: {e}")
