"""Git platform registry."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .exceptions import ValidationError


class PlatformType(Enum):
    """Supported Git platforms."""
    GITHUB = "github"
    GITLAB = "gitlab"
    GITLAB_SELFHOSTED = "gitlab-selfhosted"
    BITBUCKET = "bitbucket"
    CUSTOM = "custom"

    @classmethod
    def from_str(cls, value: str) -> "PlatformType":
        """Convert string to platform type."""
        normalized = value.lower().strip()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValidationError(
            f"Invalid platform: {value}",
            details=f"Choose from: {', '.join(m.value for m in cls)}",
        )

    def __str__(self) -> str:
        return self.value


# Platforms accepted by --platform in flag mode
CLI_PLATFORMS = ("github", "gitlab", "bitbucket")

_DEFAULT_HOSTNAMES = {
    PlatformType.GITHUB: "github.com",
    PlatformType.GITLAB: "gitlab.com",
    PlatformType.BITBUCKET: "bitbucket.org",
}

_PROFILE_URLS = {
    PlatformType.GITHUB: "https://github.com/settings/keys",
    PlatformType.GITLAB: "https://gitlab.com/-/profile/keys",
    PlatformType.BITBUCKET: "https://bitbucket.org/account/settings/ssh-keys/",
}

_DISPLAY_NAMES = {
    PlatformType.GITHUB: "GitHub",
    PlatformType.GITLAB: "GitLab",
    PlatformType.GITLAB_SELFHOSTED: "GitLab Self-Hosted",
    PlatformType.BITBUCKET: "Bitbucket",
    PlatformType.CUSTOM: "Custom",
}


@dataclass(frozen=True)
class Platform:
    """Git platform profile."""
    type: PlatformType
    hostname: str
    profile_url: str = ""

    @property
    def name(self) -> str:
        """Platform identifier used in key names and aliases."""
        return str(self.type)

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self.type]

    @property
    def ssh_target(self) -> str:
        """Target for connection probes."""
        return f"git@{self.hostname}"

    @classmethod
    def create(cls, platform: "str | PlatformType", hostname: str | None = None) -> "Platform":
        """Create a platform profile.

        Args:
            platform: Platform identifier or type
            hostname: Hostname for self-hosted and custom platforms

        Returns:
            Platform profile
        """
        ptype = platform if isinstance(platform, PlatformType) else PlatformType.from_str(platform)

        default = _DEFAULT_HOSTNAMES.get(ptype)
        if default:
            return cls(type=ptype, hostname=hostname or default, profile_url=_PROFILE_URLS[ptype])

        hostname = (hostname or "").strip()
        if not hostname:
            raise ValidationError("Hostname cannot be empty")
        if ptype == PlatformType.GITLAB_SELFHOSTED:
            return cls(type=ptype, hostname=hostname, profile_url=f"https://{hostname}/-/profile/keys")
        return cls(type=ptype, hostname=hostname)


def platform_for_key_name(key_name: str) -> Optional[PlatformType]:
    """Infer the platform from a ``<platform>_<identifier>`` key name."""
    for ptype in PlatformType:
        if ptype != PlatformType.CUSTOM and key_name.startswith(f"{ptype.value}_"):
            return ptype
    return None
