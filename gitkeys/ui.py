"""UI module for gitkeys."""

from typing import List, Optional, Sequence

from rich import box
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table
from rich.text import Text

from .backup import BackupArtifact, format_size
from .connection import ConnectionResult
from .exceptions import GitkeysError, ValidationError
from .keystore import KeyEntry
from .providers import Platform, PlatformType
from .ssh import DEFAULT_KEY_TYPE, validate_email, validate_identifier
from .system_utils import SystemType, install_hints
from .ui_common import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from .version import __version__

BANNER = r"""
   ____ _ _   _  __
  / ___(_) |_| |/ /___ _   _ ___
 | |  _| | __| ' // _ \ | | / __|
 | |_| | | |_| . \  __/ |_| \__ \
  \____|_|\__|_|\_\___|\__, |___/
                       |___/
"""

MAIN_MENU = [
    ("1", "Create new SSH key"),
    ("2", "List existing keys"),
    ("3", "Test SSH connection"),
    ("4", "Add key to SSH agent"),
    ("5", "Show public key (to copy)"),
    ("6", "Configure SSH config entry"),
    ("7", "Remove SSH key"),
    ("8", "Backup and reports"),
    ("9", "Exit"),
]

BACKUP_MENU = [
    ("1", "Full backup of the SSH directory"),
    ("2", "Generate key report"),
    ("3", "Export configuration"),
    ("4", "Back to main menu"),
]

CREATE_PLATFORMS = [
    (PlatformType.GITHUB, "GitHub (github.com)"),
    (PlatformType.GITLAB, "GitLab (gitlab.com)"),
    (PlatformType.GITLAB_SELFHOSTED, "GitLab Self-Hosted (custom hostname)"),
    (PlatformType.BITBUCKET, "Bitbucket (bitbucket.org)"),
]

TEST_PLATFORMS = [
    (PlatformType.GITHUB, "GitHub (github.com)"),
    (PlatformType.GITLAB, "GitLab (gitlab.com)"),
    (PlatformType.BITBUCKET, "Bitbucket (bitbucket.org)"),
    (PlatformType.CUSTOM, "Custom (enter the host)"),
]


def _ask(prompt: str, **kwargs) -> str:
    try:
        return Prompt.ask(prompt, console=console, **kwargs)
    except (KeyboardInterrupt, EOFError):
        raise GitkeysError("Operation cancelled by user") from None


def _ask_int(prompt: str, **kwargs) -> int:
    try:
        return IntPrompt.ask(prompt, console=console, **kwargs)
    except (KeyboardInterrupt, EOFError):
        raise GitkeysError("Operation cancelled by user") from None


def print_banner(system: SystemType) -> None:
    """Print the banner with version and OS."""
    console.print(f"[bold cyan]{BANNER}[/bold cyan]")
    console.print(f"[bold]SSH Key Manager - Multi-Platform[/bold] [dim]v{__version__}[/dim]")
    console.print(f"[dim]Operating system:[/dim] [bold blue]{system.display_name}[/bold blue]\n")


def print_header(title: str, style: str = "cyan") -> None:
    console.print()
    console.rule(f"[bold {style}]{title}[/bold {style}]", style=style)
    console.print()


def _menu_table(options: Sequence[tuple[str, str]]) -> Table:
    table = Table(box=None, show_header=False, padding=(0, 1))
    table.add_column("Option", style="cyan", justify="right")
    table.add_column("Action", style="white")
    for key, label in options:
        table.add_row(f"{key}.", label)
    return table


def print_menu() -> None:
    """Print the main menu."""
    console.print(Panel(_menu_table(MAIN_MENU), title="[bold]Main Menu[/bold]", border_style="blue", expand=False))


def print_backup_menu() -> None:
    """Print the backup and reports menu."""
    console.print(Panel(_menu_table(BACKUP_MENU), title="[bold]Backup and Reports[/bold]", border_style="blue", expand=False))


def print_missing_dependencies(missing: List[str], system: SystemType) -> None:
    """Print missing tools with install hints."""
    print_error(f"Missing dependencies: {', '.join(missing)}")
    console.print("[warning]Please install the required SSH tools:[/warning]")
    for hint in install_hints(system):
        console.print(f"  [command]{hint}[/command]")


def print_key_table(entries: List[KeyEntry]) -> None:
    """Print keys in a table format."""
    if not entries:
        print_warning("No SSH keys found")
        print_info("Use option 1 of the menu (or --create) to create a new key")
        return

    table = Table(title="SSH Keys", box=box.ROUNDED, header_style="bold cyan", border_style="blue")
    table.add_column("#", style="dim", justify="right", no_wrap=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Type", style="yellow", no_wrap=True)
    table.add_column("Bits", style="green", justify="right", no_wrap=True)
    table.add_column("Path", style="blue", overflow="fold")

    for index, entry in enumerate(entries, start=1):
        table.add_row(str(index), entry.name, entry.algorithm, entry.bits_display, str(entry.private_path))

    console.print(table)
    console.print()


def print_key_choices(entries: List[KeyEntry]) -> None:
    """Print a numbered list of keys."""
    print_info("Available keys:")
    for index, entry in enumerate(entries, start=1):
        console.print(f"  [cyan]{index}.[/cyan] {entry.name} [dim]({entry.algorithm})[/dim]")
    console.print()


def print_public_key(entry: KeyEntry, copied: Optional[bool] = None) -> None:
    """Print a public key in a panel."""
    footer = Text()
    if copied:
        footer = Text("\n✓ Public key copied to clipboard", style="bold green")
    elif copied is False:
        footer = Text("\nCopy the key above manually", style="yellow")

    panel = Panel(
        Text.assemble(Text(entry.get_public_key(), style="bold green"), footer),
        title=f"[bold]Public Key: {entry.name}[/bold]",
        border_style="green",
        padding=(1, 2),
    )
    console.print(panel)


def print_clipboard_hint(system: SystemType) -> None:
    print_warning("Clipboard command not available")
    if system == SystemType.LINUX:
        print_info("To copy automatically, install xclip or xsel: sudo apt-get install xclip")


def print_platform_instructions(platform: Optional[Platform], remove: bool = False) -> None:
    """Print where to add (or remove) the key on the platform."""
    if platform is None or not platform.profile_url:
        return
    if remove:
        print_info("Remember to remove the key from your Git platform too:")
    else:
        console.print("\n[highlight]IMPORTANT:[/highlight] [warning]Paste the public key on your platform:[/warning]")
    console.print(f"  [cyan]{platform.display_name}:[/cyan] [path]{platform.profile_url}[/path]\n")


def print_clone_hint(alias: str) -> None:
    print_info(f"Use: git clone git@{alias}:user/repo.git")


def print_connection_result(result: ConnectionResult, target: str) -> None:
    """Print probe output and outcome."""
    if result.raw_output:
        console.print(Text(result.raw_output, style="dim"))
    using = f" using {result.key_name}" if result.key_name else ""
    if result.success:
        print_success(f"SSH connection to {target} succeeded{using}")
    else:
        print_error(f"SSH connection to {target} failed{using}")
        print_info("Check that the public key was added on the platform")


def print_artifact(artifact: BackupArtifact, label: str) -> None:
    print_success(f"{label}: {artifact.path}")
    print_info(f"Size: {format_size(artifact.size)}")


def prompt_platform(options: Sequence[tuple[PlatformType, str]]) -> PlatformType:
    """Prompt for a platform from a numbered list."""
    console.print("[cyan]Select the platform:[/cyan]")
    for index, (_, label) in enumerate(options, start=1):
        console.print(f"  {index}. {label}")
    console.print()
    choice = _ask_int(f"[cyan]Choose (1-{len(options)})[/cyan]")
    if not 1 <= choice <= len(options):
        raise ValidationError("Invalid option")
    return options[choice - 1][0]


def prompt_hostname(example: str = "gitlab.company.com") -> str:
    """Prompt for a hostname."""
    hostname = _ask(f"[cyan]Hostname (e.g. {example})[/cyan]").strip()
    if not hostname:
        raise ValidationError("Hostname cannot be empty")
    return hostname


def prompt_identifier() -> str:
    """Prompt for the key identifier."""
    console.print(
        "\n[dim]Enter a unique identifier (e.g. personal, work, project1)\n"
        "Letters, numbers, hyphens and underscores only.[/dim]"
    )
    return validate_identifier(_ask("[cyan]Identifier[/cyan]").strip())


def prompt_key_type() -> str:
    """Prompt for the key algorithm."""
    console.print("\n[cyan]Select the key type:[/cyan]")
    console.print("  1. ED25519 (recommended - faster and secure)")
    console.print("  2. RSA 4096 (maximum compatibility)")
    choice = _ask("[cyan]Choose (1-2)[/cyan]", default="1", show_default=True)
    return "rsa" if choice.strip() == "2" else DEFAULT_KEY_TYPE


def prompt_email() -> Optional[str]:
    """Prompt for the optional key comment."""
    email = _ask("\n[cyan]Email (optional, press ENTER to skip)[/cyan]", default="", show_default=False)
    return validate_email(email.strip())


def prompt_key_index(count: int, prompt: str, allow_zero: bool = False) -> int:
    """Prompt for a key number; 0 is accepted when allow_zero is set."""
    low = 0 if allow_zero else 1
    choice = _ask_int(f"[cyan]{prompt} ({low}-{count})[/cyan]")
    if not low <= choice <= count:
        raise ValidationError("Invalid option")
    return choice


def prompt_text(prompt: str, default: str = "") -> str:
    return _ask(f"[cyan]{prompt}[/cyan]", default=default, show_default=bool(default)).strip()


def print_removal_warning(entry: KeyEntry) -> None:
    console.print(Panel(
        Text.assemble(
            Text("PERMANENT REMOVAL\n\n", style="bold yellow"),
            Text("Key: ", style="dim"),
            Text(entry.name, style="bold"),
            Text("\nPath: ", style="dim"),
            Text(str(entry.private_path), style="blue"),
        ),
        border_style="red",
        expand=False,
    ))
