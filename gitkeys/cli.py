"""Command-line interface."""

import logging
import sys
from collections.abc import Callable
from functools import wraps
from typing import Any, Dict, Optional, TypeVar, cast

import click

from . import ui
from .exceptions import ConnectionFailure, GitkeysError, MissingDependencyError
from .manager import KeyManager, Operation
from .menu import InteractiveMenu, confirm_replace, report_created
from .providers import CLI_PLATFORMS, Platform
from .settings import Settings, setup_logging
from .ssh import DEFAULT_KEY_TYPE, KEY_TYPES
from .ui_common import console, print_info
from .version import __version__

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

ACTION_FLAGS = {
    Operation.CREATE: "Create a new SSH key (requires --platform and --name)",
    Operation.LIST: "List existing SSH keys",
    Operation.TEST: "Test the SSH connection to --platform",
    Operation.BACKUP: "Create a full backup of the SSH directory",
    Operation.REPORT: "Generate a report of keys, config and agent",
    Operation.EXPORT: "Export the SSH config and public keys",
}


def handle_errors(f: F) -> F:
    """Decorator to handle errors in CLI commands."""
    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except (click.ClickException, click.Abort, click.exceptions.Exit):
            raise
        except GitkeysError as e:
            console.print(f"\n[bold red]Error:[/bold red] {e._escape_markup(str(e))}")
            if e.details:
                console.print(f"[dim]{e._escape_markup(e.details)}[/dim]")
            raise click.Abort()
        except Exception as e:
            logger.error(f"Unexpected error: {str(e)}", exc_info=True)
            console.print(f"\n[bold red]Unexpected error:[/bold red] {str(e)}")
            raise click.Abort()
    return cast(F, wrapper)


def require(value: Optional[str], flag: str, action: Operation) -> str:
    if not value:
        raise click.UsageError(f"--{action.value} requires {flag}")
    return value


def run_create(manager: KeyManager, options: Dict[str, Any]) -> None:
    platform = Platform.create(require(options["platform"], "--platform", Operation.CREATE))
    identifier = require(options["identifier"], "--name", Operation.CREATE)
    key_type = options["key_type"] or DEFAULT_KEY_TYPE

    print_info(f"Generating {key_type.upper()} key for {platform.display_name}...")
    created = manager.create_key(
        platform, identifier, key_type, options["email"], confirm_replace=confirm_replace
    )
    report_created(manager, created)


def run_list(manager: KeyManager, options: Dict[str, Any]) -> None:
    ui.print_key_table(manager.list_keys())


def run_test(manager: KeyManager, options: Dict[str, Any]) -> None:
    platform = Platform.create(require(options["platform"], "--platform", Operation.TEST))
    print_info(f"Testing connection to {platform.display_name}...")
    result = manager.test_platform(platform)
    ui.print_connection_result(result, platform.ssh_target)
    if not result.success:
        raise ConnectionFailure(
            f"Could not authenticate to {platform.ssh_target}",
            details=f"Add your public key at {platform.profile_url}",
        )


def run_backup(manager: KeyManager, options: Dict[str, Any]) -> None:
    ui.print_artifact(manager.backup(), "Backup created")


def run_report(manager: KeyManager, options: Dict[str, Any]) -> None:
    artifact = manager.report()
    if artifact.content:
        console.print(artifact.content, markup=False, highlight=False)
    ui.print_artifact(artifact, "Report saved")


def run_export(manager: KeyManager, options: Dict[str, Any]) -> None:
    ui.print_artifact(manager.export(), "Configuration exported")


FLAG_HANDLERS: Dict[Operation, Callable[[KeyManager, Dict[str, Any]], None]] = {
    Operation.CREATE: run_create,
    Operation.LIST: run_list,
    Operation.TEST: run_test,
    Operation.BACKUP: run_backup,
    Operation.REPORT: run_report,
    Operation.EXPORT: run_export,
}


def action_options(f: F) -> F:
    """Add one feature switch per action, all stored in ``action``."""
    for operation, help_text in reversed(list(ACTION_FLAGS.items())):
        f = click.option(
            f"--{operation.value}", "action", flag_value=operation.value, help=help_text
        )(f)
    return f


@click.command(context_settings=CONTEXT_SETTINGS)
@action_options
@click.option("--platform", type=click.Choice(CLI_PLATFORMS), help="Platform for --create and --test")
@click.option("--name", "identifier", help="Key identifier (e.g. personal, work)")
@click.option("--email", help="Email added as the key comment")
@click.option("--type", "key_type", type=click.Choice(KEY_TYPES), help="Key type (default: ed25519)")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="gitkeys")
@handle_errors
def cli(
    action: Optional[str],
    platform: Optional[str],
    identifier: Optional[str],
    email: Optional[str],
    key_type: Optional[str],
    debug: bool,
) -> None:
    """SSH key manager for GitHub, GitLab and Bitbucket.

    Run without arguments for the interactive menu.
    """
    settings = Settings.from_env()
    setup_logging(settings, debug)
    logger.debug("Starting gitkeys CLI")

    has_arguments = any([platform, identifier, email, key_type])
    if not action and has_arguments:
        raise click.UsageError(
            "No action given. Use one of: "
            + ", ".join(f"--{op.value}" for op in ACTION_FLAGS)
        )

    manager = KeyManager(settings)
    try:
        manager.prepare()
    except MissingDependencyError as e:
        ui.print_missing_dependencies(e.missing, settings.system)
        raise click.Abort()

    if not action:
        InteractiveMenu(manager).run()
        return

    operation = Operation(action)
    logger.debug(f"Running {operation.value}")
    FLAG_HANDLERS[operation](manager, {
        "platform": platform,
        "identifier": identifier,
        "email": email,
        "key_type": key_type,
    })


def main() -> None:
    """Entry point; every failure exits with status 1."""
    try:
        code = cli.main(prog_name="gitkeys", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        sys.exit(1)
    sys.exit(code if isinstance(code, int) else 0)
