"""Interactive menu."""

import logging
from typing import Callable, Dict, List, Optional

from . import ui
from .agent import AgentResult
from .backup import BackupArtifact
from .connection import ConnectionResult
from .exceptions import AgentError, ConnectionFailure, GitkeysError
from .keystore import KeyEntry
from .manager import CreatedKey, KeyManager, Operation, split_key_name
from .providers import Platform, PlatformType
from .ssh_config import UpsertOutcome
from .ui_common import confirm_action, console, print_error, print_info, print_success, print_warning

logger = logging.getLogger(__name__)

MENU_CHOICES: Dict[str, Operation] = {
    "1": Operation.CREATE,
    "2": Operation.LIST,
    "3": Operation.TEST,
    "4": Operation.AGENT,
    "5": Operation.SHOW,
    "6": Operation.CONFIGURE,
    "7": Operation.REMOVE,
    "9": Operation.EXIT,
}
BACKUP_CHOICE = "8"

BACKUP_CHOICES: Dict[str, Operation] = {
    "1": Operation.BACKUP,
    "2": Operation.REPORT,
    "3": Operation.EXPORT,
}
BACK_CHOICE = "4"

REMOVAL_CONFIRMATION = "YES"


def confirm_replace(alias: str) -> bool:
    """Ask before replacing an existing host alias."""
    print_warning(f"Entry for '{alias}' already exists in SSH config")
    return confirm_action("Replace it?", default=False)


def report_agent(result: AgentResult) -> None:
    if result:
        print_success(result.message)
    else:
        print_warning(result.message)
        print_info("Add it later with option 4 of the menu or: ssh-add <key>")


def report_config(alias: str, outcome: UpsertOutcome, snapshot: Optional[BackupArtifact] = None) -> None:
    if snapshot is not None:
        print_info(f"Previous SSH config saved to {snapshot.path}")
    if outcome is UpsertOutcome.ADDED:
        print_success(f"SSH config entry added: {alias}")
    elif outcome is UpsertOutcome.REPLACED:
        print_success(f"SSH config entry replaced: {alias}")
    else:
        print_info(f"Kept existing SSH config entry: {alias}")


def report_created(manager: KeyManager, created: CreatedKey) -> None:
    """Print everything the user needs after a key is created."""
    print_success(f"SSH key created: {created.entry.private_path}")
    report_agent(created.agent)
    report_config(created.alias, created.config, created.snapshot)

    copied = manager.copy_public_key(created.entry)
    ui.print_public_key(created.entry, copied)
    if not copied:
        ui.print_clipboard_hint(manager.settings.system)
    ui.print_platform_instructions(created.platform)
    ui.print_clone_hint(created.alias)


class InteractiveMenu:
    """Menu loop over the key manager."""

    def __init__(self, manager: KeyManager) -> None:
        self.manager = manager
        self.handlers: Dict[Operation, Callable[[], None]] = {
            Operation.CREATE: self.create_key,
            Operation.LIST: self.list_keys,
            Operation.TEST: self.test_connection,
            Operation.AGENT: self.add_to_agent,
            Operation.SHOW: self.show_public_key,
            Operation.CONFIGURE: self.configure,
            Operation.REMOVE: self.remove_key,
            Operation.BACKUP: self.backup,
            Operation.REPORT: self.report,
            Operation.EXPORT: self.export,
        }

    def run(self) -> None:
        """Show the menu until the user exits."""
        ui.print_banner(self.manager.settings.system)
        while True:
            ui.print_menu()
            try:
                choice = ui.prompt_text("Choose an option (1-9)")
            except GitkeysError:
                console.print()
                return

            if choice == BACKUP_CHOICE:
                self._guarded(self.backup_menu)
                continue

            operation = MENU_CHOICES.get(choice)
            if operation is None:
                print_error("Invalid option")
                continue
            if operation is Operation.EXIT:
                print_info("Goodbye!")
                return
            self.execute(operation)

    def execute(self, operation: Operation) -> None:
        """Run one operation; errors abort only that operation."""
        self._guarded(self.handlers[operation])

    def _guarded(self, handler: Callable[[], None]) -> None:
        try:
            handler()
        except (AgentError, ConnectionFailure) as e:
            print_warning(str(e))
        except GitkeysError as e:
            logger.debug(f"Operation failed: {e}", exc_info=True)
            print_error(str(e))
            if e.details:
                console.print(f"[dim]{e._escape_markup(e.details)}[/dim]")

    def backup_menu(self) -> None:
        ui.print_header("Backup and Reports")
        ui.print_backup_menu()
        choice = ui.prompt_text("Choose an option (1-4)")
        if choice == BACK_CHOICE:
            return
        operation = BACKUP_CHOICES.get(choice)
        if operation is None:
            print_error("Invalid option")
            return
        self.handlers[operation]()

    def _choose_key(self, prompt: str) -> Optional[KeyEntry]:
        entries = self.manager.list_keys()
        if not entries:
            print_warning("No SSH keys found")
            return None
        ui.print_key_choices(entries)
        index = ui.prompt_key_index(len(entries), prompt)
        return entries[index - 1]

    def create_key(self) -> None:
        ui.print_header("Create New SSH Key")
        ptype = ui.prompt_platform(ui.CREATE_PLATFORMS)
        hostname = ui.prompt_hostname() if ptype is PlatformType.GITLAB_SELFHOSTED else None
        platform = Platform.create(ptype, hostname)
        identifier = ui.prompt_identifier()

        overwrite = False
        if self.manager.key_exists(platform, identifier):
            print_warning(f"Key {platform.name}_{identifier} already exists")
            if not confirm_action("Overwrite it?", default=False):
                print_info("Operation cancelled")
                return
            overwrite = True

        key_type = ui.prompt_key_type()
        email = ui.prompt_email()

        print_info(f"Generating {key_type.upper()} key...")
        created = self.manager.create_key(
            platform, identifier, key_type, email,
            overwrite=overwrite, confirm_replace=confirm_replace,
        )
        report_created(self.manager, created)

    def list_keys(self) -> None:
        ui.print_header("Existing SSH Keys")
        ui.print_key_table(self.manager.list_keys())

    def test_connection(self) -> None:
        ui.print_header("Test SSH Connection")
        ptype = ui.prompt_platform(ui.TEST_PLATFORMS)
        if ptype is PlatformType.CUSTOM:
            host = ui.prompt_text("Host (hostname or alias from your SSH config)")
            platform = Platform.create(ptype, host)
            entries = self.manager.list_keys()
        else:
            platform = Platform.create(ptype)
            entries = self.manager.keys_for(ptype)
        target = platform.ssh_target

        if not entries:
            print_warning(f"No keys found for {platform.display_name}")
            print_info("Testing with the default SSH identity...")
            self._show_result(self.manager.test_connection(target), target)
            return

        ui.print_key_choices(entries)
        print_info("Enter 0 to test every key")
        index = ui.prompt_key_index(len(entries), "Choose a key", allow_zero=True)
        if index:
            self._show_result(self.manager.test_connection(target, entries[index - 1]), target)
            return

        any_success, results = self.manager.test_all(target, entries)
        for result in results:
            ui.print_connection_result(result, target)
        if not any_success:
            raise ConnectionFailure(f"No key could authenticate to {target}")

    def _show_result(self, result: ConnectionResult, target: str) -> None:
        ui.print_connection_result(result, target)
        if not result.success:
            raise ConnectionFailure(f"Could not authenticate to {target}")

    def add_to_agent(self) -> None:
        ui.print_header("Add Keys to SSH Agent")
        entries = self.manager.list_keys()
        if not entries:
            print_warning("No SSH keys found")
            return
        ui.print_key_choices(entries)
        print_info("Enter 0 to add every key")
        index = ui.prompt_key_index(len(entries), "Choose a key", allow_zero=True)
        chosen: List[KeyEntry] = entries if index == 0 else [entries[index - 1]]

        for result in self.manager.add_to_agent(chosen):
            if result:
                print_success(result.message)
            else:
                print_warning(result.message)

        loaded = self.manager.agent.list_loaded()
        console.print("\n[title]Keys in SSH agent:[/title]")
        if loaded:
            for line in loaded:
                console.print(f"  [dim]{line}[/dim]")
        else:
            print_info("No keys in agent")

    def show_public_key(self) -> None:
        ui.print_header("Show Public Key")
        entry = self._choose_key("Choose a key")
        if entry is None:
            return
        copied = self.manager.copy_public_key(entry)
        ui.print_public_key(entry, copied)
        if not copied:
            ui.print_clipboard_hint(self.manager.settings.system)
        ui.print_platform_instructions(self.manager.platform_of(entry))

    def configure(self) -> None:
        ui.print_header("Configure SSH Config Entry")
        entry = self._choose_key("Choose a key")
        if entry is None:
            return
        ptype, _ = split_key_name(entry.name)
        hostname = ui.prompt_hostname() if ptype is PlatformType.GITLAB_SELFHOSTED else None
        alias, outcome = self.manager.configure(entry, hostname, confirm_replace=confirm_replace)
        report_config(alias, outcome, self.manager.config_snapshot())
        if outcome is not UpsertOutcome.SKIPPED:
            ui.print_clone_hint(alias)

    def remove_key(self) -> None:
        ui.print_header("Remove SSH Key", style="red")
        entry = self._choose_key("Choose a key to remove")
        if entry is None:
            return

        ui.print_removal_warning(entry)
        typed = ui.prompt_text(f"Type {REMOVAL_CONFIRMATION} to confirm")
        if typed != REMOVAL_CONFIRMATION:
            print_info("Operation cancelled")
            return

        platform = self.manager.platform_of(entry)
        remove_config = False
        if self.manager.editor.find_by_identity(entry.private_path):
            remove_config = confirm_action("Also remove the SSH config entry?", default=True)

        removed = self.manager.remove_key(entry, remove_config=remove_config)
        if removed.agent:
            print_info(removed.agent.message)
        for path in removed.removed_files:
            print_success(f"Removed {path}")
        if removed.config_entries_removed:
            print_success(f"Removed {removed.config_entries_removed} SSH config entries")
        if removed.snapshot is not None:
            print_info(f"Previous SSH config saved to {removed.snapshot.path}")
        ui.print_platform_instructions(platform, remove=True)

    def backup(self) -> None:
        print_info("Creating full backup...")
        ui.print_artifact(self.manager.backup(), "Backup created")

    def report(self) -> None:
        artifact = self.manager.report()
        if artifact.content:
            console.print(artifact.content, markup=False, highlight=False)
        ui.print_artifact(artifact, "Report saved")

    def export(self) -> None:
        ui.print_artifact(self.manager.export(), "Configuration exported")
