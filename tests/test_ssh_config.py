"""Test SSH config editing."""

from pathlib import Path

import pytest

from gitkeys.exceptions import ConfigConflictError
from gitkeys.ssh_config import ConfigEditor, UpsertOutcome, host_alias

EXISTING = """\
Host *
    AddKeysToAgent yes

Host github.com-work
    HostName github.com
    User git
    IdentityFile /home/me/.ssh/github_work
    IdentitiesOnly yes

Host myserver
    HostName 10.0.0.1
    User admin
"""


@pytest.fixture
def editor(ssh_dir: Path) -> ConfigEditor:
    return ConfigEditor(ssh_dir / "config", ssh_dir / "backups")


def backups(editor: ConfigEditor) -> list:
    if not editor.backup_dir.exists():
        return []
    return sorted(editor.backup_dir.iterdir())


def test_host_alias() -> None:
    assert host_alias("github", "work") == "github.com-work"
    assert host_alias("bitbucket", "ci") == "bitbucket.com-ci"
    assert host_alias("gitlab-selfhosted", "corp", "gitlab.corp.io") == "gitlab.corp.io-corp"


def test_upsert_creates_config(editor: ConfigEditor, ssh_dir: Path) -> None:
    outcome = editor.upsert("github", "work", ssh_dir / "github_work", "github.com")

    assert outcome is UpsertOutcome.ADDED
    assert editor.read() == (
        "Host github.com-work\n"
        "    HostName github.com\n"
        "    User git\n"
        f"    IdentityFile {ssh_dir / 'github_work'}\n"
        "    IdentitiesOnly yes\n"
    )
    assert editor.config_file.stat().st_mode & 0o777 == 0o600
    assert backups(editor) == []


def test_upsert_appends_and_backs_up(editor: ConfigEditor, ssh_dir: Path) -> None:
    editor.config_file.write_text(EXISTING)

    outcome = editor.upsert("gitlab", "personal", ssh_dir / "gitlab_personal", "gitlab.com")

    assert outcome is UpsertOutcome.ADDED
    content = editor.read()
    assert content.startswith(EXISTING)
    assert "\n\nHost gitlab.com-personal\n    HostName gitlab.com\n" in content
    assert [b.read_text() for b in backups(editor)] == [EXISTING]


def test_upsert_is_idempotent(editor: ConfigEditor, ssh_dir: Path) -> None:
    """Replacing with the same values leaves exactly one block."""
    key = ssh_dir / "github_work"
    editor.upsert("github", "work", key, "github.com")
    first = editor.read()

    outcome = editor.upsert("github", "work", key, "github.com", confirm_replace=lambda alias: True)

    assert outcome is UpsertOutcome.REPLACED
    assert editor.read() == first
    assert editor.read().count("Host github.com-work") == 1


def test_upsert_replace_keeps_other_blocks(editor: ConfigEditor, ssh_dir: Path) -> None:
    editor.config_file.write_text(EXISTING)
    asked = []

    def confirm(alias: str) -> bool:
        asked.append(alias)
        return True

    editor.upsert("github", "work", ssh_dir / "github_work", "github.com", confirm_replace=confirm)

    content = editor.read()
    assert asked == ["github.com-work"]
    assert content.count("Host github.com-work") == 1
    assert "Host myserver\n    HostName 10.0.0.1" in content
    assert "Host *\n    AddKeysToAgent yes" in content
    assert f"IdentityFile {ssh_dir / 'github_work'}" in content


def test_upsert_declined_is_skipped(editor: ConfigEditor, ssh_dir: Path) -> None:
    editor.config_file.write_text(EXISTING)

    outcome = editor.upsert(
        "github", "work", ssh_dir / "github_work", "github.com", confirm_replace=lambda alias: False
    )

    assert outcome is UpsertOutcome.SKIPPED
    assert editor.read() == EXISTING


def test_upsert_conflict_without_confirmation(editor: ConfigEditor, ssh_dir: Path) -> None:
    editor.config_file.write_text(EXISTING)

    with pytest.raises(ConfigConflictError) as exc_info:
        editor.upsert("github", "work", ssh_dir / "github_work", "github.com")

    assert exc_info.value.alias == "github.com-work"
    assert editor.read() == EXISTING


def test_alias_match_is_exact(editor: ConfigEditor, ssh_dir: Path) -> None:
    """A longer alias sharing the prefix is not a conflict."""
    editor.config_file.write_text(EXISTING.replace("github.com-work", "github.com-workshop"))

    outcome = editor.upsert("github", "work", ssh_dir / "github_work", "github.com")

    assert outcome is UpsertOutcome.ADDED


def test_blocks_and_find(editor: ConfigEditor) -> None:
    editor.config_file.write_text(EXISTING)

    assert [b.host_alias for b in editor.blocks()] == ["*", "github.com-work", "myserver"]
    block = editor.find("github.com-work")
    assert block.host_name == "github.com"
    assert block.identity_file == Path("/home/me/.ssh/github_work")
    assert block.identities_only
    assert editor.find("missing") is None
    assert editor.find_by_identity(Path("/elsewhere/github_work")) == [block]


def test_remove_by_identity_block(editor: ConfigEditor) -> None:
    editor.config_file.write_text(EXISTING)

    removed = editor.remove_by_identity("github_work")

    assert removed == 1
    content = editor.read()
    assert "github.com-work" not in content
    assert "Host myserver" in content
    assert "Host *" in content
    assert len(backups(editor)) == 1


def test_remove_by_identity_lines(editor: ConfigEditor) -> None:
    """Line mode drops only IdentityFile lines and leaves the header."""
    editor.config_file.write_text(EXISTING)

    removed = editor.remove_by_identity("github_work", block=False)

    assert removed == 1
    content = editor.read()
    assert "IdentityFile" not in content
    assert "Host github.com-work" in content


def test_remove_without_match_leaves_file(editor: ConfigEditor) -> None:
    editor.config_file.write_text(EXISTING)

    assert editor.remove_by_identity("gitlab_none") == 0
    assert editor.read() == EXISTING
    assert backups(editor) == []


def test_backup_names_do_not_collide(editor: ConfigEditor) -> None:
    editor.config_file.write_text(EXISTING)

    first = editor.backup()
    second = editor.backup()

    assert first != second
    assert first.name.startswith("config_")
    assert second.read_text() == EXISTING


def test_backup_without_config(editor: ConfigEditor) -> None:
    assert editor.backup() is None
