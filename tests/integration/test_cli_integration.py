"""Integration tests for the interactive menu."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from gitkeys.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI runner."""
    return CliRunner()


def run_menu(runner: CliRunner, *lines: str):
    """Feed menu answers, always finishing with the exit option."""
    result = runner.invoke(cli, [], input="\n".join([*lines, "9"]) + "\n")
    assert result.exit_code == 0, result.output
    assert "Goodbye" in result.output
    return result


def test_create_key(runner: CliRunner, cli_env, ssh_dir: Path) -> None:
    """Platform, identifier, default type and no email."""
    result = run_menu(runner, "1", "1", "work", "", "")

    assert (ssh_dir / "github_work").exists()
    assert (ssh_dir / "github_work.pub").exists()
    assert "Host github.com-work" in (ssh_dir / "config").read_text()
    assert "ssh-ed25519" in result.output
    assert cli_env.calls_to("ssh-keygen")[0][:3] == ["ssh-keygen", "-t", "ed25519"]


def test_create_selfhosted_rsa(runner: CliRunner, cli_env, ssh_dir: Path) -> None:
    run_menu(runner, "1", "3", "gitlab.corp.io", "corp", "2", "me@example.com")

    assert (ssh_dir / "gitlab-selfhosted_corp").exists()
    config = (ssh_dir / "config").read_text()
    assert "Host gitlab.corp.io-corp\n    HostName gitlab.corp.io\n" in config
    keygen = cli_env.calls_to("ssh-keygen")[0]
    assert keygen[:5] == ["ssh-keygen", "-t", "rsa", "-b", "4096"]
    assert "me@example.com" in keygen


def test_create_existing_declined(runner: CliRunner, cli_env, ssh_dir: Path, make_key) -> None:
    private = make_key("github_work", key_type="rsa")
    before = (ssh_dir / "github_work.pub").read_text()

    result = run_menu(runner, "1", "1", "work", "n")

    assert "Operation cancelled" in result.output
    assert private.with_name("github_work.pub").read_text() == before
    assert cli_env.calls_to("ssh-keygen") == []


def test_create_existing_overwritten(runner: CliRunner, cli_env, ssh_dir: Path, make_key) -> None:
    make_key("github_work", key_type="rsa")

    run_menu(runner, "1", "1", "work", "y", "", "")

    assert (ssh_dir / "github_work.pub").read_text().startswith("ssh-ed25519")


def test_error_returns_to_menu(runner: CliRunner, cli_env, ssh_dir: Path) -> None:
    result = run_menu(runner, "1", "1", "bad name")

    assert "Identifier must contain only" in result.output
    assert list(ssh_dir.iterdir()) == [ssh_dir / "backups"]


def test_invalid_option(runner: CliRunner, cli_env) -> None:
    result = run_menu(runner, "42")
    assert "Invalid option" in result.output


def test_end_of_input_exits(runner: CliRunner, cli_env) -> None:
    result = runner.invoke(cli, [], input="")
    assert result.exit_code == 0


def test_list_keys(runner: CliRunner, cli_env, make_key) -> None:
    make_key("github_work")

    result = run_menu(runner, "2")

    assert "github_work" in result.output
    assert "ED25519" in result.output


def test_test_every_key(runner: CliRunner, cli_env, make_key) -> None:
    first = make_key("github_a")
    second = make_key("github_b")

    run_menu(runner, "3", "1", "0")

    assert [call[3] for call in cli_env.calls_to("ssh")] == [str(first), str(second)]


def test_test_without_keys_uses_default_identity(runner: CliRunner, cli_env) -> None:
    result = run_menu(runner, "3", "2")

    assert "default SSH identity" in result.output
    assert cli_env.calls_to("ssh") == [["ssh", "-T", "-o", "ConnectTimeout=5", "git@gitlab.com"]]


def test_failed_probe_is_warning(runner: CliRunner, cli_env) -> None:
    cli_env.ssh_returncode = 255

    result = run_menu(runner, "3", "4", "git.example.org")

    assert "Could not authenticate to git@git.example.org" in result.output


def test_add_all_to_agent(runner: CliRunner, cli_env, make_key) -> None:
    make_key("github_work")
    make_key("gitlab_home")

    result = run_menu(runner, "4", "0")

    assert len(cli_env.loaded) == 2
    assert "Keys in SSH agent" in result.output


def test_show_public_key(runner: CliRunner, cli_env, make_key) -> None:
    make_key("gitlab_home")

    result = run_menu(runner, "5", "1")

    assert "ssh-ed25519 AAAAFake gitlab_home@example.com" in result.output
    assert "https://gitlab.com/-/profile/keys" in result.output


def test_configure_existing_key(runner: CliRunner, cli_env, ssh_dir: Path, make_key) -> None:
    make_key("bitbucket_ci")

    result = run_menu(runner, "6", "1")

    assert "Host bitbucket.com-ci\n    HostName bitbucket.org\n" in (ssh_dir / "config").read_text()
    assert "git clone git@bitbucket.com-ci" in result.output


def test_remove_key(runner: CliRunner, cli_env, ssh_dir: Path, make_key) -> None:
    make_key("github_work")
    make_key("gitlab_home")
    run_menu(runner, "6", "1")

    result = run_menu(runner, "7", "1", "YES", "y")

    assert not (ssh_dir / "github_work").exists()
    assert not (ssh_dir / "github_work.pub").exists()
    assert (ssh_dir / "gitlab_home").exists()
    assert "github.com-work" not in (ssh_dir / "config").read_text()
    assert "https://github.com/settings/keys" in result.output


def test_remove_failure_returns_to_menu(
    runner: CliRunner, cli_env, ssh_dir: Path, make_key, monkeypatch: pytest.MonkeyPatch
) -> None:
    make_key("github_work")

    def refuse(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "unlink", refuse)

    result = run_menu(runner, "7", "1", "YES")

    assert "Failed to remove" in result.output
    assert (ssh_dir / "github_work").exists()


def test_remove_requires_typed_confirmation(runner: CliRunner, cli_env, ssh_dir: Path, make_key) -> None:
    make_key("github_work")

    result = run_menu(runner, "7", "1", "yes")

    assert "Operation cancelled" in result.output
    assert (ssh_dir / "github_work").exists()


def test_backup_menu(runner: CliRunner, cli_env, ssh_dir: Path, make_key) -> None:
    make_key("github_work")

    run_menu(runner, "8", "1")
    run_menu(runner, "8", "2")
    run_menu(runner, "8", "3")
    result = run_menu(runner, "8", "4")

    names = sorted(p.name for p in (ssh_dir / "backups").iterdir())
    assert [n.split("_2")[0] for n in names] == ["ssh_export", "ssh_full_backup", "ssh_report"]
    assert "Backup and Reports" in result.output
