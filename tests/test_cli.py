"""Tests for CLI commands - login, teams, select-team, sync, upload, folders."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from keyring.errors import NoKeyringError

from flowsync.client.cli import cli
from flowsync.client.cli.config import (
    build_agent_config,
    load_config,
    save_password,
    update_config,
)
from flowsync.client.cli.session import choose_team
from flowsync.client.errors import ParseError

API_BASE = "http://test"
UPLOAD_URL = f"{API_BASE}/api/upload?skipEmail=true"
TEAMS_PAYLOAD = {"teams": [{"id": "team-1", "name": "One"}, {"id": "team-2", "name": "Two"}]}


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path) -> Iterator[Path]:
    """Point the settings store at a temporary directory."""
    config = tmp_path / ".flowsync"
    with patch("flowsync.client.cli.config.get_config_dir", return_value=config):
        yield config


@pytest.fixture
def passwords() -> Iterator[dict[tuple[str, str], str]]:
    """Replace the OS keyring with an in-memory store."""
    store: dict[tuple[str, str], str] = {}

    def set_password(service: str, user: str, password: str) -> None:
        store[(service, user)] = password

    def get_password(service: str, user: str) -> str | None:
        return store.get((service, user))

    def delete_password(service: str, user: str) -> None:
        store.pop((service, user), None)

    with (
        patch("keyring.set_password", side_effect=set_password),
        patch("keyring.get_password", side_effect=get_password),
        patch("keyring.delete_password", side_effect=delete_password),
    ):
        yield store


@pytest.fixture
def sync_folder(tmp_path: Path) -> Path:
    """Location of the sync folder used by CLI tests."""
    return tmp_path / "Flowen"


@pytest.fixture
def saved_account(
    config_dir: Path, passwords: dict[tuple[str, str], str], sync_folder: Path
) -> Path:
    """Write settings and password as a previous login would."""
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.json").write_text(
        json.dumps(
            {"email": "me@example.com", "api_base": API_BASE, "sync_folder": str(sync_folder)}
        )
    )
    passwords[("flowsync", "me@example.com")] = "secret"
    return config_dir


def _read_config(config_dir: Path) -> dict[str, str]:
    return dict(json.loads((config_dir / "config.json").read_text()))


def _mock_login(httpx_mock, token: str) -> None:  # type: ignore[no-untyped-def]
    httpx_mock.add_response(
        url=f"{API_BASE}/api/auth/login", method="POST", json={"token": token}
    )


class TestChooseTeam:
    """Tests for picking the destination from the teams payload."""

    def test_first_team_by_default(self) -> None:
        """Without a saved choice the first team wins."""
        assert choose_team(json.dumps(TEAMS_PAYLOAD)) == "team-1"

    def test_saved_team_kept_when_listed(self) -> None:
        """A saved team that is still listed is kept."""
        assert choose_team(json.dumps(TEAMS_PAYLOAD), "team-2") == "team-2"

    def test_saved_team_replaced_when_missing(self) -> None:
        """A saved team no longer listed falls back to the first team."""
        assert choose_team(json.dumps(TEAMS_PAYLOAD), "gone") == "team-1"

    def test_bare_list(self) -> None:
        """A bare list payload is accepted."""
        assert choose_team('[{"id": 7}]') == "7"

    def test_no_teams(self) -> None:
        """An empty payload yields no team."""
        assert choose_team('{"teams": []}') is None
        assert choose_team('{"other": 1}') is None

    def test_invalid_json(self) -> None:
        """Non-JSON payloads are rejected."""
        with pytest.raises(ParseError):
            choose_team("<html>")


class TestLoginCommand:
    """Tests for 'flowsync login' command."""

    def test_login_saves_credentials(
        self,
        runner: CliRunner,
        config_dir: Path,
        passwords: dict[tuple[str, str], str],
        token_factory: Callable[..., str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """Login should save email, team and password."""
        _mock_login(httpx_mock, token_factory(exp=4_000_000_000))
        httpx_mock.add_response(url=f"{API_BASE}/api/teams", method="GET", json=TEAMS_PAYLOAD)

        result = runner.invoke(
            cli,
            ["login", "--email", "me@example.com", "--api-base", f"{API_BASE}/"],
            input="secret\n",
        )

        assert result.exit_code == 0, result.output
        assert "Logged in successfully" in result.output
        assert "Selected team: team-1" in result.output
        saved = _read_config(config_dir)
        assert saved["email"] == "me@example.com"
        assert saved["api_base"] == API_BASE
        assert saved["selected_team_id"] == "team-1"
        assert passwords[("flowsync", "me@example.com")] == "secret"

    def test_login_no_save(
        self,
        runner: CliRunner,
        config_dir: Path,
        passwords: dict[tuple[str, str], str],
        token_factory: Callable[..., str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """--no-save should keep the password out of the keyring."""
        _mock_login(httpx_mock, token_factory(exp=4_000_000_000))
        httpx_mock.add_response(url=f"{API_BASE}/api/teams", method="GET", json={"teams": []})

        result = runner.invoke(
            cli,
            ["login", "-e", "me@example.com", "--api-base", API_BASE, "--no-save"],
            input="secret\n",
        )

        assert result.exit_code == 0, result.output
        assert "No team available" in result.output
        assert passwords == {}

    def test_login_without_keyring(
        self,
        runner: CliRunner,
        config_dir: Path,
        passwords: dict[tuple[str, str], str],
        token_factory: Callable[..., str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """A missing keyring backend warns instead of crashing the login."""
        _mock_login(httpx_mock, token_factory(exp=4_000_000_000))
        httpx_mock.add_response(url=f"{API_BASE}/api/teams", method="GET", json=TEAMS_PAYLOAD)

        with patch("keyring.set_password", side_effect=NoKeyringError("no backend")):
            result = runner.invoke(
                cli,
                ["login", "-e", "me@example.com", "--api-base", API_BASE],
                input="secret\n",
            )

        assert result.exit_code == 0, result.output
        assert result.exception is None
        assert "Logged in successfully" in result.output
        assert "password not saved" in result.output
        assert _read_config(config_dir)["selected_team_id"] == "team-1"
        assert passwords == {}

    def test_login_rejected(
        self,
        runner: CliRunner,
        config_dir: Path,
        passwords: dict[tuple[str, str], str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """A rejected login exits with an error and saves nothing."""
        httpx_mock.add_response(
            url=f"{API_BASE}/api/auth/login", method="POST", status_code=401, text="nope"
        )

        result = runner.invoke(
            cli,
            ["login", "-e", "me@example.com", "--api-base", API_BASE],
            input="wrong\n",
        )

        assert result.exit_code == 1
        assert "Login failed (401): nope" in result.output
        assert "email" not in _read_config(config_dir)
        assert passwords == {}


class TestSettingsStore:
    """Tests for the saved settings and keyring helpers."""

    def test_missing_file(self, config_dir: Path) -> None:
        """No settings file means no settings."""
        assert load_config() == {}

    def test_corrupt_file_ignored(self, config_dir: Path, caplog) -> None:  # type: ignore[no-untyped-def]
        """A corrupt settings file is treated as empty and can be rewritten."""
        config_dir.mkdir()
        (config_dir / "config.json").write_text("{not json")

        assert load_config() == {}
        assert "Failed to load settings" in caplog.text

        update_config(email="me@example.com")
        assert load_config() == {"email": "me@example.com"}

    def test_non_object_ignored(self, config_dir: Path) -> None:
        """A settings file holding a list is ignored."""
        config_dir.mkdir()
        (config_dir / "config.json").write_text("[1, 2]")
        assert load_config() == {}

    def test_unknown_and_invalid_values_dropped(self, config_dir: Path) -> None:
        """Only known string settings are loaded."""
        config_dir.mkdir()
        (config_dir / "config.json").write_text(
            json.dumps({"email": "me@example.com", "machine_name": "old", "api_base": 3})
        )
        assert load_config() == {"email": "me@example.com"}

    def test_update_rejects_unknown_key(self, config_dir: Path) -> None:
        """Typos in setting names are caught."""
        with pytest.raises(ValueError, match="Unknown settings: team"):
            update_config(team="x")

    def test_build_agent_config(self, saved_account: Path, sync_folder: Path) -> None:
        """The agent configuration reflects the saved settings."""
        config = build_agent_config()
        assert config.api_base == API_BASE
        assert config.sync_folder == sync_folder.resolve()
        assert config.receiver_email == "me@example.com"

    def test_save_password_without_keyring(self) -> None:
        """A missing keyring backend is reported, not raised."""
        with patch("keyring.set_password", side_effect=NoKeyringError("no backend")):
            assert save_password("me@example.com", "secret") is False

    def test_save_password(self, passwords: dict[tuple[str, str], str]) -> None:
        """The password is stored under the flowsync service."""
        assert save_password("me@example.com", "secret") is True
        assert passwords == {("flowsync", "me@example.com"): "secret"}


class TestAccountCommands:
    """Tests for logout, teams and select-team."""

    def test_logout(
        self,
        runner: CliRunner,
        saved_account: Path,
        passwords: dict[tuple[str, str], str],
    ) -> None:
        """Logout forgets the password and the team."""
        runner.invoke(cli, ["select-team", "team-9"])

        result = runner.invoke(cli, ["logout"])

        assert result.exit_code == 0
        assert "Logged out" in result.output
        assert passwords == {}
        assert "selected_team_id" not in _read_config(saved_account)

    def test_select_team(self, runner: CliRunner, config_dir: Path) -> None:
        """select-team persists the choice."""
        result = runner.invoke(cli, ["select-team", "team-2"])

        assert result.exit_code == 0
        assert "Selected team: team-2" in result.output
        assert _read_config(config_dir)["selected_team_id"] == "team-2"

    def test_teams_prints_payload(
        self,
        runner: CliRunner,
        saved_account: Path,
        token_factory: Callable[..., str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """teams prints the raw payload."""
        _mock_login(httpx_mock, token_factory(exp=4_000_000_000))
        httpx_mock.add_response(url=f"{API_BASE}/api/teams", method="GET", text='{"teams": []}')

        result = runner.invoke(cli, ["teams"])

        assert result.exit_code == 0, result.output
        assert '{"teams": []}' in result.output

    def test_teams_requires_login(
        self, runner: CliRunner, config_dir: Path, passwords: dict[tuple[str, str], str]
    ) -> None:
        """Commands needing the service fail without saved credentials."""
        result = runner.invoke(cli, ["teams"])

        assert result.exit_code == 1
        assert "Not logged in" in result.output


class TestSyncCommands:
    """Tests for 'flowsync sync' and 'flowsync upload'."""

    def test_sync_uploads_existing_files(
        self,
        runner: CliRunner,
        saved_account: Path,
        sync_folder: Path,
        token_factory: Callable[..., str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """sync queues and uploads the files already in the folder."""
        sync_folder.mkdir()
        (sync_folder / "a.txt").write_text("a")
        (sync_folder / "b.txt").write_text("b")
        _mock_login(httpx_mock, token_factory(exp=4_000_000_000))
        httpx_mock.add_response(url=f"{API_BASE}/api/teams", method="GET", json=TEAMS_PAYLOAD)
        for _ in range(2):
            httpx_mock.add_response(url=UPLOAD_URL, method="POST", status_code=200)

        result = runner.invoke(cli, ["sync"])

        assert result.exit_code == 0, result.output
        assert "Initial sync queued: 2 files scheduled, 0 failed to schedule" in result.output
        assert "Done: 2 uploaded, 0 failed" in result.output
        assert _read_config(saved_account)["selected_team_id"] == "team-1"

    def test_sync_empty_folder_created(
        self,
        runner: CliRunner,
        saved_account: Path,
        sync_folder: Path,
        token_factory: Callable[..., str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """A missing sync folder is created and reported as empty."""
        _mock_login(httpx_mock, token_factory(exp=4_000_000_000))

        result = runner.invoke(cli, ["sync", "--team", "team-5"])

        assert result.exit_code == 0, result.output
        assert sync_folder.is_dir()
        assert "No files to sync" in result.output
        assert "Done: 0 uploaded, 0 failed" in result.output

    def test_sync_reports_failed_upload(
        self,
        runner: CliRunner,
        saved_account: Path,
        sync_folder: Path,
        token_factory: Callable[..., str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """A rejected upload is counted and reported, not retried."""
        sync_folder.mkdir()
        (sync_folder / "a.txt").write_text("a")
        _mock_login(httpx_mock, token_factory(exp=4_000_000_000))
        httpx_mock.add_response(url=UPLOAD_URL, method="POST", status_code=500, text="down")

        result = runner.invoke(cli, ["sync", "-t", "team-1"])

        assert result.exit_code == 0, result.output
        assert "Done: 0 uploaded, 1 failed" in result.output

    def test_upload_single_file(
        self,
        runner: CliRunner,
        saved_account: Path,
        sync_folder: Path,
        token_factory: Callable[..., str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """upload sends one file straight away."""
        sync_folder.mkdir()
        file_path = sync_folder / "hello.txt"
        file_path.write_text("hello")
        _mock_login(httpx_mock, token_factory(exp=4_000_000_000))
        httpx_mock.add_response(url=UPLOAD_URL, method="POST", status_code=201)

        result = runner.invoke(cli, ["upload", str(file_path), "--team", "team-1"])

        assert result.exit_code == 0, result.output
        assert "Uploaded: hello.txt (5 bytes)" in result.output

    def test_upload_outside_folder(
        self,
        runner: CliRunner,
        saved_account: Path,
        sync_folder: Path,
        tmp_path: Path,
        token_factory: Callable[..., str],
        httpx_mock,
    ) -> None:  # type: ignore[no-untyped-def]
        """Files outside the sync folder are refused."""
        sync_folder.mkdir()
        outside = tmp_path / "elsewhere.txt"
        outside.write_text("x")
        _mock_login(httpx_mock, token_factory(exp=4_000_000_000))

        result = runner.invoke(cli, ["upload", str(outside), "--team", "team-1"])

        assert result.exit_code == 1
        assert "File is not in sync folder" in result.output


class TestFolderCommands:
    """Tests for default-folder, init-folder and mount."""

    def test_default_folder(self, runner: CliRunner) -> None:
        """default-folder prints the platform default."""
        with patch("flowsync.core.config.platform.system", return_value="Linux"):
            result = runner.invoke(cli, ["default-folder"])

        assert result.exit_code == 0
        assert result.output.strip() == str(Path.home() / "Flowen")

    def test_init_folder_with_path(
        self, runner: CliRunner, config_dir: Path, tmp_path: Path
    ) -> None:
        """init-folder creates the folder and saves it."""
        folder = tmp_path / "nested" / "Sync"

        result = runner.invoke(cli, ["init-folder", str(folder)])

        assert result.exit_code == 0
        assert folder.is_dir()
        assert f"Folder created: {folder.resolve()}" in result.output
        assert _read_config(config_dir)["sync_folder"] == str(folder.resolve())

    def test_init_folder_saved(
        self, runner: CliRunner, saved_account: Path, sync_folder: Path
    ) -> None:
        """Without a path the saved folder is created."""
        result = runner.invoke(cli, ["init-folder"])

        assert result.exit_code == 0
        assert sync_folder.is_dir()

    def test_mount_unsupported(self, runner: CliRunner, saved_account: Path) -> None:
        """Drive mapping is refused outside Windows."""
        with patch("flowsync.client.host.platform.system", return_value="Linux"):
            result = runner.invoke(cli, ["mount", "--drive", "F"])

        assert result.exit_code == 1
        assert "Drive mounting only supported on Windows" in result.output


class TestCliGroup:
    """Tests for the command group itself."""

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        """Help should list every command."""
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("login", "logout", "teams", "select-team", "sync", "upload", "mount"):
            assert command in result.output
