"""Tests for cli module."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from version_keeper.cli import cli
from version_keeper.config import Config
from version_keeper.history import APP_VERSION
from version_keeper.store import get_json, open_store, set_json


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Config file pointing at a store inside tmp_path."""
    path = tmp_path / "config.toml"
    Config(store_file=tmp_path / "store.json").save(path)
    return path


def _seed(tmp_path: Path, **values) -> None:
    store = open_store(tmp_path / "store.json")
    for key, value in values.items():
        if isinstance(value, str):
            store.set_item(key, value)
        else:
            set_json(store, key, value)
    store.close()


class TestStatusCommand:
    """Tests for the status command."""

    def test_first_run(self, config_path: Path) -> None:
        """Test status on an empty store."""
        result = CliRunner().invoke(cli, ["--config", str(config_path), "status"])

        assert result.exit_code == 0
        assert "first run" in result.output

    def test_json(self, config_path: Path, tmp_path: Path) -> None:
        """Test JSON output."""
        _seed(tmp_path, app_version="1.0.0-alpha")

        result = CliRunner().invoke(
            cli, ["--config", str(config_path), "status", "--format", "json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["from_version"] == "1.0.0-alpha"
        assert data["to_version"] == APP_VERSION
        assert data["is_newer"] is True

    def test_garbage_marker(self, config_path: Path, tmp_path: Path) -> None:
        """Test an unparsable marker is an error."""
        _seed(tmp_path, app_version="garbage")

        result = CliRunner().invoke(cli, ["--config", str(config_path), "status"])

        assert result.exit_code == 1
        assert "Invalid version format" in result.output


class TestMigrateCommand:
    """Tests for the migrate command."""

    def test_first_run(self, config_path: Path, tmp_path: Path) -> None:
        """Test the first run records the version."""
        result = CliRunner().invoke(cli, ["--config", str(config_path), "migrate"])

        assert result.exit_code == 0
        assert "First run" in result.output
        store = open_store(tmp_path / "store.json")
        assert store.get_item("app_version") == APP_VERSION
        store.close()

    def test_runs_pending_migration(self, config_path: Path, tmp_path: Path) -> None:
        """Test an update applies the shipped migration."""
        _seed(tmp_path, app_version="1.0.0-alpha", companies=[{"id": 1, "name": "Acme"}])

        result = CliRunner().invoke(cli, ["--config", str(config_path), "migrate"])

        assert result.exit_code == 0
        assert "Successfully migrated" in result.output
        store = open_store(tmp_path / "store.json")
        assert get_json(store, "companies")[0]["industry"] == "Unknown"
        assert store.get_item("app_version") == APP_VERSION
        store.close()

    def test_up_to_date(self, config_path: Path, tmp_path: Path) -> None:
        """Test nothing happens when already current."""
        _seed(tmp_path, app_version=APP_VERSION)

        result = CliRunner().invoke(cli, ["--config", str(config_path), "migrate"])

        assert result.exit_code == 0
        assert "Up-to-date" in result.output

    def test_failure_exits_nonzero(self, config_path: Path, tmp_path: Path) -> None:
        """Test a failed migration exits with status 1."""
        _seed(tmp_path, app_version="1.0.0-alpha", companies="{corrupt")

        result = CliRunner().invoke(cli, ["--config", str(config_path), "migrate"])

        assert result.exit_code == 1
        assert "Error:" in result.output
        store = open_store(tmp_path / "store.json")
        assert store.get_item("app_version") == "1.0.0-alpha"
        store.close()

    def test_downgrade(self, config_path: Path, tmp_path: Path) -> None:
        """Test a newer stored version is reported."""
        _seed(tmp_path, app_version="9.0.0")

        result = CliRunner().invoke(cli, ["--config", str(config_path), "migrate"])

        assert result.exit_code == 0
        assert "Downgrade Detected" in result.output


class TestHistoryAndPathCommands:
    """Tests for the history and path commands."""

    def test_history(self, config_path: Path) -> None:
        """Test the history table lists every version."""
        result = CliRunner().invoke(cli, ["--config", str(config_path), "history"])

        assert result.exit_code == 0
        assert "1.0.0-alpha" in result.output
        assert "1.1.0-alpha" in result.output

    def test_path(self, config_path: Path) -> None:
        """Test the resolved path and affected keys."""
        result = CliRunner().invoke(
            cli, ["--config", str(config_path), "path", "1.0.0-alpha", "1.1.0-alpha"]
        )

        assert result.exit_code == 0
        assert "1.1.0-alpha" in result.output
        assert "companies" in result.output

    def test_path_unknown_version(self, config_path: Path) -> None:
        """Test unknown versions are reported."""
        result = CliRunner().invoke(
            cli, ["--config", str(config_path), "path", "0.1.0", "1.1.0-alpha"]
        )

        assert result.exit_code == 1
        assert "0.1.0" in result.output

    def test_keys(self, config_path: Path, tmp_path: Path) -> None:
        """Test the key listing."""
        _seed(tmp_path, app_version=APP_VERSION, companies=[])

        result = CliRunner().invoke(cli, ["--config", str(config_path), "keys"])

        assert result.exit_code == 0
        assert "app_version" in result.output
        assert "companies" in result.output


class TestCorruptStore:
    """Tests for commands against a store file that is not JSON."""

    @pytest.fixture(autouse=True)
    def corrupt_store(self, tmp_path: Path) -> None:
        (tmp_path / "store.json").write_text("{not json")

    @pytest.mark.parametrize("command", ["status", "migrate", "keys"])
    def test_reports_error(self, config_path: Path, command: str) -> None:
        """Test the command prints an error and exits 1."""
        result = CliRunner().invoke(cli, ["--config", str(config_path), command])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)
