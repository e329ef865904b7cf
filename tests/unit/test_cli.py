"""
Unit tests for the management CLI.
"""

from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

import userfeed.config.settings as settings_module
from main import cli


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Point the global settings at a temporary database."""
    monkeypatch.setenv("USERFEED_DATABASE__PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("USERFEED_MEDIA__UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("USERFEED_LOGGING__FILE_PATH", "")
    monkeypatch.setattr(settings_module, "_settings", None)
    yield tmp_path
    settings_module._settings = None


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, *args):
    result = runner.invoke(cli, list(args), catch_exceptions=False)
    return result


class TestCli:

    def test_check_config(self, runner, cli_env):
        result = invoke(runner, "check-config")

        assert result.exit_code == 0
        assert "All configuration checks passed" in result.output

    def test_init_db(self, runner, cli_env):
        result = invoke(runner, "init-db")

        assert result.exit_code == 0
        assert (cli_env / "cli.db").exists()

    def test_add_owner_and_status(self, runner, cli_env):
        assert invoke(runner, "add-owner", "7", "Jane Doe", "-r", "author").exit_code == 0

        result = invoke(runner, "status")

        assert result.exit_code == 0
        assert "Has Never Run" in result.output

    def test_set_interval(self, runner, cli_env):
        result = invoke(runner, "set-interval", "6")

        assert result.exit_code == 0
        assert "every 6 hours" in result.output

    def test_set_interval_rejects_zero(self, runner, cli_env):
        result = invoke(runner, "set-interval", "0")

        assert result.exit_code == 1

    def test_set_import_defaults_without_changes(self, runner, cli_env):
        result = invoke(runner, "set-import-defaults")

        assert result.exit_code == 0
        assert "Nothing to change" in result.output

    def test_import_now(self, runner, cli_env, hello_world_feed):
        invoke(runner, "add-owner", "7", "Jane Doe", "-r", "author")

        response = Mock()
        response.status_code = 200
        response.headers = {"Content-Type": "application/rss+xml"}
        response.iter_content.return_value = [hello_world_feed]

        with patch("requests.Session.get", return_value=response):
            assert invoke(runner, "set-feed", "7", "https://example.com/feed.xml").exit_code == 0
            result = invoke(runner, "import-now", "7")

        assert result.exit_code == 0
        assert "Inserted" in result.output

    def test_import_now_without_feed(self, runner, cli_env):
        invoke(runner, "add-owner", "7", "Jane Doe", "-r", "author")

        result = invoke(runner, "import-now", "7")

        assert result.exit_code == 1
