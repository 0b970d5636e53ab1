"""Tests for CLI commands."""
import json
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from paketdash.cli import cli


class TestCLICommands:
    """Test CLI commands."""

    def setup_method(self):
        """Set up test environment."""
        self.runner = CliRunner()

    def test_version_command(self):
        """Test version command shows version."""
        result = self.runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "paketdash v" in result.output

    def test_help_command(self):
        """Test help command shows usage."""
        result = self.runner.invoke(cli, ["help"])
        assert result.exit_code == 0
        assert "Usage Examples:" in result.output
        assert "Configuration Keys:" in result.output
        assert "public_api_url" in result.output

    def test_config_show(self):
        """Test config show command."""
        with self.runner.isolated_filesystem():
            with patch("paketdash.config.Path.home") as mock_home:
                mock_home.return_value = Path(".")
                result = self.runner.invoke(cli, ["config", "show"], env={"PAKETDASH_PORT": None})
                assert result.exit_code == 0
                assert "Current configuration:" in result.output
                assert "port: 8090 (default)" in result.output

    def test_config_show_reports_environment(self):
        with self.runner.isolated_filesystem():
            with patch("paketdash.config.Path.home") as mock_home:
                mock_home.return_value = Path(".")
                result = self.runner.invoke(cli, ["config", "show"], env={"API_URL": "http://backend:9000"})
                assert "api_url: http://backend:9000 (from environment)" in result.output

    def test_config_set_and_unset(self):
        """Test config set writes the file and unset removes it."""
        with self.runner.isolated_filesystem():
            with patch("paketdash.config.Path.home") as mock_home:
                mock_home.return_value = Path(".")

                result = self.runner.invoke(cli, ["config", "set", "debounce_ms", "150"])
                assert result.exit_code == 0
                assert "✅ Set debounce_ms = 150" in result.output

                result = self.runner.invoke(cli, ["config", "show", "--json"], env={"PAKETDASH_DEBOUNCE_MS": None})
                assert json.loads(result.output)["debounce_ms"] == 150

                result = self.runner.invoke(cli, ["config", "unset", "debounce_ms"])
                assert result.exit_code == 0
                saved = json.loads(Path(".paketdash/config.json").read_text())
                assert "debounce_ms" not in saved

    def test_config_set_invalid_key(self):
        with self.runner.isolated_filesystem():
            with patch("paketdash.config.Path.home") as mock_home:
                mock_home.return_value = Path(".")
                result = self.runner.invoke(cli, ["config", "set", "colour", "red"])
                assert "Unknown configuration key 'colour'" in result.output
                assert not Path(".paketdash/config.json").exists()

    def test_config_set_invalid_integer(self):
        with self.runner.isolated_filesystem():
            with patch("paketdash.config.Path.home") as mock_home:
                mock_home.return_value = Path(".")
                result = self.runner.invoke(cli, ["config", "set", "port", "eighty"])
                assert "port must be an integer" in result.output

    def test_serve_uses_options(self):
        with patch("paketdash.server.start_server_with_args") as mock_start:
            result = self.runner.invoke(cli, ["serve", "--host", "0.0.0.0", "--port", "9100", "--no-cache"])
        assert result.exit_code == 0
        mock_start.assert_called_once_with("0.0.0.0", 9100, enable_cache=False)
        assert "http://0.0.0.0:9100" in result.output

    def test_mock_uses_options(self):
        with patch("paketdash.mock_backend.start_mock_server") as mock_start:
            result = self.runner.invoke(cli, ["mock", "--port", "8123", "--rows", "30"])
        assert result.exit_code == 0
        mock_start.assert_called_once_with(8123, 30)


class TestSnapshotCommand:
    """Snapshot runs the dashboard manager once against the configured backend."""

    def invoke_snapshot(self, runner, args):
        import httpx

        from paketdash.core.dashboard import DashboardManager
        from paketdash.mock_backend import create_mock_app

        original = DashboardManager.from_config.__func__

        def from_mock(cls, config, transport=None):
            return original(cls, config, transport=httpx.ASGITransport(app=create_mock_app(rows=120)))

        with patch.object(DashboardManager, "from_config", classmethod(from_mock)):
            return runner.invoke(cli, ["snapshot", *args])

    def test_snapshot_text(self):
        runner = CliRunner()
        result = self.invoke_snapshot(runner, [])
        assert result.exit_code == 0, result.output
        assert "Dashboard for Kota Jakarta Selatan, DKI Jakarta (2025)" in result.output
        assert "Total paket:    120" in result.output
        assert "   1. Paket Pengadaan 1" in result.output

    def test_snapshot_json_page(self):
        runner = CliRunner()
        result = self.invoke_snapshot(runner, ["--page", "2", "--json"])
        assert result.exit_code == 0, result.output
        state = json.loads(result.output[result.output.index("{") :])
        assert state["filters"]["page"] == 2
        assert state["tableData"][0]["no"] == 11
        assert state["totalItems"] == 120
