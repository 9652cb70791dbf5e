import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from pulse.cli import app
from pulse.core.config import Config
from pulse.core.types import InternetState, PathSnapshot

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "config.json"


class TestCLI:
    @patch("pulse.cli._init_core")
    def test_version(self, mock_init):
        """Test version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "Pulse v" in result.stdout

    @patch("pulse.cli._init_core")
    @patch("pulse.cli.build_service")
    @patch("pulse.cli.PsutilPathObserver")
    def test_check_prints_state(self, mock_observer_cls, mock_build, mock_init, config_file):
        """Test check evaluates once with the observed path."""
        path = PathSnapshot(satisfied=True, is_wifi=True, interface="wlan0")
        mock_observer_cls.return_value.snapshot.return_value = path
        mock_build.return_value.evaluate.return_value = InternetState.WIFI_NO_INTERNET
        mock_init.return_value = Config(config_file)

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0
        assert "Link up (Wi-Fi, wlan0)" in result.stdout
        assert "WiFi connected, but no internet (wifi_no_internet)" in result.stdout
        mock_build.return_value.evaluate.assert_called_once_with(path)

    @patch("pulse.cli._init_core")
    @patch("pulse.cli.build_service")
    @patch("pulse.cli.PsutilPathObserver")
    def test_check_wifi_override(self, mock_observer_cls, mock_build, mock_init, config_file):
        """Test --no-wifi overrides detection and an unknown path is treated as up."""
        mock_observer_cls.return_value.snapshot.return_value = None
        mock_build.return_value.evaluate.return_value = InternetState.OFFLINE
        mock_init.return_value = Config(config_file)

        result = runner.invoke(app, ["check", "--no-wifi"])

        assert result.exit_code == 0
        assert "Offline (offline)" in result.stdout
        mock_build.return_value.evaluate.assert_called_once_with(PathSnapshot(satisfied=True, is_wifi=False))

    @patch("pulse.cli._init_core")
    @patch("pulse.cli._wait_for_shutdown")
    @patch("pulse.cli.PulseApp")
    def test_run_starts_and_stops(self, mock_app_cls, mock_wait, mock_init, config_file):
        """Test run starts the app, waits, and always stops it."""
        config = Config(config_file)
        mock_init.return_value = config

        result = runner.invoke(app, ["run", "--no-notify"])

        assert result.exit_code == 0
        assert "Watching connectivity" in result.stdout
        mock_app_cls.assert_called_once_with(config)
        mock_app_cls.return_value.start.assert_called_once()
        mock_app_cls.return_value.stop.assert_called_once()
        assert config.get("notifications.enabled") is False

    @patch("pulse.cli._init_core")
    @patch("pulse.cli._wait_for_shutdown", side_effect=RuntimeError("boom"))
    @patch("pulse.cli.PulseApp")
    def test_run_stops_on_error(self, mock_app_cls, mock_wait, mock_init, config_file):
        mock_init.return_value = Config(config_file)

        result = runner.invoke(app, ["run"])

        assert result.exit_code != 0
        mock_app_cls.return_value.stop.assert_called_once()


class TestConfigCommands:
    def test_set_and_show(self, config_file):
        """Test config set persists a parsed value that show reports."""
        result = runner.invoke(app, ["config", "set", "watcher.debounce_delay", "1.2", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "watcher.debounce_delay = 1.2" in result.stdout
        assert Config(config_file).get("watcher.debounce_delay") == 1.2

        result = runner.invoke(app, ["config", "show", "--config", str(config_file)])
        assert result.exit_code == 0
        assert str(config_file) in result.stdout
        assert '"debounce_delay": 1.2' in result.stdout

    def test_set_string_value(self, config_file):
        result = runner.invoke(
            app, ["config", "set", "notifications.sounds.online", "Hero", "--config", str(config_file)]
        )
        assert result.exit_code == 0
        assert Config(config_file).get("notifications.sounds.online") == "Hero"

    def test_export_then_import(self, config_file, tmp_path):
        exported = tmp_path / "exported.yaml"
        result = runner.invoke(
            app, ["config", "export", str(exported), "--format", "yaml", "--config", str(config_file)]
        )
        assert result.exit_code == 0
        assert exported.exists()

        source = tmp_path / "source.json"
        source.write_text(json.dumps({"probes": {"tcp_timeout": 1.0}}))
        result = runner.invoke(app, ["config", "import", str(source), "--config", str(config_file)])
        assert result.exit_code == 0
        assert Config(config_file).get("probes.tcp_timeout") == 1.0

    def test_unsupported_format(self, config_file, tmp_path):
        result = runner.invoke(
            app, ["config", "export", str(tmp_path / "out.toml"), "--format", "toml", "--config", str(config_file)]
        )
        assert result.exit_code == 1
        assert not (tmp_path / "out.toml").exists()

    def test_import_invalid_file(self, config_file, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{nope")
        result = runner.invoke(app, ["config", "import", str(bad), "--config", str(config_file)])
        assert result.exit_code == 1

    @pytest.mark.parametrize(
        "key,value",
        [("watcher.debounce_delay", "fast"), ("watcher.heartbeat_min_interval", "0"), ("probes.tcp_timeout", "0")],
    )
    def test_set_rejects_invalid_number(self, config_file, key, value):
        """Test invalid numeric values are refused and nothing is saved."""
        result = runner.invoke(app, ["config", "set", key, value, "--config", str(config_file)])
        assert result.exit_code == 1
        assert not config_file.exists()


class TestInvalidConfiguration:
    @patch("pulse.cli._init_core")
    @patch("pulse.cli._wait_for_shutdown")
    def test_run_exits_cleanly_on_bad_value(self, mock_wait, mock_init, config_file):
        """Test run reports an invalid stored value with exit code 1 instead of a traceback."""
        config_file.write_text(json.dumps({"watcher": {"debounce_delay": "fast"}}))
        mock_init.return_value = Config(config_file)

        result = runner.invoke(app, ["run", "--no-notify"])

        assert result.exit_code == 1
        assert not isinstance(result.exception, ValueError)
        mock_wait.assert_not_called()

    @patch("pulse.cli._init_core")
    @patch("pulse.cli.PsutilPathObserver")
    def test_check_exits_cleanly_on_bad_timeout(self, mock_observer_cls, mock_init, config_file):
        config_file.write_text(json.dumps({"probes": {"http_timeout": 0}}))
        mock_observer_cls.return_value.snapshot.return_value = None
        mock_init.return_value = Config(config_file)

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 1
        assert not isinstance(result.exception, ValueError)
