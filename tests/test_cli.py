import json
import sys
from datetime import datetime, timezone
from types import ModuleType

import pytest
from click.testing import CliRunner

import logfanout
from logfanout.cli import cli
from logfanout.constants import MISSING_COMMAND_SLOGAN, TOOL_USAGE, TOOL_VERSION
from tests.helpers.telemetry_helpers import CONNECTION_STRING


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def log_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def fake_sdk(mocker):
    """Telemetry SDK stand-in recording every tracked trace"""
    sdk = ModuleType("fake_cli_sdk")
    channel = ModuleType("fake_cli_sdk.channel")
    channel.TelemetryChannel = mocker.Mock(name="TelemetryChannel")
    sdk.TelemetryClient = mocker.Mock(name="TelemetryClient")
    mocker.patch.dict(sys.modules, {"fake_cli_sdk": sdk, "fake_cli_sdk.channel": channel})
    mocker.patch("logfanout.telemetry.client_manager.is_sdk_installed", return_value=True)
    mocker.patch("logfanout.telemetry.client_manager.bind_sdk", return_value=sdk)
    return sdk


class TestCli:
    def test_run_without_parameters(self, runner, mocker):
        mocker.patch("sys.argv", ["logfanout"])

        result = runner.invoke(cli)

        assert result.exit_code == 0
        assert result.output == TOOL_USAGE + "\n"

    def test_run_with_options_but_no_command(self, runner, mocker):
        mocker.patch("sys.argv", ["logfanout", "--silent"])

        result = runner.invoke(cli, ["--silent"])

        assert result.exit_code == 2
        assert MISSING_COMMAND_SLOGAN in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert TOOL_VERSION in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("status", "telemetry", "write"):
            assert command in result.output

    def test_unknown_command(self, runner):
        result = runner.invoke(cli, ["rotate"])

        assert result.exit_code == 2


class TestWriteCommand:
    def test_write_to_console_and_file(self, runner, log_dir):
        result = runner.invoke(
            cli, ["-d", str(log_dir), "write", "--severity", "error", "--no-telemetry", "Import", "failed"]
        )

        assert result.exit_code == 0, result.output
        assert "Import failed" in result.output
        [log_file] = log_dir.glob("logfanout_*.log")
        assert log_file.read_text(encoding="utf-8").endswith("[Error] Import failed\n")

    def test_source_option_names_the_file(self, runner, log_dir):
        result = runner.invoke(cli, ["-d", str(log_dir), "write", "--source", "importer", "--no-telemetry", "done"])

        assert result.exit_code == 0
        assert len(list(log_dir.glob("importer_*.log"))) == 1

    def test_missing_telemetry_is_reported_but_not_fatal(self, runner, log_dir):
        result = runner.invoke(cli, ["-d", str(log_dir), "write", "hello"])

        assert result.exit_code == 0
        assert "Sinks that did not accept the entry: telemetry" in result.output

    def test_all_enabled_sinks_failed(self, runner, log_dir):
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        (log_dir / f"logfanout_{today}.log").mkdir(parents=True)

        result = runner.invoke(cli, ["-d", str(log_dir), "write", "--no-console", "--no-telemetry", "lost"])

        assert result.exit_code == 1
        assert "Sinks that did not accept the entry: local" in result.output

    def test_invalid_property(self, runner, log_dir):
        result = runner.invoke(cli, ["-d", str(log_dir), "write", "-P", "oops", "hello"])

        assert result.exit_code == 1
        assert "Invalid property 'oops'" in result.output

    def test_properties_are_sent(self, runner, log_dir, fake_sdk, monkeypatch):
        monkeypatch.setenv("APPINSIGHTS_CONNECTION_STRING", CONNECTION_STRING)
        monkeypatch.setenv("LOGFANOUT_FLUSH_DELAY_MS", "0")

        result = runner.invoke(cli, ["-d", str(log_dir), "write", "--no-console", "-P", "run=42", "Nightly run"])

        assert result.exit_code == 0, result.output
        track_trace = fake_sdk.TelemetryClient.return_value.track_trace
        track_trace.assert_called_once()
        assert track_trace.call_args.args == ("Nightly run",)
        assert track_trace.call_args.kwargs["severity"] == "INFO"
        properties = track_trace.call_args.kwargs["properties"]
        assert properties["run"] == "42"
        assert properties["sourceName"] == "logfanout"


class TestStatusCommand:
    def test_status_json(self, runner, log_dir, monkeypatch):
        monkeypatch.setenv("LOGFANOUT_TELEMETRY", "false")

        result = runner.invoke(cli, ["-d", str(log_dir), "status", "--json"])

        assert result.exit_code == 0
        status = json.loads(result.stdout)
        assert status["log_config"]["directory"] == str(log_dir)
        assert status["log_config"]["max_file_size_bytes"] == 10485760
        assert status["log_config"]["telemetry_enabled"] is False
        assert status["telemetry"]["initialized"] is False
        assert status["telemetry"]["sdk_version"] == "0.11.10"

    def test_status_text(self, runner, log_dir):
        result = runner.invoke(cli, ["-d", str(log_dir), "status"])

        assert result.exit_code == 0
        assert f"directory: {log_dir}" in result.output
        assert "rotate at: 10 MiB" in result.output

    def test_status_uses_config_file(self, runner, tmp_path):
        config_file = tmp_path / "logfanout.yml"
        config_file.write_text(f"logfanout:\n  log_directory: {tmp_path / 'from_file'}\n  file_extension: txt\n")

        result = runner.invoke(cli, ["-c", str(config_file), "status", "--json"])

        assert result.exit_code == 0
        log_config = json.loads(result.stdout)["log_config"]
        assert log_config["directory"] == str(tmp_path / "from_file")
        assert log_config["file_extension"] == "txt"


class TestTelemetryCommand:
    def test_missing_connection_string(self, runner):
        result = runner.invoke(cli, ["telemetry", "--no-progress"])

        assert result.exit_code == 1
        assert "Telemetry could not be initialized" in result.output
        assert not logfanout.get_telemetry_status().initialized

    def test_initialize_and_send_test_trace(self, runner, fake_sdk, monkeypatch):
        monkeypatch.setenv("LOGFANOUT_FLUSH_DELAY_MS", "0")

        result = runner.invoke(
            cli, ["telemetry", "--connection-string", CONNECTION_STRING, "--no-progress", "--send-test", "ping"]
        )

        assert result.exit_code == 0, result.output
        assert "Telemetry initialized (SDK 0.11.10, InstrumentationKey=00***44" in result.output
        assert "Test trace sent." in result.output
        fake_sdk.TelemetryClient.assert_called_once()
        assert fake_sdk.TelemetryClient.call_args.args[0] == "00000000-1111-2222-3333-444444444444"
        track_trace = fake_sdk.TelemetryClient.return_value.track_trace
        assert track_trace.call_args.args == ("ping",)
        assert track_trace.call_args.kwargs["properties"]["test"] == "true"

    def test_send_failure(self, runner, fake_sdk, monkeypatch):
        monkeypatch.setenv("APPINSIGHTS_CONNECTION_STRING", CONNECTION_STRING)
        fake_sdk.TelemetryClient.return_value.flush.side_effect = ConnectionError("ingestion unreachable")

        result = runner.invoke(cli, ["telemetry", "--send-test", "ping"])

        assert result.exit_code == 1
        assert "Test trace could not be sent." in result.output
