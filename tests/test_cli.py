"""Tests for the devcli command line interface."""

from unittest.mock import patch

from click.testing import CliRunner

from conftest import FakeInspector
from devcli import __version__
from devcli.cli import main
from devcli.common.exceptions import RunAborted


class TestMain:
    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "proxy" in result.output
        assert "check" in result.output


class TestProxyCommand:
    def test_passes_options(self, config_file):
        with patch("devcli.cli.ProxyRunner") as mock_runner:
            mock_runner.return_value.run.return_value = 0
            result = CliRunner().invoke(main, ["proxy", "--conf", str(config_file), "--env", "prod"])

        assert result.exit_code == 0
        mock_runner.assert_called_once_with(conf=str(config_file), environment="prod")

    def test_error_exits_with_one(self, config_file):
        with patch("devcli.cli.ProxyRunner") as mock_runner:
            mock_runner.return_value.run.side_effect = RunAborted(8080)
            result = CliRunner().invoke(main, ["proxy", "--conf", str(config_file)])

        assert result.exit_code == 1

    def test_interrupt_during_setup_exits_with_one(self, config_file):
        with patch("devcli.cli.ProxyRunner") as mock_runner:
            mock_runner.return_value.run.side_effect = KeyboardInterrupt
            result = CliRunner().invoke(main, ["proxy", "--conf", str(config_file)])

        assert result.exit_code == 1
        assert "Traceback" not in result.output

    def test_missing_config_file(self, tmp_path):
        result = CliRunner().invoke(main, ["proxy", "--conf", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1

    def test_invalid_log_level(self, config_file):
        result = CliRunner().invoke(main, ["proxy", "--conf", str(config_file), "--log-level", "LOUD"])
        assert result.exit_code == 2


class TestCheckCommand:
    def test_lists_ports(self, config_file):
        with patch("devcli.cli.HostPortInspector", return_value=FakeInspector(busy={5435: [7]})):
            result = CliRunner().invoke(main, ["check", "--conf", str(config_file), "--log-level", "ERROR"])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "Environment: staging"
        assert lines[1].startswith("8080") and "payments/api" in lines[1] and lines[1].endswith("free")
        assert lines[2].startswith("5435") and "10.0.0.5:5432" in lines[2] and lines[2].endswith("in use")

    def test_unknown_environment(self, config_file):
        result = CliRunner().invoke(main, ["check", "--conf", str(config_file), "--env", "qa"])
        assert result.exit_code == 1

    def test_duplicate_port(self, tmp_path):
        conf = tmp_path / "dup.yaml"
        conf.write_text(
            "environment: dev\n"
            "proxies:\n"
            "  - environment: dev\n"
            "    workloads:\n"
            "      - {namespace: ns, app: a, local_port: 8080, remote_port: 80}\n"
            "      - {namespace: ns, app: b, local_port: 8080, remote_port: 81}\n"
        )
        with patch("devcli.cli.HostPortInspector", return_value=FakeInspector()):
            result = CliRunner().invoke(main, ["check", "--conf", str(conf)])
        assert result.exit_code == 1
