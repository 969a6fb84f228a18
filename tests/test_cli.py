"""Tests for the click command line entrypoint."""

from unittest.mock import patch

from click.testing import CliRunner

from gestetner.cli import cli
from gestetner.core.config import ListenAddress


def test_flags_map_onto_settings(tmp_path) -> None:
    runner = CliRunner()
    with patch("gestetner.cli.serve") as serve, patch("gestetner.cli.configure_logging"):
        result = runner.invoke(
            cli,
            [
                "-u", "https://paste.example/",
                "-l", "127.0.0.1:9000",
                "-w", "[::1]:9001",
                "-p", str(tmp_path / "pastes"),
                "-n", "6",
                "-m", "1024",
                "-r", "10",
                "--capacity", "4096",
            ],
        )

    assert result.exit_code == 0, result.output
    cfg = serve.call_args.args[0]
    assert cfg.app.base_url == "https://paste.example"
    assert cfg.app.tcp_address == ListenAddress("127.0.0.1", 9000)
    assert cfg.app.http_address == ListenAddress("::1", 9001)
    assert cfg.app.storage_path == tmp_path / "pastes"
    assert cfg.app.slug_length == 6
    assert cfg.app.max_paste_size == 1024
    assert cfg.app.rate_limit_per_minute == 10
    assert cfg.app.capacity == 4096
    assert cfg.app.rate_limit_enabled is True


def test_no_rate_limit_flag(tmp_path) -> None:
    runner = CliRunner()
    with patch("gestetner.cli.serve") as serve, patch("gestetner.cli.configure_logging"):
        result = runner.invoke(cli, ["-p", str(tmp_path), "--no-rate-limit"])

    assert result.exit_code == 0, result.output
    assert serve.call_args.args[0].app.rate_limit_enabled is False


def test_log_flags_configure_logging(tmp_path) -> None:
    runner = CliRunner()
    with patch("gestetner.cli.serve"), patch("gestetner.cli.configure_logging") as configure:
        result = runner.invoke(cli, ["-p", str(tmp_path), "--log-level", "DEBUG", "--log-format", "plain"])

    assert result.exit_code == 0, result.output
    log_cfg = configure.call_args.args[0]
    assert log_cfg.level == "DEBUG"
    assert log_cfg.format == "plain"


def test_invalid_address_exits_with_error(tmp_path) -> None:
    runner = CliRunner()
    with patch("gestetner.cli.serve") as serve, patch("gestetner.cli.configure_logging"):
        result = runner.invoke(cli, ["-p", str(tmp_path), "-l", "nonsense"])

    assert result.exit_code == 1
    serve.assert_not_called()


def test_help_lists_flags() -> None:
    result = CliRunner().invoke(cli, ["--help"])

    assert result.exit_code == 0
    for flag in ("-u", "-l", "-w", "-p", "-n", "-m", "-r", "--capacity"):
        assert flag in result.output
