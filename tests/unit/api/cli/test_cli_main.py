"""Tests for the chatbridge CLI."""

from unittest.mock import AsyncMock, MagicMock, patch

from typer.testing import CliRunner

from chatbridge import __version__
from chatbridge.api.cli.main import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_missing_config_file_fails(tmp_path):
    result = runner.invoke(app, ["--config", str(tmp_path / "absent.yaml"), "run"])
    assert result.exit_code == 1
    assert "Configuration error" in result.stdout


def test_run_without_platforms(tmp_path):
    config = tmp_path / "chatbridge.yaml"
    config.write_text("server:\n  port: 9000\n")

    result = runner.invoke(app, ["--config", str(config), "run"])

    assert result.exit_code == 1
    assert "No platform configured" in result.stdout


def test_send_requires_telegram(tmp_path):
    config = tmp_path / "chatbridge.yaml"
    config.write_text("line:\n  token: t\n  secret: s\n")

    result = runner.invoke(app, ["--config", str(config), "send", "42", "hi"])

    assert result.exit_code == 1
    assert "Telegram is not configured" in result.stdout


def test_send_prints_sent_messages(tmp_path):
    config = tmp_path / "chatbridge.yaml"
    config.write_text("telegram:\n  token: t\n")
    sent = [MagicMock(message_id="7")]

    with patch(
        "chatbridge.application.bridge.Bridge.send_telegram",
        new=AsyncMock(return_value=sent),
    ):
        result = runner.invoke(app, ["--config", str(config), "send", "42", "hi"])

    assert result.exit_code == 0, result.stdout
    assert "7" in result.stdout
