"""Tests for YAML + environment configuration loading."""

from pathlib import Path

import pytest

from chatbridge.core.domain.errors import ConfigError
from chatbridge.infrastructure.config.loader import apply_env_overrides, load_bridge_config


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "chatbridge.yaml"
    path.write_text(
        "telegram:\n"
        "  token: file-token\n"
        "  link_preview: true\n"
        "reconnect:\n"
        "  retry_times: 2\n",
        encoding="utf-8",
    )
    return path


def test_loads_yaml_file(config_file: Path):
    config = load_bridge_config(config_file, env={})
    assert config.telegram.token == "file-token"
    assert config.telegram.link_preview is True
    assert config.reconnect.retry_times == 2


def test_environment_overrides_file(config_file: Path):
    config = load_bridge_config(
        config_file,
        env={"TELEGRAM_BOT_TOKEN": "env-token", "DISCORD_TOKEN": "d", "DISCORD_INTENTS": "512"},
    )
    assert config.telegram.token == "env-token"
    assert config.discord.token == "d"
    assert config.discord.intents == 512


def test_environment_only(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    config = load_bridge_config(
        env={
            "LINE_CHANNEL_TOKEN": "lt",
            "LINE_CHANNEL_SECRET": "ls",
            "CHATBRIDGE_SELF_URL": "https://bridge.example/",
        }
    )
    assert config.platforms == ["line"]
    assert config.server.self_url == "https://bridge.example"


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_bridge_config(tmp_path / "missing.yaml", env={})


def test_non_mapping_file_raises(tmp_path: Path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_bridge_config(path, env={})


def test_invalid_yaml_raises(tmp_path: Path):
    path = tmp_path / "broken.yaml"
    path.write_text("telegram: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_bridge_config(path, env={})


def test_apply_env_overrides_does_not_mutate_input():
    data = {"telegram": {"token": "a"}}
    merged = apply_env_overrides(data, {"TELEGRAM_BOT_TOKEN": "b"})
    assert merged["telegram"]["token"] == "b"
    assert data["telegram"]["token"] == "a"
