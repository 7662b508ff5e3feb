"""
Bridge configuration loading.

Reads an optional YAML file, layers environment overrides on top and
validates the result against :class:`BridgeConfigSchema`.

Environment overrides:
- ``DISCORD_TOKEN`` / ``DISCORD_INTENTS``
- ``TELEGRAM_BOT_TOKEN``
- ``LINE_CHANNEL_TOKEN`` / ``LINE_CHANNEL_SECRET``
- ``CHATBRIDGE_SELF_URL``
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml

from chatbridge.core.domain.config_schema import BridgeConfigSchema, validate_bridge_config
from chatbridge.core.domain.errors import ConfigError

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("chatbridge.yaml")

# (environment variable, section, key)
ENV_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("DISCORD_TOKEN", "discord", "token"),
    ("DISCORD_INTENTS", "discord", "intents"),
    ("TELEGRAM_BOT_TOKEN", "telegram", "token"),
    ("LINE_CHANNEL_TOKEN", "line", "token"),
    ("LINE_CHANNEL_SECRET", "line", "secret"),
    ("CHATBRIDGE_SELF_URL", "server", "self_url"),
)


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML config file into a mapping.

    Raises:
        ConfigError: If the file cannot be read or is not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}", details={"file": str(path)}) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", details={"file": str(path)}) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping", details={"file": str(path)}
        )
    return data


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with environment values layered on top."""
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in data.items()}
    for variable, section, key in ENV_OVERRIDES:
        value = env.get(variable)
        if not value:
            continue
        target = merged.get(section)
        if not isinstance(target, dict):
            target = {}
            merged[section] = target
        target[key] = value
    return merged


def load_bridge_config(
    path: str | Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> BridgeConfigSchema:
    """Load, merge and validate the bridge configuration.

    Args:
        path: Config file. When omitted, ``chatbridge.yaml`` in the working
            directory is used if it exists.
        env: Environment mapping (defaults to ``os.environ``).

    Raises:
        ConfigError: If the file is unreadable or the result is invalid.
    """
    env = os.environ if env is None else env
    data: dict[str, Any] = {}
    file_path: Path | None = None

    if path is not None:
        file_path = Path(path)
        if not file_path.exists():
            raise ConfigError(
                f"Config file not found: {file_path}", details={"file": str(file_path)}
            )
    elif DEFAULT_CONFIG_PATH.exists():
        file_path = DEFAULT_CONFIG_PATH

    if file_path is not None:
        data = read_config_file(file_path)
        logger.debug("config.file_loaded", path=str(file_path))

    config = validate_bridge_config(apply_env_overrides(data, env), file_path)
    logger.info("config.loaded", platforms=config.platforms)
    return config
