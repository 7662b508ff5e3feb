"""
Configuration Schema Validation

Pydantic models for the bridge configuration file. Every section is optional;
an adapter is started only when its section is present.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from chatbridge.core.domain.errors import ConfigError
from chatbridge.core.domain.gateway import DEFAULT_INTENTS


class ReconnectPolicySchema(BaseModel):
    """Retry cadence after a gateway connection is lost."""

    model_config = ConfigDict(extra="forbid")

    retry_times: int = Field(6, ge=0, description="Retries at the short interval")
    retry_interval: float = Field(5.0, gt=0, description="Short retry delay (seconds)")
    retry_lazy: float = Field(60.0, gt=0, description="Delay once retry_times is spent")


class DiscordConfigSchema(BaseModel):
    """Discord gateway bot."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(..., min_length=1)
    intents: int = Field(int(DEFAULT_INTENTS), ge=0)
    api_endpoint: str = Field("https://discord.com/api/v10")
    gateway_url: Optional[str] = Field(
        None,
        description="Skip gateway discovery and connect here",
    )
    properties: dict[str, str] = Field(
        default_factory=lambda: {"os": "linux", "browser": "chatbridge", "device": "chatbridge"},
    )

    @field_validator("api_endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class TelegramConfigSchema(BaseModel):
    """Telegram bot using long polling."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(..., min_length=1)
    endpoint: str = Field("https://api.telegram.org")
    link_preview: bool = Field(False, description="Let Telegram render link previews")
    poll_timeout: int = Field(10, ge=0, description="getUpdates long-poll timeout (seconds)")


class LineConfigSchema(BaseModel):
    """LINE Messaging API bot receiving webhooks."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(..., min_length=1, description="Channel access token")
    secret: str = Field(..., min_length=1, description="Channel secret")
    endpoint: str = Field("https://api.line.me")


class ServerConfigSchema(BaseModel):
    """HTTP server serving webhook routes."""

    model_config = ConfigDict(extra="forbid")

    host: str = "0.0.0.0"
    port: int = Field(8070, gt=0, lt=65536)
    self_url: Optional[str] = Field(
        None,
        description="Public base URL; webhooks are registered under it",
    )

    @field_validator("self_url")
    @classmethod
    def strip_self_url(cls, v: Optional[str]) -> Optional[str]:
        return v.rstrip("/") if v else v


class BridgeConfigSchema(BaseModel):
    """Top-level bridge configuration."""

    model_config = ConfigDict(extra="forbid")

    discord: Optional[DiscordConfigSchema] = None
    telegram: Optional[TelegramConfigSchema] = None
    line: Optional[LineConfigSchema] = None
    server: ServerConfigSchema = Field(default_factory=ServerConfigSchema)
    reconnect: ReconnectPolicySchema = Field(default_factory=ReconnectPolicySchema)

    @property
    def platforms(self) -> list[str]:
        return [name for name in ("discord", "telegram", "line") if getattr(self, name)]


def validate_bridge_config(
    data: dict[str, Any],
    file_path: Optional[Path] = None,
) -> BridgeConfigSchema:
    """
    Validate bridge configuration data.

    Raises:
        ConfigError: If validation fails
    """
    try:
        return BridgeConfigSchema(**data)
    except ValidationError as e:
        details: dict[str, Any] = {"errors": e.errors(include_url=False)}
        if file_path:
            details["file"] = str(file_path)
        raise ConfigError(f"Invalid bridge configuration: {e}", details=details) from e
