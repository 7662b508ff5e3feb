"""Tests for bridge wiring and lifecycle."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chatbridge.application.bridge import Bridge, BridgeComponents, build_bridge_components
from chatbridge.application.host import BridgeHost
from chatbridge.core.domain.config_schema import BridgeConfigSchema
from chatbridge.core.domain.errors import ConfigError, PlatformApiError
from chatbridge.infrastructure.discord.ws_client import DiscordGatewayClient
from chatbridge.infrastructure.line.webhook import LineBot
from chatbridge.infrastructure.telegram.bot import TelegramBot
from chatbridge.infrastructure.telegram.poller import TelegramPoller


@pytest.fixture
def full_config() -> BridgeConfigSchema:
    return BridgeConfigSchema(
        discord={"token": "d-token", "gateway_url": "wss://gw.example"},
        telegram={"token": "t-token", "poll_timeout": 5},
        line={"token": "l-token", "secret": "l-secret"},
        server={"self_url": "https://bridge.example/"},
        reconnect={"retry_times": 2, "retry_interval": 1.0},
    )


@pytest.fixture
def mocked_components() -> BridgeComponents:
    return BridgeComponents(
        host=BridgeHost(),
        line_webhook=MagicMock(),
        discord=AsyncMock(),
        discord_api=AsyncMock(),
        transport_factory=AsyncMock(),
        telegram=AsyncMock(),
        telegram_poller=AsyncMock(),
        line=AsyncMock(),
    )


def test_build_every_configured_platform(full_config):
    components = build_bridge_components(full_config)

    assert isinstance(components.discord, DiscordGatewayClient)
    assert components.discord.params.token == "d-token"
    assert components.discord._policy.retry_times == 2
    assert isinstance(components.telegram, TelegramBot)
    assert isinstance(components.telegram_poller, TelegramPoller)
    assert isinstance(components.line, LineBot)
    assert components.line.secret == "l-secret"
    assert components.telegram.host is components.host
    assert components.line.host is components.host


def test_build_nothing_configured():
    components = build_bridge_components(BridgeConfigSchema())

    assert components.discord is None
    assert components.telegram is None
    assert components.line is None
    assert components.line_webhook.bots == []


def test_shared_host_can_be_supplied(full_config):
    host = BridgeHost()
    assert build_bridge_components(full_config, host=host).host is host


async def test_start_and_stop(full_config, mocked_components):
    bridge = Bridge(full_config, mocked_components)
    c = mocked_components

    await bridge.start()
    await bridge.start()

    c.discord.start.assert_awaited_once()
    c.telegram.initialize.assert_awaited_once()
    c.telegram_poller.start.assert_awaited_once()
    c.line.initialize.assert_awaited_once_with("https://bridge.example")
    c.line_webhook.register.assert_called_once_with(c.line)

    await bridge.stop()
    await bridge.stop()

    c.telegram_poller.stop.assert_awaited_once()
    c.telegram.close.assert_awaited_once()
    c.discord.stop.assert_awaited_once()
    c.discord_api.close.assert_awaited_once()
    c.transport_factory.close.assert_awaited_once()
    c.line.close.assert_awaited_once()


async def test_send_telegram(full_config, mocked_components):
    mocked_components.telegram.send_message.return_value = ["sent"]
    bridge = Bridge(full_config, mocked_components)

    assert await bridge.send_telegram("42", "hi") == ["sent"]
    mocked_components.telegram.send_message.assert_awaited_once_with("42", "hi", None)


async def test_send_telegram_requires_configuration():
    bridge = Bridge(BridgeConfigSchema())
    with pytest.raises(ConfigError):
        await bridge.send_telegram("42", "hi")


async def test_failed_start_stops_what_already_started(full_config, mocked_components):
    c = mocked_components
    c.telegram.initialize.side_effect = PlatformApiError("getMe failed", method="getMe")
    bridge = Bridge(full_config, c)

    with pytest.raises(PlatformApiError):
        await bridge.start()

    c.discord.start.assert_awaited_once()
    c.discord.stop.assert_awaited_once()
    c.discord_api.close.assert_awaited_once()
    c.transport_factory.close.assert_awaited_once()
    c.line.initialize.assert_not_awaited()

    await bridge.stop()
    c.discord.stop.assert_awaited_once()
