"""Bridge wiring and lifecycle.

Builds every configured adapter from a :class:`BridgeConfigSchema` and starts
or stops them together.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from chatbridge.application.host import BridgeHost
from chatbridge.core.domain.config_schema import BridgeConfigSchema
from chatbridge.core.domain.document import Fragment
from chatbridge.core.domain.errors import ConfigError
from chatbridge.core.domain.gateway import IdentifyParams
from chatbridge.core.domain.session import ChatSession
from chatbridge.infrastructure.discord.api import DiscordApi
from chatbridge.infrastructure.discord.ws_client import DiscordGatewayClient
from chatbridge.infrastructure.line.api import LineBotApi
from chatbridge.infrastructure.line.webhook import LineBot, LineWebhookHandler
from chatbridge.infrastructure.telegram.api import TelegramBotApi
from chatbridge.infrastructure.telegram.bot import TelegramBot
from chatbridge.infrastructure.telegram.poller import TelegramPoller
from chatbridge.infrastructure.transport.aiohttp_ws import AiohttpTransportFactory
from chatbridge.infrastructure.transport.reconnect import ReconnectPolicy

logger = structlog.get_logger(__name__)


@dataclass
class BridgeComponents:
    """All wired adapters of one bridge.

    Attributes:
        host: Shared host runtime.
        line_webhook: Webhook handler; has no bots unless LINE is configured.
        discord: Gateway client, when Discord is configured.
        discord_api: REST client used for gateway discovery.
        transport_factory: WebSocket factory owned by the Discord client.
        telegram: Telegram bot, when Telegram is configured.
        telegram_poller: Long-poll receiver for the Telegram bot.
        line: LINE bot, when LINE is configured.
    """

    host: BridgeHost
    line_webhook: LineWebhookHandler = field(default_factory=LineWebhookHandler)
    discord: DiscordGatewayClient | None = None
    discord_api: DiscordApi | None = None
    transport_factory: AiohttpTransportFactory | None = None
    telegram: TelegramBot | None = None
    telegram_poller: TelegramPoller | None = None
    line: LineBot | None = None


def build_bridge_components(
    config: BridgeConfigSchema,
    *,
    host: BridgeHost | None = None,
) -> BridgeComponents:
    """Build adapters for every configured platform."""
    components = BridgeComponents(host=host or BridgeHost())

    if config.discord:
        discord = config.discord
        components.discord_api = DiscordApi(discord.token, endpoint=discord.api_endpoint)
        components.transport_factory = AiohttpTransportFactory()
        components.discord = DiscordGatewayClient(
            params=IdentifyParams(
                token=discord.token,
                intents=discord.intents,
                properties=dict(discord.properties),
            ),
            host=components.host,
            transport_factory=components.transport_factory,
            api=components.discord_api,
            policy=ReconnectPolicy.from_config(config.reconnect),
            gateway_url=discord.gateway_url,
        )
        logger.info("bridge.discord_configured", intents=discord.intents)

    if config.telegram:
        telegram = config.telegram
        components.telegram = TelegramBot(
            api=TelegramBotApi(telegram.token, endpoint=telegram.endpoint),
            host=components.host,
            link_preview=telegram.link_preview,
        )
        components.telegram_poller = TelegramPoller(
            bot=components.telegram, poll_timeout=telegram.poll_timeout
        )
        logger.info("bridge.telegram_configured")

    if config.line:
        line = config.line
        components.line = LineBot(
            api=LineBotApi(line.token, endpoint=line.endpoint),
            secret=line.secret,
            host=components.host,
        )
        logger.info("bridge.line_configured")

    return components


class Bridge:
    """Starts and stops all adapters of a configuration."""

    def __init__(
        self,
        config: BridgeConfigSchema,
        components: BridgeComponents | None = None,
    ) -> None:
        self.config = config
        self.components = components or build_bridge_components(config)
        self._started = False

    @property
    def host(self) -> BridgeHost:
        return self.components.host

    async def start(self) -> None:
        if self._started:
            return
        c = self.components
        # Set first so a partial start can still be unwound by stop().
        self._started = True
        try:
            if c.discord:
                await c.discord.start()
            if c.telegram:
                await c.telegram.initialize()
                if c.telegram_poller:
                    await c.telegram_poller.start()
            if c.line:
                await c.line.initialize(self.config.server.self_url)
                c.line_webhook.register(c.line)
        except Exception as exc:
            logger.error("bridge.start_failed", error=str(exc), error_type=type(exc).__name__)
            await self.stop()
            raise
        logger.info("bridge.started", platforms=self.config.platforms)

    async def stop(self) -> None:
        if not self._started:
            return
        c = self.components
        if c.telegram_poller:
            await c.telegram_poller.stop()
        if c.telegram:
            await c.telegram.close()
        if c.discord:
            await c.discord.stop()
        if c.discord_api:
            await c.discord_api.close()
        if c.transport_factory:
            await c.transport_factory.close()
        if c.line:
            await c.line.close()
        self._started = False
        logger.info("bridge.stopped")

    async def send_telegram(
        self, channel_id: str, content: Fragment, guild_id: str | None = None
    ) -> list[ChatSession]:
        """Send a document through the configured Telegram bot.

        Raises:
            ConfigError: If Telegram is not configured.
        """
        if self.components.telegram is None:
            raise ConfigError("Telegram is not configured")
        return await self.components.telegram.send_message(channel_id, content, guild_id)
