"""Telegram bot: identity, outbound sending and resource ownership."""

from __future__ import annotations

import structlog

from chatbridge.application.message_encoder import SendOptions
from chatbridge.core.domain.document import Fragment
from chatbridge.core.domain.session import ChatSession, UserInfo
from chatbridge.core.interfaces.host import HostProtocol
from chatbridge.infrastructure.assets import AssetFetcher
from chatbridge.infrastructure.telegram.adapt import PLATFORM, decode_user
from chatbridge.infrastructure.telegram.api import TelegramBotApi
from chatbridge.infrastructure.telegram.message_encoder import TelegramMessageEncoder


class TelegramBot:
    """A Telegram bot account bound to a host."""

    platform = PLATFORM

    def __init__(
        self,
        *,
        api: TelegramBotApi,
        host: HostProtocol,
        fetcher: AssetFetcher | None = None,
        link_preview: bool = False,
    ) -> None:
        self.api = api
        self.host = host
        self.fetcher = fetcher or AssetFetcher()
        self.link_preview = link_preview
        self.user: UserInfo | None = None
        self._logger = structlog.get_logger(__name__)

    @property
    def self_id(self) -> str | None:
        return self.user.id if self.user else None

    async def initialize(self) -> UserInfo:
        """Resolve the bot identity with ``getMe`` and report it online."""
        self.user = decode_user(await self.api.get_me())
        self._logger.info("telegram.bot_ready", self_id=self.self_id, name=self.user.name)
        await self.host.online(self.platform, self.self_id, self.user)
        return self.user

    def encoder(self, channel_id: str, guild_id: str | None = None) -> TelegramMessageEncoder:
        return TelegramMessageEncoder(
            self, channel_id, guild_id, SendOptions(link_preview=self.link_preview)
        )

    async def send_message(
        self, channel_id: str, content: Fragment, guild_id: str | None = None
    ) -> list[ChatSession]:
        """Send a document with a fresh encoder; returns the sent messages."""
        return await self.encoder(channel_id, guild_id).send(content)

    async def close(self) -> None:
        await self.host.offline(self.platform, self.self_id, "stopped")
        await self.api.close()
        await self.fetcher.close()
