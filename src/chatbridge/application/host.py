"""Bridge host runtime.

Adapters report raw events, normalized sessions and connection status here.
Everything is published on a message bus; in-process handlers can also be
registered per topic with :meth:`BridgeHost.on`.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from chatbridge.core.domain.messaging import MessageEnvelope
from chatbridge.core.domain.session import BotStatus, ChatSession, UserInfo
from chatbridge.core.interfaces.host import HostProtocol
from chatbridge.core.interfaces.messaging import MessageBusProtocol
from chatbridge.infrastructure.messaging.in_memory_bus import InMemoryMessageBus

Handler = Callable[[MessageEnvelope], Awaitable[None]]

SEND_TOPIC = "send"
LOGIN_UPDATED_TOPIC = "login-updated"


@dataclass
class BotLogin:
    """Connection status of one bot."""

    platform: str
    self_id: str | None
    status: BotStatus = BotStatus.OFFLINE
    user: UserInfo | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "self_id": self.self_id,
            "status": self.status.value,
            "user": self.user.name if self.user else None,
            "reason": self.reason,
        }


class BridgeHost(HostProtocol):
    """Host runtime backed by a message bus."""

    def __init__(self, bus: MessageBusProtocol | None = None) -> None:
        self._bus = bus or InMemoryMessageBus()
        self._handlers: dict[str, list[Handler]] = {}
        self._logins: dict[tuple[str, str | None], BotLogin] = {}
        self._logger = structlog.get_logger(__name__)

    @property
    def bus(self) -> MessageBusProtocol:
        return self._bus

    def on(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``topic``. Returns an unregister callable."""
        handlers = self._handlers.setdefault(topic, [])
        handlers.append(handler)

        def dispose() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return dispose

    async def emit(self, name: str, payload: Any) -> None:
        await self._publish(name, payload)

    async def dispatch(self, session: ChatSession) -> None:
        self._logger.debug(
            "host.dispatch",
            platform=session.platform,
            type=session.type.value,
            channel_id=session.channel_id,
            message_id=session.message_id,
        )
        await self._publish(session.type.value, session, headers={"platform": session.platform})

    async def notify_sent(self, session: ChatSession) -> None:
        await self._publish(SEND_TOPIC, session, headers={"platform": session.platform})

    async def online(
        self, platform: str, self_id: str | None, user: UserInfo | None = None
    ) -> None:
        login = self._login(platform, self_id)
        login.status = BotStatus.ONLINE
        login.reason = None
        if user is not None:
            login.user = user
        self._logger.info("host.bot_online", platform=platform, self_id=self_id)
        await self._publish(LOGIN_UPDATED_TOPIC, login, headers={"platform": platform})

    async def offline(self, platform: str, self_id: str | None, reason: str) -> None:
        login = self._login(platform, self_id)
        login.status = BotStatus.OFFLINE
        login.reason = reason
        self._logger.warning(
            "host.bot_offline", platform=platform, self_id=self_id, reason=reason
        )
        await self._publish(LOGIN_UPDATED_TOPIC, login, headers={"platform": platform})

    def status(self, platform: str, self_id: str | None = None) -> BotStatus:
        login = self._logins.get((platform, self_id))
        return login.status if login else BotStatus.OFFLINE

    def logins(self) -> list[BotLogin]:
        return list(self._logins.values())

    def _login(self, platform: str, self_id: str | None) -> BotLogin:
        key = (platform, self_id)
        if key not in self._logins:
            # A bot learns its id on READY; carry the anonymous entry over.
            anonymous = self._logins.pop((platform, None), None)
            if anonymous is not None and self_id is not None:
                anonymous.self_id = self_id
                self._logins[key] = anonymous
            else:
                self._logins[key] = BotLogin(platform=platform, self_id=self_id)
        return self._logins[key]

    async def _publish(
        self, topic: str, payload: Any, *, headers: dict[str, Any] | None = None
    ) -> None:
        envelope = await self._bus.publish(topic, payload, headers=headers)
        for handler in list(self._handlers.get(topic, [])):
            try:
                await handler(envelope)
            except Exception as exc:
                self._logger.error(
                    "host.handler_failed",
                    topic=topic,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
