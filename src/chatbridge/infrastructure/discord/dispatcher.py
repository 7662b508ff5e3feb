"""Routes gateway dispatches to the host."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

import structlog

from chatbridge.core.domain.gateway import Frame
from chatbridge.core.domain.session import ChatSession
from chatbridge.core.interfaces.host import HostProtocol
from chatbridge.infrastructure.discord.adapt import CHAT_EVENT_TYPES, adapt_session

Adapter = Callable[[str, Any, Optional[str]], Optional[ChatSession]]


class EventDispatcher:
    """Adapts chat-content dispatches and hands them to ``host.dispatch``.

    Raw emission of every dispatch happens in the gateway client; this class
    only deals with the event types that carry chat content.
    """

    def __init__(
        self,
        host: HostProtocol,
        *,
        self_id: Callable[[], str | None] = lambda: None,
        adapter: Adapter = adapt_session,
        event_types: frozenset[str] = CHAT_EVENT_TYPES,
    ) -> None:
        self._host = host
        self._self_id = self_id
        self._adapter = adapter
        self._event_types = event_types
        self._logger = structlog.get_logger(__name__)

    async def handle(self, event_type: str, frame: Frame) -> ChatSession | None:
        """Adapt and dispatch one event. Returns the dispatched session."""
        if event_type not in self._event_types:
            return None
        session = self._adapter(event_type, frame.d, self._self_id())
        if session is None:
            self._logger.debug("dispatcher.event_skipped", event_type=event_type, seq=frame.s)
            return None
        await self._host.dispatch(session)
        return session
