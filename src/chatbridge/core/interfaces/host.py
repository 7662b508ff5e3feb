"""Protocol for the host runtime adapters report to."""

from __future__ import annotations

from typing import Any, Protocol

from chatbridge.core.domain.session import ChatSession, UserInfo


class HostProtocol(Protocol):
    """Event bus and lifecycle hooks exposed to platform adapters."""

    async def emit(self, name: str, payload: Any) -> None:
        """Publish a raw platform event under ``name``."""
        ...

    async def dispatch(self, session: ChatSession) -> None:
        """Deliver a normalized inbound session."""
        ...

    async def notify_sent(self, session: ChatSession) -> None:
        """Report a message the bot has just sent."""
        ...

    async def online(self, platform: str, self_id: str | None, user: UserInfo | None = None) -> None:
        """Mark a bot as connected."""
        ...

    async def offline(self, platform: str, self_id: str | None, reason: str) -> None:
        """Mark a bot as disconnected."""
        ...
