"""Protocol definitions for message bus integrations."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol

from chatbridge.core.domain.messaging import MessageEnvelope


class MessageBusProtocol(Protocol):
    """Protocol for topic based message buses."""

    async def publish(
        self,
        topic: str,
        payload: Any,
        *,
        headers: dict[str, Any] | None = None,
        message_id: str | None = None,
    ) -> MessageEnvelope:
        """Publish a message to a topic."""
        ...

    def subscribe(self, topic: str) -> AsyncIterator[MessageEnvelope]:
        """Subscribe to a topic and yield incoming messages."""
        ...
