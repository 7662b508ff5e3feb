"""In-memory message bus used by the bridge host."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any
from uuid import uuid4

from chatbridge.core.domain.messaging import MessageEnvelope
from chatbridge.core.interfaces.messaging import MessageBusProtocol

WILDCARD = "*"


class InMemoryMessageBus(MessageBusProtocol):
    """Fan-out bus: every active subscriber of a topic gets every message.

    Messages published to a topic without subscribers are dropped.
    Subscribing to ``"*"`` receives all topics.
    """

    def __init__(self, *, maxsize: int = 0) -> None:
        self._maxsize = maxsize
        self._subscribers: dict[str, list[asyncio.Queue[MessageEnvelope]]] = {}

    async def publish(
        self,
        topic: str,
        payload: Any,
        *,
        headers: dict[str, Any] | None = None,
        message_id: str | None = None,
    ) -> MessageEnvelope:
        envelope = MessageEnvelope(
            message_id=message_id or uuid4().hex,
            topic=topic,
            payload=payload,
            headers=headers or {},
        )
        queues = self._subscribers.get(topic, []) + self._subscribers.get(WILDCARD, [])
        for queue in queues:
            await queue.put(envelope)
        return envelope

    def open_queue(self, topic: str) -> asyncio.Queue[MessageEnvelope]:
        """Register a subscriber queue immediately."""
        queue: asyncio.Queue[MessageEnvelope] = asyncio.Queue(self._maxsize)
        self._subscribers.setdefault(topic, []).append(queue)
        return queue

    def close_queue(self, topic: str, queue: asyncio.Queue[MessageEnvelope]) -> None:
        queues = self._subscribers.get(topic, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(topic, None)

    async def subscribe(self, topic: str) -> AsyncIterator[MessageEnvelope]:
        queue = self.open_queue(topic)
        try:
            while True:
                yield await queue.get()
        finally:
            self.close_queue(topic, queue)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))
