"""Message bus envelope model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MessageEnvelope:
    """A payload published on a bus topic."""

    message_id: str
    topic: str
    payload: Any
    headers: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)
