"""Unified session and user models.

Every adapter translates its platform-native payloads into these types so the
host runtime only ever sees one shape of event.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class SessionType(str, Enum):
    """Normalized event types carried by a ChatSession."""

    MESSAGE_CREATED = "message-created"
    MESSAGE_UPDATED = "message-updated"
    MESSAGE_DELETED = "message-deleted"
    REACTION_ADDED = "reaction-added"
    REACTION_REMOVED = "reaction-removed"
    SEND = "send"
    FRIEND_ADDED = "friend-added"
    FRIEND_REMOVED = "friend-removed"


class BotStatus(str, Enum):
    """Connection status of a bot as seen by the host."""

    OFFLINE = "offline"
    ONLINE = "online"


@dataclass(frozen=True)
class UserInfo:
    """A platform user (including the bot itself)."""

    id: str
    name: str | None = None
    avatar: str | None = None
    is_bot: bool = False


@dataclass
class ChatSession:
    """Normalized event/message record handed to the host.

    Attributes:
        platform: Platform name ('discord', 'telegram', 'line').
        self_id: Identifier of the bot that produced or received the event.
        type: Normalized event type.
        channel_id: Channel/chat the event belongs to.
        guild_id: Guild/group, when the platform has one.
        thread_id: Topic/thread inside the channel, when present.
        user_id: Author of the message or actor of the event.
        message_id: Platform message identifier.
        content: Message content (HTML-ish markup for formatted platforms).
        quote_id: Identifier of the message this one replies to.
        author: Decoded author information.
        timestamp: When the platform recorded the event.
        raw: The platform-native payload.
    """

    platform: str
    type: SessionType
    self_id: str | None = None
    channel_id: str | None = None
    guild_id: str | None = None
    thread_id: str | None = None
    user_id: str | None = None
    message_id: str | None = None
    content: str = ""
    quote_id: str | None = None
    author: UserInfo | None = None
    timestamp: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_direct(self) -> bool:
        """Whether the session belongs to a private conversation."""
        return self.guild_id is None
