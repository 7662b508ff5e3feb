"""Translate Discord dispatch payloads into chat sessions."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from chatbridge.core.domain import document as doc
from chatbridge.core.domain.gateway_session import decode_user
from chatbridge.core.domain.session import ChatSession, SessionType

PLATFORM = "discord"

_MENTION = re.compile(r"<@[!&]?(\d+)>")

_MESSAGE_TYPES = {
    "MESSAGE_CREATE": SessionType.MESSAGE_CREATED,
    "MESSAGE_UPDATE": SessionType.MESSAGE_UPDATED,
    "MESSAGE_DELETE": SessionType.MESSAGE_DELETED,
}

_REACTION_TYPES = {
    "MESSAGE_REACTION_ADD": SessionType.REACTION_ADDED,
    "MESSAGE_REACTION_REMOVE": SessionType.REACTION_REMOVED,
}

CHAT_EVENT_TYPES = frozenset(_MESSAGE_TYPES) | frozenset(_REACTION_TYPES)


def _timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def decode_content(data: dict[str, Any]) -> str:
    """Render message text and attachments as markup.

    User mentions become ``<at>`` elements; everything else is escaped text.
    """
    parts: list[doc.Element] = []
    content = data.get("content") or ""
    cursor = 0
    for match in _MENTION.finditer(content):
        if match.start() > cursor:
            parts.append(doc.text(content[cursor : match.start()]))
        parts.append(doc.at(match.group(1)))
        cursor = match.end()
    if cursor < len(content):
        parts.append(doc.text(content[cursor:]))

    for attachment in data.get("attachments") or []:
        url = attachment.get("url")
        if not url:
            continue
        kind = (attachment.get("content_type") or "").split("/", 1)[0]
        media_type = kind if kind in ("image", "audio", "video") else "file"
        parts.append(doc.media(media_type, url, name=attachment.get("filename")))

    return "".join(part.to_string() for part in parts)


def _adapt_message(event_type: str, data: dict[str, Any], self_id: str | None) -> ChatSession | None:
    message_id = data.get("id")
    channel_id = data.get("channel_id")
    if not message_id or not channel_id:
        return None

    session = ChatSession(
        platform=PLATFORM,
        type=_MESSAGE_TYPES[event_type],
        self_id=self_id,
        channel_id=str(channel_id),
        guild_id=str(data["guild_id"]) if data.get("guild_id") else None,
        message_id=str(message_id),
        raw=data,
    )
    if event_type == "MESSAGE_DELETE":
        return session

    author = data.get("author")
    if isinstance(author, dict) and "id" in author:
        session.author = decode_user(author)
        session.user_id = session.author.id
    reference = data.get("message_reference") or {}
    if reference.get("message_id"):
        session.quote_id = str(reference["message_id"])
    session.content = decode_content(data)
    session.timestamp = _timestamp(data.get("edited_timestamp") or data.get("timestamp"))
    return session


def _adapt_reaction(event_type: str, data: dict[str, Any], self_id: str | None) -> ChatSession | None:
    message_id = data.get("message_id")
    channel_id = data.get("channel_id")
    if not message_id or not channel_id:
        return None
    emoji = data.get("emoji") or {}
    return ChatSession(
        platform=PLATFORM,
        type=_REACTION_TYPES[event_type],
        self_id=self_id,
        channel_id=str(channel_id),
        guild_id=str(data["guild_id"]) if data.get("guild_id") else None,
        user_id=str(data["user_id"]) if data.get("user_id") else None,
        message_id=str(message_id),
        content=str(emoji.get("name") or emoji.get("id") or ""),
        raw=data,
    )


def adapt_session(event_type: str, data: Any, self_id: str | None = None) -> ChatSession | None:
    """Adapt a chat-content dispatch. Returns ``None`` when nothing applies."""
    if not isinstance(data, dict):
        return None
    if event_type in _MESSAGE_TYPES:
        return _adapt_message(event_type, data, self_id)
    if event_type in _REACTION_TYPES:
        return _adapt_reaction(event_type, data, self_id)
    return None
