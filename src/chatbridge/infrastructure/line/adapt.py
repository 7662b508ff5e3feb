"""Translate LINE webhook events into chat sessions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from chatbridge.core.domain import document as doc
from chatbridge.core.domain.session import ChatSession, SessionType

PLATFORM = "line"

CONTENT_URL = "https://api-data.line.me/v2/bot/message/{message_id}/content"

_MEDIA_TYPES = {"image": "image", "video": "video", "audio": "audio", "file": "file"}


def _base_session(event: dict[str, Any], type_: SessionType, self_id: str | None) -> ChatSession:
    source = event.get("source") or {}
    user_id = source.get("userId")
    group_id = source.get("groupId") or source.get("roomId")
    session = ChatSession(
        platform=PLATFORM,
        type=type_,
        self_id=self_id,
        channel_id=group_id or user_id,
        guild_id=group_id,
        user_id=user_id,
        raw=event,
    )
    timestamp = event.get("timestamp")
    if isinstance(timestamp, (int, float)):
        session.timestamp = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
    return session


def decode_message(message: dict[str, Any]) -> str:
    """Render a LINE message object as markup."""
    kind = message.get("type")
    if kind == "text":
        return doc.escape(message.get("text") or "")
    if kind in _MEDIA_TYPES:
        attrs: dict[str, Any] = {}
        if message.get("fileName"):
            attrs["name"] = message["fileName"]
        url = CONTENT_URL.format(message_id=message.get("id"))
        return doc.media(_MEDIA_TYPES[kind], url, **attrs).to_string()
    if kind == "sticker":
        return doc.Element(
            "face",
            {"id": message.get("stickerId"), "package": message.get("packageId")},
        ).to_string()
    if kind == "location":
        return doc.escape(message.get("address") or message.get("title") or "")
    return ""


def adapt_sessions(event: dict[str, Any], self_id: str | None = None) -> list[ChatSession]:
    """Adapt one webhook event. Unhandled event types produce no sessions."""
    kind = event.get("type")

    if kind == "message":
        message = event.get("message") or {}
        session = _base_session(event, SessionType.MESSAGE_CREATED, self_id)
        session.message_id = str(message["id"]) if message.get("id") else None
        session.content = decode_message(message)
        if message.get("quotedMessageId"):
            session.quote_id = str(message["quotedMessageId"])
        return [session]

    if kind == "unsend":
        session = _base_session(event, SessionType.MESSAGE_DELETED, self_id)
        session.message_id = (event.get("unsend") or {}).get("messageId")
        return [session]

    if kind == "follow":
        return [_base_session(event, SessionType.FRIEND_ADDED, self_id)]

    if kind == "unfollow":
        return [_base_session(event, SessionType.FRIEND_REMOVED, self_id)]

    return []
