"""Translate Telegram messages into chat sessions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from chatbridge.core.domain.document import escape
from chatbridge.core.domain.session import ChatSession, SessionType, UserInfo

PLATFORM = "telegram"


def decode_user(data: dict[str, Any]) -> UserInfo:
    name = data.get("username") or " ".join(
        part for part in (data.get("first_name"), data.get("last_name")) if part
    )
    return UserInfo(id=str(data["id"]), name=name or None, is_bot=bool(data.get("is_bot")))


def adapt_message(
    message: dict[str, Any],
    *,
    self_id: str | None = None,
    type_: SessionType = SessionType.MESSAGE_CREATED,
) -> ChatSession:
    """Build a session from a Telegram ``Message`` object.

    In forum topics the topic id is the channel and the chat is the guild,
    which is the addressing the encoder expects back.
    """
    chat = message.get("chat") or {}
    chat_id = str(chat.get("id", ""))
    is_private = chat.get("type") == "private"
    thread_id = message.get("message_thread_id")

    if is_private:
        channel_id, guild_id = chat_id, None
    elif thread_id is not None and message.get("is_topic_message"):
        channel_id, guild_id = str(thread_id), chat_id
    else:
        channel_id, guild_id = chat_id, chat_id

    session = ChatSession(
        platform=PLATFORM,
        type=type_,
        self_id=self_id,
        channel_id=channel_id,
        guild_id=guild_id,
        thread_id=str(thread_id) if thread_id is not None else None,
        message_id=str(message["message_id"]) if "message_id" in message else None,
        content=escape(message.get("text") or message.get("caption") or ""),
        raw=message,
    )

    sender = message.get("from")
    if isinstance(sender, dict) and "id" in sender:
        session.author = decode_user(sender)
        session.user_id = session.author.id

    reply = message.get("reply_to_message")
    if isinstance(reply, dict) and "message_id" in reply:
        session.quote_id = str(reply["message_id"])

    date = message.get("edit_date") or message.get("date")
    if isinstance(date, (int, float)):
        session.timestamp = datetime.fromtimestamp(date, tz=timezone.utc)
    return session


def adapt_update(update: dict[str, Any], *, self_id: str | None = None) -> ChatSession | None:
    """Adapt an ``Update``; only new and edited messages produce sessions."""
    if isinstance(update.get("message"), dict):
        return adapt_message(update["message"], self_id=self_id)
    if isinstance(update.get("edited_message"), dict):
        return adapt_message(
            update["edited_message"], self_id=self_id, type_=SessionType.MESSAGE_UPDATED
        )
    return None
