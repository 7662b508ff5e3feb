"""Tests for Telegram inbound adaptation."""

from chatbridge.core.domain.session import SessionType
from chatbridge.infrastructure.telegram.adapt import adapt_message, adapt_update, decode_user


def test_decode_user_prefers_username():
    assert decode_user({"id": 1, "username": "ada", "first_name": "A"}).name == "ada"
    assert decode_user({"id": 1, "first_name": "Ada", "last_name": "L"}).name == "Ada L"
    assert decode_user({"id": 1}).name is None


def test_private_chat():
    session = adapt_message(
        {"message_id": 3, "chat": {"id": 42, "type": "private"}, "text": "a<b", "date": 0}
    )
    assert (session.channel_id, session.guild_id) == ("42", None)
    assert session.is_direct
    assert session.content == "a&lt;b"
    assert session.timestamp.year == 1970


def test_group_chat():
    session = adapt_message({"message_id": 3, "chat": {"id": -100, "type": "supergroup"}})
    assert (session.channel_id, session.guild_id) == ("-100", "-100")
    assert session.thread_id is None


def test_topic_message():
    session = adapt_message(
        {
            "message_id": 3,
            "chat": {"id": -100, "type": "supergroup"},
            "message_thread_id": 7,
            "is_topic_message": True,
            "caption": "pic",
        }
    )
    assert (session.channel_id, session.guild_id, session.thread_id) == ("7", "-100", "7")
    assert session.content == "pic"


def test_reply_and_author():
    session = adapt_message(
        {
            "message_id": 3,
            "chat": {"id": 42, "type": "private"},
            "from": {"id": 5, "username": "bob", "is_bot": False},
            "reply_to_message": {"message_id": 2},
        },
        self_id="99",
    )
    assert session.quote_id == "2"
    assert session.user_id == "5"
    assert session.author.name == "bob"
    assert session.self_id == "99"


def test_adapt_update_kinds():
    message = {"message_id": 1, "chat": {"id": 1, "type": "private"}}
    assert adapt_update({"update_id": 1, "message": message}).type == SessionType.MESSAGE_CREATED
    assert (
        adapt_update({"update_id": 2, "edited_message": message}).type
        == SessionType.MESSAGE_UPDATED
    )
    assert adapt_update({"update_id": 3, "channel_post": message}) is None
