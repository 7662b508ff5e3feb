"""Tests for the LINE webhook receiver."""

import json
from unittest.mock import AsyncMock

import pytest

from chatbridge.core.domain.errors import WebhookRejectedError
from chatbridge.core.domain.session import SessionType
from chatbridge.infrastructure.line.webhook import (
    LineBot,
    LineWebhookHandler,
    compute_signature,
    verify_signature,
)

SECRET = "channel-secret"


def body_for(destination: str = "Ubot", events=None) -> bytes:
    return json.dumps({"destination": destination, "events": events or []}).encode()


@pytest.fixture
def host() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def line_bot(host) -> LineBot:
    return LineBot(api=AsyncMock(), secret=SECRET, host=host, self_id="Ubot")


@pytest.fixture
def handler(line_bot) -> LineWebhookHandler:
    handler = LineWebhookHandler()
    handler.register(line_bot)
    return handler


class TestSignature:
    def test_known_vector(self):
        # base64(HMAC-SHA256(key="secret", msg="body"))
        assert compute_signature("secret", b"body") == "3EaYNVf+oSe0OvchRn65s/3iM4/j4U9RlSqoR4wT01U="

    def test_verify(self):
        body = b'{"events":[]}'
        assert verify_signature(SECRET, body, compute_signature(SECRET, body))
        assert not verify_signature(SECRET, body, compute_signature("other", body))
        assert not verify_signature(SECRET, body, None)
        assert not verify_signature(SECRET, body, "")


class TestHandler:
    async def test_dispatches_message_events(self, handler, host):
        body = body_for(
            events=[
                {
                    "type": "message",
                    "timestamp": 1700000000000,
                    "source": {"type": "user", "userId": "U1"},
                    "message": {"id": "m1", "type": "text", "text": "hi"},
                },
                {"type": "follow", "source": {"type": "user", "userId": "U2"}},
            ]
        )

        sessions = await handler.handle(body, compute_signature(SECRET, body))

        assert [s.type for s in sessions] == [SessionType.MESSAGE_CREATED, SessionType.FRIEND_ADDED]
        assert sessions[0].self_id == "Ubot"
        assert host.dispatch.await_count == 2

    async def test_bad_signature_is_rejected(self, handler, host):
        body = body_for()
        with pytest.raises(WebhookRejectedError) as exc_info:
            await handler.handle(body, compute_signature("wrong", body))
        assert exc_info.value.status == 403
        host.dispatch.assert_not_awaited()

    async def test_missing_signature_is_rejected(self, handler):
        with pytest.raises(WebhookRejectedError):
            await handler.handle(body_for(), None)

    async def test_unknown_destination_is_rejected(self, handler):
        body = body_for(destination="Uother")
        with pytest.raises(WebhookRejectedError) as exc_info:
            await handler.handle(body, compute_signature(SECRET, body))
        assert exc_info.value.status == 403
        assert exc_info.value.details == {"destination": "Uother"}

    @pytest.mark.parametrize("body", [b"not json", b"[1, 2]"])
    async def test_unreadable_body(self, handler, body):
        with pytest.raises(WebhookRejectedError) as exc_info:
            await handler.handle(body, "sig")
        assert exc_info.value.status == 400

    def test_register_requires_self_id(self, host):
        bot = LineBot(api=AsyncMock(), secret=SECRET, host=host)
        with pytest.raises(ValueError):
            LineWebhookHandler().register(bot)


class TestLineBot:
    async def test_initialize_registers_webhook(self, host):
        api = AsyncMock()
        api.get_bot_info.return_value = {"userId": "Ubot", "displayName": "Bridge"}
        bot = LineBot(api=api, secret=SECRET, host=host)

        await bot.initialize("https://bridge.example/")

        assert bot.self_id == "Ubot"
        api.set_webhook_endpoint.assert_awaited_once_with("https://bridge.example/line")
        host.online.assert_awaited_once_with("line", "Ubot", bot.user)
        assert bot.user.name == "Bridge"

    async def test_initialize_without_self_url(self, host):
        api = AsyncMock()
        api.get_bot_info.return_value = {"userId": "Ubot"}
        bot = LineBot(api=api, secret=SECRET, host=host)

        await bot.initialize()

        api.set_webhook_endpoint.assert_not_awaited()
        host.online.assert_awaited_once()

    async def test_close_reports_offline(self, line_bot, host):
        await line_bot.close()
        host.offline.assert_awaited_once_with("line", "Ubot", "stopped")
        line_bot.api.close.assert_awaited_once()
