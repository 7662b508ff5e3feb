"""LINE webhook receiver.

Requests are routed to a bot by their ``destination`` (the bot's user id)
and authenticated with the ``X-Line-Signature`` header: the base64
HMAC-SHA256 of the raw body keyed with the channel secret.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from typing import Any

import structlog

from chatbridge.core.domain.errors import WebhookRejectedError
from chatbridge.core.domain.session import ChatSession, UserInfo
from chatbridge.core.interfaces.host import HostProtocol
from chatbridge.infrastructure.line.adapt import PLATFORM, adapt_sessions
from chatbridge.infrastructure.line.api import LineBotApi

logger = structlog.get_logger(__name__)

WEBHOOK_PATH = "/line"


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(secret, body), signature)


class LineBot:
    """A LINE channel bound to a host."""

    platform = PLATFORM

    def __init__(
        self,
        *,
        api: LineBotApi,
        secret: str,
        host: HostProtocol,
        self_id: str | None = None,
    ) -> None:
        self.api = api
        self.secret = secret
        self.host = host
        self.self_id = self_id
        self.user: UserInfo | None = None

    async def initialize(self, self_url: str | None = None) -> None:
        """Resolve the bot id and register the webhook endpoint."""
        info = await self.api.get_bot_info()
        self.self_id = info.get("userId") or self.self_id
        if self.self_id:
            self.user = UserInfo(
                id=self.self_id,
                name=info.get("displayName"),
                avatar=info.get("pictureUrl"),
                is_bot=True,
            )
        if self_url:
            await self.api.set_webhook_endpoint(self_url.rstrip("/") + WEBHOOK_PATH)
        else:
            logger.warning("line.webhook_not_registered", reason="no self_url configured")
        await self.host.online(self.platform, self.self_id, self.user)

    async def close(self) -> None:
        await self.host.offline(self.platform, self.self_id, "stopped")
        await self.api.close()


class LineWebhookHandler:
    """Authenticates webhook requests and dispatches their events."""

    def __init__(self) -> None:
        self._bots: dict[str, LineBot] = {}

    def register(self, bot: LineBot) -> None:
        if not bot.self_id:
            raise ValueError("LINE bot has no self_id; call initialize() first")
        self._bots[bot.self_id] = bot

    @property
    def bots(self) -> list[LineBot]:
        return list(self._bots.values())

    async def handle(self, body: bytes, signature: str | None) -> list[ChatSession]:
        """Process one webhook request.

        Raises:
            WebhookRejectedError: 400 for an unreadable body, 403 for an
                unknown destination or a signature mismatch.
        """
        try:
            parsed: Any = json.loads(body or b"{}")
        except ValueError as exc:
            raise WebhookRejectedError("Webhook body is not JSON", status=400) from exc
        if not isinstance(parsed, dict):
            raise WebhookRejectedError("Webhook body is not an object", status=400)

        destination = parsed.get("destination")
        bot = self._bots.get(destination) if isinstance(destination, str) else None
        if bot is None:
            logger.warning("line.webhook_unknown_destination", destination=destination)
            raise WebhookRejectedError(
                "Unknown webhook destination", details={"destination": destination}
            )

        if not verify_signature(bot.secret, body, signature):
            logger.warning("line.webhook_bad_signature", destination=destination)
            raise WebhookRejectedError("Webhook signature mismatch")

        dispatched: list[ChatSession] = []
        for event in parsed.get("events") or []:
            if not isinstance(event, dict):
                continue
            for session in adapt_sessions(event, bot.self_id):
                await bot.host.dispatch(session)
                dispatched.append(session)
        logger.debug("line.webhook_handled", destination=destination, sessions=len(dispatched))
        return dispatched
