"""Telegram long-polling receiver.

Calls ``getUpdates`` in a background task, advances the update offset and
dispatches every new or edited message to the host.

Usage::

    poller = TelegramPoller(bot=bot, poll_timeout=10)
    await poller.start()   # runs in background
    ...
    await poller.stop()
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from chatbridge.core.domain.errors import PlatformApiError
from chatbridge.infrastructure.telegram.adapt import adapt_update
from chatbridge.infrastructure.telegram.bot import TelegramBot

logger = structlog.get_logger(__name__)


class TelegramPoller:
    """Poll Telegram ``getUpdates`` and dispatch messages."""

    def __init__(
        self,
        *,
        bot: TelegramBot,
        poll_timeout: int = 10,
        error_delay: float = 2.0,
    ) -> None:
        self._bot = bot
        self._poll_timeout = poll_timeout
        self._error_delay = error_delay
        self._offset: int = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def offset(self) -> int:
        return self._offset

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background polling task."""
        if self._task is not None:
            return
        # getUpdates is refused while a webhook is registered
        await self._delete_webhook()
        self._task = asyncio.create_task(self._poll_loop(), name="telegram-poller")
        logger.info("telegram_poller.started")

    async def stop(self) -> None:
        """Cancel the background polling task."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("telegram_poller.stopped")

    # ------------------------------------------------------------------
    # Internal polling loop
    # ------------------------------------------------------------------

    async def _delete_webhook(self) -> None:
        try:
            await self._bot.api.delete_webhook()
            logger.info("telegram_poller.webhook_deleted")
        except PlatformApiError as exc:
            logger.warning("telegram_poller.delete_webhook_failed", error=str(exc))

    async def _poll_loop(self) -> None:
        """Continuously poll ``getUpdates`` until cancelled."""
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("telegram_poller.poll_error", error=str(exc))
                await asyncio.sleep(self._error_delay)

    async def poll_once(self) -> int:
        """Fetch and handle one batch of updates. Returns the batch size."""
        updates = await self._bot.api.get_updates(
            offset=self._offset or None, timeout=self._poll_timeout
        )
        for update in updates or []:
            await self.handle_update(update)
        return len(updates or [])

    async def handle_update(self, update: dict[str, Any]) -> None:
        """Process a single Telegram Update object."""
        update_id = update.get("update_id", 0)
        self._offset = max(self._offset, update_id + 1)

        session = adapt_update(update, self_id=self._bot.self_id)
        if session is None:
            logger.debug("telegram_poller.update_skipped", update_id=update_id)
            return
        await self._bot.host.dispatch(session)
