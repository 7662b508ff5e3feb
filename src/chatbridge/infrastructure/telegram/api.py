"""Telegram Bot API client."""

from __future__ import annotations

from typing import Any

import aiohttp
import structlog

from chatbridge.core.domain.errors import PlatformApiError
from chatbridge.core.interfaces.platform import BotApiProtocol

DEFAULT_ENDPOINT = "https://api.telegram.org"


class TelegramBotApi(BotApiProtocol):
    """Calls Bot API methods by name.

    JSON bodies go through :meth:`call`, uploads through :meth:`call_form`.
    Every response is unwrapped from ``{"ok": ..., "result": ...}``; a
    failed call raises :class:`PlatformApiError`.
    """

    def __init__(
        self,
        token: str,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = f"{endpoint.rstrip('/')}/bot{token}"
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None
        self._logger = structlog.get_logger(__name__)

    async def call(
        self,
        method: str,
        payload: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        body = {key: value for key, value in (payload or {}).items() if value is not None}
        return await self._post(method, json=body, timeout=timeout)

    async def call_form(self, method: str, form: aiohttp.FormData) -> Any:
        return await self._post(method, data=form)

    async def get_me(self) -> dict[str, Any]:
        return await self.call("getMe")

    async def get_updates(self, *, offset: int | None = None, timeout: int = 0) -> list[dict[str, Any]]:
        # The HTTP timeout has to outlast the long poll.
        return await self.call(
            "getUpdates",
            {"offset": offset or None, "timeout": timeout},
            timeout=timeout + self._timeout,
        )

    async def delete_webhook(self) -> bool:
        return bool(await self.call("deleteWebhook"))

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def _post(self, method: str, *, timeout: float | None = None, **kwargs: Any) -> Any:
        session = await self._get_session()
        if timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)
        try:
            async with session.post(f"{self._base_url}/{method}", **kwargs) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
                status = response.status
        except (TimeoutError, aiohttp.ClientError) as exc:
            self._logger.error("telegram.request_error", method=method, error=str(exc))
            raise PlatformApiError(f"Telegram {method} failed: {exc}", method=method) from exc

        if not isinstance(data, dict) or not data.get("ok") or status >= 400:
            description = data.get("description") if isinstance(data, dict) else None
            error_code = data.get("error_code") if isinstance(data, dict) else None
            self._logger.error(
                "telegram.send_failed" if method.startswith("send") else "telegram.request_failed",
                method=method,
                status=status,
                error_code=error_code,
                description=description,
            )
            raise PlatformApiError(
                f"Telegram {method} failed: {description or f'HTTP {status}'}",
                method=method,
                status=status,
                error_code=error_code,
            )
        return data.get("result")
