"""LINE Messaging API client."""

from __future__ import annotations

import json
from typing import Any

import aiohttp
import structlog

from chatbridge.core.domain.errors import PlatformApiError

DEFAULT_ENDPOINT = "https://api.line.me"


class LineBotApi:
    """Bearer-token client for the LINE Messaging API."""

    def __init__(self, token: str, *, endpoint: str = DEFAULT_ENDPOINT) -> None:
        self._token = token
        self._endpoint = endpoint.rstrip("/")
        self._session: aiohttp.ClientSession | None = None
        self._logger = structlog.get_logger(__name__)

    async def get_bot_info(self) -> dict[str, Any]:
        return await self.request("GET", "/v2/bot/info")

    async def set_webhook_endpoint(self, endpoint: str) -> None:
        await self.request("PUT", "/v2/bot/channel/webhook/endpoint", json={"endpoint": endpoint})
        self._logger.info("line.webhook_endpoint_set", endpoint=endpoint)

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        session = await self._get_session()
        try:
            async with session.request(method, f"{self._endpoint}{path}", **kwargs) as response:
                body = await response.text()
                if response.status >= 400:
                    self._logger.error(
                        "line.request_failed",
                        method=method,
                        path=path,
                        status=response.status,
                        response=body[:200],
                    )
                    raise PlatformApiError(
                        f"LINE {method} {path} failed with HTTP {response.status}",
                        method=f"{method} {path}",
                        status=response.status,
                        details={"response": body[:500]},
                    )
                return json.loads(body) if body else {}
        except (TimeoutError, aiohttp.ClientError) as exc:
            raise PlatformApiError(
                f"LINE {method} {path} failed: {exc}", method=f"{method} {path}"
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=10)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"Authorization": f"Bearer {self._token}"},
            )
        return self._session
