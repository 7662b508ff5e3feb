"""Discord REST calls needed by the gateway client."""

from __future__ import annotations

from typing import Any

import aiohttp
import structlog

from chatbridge.core.domain.errors import PlatformApiError

DEFAULT_API_ENDPOINT = "https://discord.com/api/v10"


class DiscordApi:
    """Minimal Discord REST client (``Authorization: Bot <token>``)."""

    def __init__(self, token: str, *, endpoint: str = DEFAULT_API_ENDPOINT) -> None:
        self._token = token
        self._endpoint = endpoint.rstrip("/")
        self._session: aiohttp.ClientSession | None = None
        self._logger = structlog.get_logger(__name__)

    async def get_gateway_bot(self) -> dict[str, Any]:
        """``GET /gateway/bot``: gateway URL plus shard/session limits."""
        return await self.request("GET", "/gateway/bot")

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        session = await self._get_session()
        url = f"{self._endpoint}{path}"
        try:
            async with session.request(method, url, **kwargs) as response:
                if response.status >= 400:
                    body = await response.text()
                    self._logger.error(
                        "discord.request_failed",
                        method=method,
                        path=path,
                        status=response.status,
                        response=body[:200],
                    )
                    raise PlatformApiError(
                        f"Discord {method} {path} failed with HTTP {response.status}",
                        method=f"{method} {path}",
                        status=response.status,
                        details={"response": body[:500]},
                    )
                return await response.json()
        except (TimeoutError, aiohttp.ClientError) as exc:
            raise PlatformApiError(
                f"Discord {method} {path} failed: {exc}", method=f"{method} {path}"
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
                headers={"Authorization": f"Bot {self._token}"},
            )
        return self._session
