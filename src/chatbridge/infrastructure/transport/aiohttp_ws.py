"""WebSocket transport on top of ``aiohttp``."""

from __future__ import annotations

from collections.abc import AsyncIterator

import aiohttp
import structlog

from chatbridge.core.domain.errors import TransportFailureError
from chatbridge.core.interfaces.transport import TransportProtocol, TransportFactoryProtocol

logger = structlog.get_logger(__name__)


class AiohttpWebSocketTransport(TransportProtocol):
    """Adapts an ``aiohttp`` client WebSocket to :class:`TransportProtocol`."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse, url: str) -> None:
        self._ws = ws
        self.url = url

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def __aiter__(self) -> AsyncIterator[str | bytes]:
        async for msg in self._ws:
            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise TransportFailureError(
                    f"WebSocket error: {self._ws.exception()}", details={"url": self.url}
                )
        logger.debug("ws.closed_by_peer", url=self.url, close_code=self._ws.close_code)

    async def send(self, data: str) -> None:
        if self._ws.closed:
            raise TransportFailureError("WebSocket is closed", details={"url": self.url})
        await self._ws.send_str(data)

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()

    @property
    def close_code(self) -> int | None:
        return self._ws.close_code


class AiohttpTransportFactory(TransportFactoryProtocol):
    """Opens WebSocket connections with a shared, lazily created session."""

    def __init__(self, *, heartbeat: float | None = None, timeout: float = 30.0) -> None:
        self._session: aiohttp.ClientSession | None = None
        self._heartbeat = heartbeat
        self._timeout = timeout

    async def connect(self, url: str) -> AiohttpWebSocketTransport:
        session = await self._get_session()
        try:
            ws = await session.ws_connect(url, heartbeat=self._heartbeat)
        except (TimeoutError, aiohttp.ClientError) as exc:
            raise TransportFailureError(
                f"Cannot open WebSocket: {exc}", details={"url": url}
            ) from exc
        logger.debug("ws.connected", url=url)
        return AiohttpWebSocketTransport(ws, url)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=None, connect=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session
