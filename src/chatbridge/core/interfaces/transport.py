"""Protocol definitions for duplex frame transports."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol


class TransportProtocol(Protocol):
    """An open duplex connection carrying text frames."""

    @property
    def closed(self) -> bool:
        """Whether the connection is closed."""
        ...

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        """Yield inbound frames until the connection closes."""
        ...

    async def send(self, data: str) -> None:
        """Send one text frame."""
        ...

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        ...


class TransportFactoryProtocol(Protocol):
    """Opens transports to a URL."""

    async def connect(self, url: str) -> TransportProtocol:
        """Open a connection.

        Raises:
            TransportFailureError: If the connection cannot be established.
        """
        ...
