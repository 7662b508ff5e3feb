"""Protocol definitions for request/response platform APIs."""

from __future__ import annotations

from typing import Any, Protocol


class BotApiProtocol(Protocol):
    """A bot API reachable by method name."""

    async def call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        """Invoke ``method`` with a JSON body and return the result.

        Raises:
            PlatformApiError: If the platform rejects the call.
        """
        ...

    async def call_form(self, method: str, form: Any) -> Any:
        """Invoke ``method`` with a multipart body and return the result."""
        ...


class AssetFetcherProtocol(Protocol):
    """Resolves media references into bytes."""

    async def fetch(self, url: str) -> tuple[str, bytes, str | None]:
        """Return ``(filename, data, mime)`` for ``url``.

        Raises:
            AssetFetchError: If the reference cannot be resolved.
        """
        ...
