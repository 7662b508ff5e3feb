"""Resolve media references into bytes for upload.

Supported references:
- ``http://`` / ``https://``: downloaded with ``aiohttp``
- ``data:<mime>;base64,<payload>``
- ``base64://<payload>``
- ``file://<path>``: read with ``aiofiles``
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
import posixpath
from pathlib import Path
from urllib.parse import unquote, urlparse

import aiofiles
import aiohttp
import structlog

from chatbridge.core.domain.errors import AssetFetchError
from chatbridge.core.interfaces.platform import AssetFetcherProtocol

logger = structlog.get_logger(__name__)

DEFAULT_FILENAME = "file"

# Leading bytes of formats whose MIME type decides the upload endpoint.
_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"RIFF", "image/webp"),
)


def sniff_mime(data: bytes) -> str | None:
    for signature, mime in _SIGNATURES:
        if data.startswith(signature):
            if mime == "image/webp" and data[8:12] != b"WEBP":
                continue
            return mime
    return None


def _filename_for(mime: str | None) -> str:
    extension = mimetypes.guess_extension(mime) if mime else None
    return f"{DEFAULT_FILENAME}{extension or ''}"


def _b64decode(payload: str, url: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise AssetFetchError(f"Invalid base64 payload: {exc}", details={"url": url[:64]}) from exc


class AssetFetcher(AssetFetcherProtocol):
    """Fetches media for outbound calls."""

    def __init__(self, *, timeout: float = 30.0) -> None:
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    async def fetch(self, url: str) -> tuple[str, bytes, str | None]:
        scheme = url.split(":", 1)[0].lower() if ":" in url else ""
        if scheme in ("http", "https"):
            return await self._fetch_http(url)
        if scheme == "data":
            return self._decode_data_url(url)
        if scheme == "base64":
            data = _b64decode(url[len("base64://") :], url)
            mime = sniff_mime(data)
            return _filename_for(mime), data, mime
        if scheme == "file":
            return await self._read_file(url)
        raise AssetFetchError(f"Unsupported media reference: {url[:64]}", details={"url": url[:64]})

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def _fetch_http(self, url: str) -> tuple[str, bytes, str | None]:
        session = await self._get_session()
        try:
            async with session.get(url) as response:
                if response.status >= 400:
                    raise AssetFetchError(
                        f"Fetching {url} failed with HTTP {response.status}",
                        details={"url": url, "status": response.status},
                    )
                data = await response.read()
                mime = response.content_type if response.content_type != "application/octet-stream" else None
        except (TimeoutError, aiohttp.ClientError) as exc:
            raise AssetFetchError(f"Fetching {url} failed: {exc}", details={"url": url}) from exc

        mime = mime or sniff_mime(data)
        name = posixpath.basename(unquote(urlparse(url).path)) or _filename_for(mime)
        logger.debug("asset.fetched", url=url, size=len(data), mime=mime)
        return name, data, mime

    def _decode_data_url(self, url: str) -> tuple[str, bytes, str | None]:
        header, sep, payload = url[len("data:") :].partition(",")
        if not sep or not header.endswith(";base64"):
            raise AssetFetchError("Only base64 data URLs are supported", details={"url": url[:64]})
        mime = header[: -len(";base64")] or None
        data = _b64decode(payload, url)
        return _filename_for(mime), data, mime or sniff_mime(data)

    async def _read_file(self, url: str) -> tuple[str, bytes, str | None]:
        path = Path(unquote(urlparse(url).path))
        try:
            async with aiofiles.open(path, "rb") as handle:
                data = await handle.read()
        except OSError as exc:
            raise AssetFetchError(f"Cannot read {path}: {exc}", details={"path": str(path)}) from exc
        mime = mimetypes.guess_type(path.name)[0] or sniff_mime(data)
        return path.name, data, mime
