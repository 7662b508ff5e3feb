"""Domain-specific exception types for chatbridge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class ChatbridgeError(Exception):
    """Base exception for chatbridge domain errors."""

    message: str
    code: str = "chatbridge_error"
    details: Dict[str, Any] | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.details is None:
            self.details = {}


class MalformedFrameError(ChatbridgeError):
    """Raised when an inbound gateway frame cannot be decoded.

    The connection survives: the frame is logged and dropped.
    """

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="malformed_frame", details=details)


class TransportFailureError(ChatbridgeError):
    """The transport could not be opened or was closed unexpectedly."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="transport_failure", details=details)


class PlatformApiError(ChatbridgeError):
    """A platform API call was rejected or failed."""

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        status: int | None = None,
        error_code: int | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if method:
            details.setdefault("method", method)
        if status is not None:
            details.setdefault("status", status)
        if error_code is not None:
            details.setdefault("error_code", error_code)
        self.method = method
        self.status = status
        self.error_code = error_code
        super().__init__(message=message, code="platform_api_error", details=details)


class UnsupportedMediaError(ChatbridgeError):
    """No outbound endpoint exists for a media element."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="unsupported_media", details=details)


class AssetFetchError(ChatbridgeError):
    """A media reference could not be resolved into bytes."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="asset_fetch_error", details=details)


class ConfigError(ChatbridgeError):
    """Error raised for configuration failures."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="config_error", details=details)


class WebhookRejectedError(ChatbridgeError):
    """An inbound webhook request was refused.

    ``status`` is the HTTP status the route answers with (403 for an
    unknown destination or a bad signature, 400 for an unreadable body).
    """

    def __init__(
        self, message: str, *, status: int = 403, details: Dict[str, Any] | None = None
    ) -> None:
        self.status = status
        super().__init__(message=message, code="webhook_rejected", details=details)
