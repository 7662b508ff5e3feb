"""Shared error-handling utilities for API routes.

Every route builds its errors with :func:`http_exception` so responses share
the ``ErrorResponse`` payload and the ``X-Chatbridge-Error: 1`` header.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException

from chatbridge.api.schemas.errors import ErrorResponse
from chatbridge.core.domain.errors import ChatbridgeError

ERROR_HEADER = "X-Chatbridge-Error"


def http_exception(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> HTTPException:
    """Build a standardized HTTPException with ErrorResponse payload."""
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(
            code=code, message=message, details=details or None, detail=message
        ).model_dump(exclude_none=True),
        headers={ERROR_HEADER: "1"},
    )


def http_exception_from(exc: ChatbridgeError, *, status_code: int) -> HTTPException:
    """Wrap a domain error, keeping its code, message and details."""
    return http_exception(
        status_code=status_code, code=exc.code, message=exc.message, details=exc.details
    )
