"""Error payload returned by the webhook and health routes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every error raised through ``http_exception``.

    ``code`` is the ``ChatbridgeError.code`` of the failure (for example
    ``webhook_rejected``); ``detail`` mirrors ``message`` for clients that only
    read FastAPI's default field.
    """

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable description")
    details: dict[str, Any] | None = Field(None, description="Error context, e.g. the destination")
    detail: str | None = None
