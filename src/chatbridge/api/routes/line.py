"""LINE webhook route."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from chatbridge.api.dependencies import get_line_webhook
from chatbridge.api.errors import http_exception_from
from chatbridge.api.schemas.errors import ErrorResponse
from chatbridge.core.domain.errors import WebhookRejectedError
from chatbridge.infrastructure.line.webhook import WEBHOOK_PATH, LineWebhookHandler

router = APIRouter()


@router.post(
    WEBHOOK_PATH,
    response_class=PlainTextResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def line_webhook(
    request: Request,
    x_line_signature: str | None = Header(default=None),
    handler: LineWebhookHandler = Depends(get_line_webhook),
) -> str:
    """Receive LINE events; the body is authenticated before parsing."""
    body = await request.body()
    try:
        await handler.handle(body, x_line_signature)
    except WebhookRejectedError as exc:
        raise http_exception_from(exc, status_code=exc.status) from exc
    return "ok"
