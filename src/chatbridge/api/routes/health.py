from fastapi import APIRouter, Depends
from pydantic import BaseModel

from chatbridge import __version__
from chatbridge.api.dependencies import get_bridge
from chatbridge.application.bridge import Bridge

router = APIRouter()


class BotStatusResponse(BaseModel):
    platform: str
    self_id: str | None = None
    status: str
    reason: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    bots: list[BotStatusResponse] = []


@router.get("/health", response_model=HealthResponse)
async def health_check(bridge: Bridge = Depends(get_bridge)) -> HealthResponse:
    """Liveness check with the connection status of every bot."""
    bots = [
        BotStatusResponse(
            platform=login.platform,
            self_id=login.self_id,
            status=login.status.value,
            reason=login.reason,
        )
        for login in bridge.host.logins()
    ]
    return HealthResponse(status="healthy", version=__version__, bots=bots)
