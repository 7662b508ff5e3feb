import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse

from chatbridge import __version__
from chatbridge.api.dependencies import get_bridge
from chatbridge.api.errors import ERROR_HEADER
from chatbridge.api.routes import health, line
from chatbridge.application.bridge import Bridge


def configure_logging(level_name: Optional[str] = None) -> int:
    """Configure stdlib logging and structlog with the same level."""
    level_name = (level_name or os.getenv("LOGLEVEL", "INFO")).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )
    return log_level


logger = structlog.get_logger()


async def chatbridge_http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Return standardized error responses for chatbridge exceptions."""
    if exc.headers and exc.headers.get(ERROR_HEADER) == "1" and isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return await http_exception_handler(request, exc)


def create_app(bridge: Optional[Bridge] = None, *, manage_bridge: bool = True) -> FastAPI:
    """Create the webhook/health application.

    Args:
        bridge: Bridge to serve. Defaults to the one built from configuration.
        manage_bridge: Start the bridge on startup and stop it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = bridge or get_bridge()
        logger.info("fastapi.startup", platforms=active.config.platforms)
        if manage_bridge:
            await active.start()
        yield
        if manage_bridge:
            await active.stop()
        logger.info("fastapi.shutdown")

    app = FastAPI(
        title="Chatbridge",
        description="Chat platform protocol bridge",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(HTTPException, chatbridge_http_exception_handler)

    if bridge is not None:
        app.dependency_overrides[get_bridge] = lambda: bridge

    app.include_router(line.router, tags=["line"])
    app.include_router(health.router, tags=["health"])
    return app
