"""FastAPI dependency injection providers.

The bridge is created once per process with ``lru_cache``; tests replace it
through ``app.dependency_overrides`` or ``get_bridge.cache_clear()``.
"""

from __future__ import annotations

import os
from functools import lru_cache

from fastapi import Depends

from chatbridge.application.bridge import Bridge
from chatbridge.infrastructure.config.loader import load_bridge_config
from chatbridge.infrastructure.line.webhook import LineWebhookHandler


@lru_cache(maxsize=1)
def get_bridge() -> Bridge:
    """Provide the process-wide bridge built from configuration."""
    return Bridge(load_bridge_config(os.getenv("CHATBRIDGE_CONFIG")))


def get_line_webhook(bridge: Bridge = Depends(get_bridge)) -> LineWebhookHandler:
    return bridge.components.line_webhook
