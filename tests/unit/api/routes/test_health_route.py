"""Tests for the health endpoint."""

import asyncio
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from chatbridge import __version__
from chatbridge.api.server import create_app
from chatbridge.application.host import BridgeHost


def test_health_lists_bot_status():
    host = BridgeHost()
    asyncio.run(host.online("telegram", "1"))
    asyncio.run(host.offline("discord", "2", "transport closed"))
    bridge = MagicMock()
    bridge.host = host

    response = TestClient(create_app(bridge, manage_bridge=False)).get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["version"] == __version__
    assert {(b["platform"], b["status"]) for b in body["bots"]} == {
        ("telegram", "online"),
        ("discord", "offline"),
    }


def test_health_without_bots():
    bridge = MagicMock()
    bridge.host = BridgeHost()

    response = TestClient(create_app(bridge, manage_bridge=False)).get("/health")

    assert response.json()["bots"] == []
