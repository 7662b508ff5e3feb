"""Tests for the LINE webhook route."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from chatbridge.api.server import create_app
from chatbridge.infrastructure.line.webhook import LineBot, LineWebhookHandler, compute_signature

SECRET = "s3cret"


@pytest.fixture
def host() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def client(host) -> TestClient:
    handler = LineWebhookHandler()
    handler.register(LineBot(api=AsyncMock(), secret=SECRET, host=host, self_id="Ubot"))
    bridge = MagicMock()
    bridge.components.line_webhook = handler
    return TestClient(create_app(bridge, manage_bridge=False))


def post(client: TestClient, payload: dict, signature: str | None = "auto"):
    body = json.dumps(payload).encode()
    headers = {"Content-Type": "application/json"}
    if signature == "auto":
        signature = compute_signature(SECRET, body)
    if signature is not None:
        headers["X-Line-Signature"] = signature
    return client.post("/line", content=body, headers=headers)


def test_accepts_signed_request(client, host):
    payload = {
        "destination": "Ubot",
        "events": [
            {
                "type": "message",
                "source": {"userId": "U1"},
                "message": {"id": "m1", "type": "text", "text": "hi"},
            }
        ],
    }

    response = post(client, payload)

    assert response.status_code == 200
    assert response.text == "ok"
    host.dispatch.assert_awaited_once()


def test_rejects_bad_signature(client, host):
    response = post(client, {"destination": "Ubot", "events": []}, signature="forged")

    assert response.status_code == 403
    assert response.headers["X-Chatbridge-Error"] == "1"
    assert response.json()["code"] == "webhook_rejected"
    host.dispatch.assert_not_awaited()


def test_rejects_missing_signature(client):
    response = post(client, {"destination": "Ubot", "events": []}, signature=None)
    assert response.status_code == 403


def test_rejects_unknown_destination(client):
    response = post(client, {"destination": "Unobody", "events": []})

    assert response.status_code == 403
    assert response.json()["details"] == {"destination": "Unobody"}


def test_rejects_non_json_body(client):
    response = client.post("/line", content=b"garbage", headers={"X-Line-Signature": "x"})
    assert response.status_code == 400
    assert response.json()["message"] == "Webhook body is not JSON"
