"""Shared fixtures for the webinar relay tests."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest
import requests

from config import Settings

SECRET = "test-secret-token"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        zoom_webhook_secret_token=SECRET,
        zoom_account_id="acct-123",
        zoom_client_id="client-id",
        zoom_client_secret="client-secret",
        n8n_webhook_url="https://n8n.example.com/webhook/ended",
        n8n_start_webhook_url="https://n8n.example.com/webhook/started",
        zoom_api_base_url="https://api.zoom.test/v2",
        zoom_oauth_url="https://zoom.test/oauth/token",
    )


def sign(body: bytes, timestamp: str = "1700000000", secret: str = SECRET) -> dict[str, str]:
    """Headers Zoom would send for `body`."""
    message = f"v0:{timestamp}:{body.decode('utf-8')}"
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()
    return {
        "x-zm-request-timestamp": timestamp,
        "x-zm-signature": f"v0={digest}",
        "content-type": "application/json",
    }


@pytest.fixture
def signed() -> Callable[[dict[str, Any]], tuple[bytes, dict[str, str]]]:
    def _signed(event: dict[str, Any]) -> tuple[bytes, dict[str, str]]:
        body = json.dumps(event).encode("utf-8")
        return body, sign(body)

    return _signed


def make_response(status_code: int = 200, body: Any = None) -> MagicMock:
    """A stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    response.text = json.dumps(body) if body is not None else ""
    response.content = response.text.encode("utf-8")
    response.headers = {"Content-Type": "application/json"}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


def ended_event(webinar_id: int = 987654321) -> dict[str, Any]:
    return {
        "event": "webinar.ended",
        "event_ts": 1700003600000,
        "payload": {
            "account_id": "acct-123",
            "object": {
                "id": webinar_id,
                "uuid": "abc==",
                "host_id": "host-1",
                "topic": "Quarterly product update",
                "start_time": "2024-01-10T15:00:00Z",
                "end_time": "2024-01-10T16:00:00Z",
                "duration": 60,
                "timezone": "America/New_York",
            },
        },
    }
