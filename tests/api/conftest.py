"""Fixtures for HTTP-level tests against the fully wired application."""

from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from itineraries.app import create_app, initialize_services
from itineraries.config import Settings


@pytest.fixture
def webhook_secret() -> str:
    return "whsec_test_secret"


@pytest.fixture
def services(tmp_path: Path, webhook_secret: str) -> dict[str, Any]:
    settings = Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_path=tmp_path / "itineraries.db",
        audit_db_path=tmp_path / "audit.db",
        booking_webhook_secret=SecretStr(webhook_secret),
    )
    return initialize_services(settings)


@pytest.fixture
def client(services: dict[str, Any]) -> Iterator[TestClient]:
    with TestClient(create_app(services)) as test_client:
        yield test_client


@pytest.fixture
def send_booking_event(
    client: TestClient, webhook_secret: str
) -> Callable[..., Any]:
    """POST a correctly signed booking event envelope."""

    def _send(event_type: str, **payload: Any) -> Any:
        body = json.dumps({"type": event_type, "payload": payload}).encode()
        signature = hmac.new(webhook_secret.encode(), body, hashlib.sha256).hexdigest()
        return client.post(
            "/webhooks/booking-events",
            content=body,
            headers={"X-Signature": signature, "Content-Type": "application/json"},
        )

    return _send
