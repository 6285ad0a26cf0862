"""Test configuration and fixtures."""

import hashlib
import hmac
import json
import os
import time

import pytest
from fastapi.testclient import TestClient

from core.settings import Settings
from main import app

TEST_WEBHOOK_SECRET = "whsec_test_dummy"


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)

    os.environ.update(
        {
            "STRIPE_SECRET_KEY": "sk_test_dummy",
            "STRIPE_WEBHOOK_SECRET": TEST_WEBHOOK_SECRET,
            "LEDGER_BACKEND": "memory",
            "WEBHOOK_DEDUPLICATE_EVENTS": "false",
            "APP_NAME": "Test Card Setup Relay",
            "ENVIRONMENT": "test",
            "DISABLE_TRACING": "1",
        }
    )

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_settings():
    return Settings(
        STRIPE_SECRET_KEY="sk_test_mock",
        STRIPE_WEBHOOK_SECRET=TEST_WEBHOOK_SECRET,
        LEDGER_BACKEND="memory",
        ENVIRONMENT="test",
    )


def _signature_header(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def sign():
    """Build a Stripe-Signature header for a payload, the way Stripe does."""

    def _sign(payload: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp=None):
        return _signature_header(payload, secret, timestamp)

    return _sign


@pytest.fixture
def make_event():
    """Serialize a Stripe event envelope to the exact bytes Stripe would send."""

    def _make_event(
        event_type: str = "setup_intent.succeeded",
        event_id: str = "evt_test_001",
        setup_intent_id: str = "seti_test_123",
        payment_method="pm_test_456",
        status: str = "succeeded",
    ) -> bytes:
        event = {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": setup_intent_id,
                    "object": "setup_intent",
                    "payment_method": payment_method,
                    "status": status,
                    "usage": "off_session",
                }
            },
        }
        return json.dumps(event).encode()

    return _make_event


@pytest.fixture
def client():
    """Test client; the lifespan builds services from the test environment."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def dedup_client():
    os.environ["WEBHOOK_DEDUPLICATE_EVENTS"] = "true"
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unconfigured_client():
    """Client started without any Stripe credentials."""
    os.environ["STRIPE_SECRET_KEY"] = ""
    os.environ["STRIPE_WEBHOOK_SECRET"] = ""
    with TestClient(app) as test_client:
        yield test_client
