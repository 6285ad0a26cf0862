"""Test the metrics module."""

from unittest.mock import patch, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.metrics import (
    init_metrics,
    payment_methods_recorded_total,
    setup_intents_total,
    webhook_events_total,
)


def test_setup_intent_counter_with_labels():
    created = setup_intents_total.labels(outcome="created")
    initial = created._value.get()
    created.inc()
    assert created._value.get() == initial + 1


def test_webhook_counters_follow_deliveries(client, sign, make_event):
    recorded = webhook_events_total.labels(outcome="recorded")
    rejected = webhook_events_total.labels(outcome="rejected")
    initial_recorded = recorded._value.get()
    initial_rejected = rejected._value.get()
    initial_total = payment_methods_recorded_total._value.get()

    body = make_event()
    client.post("/api/stripe/webhook", content=body, headers={"stripe-signature": sign(body)})
    client.post("/api/stripe/webhook", content=body, headers={"stripe-signature": "t=1,v1=00"})

    assert recorded._value.get() == initial_recorded + 1
    assert rejected._value.get() == initial_rejected + 1
    assert payment_methods_recorded_total._value.get() == initial_total + 1


def test_init_metrics_with_app():
    """Test metrics initialization with FastAPI app."""
    mock_app = MagicMock()

    with patch("core.metrics.Instrumentator") as mock_instrumentator:
        mock_inst = MagicMock()
        mock_instrumentator.return_value = mock_inst
        mock_inst.instrument.return_value = mock_inst
        mock_inst.expose.return_value = mock_inst

        result = init_metrics(mock_app)

        mock_instrumentator.assert_called_once()
        mock_inst.instrument.assert_called_with(mock_app)
        mock_inst.expose.assert_called_with(
            mock_app, endpoint="/metrics", include_in_schema=False
        )
        assert result == mock_inst


def test_metrics_endpoint_integration(client):
    """Test that metrics endpoint is available and returns Prometheus format."""
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")
    assert "card_setup_webhook_events_total" in response.text


def test_metrics_can_be_disabled():
    app = FastAPI()

    with patch("core.metrics.Instrumentator") as mock_instrumentator:
        assert init_metrics(app, enabled=False) is None

    mock_instrumentator.assert_not_called()
    with TestClient(app) as client:
        assert client.get("/metrics").status_code == 404
