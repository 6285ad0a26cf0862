"""
Tests for the card setup HTTP endpoints
"""

from unittest.mock import patch

import stripe


def _intent(intent_id="seti_1Route", client_secret="seti_1Route_secret_abc"):
    return type("SetupIntent", (), {"id": intent_id, "client_secret": client_secret})()


def test_create_setup_intent(client):
    with patch("stripe.SetupIntent.create", return_value=_intent()):
        response = client.post("/api/stripe/setup-intent", json={})

    assert response.status_code == 200
    assert response.json() == {
        "clientSecret": "seti_1Route_secret_abc",
        "setupIntentId": "seti_1Route",
    }


def test_create_setup_intent_upstream_failure_hides_detail(client):
    with patch(
        "stripe.SetupIntent.create",
        side_effect=stripe.StripeError("No such api key: sk_test_dummy"),
    ):
        response = client.post("/api/stripe/setup-intent", json={})

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to create SetupIntent"}
    assert "sk_test" not in response.text


def test_create_setup_intent_without_credentials(unconfigured_client):
    with patch("stripe.SetupIntent.create") as mock_create:
        response = unconfigured_client.post("/api/stripe/setup-intent", json={})

    assert response.status_code == 500
    mock_create.assert_not_called()


def test_webhook_records_payment_method(client, sign, make_event):
    body = make_event(setup_intent_id="seti_hook", payment_method="pm_hook")

    response = client.post(
        "/api/stripe/webhook",
        content=body,
        headers={"stripe-signature": sign(body), "content-type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}

    listing = client.post("/api/stripe/payment-methods").json()
    assert listing["count"] == 1
    [record] = listing["paymentMethods"]
    assert record["setupIntentId"] == "seti_hook"
    assert record["paymentMethodId"] == "pm_hook"
    assert record["status"] == "succeeded"
    assert record["id"].startswith("pmr_")
    assert "createdAt" in record


def test_webhook_tampered_body(client, sign, make_event):
    body = make_event(payment_method="pm_real")
    header = sign(body)
    tampered = body.replace(b"pm_real", b"pm_fake")

    response = client.post(
        "/api/stripe/webhook", content=tampered, headers={"stripe-signature": header}
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Webhook Error: Invalid signature"}
    assert client.post("/api/stripe/payment-methods").json()["count"] == 0


def test_webhook_missing_signature(client, make_event):
    response = client.post("/api/stripe/webhook", content=make_event())

    assert response.status_code == 400
    assert client.post("/api/stripe/payment-methods").json()["count"] == 0


def test_webhook_without_secret_always_rejects(unconfigured_client, sign, make_event):
    body = make_event()
    for header in (sign(body), sign(body, secret=""), "t=1,v1=abc"):
        response = unconfigured_client.post(
            "/api/stripe/webhook", content=body, headers={"stripe-signature": header}
        )
        assert response.status_code == 400

    listing = unconfigured_client.post("/api/stripe/payment-methods").json()
    assert listing == {"paymentMethods": [], "count": 0}


def test_webhook_other_event_type_acknowledged(client, sign, make_event):
    body = make_event(event_type="setup_intent.canceled", status="canceled")

    response = client.post(
        "/api/stripe/webhook", content=body, headers={"stripe-signature": sign(body)}
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert client.post("/api/stripe/payment-methods").json()["count"] == 0


def test_webhook_internal_error_returns_500(client, sign, make_event):
    body = make_event()
    with patch(
        "payments.webhooks.WebhookReceiver.handle", side_effect=RuntimeError("boom")
    ):
        response = client.post(
            "/api/stripe/webhook", content=body, headers={"stripe-signature": sign(body)}
        )

    assert response.status_code == 500
    assert response.json() == {"detail": "Webhook processing failed"}


def test_duplicate_delivery_produces_two_entries(client, sign, make_event):
    body = make_event(event_id="evt_same")
    for _ in range(2):
        response = client.post(
            "/api/stripe/webhook", content=body, headers={"stripe-signature": sign(body)}
        )
        assert response.status_code == 200

    assert client.post("/api/stripe/payment-methods").json()["count"] == 2


def test_duplicate_delivery_deduplicated_when_enabled(dedup_client, sign, make_event):
    body = make_event(event_id="evt_same")
    for _ in range(2):
        response = dedup_client.post(
            "/api/stripe/webhook", content=body, headers={"stripe-signature": sign(body)}
        )
        assert response.status_code == 200

    assert dedup_client.post("/api/stripe/payment-methods").json()["count"] == 1


def test_payment_methods_in_insertion_order(client, sign, make_event):
    for n in range(3):
        body = make_event(event_id=f"evt_{n}", payment_method=f"pm_{n}")
        client.post(
            "/api/stripe/webhook", content=body, headers={"stripe-signature": sign(body)}
        )

    post_listing = client.post("/api/stripe/payment-methods").json()
    get_listing = client.get("/api/stripe/payment-methods").json()

    assert post_listing == get_listing
    assert post_listing["count"] == 3
    assert [r["paymentMethodId"] for r in post_listing["paymentMethods"]] == [
        "pm_0",
        "pm_1",
        "pm_2",
    ]


def test_ledger_is_scoped_to_app_lifetime(client, sign, make_event):
    body = make_event()
    client.post("/api/stripe/webhook", content=body, headers={"stripe-signature": sign(body)})
    assert client.post("/api/stripe/payment-methods").json()["count"] == 1


def test_fresh_app_starts_with_empty_ledger(client):
    assert client.post("/api/stripe/payment-methods").json() == {
        "paymentMethods": [],
        "count": 0,
    }
