"""
Client-side Stripe access for the card capture form.

Everything here runs on the customer's side of the flow and authenticates with
the publishable key only. Card data goes straight to Stripe; the backend relay
never sees it.
"""

from dataclasses import dataclass
from typing import Any

import requests
import structlog

from payments.gateway import setup_intent_id_from_client_secret

log = structlog.get_logger(__name__)

STRIPE_API_BASE = "https://api.stripe.com"
DEFAULT_TIMEOUT = 30


class CardSetupError(Exception):
    pass


@dataclass(frozen=True)
class ProcessorError:
    message: str
    type: str | None = None
    code: str | None = None


@dataclass(frozen=True)
class ConfirmResult:
    setup_intent: dict[str, Any] | None = None
    error: ProcessorError | None = None


@dataclass
class CardElement:
    """
    Locally entered card details, the stand-in for Stripe's hosted card input.

    Either raw card fields or a `payment_method` token (e.g. a test token such
    as "pm_card_visa") may be supplied.
    """

    number: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None
    cvc: str | None = None
    payment_method: str | None = None

    def __repr__(self) -> str:
        last4 = self.number[-4:] if self.number else None
        return f"<CardElement(last4={last4}, payment_method={self.payment_method})>"

    @property
    def is_complete(self) -> bool:
        if self.payment_method:
            return True
        return bool(self.number and self.exp_month and self.exp_year and self.cvc)

    def confirm_params(self, billing_name: str | None = None) -> dict[str, Any]:
        """Form-encoded parameters for the confirm call."""
        if self.payment_method:
            return {"payment_method": self.payment_method}
        if not self.is_complete:
            raise CardSetupError("Your card details are incomplete")

        params = {
            "payment_method_data[type]": "card",
            "payment_method_data[card][number]": self.number.replace(" ", ""),
            "payment_method_data[card][exp_month]": self.exp_month,
            "payment_method_data[card][exp_year]": self.exp_year,
            "payment_method_data[card][cvc]": self.cvc,
        }
        if billing_name:
            params["payment_method_data[billing_details][name]"] = billing_name
        return params

    def clear(self) -> None:
        self.number = None
        self.exp_month = None
        self.exp_year = None
        self.cvc = None
        self.payment_method = None


class StripeJsClient:
    """Confirms SetupIntents the way Stripe.js does, with a publishable key."""

    def __init__(
        self,
        publishable_key: str,
        api_base: str = STRIPE_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        if not publishable_key:
            raise CardSetupError("publishable key is required")
        if not publishable_key.startswith("pk_"):
            # Secret keys must never be shipped to the client side
            raise CardSetupError("client must be initialized with a publishable key")
        self.publishable_key = publishable_key
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def confirm_card_setup(
        self, client_secret: str, card: CardElement, billing_name: str | None = None
    ) -> ConfirmResult:
        intent_id = setup_intent_id_from_client_secret(client_secret)
        data = {"client_secret": client_secret, **card.confirm_params(billing_name)}

        r = self.session.post(
            f"{self.api_base}/v1/setup_intents/{intent_id}/confirm",
            data=data,
            headers={"Authorization": f"Bearer {self.publishable_key}"},
            timeout=self.timeout,
        )

        try:
            body = r.json()
        except ValueError:
            raise CardSetupError(f"Unreadable response from Stripe (HTTP {r.status_code})")

        if isinstance(body, dict) and "error" in body:
            err = body["error"] or {}
            log.warning(
                "card_setup.confirm_failed",
                setup_intent_id=intent_id,
                error_type=err.get("type"),
                error_code=err.get("code"),
            )
            return ConfirmResult(
                error=ProcessorError(
                    message=err.get("message") or "Card setup failed",
                    type=err.get("type"),
                    code=err.get("code"),
                )
            )

        if not r.ok:
            raise CardSetupError(f"Stripe returned HTTP {r.status_code}")

        return ConfirmResult(setup_intent=body)
