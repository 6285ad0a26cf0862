"""
Card Capture Form

Drives the two-phase card setup from the customer's side:

1. ask the backend relay for a SetupIntent client secret
2. confirm that SetupIntent directly with Stripe using the locally entered card

The outcome reported here is informational only. The backend records a
payment method when Stripe's signed webhook arrives, never because this form
said it succeeded.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import requests
import structlog

from client.processor import CardElement, CardSetupError, StripeJsClient

log = structlog.get_logger(__name__)

DEFAULT_BILLING_NAME = "Test Customer"


class FormState(str, Enum):
    IDLE = "idle"
    CREATING_INTENT = "creating_intent"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FormBusyError(Exception):
    """Raised when submit() is called while an attempt is already in flight."""


@dataclass(frozen=True)
class FormMessage:
    kind: str  # success | error | info
    text: str


class BackendClient:
    """Talks to the relay's SetupIntent endpoint."""

    def __init__(
        self,
        base_url: str,
        prefix: str = "/api/stripe",
        timeout: float = 30,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.prefix = prefix
        self.timeout = timeout
        self.session = session or requests.Session()

    def create_setup_intent(self) -> tuple[str, str]:
        """Return (client_secret, setup_intent_id)."""
        r = self.session.post(
            f"{self.base_url}{self.prefix}/setup-intent",
            json={},
            timeout=self.timeout,
        )
        if not r.ok:
            raise CardSetupError("Failed to create SetupIntent on backend")

        body = r.json()
        client_secret = body.get("clientSecret")
        setup_intent_id = body.get("setupIntentId")
        if not client_secret or not setup_intent_id:
            raise CardSetupError("Backend returned an incomplete SetupIntent")
        return client_secret, setup_intent_id


class CardCaptureForm:
    def __init__(
        self,
        backend: BackendClient,
        processor: Optional[StripeJsClient],
        card: Optional[CardElement],
        on_success: Callable[[str], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        billing_name: str = DEFAULT_BILLING_NAME,
    ):
        """
        Args:
            backend: client for the relay's SetupIntent endpoint
            processor: Stripe client; None while it has not loaded
            card: the card input; None when it is not mounted
            on_success: called with the SetupIntent id once Stripe reports success
            on_error: called with a human-readable message on any failure
            billing_name: name sent with the card's billing details
        """
        self.backend = backend
        self.processor = processor
        self.card = card
        self.on_success = on_success
        self.on_error = on_error
        self.billing_name = billing_name

        self.state = FormState.IDLE
        self.message: FormMessage | None = None
        self.setup_intent_id: str | None = None
        self._lock = threading.Lock()
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def submit(self) -> FormState:
        """Run one capture attempt to completion and return the final state."""
        with self._lock:
            if self._busy:
                raise FormBusyError("a card setup attempt is already in progress")
            self._busy = True

        try:
            return self._run()
        finally:
            self._busy = False

    def _run(self) -> FormState:
        self.message = None
        self.setup_intent_id = None

        if self.processor is None:
            return self._fail("Stripe has not loaded yet. Please try again.")

        try:
            self.state = FormState.CREATING_INTENT
            client_secret, setup_intent_id = self.backend.create_setup_intent()
            log.info("card_setup.intent_created", setup_intent_id=setup_intent_id)

            self.state = FormState.CONFIRMING
            if self.card is None:
                raise CardSetupError("Card element not found")
            if not self.card.is_complete:
                raise CardSetupError("Your card details are incomplete")

            result = self.processor.confirm_card_setup(
                client_secret, self.card, billing_name=self.billing_name
            )

            if result.error is not None:
                log.warning("card_setup.declined", message=result.error.message)
                return self._fail(
                    f"Card setup failed: {result.error.message}",
                    callback_message=result.error.message or "Card setup failed",
                )

            intent = result.setup_intent or {}
            status = intent.get("status")
            if status != "succeeded":
                raise CardSetupError(f"Unexpected SetupIntent status: {status}")

            self.state = FormState.SUCCEEDED
            self.setup_intent_id = intent.get("id") or setup_intent_id
            self.message = FormMessage(
                "success",
                f"Card successfully linked! SetupIntent ID: {self.setup_intent_id}",
            )
            log.info("card_setup.succeeded", setup_intent_id=self.setup_intent_id)
            if self.on_success:
                self.on_success(self.setup_intent_id)
            self.card.clear()
            return self.state
        except (CardSetupError, requests.RequestException, ValueError) as e:
            return self._fail(str(e) or "An unknown error occurred")

    def _fail(self, text: str, callback_message: str | None = None) -> FormState:
        self.state = FormState.FAILED
        self.message = FormMessage("error", text)
        log.error("card_setup.failed", message=text)
        if self.on_error:
            self.on_error(callback_message or text)
        return self.state
