"""
Stripe Processor Gateway

This module wraps the Stripe SDK for the card setup flow:
- Creating SetupIntents configured for off-session card reuse
- Verifying webhook signatures against the signing secret

Verification never raises; callers get an explicit WebhookVerified or
WebhookRejected result.
"""

import json
from dataclasses import dataclass
from typing import Any, Union

import stripe
import structlog
from starlette.concurrency import run_in_threadpool

from core.logging import BusinessEvents
from core.settings import Settings

log = structlog.get_logger(__name__)

CLIENT_SECRET_MARKER = "_secret_"


class GatewayError(Exception):
    pass


@dataclass(frozen=True)
class SetupIntentResult:
    client_secret: str
    setup_intent_id: str


@dataclass(frozen=True)
class WebhookVerified:
    event: dict[str, Any]

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class WebhookRejected:
    reason: str

    @property
    def ok(self) -> bool:
        return False


VerificationResult = Union[WebhookVerified, WebhookRejected]


def setup_intent_id_from_client_secret(client_secret: str) -> str:
    """Return the SetupIntent id embedded in a client secret (seti_X_secret_Y -> seti_X)."""
    intent_id, marker, rest = client_secret.partition(CLIENT_SECRET_MARKER)
    if not marker or not intent_id or not rest:
        raise ValueError("unrecognized client secret format")
    return intent_id


class ProcessorGateway:
    def __init__(self, settings: Settings):
        self.api_key = settings.STRIPE_SECRET_KEY
        self.api_version = settings.STRIPE_API_VERSION
        self.webhook_secret = settings.STRIPE_WEBHOOK_SECRET
        self.tolerance = settings.WEBHOOK_TOLERANCE_SECONDS

        if not self.api_key:
            log.warning(BusinessEvents.CONFIG_MISSING, setting="STRIPE_SECRET_KEY")
        if not self.webhook_secret:
            log.warning(BusinessEvents.CONFIG_MISSING, setting="STRIPE_WEBHOOK_SECRET")

    def _create_setup_intent_sync(self):
        return stripe.SetupIntent.create(
            payment_method_types=["card"],
            usage="off_session",
            api_key=self.api_key,
            stripe_version=self.api_version,
        )

    async def create_setup_intent(self) -> SetupIntentResult:
        """
        Create a SetupIntent for collecting card information.

        Returns:
            SetupIntentResult with the client secret handed to the browser

        Raises:
            GatewayError: credential missing, Stripe call failed, or the
                response is not a usable SetupIntent
        """
        if not self.api_key:
            raise GatewayError("Stripe secret key is not configured")

        try:
            intent = await run_in_threadpool(self._create_setup_intent_sync)
        except stripe.StripeError as e:
            log.error(BusinessEvents.SETUP_INTENT_FAILED, error=str(e))
            raise GatewayError(str(e)) from e
        except Exception as e:
            log.error(BusinessEvents.SETUP_INTENT_FAILED, error=str(e))
            raise GatewayError(str(e)) from e

        intent_id = intent.id
        client_secret = intent.client_secret
        if not intent_id or not client_secret:
            log.error(
                BusinessEvents.SETUP_INTENT_FAILED,
                setup_intent_id=intent_id,
                error="response missing client secret",
            )
            raise GatewayError("SetupIntent response missing client secret")

        try:
            embedded_id = setup_intent_id_from_client_secret(client_secret)
        except ValueError:
            embedded_id = None
        if embedded_id != intent_id:
            log.error(
                BusinessEvents.SETUP_INTENT_FAILED,
                setup_intent_id=intent_id,
                error="client secret does not belong to setup intent",
            )
            raise GatewayError("client secret does not match SetupIntent id")

        log.info(BusinessEvents.SETUP_INTENT_CREATED, setup_intent_id=intent_id)
        return SetupIntentResult(client_secret=client_secret, setup_intent_id=intent_id)

    def verify_webhook_signature(
        self, raw_body: bytes, signature: str | None
    ) -> VerificationResult:
        """Check the Stripe-Signature header against the exact request bytes."""
        if not self.webhook_secret:
            log.warning(BusinessEvents.WEBHOOK_REJECTED, reason="missing_secret")
            return WebhookRejected("missing_secret")
        if not signature:
            log.warning(BusinessEvents.WEBHOOK_REJECTED, reason="missing_signature")
            return WebhookRejected("missing_signature")

        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            log.warning(BusinessEvents.WEBHOOK_REJECTED, reason="malformed_body")
            return WebhookRejected("malformed_body")

        try:
            stripe.WebhookSignature.verify_header(
                payload, signature, self.webhook_secret, tolerance=self.tolerance
            )
            event = json.loads(payload)
        except stripe.SignatureVerificationError as e:
            log.warning(
                BusinessEvents.WEBHOOK_REJECTED,
                reason="invalid_signature",
                error=str(e),
            )
            return WebhookRejected("invalid_signature")
        except ValueError as e:
            log.warning(
                BusinessEvents.WEBHOOK_REJECTED, reason="malformed_body", error=str(e)
            )
            return WebhookRejected("malformed_body")

        if not isinstance(event, dict):
            log.warning(BusinessEvents.WEBHOOK_REJECTED, reason="malformed_body")
            return WebhookRejected("malformed_body")

        return WebhookVerified(event)
