"""
API Routes Module

Card setup endpoints:
- SetupIntent creation for the card capture form
- Stripe webhook intake
- Saved payment method listing
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from core.dependencies import get_gateway, get_ledger, get_receiver
from core.metrics import setup_intents_total
from payments.gateway import GatewayError, ProcessorGateway
from payments.ledger import PaymentMethodLedger
from payments.webhooks import WebhookOutcome, WebhookReceiver
from . import schemas

log = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/setup-intent", response_model=schemas.SetupIntentOut)
async def create_setup_intent(gateway: ProcessorGateway = Depends(get_gateway)):
    """Create a SetupIntent and hand its client secret to the browser."""
    try:
        result = await gateway.create_setup_intent()
    except GatewayError:
        setup_intents_total.labels(outcome="failed").inc()
        # Upstream detail stays in the logs
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create SetupIntent",
        )

    setup_intents_total.labels(outcome="created").inc()
    return schemas.SetupIntentOut.model_validate(result)


@router.post("/webhook", response_model=schemas.WebhookAck)
async def stripe_webhook(
    request: Request, receiver: WebhookReceiver = Depends(get_receiver)
):
    """Receive Stripe events. Signature checks need the untouched body bytes."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        outcome = await run_in_threadpool(receiver.handle, payload, signature)
    except Exception:
        log.error("webhook.processing_failed", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        )

    if outcome is WebhookOutcome.REJECTED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook Error: Invalid signature",
        )

    return schemas.WebhookAck(received=True)


def _payment_methods_response(ledger: PaymentMethodLedger) -> schemas.PaymentMethodsOut:
    records = ledger.list()
    return schemas.PaymentMethodsOut(
        payment_methods=[schemas.PaymentMethodOut.model_validate(r) for r in records],
        count=len(records),
    )


@router.post("/payment-methods", response_model=schemas.PaymentMethodsOut)
def list_payment_methods(ledger: PaymentMethodLedger = Depends(get_ledger)):
    """List saved payment methods. Read-only despite the verb."""
    return _payment_methods_response(ledger)


@router.get("/payment-methods", response_model=schemas.PaymentMethodsOut)
def get_payment_methods(ledger: PaymentMethodLedger = Depends(get_ledger)):
    return _payment_methods_response(ledger)
