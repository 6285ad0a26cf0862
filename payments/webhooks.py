"""
Webhook Receiver

Authenticates inbound Stripe deliveries and hands succeeded setup intents to
the ledger. Every verified delivery is acknowledged, even when recording
fails, because Stripe retries anything that is not a 2xx.
"""

import threading
from collections import OrderedDict
from enum import Enum

import structlog

from core.logging import BusinessEvents
from core.metrics import payment_methods_recorded_total, webhook_events_total
from payments.events import (
    IgnoredEvent,
    MalformedEvent,
    SetupIntentSucceeded,
    decode_event,
)
from payments.gateway import ProcessorGateway, WebhookRejected
from payments.ledger import PaymentMethodLedger

log = structlog.get_logger(__name__)

DEFAULT_MAX_SEEN_EVENTS = 10_000


class WebhookOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class WebhookReceiver:
    def __init__(
        self,
        gateway: ProcessorGateway,
        ledger: PaymentMethodLedger,
        deduplicate: bool = False,
        max_seen_events: int = DEFAULT_MAX_SEEN_EVENTS,
    ):
        """
        Args:
            gateway: verifies signatures
            ledger: receives succeeded setup intents
            deduplicate: acknowledge repeated event ids without recording them again
            max_seen_events: how many recent event ids are remembered; the oldest
                are evicted first
        """
        self.gateway = gateway
        self.ledger = ledger
        self.deduplicate = deduplicate
        self.max_seen_events = max_seen_events
        self._seen_event_ids: OrderedDict[str, None] = OrderedDict()
        self._seen_lock = threading.Lock()

    def handle(self, raw_body: bytes, signature: str | None) -> WebhookOutcome:
        result = self.gateway.verify_webhook_signature(raw_body, signature)
        if isinstance(result, WebhookRejected):
            webhook_events_total.labels(outcome="rejected").inc()
            return WebhookOutcome.REJECTED

        decoded = decode_event(result.event)

        if isinstance(decoded, MalformedEvent):
            log.warning(
                BusinessEvents.WEBHOOK_MALFORMED,
                event_id=decoded.event_id,
                event_type=decoded.type,
                reason=decoded.reason,
            )
            webhook_events_total.labels(outcome="malformed").inc()
            return WebhookOutcome.ACCEPTED

        if isinstance(decoded, IgnoredEvent):
            log.info(
                BusinessEvents.WEBHOOK_IGNORED,
                event_id=decoded.event_id,
                event_type=decoded.type,
            )
            webhook_events_total.labels(outcome="ignored").inc()
            return WebhookOutcome.ACCEPTED

        log.info(
            BusinessEvents.WEBHOOK_RECEIVED,
            event_id=decoded.event_id,
            event_type="setup_intent.succeeded",
            setup_intent_id=decoded.setup_intent_id,
        )

        if self.deduplicate and self._already_seen(decoded):
            log.info(BusinessEvents.WEBHOOK_DUPLICATE, event_id=decoded.event_id)
            webhook_events_total.labels(outcome="duplicate").inc()
            return WebhookOutcome.ACCEPTED

        try:
            self.ledger.record(decoded)
        except Exception:
            log.error(
                BusinessEvents.PAYMENT_METHOD_RECORD_FAILED,
                event_id=decoded.event_id,
                setup_intent_id=decoded.setup_intent_id,
                exc_info=True,
            )
            self._forget(decoded)
            webhook_events_total.labels(outcome="record_failed").inc()
            return WebhookOutcome.ACCEPTED

        payment_methods_recorded_total.inc()
        webhook_events_total.labels(outcome="recorded").inc()
        return WebhookOutcome.ACCEPTED

    def _already_seen(self, event: SetupIntentSucceeded) -> bool:
        # Events without an id cannot be matched, so they are always recorded
        if event.event_id is None:
            return False
        with self._seen_lock:
            if event.event_id in self._seen_event_ids:
                return True
            self._seen_event_ids[event.event_id] = None
            while len(self._seen_event_ids) > self.max_seen_events:
                self._seen_event_ids.popitem(last=False)
            return False

    def _forget(self, event: SetupIntentSucceeded) -> None:
        if self.deduplicate and event.event_id is not None:
            with self._seen_lock:
                self._seen_event_ids.pop(event.event_id, None)
