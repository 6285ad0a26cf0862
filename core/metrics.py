"""
Prometheus metrics instrumentation for the card setup relay.

Exposes request metrics plus a few domain counters at /metrics.
"""

from prometheus_fastapi_instrumentator import Instrumentator
from prometheus_client import Counter

setup_intents_total = Counter(
    "card_setup_setup_intents_total",
    "Setup intent creation attempts",
    ["outcome"],  # created | failed
)

webhook_events_total = Counter(
    "card_setup_webhook_events_total",
    "Inbound webhook deliveries",
    ["outcome"],  # recorded | ignored | malformed | duplicate | rejected | record_failed
)

payment_methods_recorded_total = Counter(
    "card_setup_payment_methods_recorded_total",
    "Payment method records appended to the ledger",
)


def init_metrics(app, enabled: bool = True):
    """
    Initialize Prometheus metrics instrumentation for the FastAPI app.

    Args:
        app: FastAPI application instance
        enabled: when False nothing is instrumented and /metrics is not served

    Returns:
        Instrumentator instance, or None when disabled
    """
    if not enabled:
        return None

    inst = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
    )
    inst.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    return inst
