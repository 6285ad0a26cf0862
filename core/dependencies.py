from fastapi import Request

from core.settings import Settings
from db.session import create_db_engine, init_db
from payments.gateway import ProcessorGateway
from payments.ledger import (
    InMemoryPaymentMethodStore,
    PaymentMethodLedger,
    PaymentMethodStore,
    SqlPaymentMethodStore,
)
from payments.webhooks import WebhookReceiver

# Settings singleton
_settings = None


def get_settings() -> Settings:
    """Dependency that provides application settings."""
    assert (
        _settings is not None
    ), "Settings not initialized. Make sure startup() was called."
    return _settings


def init_settings():
    """Initialize settings singleton."""
    global _settings
    _settings = Settings()


def clear_settings():
    """Clear settings singleton."""
    global _settings
    _settings = None


def build_store(settings: Settings) -> PaymentMethodStore:
    """Pick the payment method store named by LEDGER_BACKEND."""
    if settings.LEDGER_BACKEND == "sql":
        return SqlPaymentMethodStore(init_db(create_db_engine(settings)))
    return InMemoryPaymentMethodStore()


def init_services(app, settings: Settings) -> None:
    """Build the gateway, ledger and receiver and attach them to app.state."""
    gateway = ProcessorGateway(settings)
    ledger = PaymentMethodLedger(build_store(settings))
    app.state.gateway = gateway
    app.state.ledger = ledger
    app.state.receiver = WebhookReceiver(
        gateway,
        ledger,
        deduplicate=settings.WEBHOOK_DEDUPLICATE_EVENTS,
        max_seen_events=settings.WEBHOOK_DEDUPLICATE_MAX_EVENTS,
    )


def get_gateway(request: Request) -> ProcessorGateway:
    return request.app.state.gateway


def get_ledger(request: Request) -> PaymentMethodLedger:
    return request.app.state.ledger


def get_receiver(request: Request) -> WebhookReceiver:
    return request.app.state.receiver
