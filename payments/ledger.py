"""
Payment Method Ledger

Append-only record of payment methods saved through verified
setup_intent.succeeded events. The ledger owns record construction; storage
sits behind PaymentMethodStore so the in-memory default can be swapped for
the SQLAlchemy store without touching callers.
"""

import threading
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from core.logging import BusinessEvents
from db.models import PaymentMethodRow
from payments.events import SetupIntentSucceeded

log = structlog.get_logger(__name__)

RECORD_ID_PREFIX = "pmr_"


@dataclass(frozen=True)
class PaymentMethodRecord:
    id: str
    setup_intent_id: str
    payment_method_id: str
    status: str
    created_at: datetime
    event_id: str | None = None


class PaymentMethodStore(Protocol):
    def append(self, record: PaymentMethodRecord) -> None: ...

    def list(self) -> list[PaymentMethodRecord]: ...


class InMemoryPaymentMethodStore:
    """Process-lifetime store; appends are serialized by a lock."""

    def __init__(self):
        self._records: list[PaymentMethodRecord] = []
        self._lock = threading.Lock()

    def append(self, record: PaymentMethodRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list(self) -> list[PaymentMethodRecord]:
        with self._lock:
            return list(self._records)


class SqlPaymentMethodStore:
    """Durable store backed by the payment_method_records table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def append(self, record: PaymentMethodRecord) -> None:
        with self.session_factory() as db:
            db.add(
                PaymentMethodRow(
                    id=record.id,
                    setup_intent_id=record.setup_intent_id,
                    payment_method_id=record.payment_method_id,
                    status=record.status,
                    event_id=record.event_id,
                    created_at=record.created_at,
                )
            )
            db.commit()

    def list(self) -> list[PaymentMethodRecord]:
        with self.session_factory() as db:
            rows = db.scalars(select(PaymentMethodRow).order_by(PaymentMethodRow.seq))
            return [self._to_record(row) for row in rows]

    @staticmethod
    def _to_record(row: PaymentMethodRow) -> PaymentMethodRecord:
        created_at = row.created_at
        # SQLite drops tzinfo on the way back out
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return PaymentMethodRecord(
            id=row.id,
            setup_intent_id=row.setup_intent_id,
            payment_method_id=row.payment_method_id,
            status=row.status,
            created_at=created_at,
            event_id=row.event_id,
        )


def new_record_id() -> str:
    return f"{RECORD_ID_PREFIX}{uuid.uuid4().hex}"


class PaymentMethodLedger:
    def __init__(self, store: PaymentMethodStore):
        self.store = store

    def record(self, event: SetupIntentSucceeded) -> PaymentMethodRecord:
        """Append a record for a verified, decoded setup_intent.succeeded event."""
        record = PaymentMethodRecord(
            id=new_record_id(),
            setup_intent_id=event.setup_intent_id,
            payment_method_id=event.payment_method_id,
            status=event.status,
            created_at=datetime.now(UTC),
            event_id=event.event_id,
        )
        self.store.append(record)

        log.info(
            BusinessEvents.PAYMENT_METHOD_RECORDED,
            record_id=record.id,
            payment_method_id=record.payment_method_id,
            setup_intent_id=record.setup_intent_id,
        )
        return record

    def list(self) -> list[PaymentMethodRecord]:
        return self.store.list()
