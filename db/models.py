"""
Database Models Module

SQLAlchemy ORM models backing the durable payment method store.
"""

from datetime import datetime, UTC

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class PaymentMethodRow(Base):
    """A payment method saved after a verified setup_intent.succeeded event."""

    __tablename__ = "payment_method_records"

    # Autoincrement sequence preserves insertion order
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), nullable=False, unique=True, index=True)
    setup_intent_id = Column(String(255), nullable=False, index=True)
    payment_method_id = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False)
    event_id = Column(String(255), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    def __repr__(self):
        return f"<PaymentMethodRow(id={self.id}, setup_intent_id={self.setup_intent_id})>"
