"""SQLAlchemy models and engine helpers for the durable payment method store."""
