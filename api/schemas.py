"""
API Schemas Module

Pydantic models for response serialization. Field names follow the
camelCase keys the browser client expects.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class SetupIntentOut(CamelModel):
    client_secret: str
    setup_intent_id: str


class PaymentMethodOut(CamelModel):
    id: str
    setup_intent_id: str
    payment_method_id: str
    status: str
    created_at: datetime


class PaymentMethodsOut(CamelModel):
    payment_methods: list[PaymentMethodOut]
    count: int


class WebhookAck(BaseModel):
    received: bool = True
