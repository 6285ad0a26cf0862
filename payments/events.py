"""
Webhook Event Decoding

Narrows a verified Stripe event into one of a small set of typed variants
before anything reads nested fields. Unrecognized shapes decode to
MalformedEvent and are never recorded.
"""

from dataclasses import dataclass
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

SETUP_INTENT_SUCCEEDED = "setup_intent.succeeded"


class _ExpandedPaymentMethod(BaseModel):
    id: str

    model_config = ConfigDict(extra="ignore")


class _SetupIntentObject(BaseModel):
    id: str
    object: Literal["setup_intent"] = "setup_intent"
    status: Literal["succeeded"]
    payment_method: str

    model_config = ConfigDict(extra="ignore")

    @field_validator("payment_method", mode="before")
    @classmethod
    def _collapse_expanded(cls, value: Any) -> Any:
        # payment_method arrives as an id, or as the full object when expanded
        if isinstance(value, dict):
            return _ExpandedPaymentMethod.model_validate(value).id
        return value

    @field_validator("id", "payment_method")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class _EventData(BaseModel):
    object: _SetupIntentObject


class _SetupIntentSucceededEnvelope(BaseModel):
    id: str | None = None
    type: Literal["setup_intent.succeeded"]
    data: _EventData

    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class SetupIntentSucceeded:
    event_id: str | None
    setup_intent_id: str
    payment_method_id: str
    status: str


@dataclass(frozen=True)
class IgnoredEvent:
    event_id: str | None
    type: str


@dataclass(frozen=True)
class MalformedEvent:
    event_id: str | None
    type: str | None
    reason: str


DecodedEvent = Union[SetupIntentSucceeded, IgnoredEvent, MalformedEvent]


def decode_event(event: dict[str, Any]) -> DecodedEvent:
    event_id = event.get("id") if isinstance(event.get("id"), str) else None
    event_type = event.get("type")

    if not isinstance(event_type, str) or not event_type:
        return MalformedEvent(event_id, None, "event has no type")

    if event_type != SETUP_INTENT_SUCCEEDED:
        return IgnoredEvent(event_id, event_type)

    try:
        envelope = _SetupIntentSucceededEnvelope.model_validate(event)
    except ValidationError as e:
        return MalformedEvent(event_id, event_type, str(e))

    intent = envelope.data.object
    return SetupIntentSucceeded(
        event_id=envelope.id,
        setup_intent_id=intent.id,
        payment_method_id=intent.payment_method,
        status=intent.status,
    )
