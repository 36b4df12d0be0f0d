"""Webhook request and event value objects.

InboundWebhookRequest is what the blueprint hands to the dispatcher.
VerifiedEvent is the typed view of a Stripe event once its signature has
been checked. Neither is persisted.
"""

import enum
import json
from dataclasses import dataclass, field
from datetime import datetime


# Campaign-tracking keys copied into the checkout session metadata.
ATTRIBUTION_KEYS = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "gclid",
    "fbclid",
)

DEVICE_ID_KEY = "amplitude_device_id"


class EventKind(str, enum.Enum):
    PAYMENT_STARTED = "payment-started"
    PAYMENT_PROCESSING = "payment-processing"
    PAYMENT_FAILED = "payment-failed"
    CHECKOUT_COMPLETED = "checkout-completed"
    OTHER = "other"


STRIPE_EVENT_KINDS = {
    "payment_intent.created": EventKind.PAYMENT_STARTED,
    "payment_intent.processing": EventKind.PAYMENT_PROCESSING,
    "payment_intent.payment_failed": EventKind.PAYMENT_FAILED,
    "checkout.session.completed": EventKind.CHECKOUT_COMPLETED,
}

PAYMENT_KINDS = (
    EventKind.PAYMENT_STARTED,
    EventKind.PAYMENT_PROCESSING,
    EventKind.PAYMENT_FAILED,
)


@dataclass(frozen=True)
class InboundWebhookRequest:
    method: str
    body: bytes
    signature: str | None
    received_at: datetime


@dataclass(frozen=True)
class VerifiedEvent:
    kind: EventKind
    event_type: str
    event_id: str | None = None
    amount: int | None = None  # minor units
    currency: str | None = None
    email: str | None = None
    name: str = ""
    customer_id: str | None = None
    session_id: str | None = None
    device_id: str | None = None
    attribution: dict = field(default_factory=dict)

    @property
    def amount_major(self):
        """Amount in major units (2400 -> 24.0), or None."""
        if self.amount is None:
            return None
        return self.amount / 100


def parse_event(body) -> VerifiedEvent:
    """Parse a raw Stripe event body and classify it.

    Raises ValueError (json.JSONDecodeError) on a body that is not JSON.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise ValueError("Webhook payload is not a JSON object")

    event_type = payload.get("type") or ""
    kind = STRIPE_EVENT_KINDS.get(event_type, EventKind.OTHER)
    obj = (payload.get("data") or {}).get("object") or {}
    metadata = obj.get("metadata") or {}

    if kind == EventKind.CHECKOUT_COMPLETED:
        details = obj.get("customer_details") or {}
        return VerifiedEvent(
            kind=kind,
            event_type=event_type,
            event_id=payload.get("id"),
            amount=obj.get("amount_total"),
            currency=obj.get("currency"),
            email=details.get("email") or obj.get("customer_email"),
            name=details.get("name") or "",
            customer_id=obj.get("customer"),
            session_id=obj.get("id"),
            device_id=metadata.get(DEVICE_ID_KEY),
            attribution={k: v for k, v in metadata.items() if k != DEVICE_ID_KEY},
        )

    if kind in PAYMENT_KINDS:
        return VerifiedEvent(
            kind=kind,
            event_type=event_type,
            event_id=payload.get("id"),
            amount=obj.get("amount"),
            currency=obj.get("currency"),
            email=obj.get("receipt_email") or metadata.get("email"),
            customer_id=obj.get("customer"),
            device_id=metadata.get(DEVICE_ID_KEY),
        )

    return VerifiedEvent(kind=kind, event_type=event_type, event_id=payload.get("id"))
