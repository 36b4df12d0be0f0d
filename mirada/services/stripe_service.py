"""Stripe service — Checkout Session creation and lookup.

Responsible for:
- Creating embedded Checkout Sessions for the single product price,
  with campaign attribution and the Amplitude device id in metadata
- Reading back customer details for the post-checkout page

The secret key is passed per call (api_key=...) instead of being set on
the stripe module.
"""

import logging

import stripe

from mirada.models.events import ATTRIBUTION_KEYS, DEVICE_ID_KEY

logger = logging.getLogger(__name__)

# Stripe metadata values are capped at 500 characters.
METADATA_VALUE_LIMIT = 500


def build_session_metadata(utm=None, device_id=None):
    """Keep the known attribution keys from *utm* and add the device id.

    Values are stringified and truncated; empty values are dropped.
    """
    metadata = {}
    for key in ATTRIBUTION_KEYS:
        value = (utm or {}).get(key)
        if value:
            metadata[key] = str(value)[:METADATA_VALUE_LIMIT]
    if device_id:
        metadata[DEVICE_ID_KEY] = str(device_id)[:METADATA_VALUE_LIMIT]
    return metadata


def create_checkout_session(settings, origin, utm=None, device_id=None):
    """Create an embedded-mode Checkout Session for one unit of STRIPE_PRICE_ID.

    Returns the session's client_secret, used by the browser to mount
    Stripe's embedded checkout.
    Raises stripe.StripeError on API failures.
    """
    metadata = build_session_metadata(utm, device_id)

    session = stripe.checkout.Session.create(
        api_key=settings.stripe_secret_key,
        ui_mode="embedded",
        mode="payment",
        line_items=[{"price": settings.stripe_price_id, "quantity": 1}],
        return_url=f"{origin}/app?session_id={{CHECKOUT_SESSION_ID}}",
        automatic_tax={"enabled": False},
        customer_creation="always",
        metadata=metadata,
        payment_intent_data={"metadata": metadata},
    )
    logger.info(f"Checkout session created: {session.id}")
    return session.client_secret


def get_session_customer(settings, session_id):
    """Return {email, name} for a Checkout Session."""
    session = stripe.checkout.Session.retrieve(
        session_id, api_key=settings.stripe_secret_key
    )
    # StripeObject is attribute-based; unset fields may be absent entirely.
    details = getattr(session, "customer_details", None)
    email = getattr(details, "email", None)
    name = getattr(details, "name", None)
    return {
        "email": email or getattr(session, "customer_email", None),
        "name": name or "",
    }
