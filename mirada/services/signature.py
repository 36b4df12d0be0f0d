"""Stripe webhook signature verification.

Header format: t=<timestamp>,v1=<hex hmac>[,v1=<hex hmac>...][,v0=...]
The check itself is stripe.WebhookSignature.verify_header(); this module
only adapts it to a plain True/False answer.

Fails closed: a missing secret, header, timestamp or v1 entry returns False.
"""

import logging

import stripe

logger = logging.getLogger(__name__)


def _as_text(raw_payload):
    if isinstance(raw_payload, bytes):
        return raw_payload.decode("utf-8")
    return raw_payload


def verify_signature(raw_payload, signature_header, secret, tolerance=None) -> bool:
    """Return True if *signature_header* is a valid Stripe signature of *raw_payload*.

    Args:
        raw_payload:      Raw request body (bytes or str), exactly as received.
        signature_header: Value of the Stripe-Signature header.
        secret:           Webhook signing secret.
        tolerance:        Optional max age in seconds; 0 or None disables it.
    """
    if not signature_header or not secret:
        return False

    try:
        stripe.WebhookSignature.verify_header(
            _as_text(raw_payload), signature_header, secret, tolerance=tolerance or None
        )
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Invalid Stripe signature: {e}")
        return False
    except Exception as e:
        logger.warning(f"Signature comparison failed: {e}")
        return False
    return True


def build_signature_header(raw_payload, secret, timestamp) -> str:
    """Build a Stripe-Signature header value. Used for local replays and tests."""
    signed_payload = f"{timestamp}.{_as_text(raw_payload)}"
    signature = stripe.WebhookSignature._compute_signature(signed_payload, secret)
    return f"t={timestamp},v1={signature}"
