"""Shared test fixtures for the La Mirada backend test suite.

Provides:
- app: Flask app configured for testing (fake credentials, rate limits off)
- client: Flask test client
- settings: the app's Settings object
- make_event: builder for Stripe event payloads
- post_webhook: POSTs a correctly signed event to /api/stripe-webhook
"""

import json
import time

import pytest

from mirada import create_app
from mirada.services.signature import build_signature_header

WEBHOOK_SECRET = "whsec_test_fake"


def sign(body, secret=WEBHOOK_SECRET, timestamp=None):
    """Stripe-Signature header for *body*, timestamped now by default."""
    return build_signature_header(body, secret, timestamp or int(time.time()))


@pytest.fixture
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def settings(app):
    return app.extensions["mirada"]


@pytest.fixture
def make_event():
    """Build a Stripe event dict.

    make_event("checkout.session.completed", email="x@y.com", amount=2400)
    make_event("payment_intent.created", receipt_email=None, amount=2400)
    """

    def _make(event_type, **fields):
        if event_type == "checkout.session.completed":
            obj = {
                "id": fields.get("session_id", "cs_test_123"),
                "object": "checkout.session",
                "amount_total": fields.get("amount", 2400),
                "currency": fields.get("currency", "eur"),
                "customer": fields.get("customer", "cus_test_123"),
                "customer_email": fields.get("customer_email"),
                "customer_details": {
                    "email": fields.get("email", "x@y.com"),
                    "name": fields.get("name", "Ana López"),
                },
                "metadata": fields.get("metadata", {}),
            }
        elif event_type.startswith("payment_intent."):
            obj = {
                "id": "pi_test_123",
                "object": "payment_intent",
                "amount": fields.get("amount", 2400),
                "currency": fields.get("currency", "eur"),
                "receipt_email": fields.get("receipt_email"),
                "metadata": fields.get("metadata", {}),
            }
        else:
            obj = fields.get("object", {})

        return {
            "id": fields.get("event_id", "evt_test_123"),
            "object": "event",
            "type": event_type,
            "data": {"object": obj},
        }

    return _make


@pytest.fixture
def post_webhook(client):
    """POST an event (dict) or raw body (bytes) to the webhook endpoint.

    Signs it with the test secret unless a signature is given.
    """

    def _post(event=None, body=None, signature=None, method="POST"):
        if body is None:
            body = json.dumps(event).encode("utf-8")
        headers = {"Stripe-Signature": signature if signature is not None else sign(body)}
        return client.open(
            "/api/stripe-webhook",
            method=method,
            data=body,
            content_type="application/json",
            headers=headers,
        )

    return _post
