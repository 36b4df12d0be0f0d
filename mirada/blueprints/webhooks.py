"""Webhooks blueprint — /api/stripe-webhook

Receives Stripe webhook events. Raw body is required for signature
verification, so it is read with request.get_data() and never re-serialized.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request

from mirada.decorators import cors
from mirada.models.events import InboundWebhookRequest
from mirada.services.webhook_service import build_dispatcher
from mirada.settings import get_settings

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api")

# Every verb is routed here so the dispatcher can answer 405 itself.
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@webhooks_bp.route("/stripe-webhook", methods=ALL_METHODS)
@cors("POST")
def stripe_webhook():
    """Receive and process a Stripe webhook event.

    1. Wrap the raw request as an InboundWebhookRequest
    2. Build a dispatcher with fresh collaborators (per-request token cache)
    3. Return whatever status/body the dispatcher decides
    """
    inbound = InboundWebhookRequest(
        method=request.method,
        body=request.get_data(),
        signature=request.headers.get("Stripe-Signature"),
        received_at=datetime.now(timezone.utc),
    )

    response = build_dispatcher(get_settings()).dispatch(inbound)

    if response.status >= 500:
        logger.error(f"Webhook failed with {response.status}: {response.body}")
    return jsonify(response.body), response.status
