"""Checkout blueprint — /api/create-checkout-session, /api/get-session

Called from the landing page's checkout modal and the post-purchase page.

Routes:
- POST /api/create-checkout-session  — create embedded Checkout Session, return clientSecret
- GET  /api/get-session              — customer email/name for a finished session
"""

import logging
from urllib.parse import urlsplit

from flask import Blueprint, jsonify, request

from mirada.decorators import cors, require_settings
from mirada.extensions import limiter
from mirada.services.stripe_service import create_checkout_session, get_session_customer
from mirada.settings import get_settings

logger = logging.getLogger(__name__)

checkout_bp = Blueprint("checkout", __name__, url_prefix="/api")


def _request_origin(default):
    """Origin header, else scheme://host of the Referer, else *default*."""
    origin = request.headers.get("Origin")
    if origin:
        return origin.rstrip("/")
    referer = request.headers.get("Referer")
    if referer:
        parts = urlsplit(referer)
        if parts.scheme and parts.netloc:
            return f"{parts.scheme}://{parts.netloc}"
    return default.rstrip("/")


# ──────────────────────────────────────────────
# POST /api/create-checkout-session
# ──────────────────────────────────────────────

@checkout_bp.route("/create-checkout-session", methods=["POST", "OPTIONS"])
@cors("POST")
@limiter.limit("20 per minute", exempt_when=lambda: request.method == "OPTIONS")
@require_settings("STRIPE_SECRET_KEY", "STRIPE_PRICE_ID")
def create_session():
    """Create an embedded Checkout Session.

    Body (optional): {"utm": {...}, "amplitude_device_id": "..."}
    The attribution fields are stored on the session and come back
    unchanged in checkout.session.completed.
    """
    settings = get_settings()
    data = request.get_json(silent=True) or {}
    utm = data.get("utm") if isinstance(data.get("utm"), dict) else {}

    try:
        client_secret = create_checkout_session(
            settings,
            origin=_request_origin(settings.app_base_url),
            utm=utm,
            device_id=data.get("amplitude_device_id"),
        )
    except Exception as e:
        logger.error(f"Error creating checkout session: {e}", exc_info=True)
        return jsonify({"error": "Could not create checkout session"}), 500

    return jsonify({"clientSecret": client_secret}), 200


# ──────────────────────────────────────────────
# GET /api/get-session
# ──────────────────────────────────────────────

@checkout_bp.route("/get-session", methods=["GET", "OPTIONS"])
@cors("GET")
@require_settings("STRIPE_SECRET_KEY")
def get_session():
    """Return {email, name} for ?session_id=cs_..."""
    session_id = request.args.get("session_id")
    if not session_id:
        return jsonify({"error": "Missing session_id"}), 400

    try:
        customer = get_session_customer(get_settings(), session_id)
    except Exception as e:
        logger.error(f"Error retrieving session {session_id}: {e}")
        return jsonify({"error": "Could not retrieve session"}), 500

    return jsonify(customer), 200
