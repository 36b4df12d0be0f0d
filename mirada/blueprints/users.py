"""Users blueprint — /api/check-user

Called by the app's login screen before sending a magic link, to tell
"unknown email" apart from "known but not purchased".
"""

import logging

from flask import Blueprint, jsonify, request

from mirada.decorators import cors, require_settings
from mirada.extensions import limiter
from mirada.services.identity_service import IdentityClient
from mirada.settings import get_settings

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api")


@users_bp.route("/check-user", methods=["POST", "OPTIONS"])
@cors("POST")
@limiter.limit("10 per minute", exempt_when=lambda: request.method == "OPTIONS")
@require_settings(*IdentityClient.REQUIRED_SETTINGS)
def check_user():
    """Body: {"email": "..."} -> {"exists": false} or {"exists": true, "purchased": bool}."""
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip()
    if not email:
        return jsonify({"error": "Email is required"}), 400

    try:
        result = IdentityClient(get_settings()).lookup(email)
    except Exception as e:
        logger.error(f"Error checking user {email}: {e}")
        return jsonify({"error": "Error checking user"}), 500

    return jsonify(result), 200
