"""
Custom route decorators.

- cors: answers OPTIONS preflight and adds permissive CORS headers to the
  public JSON endpoints the landing page calls from the browser.
- require_settings: short-circuits with 500 when configuration a route
  needs is absent, before any external call.
"""

import logging
from functools import wraps

from flask import jsonify, make_response, request

from mirada.settings import get_settings

logger = logging.getLogger(__name__)


def cors_headers(methods):
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": ", ".join(methods),
    }


def cors(*methods):
    """Allow cross-origin calls for *methods* (OPTIONS is always added)."""
    allowed = list(methods) + ["OPTIONS"]

    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            if request.method == "OPTIONS":
                response = make_response("", 200)
            else:
                response = make_response(f(*args, **kwargs))
            response.headers.update(cors_headers(allowed))
            return response

        return decorated

    return decorator


def require_settings(*names):
    """Return 500 'Server configuration error' if any of *names* is unset."""

    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            missing = get_settings().missing(*names)
            if missing:
                logger.error(f"Missing environment variables: {', '.join(missing)}")
                return jsonify({"error": "Server configuration error"}), 500
            return f(*args, **kwargs)

        return decorated

    return decorator
