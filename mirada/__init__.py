import os
import logging

import click
from flask import Flask, jsonify

from mirada.config import config_by_name
from mirada.extensions import limiter
from mirada.settings import Settings


def create_app(config_name=None, overrides=None):
    """Application factory.

    Args:
        config_name: "development", "production" or "testing".
                     Defaults to $FLASK_ENV, then "development".
        overrides:   Optional dict applied on top of the config class
                     before Settings is built (used by tests).
    """

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if overrides:
        app.config.update(overrides)

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Explicit settings object, built once ---
    app.extensions["mirada"] = Settings.from_config(app.config)

    # --- Init extensions ---
    limiter.init_app(app)

    # --- Register blueprints ---
    from mirada.blueprints.webhooks import webhooks_bp
    from mirada.blueprints.checkout import checkout_bp
    from mirada.blueprints.users import users_bp

    app.register_blueprint(webhooks_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(users_bp)

    # --- Health check ---
    @app.route("/healthz")
    def healthz():
        return jsonify({"status": "ok"})

    # --- Error handlers (JSON everywhere, this is an API) ---
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Internal server error"}), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # JSON only — nothing here should ever load or embed content
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("generate-pdf")
    @click.option("--cards", "cards_path", default=None, help="Card catalog JSON.")
    @click.option("--output", "output_path", default=None, help="Where to write the PDF.")
    def generate_pdf(cards_path, output_path):
        """Render the card catalog to the product PDF (one card per page).

        Usage:
            flask generate-pdf
            flask generate-pdf --cards cards.json --output out.pdf
        """
        from mirada.services.pdf_service import (
            DEFAULT_CARDS_PATH,
            DEFAULT_OUTPUT_PATH,
            load_catalog,
            render_cards_pdf,
        )

        cards_path = cards_path or DEFAULT_CARDS_PATH
        output_path = (
            output_path
            or app.extensions["mirada"].product_pdf_path
            or DEFAULT_OUTPUT_PATH
        )

        try:
            cards, styles = load_catalog(cards_path)
        except (OSError, ValueError) as e:
            raise click.ClickException(str(e))

        click.echo(f"Loaded {len(cards)} cards from {cards_path}")
        pages = render_cards_pdf(cards, styles, output_path)
        size_mb = os.path.getsize(output_path) / 1024 / 1024
        click.echo(f"PDF generated: {output_path}")
        click.echo(f"Size: {size_mb:.2f} MB | Pages: {pages}")

    @app.cli.command("sign-webhook")
    @click.argument("payload_file", type=click.File("rb"))
    def sign_webhook(payload_file):
        """Print a Stripe-Signature header for a local JSON payload.

        Handy for replaying events with curl against a dev server:
            flask sign-webhook event.json
        """
        import time

        from mirada.services.signature import build_signature_header

        secret = app.extensions["mirada"].stripe_webhook_secret
        if not secret:
            raise click.ClickException("STRIPE_WEBHOOK_SECRET is not set.")
        click.echo(build_signature_header(payload_file.read(), secret, int(time.time())))
