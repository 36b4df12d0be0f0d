"""
Purchase confirmation email, sent through the Resend HTTP API.

Best effort only: send() never raises. A missing API key, an unreadable
attachment or a provider rejection is logged and reported as a failed
Outcome, which the webhook dispatcher ignores.

Usage:
    from mirada.services.email_service import NotificationSender

    outcome = NotificationSender(settings).send("ana@example.com", "Ana López")
"""

import base64
import logging
import os

import requests
from flask import render_template

from mirada.services.outcome import Outcome

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
ATTACHMENT_FILENAME = "la-mirada-creativa.pdf"
DEFAULT_GREETING = "Hola"
SUBJECT = "Tu acceso a La Mirada Creativa"
TEMPLATE = "emails/purchase_confirmation.html"


def greeting_for(display_name):
    """'Hola, Ana' from 'Ana López'; plain 'Hola' when there is no name."""
    tokens = (display_name or "").split()
    if not tokens:
        return DEFAULT_GREETING
    return f"{DEFAULT_GREETING}, {tokens[0]}"


class NotificationSender:
    REQUIRED_SETTINGS = ("RESEND_API_KEY", "MAIL_FROM_ADDRESS")

    def __init__(self, settings, timeout=30):
        self.settings = settings
        self.timeout = timeout

    def _load_attachment(self):
        """Return the Resend attachment dict for the product PDF, or None."""
        path = self.settings.product_pdf_path
        if not path or not os.path.isfile(path):
            logger.info("Product PDF not found — sending without attachment.")
            return None
        try:
            with open(path, "rb") as f:
                content = base64.b64encode(f.read()).decode("ascii")
        except OSError as e:
            logger.warning(f"Could not read product PDF {path}: {e}")
            return None
        return {"filename": ATTACHMENT_FILENAME, "content": content}

    def build_message(self, email, display_name):
        """Build the JSON body for the Resend API."""
        attachment = self._load_attachment()
        html_body = render_template(
            TEMPLATE,
            greeting=greeting_for(display_name),
            app_url=f"{self.settings.app_base_url.rstrip('/')}/app",
            has_attachment=attachment is not None,
        )
        message = {
            "from": f"{self.settings.mail_from_name} <{self.settings.mail_from_address}>",
            "to": [email],
            "subject": SUBJECT,
            "html": html_body,
        }
        if attachment:
            message["attachments"] = [attachment]
        return message

    def send(self, email, display_name=None) -> Outcome:
        """Send the confirmation email. Never raises."""
        missing = self.settings.missing(*self.REQUIRED_SETTINGS)
        if missing:
            logger.warning(f"Email not sent — {', '.join(missing)} not configured.")
            return Outcome.failure("not configured")

        try:
            message = self.build_message(email, display_name)
            resp = requests.post(
                RESEND_API_URL,
                json=message,
                headers={"Authorization": f"Bearer {self.settings.resend_api_key}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            email_id = resp.json().get("id") if resp.content else None
        except Exception as e:
            logger.error(f"Failed to send confirmation email to {email}: {e}")
            return Outcome.failure(str(e))

        logger.info(f"Confirmation email sent to {email} ({email_id})")
        return Outcome.success(email_id)
