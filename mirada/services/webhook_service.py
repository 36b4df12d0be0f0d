"""Webhook service — Stripe event dispatch.

Responsible for:
- Rejecting non-POST requests and missing configuration
- Verifying the Stripe signature before touching the payload
- Classifying the event and calling collaborators in a fixed order:
  tracker, then identity upsert, then confirmation email
- Mapping every path to exactly one (status, body) response

Nothing is retried here. A non-2xx response makes Stripe redeliver, so only
failures that should cause a redelivery (bad config, Auth0 errors, unparsable
payloads) produce a 5xx. Email and analytics failures never do.
"""

import logging
from dataclasses import dataclass

from mirada.models.events import EventKind, PAYMENT_KINDS, parse_event
from mirada.services.email_service import NotificationSender
from mirada.services.identity_service import IdentityClient
from mirada.services.signature import verify_signature
from mirada.services.tracking_service import EventTracker

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anonymous"

EVENT_NAMES = {
    EventKind.PAYMENT_STARTED: "payment_started",
    EventKind.PAYMENT_PROCESSING: "payment_processing",
    EventKind.PAYMENT_FAILED: "payment_failed",
    EventKind.CHECKOUT_COMPLETED: "purchase_completed",
}


@dataclass(frozen=True)
class WebhookResponse:
    status: int
    body: dict


class WebhookDispatcher:
    REQUIRED_SETTINGS = ("STRIPE_WEBHOOK_SECRET",) + IdentityClient.REQUIRED_SETTINGS

    def __init__(self, settings, identity, notifier, tracker, verifier=verify_signature):
        self.settings = settings
        self.identity = identity
        self.notifier = notifier
        self.tracker = tracker
        self.verifier = verifier

    def dispatch(self, request) -> WebhookResponse:
        """Handle one InboundWebhookRequest end to end."""
        if request.method != "POST":
            return WebhookResponse(405, {"error": "Method not allowed"})

        missing = self.settings.missing(*self.REQUIRED_SETTINGS)
        if missing:
            logger.error(f"Missing environment variables: {', '.join(missing)}")
            return WebhookResponse(500, {"error": "Server configuration error"})

        verified = self.verifier(
            request.body,
            request.signature,
            self.settings.stripe_webhook_secret,
            tolerance=self.settings.stripe_webhook_tolerance,
        )
        if not verified:
            logger.warning("Invalid Stripe signature")
            return WebhookResponse(401, {"error": "Invalid signature"})

        try:
            event = parse_event(request.body)
            return self._route(event)
        except Exception as e:
            logger.error(f"Error processing webhook: {e}", exc_info=True)
            return WebhookResponse(500, {"error": "Webhook processing failed"})

    # ──────────────────────────────────────────────
    # Event handlers
    # ──────────────────────────────────────────────

    def _route(self, event):
        if event.kind in PAYMENT_KINDS:
            return self._handle_payment(event)
        if event.kind == EventKind.CHECKOUT_COMPLETED:
            return self._handle_checkout_completed(event)

        logger.info(f"Ignoring Stripe event {event.event_type or '(untyped)'}")
        return WebhookResponse(200, {"received": True, "ignored": True})

    def _handle_payment(self, event):
        """payment_intent.created / processing / payment_failed — tracking only."""
        user_key = event.email or ANONYMOUS_USER
        # Tracker outcome is intentionally not inspected.
        _ = self.tracker.track(
            EVENT_NAMES[event.kind],
            {
                "amount": event.amount_major,
                "currency": event.currency,
                "stripe_event": event.event_type,
            },
            user_key,
            device_id=event.device_id,
        )
        return WebhookResponse(200, {"received": True})

    def _handle_checkout_completed(self, event):
        """checkout.session.completed — track, grant entitlement, send email."""
        if not event.email:
            logger.error("No email found in checkout session")
            return WebhookResponse(400, {"error": "No email found"})

        logger.info(f"Processing purchase for: {event.email}")

        properties = dict(event.attribution)
        properties.update({
            "amount": event.amount_major,
            "currency": event.currency,
            "session_id": event.session_id,
        })
        _ = self.tracker.track(
            EVENT_NAMES[event.kind],
            properties,
            event.email,
            device_id=event.device_id,
        )

        # Auth0 errors propagate: Stripe must redeliver until the grant lands.
        result = self.identity.upsert(event.email, event.name, event.customer_id)

        outcome = self.notifier.send(event.email, event.name)
        if not outcome.ok:
            logger.warning(
                f"Confirmation email not delivered to {event.email}: {outcome.detail}"
            )

        return WebhookResponse(200, {"success": True, **result})


def build_dispatcher(settings) -> WebhookDispatcher:
    """Wire a dispatcher with fresh collaborators for one request."""
    return WebhookDispatcher(
        settings,
        identity=IdentityClient(settings),
        notifier=NotificationSender(settings),
        tracker=EventTracker(settings),
    )
