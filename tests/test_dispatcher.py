"""Tests for WebhookDispatcher with fake collaborators.

Covers:
- Method, configuration and signature gates (no collaborator calls)
- checkout.session.completed: call order, tracked amount, email failures ignored
- checkout.session.completed without email -> 400
- payment_intent events: tracking only, customer id fallbacks
- Unknown events ignored
- Identity provider / parse failures -> 500
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from mirada.models.events import InboundWebhookRequest
from mirada.services.identity_service import IdentityProviderError
from mirada.services.outcome import Outcome, TrackResult
from mirada.services.webhook_service import WebhookDispatcher
from mirada.settings import Settings

from conftest import WEBHOOK_SECRET, sign


SETTINGS = Settings(
    stripe_webhook_secret=WEBHOOK_SECRET,
    auth0_domain="tenant.eu.auth0.com",
    auth0_m2m_client_id="cid",
    auth0_m2m_client_secret="csecret",
)


class Recorder:
    """Shared call log so tests can assert ordering across collaborators."""

    def __init__(self):
        self.calls = []


class FakeTracker:
    def __init__(self, log):
        self.log = log

    def track(self, event_name, properties, user_key, device_id=None):
        self.log.calls.append(("track", event_name, properties, user_key, device_id))
        return TrackResult(amplitude=Outcome.success(), meta=Outcome.failure("boom"))


class FakeIdentity:
    def __init__(self, log, error=None):
        self.log = log
        self.error = error

    def upsert(self, email, display_name=None, external_customer_id=None):
        self.log.calls.append(("upsert", email, display_name, external_customer_id))
        if self.error:
            raise self.error
        return {"created": True, "existing": False, "id": "email|abc", "email": email}


class FakeNotifier:
    def __init__(self, log, outcome=None):
        self.log = log
        self.outcome = outcome or Outcome.success("re_1")

    def send(self, email, display_name=None):
        self.log.calls.append(("send", email, display_name))
        return self.outcome


@pytest.fixture
def log():
    return Recorder()


def make_dispatcher(log, settings=SETTINGS, identity_error=None, notify_outcome=None, verifier=None):
    kwargs = {}
    if verifier is not None:
        kwargs["verifier"] = verifier
    return WebhookDispatcher(
        settings,
        identity=FakeIdentity(log, identity_error),
        notifier=FakeNotifier(log, notify_outcome),
        tracker=FakeTracker(log),
        **kwargs,
    )


def inbound(event=None, body=None, signature=None, method="POST"):
    if body is None:
        body = json.dumps(event).encode("utf-8")
    return InboundWebhookRequest(
        method=method,
        body=body,
        signature=signature if signature is not None else sign(body),
        received_at=datetime.now(timezone.utc),
    )


class TestGates:
    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
    def test_non_post_is_405(self, log, make_event, method):
        resp = make_dispatcher(log).dispatch(
            inbound(make_event("checkout.session.completed"), method=method)
        )
        assert resp.status == 405
        assert log.calls == []

    def test_missing_config_is_500_before_verification(self, log, make_event):
        verifier = MagicMock(return_value=True)
        settings = Settings(stripe_webhook_secret=WEBHOOK_SECRET)  # no Auth0
        resp = make_dispatcher(log, settings=settings, verifier=verifier).dispatch(
            inbound(make_event("checkout.session.completed"))
        )
        assert resp.status == 500
        assert resp.body == {"error": "Server configuration error"}
        verifier.assert_not_called()
        assert log.calls == []

    def test_invalid_signature_is_401(self, log, make_event):
        event = make_event("checkout.session.completed")
        resp = make_dispatcher(log).dispatch(
            inbound(event, signature="t=1700000000,v1=" + "0" * 64)
        )
        assert resp.status == 401
        assert resp.body == {"error": "Invalid signature"}
        assert log.calls == []

    def test_signature_for_other_secret_is_401(self, log, make_event):
        body = json.dumps(make_event("checkout.session.completed")).encode()
        resp = make_dispatcher(log).dispatch(
            inbound(body=body, signature=sign(body, secret="whsec_attacker"))
        )
        assert resp.status == 401
        assert log.calls == []

    def test_stale_signature_is_401(self, log, make_event):
        body = json.dumps(make_event("checkout.session.completed")).encode()
        resp = make_dispatcher(log).dispatch(
            inbound(body=body, signature=sign(body, timestamp=1_000_000_000))
        )
        assert resp.status == 401


class TestCheckoutCompleted:
    def test_tracks_then_upserts_then_sends(self, log, make_event):
        event = make_event(
            "checkout.session.completed",
            email="x@y.com", name="Ana López", amount=2400, currency="eur",
            customer="cus_42",
        )
        resp = make_dispatcher(log).dispatch(inbound(event))

        assert resp.status == 200
        assert resp.body == {
            "success": True,
            "created": True,
            "existing": False,
            "id": "email|abc",
            "email": "x@y.com",
        }
        assert [c[0] for c in log.calls] == ["track", "upsert", "send"]

        _, event_name, properties, user_key, _ = log.calls[0]
        assert event_name == "purchase_completed"
        assert properties["amount"] == 24.0
        assert properties["currency"] == "eur"
        assert user_key == "x@y.com"

        assert log.calls[1] == ("upsert", "x@y.com", "Ana López", "cus_42")
        assert log.calls[2] == ("send", "x@y.com", "Ana López")

    def test_email_failure_does_not_change_response(self, log, make_event):
        resp = make_dispatcher(
            log, notify_outcome=Outcome.failure("provider said no")
        ).dispatch(inbound(make_event("checkout.session.completed")))
        assert resp.status == 200
        assert resp.body["success"] is True
        assert [c[0] for c in log.calls] == ["track", "upsert", "send"]

    def test_attribution_and_device_id_passed_to_tracker(self, log, make_event):
        event = make_event(
            "checkout.session.completed",
            metadata={
                "utm_source": "instagram",
                "utm_campaign": "launch",
                "amplitude_device_id": "dev-123",
            },
        )
        make_dispatcher(log).dispatch(inbound(event))

        _, _, properties, _, device_id = log.calls[0]
        assert properties["utm_source"] == "instagram"
        assert properties["utm_campaign"] == "launch"
        assert properties["session_id"] == "cs_test_123"
        assert "amplitude_device_id" not in properties
        assert device_id == "dev-123"

    def test_falls_back_to_customer_email(self, log, make_event):
        event = make_event(
            "checkout.session.completed", email=None, customer_email="fallback@y.com"
        )
        resp = make_dispatcher(log).dispatch(inbound(event))
        assert resp.status == 200
        assert log.calls[1][1] == "fallback@y.com"

    def test_missing_email_is_400_with_no_calls(self, log, make_event):
        event = make_event("checkout.session.completed", email=None, customer_email=None)
        resp = make_dispatcher(log).dispatch(inbound(event))
        assert resp.status == 400
        assert resp.body == {"error": "No email found"}
        assert log.calls == []

    def test_identity_failure_is_500_and_skips_email(self, log, make_event):
        resp = make_dispatcher(
            log, identity_error=IdentityProviderError("Auth0 down")
        ).dispatch(inbound(make_event("checkout.session.completed")))
        assert resp.status == 500
        assert "Auth0" not in resp.body["error"]
        assert [c[0] for c in log.calls] == ["track", "upsert"]


class TestPaymentEvents:
    @pytest.mark.parametrize("event_type,event_name", [
        ("payment_intent.created", "payment_started"),
        ("payment_intent.processing", "payment_processing"),
        ("payment_intent.payment_failed", "payment_failed"),
    ])
    def test_tracks_once_and_nothing_else(self, log, make_event, event_type, event_name):
        event = make_event(event_type, receipt_email="buyer@y.com", amount=2400, currency="eur")
        resp = make_dispatcher(log).dispatch(inbound(event))

        assert resp.status == 200
        assert resp.body == {"received": True}
        assert len(log.calls) == 1
        kind, name, properties, user_key, _ = log.calls[0]
        assert kind == "track"
        assert name == event_name
        assert properties["amount"] == 24.0
        assert properties["currency"] == "eur"
        assert user_key == "buyer@y.com"

    def test_metadata_email_fallback(self, log, make_event):
        event = make_event(
            "payment_intent.created", receipt_email=None, metadata={"email": "meta@y.com"}
        )
        make_dispatcher(log).dispatch(inbound(event))
        assert log.calls[0][3] == "meta@y.com"

    def test_anonymous_fallback(self, log, make_event):
        event = make_event("payment_intent.payment_failed", receipt_email=None)
        make_dispatcher(log).dispatch(inbound(event))
        assert log.calls[0][3] == "anonymous"


class TestOtherEvents:
    def test_unknown_event_ignored(self, log, make_event):
        resp = make_dispatcher(log).dispatch(inbound(make_event("customer.created")))
        assert resp.status == 200
        assert resp.body == {"received": True, "ignored": True}
        assert log.calls == []

    def test_unparsable_body_is_500(self, log):
        resp = make_dispatcher(log).dispatch(inbound(body=b"not json at all"))
        assert resp.status == 500
        assert resp.body == {"error": "Webhook processing failed"}
        assert log.calls == []

    def test_each_collaborator_called_at_most_once(self, log, make_event):
        make_dispatcher(log).dispatch(inbound(make_event("checkout.session.completed")))
        kinds = [c[0] for c in log.calls]
        assert len(kinds) == len(set(kinds))
