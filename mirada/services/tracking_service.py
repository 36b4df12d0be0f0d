"""Tracking service — server-side analytics events.

Each business event goes to two collectors:
- Amplitude HTTP API v2. Accepts the browser's device_id so the server event
  joins the anonymous client-side session.
- Meta Conversions API. Identifies by the SHA-256 of the user key only.

Both calls run concurrently and are joined before track() returns. Each one
is wrapped on its own, so one collector failing never affects the other,
and track() itself never raises.
"""

import hashlib
import logging
import time
from concurrent.futures import ThreadPoolExecutor

import requests

from mirada.services.outcome import Outcome, TrackResult

logger = logging.getLogger(__name__)

AMPLITUDE_API_URL = "https://api2.amplitude.com/2/httpapi"
META_GRAPH_URL = "https://graph.facebook.com/v19.0"


def hash_user_key(user_key):
    """Normalized SHA-256 as Meta expects for customer information."""
    return hashlib.sha256(user_key.strip().lower().encode("utf-8")).hexdigest()


class EventTracker:
    def __init__(self, settings, timeout=10):
        self.settings = settings
        self.timeout = timeout

    # ──────────────────────────────────────────────
    # Collectors
    # ──────────────────────────────────────────────

    def _send_amplitude(self, event_name, properties, user_key, device_id):
        if not self.settings.amplitude_api_key:
            logger.warning("Amplitude event skipped — AMPLITUDE_API_KEY not configured.")
            return Outcome.failure("not configured")

        event = {
            "event_type": event_name,
            "user_id": user_key,
            "event_properties": properties,
            "time": int(time.time() * 1000),
        }
        if device_id:
            event["device_id"] = device_id

        resp = requests.post(
            AMPLITUDE_API_URL,
            json={"api_key": self.settings.amplitude_api_key, "events": [event]},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return Outcome.success()

    def _send_meta(self, event_name, properties, user_key, device_id):
        if not self.settings.meta_pixel_id or not self.settings.meta_access_token:
            logger.warning("Meta event skipped — META_PIXEL_ID or META_ACCESS_TOKEN not configured.")
            return Outcome.failure("not configured")

        hashed = hash_user_key(user_key)
        user_data = {"em": [hashed]} if "@" in user_key else {"external_id": [hashed]}
        custom_data = {k: v for k, v in properties.items() if v is not None}
        if "amount" in custom_data:
            custom_data["value"] = custom_data.pop("amount")

        resp = requests.post(
            f"{META_GRAPH_URL}/{self.settings.meta_pixel_id}/events",
            params={"access_token": self.settings.meta_access_token},
            json={
                "data": [{
                    "event_name": event_name,
                    "event_time": int(time.time()),
                    "action_source": "website",
                    "user_data": user_data,
                    "custom_data": custom_data,
                }],
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return Outcome.success()

    def _guarded(self, collector, send, *args):
        """Run one collector call, turning any exception into a failed Outcome."""
        try:
            outcome = send(*args)
        except Exception as e:
            logger.error(f"{collector} tracking failed for {args[0]}: {e}")
            return Outcome.failure(str(e))
        if outcome.ok:
            logger.info(f"{collector} tracked {args[0]}")
        return outcome

    # ──────────────────────────────────────────────
    # Public
    # ──────────────────────────────────────────────

    def track(self, event_name, properties, user_key, device_id=None) -> TrackResult:
        """Send *event_name* to both collectors and wait for both. Never raises."""
        properties = dict(properties or {})
        args = (event_name, properties, user_key, device_id)

        with ThreadPoolExecutor(max_workers=2) as pool:
            amplitude = pool.submit(self._guarded, "Amplitude", self._send_amplitude, *args)
            meta = pool.submit(self._guarded, "Meta", self._send_meta, *args)
            return TrackResult(amplitude=amplitude.result(), meta=meta.result())
