"""Identity service — Auth0 Management API calls.

Responsible for:
- Getting a Management API token (client-credentials grant)
- Looking up users by email
- Creating passwordless (email connection) users on purchase
- Patching app_metadata on existing users to grant entitlement

One IdentityClient is built per request, so the token it caches lives
for a single webhook invocation only.
"""

import logging
from datetime import datetime, timezone
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

PASSWORDLESS_CONNECTION = "email"


class IdentityProviderError(Exception):
    """Raised when Auth0 rejects a call or cannot be reached."""


class IdentityClient:
    REQUIRED_SETTINGS = (
        "AUTH0_DOMAIN",
        "AUTH0_M2M_CLIENT_ID",
        "AUTH0_M2M_CLIENT_SECRET",
    )

    def __init__(self, settings, timeout=15):
        self.settings = settings
        self.timeout = timeout
        self._token = None

    @property
    def base_url(self):
        return f"https://{self.settings.auth0_domain}"

    # ──────────────────────────────────────────────
    # HTTP helpers
    # ──────────────────────────────────────────────

    def _request(self, method, path, **kwargs):
        """Send a request to Auth0 and return the decoded JSON (or None)."""
        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise IdentityProviderError(f"Auth0 {method} {path} failed: {e}") from e

        if not resp.ok:
            raise IdentityProviderError(
                f"Auth0 {method} {path} returned {resp.status_code}: {resp.text}"
            )
        if not resp.content:
            return None
        return resp.json()

    def _auth_headers(self):
        return {"Authorization": f"Bearer {self.get_token()}"}

    def get_token(self):
        """Management API access token, fetched once per client."""
        if self._token:
            return self._token

        data = self._request(
            "POST",
            "/oauth/token",
            json={
                "client_id": self.settings.auth0_m2m_client_id,
                "client_secret": self.settings.auth0_m2m_client_secret,
                "audience": f"{self.base_url}/api/v2/",
                "grant_type": "client_credentials",
            },
        )
        token = (data or {}).get("access_token")
        if not token:
            raise IdentityProviderError("Auth0 token response had no access_token")
        self._token = token
        return token

    # ──────────────────────────────────────────────
    # Users
    # ──────────────────────────────────────────────

    def find_users_by_email(self, email):
        """Return the list of Auth0 users registered with *email*."""
        users = self._request(
            "GET",
            "/api/v2/users-by-email",
            params={"email": email},
            headers=self._auth_headers(),
        )
        return users or []

    def lookup(self, email):
        """Return {exists, purchased} for *email*.

        purchased is only present when the user exists.
        """
        users = self.find_users_by_email(email)
        if not users:
            return {"exists": False}

        app_metadata = users[0].get("app_metadata") or {}
        return {"exists": True, "purchased": app_metadata.get("purchased") is True}

    def upsert(self, email, display_name=None, external_customer_id=None):
        """Create or update the user for *email* and mark it as purchased.

        Existing users only get their app_metadata patched; their
        connection/login method is left alone. New users are created on the
        passwordless email connection with a pre-verified address.

        Returns a dict with created, existing, id and email.
        Raises IdentityProviderError on any Auth0 failure.
        """
        app_metadata = {
            "purchased": True,
            "stripe_customer_id": external_customer_id,
            "purchase_date": datetime.now(timezone.utc).isoformat(),
        }

        users = self.find_users_by_email(email)
        if users:
            user_id = users[0]["user_id"]
            self._request(
                "PATCH",
                f"/api/v2/users/{quote(user_id, safe='')}",
                json={"app_metadata": app_metadata},
                headers=self._auth_headers(),
            )
            logger.info(f"Auth0 user already exists, entitlement granted: {email}")
            return {"created": False, "existing": True, "id": user_id, "email": email}

        new_user = self._request(
            "POST",
            "/api/v2/users",
            json={
                "email": email,
                "name": display_name or email.split("@")[0],
                "connection": PASSWORDLESS_CONNECTION,
                "email_verified": True,
                "app_metadata": app_metadata,
            },
            headers=self._auth_headers(),
        )
        user_id = (new_user or {}).get("user_id")
        logger.info(f"Passwordless Auth0 user created: {email} ({user_id})")
        return {"created": True, "existing": False, "id": user_id, "email": email}
