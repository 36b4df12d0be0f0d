"""Explicit settings object handed to every service.

Built once in create_app() from the Flask config and stored on
app.extensions["mirada"]. Services receive it through their constructors
and never read os.environ or current_app.config themselves.
"""

from dataclasses import dataclass, fields

from flask import current_app


@dataclass(frozen=True)
class Settings:
    app_base_url: str = ""

    stripe_secret_key: str | None = None
    stripe_price_id: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_webhook_tolerance: int = 300

    auth0_domain: str | None = None
    auth0_m2m_client_id: str | None = None
    auth0_m2m_client_secret: str | None = None

    resend_api_key: str | None = None
    mail_from_address: str | None = None
    mail_from_name: str = "La Mirada Creativa"
    product_pdf_path: str | None = None

    amplitude_api_key: str | None = None
    meta_pixel_id: str | None = None
    meta_access_token: str | None = None

    @classmethod
    def from_config(cls, config):
        """Pick the known keys (upper-case, as in Config) out of a mapping."""
        values = {}
        for f in fields(cls):
            key = f.name.upper()
            if key in config and config[key] is not None:
                values[f.name] = config[key]
        return cls(**values)

    def missing(self, *names):
        """Return the env-var names in *names* that have no value.

        Names are given as in the environment, e.g. "STRIPE_SECRET_KEY".
        """
        return [name for name in names if not getattr(self, name.lower(), None)]


def get_settings() -> Settings:
    """Settings for the current app."""
    return current_app.extensions["mirada"]
