import os


class Config:
    """Base configuration. Shared across all environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY")
    APP_BASE_URL = os.environ.get("APP_BASE_URL", "https://lamiradacreativa.com")

    # --- Stripe ---
    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_PRICE_ID = os.environ.get("STRIPE_PRICE_ID")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    # Max age of a signed webhook timestamp, in seconds. 0 disables the check.
    STRIPE_WEBHOOK_TOLERANCE = int(os.environ.get("STRIPE_WEBHOOK_TOLERANCE", 300))

    # --- Auth0 (machine-to-machine app with Management API access) ---
    AUTH0_DOMAIN = os.environ.get("AUTH0_DOMAIN")                # e.g. lamirada.eu.auth0.com
    AUTH0_M2M_CLIENT_ID = os.environ.get("AUTH0_M2M_CLIENT_ID")
    AUTH0_M2M_CLIENT_SECRET = os.environ.get("AUTH0_M2M_CLIENT_SECRET")

    # --- Email (Resend) ---
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY")
    MAIL_FROM_ADDRESS = os.environ.get("MAIL_FROM_ADDRESS")      # e.g. hola@lamiradacreativa.com
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "La Mirada Creativa")
    PRODUCT_PDF_PATH = os.environ.get(
        "PRODUCT_PDF_PATH",
        os.path.join(os.path.dirname(__file__), "data", "la-mirada-creativa.pdf"),
    )

    # --- Analytics ---
    AMPLITUDE_API_KEY = os.environ.get("AMPLITUDE_API_KEY")
    META_PIXEL_ID = os.environ.get("META_PIXEL_ID")
    META_ACCESS_TOKEN = os.environ.get("META_ACCESS_TOKEN")

    # --- Rate limiting ---
    RATELIMIT_ENABLED = True

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "STRIPE_SECRET_KEY",
            "STRIPE_PRICE_ID",
            "STRIPE_WEBHOOK_SECRET",
            "AUTH0_DOMAIN",
            "AUTH0_M2M_CLIENT_ID",
            "AUTH0_M2M_CLIENT_SECRET",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True


class TestConfig(Config):
    """Testing — fake credentials, rate limiting off."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    APP_BASE_URL = "http://localhost:8888"
    STRIPE_SECRET_KEY = "sk_test_fake"
    STRIPE_PRICE_ID = "price_test_fake"
    STRIPE_WEBHOOK_SECRET = "whsec_test_fake"
    STRIPE_WEBHOOK_TOLERANCE = 300
    AUTH0_DOMAIN = "lamirada-test.eu.auth0.com"
    AUTH0_M2M_CLIENT_ID = "m2m_client_test"
    AUTH0_M2M_CLIENT_SECRET = "m2m_secret_test"
    RESEND_API_KEY = "re_test_fake"
    MAIL_FROM_ADDRESS = "hola@lamiradacreativa.test"
    PRODUCT_PDF_PATH = None  # no attachment unless a test sets one
    AMPLITUDE_API_KEY = "amp_test_fake"
    META_PIXEL_ID = "1234567890"
    META_ACCESS_TOKEN = "meta_test_fake"
    RATELIMIT_ENABLED = False

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
