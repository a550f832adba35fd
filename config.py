import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as bookings.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "bookings.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Identity headers forwarded by the upstream auth gateway
    AUTH_USER_HEADER = os.getenv("AUTH_USER_HEADER", "X-User-Id")
    AUTH_ROLE_HEADER = os.getenv("AUTH_ROLE_HEADER", "X-User-Role")

    # Granularity of the slot_claims uniqueness guard; canonical slot starts
    # must be multiples of it
    SLOT_CLAIM_BLOCK_MINUTES = int(os.getenv("SLOT_CLAIM_BLOCK_MINUTES", "5"))

    # Stripe
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_SUCCESS_URL = os.getenv("STRIPE_SUCCESS_URL")
    STRIPE_CANCEL_URL = os.getenv("STRIPE_CANCEL_URL")
    PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd")

    # Callable(payment_ref) -> bool used for status reconciliation; None means Stripe
    PAYMENT_STATUS_LOOKUP = None

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
