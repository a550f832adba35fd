import stripe
from flask import current_app

from scheduling.errors import UpstreamUnavailable


def stripe_payment_lookup(payment_ref: str) -> bool:
    """
    True when the Stripe checkout session has been paid.
    Raises UpstreamUnavailable when Stripe cannot answer.
    """
    stripe.api_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not stripe.api_key:
        raise UpstreamUnavailable("Stripe secret key missing (STRIPE_SECRET_KEY)")

    try:
        session = stripe.checkout.Session.retrieve(payment_ref)
    except Exception as exc:
        raise UpstreamUnavailable(f"Stripe lookup failed: {exc}") from exc

    return session["payment_status"] == "paid" or session["status"] == "complete"


def get_payment_lookup():
    return current_app.config.get("PAYMENT_STATUS_LOOKUP") or stripe_payment_lookup
