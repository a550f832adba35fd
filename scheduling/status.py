import logging

from scheduling.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"

BOOKING_STATUSES = (PENDING, CONFIRMED, COMPLETED, CANCELLED)
PAYMENT_STATUSES = ("pending", "paid", "refunded", "failed")


def effective_status(stored_status: str, payment_complete, appointment_date, today) -> str:
    """
    Derive the status shown to callers. `payment_complete` is True, False or
    None (unknown); only True promotes. Date comparison is date-only and is
    applied after the payment promotion.
    """
    if stored_status == CANCELLED:
        return CANCELLED

    status = stored_status
    if status == PENDING and payment_complete is True:
        status = CONFIRMED
    if status == CONFIRMED and appointment_date < today:
        status = COMPLETED
    return status


def lookup_payment(booking, lookup):
    """
    Best-effort payment check. Returns None when there is nothing to look up
    or the provider is unavailable.
    """
    if booking.status != PENDING or not booking.payment_ref or lookup is None:
        return None
    try:
        return lookup(booking.payment_ref)
    except UpstreamUnavailable as exc:
        logger.warning("Payment lookup failed for booking %s: %s", booking.id, exc)
        return None


def reconcile_booking(booking, today, lookup=None):
    """Return (effective_status, payment_complete) for a stored booking."""
    payment_complete = lookup_payment(booking, lookup)
    status = effective_status(booking.status, payment_complete, booking.appointment_date, today)
    return status, payment_complete
