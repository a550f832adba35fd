from scheduling.availability import find_blocker
from scheduling.timemath import require_canonical_label


def validate_booking(day, label, duration_minutes, bookings, time_off, excluding_booking_id=None):
    """
    Authoritative accept/reject for a single proposed booking.

    Returns (ok, reason). Raises ParseError when `label` is not one of the
    canonical slots.
    """
    start = require_canonical_label(label)
    reason = find_blocker(day, start, duration_minutes, bookings, time_off, excluding_booking_id)
    if reason:
        return False, reason
    return True, None
