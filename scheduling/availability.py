from dataclasses import dataclass
from typing import Optional

from scheduling import timeoff
from scheduling.timemath import (
    CANONICAL_SLOTS,
    DEFAULT_DURATION_MINUTES,
    format_minutes_to_label,
    intervals_overlap,
    parse_label_to_minutes,
)

ACTIVE_STATUSES = ("pending", "confirmed")

CURRENT_APPOINTMENT_REASON = "Your current appointment time"
PAST_SLOT_REASON = "This time has already passed"


@dataclass
class TimeSlot:
    label: str
    available: bool
    reason: Optional[str] = None

    def to_dict(self):
        out = {"time": self.label, "available": self.available}
        if self.reason:
            out["reason"] = self.reason
        return out


def is_active(booking) -> bool:
    return booking.status in ACTIVE_STATUSES


def booking_duration(booking) -> int:
    return booking.duration_minutes or DEFAULT_DURATION_MINUTES


def booking_reason(booking) -> str:
    start = parse_label_to_minutes(booking.appointment_time)
    end = format_minutes_to_label(start + booking_duration(booking))
    return f"Conflicts with {booking.service_name} from {booking.appointment_time} to {end}"


def find_blocker(day, start: int, duration: int, bookings, time_off, excluding_booking_id=None):
    """
    Return the reason [start, start+duration) on `day` cannot be booked, or
    None. Time off is checked before bookings; the first hit wins.
    """
    for period in time_off:
        reason = timeoff.block_reason(period, day, start, duration)
        if reason:
            return reason

    for booking in bookings:
        if not is_active(booking):
            continue
        if excluding_booking_id is not None and booking.id == excluding_booking_id:
            continue
        booked_day = getattr(booking, "appointment_date", None)
        if booked_day is not None and booked_day != day:
            continue
        other_start = parse_label_to_minutes(booking.appointment_time)
        if intervals_overlap(start, duration, other_start, booking_duration(booking)):
            return booking_reason(booking)

    return None


def compute_availability(day, duration_minutes, bookings, time_off, current_booking=None, now=None, slots=CANONICAL_SLOTS):
    """
    Annotate every canonical slot of `day` for a service lasting
    `duration_minutes`.

    `current_booking` is the booking being rescheduled: it never blocks
    anything and its own slot is reported as available. `now` (a datetime)
    marks slots that have already started as unavailable.
    """
    excluding_id = current_booking.id if current_booking is not None else None
    current_label = None
    if current_booking is not None and current_booking.appointment_date == day:
        current_label = current_booking.appointment_time

    result = []
    for label in slots:
        if label == current_label:
            result.append(TimeSlot(label, True, CURRENT_APPOINTMENT_REASON))
            continue

        start = parse_label_to_minutes(label)

        if now is not None and _has_passed(day, start, now):
            result.append(TimeSlot(label, False, PAST_SLOT_REASON))
            continue

        reason = find_blocker(day, start, duration_minutes, bookings, time_off, excluding_id)
        result.append(TimeSlot(label, reason is None, reason))

    return result


def _has_passed(day, start: int, now) -> bool:
    today = now.date()
    if day != today:
        return day < today
    return start <= now.hour * 60 + now.minute
