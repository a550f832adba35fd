import logging
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking
from models.slot_claim import SlotClaim
from scheduling.availability import ACTIVE_STATUSES
from scheduling.conflicts import validate_booking
from scheduling.errors import ConflictError, ValidationError
from scheduling.status import CANCELLED, COMPLETED, CONFIRMED, PENDING, effective_status, lookup_payment
from scheduling.timemath import parse_label_to_minutes, require_canonical_label
from utils.timeoff_store import query_time_off

logger = logging.getLogger(__name__)

SLOT_TAKEN_REASON = "Slot already booked"


def claim_blocks(start: int, duration: int, block: int):
    """Block starts covering [start, start+duration) at `block`-minute granularity."""
    first = start - start % block
    last = -(-(start + duration) // block) * block
    return range(first, last, block)


def _claims_for(booking: Booking):
    block = current_app.config.get("SLOT_CLAIM_BLOCK_MINUTES", 5)
    start = parse_label_to_minutes(booking.appointment_time)
    return [
        SlotClaim(appointment_date=booking.appointment_date, block_start=b)
        for b in claim_blocks(start, booking.duration_minutes, block)
    ]


# ---------- reads ----------

def list_active_by_date(day):
    return (
        Booking.query
        .filter(Booking.appointment_date == day, Booking.status.in_(ACTIVE_STATUSES))
        .order_by(Booking.id.asc())
        .all()
    )


def get_booking(booking_id):
    return db.session.get(Booking, booking_id)


# ---------- writes ----------

def insert_booking(booking: Booking) -> Booking:
    """
    Persist a new active booking together with its slot claims. A concurrent
    writer that got there first surfaces as ConflictError.
    """
    booking.claims = _claims_for(booking) if booking.status in ACTIVE_STATUSES else []
    db.session.add(booking)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(SLOT_TAKEN_REASON) from None
    return booking


def update_date_time(booking: Booking, day, label: str) -> bool:
    booking.appointment_date = day
    booking.appointment_time = label
    booking.updated_at = datetime.utcnow()

    # Old claims must be gone before the new ones are inserted
    booking.claims.clear()
    db.session.flush()
    booking.claims = _claims_for(booking)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(SLOT_TAKEN_REASON) from None
    return True


def update_status(booking: Booking, status: str, reason=None) -> bool:
    """Returns False when the booking already had `status`."""
    if booking.status == status:
        return False

    booking.status = status
    booking.updated_at = datetime.utcnow()
    if status == CANCELLED:
        booking.cancelled_at = datetime.utcnow()
        booking.cancel_reason = reason
    if status not in ACTIVE_STATUSES:
        booking.claims.clear()
    db.session.commit()
    return True


def delete_booking(booking: Booking):
    """Remove an unpaid booking outright; its slot claims go with it."""
    if booking.status != PENDING:
        raise ValidationError("Only pending bookings can be deleted")
    db.session.delete(booking)
    db.session.commit()


# ---------- guarded operations ----------

def ensure_changeable(booking: Booking, today, action: str):
    """Completion is judged by date, whether or not it has been persisted yet."""
    status = effective_status(booking.status, None, booking.appointment_date, today)
    if status not in ACTIVE_STATUSES:
        raise ValidationError(f"Cannot {action} an appointment that is {status}")


def _ensure_not_past(day, label: str, now: datetime):
    if day < now.date():
        raise ValidationError("Cannot book a date in the past")
    if day == now.date() and parse_label_to_minutes(label) <= now.hour * 60 + now.minute:
        raise ValidationError("Cannot book past/started slots")


def book_appointment(customer_id: str, service, day, label: str, now: datetime) -> Booking:
    """Validate against current bookings and time off, then insert."""
    require_canonical_label(label)
    _ensure_not_past(day, label, now)

    ok, reason = validate_booking(
        day, label, service.duration_minutes,
        list_active_by_date(day), query_time_off(day, day),
    )
    if not ok:
        raise ConflictError(reason)

    booking = Booking(
        customer_id=customer_id,
        service_id=service.id,
        service_name=service.name,
        duration_minutes=service.duration_minutes,
        appointment_date=day,
        appointment_time=label,
        status=PENDING,
        payment_status="pending",
    )
    return insert_booking(booking)


def reschedule_appointment(booking: Booking, day, label: str, now: datetime) -> Booking:
    require_canonical_label(label)

    ensure_changeable(booking, now.date(), "reschedule")
    if booking.appointment_date == day and booking.appointment_time == label:
        raise ValidationError("New date and time are the same as the current appointment")
    _ensure_not_past(day, label, now)

    ok, reason = validate_booking(
        day, label, booking.duration_minutes,
        list_active_by_date(day), query_time_off(day, day),
        excluding_booking_id=booking.id,
    )
    if not ok:
        raise ConflictError(reason)

    update_date_time(booking, day, label)
    return booking


# ---------- status persistence ----------

def promote_paid_booking(booking: Booking) -> bool:
    """pending -> confirmed with payment marked paid. Safe to call repeatedly."""
    if booking.status != PENDING:
        return False
    booking.payment_status = "paid"
    return update_status(booking, CONFIRMED)


def complete_past_bookings(today):
    rows = (
        Booking.query
        .filter(Booking.status == CONFIRMED, Booking.appointment_date < today)
        .order_by(Booking.appointment_date.asc())
        .all()
    )
    for booking in rows:
        update_status(booking, COMPLETED)
    return rows


def refresh_statuses(today, lookup):
    """
    Persisted reconciliation: confirm paid pending bookings, then complete
    confirmed bookings whose date has passed.
    """
    confirmed = 0
    pending = (
        Booking.query
        .filter(Booking.status == PENDING, Booking.payment_ref.isnot(None))
        .all()
    )
    for booking in pending:
        if lookup_payment(booking, lookup) is True and promote_paid_booking(booking):
            confirmed += 1

    completed = complete_past_bookings(today)
    logger.info("Status refresh: %d confirmed, %d completed", confirmed, len(completed))
    return {"confirmed": confirmed, "completed": len(completed)}
