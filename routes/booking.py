from datetime import date, datetime

from flask import Blueprint, request, jsonify, g

from models import db
from models.booking import Booking
from models.service import Service
from scheduling.availability import compute_availability
from scheduling.errors import ConflictError, ParseError, ValidationError
from scheduling.status import CANCELLED, reconcile_booking
from scheduling.timemath import parse_duration_to_minutes, parse_iso_date
from security.rbac import ADMIN, can_access_booking, require_roles
from utils.auth_context import login_required
from utils.audit import log_event
from utils.booking_store import (
    book_appointment,
    delete_booking,
    ensure_changeable,
    get_booking,
    list_active_by_date,
    promote_paid_booking,
    reschedule_appointment,
    update_status,
)
from utils.payments import get_payment_lookup
from utils.timeoff_store import query_time_off

booking_bp = Blueprint("booking", __name__)


def _own_booking(booking_id: int):
    booking = get_booking(booking_id)
    if not booking or not can_access_booking(booking.customer_id):
        return None
    return booking


def _effective(booking: Booking):
    """Read-path reconciliation; a confirmed payment is persisted once."""
    status, paid = reconcile_booking(booking, date.today(), get_payment_lookup())
    if paid is True and promote_paid_booking(booking):
        log_event("BOOKING_PAYMENT_CONFIRMED", actor_id=None, entity="booking", entity_id=booking.id)
    return status


# ---------- ADMIN: manage services ----------
@booking_bp.post("/services")
@require_roles(ADMIN)
def create_service():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return jsonify(error="Service name required"), 400

    try:
        duration = parse_duration_to_minutes(data.get("duration", 60))
    except ParseError as exc:
        return jsonify(error=str(exc)), 400

    price = data.get("price") or 0
    if not str(price).isdigit():
        return jsonify(error="price must be a non-negative whole number"), 400
    price = int(price)
    if Service.query.filter_by(name=name).first():
        return jsonify(error="Service name already exists"), 409

    service = Service(
        name=name,
        description=(data.get("description") or "").strip() or None,
        duration_minutes=duration,
        price=price,
    )
    db.session.add(service)
    db.session.commit()

    log_event("SERVICE_CREATE", actor_id=g.user_id, entity="service", entity_id=service.id)
    return jsonify(id=service.id, name=service.name, duration_minutes=service.duration_minutes), 201


@booking_bp.get("/services")
def list_services():
    services = Service.query.filter_by(is_active=True).order_by(Service.name.asc()).all()
    return jsonify([
        {
            "id": s.id,
            "name": s.name,
            "description": s.description,
            "duration_minutes": s.duration_minutes,
            "price": s.price,
        }
        for s in services
    ]), 200


# ---------- CUSTOMERS: view availability ----------
@booking_bp.get("/availability")
def availability():
    service_id = request.args.get("serviceId", type=int)
    date_str = request.args.get("date")
    booking_id = request.args.get("bookingId", type=int)

    if not date_str:
        return jsonify(error="Date parameter is required"), 400
    try:
        day = parse_iso_date(date_str)
    except ParseError as exc:
        return jsonify(error=str(exc)), 400

    current = None
    if booking_id:
        if getattr(g, "user_id", None) is None:
            return jsonify(error="Authentication required"), 401
        current = _own_booking(booking_id)
        if not current:
            return jsonify(error="Booking not found"), 404

    if current is not None:
        # A reschedule keeps the duration denormalized on the booking
        duration = current.duration_minutes
    else:
        service = db.session.get(Service, service_id) if service_id else None
        if not service or not service.is_active:
            return jsonify(error="Service not found"), 404
        duration = service.duration_minutes

    slots = compute_availability(
        day,
        duration,
        list_active_by_date(day),
        query_time_off(day, day),
        current_booking=current,
        now=datetime.now(),
    )

    return jsonify(
        date=day.isoformat(),
        availability=[s.to_dict() for s in slots],
        availableTimes=[s.label for s in slots if s.available],
    ), 200


# ---------- CUSTOMERS: book a slot (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("/bookings")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    service_id = data.get("service_id")
    date_str = data.get("date")
    time_label = data.get("time")
    if not service_id or not date_str or not time_label:
        return jsonify(error="service_id, date, time are required"), 400

    service = db.session.get(Service, int(service_id)) if str(service_id).isdigit() else None
    if not service or not service.is_active:
        return jsonify(error="Service not found"), 404

    try:
        day = parse_iso_date(date_str)
        booking = book_appointment(g.user_id, service, day, time_label, datetime.now())
    except (ParseError, ValidationError) as exc:
        return jsonify(error=str(exc)), 400
    except ConflictError as exc:
        log_event("BOOKING_CONFLICT", actor_id=g.user_id, entity="service", entity_id=service.id,
                  metadata={"date": date_str, "time": time_label, "reason": str(exc)})
        return jsonify(error=str(exc)), 409

    log_event("BOOKING_CREATE", actor_id=g.user_id, entity="booking", entity_id=booking.id,
              metadata={"date": date_str, "time": time_label})
    return jsonify(booking.to_dict()), 201


# ---------- CUSTOMERS: reschedule ----------
@booking_bp.post("/bookings/<int:booking_id>/reschedule")
@login_required
def reschedule_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    date_str = data.get("date")
    time_label = data.get("time")
    if not date_str or not time_label:
        return jsonify(error="date and time are required"), 400

    booking = _own_booking(booking_id)
    if not booking:
        return jsonify(error="Booking not found"), 404

    previous = {"date": booking.appointment_date.isoformat(), "time": booking.appointment_time}
    try:
        day = parse_iso_date(date_str)
        reschedule_appointment(booking, day, time_label, datetime.now())
    except (ParseError, ValidationError) as exc:
        return jsonify(error=str(exc)), 400
    except ConflictError as exc:
        log_event("BOOKING_RESCHEDULE_CONFLICT", actor_id=g.user_id, entity="booking", entity_id=booking_id,
                  metadata={"date": date_str, "time": time_label, "reason": str(exc)})
        return jsonify(error=str(exc)), 409

    log_event("BOOKING_RESCHEDULE", actor_id=g.user_id, entity="booking", entity_id=booking.id,
              metadata={"from": previous, "to": {"date": date_str, "time": time_label}})
    return jsonify(booking.to_dict()), 200


# ---------- CUSTOMERS: cancel ----------
@booking_bp.post("/bookings/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or None

    booking = _own_booking(booking_id)
    if not booking:
        return jsonify(error="Booking not found"), 404

    try:
        ensure_changeable(booking, date.today(), "cancel")
    except ValidationError as exc:
        return jsonify(error=str(exc)), 400

    update_status(booking, CANCELLED, reason=reason)

    log_event("BOOKING_CANCEL", actor_id=g.user_id, entity="booking", entity_id=booking.id, metadata={"reason": reason})
    return jsonify(booking.to_dict()), 200


# ---------- CUSTOMERS / ADMIN: delete an unpaid booking ----------
@booking_bp.post("/bookings/<int:booking_id>/delete")
@login_required
def remove_booking(booking_id: int):
    booking = _own_booking(booking_id)
    if not booking:
        return jsonify(error="Booking not found"), 404

    snapshot = {
        "customer_id": booking.customer_id,
        "date": booking.appointment_date.isoformat(),
        "time": booking.appointment_time,
    }
    try:
        delete_booking(booking)
    except ValidationError as exc:
        return jsonify(error=str(exc)), 400

    log_event("BOOKING_DELETE", actor_id=g.user_id, entity="booking", entity_id=booking_id, metadata=snapshot)
    return jsonify(message="Booking deleted", id=booking_id), 200


# ---------- CUSTOMERS: view bookings ----------
@booking_bp.get("/bookings/me")
@login_required
def my_bookings():
    rows = (
        Booking.query
        .filter_by(customer_id=g.user_id)
        .order_by(Booking.created_at.desc())
        .all()
    )
    return jsonify([b.to_dict(status=_effective(b)) for b in rows]), 200


@booking_bp.get("/bookings/<int:booking_id>")
@login_required
def booking_details(booking_id: int):
    booking = _own_booking(booking_id)
    if not booking:
        return jsonify(error="Booking not found"), 404
    return jsonify(booking.to_dict(status=_effective(booking))), 200


@booking_bp.get("/bookings/<int:booking_id>/status")
@login_required
def booking_status(booking_id: int):
    booking = _own_booking(booking_id)
    if not booking:
        return jsonify(error="Booking not found"), 404
    return jsonify(id=booking.id, status=_effective(booking)), 200
