from datetime import date

from flask import Blueprint, jsonify, g, request

from models.booking import Booking
from scheduling.errors import ParseError
from scheduling.status import BOOKING_STATUSES, reconcile_booking
from scheduling.timemath import parse_iso_date
from security.rbac import ADMIN, require_roles
from utils.audit import log_event
from utils.booking_store import refresh_statuses
from utils.payments import get_payment_lookup

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/bookings")
@require_roles(ADMIN)
def list_all_bookings():
    status = (request.args.get("status") or "").strip().lower()
    date_str = request.args.get("date")  # YYYY-MM-DD
    customer_id = (request.args.get("customer_id") or "").strip()

    q = Booking.query
    if customer_id:
        q = q.filter(Booking.customer_id == customer_id)
    if status:
        if status not in BOOKING_STATUSES:
            return jsonify(error=f"status must be one of: {', '.join(BOOKING_STATUSES)}"), 400
        q = q.filter(Booking.status == status)

    if date_str:
        try:
            day = parse_iso_date(date_str)
        except ParseError as exc:
            return jsonify(error=str(exc)), 400
        q = q.filter(Booking.appointment_date == day)

    rows = q.order_by(Booking.appointment_date.asc(), Booking.id.asc()).limit(200).all()

    # Display-time derivation only; persisting happens on refresh
    today = date.today()
    return jsonify([
        b.to_dict(status=reconcile_booking(b, today)[0]) | {"stored_status": b.status}
        for b in rows
    ]), 200


@admin_bp.post("/bookings/refresh-statuses")
@require_roles(ADMIN)
def refresh_booking_statuses():
    counts = refresh_statuses(date.today(), get_payment_lookup())
    log_event("ADMIN_STATUS_REFRESH", actor_id=g.user_id, metadata=counts)
    return jsonify(message="Statuses refreshed", **counts), 200
