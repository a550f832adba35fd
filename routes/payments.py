from urllib.parse import urlencode, urlparse, parse_qsl, urlunparse

import stripe
from flask import Blueprint, request, jsonify, g, current_app

from models import db
from models.service import Service
from scheduling.status import PENDING
from utils.auth_context import login_required
from utils.audit import log_event
from utils.booking_store import get_booking

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")

def _append_query(url: str, params: dict) -> str:
    if not url:
        return url
    parts = urlparse(url)
    query = dict(parse_qsl(parts.query))
    query.update({k: v for k, v in params.items() if v is not None})
    new_query = urlencode(query)
    return urlunparse(parts._replace(query=new_query))


@payments_bp.post("/checkout")
@login_required
def start_checkout():
    stripe.api_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not stripe.api_key:
        return jsonify(error="Stripe secret key missing (STRIPE_SECRET_KEY)"), 500

    data = request.get_json(silent=True) or {}
    booking_id = data.get("booking_id")
    if not booking_id:
        return jsonify(error="booking_id required"), 400
    if not str(booking_id).isdigit():
        return jsonify(error="booking_id must be an integer"), 400

    booking = get_booking(int(booking_id))
    if not booking or booking.customer_id != g.user_id:
        return jsonify(error="Booking not found"), 404
    if booking.status != PENDING:
        return jsonify(error=f"Booking is already {booking.status}"), 400

    success_url = current_app.config.get("STRIPE_SUCCESS_URL")
    cancel_url = current_app.config.get("STRIPE_CANCEL_URL")
    if not success_url or not cancel_url:
        return jsonify(error="Stripe success/cancel URLs not configured"), 500

    service = db.session.get(Service, booking.service_id)
    amount = int(service.price) if service else 0
    currency = current_app.config.get("PAYMENT_CURRENCY", "usd")

    session = stripe.checkout.Session.create(
        mode="payment",
        line_items=[{
            "price_data": {
                "currency": currency,
                "product_data": {"name": f"{booking.service_name} on {booking.appointment_date.isoformat()} at {booking.appointment_time}"},
                "unit_amount": amount,
            },
            "quantity": 1,
        }],
        success_url=_append_query(success_url, {"booking_id": str(booking.id)}),
        cancel_url=_append_query(cancel_url, {"booking_id": str(booking.id)}),
        metadata={
            "booking_id": str(booking.id),
            "customer_id": str(g.user_id),
        },
    )

    booking.payment_ref = session["id"]
    booking.amount_paid = amount
    db.session.commit()

    log_event("PAYMENT_SESSION_CREATED", actor_id=g.user_id, entity="booking", entity_id=booking.id, metadata={"stripe_session_id": session["id"]})
    return jsonify(checkout_url=session["url"]), 200
