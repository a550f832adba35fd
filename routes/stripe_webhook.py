import stripe
from flask import Blueprint, request, jsonify, current_app

from models import db
from models.booking import Booking
from scheduling.status import PENDING
from utils.audit import log_event
from utils.booking_store import promote_paid_booking

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")


@webhook_bp.post("/stripe")
def stripe_webhook():
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    sig_header = request.headers.get("Stripe-Signature")
    payload = request.data

    if not endpoint_secret:
        return jsonify(error="Webhook secret not configured"), 500

    try:
        event = stripe.Webhook.construct_event(payload, sig_header, endpoint_secret)
    except Exception:
        return jsonify(error="Invalid webhook signature"), 400

    event_type = event["type"]
    if event_type in ("checkout.session.completed", "checkout.session.expired"):
        session = event["data"]["object"]
        session_id = session["id"]
        meta = session["metadata"] or {}

        booking = None
        booking_id = meta.get("booking_id")
        if booking_id:
            booking = db.session.get(Booking, int(booking_id))
        if not booking and session_id:
            booking = Booking.query.filter_by(payment_ref=session_id).first()

        if booking is None:
            return jsonify(received=True), 200

        if event_type == "checkout.session.completed":
            if booking.payment_ref is None:
                booking.payment_ref = session_id
            if promote_paid_booking(booking):
                log_event("BOOKING_PAYMENT_CONFIRMED", actor_id=None, entity="booking", entity_id=booking.id,
                          metadata={"stripe_session_id": session_id})
        elif booking.status == PENDING and booking.payment_status == "pending":
            booking.payment_status = "failed"
            db.session.commit()
            log_event("PAYMENT_EXPIRED", actor_id=None, entity="booking", entity_id=booking.id,
                      metadata={"stripe_session_id": session_id})

    return jsonify(received=True), 200
