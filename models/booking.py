from datetime import datetime
from models.db import db

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    customer_id = db.Column(db.String(64), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    # Denormalized at booking time; never re-read from the service afterwards
    service_name = db.Column(db.String(120), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=60)

    appointment_date = db.Column(db.Date, nullable=False, index=True)
    appointment_time = db.Column(db.String(10), nullable=False)  # canonical label, e.g. "9:00 AM"

    status = db.Column(db.String(20), nullable=False, default="pending")
    # status values: pending, confirmed, completed, cancelled
    payment_status = db.Column(db.String(20), nullable=False, default="pending")
    # payment_status values: pending, paid, refunded, failed
    payment_ref = db.Column(db.String(255), nullable=True, unique=True, index=True)  # Stripe checkout session id
    amount_paid = db.Column(db.Integer, nullable=True)  # smallest unit

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    claims = db.relationship("SlotClaim", back_populates="booking", cascade="all, delete-orphan")

    def to_dict(self, status=None):
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "service_id": self.service_id,
            "service_name": self.service_name,
            "date": self.appointment_date.isoformat(),
            "time": self.appointment_time,
            "duration_minutes": self.duration_minutes,
            "status": status or self.status,
            "payment_status": self.payment_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
