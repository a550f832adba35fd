from models.db import db

class SlotClaim(db.Model):
    """One occupied block of the shared calendar, owned by an active booking."""

    __tablename__ = "slot_claims"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    appointment_date = db.Column(db.Date, nullable=False)
    block_start = db.Column(db.Integer, nullable=False)  # minutes since midnight

    booking = db.relationship("Booking", back_populates="claims")

    __table_args__ = (
        # Hard business-rule: two active bookings can never occupy the same block
        db.UniqueConstraint("appointment_date", "block_start", name="uq_slot_claim_block"),
    )
