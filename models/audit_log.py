import json
from datetime import datetime
from models.db import db


class AuditLog(db.Model):
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity", "entity_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(80), nullable=False, index=True)  # BOOKING_CREATE, TIMEOFF_DELETE, ...
    actor_id = db.Column(db.String(64), nullable=True)  # None for webhook and CLI events

    entity = db.Column(db.String(40), nullable=True)  # booking | service | time_off
    entity_id = db.Column(db.String(40), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def metadata_dict(self):
        return json.loads(self.metadata_json) if self.metadata_json else {}
