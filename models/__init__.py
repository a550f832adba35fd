from .db import db
from .audit_log import AuditLog
from .service import Service
from .booking import Booking
from .slot_claim import SlotClaim
from .time_off import TimeOff
