from models import db
from models.service import Service

DEFAULT_SERVICES = [
    # name, duration_minutes, price (cents)
    ("Business Consultation", 60, 9900),
    ("Haircut & Styling", 45, 4900),
    ("Home Repair", 120, 12900),
    ("Legal Consultation", 90, 14900),
    ("Massage Therapy", 60, 7900),
    ("Plumbing Service", 90, 10900),
]

def seed_services():
    existing = {s.name for s in Service.query.all()}
    added = 0
    for name, duration, price in DEFAULT_SERVICES:
        if name not in existing:
            db.session.add(Service(name=name, duration_minutes=duration, price=price))
            added += 1
    db.session.commit()
    return added
