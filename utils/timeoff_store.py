from models import db
from models.time_off import TimeOff
from scheduling.timemath import minutes_to_time
from scheduling.timeoff import validate_time_off


def query_time_off(from_date=None, to_date=None):
    """Periods overlapping [from_date, to_date], ordered by start date."""
    q = TimeOff.query
    if from_date and to_date:
        q = q.filter(TimeOff.start_date <= to_date, TimeOff.end_date >= from_date)
    elif from_date:
        q = q.filter(TimeOff.end_date >= from_date)
    elif to_date:
        q = q.filter(TimeOff.start_date <= to_date)
    return q.order_by(TimeOff.start_date.asc(), TimeOff.id.asc()).all()


def _apply(period: TimeOff, fields: dict):
    period.title = fields["title"]
    period.description = fields["description"]
    period.type = fields["type"]
    period.start_date = fields["start_date"]
    period.end_date = fields["end_date"]
    period.is_all_day = fields["is_all_day"]
    period.start_time = minutes_to_time(fields["start_time"]) if fields["start_time"] is not None else None
    period.end_time = minutes_to_time(fields["end_time"]) if fields["end_time"] is not None else None


def create_time_off(data: dict, created_by=None) -> TimeOff:
    # Existing bookings inside the new period are left standing
    fields = validate_time_off(data)
    period = TimeOff(created_by=created_by)
    _apply(period, fields)
    db.session.add(period)
    db.session.commit()
    return period


def update_time_off(period: TimeOff, updates: dict) -> TimeOff:
    merged = period.to_dict()
    merged.update({k: v for k, v in updates.items() if k not in ("id", "created_by", "created_at")})
    if merged.get("is_all_day"):
        merged["start_time"] = merged["end_time"] = None

    fields = validate_time_off(merged)
    _apply(period, fields)
    db.session.commit()
    return period


def delete_time_off(time_off_id: int) -> bool:
    period = db.session.get(TimeOff, time_off_id)
    if not period:
        return False
    db.session.delete(period)
    db.session.commit()
    return True
