from datetime import date, time
from types import SimpleNamespace

FUTURE_DAY = "2031-05-09"


def booking(id, label, duration=60, status="confirmed", day=date(2025, 5, 9), service_name="Consultation"):
    return SimpleNamespace(
        id=id,
        appointment_date=day,
        appointment_time=label,
        duration_minutes=duration,
        status=status,
        service_name=service_name,
        payment_ref=None,
    )


def time_off(title, start_date, end_date=None, start=None, end=None):
    return SimpleNamespace(
        title=title,
        start_date=start_date,
        end_date=end_date or start_date,
        is_all_day=start is None,
        start_time=time.fromisoformat(start) if start else None,
        end_time=time.fromisoformat(end) if end else None,
    )
