from scheduling.errors import ValidationError
from scheduling.timemath import format_minutes_to_label, intervals_overlap, parse_clock_time, parse_iso_date

TIME_OFF_TYPES = ("time_off", "holiday", "maintenance", "personal")


def covers(period, day) -> bool:
    return period.start_date <= day <= period.end_date


def window_minutes(period):
    """(start, end) minutes of a partial-day period; None for all-day."""
    if period.is_all_day:
        return None
    return parse_clock_time(period.start_time), parse_clock_time(period.end_time)


def format_window(period) -> str:
    window = window_minutes(period)
    if window is None:
        return "All day"
    start, end = window
    return f"{format_minutes_to_label(start)} - {format_minutes_to_label(end)}"


def block_reason(period, day, start: int, duration: int):
    """
    Reason a slot [start, start+duration) on `day` is blocked by `period`,
    or None when the period does not block it.
    """
    if not covers(period, day):
        return None
    if period.is_all_day:
        return f"Unavailable due to {period.title}"

    off_start, off_end = window_minutes(period)
    if intervals_overlap(start, duration, off_start, off_end - off_start):
        return f"Conflicts with {period.title} ({format_window(period)})"
    return None


def validate_time_off(data: dict) -> dict:
    """
    Normalize an admin-submitted time-off payload.
    Raises ParseError for malformed dates/times and ValidationError for
    rule violations; nothing is silently corrected.
    """
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("Title is required")

    period_type = (data.get("type") or "time_off").strip().lower()
    if period_type not in TIME_OFF_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(TIME_OFF_TYPES)}")

    if not data.get("start_date") or not data.get("end_date"):
        raise ValidationError("start_date and end_date are required")

    start_date = parse_iso_date(data.get("start_date"))
    end_date = parse_iso_date(data.get("end_date"))
    if end_date < start_date:
        raise ValidationError("End date must be on or after start date")

    is_all_day = data.get("is_all_day", True)
    if not isinstance(is_all_day, bool):
        raise ValidationError("is_all_day must be true or false")

    start_time = end_time = None
    if not is_all_day:
        if not data.get("start_time") or not data.get("end_time"):
            raise ValidationError("Start and end times are required for partial day time off")
        start_time = parse_clock_time(data["start_time"])
        end_time = parse_clock_time(data["end_time"])
        if end_time <= start_time:
            raise ValidationError("End time must be after start time")

    return {
        "title": title,
        "description": (data.get("description") or "").strip() or None,
        "type": period_type,
        "start_date": start_date,
        "end_date": end_date,
        "is_all_day": is_all_day,
        "start_time": start_time,
        "end_time": end_time,
    }
