import re
from datetime import date, datetime, time

from scheduling.errors import ParseError

# Start labels offered for every service, in display order
CANONICAL_SLOTS = (
    "9:00 AM",
    "10:00 AM",
    "11:00 AM",
    "1:00 PM",
    "2:00 PM",
    "3:00 PM",
    "4:00 PM",
)

# Used whenever a booking's own duration is unknown (known approximation)
DEFAULT_DURATION_MINUTES = 60

MINUTES_PER_DAY = 24 * 60

_DURATION_RE = re.compile(r"(?<![\d.])(\d+(?:\.\d+)?)\s*(min|hour|hr)", re.IGNORECASE)


def parse_label_to_minutes(label: str) -> int:
    """
    Parse a 12-hour label such as "9:00 AM" into minutes since midnight.
    Raises ParseError on anything else.
    """
    if not isinstance(label, str):
        raise ParseError(f"Invalid time label: {label!r}")

    parts = label.strip().split()
    if len(parts) != 2:
        raise ParseError(f"Invalid time label: {label!r} (expected 'h:mm AM/PM')")

    clock, period = parts
    period = period.upper()
    if period not in ("AM", "PM"):
        raise ParseError(f"Invalid time label: {label!r} (missing AM/PM)")
    if ":" not in clock:
        raise ParseError(f"Invalid time label: {label!r} (missing ':')")

    hour_str, minute_str = clock.split(":", 1)
    if not hour_str.isdigit() or not minute_str.isdigit() or len(minute_str) != 2:
        raise ParseError(f"Invalid time label: {label!r}")

    hour = int(hour_str)
    minute = int(minute_str)
    if not 1 <= hour <= 12 or not 0 <= minute <= 59:
        raise ParseError(f"Invalid time label: {label!r}")

    if period == "PM" and hour < 12:
        hour += 12
    if period == "AM" and hour == 12:
        hour = 0

    return hour * 60 + minute


def format_minutes_to_label(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    period = "PM" if hours >= 12 else "AM"

    if hours > 12:
        hours -= 12
    elif hours == 0:
        hours = 12

    return f"{hours}:{mins:02d} {period}"


def intervals_overlap(start_a: int, dur_a: int, start_b: int, dur_b: int) -> bool:
    # Half-open: [a, a+dur) and [b, b+dur). Touching ends do not overlap.
    return start_a < start_b + dur_b and start_a + dur_a > start_b


def parse_clock_time(value) -> int:
    """24-hour "HH:MM" / "HH:MM:SS" string (or datetime.time) to minutes."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    if not isinstance(value, str):
        raise ParseError(f"Invalid time: {value!r}")

    pieces = value.strip().split(":")
    if len(pieces) not in (2, 3) or not all(p.isdigit() for p in pieces):
        raise ParseError(f"Invalid time: {value!r} (expected HH:MM)")

    hour, minute = int(pieces[0]), int(pieces[1])
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise ParseError(f"Invalid time: {value!r}")
    return hour * 60 + minute


def minutes_to_time(minutes: int) -> time:
    hours, mins = divmod(int(minutes), 60)
    return time(hours, mins)


def parse_iso_date(value) -> date:
    """
    Expect "YYYY-MM-DD". A full ISO datetime is accepted and truncated to
    its calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ParseError("Invalid date. Use YYYY-MM-DD")

    raw = value.strip()
    try:
        if "T" in raw:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        return date.fromisoformat(raw)
    except ValueError:
        raise ParseError("Invalid date. Use YYYY-MM-DD") from None


def require_canonical_label(label: str) -> int:
    """Return the label's start minute, rejecting labels outside the slot set."""
    minutes = parse_label_to_minutes(label)
    if label not in CANONICAL_SLOTS:
        raise ParseError(f"Unknown time slot: {label!r}")
    return minutes


def parse_duration_to_minutes(value) -> int:
    """Accept an int or a string like "60 min" / "2 hours"."""
    if isinstance(value, bool):
        raise ParseError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        if value <= 0:
            raise ParseError(f"Invalid duration: {value!r}")
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return parse_duration_to_minutes(int(value.strip()))

    match = _DURATION_RE.search(value or "") if isinstance(value, str) else None
    if not match:
        return DEFAULT_DURATION_MINUTES

    amount = float(match.group(1))
    if match.group(2).lower() in ("hour", "hr"):
        amount *= 60
    minutes = int(round(amount))
    if minutes <= 0:
        raise ParseError(f"Invalid duration: {value!r}")
    return minutes
