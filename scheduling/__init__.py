from .errors import SchedulingError, ParseError, ValidationError, ConflictError, UpstreamUnavailable
from .timemath import (
    CANONICAL_SLOTS,
    DEFAULT_DURATION_MINUTES,
    parse_label_to_minutes,
    format_minutes_to_label,
    intervals_overlap,
)
from .availability import TimeSlot, compute_availability
from .conflicts import validate_booking
from .status import effective_status, reconcile_booking
