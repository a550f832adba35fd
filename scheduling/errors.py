class SchedulingError(Exception):
    """Base class for every failure raised by the scheduling engine."""


class ParseError(SchedulingError):
    """Malformed date, time label or clock value supplied by the caller."""


class ValidationError(SchedulingError):
    """Well-formed input that breaks a business rule (e.g. end before start)."""


class ConflictError(SchedulingError):
    """Proposed booking overlaps another booking or a blocking time off."""


class UpstreamUnavailable(SchedulingError):
    """The external payment-status lookup could not be completed."""
