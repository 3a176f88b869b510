"""Domain exceptions shared across the scheduling core.

The API layer maps each of these to an HTTP status; services and scripts
raise them directly and let them propagate.
"""


class TeamCalendarError(Exception):
    """Base exception for scheduling domain errors."""
    status_code = 500


class NotFound(TeamCalendarError):
    """Raised when a referenced event, team, group or record does not exist."""
    status_code = 404


class Conflict(TeamCalendarError):
    """Raised when a uniqueness constraint would be violated (e.g. duplicate exclusion)."""
    status_code = 409


class InvalidTimezone(TeamCalendarError):
    """Raised when a timezone name is not a known IANA zone."""
    status_code = 400


class ValidationError(TeamCalendarError):
    """Raised for malformed input such as a bad recurrence pattern or negative sequence."""
    status_code = 422


class Forbidden(TeamCalendarError):
    """Raised when the acting user may not modify a resource."""
    status_code = 403
