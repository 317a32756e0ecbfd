"""
Query errors - raised when a caller asks for something malformed.

Provider failures (APIError, CalendarNotFoundError, ...) live in
app.environments.base; these are the client-side counterparts and map to 400.
"""


class QueryValidationError(ValueError):
    """Base exception for malformed appointment queries."""
    pass


class InvalidRangeError(QueryValidationError):
    """Raised when a range ends before it starts."""

    def __init__(self, message: str = "End date must be greater than or equal to the start date."):
        super().__init__(message)
