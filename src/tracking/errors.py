"""Exceptions raised by the WorkflowMax client layer."""


class TrackingError(Exception):
    """Base exception for tracking-system failures."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.detail = detail


class AuthError(TrackingError):
    """No usable credential: refresh token missing or the exchange was rejected."""


class FetchError(TrackingError):
    """The job list call failed or returned a body that could not be read."""
