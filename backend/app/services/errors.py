"""Typed error outcomes for activity, RSVP and user operations.

Every service operation either returns its result or raises one of these.
``app.main`` maps them to JSON responses of the form
``{"detail": <message>, "error": <kind>}`` with ``status_code``.
"""
from fastapi import status


class ActivityBoardError(Exception):
    """Base class for every recoverable failure surfaced to the caller."""

    kind = "Error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ActivityBoardError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(ActivityBoardError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(ActivityBoardError):
    kind = "ValidationError"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidTransition(ValidationError):
    """Lifecycle action requested from a state that does not allow it."""

    kind = "InvalidTransition"
    status_code = status.HTTP_409_CONFLICT


class DuplicateRsvp(ActivityBoardError):
    kind = "DuplicateRsvp"
    status_code = status.HTTP_409_CONFLICT


class InvalidReference(ActivityBoardError):
    kind = "InvalidReference"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class StorageError(ActivityBoardError):
    """Persistence failure. Transient; retrying is left to the caller."""

    kind = "StorageError"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class NotificationError(ActivityBoardError):
    """Email delivery failure. Logged by the dispatcher, never surfaced."""

    kind = "NotificationError"
    status_code = status.HTTP_502_BAD_GATEWAY
