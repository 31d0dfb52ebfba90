"""
Domain exceptions for the booking engine.

Services raise these instead of HTTP errors; the exception handler in
main.py maps each class to its HTTP status code and JSON body.
"""

from typing import Any, Dict, Optional

from fastapi import status


class BookingError(Exception):
    """Base exception for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        """JSON body returned to the client."""
        body: Dict[str, Any] = {"error": self.message}
        body.update(self.details)
        return body


class ValidationError(BookingError):
    """Malformed or out-of-range input, rejected before touching the store."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidStateError(BookingError):
    """The resource exists but is not in a state that allows the operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed in the current state"


class UnauthorizedError(BookingError):
    """Token or session does not grant access to the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class NotFoundError(BookingError):
    """Unknown appointment, professional, service or waitlist entry."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(BookingError):
    """The requested interval overlaps an existing booking."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Time slot is already booked"


class ExpiredError(BookingError):
    """A waitlist priority offer is past its window."""

    status_code = status.HTTP_410_GONE
    default_message = "This offer has expired"


class LimitReachedError(BookingError):
    """A plan-level cap prevents the booking."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Appointment limit reached for the current plan"

    def to_response(self) -> Dict[str, Any]:
        body = super().to_response()
        body["limitReached"] = True
        return body
