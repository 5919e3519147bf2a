"""
Booking Service Exceptions

Business-rule failures raised by the availability, pricing, reservation,
booking and waitlist services. The HTTP layer renders every subclass as a
structured 4xx body via `to_dict()`; none of them should surface as a 500.
"""

from typing import Optional, Dict, Any


class BookingServiceError(Exception):
    """Base exception for booking core errors."""

    category = "error"
    status_code = 400

    def __init__(
        self,
        message: str,
        code: str = "BOOKING_SERVICE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category,
            "details": self.details,
        }


class NotFoundError(BookingServiceError):
    """Raised when a referenced court, coach, equipment item, booking, reservation or waitlist entry is missing."""

    category = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id=None, message: str = None):
        msg = message or f"{entity} not found" + (f": {entity_id}" if entity_id else "")
        super().__init__(
            message=msg,
            code=f"{entity.upper().replace(' ', '_')}_NOT_FOUND",
            details={"entity": entity, "id": str(entity_id) if entity_id else None},
        )


class ConflictError(BookingServiceError):
    """Raised when the request collides with existing state."""

    category = "conflict"
    status_code = 409

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, code=code, details=details)


class SlotUnavailableError(ConflictError):
    """Raised when a court, coach or equipment item is taken for the requested window."""

    def __init__(self, reason: str):
        super().__init__(message=reason, code="SLOT_UNAVAILABLE")


class StaleVersionError(ConflictError):
    """Raised when a booking update carries a version that no longer matches."""

    def __init__(self, booking_id=None, expected=None, actual=None):
        super().__init__(
            message="Booking has been modified by another process. Please refresh and try again.",
            code="STALE_VERSION",
            details={
                "booking_id": str(booking_id) if booking_id else None,
                "expected_version": expected,
                "current_version": actual,
            },
        )


class AuthorizationError(BookingServiceError):
    """Raised when the caller is neither the owner nor an admin."""

    category = "authorization"
    status_code = 403

    def __init__(self, message: str = "Not authorized to access this resource"):
        super().__init__(message=message, code="NOT_AUTHORIZED")


class BookingValidationError(BookingServiceError):
    """Raised for malformed requests (bad time range, past start, bad quantities)."""

    category = "validation"
    status_code = 400

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else {},
        )
