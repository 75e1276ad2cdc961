# clinic/core/errors.py
"""
Typed failures of the booking core.

Every error carries a machine-readable ``kind`` and a human-readable
``message``. Routers never translate them one by one: the exception handler
registered in ``clinic.main`` maps each family to its HTTP status.
"""
from __future__ import annotations

from enum import Enum

from starlette import status


class ErrorKind(str, Enum):
    # validation
    PAST_DATE = "PastDate"
    WEEKEND = "Weekend"
    MALFORMED_DATE = "MalformedDate"
    MALFORMED_TIME = "MalformedTime"
    OUT_OF_HOURS = "OutOfHours"
    INVALID_CARD = "InvalidCard"
    INVALID_EXPIRY = "InvalidExpiry"
    CARD_EXPIRED = "CardExpired"
    INVALID_CVV = "InvalidCvv"
    INVALID_CARD_HOLDER = "InvalidCardHolder"
    # eligibility
    DOCTOR_NOT_FOUND = "DoctorNotFound"
    PATIENT_NOT_FOUND = "PatientNotFound"
    # conflict
    SLOT_UNAVAILABLE = "SlotUnavailable"
    DUPLICATE_SLOT = "DuplicateSlot"
    ALREADY_PAID = "AlreadyPaid"
    ALREADY_CANCELLED = "AlreadyCancelled"
    CANNOT_CANCEL_COMPLETED = "CannotCancelCompleted"
    ALREADY_COMPLETED = "AlreadyCompleted"
    # precondition
    PAYMENT_REQUIRED = "PaymentRequired"
    # not found
    APPOINTMENT_NOT_FOUND = "AppointmentNotFound"


class BookingError(Exception):
    """Base class for user-facing failures of the scheduling core."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value!r}, {self.message!r})"


class ValidationFailed(BookingError):
    """Requested date/time or card data breaks a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST


class EligibilityError(BookingError):
    """Doctor or patient missing, inactive, or of the wrong role."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BookingError):
    """The request collides with the current state of an appointment or slot."""

    status_code = status.HTTP_409_CONFLICT


class PreconditionError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND


__all__ = [
    "ErrorKind",
    "BookingError",
    "ValidationFailed",
    "EligibilityError",
    "ConflictError",
    "PreconditionError",
    "NotFoundError",
]
