"""
Domain errors for event registration.

Every error carries a stable code, a short user-safe message and the HTTP
status it maps to. Routes never build HTTP errors themselves; the handler
registered in app.main renders any DomainError.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    DUPLICATE_REGISTRATION = "DUPLICATE_REGISTRATION"
    DUPLICATE_TICKET = "DUPLICATE_TICKET"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_AT_CAPACITY = "EVENT_AT_CAPACITY"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    CANCELLATION_INCONSISTENT = "CANCELLATION_INCONSISTENT"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"


class DomainError(Exception):
    """Base domain error with code, user-safe message and HTTP status."""

    code: ErrorCode = ErrorCode.STORE_UNAVAILABLE
    status_code: int = 500
    default_message: str = "internal error"

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code.value}
        if self.details:
            body["details"] = self.details
        return body


class InvalidInput(DomainError):
    code = ErrorCode.INVALID_INPUT
    status_code = 400
    default_message = "invalid request"


class PayloadTooLarge(DomainError):
    code = ErrorCode.PAYLOAD_TOO_LARGE
    status_code = 413
    default_message = "request body too large"


class DuplicateRegistration(DomainError):
    code = ErrorCode.DUPLICATE_REGISTRATION
    status_code = 400
    default_message = "this email has already been registered for this event"


class DuplicateTicket(DomainError):
    """Store rejected a ticket number that already exists. Internal only."""

    code = ErrorCode.DUPLICATE_TICKET
    status_code = 500
    default_message = "failed to register for event"


class EventNotFound(DomainError):
    code = ErrorCode.EVENT_NOT_FOUND
    status_code = 404
    default_message = "event not found"

    def __init__(self, event_id: str) -> None:
        super().__init__()
        self.event_id = event_id


class EventAtCapacity(DomainError):
    code = ErrorCode.EVENT_AT_CAPACITY
    status_code = 400
    default_message = "event is at capacity"

    def __init__(self, event_id: str) -> None:
        super().__init__()
        self.event_id = event_id


class AlreadyCancelled(DomainError):
    code = ErrorCode.ALREADY_CANCELLED
    status_code = 400
    default_message = "ticket already cancelled"


class RegistrationNotFound(DomainError):
    code = ErrorCode.REGISTRATION_NOT_FOUND
    status_code = 404
    default_message = "registration not found"


class CancellationInconsistent(DomainError):
    code = ErrorCode.CANCELLATION_INCONSISTENT
    status_code = 500
    default_message = "failed to cancel ticket"

    def __init__(self, registration_id: str) -> None:
        super().__init__()
        self.registration_id = registration_id


class StoreUnavailable(DomainError):
    code = ErrorCode.STORE_UNAVAILABLE
    status_code = 500
    default_message = "internal error"


class RateLimited(DomainError):
    code = ErrorCode.RATE_LIMITED
    status_code = 429
    default_message = "too many requests. please try again later"
