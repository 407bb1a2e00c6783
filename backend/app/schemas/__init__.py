from app.schemas.event import EventResponse, ClearCacheRequest, ClearCacheResponse
from app.schemas.registration import (
    RegistrationRequest,
    RegistrationResponse,
    RegistrationCreatedResponse,
    CancellationRequest,
    CancellationResponse,
    ReminderRunResponse,
)

__all__ = [
    "EventResponse", "ClearCacheRequest", "ClearCacheResponse",
    "RegistrationRequest", "RegistrationResponse", "RegistrationCreatedResponse",
    "CancellationRequest", "CancellationResponse", "ReminderRunResponse",
]
