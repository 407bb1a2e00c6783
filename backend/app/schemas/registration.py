"""
Pydantic schemas for registration and cancellation requests/responses.

Request fields are deliberately loose (optional strings): shape, range and
enum checks live in app.services.validation so every failure surfaces as a
400 with a readable reason instead of a framework 422.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class RegistrationRequest(BaseModel):
    event_id: Optional[str] = None
    name: Optional[str] = None
    gender: Optional[str] = None
    profession: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    location_preference: Optional[str] = None
    needs_directions: Optional[bool] = None
    notes: Optional[str] = None


class RegistrationResponse(BaseModel):
    id: str
    event_id: str
    name: str
    gender: str
    profession: str
    phone_number: str
    email: str
    location_preference: str
    needs_directions: bool
    notes: Optional[str]
    ticket_number: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RegistrationCreatedResponse(BaseModel):
    success: bool = True
    registration: RegistrationResponse


class CancellationRequest(BaseModel):
    ticket_number: Optional[str] = Field(None, max_length=64)
    email: Optional[str] = Field(None, max_length=255)


class CancellationResponse(BaseModel):
    success: bool = True
    message: str
    ticket_number: str


class ReminderResult(BaseModel):
    event_id: str
    ticket_number: str
    status: str  # sent, failed


class ReminderRunResponse(BaseModel):
    success: bool = True
    events_processed: int
    reminders_sent: int
    results: list[ReminderResult]
