"""
Pydantic schemas for event read views.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, computed_field


class EventResponse(BaseModel):
    id: str
    name: str
    description: str
    start_date: datetime
    end_date: datetime
    location: str
    venue: Optional[str]
    capacity: int
    is_active: bool
    registration_count: int = 0

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def spots_remaining(self) -> Optional[int]:
        if self.capacity <= 0:
            return None
        return max(self.capacity - self.registration_count, 0)


class ClearCacheRequest(BaseModel):
    event_ids: list[str] = Field(default_factory=list, max_length=100)


class ClearCacheResponse(BaseModel):
    success: bool = True
    message: str
    keys_cleared: list[str]
