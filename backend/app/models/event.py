"""
Event model.

Key design decisions:
- `id` is a human-readable string assigned by the operator (e.g. "lagos-2026-01-03")
- No denormalized seat counter: registration_count is always aggregated from
  confirmed registrations, so cancellation never has to repair a counter
- `capacity <= 0` means unlimited
- Index on `start_date` for the ordered listing and reminder lookups
"""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from app.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(100), nullable=False)
    venue = Column(String(255), nullable=True)
    capacity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_events_active_start", "is_active", "start_date"),
    )

    @property
    def is_unlimited(self) -> bool:
        return self.capacity is None or self.capacity <= 0

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name}, capacity={self.capacity})>"
