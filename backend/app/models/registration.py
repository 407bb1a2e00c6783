"""
Registration model representing one attendee's place at an event.

Key design decisions:
- Partial unique index on (event_id, email) WHERE status = 'confirmed' allows one
  active registration per email per event while keeping cancelled rows for audit
- ticket_number is unique at the store level; the generator does not consult the DB
- Status check constraint mirrors RegistrationStatus
"""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    text,
)

from app.core.constants import RegistrationStatus
from app.db.base import Base, TimestampMixin

CONFIRMED_ONLY = text("status = 'confirmed'")


def _new_id() -> str:
    return str(uuid.uuid4())


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(String(36), primary_key=True, default=_new_id)
    event_id = Column(String(100), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    gender = Column(String(50), nullable=False)
    profession = Column(String(200), nullable=False)
    phone_number = Column(String(15), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    location_preference = Column(String(50), nullable=False)
    needs_directions = Column(Boolean, nullable=False, default=False)
    notes = Column(String(200), nullable=True)
    ticket_number = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default=RegistrationStatus.CONFIRMED.value)

    __table_args__ = (
        UniqueConstraint("ticket_number", name="uq_registrations_ticket_number"),
        Index(
            "uq_registrations_event_email_confirmed",
            "event_id",
            "email",
            unique=True,
            postgresql_where=CONFIRMED_ONLY,
            sqlite_where=CONFIRMED_ONLY,
        ),
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="check_registration_status"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == RegistrationStatus.CANCELLED.value

    def __repr__(self) -> str:
        return f"<Registration(id={self.id}, event={self.event_id}, status={self.status})>"
