"""
Default events inserted into an empty events table when SEED_DEFAULT_EVENTS is set.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.event import Event

logger = get_logger(__name__)

_DESCRIPTION = (
    "join us for an intimate and exclusive wellness event. this 2-hour session is designed for "
    "young professionals looking to recommit to their wellbeing through group yoga, a sound "
    "therapy session and an open conversation, followed by refreshments and socializing. "
    "limited to 20 attendees."
)

DEFAULT_EVENTS = [
    {
        "id": "lagos-2026-01-03",
        "name": "recommit to your wellbeing - lagos edition",
        "description": _DESCRIPTION,
        "start_date": datetime.fromisoformat("2026-01-03T16:00:00+01:00"),
        "end_date": datetime.fromisoformat("2026-01-03T18:00:00+01:00"),
        "location": "lagos",
        "venue": "Alpha Fitness Studio, Lagos",
        "capacity": 20,
    },
    {
        "id": "ibadan-2026-01-10",
        "name": "recommit to your wellbeing - ibadan edition",
        "description": _DESCRIPTION,
        "start_date": datetime.fromisoformat("2026-01-10T16:00:00+01:00"),
        "end_date": datetime.fromisoformat("2026-01-10T18:00:00+01:00"),
        "location": "ibadan",
        "venue": "TYAwithNio Studios, Ibadan",
        "capacity": 20,
    },
]


async def seed_default_events(db: AsyncSession) -> int:
    """Insert DEFAULT_EVENTS if no events exist. Returns the number inserted."""
    existing = (await db.execute(select(func.count()).select_from(Event))).scalar_one()
    if existing:
        return 0

    db.add_all(Event(**data) for data in DEFAULT_EVENTS)
    await db.commit()
    logger.info("events_seeded", count=len(DEFAULT_EVENTS))
    return len(DEFAULT_EVENTS)
