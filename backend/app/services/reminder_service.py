"""
Reminder emails for events starting a fixed number of days from today.

Unlike registration notifications, each reminder is awaited: the run is the
job, and its report lists every recipient's outcome. A failed send is
recorded and the run continues.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import RegistrationStatus
from app.core.logging import get_logger
from app.models.event import Event
from app.models.registration import Registration
from app.services.notification_service import (
    NotificationDispatcher,
    NotificationKind,
    registration_payload,
)

logger = get_logger(__name__)


def _utc_date(value: datetime) -> date:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).date()


async def events_starting_on(db: AsyncSession, day: date) -> list[Event]:
    result = await db.execute(
        select(Event).where(Event.is_active.is_(True)).order_by(Event.start_date.asc())
    )
    return [event for event in result.scalars().all() if _utc_date(event.start_date) == day]


async def send_event_reminders(
    db: AsyncSession,
    notifier: NotificationDispatcher,
    days_ahead: int = 3,
    today: Optional[date] = None,
) -> dict:
    today = today or datetime.now(timezone.utc).date()
    target = today + timedelta(days=days_ahead)
    events = await events_starting_on(db, target)

    sent = 0
    results = []
    for event in events:
        registrations = await db.execute(
            select(Registration)
            .where(
                Registration.event_id == event.id,
                Registration.status == RegistrationStatus.CONFIRMED.value,
            )
            .order_by(Registration.created_at.asc())
        )
        for registration in registrations.scalars().all():
            outcome = await notifier.notify(
                NotificationKind.EVENT_REMINDER,
                registration_payload(event, registration),
            )
            if outcome.success:
                sent += 1
            results.append({
                "event_id": event.id,
                "ticket_number": registration.ticket_number,
                "status": "sent" if outcome.success else "failed",
            })

    logger.info(
        "reminders_run_completed",
        target_date=target.isoformat(),
        events_processed=len(events),
        reminders_sent=sent,
        failures=len(results) - sent,
    )
    return {
        "events_processed": len(events),
        "reminders_sent": sent,
        "results": results,
    }
