"""
Tests for event reminder runs.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.registration import Registration
from app.services.reminder_service import send_event_reminders
from app.services.ticket_service import generate_ticket_number

TODAY = date(2026, 3, 1)


def _at_noon(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)


async def _add_registration(db: AsyncSession, event_id: str, email: str, status: str = "confirmed") -> Registration:
    registration = Registration(
        event_id=event_id,
        name="Guest",
        gender="female",
        profession="engineer",
        phone_number="08012345678",
        email=email,
        location_preference="lagos",
        ticket_number=generate_ticket_number(),
        status=status,
    )
    db.add(registration)
    await db.commit()
    return registration


@pytest.mark.asyncio
async def test_reminders_for_events_in_window(db_session, create_event, context, email_sender):
    soon = await create_event(id="soon-test", start_date=_at_noon(TODAY + timedelta(days=3)))
    later = await create_event(id="later-test", start_date=_at_noon(TODAY + timedelta(days=4)))
    kept = await _add_registration(db_session, soon.id, "ada@example.com")
    await _add_registration(db_session, soon.id, "bola@example.com", status="cancelled")
    await _add_registration(db_session, later.id, "chi@example.com")

    report = await send_event_reminders(db_session, context.notifier, days_ahead=3, today=TODAY)

    assert report["events_processed"] == 1
    assert report["reminders_sent"] == 1
    assert report["results"] == [
        {"event_id": "soon-test", "ticket_number": kept.ticket_number, "status": "sent"}
    ]
    assert [m.to for m in email_sender.sent] == ["ada@example.com"]
    assert email_sender.sent[0].subject.startswith("reminder:")


@pytest.mark.asyncio
async def test_reminder_failures_are_reported(db_session, create_event, context, email_sender):
    event = await create_event(id="soon-test", start_date=_at_noon(TODAY + timedelta(days=3)))
    await _add_registration(db_session, event.id, "ada@example.com")
    email_sender.fail = True

    report = await send_event_reminders(db_session, context.notifier, days_ahead=3, today=TODAY)
    assert report["reminders_sent"] == 0
    assert report["results"][0]["status"] == "failed"


@pytest.mark.asyncio
async def test_inactive_events_skipped(db_session, create_event, context):
    event = await create_event(id="off-test", is_active=False, start_date=_at_noon(TODAY + timedelta(days=3)))
    await _add_registration(db_session, event.id, "ada@example.com")

    report = await send_event_reminders(db_session, context.notifier, days_ahead=3, today=TODAY)
    assert report == {"events_processed": 0, "reminders_sent": 0, "results": []}


@pytest.mark.asyncio
async def test_send_reminders_endpoint(client: AsyncClient, create_event, registration_body, email_sender, context):
    today = datetime.now(timezone.utc).date()
    await create_event(id="soon-test", start_date=_at_noon(today + timedelta(days=2)))
    await client.post("/api/v1/events/register", json=registration_body("soon-test"))
    await context.notifier.drain()
    email_sender.sent.clear()

    response = await client.post("/api/v1/events/send-reminders", params={"days_ahead": 2})
    assert response.status_code == 200
    data = response.json()
    assert data["events_processed"] == 1
    assert data["reminders_sent"] == 1
    assert email_sender.sent[0].to == "ada@example.com"


@pytest.mark.asyncio
async def test_send_reminders_rejects_out_of_range(client: AsyncClient):
    response = await client.post("/api/v1/events/send-reminders", params={"days_ahead": 99})
    assert response.status_code == 422
