"""
Registration with a hard capacity ceiling.

CONCURRENCY STRATEGY: Per-event serialization + row lock
=========================================================

Problem:
  Two attendees register for the last place at the same moment.
  Both count 19/20, both insert, the event ends at 21/20.

Solution:
  1. Every registration for an event runs under that event's asyncio.Lock,
     so inside one process the duplicate check, capacity count and insert
     for an event never interleave. Locks exist only while a registration
     for their event is in flight, so unknown event ids leave nothing behind.
  2. Inside the lock the unit of work is one store transaction that starts
     by locking the event row (SELECT ... FOR UPDATE). Other instances
     registering for the same event queue on that row lock until we commit.
  3. The lock is released only after COMMIT, so the next registration
     counts a store that already contains ours.

  The partial unique index on (event_id, email) for confirmed rows and the
  unique ticket_number index are the last line of defence: a violation is
  classified as a duplicate registration, or, for the ticket, regenerated
  once.

Cache:
  Both event views are invalidated after the commit and before we return,
  so the caller's next read recomputes from the store.

Notifications:
  Dispatched after the commit as background tasks. Their outcome is logged
  and never changes the response.
"""

import time

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import RegistrationStatus
from app.core.errors import (
    DomainError,
    DuplicateRegistration,
    DuplicateTicket,
    EventAtCapacity,
    EventNotFound,
    InvalidInput,
    RateLimited,
    StoreUnavailable,
)
from app.core.logging import get_logger, mask_email
from app.core.metrics import record_registration, registration_latency, ticket_regenerations
from app.models.event import Event
from app.models.registration import Registration
from app.schemas.registration import RegistrationRequest
from app.services.context import ServiceContext
from app.services.event_service import count_registrations, invalidate_event_views
from app.services.notification_service import NotificationKind, registration_payload
from app.services.ticket_service import generate_ticket_number
from app.services.validation import RegistrationFields, validate_registration

logger = get_logger(__name__)

MAX_TICKET_ATTEMPTS = 2

_OUTCOMES = {
    DuplicateRegistration: "duplicate",
    EventNotFound: "not_found",
    EventAtCapacity: "at_capacity",
    InvalidInput: "invalid",
    RateLimited: "rate_limited",
}


async def _has_active_registration(db: AsyncSession, event_id: str, email: str) -> bool:
    result = await db.execute(
        select(Registration.id).where(
            Registration.event_id == event_id,
            Registration.email == email,
            Registration.status == RegistrationStatus.CONFIRMED.value,
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def _lock_active_event(db: AsyncSession, event_id: str) -> Event | None:
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id, Event.is_active.is_(True))
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def _insert_registration(db: AsyncSession, fields: RegistrationFields) -> tuple[Registration, Event]:
    """Duplicate check, capacity check and insert as one committed transaction."""
    for attempt in range(1, MAX_TICKET_ATTEMPTS + 1):
        try:
            if await _has_active_registration(db, fields.event_id, fields.email):
                raise DuplicateRegistration()

            event = await _lock_active_event(db, fields.event_id)
            if event is None:
                raise EventNotFound(fields.event_id)

            if not event.is_unlimited:
                count = await count_registrations(db, event.id)
                if count >= event.capacity:
                    logger.warning(
                        "registration_rejected_at_capacity",
                        event_id=event.id,
                        capacity=event.capacity,
                        registered=count,
                    )
                    raise EventAtCapacity(event.id)

            registration = Registration(
                event_id=event.id,
                name=fields.name,
                gender=fields.gender,
                profession=fields.profession,
                phone_number=fields.phone_number,
                email=fields.email,
                location_preference=fields.location_preference,
                needs_directions=fields.needs_directions,
                notes=fields.notes,
                ticket_number=generate_ticket_number(),
                status=RegistrationStatus.CONFIRMED.value,
            )
            db.add(registration)
            await db.commit()
            return registration, event

        except IntegrityError as e:
            await db.rollback()
            if "ticket_number" not in str(e.orig):
                raise DuplicateRegistration() from e
            ticket_regenerations.inc()
            logger.warning("ticket_collision", event_id=fields.event_id, attempt=attempt)
            if attempt == MAX_TICKET_ATTEMPTS:
                raise DuplicateTicket() from e

        except DomainError:
            await db.rollback()
            raise

        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("registration_store_error", event_id=fields.event_id, error=type(e).__name__)
            raise StoreUnavailable("failed to register for event") from e

    # Unreachable: the loop either returns or raises
    raise DuplicateTicket()


async def register_for_event(
    db: AsyncSession,
    request: RegistrationRequest,
    ctx: ServiceContext,
    client_ip: str | None = None,
) -> Registration:
    """
    Register an attendee.

    Order of checks: input validation, rate limits (when client_ip is given),
    duplicate email for the event, event exists and is active, capacity.

    Raises:
        InvalidInput, RateLimited, DuplicateRegistration, EventNotFound,
        EventAtCapacity, DuplicateTicket, StoreUnavailable
    """
    started = time.perf_counter()
    try:
        fields = validate_registration(request)

        if client_ip is not None:
            decision = ctx.rate_limiter.check_registration(client_ip, fields.email)
            if not decision.allowed:
                raise RateLimited(decision.reason)

        async with ctx.locks.hold(fields.event_id):
            registration, event = await _insert_registration(db, fields)

    except DomainError as e:
        record_registration(_OUTCOMES.get(type(e), "error"))
        logger.info(
            "registration_failed",
            reason=e.code.value,
            event_id=getattr(request, "event_id", None),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        raise

    await invalidate_event_views(ctx.cache, event.id)

    payload = registration_payload(event, registration)
    ctx.notifier.dispatch(NotificationKind.REGISTRATION_NOTIFICATION, payload)
    ctx.notifier.dispatch(NotificationKind.REGISTRATION_CONFIRMATION, payload)

    elapsed = time.perf_counter() - started
    registration_latency.observe(elapsed)
    record_registration("success")
    logger.info(
        "registration_created",
        registration_id=registration.id,
        event_id=event.id,
        ticket_number=registration.ticket_number,
        email=mask_email(registration.email),
        duration_ms=round(elapsed * 1000, 2),
    )
    return registration
