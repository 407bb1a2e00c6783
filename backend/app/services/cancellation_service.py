"""
Cancellation by ticket number or by email.

Two modes (CANCELLATION_MODE):
  soft  status -> 'cancelled'; the row stays for audit, the place is freed
        because counts only include confirmed registrations
  hard  the row is deleted

After the write we re-read the store. A registration that is still active
after a committed cancellation means the store (or a replica) disagrees
with itself, which is reported as CancellationInconsistent, never as
"not found".
"""

import time
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import RegistrationStatus
from app.core.errors import (
    AlreadyCancelled,
    CancellationInconsistent,
    DomainError,
    InvalidInput,
    RateLimited,
    RegistrationNotFound,
    StoreUnavailable,
)
from app.core.logging import get_logger
from app.core.metrics import record_cancellation
from app.db.base import utcnow
from app.models.event import Event
from app.models.registration import Registration
from app.schemas.registration import CancellationRequest
from app.services.context import ServiceContext
from app.services.event_service import invalidate_event_views
from app.services.notification_service import NotificationKind, registration_payload
from app.services.ticket_service import normalize_ticket_number
from app.services.validation import normalize_email

logger = get_logger(__name__)

CONFIRMED = RegistrationStatus.CONFIRMED.value
CANCELLED = RegistrationStatus.CANCELLED.value

_OUTCOMES = {
    RegistrationNotFound: "not_found",
    AlreadyCancelled: "already_cancelled",
    CancellationInconsistent: "inconsistent",
    InvalidInput: "invalid",
    RateLimited: "rate_limited",
}


async def _find_by_ticket(db: AsyncSession, ticket_number: str) -> Optional[Registration]:
    result = await db.execute(
        select(Registration).where(Registration.ticket_number == ticket_number)
    )
    return result.scalar_one_or_none()


async def _find_by_email(db: AsyncSession, email: str) -> Optional[Registration]:
    """Most recent confirmed registration for email, else the most recent of any status."""
    newest_first = Registration.created_at.desc()
    result = await db.execute(
        select(Registration)
        .where(Registration.email == email, Registration.status == CONFIRMED)
        .order_by(newest_first)
        .limit(1)
    )
    registration = result.scalar_one_or_none()
    if registration is not None:
        return registration

    result = await db.execute(
        select(Registration).where(Registration.email == email).order_by(newest_first).limit(1)
    )
    return result.scalar_one_or_none()


async def _remaining_active(db: AsyncSession, registration_id: str, hard: bool) -> int:
    query = select(func.count(Registration.id)).where(Registration.id == registration_id)
    if not hard:
        query = query.where(Registration.status == CONFIRMED)
    return (await db.execute(query)).scalar_one()


def _identifiers(request: CancellationRequest) -> tuple[Optional[str], Optional[str]]:
    ticket = normalize_ticket_number(request.ticket_number) if request.ticket_number else None
    email = normalize_email(request.email) if request.email else None
    if not ticket and not email:
        raise InvalidInput("ticket number or email is required")
    return ticket or None, email or None


async def cancel_registration(
    db: AsyncSession,
    request: CancellationRequest,
    ctx: ServiceContext,
    client_ip: str | None = None,
) -> Registration:
    """
    Cancel a registration found by ticket number (preferred) or email.

    Raises:
        InvalidInput, RateLimited, RegistrationNotFound, AlreadyCancelled,
        CancellationInconsistent, StoreUnavailable
    """
    started = time.perf_counter()
    hard = ctx.settings.CANCELLATION_MODE == "hard"
    registration_id = None

    try:
        ticket, email = _identifiers(request)

        if client_ip is not None:
            decision = ctx.rate_limiter.check_cancellation(client_ip)
            if not decision.allowed:
                raise RateLimited(decision.reason)

        try:
            if ticket:
                registration = await _find_by_ticket(db, ticket)
            else:
                registration = await _find_by_email(db, email)
        except SQLAlchemyError as e:
            logger.error("cancellation_lookup_failed", error=type(e).__name__)
            raise StoreUnavailable("failed to cancel ticket") from e

        if registration is None:
            logger.warning("cancellation_target_not_found", by="ticket" if ticket else "email")
            raise RegistrationNotFound("ticket not found" if ticket else "no registration found for this email")

        if registration.is_cancelled:
            raise AlreadyCancelled()

        registration_id = registration.id
        event_id = registration.event_id

        try:
            if hard:
                result = await db.execute(
                    delete(Registration).where(Registration.id == registration_id)
                )
            else:
                result = await db.execute(
                    update(Registration)
                    .where(Registration.id == registration_id, Registration.status == CONFIRMED)
                    .values(status=CANCELLED, updated_at=utcnow())
                )
            if result.rowcount == 0:
                # Lost a race with another cancellation of the same registration
                await db.rollback()
                if hard:
                    raise RegistrationNotFound("ticket not found")
                raise AlreadyCancelled()
            await db.commit()

            remaining = await _remaining_active(db, registration_id, hard)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                "cancellation_write_failed",
                registration_id=registration_id,
                error=type(e).__name__,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise StoreUnavailable("failed to cancel ticket") from e

        if remaining:
            logger.error(
                "cancellation_inconsistent",
                registration_id=registration_id,
                remaining=remaining,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            await invalidate_event_views(ctx.cache, event_id)
            raise CancellationInconsistent(registration_id)

    except DomainError as e:
        record_cancellation(_OUTCOMES.get(type(e), "error"))
        raise

    await invalidate_event_views(ctx.cache, event_id)

    try:
        event = await db.get(Event, event_id)
    except SQLAlchemyError as e:
        logger.warning("cancellation_notification_skipped", registration_id=registration_id, error=type(e).__name__)
        event = None
    if event is not None:
        ctx.notifier.dispatch(
            NotificationKind.CANCELLATION_CONFIRMATION,
            registration_payload(event, registration),
        )

    record_cancellation("success")
    logger.info(
        "registration_cancelled",
        registration_id=registration_id,
        event_id=event_id,
        mode="hard" if hard else "soft",
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return registration
