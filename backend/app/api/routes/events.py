"""
Event endpoints: cached read views, registration, cancellation and operator actions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_client_ip, get_context, read_json_body
from app.core.errors import DomainError, EventNotFound, InvalidInput, PayloadTooLarge, StoreUnavailable
from app.core.logging import get_logger
from app.db.session import get_db
from app.schemas.event import ClearCacheRequest, ClearCacheResponse, EventResponse
from app.schemas.registration import (
    CancellationRequest,
    CancellationResponse,
    RegistrationCreatedResponse,
    RegistrationRequest,
    RegistrationResponse,
    ReminderRunResponse,
)
from app.services.cancellation_service import cancel_registration
from app.services.context import ServiceContext
from app.services.event_service import (
    clear_event_cache,
    get_event_with_count,
    list_events_with_counts,
)
from app.services.registration_service import register_for_event
from app.services.reminder_service import send_event_reminders

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.get("", response_model=list[EventResponse])
async def list_events_endpoint(
    response: Response,
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
):
    """
    List active events with registration counts.
    Cached for EVENTS_LIST_TTL; always 200, an empty list if the store is down.
    """
    try:
        events, cached = await list_events_with_counts(db, ctx.cache, ctx.settings.EVENTS_LIST_TTL)
    except DomainError as e:
        logger.error("events_list_degraded", reason=e.code.value)
        return []

    response.headers["X-Cache"] = "HIT" if cached else "MISS"
    return events


@router.post("/register", response_model=RegistrationCreatedResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
):
    """
    Register for an event.

    Capacity is enforced under a per-event lock inside one store transaction,
    so concurrent registrations never overbook. Confirmation emails are sent
    in the background and never affect this response.
    """
    payload = await read_json_body(
        request, RegistrationRequest, ctx.settings.MAX_REGISTER_BODY_BYTES, PayloadTooLarge()
    )
    registration = await register_for_event(db, payload, ctx, client_ip=get_client_ip(request))
    return RegistrationCreatedResponse(registration=RegistrationResponse.model_validate(registration))


@router.post("/cancel", response_model=CancellationResponse)
async def cancel_endpoint(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
):
    """Cancel a registration by ticket number or by email."""
    payload = await read_json_body(
        request,
        CancellationRequest,
        ctx.settings.MAX_CANCEL_BODY_BYTES,
        InvalidInput("request body too large"),
    )
    registration = await cancel_registration(db, payload, ctx, client_ip=get_client_ip(request))
    return CancellationResponse(
        message="ticket cancelled successfully",
        ticket_number=registration.ticket_number,
    )


@router.post("/clear-cache", response_model=ClearCacheResponse)
async def clear_cache_endpoint(
    body: Optional[ClearCacheRequest] = None,
    ctx: ServiceContext = Depends(get_context),
):
    """Invalidate cached views for specific events, or every event-related key."""
    event_ids = body.event_ids if body else []
    keys = await clear_event_cache(ctx.cache, event_ids)
    return ClearCacheResponse(message="cache cleared", keys_cleared=keys)


@router.post("/send-reminders", response_model=ReminderRunResponse)
async def send_reminders_endpoint(
    days_ahead: Optional[int] = Query(None, ge=0, le=30),
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
):
    """Email every confirmed attendee of events starting days_ahead days from today."""
    if days_ahead is None:
        days_ahead = ctx.settings.REMINDER_DAYS_AHEAD
    report = await send_event_reminders(db, ctx.notifier, days_ahead=days_ahead)
    return ReminderRunResponse(**report)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
):
    """Get a single active event with its registration count. Cached for EVENT_DETAIL_TTL."""
    try:
        return await get_event_with_count(db, ctx.cache, event_id, ctx.settings.EVENT_DETAIL_TTL)
    except StoreUnavailable:
        logger.error("event_detail_degraded", event_id=event_id)
        raise EventNotFound(event_id)
