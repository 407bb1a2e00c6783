"""
Event read views with registration counts.

Counts come from aggregating confirmed registrations; there is no stored
counter to drift. Both views are read-through cached (see cache_service).
"""

from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import (
    EVENTS_LIST_CACHE_KEY,
    RegistrationStatus,
    event_detail_cache_key,
)
from app.core.errors import EventNotFound, StoreUnavailable
from app.core.logging import get_logger
from app.models.event import Event
from app.models.registration import Registration
from app.schemas.event import EventResponse
from app.services.interfaces.cache import CacheBackend

logger = get_logger(__name__)

CONFIRMED = RegistrationStatus.CONFIRMED.value


def _to_view(event: Event, registration_count: int) -> dict:
    view = EventResponse.model_validate(event)
    view.registration_count = registration_count
    return view.model_dump(mode="json")


def _with_counts():
    """SELECT events with their confirmed registration count."""
    count_col = func.count(Registration.id).label("registration_count")
    return (
        select(Event, count_col)
        .outerjoin(
            Registration,
            and_(Registration.event_id == Event.id, Registration.status == CONFIRMED),
        )
        .where(Event.is_active.is_(True))
        .group_by(Event.id)
    )


async def count_registrations(db: AsyncSession, event_id: str) -> int:
    """Authoritative confirmed-registration count, straight from the store."""
    result = await db.execute(
        select(func.count(Registration.id)).where(
            Registration.event_id == event_id,
            Registration.status == CONFIRMED,
        )
    )
    return result.scalar_one()


async def fetch_events_with_counts(db: AsyncSession) -> list[dict]:
    try:
        result = await db.execute(_with_counts().order_by(Event.start_date.asc()))
    except SQLAlchemyError as e:
        logger.error("events_query_failed", error=type(e).__name__)
        raise StoreUnavailable() from e
    return [_to_view(event, count) for event, count in result.all()]


async def fetch_event_with_count(db: AsyncSession, event_id: str) -> Optional[dict]:
    try:
        result = await db.execute(_with_counts().where(Event.id == event_id))
    except SQLAlchemyError as e:
        logger.error("event_query_failed", event_id=event_id, error=type(e).__name__)
        raise StoreUnavailable() from e
    row = result.first()
    if row is None:
        return None
    event, count = row
    return _to_view(event, count)


async def list_events_with_counts(
    db: AsyncSession,
    cache: CacheBackend,
    ttl_seconds: int,
) -> tuple[list[dict], bool]:
    """Return (events, served_from_cache)."""
    return await cache.get_or_set(
        EVENTS_LIST_CACHE_KEY,
        lambda: fetch_events_with_counts(db),
        ttl_seconds,
    )


async def get_event_with_count(
    db: AsyncSession,
    cache: CacheBackend,
    event_id: str,
    ttl_seconds: int,
) -> dict:
    """
    Return a single active event with its registration count.

    Raises:
        EventNotFound: If the event does not exist or is inactive.
    """
    key = event_detail_cache_key(event_id)
    cached = await cache.get(key)
    if cached is not None:
        return cached

    view = await fetch_event_with_count(db, event_id)
    if view is None:
        raise EventNotFound(event_id)
    await cache.set(key, view, ttl_seconds)
    return view


async def invalidate_event_views(cache: CacheBackend, event_id: str) -> None:
    """Drop both derived views touched by a write to event_id's registrations."""
    await cache.delete([event_detail_cache_key(event_id), EVENTS_LIST_CACHE_KEY])


async def clear_event_cache(cache: CacheBackend, event_ids: list[str]) -> list[str]:
    """Operator invalidation: specific events plus the list view, or everything event-related."""
    if event_ids:
        keys = [event_detail_cache_key(event_id) for event_id in event_ids]
        keys.append(EVENTS_LIST_CACHE_KEY)
        await cache.delete(keys)
        return keys

    deleted = await cache.invalidate_pattern("event")
    return [f"*event* ({deleted} keys)"]
