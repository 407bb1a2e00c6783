"""
Tests for the event read views, their cache, and the operator endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from app.core.constants import EVENTS_LIST_CACHE_KEY, event_detail_cache_key
from app.db.session import get_db
from app.main import app


class BrokenSession:
    """Stands in for a session whose database is unreachable."""

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("database is down"))

    async def rollback(self):
        pass


@pytest.mark.asyncio
async def test_list_events_with_counts(client: AsyncClient, test_event, small_event, create_event, registration_body):
    """Active events are listed by start date with confirmed counts; inactive ones are hidden."""
    await create_event(id="hidden-test", is_active=False)
    await client.post("/api/v1/events/register", json=registration_body(small_event.id))

    response = await client.get("/api/v1/events")
    assert response.status_code == 200
    events = {e["id"]: e for e in response.json()}
    assert set(events) == {"lagos-test", "small-test"}
    assert events["small-test"]["registration_count"] == 1
    assert events["small-test"]["spots_remaining"] == 2
    assert events["lagos-test"]["registration_count"] == 0


@pytest.mark.asyncio
async def test_list_events_cache_header(client: AsyncClient, test_event):
    """First read is computed, the second served from cache."""
    first = await client.get("/api/v1/events")
    second = await client.get("/api/v1/events")
    assert first.headers["X-Cache"] == "MISS"
    assert second.headers["X-Cache"] == "HIT"
    assert first.json() == second.json()


@pytest.mark.asyncio
async def test_registration_invalidates_cached_views(client: AsyncClient, context, test_event, registration_body):
    """After a registration returns, both views reflect it."""
    await client.get("/api/v1/events")
    await client.get(f"/api/v1/events/{test_event.id}")
    assert EVENTS_LIST_CACHE_KEY in context.cache
    assert event_detail_cache_key(test_event.id) in context.cache

    await client.post("/api/v1/events/register", json=registration_body(test_event.id))
    assert EVENTS_LIST_CACHE_KEY not in context.cache
    assert event_detail_cache_key(test_event.id) not in context.cache

    listing = await client.get("/api/v1/events")
    detail = await client.get(f"/api/v1/events/{test_event.id}")
    assert listing.headers["X-Cache"] == "MISS"
    assert listing.json()[0]["registration_count"] == 1
    assert detail.json()["registration_count"] == 1


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, test_event):
    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == "lagos-test"
    assert data["capacity"] == 20
    assert data["registration_count"] == 0
    assert data["spots_remaining"] == 20


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/no-such-event")
    assert response.status_code == 404
    assert response.json()["code"] == "EVENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_get_inactive_event_not_found(client: AsyncClient, create_event):
    await create_event(id="hidden-test", is_active=False)
    response = await client.get("/api/v1/events/hidden-test")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_clear_cache_for_events(client: AsyncClient, context, test_event):
    await client.get(f"/api/v1/events/{test_event.id}")
    await client.get("/api/v1/events")

    response = await client.post("/api/v1/events/clear-cache", json={"event_ids": [test_event.id]})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["keys_cleared"] == [event_detail_cache_key(test_event.id), EVENTS_LIST_CACHE_KEY]
    assert event_detail_cache_key(test_event.id) not in context.cache
    assert EVENTS_LIST_CACHE_KEY not in context.cache


@pytest.mark.asyncio
async def test_clear_cache_everything(client: AsyncClient, context, test_event, small_event):
    await client.get("/api/v1/events")
    await client.get(f"/api/v1/events/{test_event.id}")
    await client.get(f"/api/v1/events/{small_event.id}")

    response = await client.post("/api/v1/events/clear-cache")
    assert response.status_code == 200
    assert response.json()["keys_cleared"] == ["*event* (3 keys)"]
    assert (await context.cache.stats())["keys"] == 0


@pytest.mark.asyncio
async def test_store_change_visible_after_clear_cache(client: AsyncClient, test_event, db_session):
    """A direct store edit is hidden by the cache until it is cleared."""
    await client.get(f"/api/v1/events/{test_event.id}")

    test_event.capacity = 50
    await db_session.commit()

    stale = await client.get(f"/api/v1/events/{test_event.id}")
    assert stale.json()["capacity"] == 20

    await client.post("/api/v1/events/clear-cache", json={"event_ids": [test_event.id]})
    fresh = await client.get(f"/api/v1/events/{test_event.id}")
    assert fresh.json()["capacity"] == 50


@pytest.mark.asyncio
async def test_list_degrades_to_empty_when_store_down(client: AsyncClient):
    app.dependency_overrides[get_db] = lambda: BrokenSession()
    response = await client.get("/api/v1/events")
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_detail_degrades_to_not_found_when_store_down(client: AsyncClient):
    app.dependency_overrides[get_db] = lambda: BrokenSession()
    response = await client.get("/api/v1/events/lagos-test")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_register_reports_store_failure(client: AsyncClient, registration_body):
    """Write-path store failures surface as a generic 500."""
    app.dependency_overrides[get_db] = lambda: BrokenSession()
    response = await client.post("/api/v1/events/register", json=registration_body("lagos-test"))
    assert response.status_code == 500
    assert response.json() == {"error": "failed to register for event", "code": "STORE_UNAVAILABLE"}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache"]["status"] == "memory"


@pytest.mark.asyncio
async def test_request_id_header(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
