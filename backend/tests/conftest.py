"""
Pytest fixtures for an isolated database, service context and HTTP client.

Each test gets a fresh in-memory SQLite database (aiosqlite, one shared
connection via StaticPool) and its own ServiceContext, so cache entries,
rate-limit counters and sent emails never leak between tests.
"""

import asyncio
import os
from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_context
from app.core.config import Settings
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.event import Event
from app.services.cache_service import MemoryCache
from app.services.context import ServiceContext
from app.services.interfaces.email import EmailMessage, EmailSender
from app.services.notification_service import NotificationDispatcher
from app.services.rate_limiter import RateLimiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingEmailSender(EmailSender):
    """Collects messages instead of sending; can be told to fail or stall."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []
        self.failed: list[EmailMessage] = []
        self.fail = False
        self.delay = 0.0

    async def send(self, message: EmailMessage) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            self.failed.append(message)
            raise RuntimeError("email provider unavailable")
        self.sent.append(message)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL=TEST_DATABASE_URL,
        RATE_LIMIT_RELAXED=False,
        EMAIL_SEND_TIMEOUT=1.0,
    )


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest_asyncio.fixture
async def context(settings: Settings, email_sender: RecordingEmailSender) -> AsyncGenerator[ServiceContext, None]:
    ctx = ServiceContext(
        settings=settings,
        cache=MemoryCache(),
        rate_limiter=RateLimiter(registration_per_ip=100, registration_per_email=100, cancellation_per_ip=100),
        notifier=NotificationDispatcher(email_sender, admin_email="ops@example.com", timeout=1.0),
    )
    yield ctx
    await ctx.close()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, context: ServiceContext) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB session and service context overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_context] = lambda: context

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_event(db: AsyncSession, **fields) -> Event:
    start = datetime.now(timezone.utc) + timedelta(days=30)
    data = {
        "name": "Recommit To Your Wellbeing",
        "description": "Yoga, sound therapy and conversation",
        "start_date": start,
        "end_date": start + timedelta(hours=2),
        "location": "lagos",
        "venue": "Alpha Fitness Studio, Lagos",
        "capacity": 20,
    }
    data.update(fields)
    event = Event(**data)
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


@pytest.fixture
def create_event(db_session: AsyncSession):
    async def factory(**fields) -> Event:
        return await _create_event(db_session, **fields)

    return factory


@pytest_asyncio.fixture
async def test_event(create_event) -> Event:
    """Active event with 20 places."""
    return await create_event(id="lagos-test")


@pytest_asyncio.fixture
async def small_event(create_event) -> Event:
    """Active event with 3 places."""
    return await create_event(id="small-test", capacity=3)


@pytest.fixture
def registration_body():
    """Build a valid registration request body for an event."""

    def build(event_id: str, email: str = "ada@example.com", **overrides) -> dict:
        body = {
            "event_id": event_id,
            "name": "Ada Obi",
            "gender": "female",
            "profession": "engineer",
            "phone_number": "08012345678",
            "email": email,
            "location_preference": "lagos",
            "needs_directions": False,
        }
        body.update(overrides)
        return body

    return build
