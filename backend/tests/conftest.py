"""
Pytest fixtures for test database, client, and authentication.

Uses a separate test database (SQLite file by default, TEST_DATABASE_URL to
point at PostgreSQL) with the schema created and dropped per test for
isolation.
"""

import os

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_eventdesk.db")

# Settings are read once; pin them before the application is imported
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["REDIS_ENABLED"] = "false"
os.environ["EVENT_KIT_STORE"] = "memory"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("SMS_API_KEY", None)

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from eventdesk.main import app
from eventdesk.db.base import Base
from eventdesk.db.session import get_db
from eventdesk.core.security import create_access_token, hash_password
from eventdesk.models.event import Event, EventJoin
from eventdesk.models.participant import Participant
from eventdesk.models.reference import Country, ParticipantType
from eventdesk.schemas.participant import ParticipantRegister
from eventdesk.services.registry_service import register_participant

PASSWORD = "securepassword123"

# NullPool: every test gets fresh connections on its own event loop
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def country(db_session: AsyncSession) -> Country:
    country = Country(code="PH", name="Philippines", flag_url="https://flags.example.com/ph.png")
    db_session.add(country)
    await db_session.commit()
    await db_session.refresh(country)
    return country


@pytest_asyncio.fixture
async def participant_type(db_session: AsyncSession) -> ParticipantType:
    participant_type = ParticipantType(name="Delegate", slug="delegate")
    db_session.add(participant_type)
    await db_session.commit()
    await db_session.refresh(participant_type)
    return participant_type


@pytest_asyncio.fixture
async def reserved_type(db_session: AsyncSession) -> ParticipantType:
    participant_type = ParticipantType(name="CHED", slug="ched")
    db_session.add(participant_type)
    await db_session.commit()
    await db_session.refresh(participant_type)
    return participant_type


@pytest_asyncio.fixture
async def ongoing_event(db_session: AsyncSession) -> Event:
    """Started a minute ago, ends in two hours."""
    now = datetime.now(timezone.utc)
    event = Event(
        title="Opening Plenary",
        location="Main Hall",
        starts_at=now - timedelta(minutes=1),
        ends_at=now + timedelta(hours=2),
        is_active=True,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def upcoming_event(db_session: AsyncSession) -> Event:
    now = datetime.now(timezone.utc)
    event = Event(
        title="Welcome Dinner",
        location="Ballroom",
        starts_at=now + timedelta(days=2),
        ends_at=now + timedelta(days=2, hours=3),
        is_active=True,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def closed_event(db_session: AsyncSession) -> Event:
    now = datetime.now(timezone.utc)
    event = Event(
        title="Pre-conference Workshop",
        starts_at=now - timedelta(days=3),
        ends_at=now - timedelta(days=3) + timedelta(hours=4),
        is_active=True,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def make_participant(db_session: AsyncSession, country: Country, participant_type: ParticipantType):
    """Factory registering participants through the registry."""
    counter = {"n": 0}

    async def _make(
        name: str = None,
        event_ids=(),
        participant_type_id: int = None,
        is_active: bool = True,
    ) -> Participant:
        counter["n"] += 1
        n = counter["n"]
        participant = await register_participant(db_session, ParticipantRegister(
            name=name or f"Participant {n}",
            email=f"participant{n}@example.com",
            contact_number=f"0917000{n:04d}",
            organization="State University",
            country_id=country.id,
            participant_type_id=participant_type_id or participant_type.id,
            password=PASSWORD,
            consent_contact_sharing=True,
            consent_photo_video=True,
            event_ids=list(event_ids),
        ))
        if not is_active:
            participant.is_active = False
            await db_session.commit()
        return participant

    return _make


@pytest_asyncio.fixture
async def staff_user(db_session: AsyncSession) -> Participant:
    staff = Participant(
        name="Desk Staff",
        email="staff@example.com",
        contact_number="09170000000",
        organization="Secretariat",
        hashed_password=hash_password(PASSWORD),
        is_staff=True,
        display_id="STAFF-0000-0001",
        verification_token="00000000-0000-4000-8000-000000000001",
        credential_payload="staff",
    )
    db_session.add(staff)
    await db_session.commit()
    await db_session.refresh(staff)
    return staff


@pytest_asyncio.fixture
async def staff_headers(staff_user: Participant) -> dict:
    token = create_access_token(data={"sub": str(staff_user.id), "staff": True})
    return {"Authorization": f"Bearer {token}"}


def headers_for(participant: Participant) -> dict:
    token = create_access_token(data={"sub": str(participant.id), "staff": participant.is_staff})
    return {"Authorization": f"Bearer {token}"}


async def join(db_session: AsyncSession, participant_id: int, event_id: int) -> None:
    db_session.add(EventJoin(participant_id=participant_id, event_id=event_id))
    await db_session.commit()
