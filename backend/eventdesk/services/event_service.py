"""
Event service: CRUD, derived phase and self-service joins.
"""

from datetime import datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.clock import as_utc, utcnow
from eventdesk.core.config import get_settings
from eventdesk.core.errors import Ineligible, NotFound
from eventdesk.core.logging import get_logger
from eventdesk.models.event import Event, EventJoin
from eventdesk.schemas.event import EventCreate, EventUpdate

logger = get_logger(__name__)

PHASE_CLOSED = "closed"
PHASE_UPCOMING = "upcoming"
PHASE_ONGOING = "ongoing"


def _local_date(value: datetime):
    return as_utc(value).astimezone(ZoneInfo(get_settings().TIMEZONE)).date()


def event_phase(event: Event, now: Optional[datetime] = None) -> str:
    """
    Scanner phase of an event.

    closed   - inactive, or the end time has passed
    upcoming - now is before the start
    ongoing  - started today (calendar day in the configured zone)
    closed   - started on an earlier day
    """
    now = as_utc(now or utcnow())
    if not event.is_active:
        return PHASE_CLOSED

    start = as_utc(event.starts_at or event.ends_at) or now
    end = as_utc(event.ends_at)

    if end and now > end:
        return PHASE_CLOSED
    if now < start:
        return PHASE_UPCOMING
    return PHASE_ONGOING if _local_date(now) == _local_date(start) else PHASE_CLOSED


def default_scanner_event(events: Iterable[Event], now: Optional[datetime] = None) -> Optional[int]:
    """First ongoing event wins, otherwise the first upcoming one."""
    phases = [(event, event_phase(event, now)) for event in events]
    for wanted in (PHASE_ONGOING, PHASE_UPCOMING):
        for event, phase in phases:
            if phase == wanted:
                return event.id
    return None


def is_event_open(event: Event, now: Optional[datetime] = None) -> bool:
    now = as_utc(now or utcnow())
    if not event.is_active:
        return False
    starts_at = as_utc(event.starts_at)
    ends_at = as_utc(event.ends_at)
    if starts_at and starts_at > now:
        return False
    return ends_at is None or ends_at >= now


def is_joinable(event: Event, now: Optional[datetime] = None) -> bool:
    """Participants may opt in until the event ends (or its start day passes)."""
    now = as_utc(now or utcnow())
    if not event.is_active:
        return False
    starts_at = as_utc(event.starts_at)
    ends_at = as_utc(event.ends_at)
    if ends_at and now > ends_at:
        return False
    if not ends_at and starts_at and now > starts_at and _local_date(now) != _local_date(starts_at):
        return False
    return True


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    event = Event(**event_data.model_dump())
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, title=event.title)
    return event


async def update_event(db: AsyncSession, event_id: int, changes: EventUpdate) -> Event:
    event = await get_event(db, event_id)
    for field, value in changes.model_dump(exclude_unset=True).items():
        setattr(event, field, value)
    await db.flush()
    await db.refresh(event)

    logger.info("event_updated", event_id=event.id)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()
    if not event:
        raise NotFound("Selected event not found.", field="event_id")
    return event


async def list_events(db: AsyncSession) -> list[Event]:
    """All events ordered by start time; unscheduled ones last."""
    result = await db.execute(
        select(Event).order_by(Event.starts_at.is_(None), Event.starts_at.asc(), Event.title.asc())
    )
    return list(result.scalars().all())


async def joined_events(db: AsyncSession, participant_id: int) -> list[Event]:
    result = await db.execute(
        select(Event)
        .join(EventJoin, EventJoin.event_id == Event.id)
        .where(EventJoin.participant_id == participant_id)
        .order_by(Event.starts_at.is_(None), Event.starts_at.asc(), Event.id.asc())
    )
    return list(result.scalars().all())


async def has_joined(db: AsyncSession, participant_id: int, event_id: int) -> bool:
    result = await db.execute(
        select(EventJoin.id).where(
            EventJoin.participant_id == participant_id,
            EventJoin.event_id == event_id,
        )
    )
    return result.first() is not None


async def join_event(
    db: AsyncSession,
    participant_id: int,
    event_id: int,
    now: Optional[datetime] = None,
) -> Event:
    event = await get_event(db, event_id)
    if not is_joinable(event, now):
        raise Ineligible("This event is closed.", field="event")

    if not await has_joined(db, participant_id, event_id):
        db.add(EventJoin(participant_id=participant_id, event_id=event_id))
        await db.flush()
        logger.info("event_joined", participant_id=participant_id, event_id=event_id)
    return event


async def leave_event(db: AsyncSession, participant_id: int, event_id: int) -> None:
    await db.execute(
        delete(EventJoin).where(
            EventJoin.participant_id == participant_id,
            EventJoin.event_id == event_id,
        )
    )
    logger.info("event_left", participant_id=participant_id, event_id=event_id)


async def clear_events(db: AsyncSession, participant_id: int) -> None:
    await db.execute(delete(EventJoin).where(EventJoin.participant_id == participant_id))
    logger.info("event_selections_cleared", participant_id=participant_id)
