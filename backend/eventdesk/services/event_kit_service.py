"""
Event kit: the public post-event flow (verify -> survey -> materials).

All state for a visit lives in an EventKitSession keyed by an opaque token
(sent to the browser as a cookie) and kept in the configured SessionStore.
Every step loads the session explicitly and saves it back, which also slides
its expiry forward.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.config import get_settings
from eventdesk.core.errors import Ineligible, NotFound, ValidationError
from eventdesk.core.logging import get_logger
from eventdesk.models.attendance import AttendanceRecord
from eventdesk.models.event import Event
from eventdesk.models.feedback import Feedback
from eventdesk.models.participant import Participant
from eventdesk.schemas.event_kit import SurveySubmit
from eventdesk.services.checkin_service import checked_in_event_ids
from eventdesk.services.event_service import get_event, joined_events, list_events
from eventdesk.services.interfaces.session_store import EventKitSession, SessionStore
from eventdesk.services.strategy_factory import get_session_store

logger = get_logger(__name__)

COOKIE_NAME = "event_kit_session"


@dataclass
class SurveyView:
    participant: Participant
    completed: bool
    events: list[Event] = field(default_factory=list)
    attendance: list[tuple[int, Optional[datetime]]] = field(default_factory=list)
    joined_event_ids: list[int] = field(default_factory=list)
    selected_event_id: Optional[int] = None


@dataclass
class MaterialsView:
    participant: Participant
    event: Event
    checked_in_events: list[Event]
    scanned_at: Optional[datetime]


def _ttl() -> int:
    return get_settings().EVENT_KIT_TTL_SECONDS


async def _save(store: SessionStore, session: EventKitSession) -> None:
    await store.save(session, _ttl())


async def load_session(token: Optional[str], store: Optional[SessionStore] = None) -> EventKitSession:
    store = store or get_session_store()
    session = await store.load(token) if token else None
    if session is None:
        raise NotFound(
            "Your event kit session has expired. Please enter your participant ID again.",
            field="session",
        )
    return session


async def _session_participant(db: AsyncSession, session: EventKitSession, store: SessionStore) -> Participant:
    participant = await db.get(Participant, session.participant_id)
    if participant is None:
        await store.delete(session.token)
        raise NotFound("Participant ID not found. Please check your ID or email.", field="participant_id")
    return participant


async def verify(db: AsyncSession, identifier: str, store: Optional[SessionStore] = None) -> EventKitSession:
    """Start a fresh session for a display id, email or numeric id."""
    store = store or get_session_store()
    identifier = identifier.strip()

    conditions = [Participant.display_id == identifier, Participant.email == identifier.lower()]
    if identifier.isdigit():
        conditions.append(Participant.id == int(identifier))
    result = await db.execute(select(Participant).where(or_(*conditions)).order_by(Participant.id).limit(1))
    participant = result.unique().scalar_one_or_none()
    if participant is None:
        raise NotFound("Participant ID not found. Please check your ID or email.", field="participant_id")

    session = EventKitSession(token=secrets.token_urlsafe(32), participant_id=participant.id)
    await _save(store, session)

    logger.info("event_kit_verified", participant_id=participant.id)
    return session


async def survey(db: AsyncSession, session: EventKitSession, store: Optional[SessionStore] = None) -> SurveyView:
    store = store or get_session_store()
    participant = await _session_participant(db, session, store)

    result = await db.execute(
        select(Feedback)
        .where(Feedback.participant_id == participant.id)
        .order_by(Feedback.id.desc())
        .limit(1)
    )
    previous = result.scalar_one_or_none()
    if previous is not None:
        session.survey_completed = True
        session.event_id = previous.event_id

    if session.survey_completed:
        await _save(store, session)
        return SurveyView(participant=participant, completed=True, selected_event_id=session.event_id)

    attendance = await db.execute(
        select(AttendanceRecord.event_id, AttendanceRecord.scanned_at).where(
            AttendanceRecord.participant_id == participant.id
        )
    )
    await _save(store, session)
    return SurveyView(
        participant=participant,
        completed=False,
        events=await list_events(db),
        attendance=[(event_id, scanned_at) for event_id, scanned_at in attendance.all()],
        joined_event_ids=[e.id for e in await joined_events(db, participant.id)],
        selected_event_id=session.event_id,
    )


async def submit_survey(
    db: AsyncSession,
    session: EventKitSession,
    data: SurveySubmit,
    store: Optional[SessionStore] = None,
) -> Feedback:
    store = store or get_session_store()
    participant = await _session_participant(db, session, store)
    await get_event(db, data.event_id)

    ratings = [int(value) for value in data.event_ratings if int(value) > 0]
    if any(value > 5 for value in ratings):
        raise ValidationError("Event ratings must be between 1 and 5.", field="event_ratings")
    if not data.user_experience_rating and not ratings:
        raise ValidationError("Please add at least one rating before submitting.", field="survey")

    feedback = Feedback(
        participant_id=participant.id,
        event_id=data.event_id,
        user_experience_rating=data.user_experience_rating,
        event_ratings=ratings or None,
        recommendations=data.recommendations,
    )
    db.add(feedback)
    await db.flush()

    session.event_id = data.event_id
    session.survey_completed = True
    await _save(store, session)

    logger.info("event_kit_survey_submitted", participant_id=participant.id, event_id=data.event_id)
    return feedback


async def materials(
    db: AsyncSession, session: EventKitSession, store: Optional[SessionStore] = None
) -> MaterialsView:
    """
    Materials for the selected event; falls back to the first checked-in event
    when the selection is not one the participant attended.
    """
    store = store or get_session_store()
    participant = await _session_participant(db, session, store)
    if not session.survey_completed or session.event_id is None:
        raise Ineligible("Please complete the survey first.", field="survey")

    attended = await checked_in_event_ids(db, participant.id)
    if attended and session.event_id not in attended:
        session.event_id = attended[0]
    await _save(store, session)

    event = await get_event(db, session.event_id)
    checked_in = []
    if attended:
        result = await db.execute(
            select(Event).where(Event.id.in_(attended)).order_by(Event.starts_at.desc(), Event.id.desc())
        )
        checked_in = list(result.scalars().all())

    scanned = await db.execute(
        select(AttendanceRecord.scanned_at).where(
            AttendanceRecord.participant_id == participant.id,
            AttendanceRecord.event_id == event.id,
        )
    )
    return MaterialsView(
        participant=participant,
        event=event,
        checked_in_events=checked_in,
        scanned_at=scanned.scalar_one_or_none(),
    )


async def select_event(
    db: AsyncSession,
    session: EventKitSession,
    event_id: int,
    store: Optional[SessionStore] = None,
) -> EventKitSession:
    store = store or get_session_store()
    participant = await _session_participant(db, session, store)
    await get_event(db, event_id)

    if event_id not in await checked_in_event_ids(db, participant.id):
        raise ValidationError("Please select an event you checked into.", field="event_id")

    session.event_id = event_id
    await _save(store, session)
    return session


async def reset(token: Optional[str], store: Optional[SessionStore] = None) -> None:
    store = store or get_session_store()
    if token:
        await store.delete(token)
        logger.info("event_kit_reset")
