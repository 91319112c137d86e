"""
Public event kit flow: verify -> survey -> materials.

The session token travels in an HTTP-only cookie; all state is server side.
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.clock import isoformat
from eventdesk.core.config import get_settings
from eventdesk.db.session import get_db
from eventdesk.models.event import Event
from eventdesk.models.participant import Participant
from eventdesk.schemas.event_kit import (
    AttendanceEntry,
    EventKitEvent,
    EventKitParticipant,
    EventKitSelect,
    EventKitStep,
    EventKitVerify,
    MaterialsPage,
    SurveyPage,
    SurveySubmit,
)
from eventdesk.services import event_kit_service
from eventdesk.services.event_kit_service import COOKIE_NAME

router = APIRouter(prefix="/event-kit", tags=["Event kit"])


def _participant(participant: Participant) -> EventKitParticipant:
    return EventKitParticipant(id=participant.id, name=participant.name, display_id=participant.display_id)


def _event(event: Event) -> EventKitEvent:
    return EventKitEvent(
        id=event.id,
        title=event.title,
        description=event.description,
        location=event.location,
        starts_at=isoformat(event.starts_at),
        ends_at=isoformat(event.ends_at),
    )


@router.post("/verify", response_model=EventKitStep)
async def verify_endpoint(
    data: EventKitVerify,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    session = await event_kit_service.verify(db, data.participant_id)
    response.set_cookie(
        COOKIE_NAME,
        session.token,
        max_age=get_settings().EVENT_KIT_TTL_SECONDS,
        httponly=True,
        samesite="lax",
    )
    return EventKitStep(next="survey")


@router.get("/survey", response_model=SurveyPage)
async def survey_endpoint(
    event_kit_session: Optional[str] = Cookie(None),
    db: AsyncSession = Depends(get_db),
):
    session = await event_kit_service.load_session(event_kit_session)
    view = await event_kit_service.survey(db, session)
    return SurveyPage(
        completed=view.completed,
        next="materials" if view.completed else None,
        participant=_participant(view.participant),
        events=[_event(e) for e in view.events],
        attendance_entries=[
            AttendanceEntry(event_id=event_id, scanned_at=isoformat(scanned_at))
            for event_id, scanned_at in view.attendance
        ],
        joined_event_ids=view.joined_event_ids,
        selected_event_id=view.selected_event_id,
    )


@router.post("/survey", response_model=EventKitStep)
async def submit_survey_endpoint(
    data: SurveySubmit,
    event_kit_session: Optional[str] = Cookie(None),
    db: AsyncSession = Depends(get_db),
):
    session = await event_kit_service.load_session(event_kit_session)
    await event_kit_service.submit_survey(db, session, data)
    return EventKitStep(next="materials")


@router.get("/materials", response_model=MaterialsPage)
async def materials_endpoint(
    event_kit_session: Optional[str] = Cookie(None),
    db: AsyncSession = Depends(get_db),
):
    session = await event_kit_service.load_session(event_kit_session)
    view = await event_kit_service.materials(db, session)
    return MaterialsPage(
        participant=_participant(view.participant),
        event=_event(view.event),
        checked_in_events=[_event(e) for e in view.checked_in_events],
        scanned_at=isoformat(view.scanned_at),
    )


@router.post("/select", response_model=EventKitStep)
async def select_event_endpoint(
    data: EventKitSelect,
    event_kit_session: Optional[str] = Cookie(None),
    db: AsyncSession = Depends(get_db),
):
    session = await event_kit_service.load_session(event_kit_session)
    await event_kit_service.select_event(db, session, data.event_id)
    return EventKitStep(next="materials")


@router.post("/reset", response_model=EventKitStep)
async def reset_endpoint(
    response: Response,
    event_kit_session: Optional[str] = Cookie(None),
):
    await event_kit_service.reset(event_kit_session)
    response.delete_cookie(COOKIE_NAME)
    return EventKitStep(next="verify")
