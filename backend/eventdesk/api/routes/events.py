"""
Event endpoints: public listing, staff management, self-service joins.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.security import TokenClaims, get_current_participant_id, require_staff
from eventdesk.db.session import get_db
from eventdesk.models.event import Event
from eventdesk.schemas.event import EventCreate, EventResponse, EventUpdate
from eventdesk.services import event_service

router = APIRouter(prefix="/events", tags=["Events"])


def to_response(event: Event, phase: str = None) -> EventResponse:
    return EventResponse(
        id=event.id,
        title=event.title,
        description=event.description,
        location=event.location,
        starts_at=event.starts_at,
        ends_at=event.ends_at,
        is_active=event.is_active,
        phase=phase or event_service.event_phase(event),
    )


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.create_event(db, event_data)
    return to_response(event)


@router.get("/", response_model=list[EventResponse])
async def list_events_endpoint(db: AsyncSession = Depends(get_db)):
    """All events ordered by start, with their current phase."""
    return [to_response(e) for e in await event_service.list_events(db)]


@router.delete("/joined", status_code=status.HTTP_204_NO_CONTENT)
async def clear_joined_events_endpoint(
    participant_id: int = Depends(get_current_participant_id),
    db: AsyncSession = Depends(get_db),
):
    await event_service.clear_events(db, participant_id)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    return to_response(await event_service.get_event(db, event_id))


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    changes: EventUpdate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return to_response(await event_service.update_event(db, event_id, changes))


@router.post("/{event_id}/join", response_model=EventResponse)
async def join_event_endpoint(
    event_id: int,
    participant_id: int = Depends(get_current_participant_id),
    db: AsyncSession = Depends(get_db),
):
    return to_response(await event_service.join_event(db, participant_id, event_id))


@router.delete("/{event_id}/join", status_code=status.HTTP_204_NO_CONTENT)
async def leave_event_endpoint(
    event_id: int,
    participant_id: int = Depends(get_current_participant_id),
    db: AsyncSession = Depends(get_db),
):
    await event_service.leave_event(db, participant_id, event_id)
