"""
Participant profile (self-service) and administration endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.clock import isoformat
from eventdesk.core.security import TokenClaims, get_current_participant_id, require_staff
from eventdesk.db.session import get_db
from eventdesk.models.participant import Participant
from eventdesk.schemas.participant import JoinedEvent, ParticipantProfile, ParticipantResponse, ParticipantUpdate
from eventdesk.services import checkin_service, notification_service, registry_service
from eventdesk.services.event_service import joined_events
from eventdesk.services.qr_service import credential_qr_png

router = APIRouter(prefix="/participants", tags=["Participants"])


async def _profile(db: AsyncSession, participant: Participant) -> ParticipantProfile:
    events = await joined_events(db, participant.id)
    return ParticipantProfile(
        **ParticipantResponse.model_validate(participant).model_dump(),
        joined_events=[JoinedEvent(id=e.id, title=e.title, starts_at=isoformat(e.starts_at)) for e in events],
    )


@router.get("/me", response_model=ParticipantProfile)
async def my_profile(
    participant_id: int = Depends(get_current_participant_id),
    db: AsyncSession = Depends(get_db),
):
    participant = await registry_service.get_participant(db, participant_id)
    return await _profile(db, participant)


@router.get("/me/qr", response_class=Response)
async def my_credential_qr(
    participant_id: int = Depends(get_current_participant_id),
    db: AsyncSession = Depends(get_db),
):
    """PNG QR code carrying the participant's encrypted credential."""
    participant = await registry_service.get_participant(db, participant_id)
    return Response(content=credential_qr_png(participant.credential_payload), media_type="image/png")


@router.get("/", response_model=list[ParticipantResponse])
async def list_participants_endpoint(
    event_id: Optional[int] = Query(None),
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await registry_service.list_participants(db, event_id)


@router.get("/{participant_id}", response_model=ParticipantProfile)
async def get_participant_endpoint(
    participant_id: int,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    participant = await registry_service.get_participant(db, participant_id)
    return await _profile(db, participant)


@router.patch("/{participant_id}", response_model=ParticipantResponse)
async def update_participant_endpoint(
    participant_id: int,
    changes: ParticipantUpdate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await registry_service.update_profile(db, participant_id, changes)


@router.delete("/{participant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_participant_endpoint(
    participant_id: int,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    await registry_service.delete_participant(db, participant_id)


@router.post("/{participant_id}/deactivate", response_model=ParticipantResponse)
async def deactivate_participant_endpoint(
    participant_id: int,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await registry_service.deactivate(db, participant_id)


@router.post("/{participant_id}/activate", response_model=ParticipantResponse)
async def activate_participant_endpoint(
    participant_id: int,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await registry_service.activate(db, participant_id)


@router.post("/{participant_id}/assignment-notice")
async def send_assignment_notice_endpoint(
    participant_id: int,
    event_id: int = Query(...),
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Send the participant their table/vehicle details for an event."""
    report = await notification_service.send_assignment_notice(db, participant_id, event_id)
    return {"ok": True, "message": "Assignment notification processed.", "email": report.email, "sms": report.sms}


@router.delete("/{participant_id}/attendance/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revert_attendance_endpoint(
    participant_id: int,
    event_id: int,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    await checkin_service.revert_attendance(db, participant_id, event_id)
