"""
Authentication endpoints: register and login.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.db.session import get_db
from eventdesk.schemas.participant import ParticipantLogin, ParticipantRegister, ParticipantResponse, Token
from eventdesk.services.notification_service import RegisteredNotice, dispatch_registered
from eventdesk.services.registry_service import authenticate, register_participant

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
async def register(
    participant_data: ParticipantRegister,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """Register a participant; the welcome email/SMS goes out after the response."""
    participant = await register_participant(db, participant_data)
    background_tasks.add_task(dispatch_registered, RegisteredNotice.from_participant(participant))
    return participant


@router.post("/login", response_model=Token)
async def login(login_data: ParticipantLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    token = await authenticate(db, login_data)
    return Token(access_token=token)
