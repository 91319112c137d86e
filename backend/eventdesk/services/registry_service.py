"""
Participant registry: identity creation, credentials and account gating.

CREDENTIAL STRATEGY
===================

Every participant gets two write-once credentials at creation:

  display_id          "{PREFIX}-XXXX-XXXX", typed by hand at the scanner
  verification_token  UUID4, never shown raw

The token is encrypted with the process-wide credential key into
`credential_payload`, which is what the QR code carries.

Randomness alone is not trusted to avoid collisions. A candidate display id is
checked before use, and the unique constraints on both columns are the final
word: if the INSERT collides (two registrations raced for the same value), the
transaction is rolled back and fresh values are generated.
"""

import secrets
import string
import uuid
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.config import get_settings
from eventdesk.core.crypto import CredentialCipher, get_cipher
from eventdesk.core.errors import Conflict, NotFound, ValidationError
from eventdesk.core.logging import get_logger
from eventdesk.core.metrics import record_retry, registrations
from eventdesk.core.security import create_access_token, hash_password, verify_password
from eventdesk.models.attendance import AttendanceRecord
from eventdesk.models.event import Event, EventJoin
from eventdesk.models.feedback import AssignmentNotificationLog, Feedback
from eventdesk.models.participant import Participant
from eventdesk.models.reference import Country, ParticipantType
from eventdesk.schemas.participant import ParticipantLogin, ParticipantRegister, ParticipantUpdate
from eventdesk.services.seating_service import release_participant_seat
from eventdesk.services.vehicle_service import release_participant_vehicles

logger = get_logger(__name__)

MAX_CREDENTIAL_ATTEMPTS = 5
DISPLAY_ID_ALPHABET = string.ascii_uppercase + string.digits


def generate_display_id(prefix: Optional[str] = None) -> str:
    prefix = prefix or get_settings().DISPLAY_ID_PREFIX
    blocks = ["".join(secrets.choice(DISPLAY_ID_ALPHABET) for _ in range(4)) for _ in range(2)]
    return f"{prefix}-{blocks[0]}-{blocks[1]}"


def generate_verification_token() -> str:
    return str(uuid.uuid4())


async def _display_id_taken(db: AsyncSession, display_id: str) -> bool:
    result = await db.execute(select(Participant.id).where(Participant.display_id == display_id))
    return result.first() is not None


async def _email_taken(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(Participant.id).where(Participant.email == email))
    return result.first() is not None


async def _unused_display_id(db: AsyncSession) -> str:
    for _ in range(MAX_CREDENTIAL_ATTEMPTS):
        candidate = generate_display_id()
        if not await _display_id_taken(db, candidate):
            return candidate
    # Let the unique constraint arbitrate
    return generate_display_id()


async def _validate_references(
    db: AsyncSession,
    country_id: Optional[int],
    participant_type_id: Optional[int],
) -> None:
    if country_id is not None and await db.get(Country, country_id) is None:
        raise ValidationError("The selected country is invalid.", field="country_id")
    if participant_type_id is not None and await db.get(ParticipantType, participant_type_id) is None:
        raise ValidationError("The selected participant type is invalid.", field="participant_type_id")


async def register_participant(
    db: AsyncSession,
    data: ParticipantRegister,
    cipher: Optional[CredentialCipher] = None,
) -> Participant:
    """
    Validate the profile and create a participant with fresh credentials.
    Joins the requested events in the same transaction.
    """
    cipher = cipher or get_cipher()
    email = data.email.lower()

    if await _email_taken(db, email):
        registrations.labels(result="rejected").inc()
        raise ValidationError("The email has already been taken.", field="email")
    if not data.consent_contact_sharing:
        raise ValidationError("Contact sharing consent must be accepted.", field="consent_contact_sharing")
    if not data.consent_photo_video:
        raise ValidationError("Photo and video consent must be accepted.", field="consent_photo_video")
    await _validate_references(db, data.country_id, data.participant_type_id)

    event_ids = sorted(set(data.event_ids))
    if event_ids:
        result = await db.execute(select(Event.id).where(Event.id.in_(event_ids)))
        if len(result.all()) != len(event_ids):
            raise ValidationError("One or more selected events are invalid.", field="event_ids")

    hashed = hash_password(data.password)

    for attempt in range(1, MAX_CREDENTIAL_ATTEMPTS + 1):
        token = generate_verification_token()
        participant = Participant(
            name=data.name.strip(),
            email=email,
            contact_number=data.contact_number.strip(),
            organization=data.organization.strip(),
            country_id=data.country_id,
            participant_type_id=data.participant_type_id,
            hashed_password=hashed,
            consent_contact_sharing=True,
            consent_photo_video=True,
            display_id=await _unused_display_id(db),
            verification_token=token,
            credential_payload=cipher.encrypt(token),
        )
        db.add(participant)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            # A concurrent registration may have claimed the email in the meantime
            if await _email_taken(db, email):
                registrations.labels(result="rejected").inc()
                raise ValidationError("The email has already been taken.", field="email")
            record_retry("participant_credentials")
            logger.info("participant_credentials_collision", attempt=attempt)
            continue

        for event_id in event_ids:
            db.add(EventJoin(participant_id=participant.id, event_id=event_id))
        await db.commit()
        await db.refresh(participant)

        registrations.labels(result="created").inc()
        logger.info(
            "participant_registered",
            participant_id=participant.id,
            display_id=participant.display_id,
            events=len(event_ids),
        )
        return participant

    raise Conflict("Could not allocate participant credentials. Please try again.")


async def authenticate(db: AsyncSession, login_data: ParticipantLogin) -> str:
    result = await db.execute(select(Participant).where(Participant.email == login_data.email.lower()))
    participant = result.scalar_one_or_none()

    if not participant or not verify_password(login_data.password, participant.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not participant.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    token = create_access_token(data={"sub": str(participant.id), "staff": participant.is_staff})
    logger.info("participant_logged_in", participant_id=participant.id)
    return token


async def get_participant(db: AsyncSession, participant_id: int) -> Participant:
    participant = await db.get(Participant, participant_id)
    if not participant:
        raise NotFound("Participant not found.", field="participant_id")
    return participant


async def list_participants(db: AsyncSession, event_id: Optional[int] = None) -> list[Participant]:
    query = select(Participant).order_by(Participant.name.asc())
    if event_id is not None:
        query = query.join(EventJoin, EventJoin.participant_id == Participant.id).where(
            EventJoin.event_id == event_id
        )
    result = await db.execute(query)
    return list(result.scalars().unique().all())


async def update_profile(db: AsyncSession, participant_id: int, changes: ParticipantUpdate) -> Participant:
    participant = await get_participant(db, participant_id)
    values = changes.model_dump(exclude_unset=True)
    await _validate_references(db, values.get("country_id"), values.get("participant_type_id"))

    for field, value in values.items():
        setattr(participant, field, value.strip() if isinstance(value, str) else value)
    await db.flush()
    await db.refresh(participant)

    logger.info("participant_updated", participant_id=participant.id, fields=sorted(values))
    return participant


async def set_active(db: AsyncSession, participant_id: int, is_active: bool) -> Participant:
    """Soft gate; history is kept either way."""
    participant = await get_participant(db, participant_id)
    participant.is_active = is_active
    await db.flush()

    logger.info(
        "participant_activated" if is_active else "participant_deactivated",
        participant_id=participant.id,
    )
    return participant


async def deactivate(db: AsyncSession, participant_id: int) -> Participant:
    return await set_active(db, participant_id, False)


async def activate(db: AsyncSession, participant_id: int) -> Participant:
    return await set_active(db, participant_id, True)


async def delete_participant(db: AsyncSession, participant_id: int) -> None:
    """Hard delete, releasing capacity held by the participant first."""
    participant = await get_participant(db, participant_id)

    await release_participant_seat(db, participant.id)
    await release_participant_vehicles(db, participant.id)
    for model in (AttendanceRecord, EventJoin, Feedback, AssignmentNotificationLog):
        await db.execute(delete(model).where(model.participant_id == participant.id))
    await db.delete(participant)
    await db.flush()

    logger.info("participant_deleted", participant_id=participant_id)
