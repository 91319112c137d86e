"""
Check-in verifier: resolve a scanned code and record attendance once.

IDEMPOTENT ATTENDANCE
=====================

Two scanners can read the same badge at the same moment. A check-then-insert
("is there a record? no -> insert") lets both through. Instead we rely on the
unique constraint on attendance_records(participant_id, event_id):

  INSERT ... ON CONFLICT (participant_id, event_id) DO NOTHING

then re-read the row. Exactly one INSERT wins; every other scan sees
rowcount == 0 and reports "already checked in" with the winner's scanned_at.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.clock import isoformat, utcnow
from eventdesk.core.crypto import CredentialCipher, CredentialError, get_cipher
from eventdesk.core.errors import DomainError, Ineligible, NotFound
from eventdesk.core.logging import get_logger
from eventdesk.core.metrics import record_scan, scan_latency
from eventdesk.models.attendance import STATUS_SCANNED, AttendanceRecord
from eventdesk.models.event import Event
from eventdesk.models.participant import Participant
from eventdesk.schemas.checkin import CheckedInEvent, RegisteredEvent, ScannedParticipant, ScanResult
from eventdesk.services import cache_service
from eventdesk.services.event_service import (
    default_scanner_event,
    event_phase,
    get_event,
    has_joined,
    joined_events,
    list_events,
)

logger = get_logger(__name__)

MESSAGE_RECORDED = "Attendance recorded successfully."
MESSAGE_ALREADY_CHECKED_IN = "Already checked in for this event."


def _insert_for(db: AsyncSession):
    if db.get_bind().dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert


async def _participant_by(db: AsyncSession, column, value: str) -> Optional[Participant]:
    result = await db.execute(select(Participant).where(column == value))
    return result.unique().scalar_one_or_none()


async def resolve_participant(
    db: AsyncSession,
    code: str,
    cipher: Optional[CredentialCipher] = None,
) -> Participant:
    """
    Match a scanned code against, in order: display id, decrypted credential
    payload, raw verification token.
    """
    cipher = cipher or get_cipher()
    code = code.strip()

    participant = await _participant_by(db, Participant.display_id, code)
    if participant:
        return participant

    try:
        token = cipher.decrypt(code)
    except CredentialError:
        token = code
    participant = await _participant_by(db, Participant.verification_token, token)
    if participant:
        return participant

    raise NotFound("Invalid QR code or participant ID.", field="code")


async def _record_attendance(db: AsyncSession, participant_id: int, event_id: int, now: datetime) -> tuple:
    """Returns (record, created)."""
    insert = _insert_for(db)
    stmt = (
        insert(AttendanceRecord)
        .values(
            participant_id=participant_id,
            event_id=event_id,
            status=STATUS_SCANNED,
            scanned_at=now,
        )
        .on_conflict_do_nothing(index_elements=["participant_id", "event_id"])
    )
    result = await db.execute(stmt)
    created = result.rowcount == 1

    if not created:
        # A pending placeholder row may exist; stamp it only if never scanned
        stamped = await db.execute(
            update(AttendanceRecord)
            .where(
                AttendanceRecord.participant_id == participant_id,
                AttendanceRecord.event_id == event_id,
                AttendanceRecord.scanned_at.is_(None),
            )
            .values(status=STATUS_SCANNED, scanned_at=now)
        )
        created = stamped.rowcount == 1

    await db.commit()

    record = await db.execute(
        select(AttendanceRecord)
        .where(
            AttendanceRecord.participant_id == participant_id,
            AttendanceRecord.event_id == event_id,
        )
        .execution_options(populate_existing=True)
    )
    return record.scalar_one(), created


def _participant_summary(participant: Participant) -> ScannedParticipant:
    return ScannedParticipant(
        id=participant.id,
        full_name=participant.name,
        email=participant.email,
        display_id=participant.display_id,
        country=participant.country.name if participant.country else None,
        country_flag_url=participant.country.flag_url if participant.country else None,
        user_type=participant.participant_type.name if participant.participant_type else None,
        is_verified=participant.email_verified_at is not None,
    )


async def scan(
    db: AsyncSession,
    code: str,
    event_id: int,
    now: Optional[datetime] = None,
    cipher: Optional[CredentialCipher] = None,
) -> ScanResult:
    """
    Verify a scanned code for an event and record attendance at most once.
    Raises NotFound / Ineligible with the message shown at the scanner.
    """
    with scan_latency.time():
        try:
            event = await get_event(db, event_id)
            participant = await resolve_participant(db, code, cipher)
            if not participant.is_active:
                raise Ineligible("Participant is inactive.", field="code")
            if not await has_joined(db, participant.id, event.id):
                raise Ineligible("Participant is not registered for the selected event.", field="code")
        except NotFound:
            record_scan("not_found")
            raise
        except Ineligible:
            record_scan("ineligible")
            raise

        participant_id = participant.id
        summary = _participant_summary(participant)
        checked_in_event = CheckedInEvent(id=event.id, title=event.title)

        record, created = await _record_attendance(db, participant_id, event_id, now or utcnow())

    registered = [
        RegisteredEvent(id=e.id, title=e.title, starts_at=isoformat(e.starts_at))
        for e in await joined_events(db, participant_id)
    ]

    if created:
        record_scan("recorded")
        logger.info("attendance_recorded", participant_id=participant_id, event_id=event_id)
        await cache_service.invalidate_dashboard_cache()
    else:
        record_scan("already_checked_in")
        logger.info("attendance_already_recorded", participant_id=participant_id, event_id=event_id)

    return ScanResult(
        ok=True,
        message=MESSAGE_RECORDED if created else MESSAGE_ALREADY_CHECKED_IN,
        participant=summary,
        registered_events=registered,
        checked_in_event=checked_in_event,
        already_checked_in=not created,
        scanned_at=isoformat(record.scanned_at),
    )


def failed_scan(exc: DomainError) -> ScanResult:
    return ScanResult(ok=False, message=exc.message)


async def scanner_events(db: AsyncSession, now: Optional[datetime] = None) -> tuple[list[tuple[Event, str]], Optional[int]]:
    """Events with their phase, plus the one the scanner should preselect."""
    events = await list_events(db)
    return [(e, event_phase(e, now)) for e in events], default_scanner_event(events, now)


async def revert_attendance(db: AsyncSession, participant_id: int, event_id: int) -> None:
    result = await db.execute(
        delete(AttendanceRecord).where(
            AttendanceRecord.participant_id == participant_id,
            AttendanceRecord.event_id == event_id,
        )
    )
    if result.rowcount == 0:
        raise NotFound("Attendance record not found.", field="event_id")

    logger.info("attendance_reverted", participant_id=participant_id, event_id=event_id)
    await cache_service.invalidate_dashboard_cache()


async def checked_in_event_ids(db: AsyncSession, participant_id: int) -> list[int]:
    result = await db.execute(
        select(AttendanceRecord.event_id)
        .where(
            AttendanceRecord.participant_id == participant_id,
            AttendanceRecord.scanned_at.is_not(None),
        )
        .order_by(AttendanceRecord.scanned_at.asc())
    )
    return list(result.scalars().all())
