"""
Seating service with concurrency-safe batch seat assignment.

CONCURRENCY STRATEGY: Optimistic Locking with Retry
====================================================

Problem:
  Two admins assign overlapping batches to the same table at once.
  Both read occupied_seats=0 on a table of 2, each batch of 2 fits on its own,
  both insert. Result: four people at a table for two.

Solution:
  The table row carries a denormalized `occupied_seats` counter and a
  `version` column.

  1. Read the table's current version and occupancy
  2. UPDATE seating_tables
        SET occupied_seats = occupied_seats + N, version = version + 1
      WHERE id = :table_id AND version = :current_version
        AND occupied_seats + N <= capacity
  3. If rows_affected == 0, someone else claimed seats first -> roll back, retry
  4. Insert the N SeatAssignment rows in the same transaction and commit

  A participant seated by a concurrent batch between our pre-check and our
  INSERT trips the unique constraint on seat_assignments.participant_id; that
  also rolls back and retries, and the retry skips them as already seated.

  The batch is all-or-nothing: if the new participants do not fit in the
  remaining seats, nothing is written.

  DB CHECK constraints (occupied_seats <= capacity) are the final safety net.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.clock import utcnow
from eventdesk.core.config import get_settings
from eventdesk.core.errors import CapacityExceeded, Conflict, Ineligible, NotFound, ValidationError
from eventdesk.core.logging import get_logger
from eventdesk.core.metrics import record_assignment, record_retry
from eventdesk.models.event import EventJoin
from eventdesk.models.participant import Participant
from eventdesk.models.seating import SeatAssignment, SeatingTable
from eventdesk.schemas.seating import TableCreate
from eventdesk.services.event_service import get_event, is_event_open

logger = get_logger(__name__)

MAX_RETRY_ATTEMPTS = 3

Eligibility = Callable[[Participant], bool]


@dataclass
class AssignmentResult:
    table_id: int
    event_id: int
    assigned: list[dict] = field(default_factory=list)
    skipped_already_seated: list[int] = field(default_factory=list)
    ineligible: list[int] = field(default_factory=list)
    assigned_at: Optional[datetime] = None

    @property
    def assigned_participant_ids(self) -> list[int]:
        return [row["participant_id"] for row in self.assigned]


@dataclass
class TableOccupancy:
    table: SeatingTable
    assignments: list[SeatAssignment]


def _dedupe(ids: Iterable[int]) -> list[int]:
    seen = set()
    unique = []
    for participant_id in ids:
        if participant_id not in seen:
            seen.add(participant_id)
            unique.append(participant_id)
    return unique


async def get_table(db: AsyncSession, table_id: int) -> SeatingTable:
    # populate_existing so a retry sees the row as committed by others
    result = await db.execute(
        select(SeatingTable)
        .where(SeatingTable.id == table_id)
        .execution_options(populate_existing=True)
    )
    table = result.scalar_one_or_none()
    if not table:
        raise NotFound("Seating table not found.", field="table_id")
    return table


async def _ensure_event_open(db: AsyncSession, event_id: int) -> None:
    event = await get_event(db, event_id)
    if not is_event_open(event):
        raise Ineligible("This event is closed.", field="event_id")


async def create_table(db: AsyncSession, table_data: TableCreate) -> SeatingTable:
    await get_event(db, table_data.event_id)
    table_number = table_data.table_number.strip()
    if not table_number:
        raise ValidationError("The table number field is required.", field="table_number")

    existing = await db.execute(
        select(SeatingTable.id).where(
            SeatingTable.event_id == table_data.event_id,
            SeatingTable.table_number == table_number,
        )
    )
    if existing.first() is not None:
        raise ValidationError("The table number has already been taken.", field="table_number")

    table = SeatingTable(
        event_id=table_data.event_id,
        table_number=table_number,
        capacity=table_data.capacity,
        occupied_seats=0,
        version=1,
    )
    db.add(table)
    try:
        await db.flush()
    except IntegrityError:
        raise ValidationError("The table number has already been taken.", field="table_number")
    await db.refresh(table)

    logger.info("seating_table_created", table_id=table.id, event_id=table.event_id, capacity=table.capacity)
    return table


async def update_table_capacity(db: AsyncSession, table_id: int, capacity: int) -> SeatingTable:
    """Replace a table's capacity; never below the seats already taken."""
    await get_table(db, table_id)
    result = await db.execute(
        update(SeatingTable)
        .where(SeatingTable.id == table_id, SeatingTable.occupied_seats <= capacity)
        .values(capacity=capacity, version=SeatingTable.version + 1)
    )
    if result.rowcount == 0:
        logger.warning("table_capacity_rejected", table_id=table_id, capacity=capacity)
        raise ValidationError(
            "Capacity cannot be lower than the number of assigned seats.", field="capacity"
        )

    table = await get_table(db, table_id)
    logger.info("table_capacity_updated", table_id=table_id, capacity=capacity)
    return table


async def _seated_participant_ids(db: AsyncSession, participant_ids: list[int]) -> set[int]:
    if not participant_ids:
        return set()
    result = await db.execute(
        select(SeatAssignment.participant_id).where(SeatAssignment.participant_id.in_(participant_ids))
    )
    return set(result.scalars().all())


async def _joined_participant_ids(db: AsyncSession, event_id: int, participant_ids: list[int]) -> set[int]:
    result = await db.execute(
        select(EventJoin.participant_id).where(
            EventJoin.event_id == event_id,
            EventJoin.participant_id.in_(participant_ids),
        )
    )
    return set(result.scalars().all())


def default_eligibility(joined_ids: set[int], reserved_labels: Iterable[str]) -> Eligibility:
    """Active, joined the table's event, and not of a reserved type."""
    reserved_labels = list(reserved_labels)

    def is_eligible(participant: Participant) -> bool:
        return (
            participant.is_active
            and participant.id in joined_ids
            and not participant.has_reserved_type(reserved_labels)
        )

    return is_eligible


async def assign_seats(
    db: AsyncSession,
    table_id: int,
    participant_ids: list[int],
    eligibility: Optional[Eligibility] = None,
) -> AssignmentResult:
    """
    Seat a batch of participants at a table, all-or-nothing.
    Already-seated participants are skipped; ineligible ones are filtered out.
    Commits on success.
    """
    table = await get_table(db, table_id)
    event_id = table.event_id
    await _ensure_event_open(db, event_id)
    requested = _dedupe(participant_ids)

    found = await db.execute(select(Participant).where(Participant.id.in_(requested)))
    participants = {p.id: p for p in found.scalars().unique().all()}
    unknown = [pid for pid in requested if pid not in participants]
    if unknown:
        raise ValidationError("One or more selected participants are invalid.", field="participant_ids")

    if eligibility is None:
        joined = await _joined_participant_ids(db, event_id, requested)
        eligibility = default_eligibility(joined, get_settings().RESERVED_PARTICIPANT_TYPES)

    candidates = [pid for pid in requested if eligibility(participants[pid])]
    ineligible = [pid for pid in requested if pid not in candidates]

    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        # Step 1: Read current table state and who is already seated
        table = await get_table(db, table_id)
        capacity = table.capacity
        occupied = table.occupied_seats
        current_version = table.version

        seated = await _seated_participant_ids(db, candidates)
        new_ids = [pid for pid in candidates if pid not in seated]
        skipped = [pid for pid in candidates if pid in seated]

        if not new_ids:
            record_assignment("seat", "noop")
            return AssignmentResult(
                table_id=table_id,
                event_id=event_id,
                skipped_already_seated=skipped,
                ineligible=ineligible,
            )

        if len(new_ids) > capacity - occupied:
            record_assignment("seat", "capacity_exceeded")
            logger.warning(
                "seat_assignment_rejected",
                table_id=table_id,
                requested=len(new_ids),
                available=capacity - occupied,
            )
            raise CapacityExceeded("Not enough available seats for this table.", field="participant_ids")

        # Step 2: Optimistic lock - claim the seats only if nobody else did
        claim = await db.execute(
            update(SeatingTable)
            .where(
                SeatingTable.id == table_id,
                SeatingTable.version == current_version,
                SeatingTable.occupied_seats + len(new_ids) <= SeatingTable.capacity,
            )
            .values(
                occupied_seats=SeatingTable.occupied_seats + len(new_ids),
                version=SeatingTable.version + 1,
            )
        )

        if claim.rowcount == 0:
            logger.info("seat_assignment_retry", table_id=table_id, attempt=attempt, reason="version_conflict")
            await db.rollback()
            record_retry("seat")
            continue

        # Step 3: Insert the batch with consecutive seat numbers
        last_seat = await db.execute(
            select(func.max(SeatAssignment.seat_number)).where(SeatAssignment.table_id == table_id)
        )
        next_seat = (last_seat.scalar() or 0) + 1
        assigned_at = utcnow()
        rows = [
            SeatAssignment(
                table_id=table_id,
                participant_id=pid,
                seat_number=next_seat + offset,
                assigned_at=assigned_at,
            )
            for offset, pid in enumerate(new_ids)
        ]
        db.add_all(rows)
        try:
            await db.flush()
        except IntegrityError:
            logger.info("seat_assignment_retry", table_id=table_id, attempt=attempt, reason="already_seated")
            await db.rollback()
            record_retry("seat")
            continue

        await db.commit()
        record_assignment("seat", "assigned")
        logger.info(
            "seats_assigned",
            table_id=table_id,
            event_id=event_id,
            assigned=len(new_ids),
            skipped=len(skipped),
            ineligible=len(ineligible),
            attempt=attempt,
        )
        return AssignmentResult(
            table_id=table_id,
            event_id=event_id,
            assigned=[
                {"participant_id": row.participant_id, "seat_number": row.seat_number} for row in rows
            ],
            skipped_already_seated=skipped,
            ineligible=ineligible,
            assigned_at=assigned_at,
        )

    record_assignment("seat", "conflict")
    raise Conflict("Seat assignment failed due to concurrent changes. Please try again.", field="participant_ids")


async def _release(db: AsyncSession, assignment: SeatAssignment) -> None:
    table_id = assignment.table_id
    await db.execute(delete(SeatAssignment).where(SeatAssignment.id == assignment.id))
    await db.execute(
        update(SeatingTable)
        .where(SeatingTable.id == table_id, SeatingTable.occupied_seats > 0)
        .values(
            occupied_seats=SeatingTable.occupied_seats - 1,
            version=SeatingTable.version + 1,
        )
    )


async def remove_seat_assignment(db: AsyncSession, assignment_id: int) -> None:
    assignment = await db.get(SeatAssignment, assignment_id)
    if not assignment:
        raise NotFound("Seat assignment not found.", field="assignment_id")

    participant_id = assignment.participant_id
    table_id = assignment.table_id
    table = await get_table(db, table_id)
    await _ensure_event_open(db, table.event_id)
    await _release(db, assignment)
    logger.info("seat_assignment_removed", table_id=table_id, participant_id=participant_id)


async def release_participant_seat(db: AsyncSession, participant_id: int) -> None:
    result = await db.execute(select(SeatAssignment).where(SeatAssignment.participant_id == participant_id))
    assignment = result.scalar_one_or_none()
    if assignment:
        await _release(db, assignment)


async def get_participant_seat(db: AsyncSession, participant_id: int, event_id: int) -> Optional[tuple]:
    """(table, assignment) for the participant at this event, if seated."""
    result = await db.execute(
        select(SeatingTable, SeatAssignment)
        .join(SeatAssignment, SeatAssignment.table_id == SeatingTable.id)
        .where(SeatAssignment.participant_id == participant_id, SeatingTable.event_id == event_id)
    )
    row = result.unique().first()
    return (row[0], row[1]) if row else None


async def list_tables(db: AsyncSession, event_id: int) -> list[TableOccupancy]:
    tables = await db.execute(
        select(SeatingTable)
        .where(SeatingTable.event_id == event_id)
        .order_by(SeatingTable.table_number.asc())
    )
    tables = list(tables.scalars().unique().all())
    if not tables:
        return []

    assignments = await db.execute(
        select(SeatAssignment)
        .where(SeatAssignment.table_id.in_([t.id for t in tables]))
        .order_by(SeatAssignment.seat_number.asc())
    )
    by_table: dict[int, list[SeatAssignment]] = {t.id: [] for t in tables}
    for assignment in assignments.scalars().unique().all():
        by_table[assignment.table_id].append(assignment)

    return [TableOccupancy(table=t, assignments=by_table[t.id]) for t in tables]


async def table_assignments(db: AsyncSession, table_id: int) -> list[SeatAssignment]:
    result = await db.execute(
        select(SeatAssignment)
        .where(SeatAssignment.table_id == table_id)
        .order_by(SeatAssignment.seat_number.asc())
    )
    return list(result.scalars().unique().all())


async def unassigned_participants(db: AsyncSession, event_id: int) -> list[Participant]:
    """Active participants who joined the event and hold no seat anywhere."""
    seated = select(SeatAssignment.participant_id)
    result = await db.execute(
        select(Participant)
        .join(EventJoin, EventJoin.participant_id == Participant.id)
        .where(
            EventJoin.event_id == event_id,
            Participant.is_active.is_(True),
            Participant.id.not_in(seated),
        )
        .order_by(Participant.name.asc())
    )
    reserved = get_settings().RESERVED_PARTICIPANT_TYPES
    return [p for p in result.scalars().unique().all() if not p.has_reserved_type(reserved)]
