"""
Transport vehicles: assignment per (participant, event) and pickup tracking.

A participant rides at most one vehicle per event; assigning them to another
vehicle moves the existing row. Vehicles with a capacity are claimed with the
same version-guarded UPDATE as seating tables (see seating_service); vehicles
without one accept any batch.
"""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.errors import CapacityExceeded, Conflict, NotFound, ValidationError
from eventdesk.core.logging import get_logger
from eventdesk.core.metrics import record_assignment, record_retry
from eventdesk.models.participant import Participant
from eventdesk.models.vehicle import (
    PICKUP_DROPPED_OFF,
    PICKUP_ORDER,
    PICKUP_PENDING,
    PICKUP_PICKED_UP,
    TransportVehicle,
    VehicleAssignment,
)
from eventdesk.schemas.vehicle import DropoffUpdate, PickupUpdate, VehicleCreate
from eventdesk.services.event_service import get_event

logger = get_logger(__name__)

MAX_RETRY_ATTEMPTS = 3


@dataclass
class VehicleBatchResult:
    vehicle_id: int
    event_id: int
    assigned: list[int] = field(default_factory=list)
    moved: list[int] = field(default_factory=list)
    skipped_already_assigned: list[int] = field(default_factory=list)


async def create_vehicle(db: AsyncSession, vehicle_data: VehicleCreate) -> TransportVehicle:
    await get_event(db, vehicle_data.event_id)
    label = vehicle_data.label.strip()
    if not label:
        raise ValidationError("The label field is required.", field="label")

    vehicle = TransportVehicle(
        **vehicle_data.model_dump(exclude={"label"}),
        label=label,
        assigned_count=0,
        version=1,
    )
    db.add(vehicle)
    await db.flush()
    await db.refresh(vehicle)

    logger.info("vehicle_created", vehicle_id=vehicle.id, event_id=vehicle.event_id, capacity=vehicle.capacity)
    return vehicle


async def get_vehicle(db: AsyncSession, vehicle_id: int) -> TransportVehicle:
    result = await db.execute(
        select(TransportVehicle)
        .where(TransportVehicle.id == vehicle_id)
        .execution_options(populate_existing=True)
    )
    vehicle = result.scalar_one_or_none()
    if not vehicle:
        raise NotFound("Vehicle not found.", field="vehicle_id")
    return vehicle


async def list_vehicles(db: AsyncSession, event_id: Optional[int] = None) -> list[TransportVehicle]:
    query = select(TransportVehicle).order_by(TransportVehicle.label.asc())
    if event_id is not None:
        query = query.where(TransportVehicle.event_id == event_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_vehicle_assignments(db: AsyncSession, event_id: int) -> list[VehicleAssignment]:
    result = await db.execute(
        select(VehicleAssignment)
        .where(VehicleAssignment.event_id == event_id)
        .order_by(VehicleAssignment.vehicle_label.asc(), VehicleAssignment.id.asc())
    )
    return list(result.scalars().unique().all())


async def get_participant_vehicle(
    db: AsyncSession, participant_id: int, event_id: int
) -> Optional[VehicleAssignment]:
    result = await db.execute(
        select(VehicleAssignment).where(
            VehicleAssignment.participant_id == participant_id,
            VehicleAssignment.event_id == event_id,
        )
    )
    return result.unique().scalar_one_or_none()


async def _release_vehicle_slot(db: AsyncSession, vehicle_id: Optional[int]) -> None:
    if vehicle_id is None:
        return
    await db.execute(
        update(TransportVehicle)
        .where(TransportVehicle.id == vehicle_id, TransportVehicle.assigned_count > 0)
        .values(
            assigned_count=TransportVehicle.assigned_count - 1,
            version=TransportVehicle.version + 1,
        )
    )


async def assign_vehicle(
    db: AsyncSession,
    vehicle_id: int,
    participant_ids: list[int],
) -> VehicleBatchResult:
    """
    Put a batch of participants on a vehicle for the vehicle's event.
    Capped vehicles are all-or-nothing. Commits on success.
    """
    vehicle = await get_vehicle(db, vehicle_id)
    event_id = vehicle.event_id
    requested = list(dict.fromkeys(participant_ids))

    found = await db.execute(select(Participant.id).where(Participant.id.in_(requested)))
    if len(set(found.scalars().all())) != len(requested):
        raise ValidationError("One or more selected participants are invalid.", field="participant_ids")

    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        vehicle = await get_vehicle(db, vehicle_id)
        label = vehicle.label
        capacity = vehicle.capacity
        assigned_count = vehicle.assigned_count
        current_version = vehicle.version

        existing = await db.execute(
            select(VehicleAssignment)
            .where(
                VehicleAssignment.event_id == event_id,
                VehicleAssignment.participant_id.in_(requested),
            )
            .execution_options(populate_existing=True)
        )
        by_participant = {row.participant_id: row for row in existing.scalars().unique().all()}
        already_here = [pid for pid in requested if pid in by_participant and by_participant[pid].vehicle_id == vehicle_id]
        incoming = [pid for pid in requested if pid not in already_here]

        if not incoming:
            record_assignment("vehicle", "noop")
            return VehicleBatchResult(vehicle_id=vehicle_id, event_id=event_id, skipped_already_assigned=already_here)

        if capacity is not None and len(incoming) > capacity - assigned_count:
            record_assignment("vehicle", "capacity_exceeded")
            logger.warning(
                "vehicle_assignment_rejected",
                vehicle_id=vehicle_id,
                requested=len(incoming),
                available=capacity - assigned_count,
            )
            raise CapacityExceeded("Not enough available seats in this vehicle.", field="participant_ids")

        claim = await db.execute(
            update(TransportVehicle)
            .where(
                TransportVehicle.id == vehicle_id,
                TransportVehicle.version == current_version,
                or_(
                    TransportVehicle.capacity.is_(None),
                    TransportVehicle.assigned_count + len(incoming) <= TransportVehicle.capacity,
                ),
            )
            .values(
                assigned_count=TransportVehicle.assigned_count + len(incoming),
                version=TransportVehicle.version + 1,
            )
        )
        if claim.rowcount == 0:
            logger.info("vehicle_assignment_retry", vehicle_id=vehicle_id, attempt=attempt, reason="version_conflict")
            await db.rollback()
            record_retry("vehicle")
            continue

        moved = []
        for pid in incoming:
            row = by_participant.get(pid)
            if row is None:
                db.add(
                    VehicleAssignment(
                        participant_id=pid,
                        event_id=event_id,
                        vehicle_id=vehicle_id,
                        vehicle_label=label,
                        pickup_status=PICKUP_PENDING,
                    )
                )
                continue
            await _release_vehicle_slot(db, row.vehicle_id)
            row.vehicle_id = vehicle_id
            row.vehicle_label = label
            # a new ride starts from scratch
            row.pickup_status = PICKUP_PENDING
            row.pickup_location = None
            row.pickup_at = None
            row.dropoff_location = None
            row.dropoff_at = None
            moved.append(pid)

        try:
            await db.flush()
        except IntegrityError:
            logger.info("vehicle_assignment_retry", vehicle_id=vehicle_id, attempt=attempt, reason="already_assigned")
            await db.rollback()
            record_retry("vehicle")
            continue

        await db.commit()
        record_assignment("vehicle", "assigned")
        logger.info(
            "vehicle_assigned",
            vehicle_id=vehicle_id,
            event_id=event_id,
            assigned=len(incoming) - len(moved),
            moved=len(moved),
            attempt=attempt,
        )
        return VehicleBatchResult(
            vehicle_id=vehicle_id,
            event_id=event_id,
            assigned=[pid for pid in incoming if pid not in moved],
            moved=moved,
            skipped_already_assigned=already_here,
        )

    record_assignment("vehicle", "conflict")
    raise Conflict("Vehicle assignment failed due to concurrent changes. Please try again.", field="participant_ids")


async def get_vehicle_assignment(db: AsyncSession, assignment_id: int) -> VehicleAssignment:
    assignment = await db.get(VehicleAssignment, assignment_id)
    if not assignment:
        raise NotFound("Vehicle assignment not found.", field="assignment_id")
    return assignment


def _check_transition(current: str, target: str) -> None:
    # Corrections at the same stage are allowed; going back is not
    if PICKUP_ORDER[target] < PICKUP_ORDER[current]:
        raise ValidationError(
            f"Invalid status transition from {current} to {target}.", field="pickup_status"
        )


async def record_pickup(db: AsyncSession, assignment_id: int, pickup: PickupUpdate) -> VehicleAssignment:
    assignment = await get_vehicle_assignment(db, assignment_id)
    _check_transition(assignment.pickup_status, PICKUP_PICKED_UP)

    assignment.pickup_location = pickup.pickup_location.strip()
    assignment.pickup_at = pickup.pickup_at
    assignment.pickup_status = PICKUP_PICKED_UP
    await db.flush()
    await db.refresh(assignment)

    logger.info("participant_picked_up", assignment_id=assignment.id, participant_id=assignment.participant_id)
    return assignment


async def record_dropoff(db: AsyncSession, assignment_id: int, dropoff: DropoffUpdate) -> VehicleAssignment:
    assignment = await get_vehicle_assignment(db, assignment_id)
    _check_transition(assignment.pickup_status, PICKUP_DROPPED_OFF)

    assignment.dropoff_location = dropoff.dropoff_location.strip()
    assignment.dropoff_at = dropoff.dropoff_at
    assignment.pickup_status = PICKUP_DROPPED_OFF
    await db.flush()
    await db.refresh(assignment)

    logger.info("participant_dropped_off", assignment_id=assignment.id, participant_id=assignment.participant_id)
    return assignment


async def remove_vehicle_assignment(db: AsyncSession, assignment_id: int) -> None:
    assignment = await get_vehicle_assignment(db, assignment_id)
    vehicle_id = assignment.vehicle_id
    participant_id = assignment.participant_id

    await db.execute(delete(VehicleAssignment).where(VehicleAssignment.id == assignment_id))
    await _release_vehicle_slot(db, vehicle_id)
    logger.info("vehicle_assignment_removed", assignment_id=assignment_id, participant_id=participant_id)


async def release_participant_vehicles(db: AsyncSession, participant_id: int) -> None:
    result = await db.execute(
        select(VehicleAssignment.id, VehicleAssignment.vehicle_id).where(
            VehicleAssignment.participant_id == participant_id
        )
    )
    for assignment_id, vehicle_id in result.all():
        await db.execute(delete(VehicleAssignment).where(VehicleAssignment.id == assignment_id))
        await _release_vehicle_slot(db, vehicle_id)
