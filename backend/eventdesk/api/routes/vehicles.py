"""
Transport vehicles, participant assignments and pickup/dropoff tracking.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.security import TokenClaims, require_staff
from eventdesk.db.session import get_db
from eventdesk.schemas.vehicle import (
    DropoffUpdate,
    PickupUpdate,
    VehicleAssignmentRequest,
    VehicleAssignmentResponse,
    VehicleCreate,
    VehicleResponse,
)
from eventdesk.services import notification_service, vehicle_service

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.get("/", response_model=list[VehicleResponse])
async def list_vehicles_endpoint(
    event_id: Optional[int] = Query(None),
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await vehicle_service.list_vehicles(db, event_id)


@router.post("/", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle_endpoint(
    vehicle_data: VehicleCreate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await vehicle_service.create_vehicle(db, vehicle_data)


@router.get("/assignments", response_model=list[VehicleAssignmentResponse])
async def list_vehicle_assignments_endpoint(
    event_id: int = Query(...),
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await vehicle_service.list_vehicle_assignments(db, event_id)


@router.post("/assignments", response_model=list[VehicleAssignmentResponse])
async def assign_vehicle_endpoint(
    request: VehicleAssignmentRequest,
    background_tasks: BackgroundTasks,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Put participants on a vehicle; returns their assignments for the vehicle's event."""
    result = await vehicle_service.assign_vehicle(db, request.vehicle_id, request.participant_ids)

    rows = []
    for participant_id in request.participant_ids:
        assignment = await vehicle_service.get_participant_vehicle(db, participant_id, result.event_id)
        if assignment is not None and assignment not in rows:
            rows.append(assignment)

    for participant_id in result.assigned + result.moved:
        notice = await notification_service.build_assignment_notice(db, participant_id, result.event_id)
        if notice is not None:
            background_tasks.add_task(notification_service.dispatch_assignment, notice)

    return rows


@router.post("/assignments/{assignment_id}/pickup", response_model=VehicleAssignmentResponse)
async def record_pickup_endpoint(
    assignment_id: int,
    pickup: PickupUpdate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await vehicle_service.record_pickup(db, assignment_id, pickup)


@router.post("/assignments/{assignment_id}/dropoff", response_model=VehicleAssignmentResponse)
async def record_dropoff_endpoint(
    assignment_id: int,
    dropoff: DropoffUpdate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await vehicle_service.record_dropoff(db, assignment_id, dropoff)


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_vehicle_assignment_endpoint(
    assignment_id: int,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    await vehicle_service.remove_vehicle_assignment(db, assignment_id)
