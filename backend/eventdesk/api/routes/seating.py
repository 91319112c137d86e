"""
Seating table management and batch seat assignment.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.clock import isoformat
from eventdesk.core.security import TokenClaims, require_staff
from eventdesk.db.session import get_db
from eventdesk.models.seating import SeatAssignment, SeatingTable
from eventdesk.schemas.participant import ParticipantResponse
from eventdesk.schemas.seating import (
    SeatAssignmentRequest,
    SeatAssignmentResponse,
    SeatBatchResult,
    SeatHolder,
    TableCapacityUpdate,
    TableCreate,
    TableResponse,
)
from eventdesk.services import notification_service, seating_service

router = APIRouter(prefix="/seating", tags=["Seating"])


def _table_response(table: SeatingTable, assignments: list[SeatAssignment]) -> TableResponse:
    return TableResponse(
        id=table.id,
        event_id=table.event_id,
        table_number=table.table_number,
        capacity=table.capacity,
        assigned_count=table.occupied_seats,
        assignments=[
            SeatAssignmentResponse(
                id=a.id,
                seat_number=a.seat_number,
                assigned_at=isoformat(a.assigned_at),
                participant=SeatHolder(
                    id=a.participant.id,
                    full_name=a.participant.name,
                    display_id=a.participant.display_id,
                    country=a.participant.country.name if a.participant.country else None,
                    user_type=a.participant.participant_type.name if a.participant.participant_type else None,
                ),
            )
            for a in assignments
        ],
    )


@router.get("/tables", response_model=list[TableResponse])
async def list_tables_endpoint(
    event_id: int = Query(...),
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return [_table_response(t.table, t.assignments) for t in await seating_service.list_tables(db, event_id)]


@router.post("/tables", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
async def create_table_endpoint(
    table_data: TableCreate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    table = await seating_service.create_table(db, table_data)
    return _table_response(table, [])


@router.patch("/tables/{table_id}", response_model=TableResponse)
async def update_table_capacity_endpoint(
    table_id: int,
    update: TableCapacityUpdate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    table = await seating_service.update_table_capacity(db, table_id, update.capacity)
    return _table_response(table, await seating_service.table_assignments(db, table_id))


@router.get("/unassigned", response_model=list[ParticipantResponse])
async def unassigned_participants_endpoint(
    event_id: int = Query(...),
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await seating_service.unassigned_participants(db, event_id)


@router.post("/assignments", response_model=SeatBatchResult)
async def assign_seats_endpoint(
    request: SeatAssignmentRequest,
    background_tasks: BackgroundTasks,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Seat a batch at a table, all-or-nothing.
    Fails with a field-scoped capacity error when the batch does not fit.
    """
    result = await seating_service.assign_seats(db, request.table_id, request.participant_ids)

    for participant_id in result.assigned_participant_ids:
        notice = await notification_service.build_assignment_notice(db, participant_id, result.event_id)
        if notice is not None:
            background_tasks.add_task(notification_service.dispatch_assignment, notice)

    return SeatBatchResult(
        table_id=result.table_id,
        assigned=result.assigned,
        skipped_already_seated=result.skipped_already_seated,
        ineligible=result.ineligible,
        assigned_at=result.assigned_at,
    )


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_seat_assignment_endpoint(
    assignment_id: int,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    await seating_service.remove_seat_assignment(db, assignment_id)
