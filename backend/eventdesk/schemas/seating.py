"""
Schemas for seating tables and seat assignment batches.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TableCreate(BaseModel):
    event_id: int
    table_number: str = Field(..., min_length=1, max_length=50)
    capacity: int = Field(..., ge=1)


class TableCapacityUpdate(BaseModel):
    capacity: int = Field(..., ge=1)


class SeatAssignmentRequest(BaseModel):
    table_id: int
    participant_ids: list[int] = Field(..., min_length=1)


class SeatHolder(BaseModel):
    id: int
    full_name: str
    display_id: str
    country: Optional[str] = None
    user_type: Optional[str] = None


class SeatAssignmentResponse(BaseModel):
    id: int
    seat_number: int
    assigned_at: Optional[str] = None
    participant: SeatHolder


class TableResponse(BaseModel):
    id: int
    event_id: int
    table_number: str
    capacity: int
    assigned_count: int
    assignments: list[SeatAssignmentResponse] = Field(default_factory=list)


class SeatBatchResult(BaseModel):
    table_id: int
    assigned: list[dict]
    skipped_already_seated: list[int]
    ineligible: list[int]
    assigned_at: Optional[datetime] = None
