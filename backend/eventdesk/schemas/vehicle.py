"""
Schemas for transport vehicles and pickup/dropoff tracking.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class VehicleCreate(BaseModel):
    event_id: int
    label: str = Field(..., min_length=1, max_length=255)
    plate_number: Optional[str] = Field(None, max_length=50)
    driver_name: Optional[str] = Field(None, max_length=255)
    driver_contact_number: Optional[str] = Field(None, max_length=30)
    capacity: Optional[int] = Field(None, ge=1)


class VehicleResponse(BaseModel):
    id: int
    event_id: int
    label: str
    plate_number: Optional[str]
    driver_name: Optional[str]
    driver_contact_number: Optional[str]
    capacity: Optional[int]
    assigned_count: int

    model_config = {"from_attributes": True}


class VehicleAssignmentRequest(BaseModel):
    vehicle_id: int
    participant_ids: list[int] = Field(..., min_length=1)


class PickupUpdate(BaseModel):
    pickup_location: str = Field(..., min_length=1, max_length=255)
    pickup_at: datetime


class DropoffUpdate(BaseModel):
    dropoff_location: str = Field(..., min_length=1, max_length=255)
    dropoff_at: datetime


class VehicleAssignmentResponse(BaseModel):
    id: int
    participant_id: int
    event_id: int
    vehicle_id: Optional[int]
    vehicle_label: str
    pickup_status: str
    pickup_location: Optional[str]
    pickup_at: Optional[datetime]
    dropoff_location: Optional[str]
    dropoff_at: Optional[datetime]

    model_config = {"from_attributes": True}
