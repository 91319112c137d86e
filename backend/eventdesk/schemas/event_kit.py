"""
Schemas for the post-event survey and materials flow.
"""

from typing import Optional

from pydantic import BaseModel, Field


class EventKitVerify(BaseModel):
    participant_id: str = Field(..., min_length=1, max_length=255)


class SurveySubmit(BaseModel):
    event_id: int
    user_experience_rating: Optional[int] = Field(None, ge=1, le=5)
    event_ratings: list[int] = Field(default_factory=list)
    recommendations: Optional[str] = Field(None, max_length=1000)


class EventKitSelect(BaseModel):
    event_id: int


class EventKitEvent(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    starts_at: Optional[str] = None
    ends_at: Optional[str] = None


class AttendanceEntry(BaseModel):
    event_id: int
    scanned_at: Optional[str] = None


class EventKitParticipant(BaseModel):
    id: int
    name: str
    display_id: str


class EventKitStep(BaseModel):
    """Where the client should go next."""
    ok: bool = True
    next: str
    participant: Optional[EventKitParticipant] = None


class SurveyPage(BaseModel):
    completed: bool
    next: Optional[str] = None
    participant: EventKitParticipant
    events: list[EventKitEvent] = Field(default_factory=list)
    attendance_entries: list[AttendanceEntry] = Field(default_factory=list)
    joined_event_ids: list[int] = Field(default_factory=list)
    selected_event_id: Optional[int] = None


class MaterialsPage(BaseModel):
    participant: EventKitParticipant
    event: EventKitEvent
    checked_in_events: list[EventKitEvent]
    scanned_at: Optional[str] = None
