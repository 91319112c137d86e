"""
Scan request and result payloads.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ScanRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=1024)
    event_id: int


class ScannedParticipant(BaseModel):
    id: int
    full_name: str
    email: str
    display_id: str
    country: Optional[str] = None
    country_flag_url: Optional[str] = None
    user_type: Optional[str] = None
    is_verified: bool


class RegisteredEvent(BaseModel):
    id: int
    title: str
    starts_at: Optional[str] = None


class CheckedInEvent(BaseModel):
    id: int
    title: str


class ScanResult(BaseModel):
    ok: bool
    message: str
    participant: Optional[ScannedParticipant] = None
    registered_events: Optional[list[RegisteredEvent]] = None
    checked_in_event: Optional[CheckedInEvent] = None
    already_checked_in: bool = False
    scanned_at: Optional[str] = None
