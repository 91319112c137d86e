"""
Pydantic schemas for participant registration, profile and auth.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class ParticipantRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    contact_number: str = Field(..., min_length=1, max_length=30)
    organization: str = Field(..., min_length=1, max_length=255)
    country_id: int
    participant_type_id: int
    password: str = Field(..., min_length=8, max_length=128)
    consent_contact_sharing: bool
    consent_photo_video: bool
    event_ids: list[int] = Field(default_factory=list)


class ParticipantUpdate(BaseModel):
    """Profile fields only; identity credentials are not updatable."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_number: Optional[str] = Field(None, min_length=1, max_length=30)
    organization: Optional[str] = Field(None, min_length=1, max_length=255)
    country_id: Optional[int] = None
    participant_type_id: Optional[int] = None
    consent_contact_sharing: Optional[bool] = None
    consent_photo_video: Optional[bool] = None


class ParticipantLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class CountryBrief(BaseModel):
    id: int
    code: str
    name: str
    flag_url: Optional[str] = None

    model_config = {"from_attributes": True}


class ParticipantTypeBrief(BaseModel):
    id: int
    name: str
    slug: str

    model_config = {"from_attributes": True}


class ParticipantResponse(BaseModel):
    id: int
    name: str
    email: str
    contact_number: str
    organization: str
    display_id: str
    credential_payload: str
    is_active: bool
    is_staff: bool
    country: Optional[CountryBrief] = None
    participant_type: Optional[ParticipantTypeBrief] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class JoinedEvent(BaseModel):
    id: int
    title: str
    starts_at: Optional[str] = None


class ParticipantProfile(ParticipantResponse):
    joined_events: list[JoinedEvent] = Field(default_factory=list)
