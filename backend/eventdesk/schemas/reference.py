"""
Schemas for countries and participant types.
"""

from typing import Optional

from pydantic import BaseModel, Field


class CountryCreate(BaseModel):
    code: str = Field(..., min_length=2, max_length=8)
    name: str = Field(..., min_length=1, max_length=255)
    flag_url: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class CountryResponse(BaseModel):
    id: int
    code: str
    name: str
    flag_url: Optional[str]
    is_active: bool

    model_config = {"from_attributes": True}


class ParticipantTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255)
    is_active: bool = True


class ParticipantTypeResponse(BaseModel):
    id: int
    name: str
    slug: str
    is_active: bool

    model_config = {"from_attributes": True}
