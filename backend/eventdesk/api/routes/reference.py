"""
Country and participant type endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.security import TokenClaims, require_staff
from eventdesk.db.session import get_db
from eventdesk.schemas.reference import (
    CountryCreate,
    CountryResponse,
    ParticipantTypeCreate,
    ParticipantTypeResponse,
)
from eventdesk.services import reference_service

router = APIRouter(prefix="/reference", tags=["Reference data"])


@router.get("/countries", response_model=list[CountryResponse])
async def list_countries_endpoint(db: AsyncSession = Depends(get_db)):
    return await reference_service.list_countries(db)


@router.post("/countries", response_model=CountryResponse, status_code=status.HTTP_201_CREATED)
async def create_country_endpoint(
    data: CountryCreate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await reference_service.create_country(db, data)


@router.get("/participant-types", response_model=list[ParticipantTypeResponse])
async def list_participant_types_endpoint(db: AsyncSession = Depends(get_db)):
    return await reference_service.list_participant_types(db)


@router.post("/participant-types", response_model=ParticipantTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_participant_type_endpoint(
    data: ParticipantTypeCreate,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await reference_service.create_participant_type(db, data)
