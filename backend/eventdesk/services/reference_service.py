"""
Reference data: countries and participant types.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.errors import ValidationError
from eventdesk.core.logging import get_logger
from eventdesk.models.reference import Country, ParticipantType
from eventdesk.schemas.reference import CountryCreate, ParticipantTypeCreate

logger = get_logger(__name__)


async def create_country(db: AsyncSession, data: CountryCreate) -> Country:
    code = data.code.strip().upper()
    existing = await db.execute(select(Country.id).where(Country.code == code))
    if existing.first() is not None:
        raise ValidationError("The country code has already been taken.", field="code")

    country = Country(code=code, name=data.name.strip(), flag_url=data.flag_url, is_active=data.is_active)
    db.add(country)
    await db.flush()
    await db.refresh(country)

    logger.info("country_created", country_id=country.id, code=country.code)
    return country


async def list_countries(db: AsyncSession, active_only: bool = True) -> list[Country]:
    query = select(Country).order_by(Country.name.asc())
    if active_only:
        query = query.where(Country.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_participant_type(db: AsyncSession, data: ParticipantTypeCreate) -> ParticipantType:
    slug = data.slug.strip().lower()
    existing = await db.execute(select(ParticipantType.id).where(ParticipantType.slug == slug))
    if existing.first() is not None:
        raise ValidationError("The slug has already been taken.", field="slug")

    participant_type = ParticipantType(name=data.name.strip(), slug=slug, is_active=data.is_active)
    db.add(participant_type)
    await db.flush()
    await db.refresh(participant_type)

    logger.info("participant_type_created", participant_type_id=participant_type.id, slug=slug)
    return participant_type


async def list_participant_types(db: AsyncSession, active_only: bool = True) -> list[ParticipantType]:
    query = select(ParticipantType).order_by(ParticipantType.name.asc())
    if active_only:
        query = query.where(ParticipantType.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())
