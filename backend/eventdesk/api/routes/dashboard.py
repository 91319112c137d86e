"""
Staff dashboard summary (cached in Redis).
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.security import TokenClaims, require_staff
from eventdesk.db.session import get_db
from eventdesk.services import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/")
async def dashboard_endpoint(
    include_reserved: bool = Query(False),
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await dashboard_service.summary(db, include_reserved)
