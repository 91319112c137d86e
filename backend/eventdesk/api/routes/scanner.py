"""
Scanner endpoints used at the registration desk.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.errors import DomainError
from eventdesk.core.logging import get_logger
from eventdesk.core.security import TokenClaims, require_staff
from eventdesk.db.session import get_db
from eventdesk.schemas.checkin import ScanRequest, ScanResult
from eventdesk.schemas.event import ScannerEvents
from eventdesk.services import checkin_service
from eventdesk.api.routes.events import to_response

logger = get_logger(__name__)
router = APIRouter(prefix="/scanner", tags=["Scanner"])


@router.get("/events", response_model=ScannerEvents)
async def scanner_events_endpoint(
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    events, default_event_id = await checkin_service.scanner_events(db)
    return ScannerEvents(
        events=[to_response(event, phase) for event, phase in events],
        default_event_id=default_event_id,
    )


@router.post("/scan", response_model=ScanResult)
async def scan_endpoint(
    scan: ScanRequest,
    _: TokenClaims = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Verify a scanned QR payload or typed participant ID.
    Rejections come back as ok=false with the reason, never as HTTP errors.
    """
    try:
        return await checkin_service.scan(db, scan.code, scan.event_id)
    except DomainError as e:
        logger.info("scan_rejected", event_id=scan.event_id, reason=e.error_code)
        return checkin_service.failed_scan(e)
