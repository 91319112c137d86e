"""
Staff dashboard summary: headcounts, scans per country and per event.
"""

from collections import defaultdict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.clock import isoformat
from eventdesk.core.config import get_settings
from eventdesk.core.logging import get_logger
from eventdesk.models.attendance import AttendanceRecord
from eventdesk.models.event import Event
from eventdesk.models.feedback import Feedback
from eventdesk.models.participant import Participant
from eventdesk.services import cache_service

logger = get_logger(__name__)


async def _build_summary(db: AsyncSession, include_reserved: bool) -> dict:
    reserved = [] if include_reserved else get_settings().RESERVED_PARTICIPANT_TYPES

    participants = await db.execute(
        select(Participant).where(Participant.is_active.is_(True), Participant.is_staff.is_(False))
    )
    counted = [p for p in participants.scalars().unique().all() if not p.has_reserved_type(reserved)]

    participants_by_country: dict[int, int] = defaultdict(int)
    for participant in counted:
        if participant.country_id is not None:
            participants_by_country[participant.country_id] += 1

    scans = await db.execute(
        select(AttendanceRecord, Participant)
        .join(Participant, Participant.id == AttendanceRecord.participant_id)
        .where(AttendanceRecord.scanned_at.is_not(None))
        .order_by(AttendanceRecord.scanned_at.desc(), AttendanceRecord.id.desc())
    )
    scan_rows = [(record, p) for record, p in scans.unique().all() if not p.has_reserved_type(reserved)]

    scans_by_country: dict[int, int] = defaultdict(int)
    attendance_by_event: dict[int, list[dict]] = defaultdict(list)
    for record, participant in scan_rows:
        if participant.country_id is not None:
            scans_by_country[participant.country_id] += 1
        attendance_by_event[record.event_id].append({
            "id": participant.id,
            "name": participant.name,
            "email": participant.email,
            "display_id": participant.display_id,
            "country_id": participant.country_id,
            "country_name": participant.country.name if participant.country else None,
            "country_flag_url": participant.country.flag_url if participant.country else None,
            "scanned_at": isoformat(record.scanned_at),
        })

    country_stats = {
        str(country_id): {
            "participants": participants_by_country.get(country_id, 0),
            "scans": scans_by_country.get(country_id, 0),
        }
        for country_id in sorted(set(participants_by_country) | set(scans_by_country))
    }

    events = await db.execute(select(Event).order_by(Event.starts_at.is_(None), Event.starts_at.asc(), Event.id.asc()))
    event_rows = [
        {
            "id": event.id,
            "title": event.title,
            "starts_at": isoformat(event.starts_at),
            "attendance_count": len(attendance_by_event.get(event.id, [])),
            "participants": attendance_by_event.get(event.id, []),
        }
        for event in events.scalars().all()
    ]

    feedback = await db.execute(select(func.count(Feedback.id), func.avg(Feedback.user_experience_rating)))
    feedback_total, feedback_avg = feedback.one()

    return {
        "participants_total": len(counted),
        "events_total": len(event_rows),
        "scans_total": len(scan_rows),
        "country_stats": country_stats,
        "events": event_rows,
        "feedback": {
            "total": int(feedback_total or 0),
            "average_rating": round(float(feedback_avg), 2) if feedback_avg is not None else None,
        },
    }


async def summary(db: AsyncSession, include_reserved: bool = False) -> dict:
    variant = "all" if include_reserved else "default"

    cached = await cache_service.get_cached_dashboard(variant)
    if cached is not None:
        return cached

    data = await _build_summary(db, include_reserved)
    await cache_service.set_cached_dashboard(variant, data)
    logger.debug("dashboard_summary_built", variant=variant, scans=data["scans_total"])
    return data
