"""
Tests for the check-in scanner.

The duplicate-scan test is the critical one: concurrent scans of the same
badge for the same event must leave exactly one attendance record.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from eventdesk.core.errors import Ineligible, NotFound
from eventdesk.models.attendance import STATUS_PENDING, STATUS_SCANNED, AttendanceRecord
from eventdesk.services import checkin_service
from conftest import TestSessionLocal, headers_for


async def scan(client: AsyncClient, headers: dict, code: str, event_id: int) -> dict:
    response = await client.post(
        "/api/v1/scanner/scan", json={"code": code, "event_id": event_id}, headers=headers
    )
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_scan_records_attendance(client: AsyncClient, make_participant, ongoing_event, upcoming_event, staff_headers):
    participant = await make_participant(event_ids=[ongoing_event.id, upcoming_event.id])

    data = await scan(client, staff_headers, participant.credential_payload, ongoing_event.id)
    assert data["ok"] is True
    assert data["message"] == "Attendance recorded successfully."
    assert data["already_checked_in"] is False
    assert data["participant"]["display_id"] == participant.display_id
    assert data["participant"]["country"] == "Philippines"
    assert data["checked_in_event"] == {"id": ongoing_event.id, "title": ongoing_event.title}
    assert [e["id"] for e in data["registered_events"]] == [ongoing_event.id, upcoming_event.id]
    assert data["scanned_at"] is not None


@pytest.mark.asyncio
async def test_second_scan_reports_first_time(client: AsyncClient, db_session, make_participant, ongoing_event, staff_headers):
    participant = await make_participant(event_ids=[ongoing_event.id])

    first = await scan(client, staff_headers, participant.display_id, ongoing_event.id)
    second = await scan(client, staff_headers, participant.display_id, ongoing_event.id)

    assert second["ok"] is True
    assert second["message"] == "Already checked in for this event."
    assert second["already_checked_in"] is True
    assert second["scanned_at"] == first["scanned_at"]

    count = await db_session.execute(
        select(func.count(AttendanceRecord.id)).where(AttendanceRecord.participant_id == participant.id)
    )
    assert count.scalar() == 1


@pytest.mark.asyncio
async def test_concurrent_scans_record_once(make_participant, ongoing_event):
    """
    Five scanners read the same badge at once.
    Exactly one records attendance; the rest report the winner's time.
    """
    participant = await make_participant(event_ids=[ongoing_event.id])
    code, event_id = participant.display_id, ongoing_event.id
    base = datetime.now(timezone.utc)

    async def scan_in_own_session(offset: int):
        async with TestSessionLocal() as session:
            return await checkin_service.scan(session, code, event_id, now=base + timedelta(seconds=offset))

    results = await asyncio.gather(*(scan_in_own_session(i) for i in range(5)))

    created = [r for r in results if not r.already_checked_in]
    assert len(created) == 1
    assert {r.scanned_at for r in results} == {created[0].scanned_at}

    async with TestSessionLocal() as session:
        count = await session.execute(
            select(func.count(AttendanceRecord.id)).where(
                AttendanceRecord.participant_id == participant.id,
                AttendanceRecord.event_id == event_id,
            )
        )
        assert count.scalar() == 1


@pytest.mark.asyncio
async def test_scan_stamps_pending_record(db_session, make_participant, ongoing_event):
    participant = await make_participant(event_ids=[ongoing_event.id])
    db_session.add(AttendanceRecord(participant_id=participant.id, event_id=ongoing_event.id, status=STATUS_PENDING))
    await db_session.commit()

    result = await checkin_service.scan(db_session, participant.display_id, ongoing_event.id)
    assert result.already_checked_in is False
    assert result.message == checkin_service.MESSAGE_RECORDED

    record = await db_session.execute(
        select(AttendanceRecord).where(AttendanceRecord.participant_id == participant.id)
    )
    record = record.scalar_one()
    assert record.status == STATUS_SCANNED
    assert record.scanned_at is not None


@pytest.mark.asyncio
async def test_resolve_participant_fallbacks(db_session, make_participant):
    participant = await make_participant()

    by_display_id = await checkin_service.resolve_participant(db_session, f"  {participant.display_id} ")
    by_payload = await checkin_service.resolve_participant(db_session, participant.credential_payload)
    by_raw_token = await checkin_service.resolve_participant(db_session, participant.verification_token)

    assert by_display_id.id == by_payload.id == by_raw_token.id == participant.id

    with pytest.raises(NotFound) as exc:
        await checkin_service.resolve_participant(db_session, "ASEAN-NOPE-NOPE")
    assert exc.value.message == "Invalid QR code or participant ID."


@pytest.mark.asyncio
async def test_scan_rejections_are_soft(client: AsyncClient, make_participant, ongoing_event, upcoming_event, staff_headers):
    """Rejections come back as ok=false with the reason shown at the scanner."""
    inactive = await make_participant(event_ids=[ongoing_event.id], is_active=False)
    not_joined = await make_participant(event_ids=[upcoming_event.id])

    data = await scan(client, staff_headers, "garbage", ongoing_event.id)
    assert data == {
        "ok": False,
        "message": "Invalid QR code or participant ID.",
        "participant": None,
        "registered_events": None,
        "checked_in_event": None,
        "already_checked_in": False,
        "scanned_at": None,
    }

    data = await scan(client, staff_headers, inactive.display_id, ongoing_event.id)
    assert data["ok"] is False
    assert data["message"] == "Participant is inactive."

    data = await scan(client, staff_headers, not_joined.display_id, ongoing_event.id)
    assert data["ok"] is False
    assert data["message"] == "Participant is not registered for the selected event."

    data = await scan(client, staff_headers, not_joined.display_id, 9999)
    assert data["ok"] is False
    assert data["message"] == "Selected event not found."


@pytest.mark.asyncio
async def test_rejected_scan_writes_nothing(db_session, make_participant, ongoing_event):
    participant = await make_participant(is_active=False, event_ids=[ongoing_event.id])

    with pytest.raises(Ineligible):
        await checkin_service.scan(db_session, participant.display_id, ongoing_event.id)

    count = await db_session.execute(select(func.count(AttendanceRecord.id)))
    assert count.scalar() == 0


@pytest.mark.asyncio
async def test_scanner_requires_staff(client: AsyncClient, make_participant, ongoing_event):
    participant = await make_participant(event_ids=[ongoing_event.id])
    response = await client.post(
        "/api/v1/scanner/scan",
        json={"code": participant.display_id, "event_id": ongoing_event.id},
        headers=headers_for(participant),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_scanner_events_default(client: AsyncClient, ongoing_event, upcoming_event, closed_event, staff_headers):
    response = await client.get("/api/v1/scanner/events", headers=staff_headers)
    assert response.status_code == 200
    data = response.json()

    phases = {e["id"]: e["phase"] for e in data["events"]}
    assert phases == {
        closed_event.id: "closed",
        ongoing_event.id: "ongoing",
        upcoming_event.id: "upcoming",
    }
    assert data["default_event_id"] == ongoing_event.id


@pytest.mark.asyncio
async def test_revert_attendance_allows_rescan(client: AsyncClient, make_participant, ongoing_event, staff_headers):
    participant = await make_participant(event_ids=[ongoing_event.id])
    await scan(client, staff_headers, participant.display_id, ongoing_event.id)

    response = await client.delete(
        f"/api/v1/participants/{participant.id}/attendance/{ongoing_event.id}", headers=staff_headers
    )
    assert response.status_code == 204

    data = await scan(client, staff_headers, participant.display_id, ongoing_event.id)
    assert data["already_checked_in"] is False

    response = await client.delete(
        f"/api/v1/participants/{participant.id}/attendance/9999", headers=staff_headers
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Attendance record not found."


@pytest.mark.asyncio
async def test_checked_in_event_ids_in_scan_order(db_session, make_participant, ongoing_event, upcoming_event):
    participant = await make_participant(event_ids=[ongoing_event.id, upcoming_event.id])
    base = datetime.now(timezone.utc)

    await checkin_service.scan(db_session, participant.display_id, upcoming_event.id, now=base)
    await checkin_service.scan(db_session, participant.display_id, ongoing_event.id, now=base + timedelta(minutes=5))

    assert await checkin_service.checked_in_event_ids(db_session, participant.id) == [
        upcoming_event.id,
        ongoing_event.id,
    ]
