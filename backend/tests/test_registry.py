"""
Tests for the participant registry: credentials, account gating and deletion.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from eventdesk.core.errors import NotFound
from eventdesk.models.attendance import AttendanceRecord
from eventdesk.models.event import EventJoin
from eventdesk.models.participant import Participant
from eventdesk.models.seating import SeatAssignment, SeatingTable
from eventdesk.schemas.participant import ParticipantRegister
from eventdesk.services import registry_service
from conftest import PASSWORD, headers_for


@pytest.mark.asyncio
async def test_credentials_are_unique(make_participant):
    participants = [await make_participant() for _ in range(10)]
    assert len({p.display_id for p in participants}) == 10
    assert len({p.verification_token for p in participants}) == 10
    assert len({p.credential_payload for p in participants}) == 10


@pytest.mark.asyncio
async def test_credentials_are_write_once(make_participant):
    participant = await make_participant()
    with pytest.raises(ValueError):
        participant.display_id = "ASEAN-ZZZZ-ZZZZ"
    with pytest.raises(ValueError):
        participant.verification_token = "not-the-original"

    # Re-assigning the same value is a no-op
    participant.display_id = participant.display_id


@pytest.mark.asyncio
async def test_display_id_collision_is_retried(db_session, make_participant, country, participant_type, monkeypatch):
    """
    A display id that slips past the pre-check collides at the unique
    constraint; the registry rolls back and generates a new one.
    """
    existing = await make_participant()
    taken = existing.display_id
    country_id, participant_type_id = country.id, participant_type.id

    candidates = iter([taken, "ASEAN-NEW0-0001"])

    async def never_taken(db, display_id):
        return False

    monkeypatch.setattr(registry_service, "_display_id_taken", never_taken)
    monkeypatch.setattr(registry_service, "generate_display_id", lambda prefix=None: next(candidates))

    participant = await registry_service.register_participant(db_session, ParticipantRegister(
        name="Late Registrant",
        email="late@example.com",
        contact_number="09170009999",
        organization="State University",
        country_id=country_id,
        participant_type_id=participant_type_id,
        password=PASSWORD,
        consent_contact_sharing=True,
        consent_photo_video=True,
    ))

    assert participant.display_id == "ASEAN-NEW0-0001"
    count = await db_session.execute(select(func.count(Participant.id)).where(Participant.display_id == taken))
    assert count.scalar() == 1


@pytest.mark.asyncio
async def test_list_participants_by_event(client: AsyncClient, make_participant, ongoing_event, staff_headers):
    joined = await make_participant(name="Alpha", event_ids=[ongoing_event.id])
    await make_participant(name="Bravo")

    response = await client.get(
        "/api/v1/participants/", params={"event_id": ongoing_event.id}, headers=staff_headers
    )
    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [joined.id]


@pytest.mark.asyncio
async def test_update_profile_keeps_credentials(client: AsyncClient, make_participant, staff_headers):
    participant = await make_participant()
    display_id = participant.display_id

    response = await client.patch(
        f"/api/v1/participants/{participant.id}",
        json={"organization": "  Regional Office  ", "display_id": "ASEAN-HACK-0000"},
        headers=staff_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["organization"] == "Regional Office"
    assert data["display_id"] == display_id


@pytest.mark.asyncio
async def test_deactivate_and_activate(client: AsyncClient, make_participant, staff_headers):
    participant = await make_participant()

    response = await client.post(f"/api/v1/participants/{participant.id}/deactivate", headers=staff_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    login = await client.post("/api/v1/auth/login", json={"email": participant.email, "password": PASSWORD})
    assert login.status_code == 403

    response = await client.post(f"/api/v1/participants/{participant.id}/activate", headers=staff_headers)
    assert response.json()["is_active"] is True

    login = await client.post("/api/v1/auth/login", json={"email": participant.email, "password": PASSWORD})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_delete_releases_seat(db_session, client: AsyncClient, make_participant, ongoing_event, staff_headers):
    participant = await make_participant(event_ids=[ongoing_event.id])
    table = SeatingTable(event_id=ongoing_event.id, table_number="T1", capacity=4, occupied_seats=1, version=1)
    db_session.add(table)
    await db_session.flush()
    db_session.add(SeatAssignment(
        table_id=table.id,
        participant_id=participant.id,
        seat_number=1,
        assigned_at=ongoing_event.starts_at,
    ))
    db_session.add(AttendanceRecord(
        participant_id=participant.id,
        event_id=ongoing_event.id,
        status="scanned",
        scanned_at=ongoing_event.starts_at,
    ))
    await db_session.commit()
    table_id, participant_id = table.id, participant.id

    response = await client.delete(f"/api/v1/participants/{participant_id}", headers=staff_headers)
    assert response.status_code == 204

    occupied = await db_session.execute(select(SeatingTable.occupied_seats).where(SeatingTable.id == table_id))
    assert occupied.scalar() == 0
    for model in (SeatAssignment, AttendanceRecord, EventJoin):
        remaining = await db_session.execute(select(func.count()).select_from(model).where(model.participant_id == participant_id))
        assert remaining.scalar() == 0


@pytest.mark.asyncio
async def test_get_unknown_participant(db_session):
    with pytest.raises(NotFound) as exc:
        await registry_service.get_participant(db_session, 9999)
    assert exc.value.message == "Participant not found."


@pytest.mark.asyncio
async def test_participant_cannot_view_others(client: AsyncClient, make_participant):
    first = await make_participant()
    second = await make_participant()
    response = await client.get(f"/api/v1/participants/{second.id}", headers=headers_for(first))
    assert response.status_code == 403
