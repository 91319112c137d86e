"""
Tests for transport vehicles and pickup/dropoff tracking.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from eventdesk.models.vehicle import TransportVehicle


async def create_vehicle(client: AsyncClient, headers: dict, event_id: int, label: str = "Bus 1", capacity=None) -> dict:
    response = await client.post(
        "/api/v1/vehicles/",
        json={
            "event_id": event_id,
            "label": label,
            "plate_number": "ABC 1234",
            "driver_name": "Juan Dela Cruz",
            "driver_contact_number": "09179990000",
            "capacity": capacity,
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


async def assign(client: AsyncClient, headers: dict, vehicle_id: int, participant_ids: list[int]):
    return await client.post(
        "/api/v1/vehicles/assignments",
        json={"vehicle_id": vehicle_id, "participant_ids": participant_ids},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_assign_to_vehicle(client: AsyncClient, make_participant, ongoing_event, staff_headers):
    vehicle = await create_vehicle(client, staff_headers, ongoing_event.id, capacity=4)
    first = await make_participant()
    second = await make_participant()

    response = await assign(client, staff_headers, vehicle["id"], [first.id, second.id])
    assert response.status_code == 200
    rows = response.json()
    assert [row["participant_id"] for row in rows] == [first.id, second.id]
    assert all(row["pickup_status"] == "pending" for row in rows)
    assert all(row["vehicle_label"] == "Bus 1" for row in rows)
    assert all(row["event_id"] == ongoing_event.id for row in rows)

    vehicles = await client.get("/api/v1/vehicles/", params={"event_id": ongoing_event.id}, headers=staff_headers)
    assert vehicles.json()[0]["assigned_count"] == 2


@pytest.mark.asyncio
async def test_capped_vehicle_is_all_or_nothing(client: AsyncClient, make_participant, ongoing_event, staff_headers):
    vehicle = await create_vehicle(client, staff_headers, ongoing_event.id, capacity=2)
    ids = [(await make_participant()).id for _ in range(3)]

    response = await assign(client, staff_headers, vehicle["id"], ids)
    assert response.status_code == 409
    assert response.json()["errors"] == {"participant_ids": ["Not enough available seats in this vehicle."]}

    listed = await client.get("/api/v1/vehicles/assignments", params={"event_id": ongoing_event.id}, headers=staff_headers)
    assert listed.json() == []


@pytest.mark.asyncio
async def test_uncapped_vehicle_accepts_any_batch(client: AsyncClient, make_participant, ongoing_event, staff_headers):
    vehicle = await create_vehicle(client, staff_headers, ongoing_event.id)
    ids = [(await make_participant()).id for _ in range(5)]

    response = await assign(client, staff_headers, vehicle["id"], ids)
    assert response.status_code == 200
    assert len(response.json()) == 5


@pytest.mark.asyncio
async def test_reassignment_moves_participant(client: AsyncClient, db_session, make_participant, ongoing_event, staff_headers):
    bus = await create_vehicle(client, staff_headers, ongoing_event.id, label="Bus 1", capacity=2)
    van = await create_vehicle(client, staff_headers, ongoing_event.id, label="Van 1", capacity=2)
    participant = await make_participant()

    await assign(client, staff_headers, bus["id"], [participant.id])
    response = await assign(client, staff_headers, van["id"], [participant.id])
    rows = response.json()
    assert len(rows) == 1
    assert rows[0]["vehicle_id"] == van["id"]
    assert rows[0]["vehicle_label"] == "Van 1"

    counts = await db_session.execute(
        select(TransportVehicle.id, TransportVehicle.assigned_count).execution_options(populate_existing=True)
    )
    assert dict(counts.all()) == {bus["id"]: 0, van["id"]: 1}

    listed = await client.get("/api/v1/vehicles/assignments", params={"event_id": ongoing_event.id}, headers=staff_headers)
    assert len(listed.json()) == 1


@pytest.mark.asyncio
async def test_pickup_then_dropoff(client: AsyncClient, make_participant, ongoing_event, staff_headers):
    vehicle = await create_vehicle(client, staff_headers, ongoing_event.id)
    participant = await make_participant()
    assignment = (await assign(client, staff_headers, vehicle["id"], [participant.id])).json()[0]

    response = await client.post(
        f"/api/v1/vehicles/assignments/{assignment['id']}/pickup",
        json={"pickup_location": " Hotel Lobby ", "pickup_at": "2026-03-01T07:30:00Z"},
        headers=staff_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["pickup_status"] == "picked_up"
    assert data["pickup_location"] == "Hotel Lobby"

    response = await client.post(
        f"/api/v1/vehicles/assignments/{assignment['id']}/dropoff",
        json={"dropoff_location": "Convention Center", "dropoff_at": "2026-03-01T08:10:00Z"},
        headers=staff_headers,
    )
    assert response.status_code == 200
    assert response.json()["pickup_status"] == "dropped_off"

    # No going back once dropped off
    response = await client.post(
        f"/api/v1/vehicles/assignments/{assignment['id']}/pickup",
        json={"pickup_location": "Hotel Lobby", "pickup_at": "2026-03-01T09:00:00Z"},
        headers=staff_headers,
    )
    assert response.status_code == 422
    assert "pickup_status" in response.json()["errors"]


@pytest.mark.asyncio
async def test_remove_vehicle_assignment(client: AsyncClient, make_participant, ongoing_event, staff_headers):
    vehicle = await create_vehicle(client, staff_headers, ongoing_event.id, capacity=1)
    first = await make_participant()
    second = await make_participant()
    assignment = (await assign(client, staff_headers, vehicle["id"], [first.id])).json()[0]

    response = await client.delete(f"/api/v1/vehicles/assignments/{assignment['id']}", headers=staff_headers)
    assert response.status_code == 204

    # The freed slot can be taken again
    response = await assign(client, staff_headers, vehicle["id"], [second.id])
    assert response.status_code == 200

    response = await client.delete(f"/api/v1/vehicles/assignments/{assignment['id']}", headers=staff_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_vehicle_for_unknown_event(client: AsyncClient, staff_headers):
    response = await client.post(
        "/api/v1/vehicles/",
        json={"event_id": 9999, "label": "Bus 1"},
        headers=staff_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_moved_participant_starts_pending(client: AsyncClient, make_participant, ongoing_event, staff_headers):
    first_van = await create_vehicle(client, staff_headers, ongoing_event.id, label="Van 1")
    second_van = await create_vehicle(client, staff_headers, ongoing_event.id, label="Van 2")
    participant = await make_participant()
    assignment = (await assign(client, staff_headers, first_van["id"], [participant.id])).json()[0]

    await client.post(
        f"/api/v1/vehicles/assignments/{assignment['id']}/pickup",
        json={"pickup_location": "Airport Hotel", "pickup_at": "2026-03-01T07:30:00Z"},
        headers=staff_headers,
    )
    response = await client.post(
        f"/api/v1/vehicles/assignments/{assignment['id']}/dropoff",
        json={"dropoff_location": "Convention Center", "dropoff_at": "2026-03-01T08:10:00Z"},
        headers=staff_headers,
    )
    assert response.json()["pickup_status"] == "dropped_off"

    response = await assign(client, staff_headers, second_van["id"], [participant.id])
    assert response.status_code == 200
    row = response.json()[0]
    assert row["vehicle_label"] == "Van 2"
    assert row["pickup_status"] == "pending"
    assert row["pickup_location"] is None
    assert row["pickup_at"] is None
    assert row["dropoff_location"] is None
    assert row["dropoff_at"] is None
