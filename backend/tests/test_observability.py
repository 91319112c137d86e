"""
Tests for log redaction and request correlation headers.
"""

import pytest
from httpx import AsyncClient

from eventdesk.core.logging import REDACTED, redact_credentials


def test_credentials_are_redacted():
    event = redact_credentials(None, "info", {
        "event": "participant_registered",
        "participant_id": 7,
        "credential_payload": "gAAAAABk...",
        "verification_token": "6f1c...",
        "password": "securepassword123",
    })
    assert event["participant_id"] == 7
    assert event["credential_payload"] == REDACTED
    assert event["verification_token"] == REDACTED
    assert event["password"] == REDACTED


def test_other_fields_untouched():
    event = {"event": "seats_assigned", "table_id": 3, "assigned": 2}
    assert redact_credentials(None, "info", dict(event)) == event


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "scanner-7"})
    assert response.headers["X-Request-ID"] == "scanner-7"
    assert response.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient):
    response = await client.get("/api/v1/events/")
    assert len(response.headers["X-Request-ID"]) == 8
