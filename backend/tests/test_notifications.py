"""
Tests for registration and assignment notices.

Senders are replaced with in-memory fakes; delivery failures must never
propagate to the caller.
"""

from urllib.parse import parse_qs

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from eventdesk.core.config import Settings
from eventdesk.core.errors import ValidationError
from eventdesk.models.feedback import AssignmentNotificationLog
from eventdesk.schemas.seating import TableCreate
from eventdesk.services import notification_service, seating_service
from eventdesk.services.notification_service import (
    AssignmentNotice,
    RegisteredNotice,
    SmsSender,
    dispatch_assignment,
    dispatch_registered,
)


class FakeEmailSender:
    is_configured = True

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send(self, to_email, subject, text_content, html_content, attachments=None):
        if self.fail:
            raise ConnectionRefusedError("smtp down")
        self.sent.append({"to": to_email, "subject": subject, "text": text_content, "attachments": attachments or []})


class FakeSmsSender:
    is_configured = True

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, number, message):
        if self.fail:
            raise httpx.ConnectError("gateway unreachable")
        self.sent.append({"number": number, "message": message})


def registered_notice(**overrides) -> RegisteredNotice:
    values = {
        "participant_id": 1,
        "display_id": "ASEAN-AB12-CD34",
        "name": "Maria Santos",
        "email": "maria@example.com",
        "contact_number": " 09171234567 ",
        "credential_payload": "encrypted-payload",
    }
    values.update(overrides)
    return RegisteredNotice(**values)


@pytest.mark.asyncio
async def test_registered_notice_sends_both_channels():
    email, sms = FakeEmailSender(), FakeSmsSender()

    report = await dispatch_registered(registered_notice(), email, sms)

    assert (report.email, report.sms) == ("sent", "sent")
    message = email.sent[0]
    assert message["to"] == "maria@example.com"
    assert "ASEAN-AB12-CD34" in message["text"]
    filename, content = message["attachments"][0]
    assert filename == "ASEAN-AB12-CD34.png"
    assert content.startswith(b"\x89PNG")
    assert sms.sent[0]["number"] == "09171234567"


@pytest.mark.asyncio
async def test_delivery_failures_are_swallowed():
    report = await dispatch_registered(registered_notice(), FakeEmailSender(fail=True), FakeSmsSender(fail=True))
    assert (report.email, report.sms) == ("failed", "failed")


@pytest.mark.asyncio
async def test_channels_are_independent():
    sms = FakeSmsSender()
    report = await dispatch_registered(registered_notice(), FakeEmailSender(fail=True), sms)
    assert (report.email, report.sms) == ("failed", "sent")
    assert len(sms.sent) == 1


@pytest.mark.asyncio
async def test_unconfigured_channels_are_skipped():
    email, sms = FakeEmailSender(), FakeSmsSender()
    email.is_configured = False
    sms.is_configured = False

    report = await dispatch_registered(registered_notice(), email, sms)
    assert (report.email, report.sms) == ("skipped", "skipped")
    assert email.sent == [] and sms.sent == []


@pytest.mark.asyncio
async def test_blank_contact_number_skips_sms():
    report = await dispatch_registered(registered_notice(contact_number="  "), FakeEmailSender(), FakeSmsSender())
    assert report.sms == "skipped"


@pytest.mark.asyncio
async def test_assignment_notice_text():
    email = FakeEmailSender()
    notice = AssignmentNotice(
        participant_id=1,
        display_id="ASEAN-AB12-CD34",
        name="Maria Santos",
        email="maria@example.com",
        contact_number="09171234567",
        event_id=1,
        event_title="Opening Plenary",
        event_date="March 02, 2026",
        table_number="T7",
    )

    await dispatch_assignment(notice, email, FakeSmsSender())

    text = email.sent[0]["text"]
    assert "Table Number: T7" in text
    assert "Vehicle: N/A" in text
    assert email.sent[0]["subject"] == "Your assignment for Opening Plenary"


@pytest.mark.asyncio
async def test_sms_gateway_request(monkeypatch):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update({k: v[0] for k, v in parse_qs(request.content.decode()).items()})
        return httpx.Response(200, json=[{"message_id": 1}])

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        notification_service.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )

    sender = SmsSender(Settings(SMS_API_KEY="test-key", SMS_SENDER="EVENTDESK"))
    await sender.send("09171234567", "Hello")

    assert captured == {
        "apikey": "test-key",
        "number": "09171234567",
        "message": "Hello",
        "sendername": "EVENTDESK",
    }


@pytest.mark.asyncio
async def test_sms_gateway_error_is_reported_as_failed(monkeypatch):
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        notification_service.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(lambda r: httpx.Response(500)), **kwargs),
    )
    email = FakeEmailSender()
    email.is_configured = False

    sender = SmsSender(Settings(SMS_API_KEY="test-key"))
    report = await dispatch_registered(registered_notice(), email, sender)
    assert report.sms == "failed"


@pytest.mark.asyncio
async def test_assignment_notice_requires_assignment(client: AsyncClient, make_participant, ongoing_event, staff_headers):
    participant = await make_participant(event_ids=[ongoing_event.id])

    response = await client.post(
        f"/api/v1/participants/{participant.id}/assignment-notice",
        params={"event_id": ongoing_event.id},
        headers=staff_headers,
    )
    assert response.status_code == 422
    assert response.json()["errors"] == {
        "event_id": ["Participant must have either table or vehicle assignment for the selected event."]
    }


@pytest.mark.asyncio
async def test_assignment_notice_is_logged_once(db_session, make_participant, ongoing_event):
    participant = await make_participant(event_ids=[ongoing_event.id])
    participant_id, event_id = participant.id, ongoing_event.id
    table = await seating_service.create_table(db_session, TableCreate(event_id=event_id, table_number="T7", capacity=4))
    await seating_service.assign_seats(db_session, table.id, [participant_id])

    email = FakeEmailSender()
    for _ in range(2):
        report = await notification_service.send_assignment_notice(
            db_session, participant_id, event_id, email, FakeSmsSender()
        )
        assert report.email == "sent"

    logs = await db_session.execute(
        select(AssignmentNotificationLog).where(AssignmentNotificationLog.participant_id == participant_id)
    )
    assert len(logs.scalars().all()) == 1
    assert "Table Number: T7" in email.sent[0]["text"]


@pytest.mark.asyncio
async def test_build_notice_without_assignment(db_session, make_participant, ongoing_event):
    participant = await make_participant(event_ids=[ongoing_event.id])
    assert await notification_service.build_assignment_notice(db_session, participant.id, ongoing_event.id) is None

    with pytest.raises(ValidationError):
        await notification_service.send_assignment_notice(db_session, participant.id, ongoing_event.id)
