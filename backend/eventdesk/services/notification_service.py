"""
Best-effort email and SMS notices for registrations and assignments.

Notices are plain frozen dataclasses built from committed data, so delivery
can run after the response (FastAPI BackgroundTasks) without touching the
database session. Every channel is independent: a missing configuration skips
it, and any delivery error is logged and swallowed.
"""

import asyncio
import smtplib
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.clock import as_utc, utcnow
from eventdesk.core.config import Settings, get_settings
from eventdesk.core.errors import ValidationError
from eventdesk.core.logging import get_logger
from eventdesk.core.metrics import record_notification
from eventdesk.models.feedback import AssignmentNotificationLog
from eventdesk.models.participant import Participant
from eventdesk.services.event_service import get_event
from eventdesk.services.qr_service import credential_qr_png
from eventdesk.services.registry_service import get_participant
from eventdesk.services.seating_service import get_participant_seat
from eventdesk.services.vehicle_service import get_participant_vehicle

logger = get_logger(__name__)

SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class RegisteredNotice:
    participant_id: int
    display_id: str
    name: str
    email: str
    contact_number: str
    credential_payload: str

    @classmethod
    def from_participant(cls, participant: Participant) -> "RegisteredNotice":
        return cls(
            participant_id=participant.id,
            display_id=participant.display_id,
            name=participant.name,
            email=participant.email,
            contact_number=participant.contact_number,
            credential_payload=participant.credential_payload,
        )


@dataclass(frozen=True)
class AssignmentNotice:
    participant_id: int
    display_id: str
    name: str
    email: str
    contact_number: str
    event_id: int
    event_title: str
    event_date: str
    table_number: Optional[str] = None
    vehicle_label: Optional[str] = None
    vehicle_plate_number: Optional[str] = None


@dataclass
class DeliveryReport:
    email: str
    sms: str


class EmailSender:
    """Blocking SMTP client; callers run it in a worker thread."""

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_address = settings.MAIL_FROM_ADDRESS
        self.from_name = settings.MAIL_FROM_NAME

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    def send(
        self,
        to_email: str,
        subject: str,
        text_content: str,
        html_content: str,
        attachments: Optional[list[tuple[str, bytes]]] = None,
    ) -> None:
        msg = MIMEMultipart("mixed")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_address}>"
        msg["To"] = to_email

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(text_content, "plain"))
        body.attach(MIMEText(html_content, "html"))
        msg.attach(body)

        for filename, content in attachments or []:
            part = MIMEApplication(content, _subtype="png")
            part.add_header("Content-Disposition", "attachment", filename=filename)
            msg.attach(part)

        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            server.send_message(msg)


class SmsSender:
    """Form POST to the SMS gateway (apikey, number, message, sendername)."""

    def __init__(self, settings: Settings):
        self.api_key = settings.SMS_API_KEY
        self.sender = settings.SMS_SENDER
        self.endpoint = settings.SMS_ENDPOINT
        self.timeout = settings.SMS_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send(self, number: str, message: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.endpoint,
                data={
                    "apikey": self.api_key,
                    "number": number,
                    "message": message,
                    "sendername": self.sender,
                },
            )
            response.raise_for_status()


def get_email_sender() -> EmailSender:
    return EmailSender(get_settings())


def get_sms_sender() -> SmsSender:
    return SmsSender(get_settings())


def _event_date(starts_at, ends_at) -> str:
    dates = []
    for value in (starts_at, ends_at):
        if value is None:
            continue
        label = as_utc(value).strftime("%B %d, %Y")
        if label not in dates:
            dates.append(label)
    return " to ".join(dates) or "TBA"


def _registered_text(notice: RegisteredNotice, app_url: str) -> str:
    return "\n".join([
        f"Hi {notice.name}, thank you for registering!",
        f"Your participant ID is {notice.display_id}.",
        "",
        f"Log in at {app_url} anytime to review your profile, joined events and check-in updates.",
        f"Your username is: {notice.email}",
        "",
        "Your QR code is attached. Please present it at the registration desk.",
        "",
        "This is a no-reply message.",
    ])


def _assignment_text(notice: AssignmentNotice) -> str:
    return "\n".join([
        f"Hi {notice.name}",
        "",
        "Please be informed of the following:",
        "",
        f"Participant ID: {notice.display_id}",
        f"Event Title: {notice.event_title}",
        f"Event Date: {notice.event_date}",
        f"Vehicle: {notice.vehicle_label or 'N/A'}",
        f"Vehicle Plate Number: {notice.vehicle_plate_number or 'N/A'}",
        f"Table Number: {notice.table_number or 'N/A'}",
        "",
        "Thank you!",
    ])


def _as_html(text: str) -> str:
    paragraphs = [escape(block).replace("\n", "<br>") for block in text.split("\n\n")]
    return "".join(f"<p>{p}</p>" for p in paragraphs)


async def _deliver(channel: str, participant_id: int, configured: bool, send) -> str:
    if not configured:
        record_notification(channel, SKIPPED)
        logger.info("notification_skipped", channel=channel, participant_id=participant_id, reason="not_configured")
        return SKIPPED
    try:
        await send()
    except Exception as e:
        record_notification(channel, FAILED)
        logger.error("notification_failed", channel=channel, participant_id=participant_id, error=str(e))
        return FAILED
    record_notification(channel, SENT)
    logger.info("notification_sent", channel=channel, participant_id=participant_id)
    return SENT


async def dispatch_registered(
    notice: RegisteredNotice,
    email_sender: Optional[EmailSender] = None,
    sms_sender: Optional[SmsSender] = None,
) -> DeliveryReport:
    email_sender = email_sender or get_email_sender()
    sms_sender = sms_sender or get_sms_sender()
    app_url = get_settings().PUBLIC_BASE_URL.rstrip("/")
    text = _registered_text(notice, app_url)

    async def send_email():
        qr_png = credential_qr_png(notice.credential_payload)
        await asyncio.to_thread(
            email_sender.send,
            notice.email,
            "Your registration details",
            text,
            _as_html(text),
            [(f"{notice.display_id}.png", qr_png)],
        )

    async def send_sms():
        await sms_sender.send(notice.contact_number.strip(), text)

    return DeliveryReport(
        email=await _deliver("email", notice.participant_id, email_sender.is_configured, send_email),
        sms=await _deliver(
            "sms",
            notice.participant_id,
            sms_sender.is_configured and bool(notice.contact_number.strip()),
            send_sms,
        ),
    )


async def dispatch_assignment(
    notice: AssignmentNotice,
    email_sender: Optional[EmailSender] = None,
    sms_sender: Optional[SmsSender] = None,
) -> DeliveryReport:
    email_sender = email_sender or get_email_sender()
    sms_sender = sms_sender or get_sms_sender()
    text = _assignment_text(notice)

    async def send_email():
        await asyncio.to_thread(
            email_sender.send,
            notice.email,
            f"Your assignment for {notice.event_title}",
            text,
            _as_html(text),
        )

    async def send_sms():
        await sms_sender.send(notice.contact_number.strip(), text)

    return DeliveryReport(
        email=await _deliver("email", notice.participant_id, email_sender.is_configured, send_email),
        sms=await _deliver(
            "sms",
            notice.participant_id,
            sms_sender.is_configured and bool(notice.contact_number.strip()),
            send_sms,
        ),
    )


async def build_assignment_notice(
    db: AsyncSession, participant_id: int, event_id: int
) -> Optional[AssignmentNotice]:
    """None when the participant holds neither a seat nor a vehicle for the event."""
    participant = await get_participant(db, participant_id)
    event = await get_event(db, event_id)
    seat = await get_participant_seat(db, participant_id, event_id)
    ride = await get_participant_vehicle(db, participant_id, event_id)
    if seat is None and ride is None:
        return None

    vehicle = ride.vehicle if ride else None
    return AssignmentNotice(
        participant_id=participant.id,
        display_id=participant.display_id,
        name=participant.name,
        email=participant.email,
        contact_number=participant.contact_number,
        event_id=event.id,
        event_title=event.title,
        event_date=_event_date(event.starts_at, event.ends_at),
        table_number=seat[0].table_number if seat else None,
        vehicle_label=(vehicle.label if vehicle else None) or (ride.vehicle_label if ride else None),
        vehicle_plate_number=vehicle.plate_number if vehicle else None,
    )


async def send_assignment_notice(
    db: AsyncSession,
    participant_id: int,
    event_id: int,
    email_sender: Optional[EmailSender] = None,
    sms_sender: Optional[SmsSender] = None,
) -> DeliveryReport:
    """
    Staff-triggered resend of a participant's seat/vehicle details.
    The log is committed before delivery starts.
    """
    notice = await build_assignment_notice(db, participant_id, event_id)
    if notice is None:
        raise ValidationError(
            "Participant must have either table or vehicle assignment for the selected event.",
            field="event_id",
        )

    result = await db.execute(
        select(AssignmentNotificationLog).where(
            AssignmentNotificationLog.participant_id == participant_id,
            AssignmentNotificationLog.event_id == event_id,
        )
    )
    log = result.scalar_one_or_none()
    if log:
        log.sent_at = utcnow()
    else:
        db.add(AssignmentNotificationLog(participant_id=participant_id, event_id=event_id, sent_at=utcnow()))
    await db.commit()

    return await dispatch_assignment(notice, email_sender, sms_sender)
