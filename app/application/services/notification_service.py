"""Notification service: transactional outbox for OTP and booking messages.

Messages are written to ``notifications_log`` inside the same transaction as
the state change that caused them. Delivery happens only after that commit,
so a failing email/WhatsApp provider can never undo a registration or a
booking. Failed deliveries stay in the log and are retried by the scheduler.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

import pytz
import structlog
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, sessionmaker

from app.config import Settings, get_settings
from app.domain.models.booking import Booking, BookingStatus
from app.domain.models.notification_log import NotificationLog
from app.domain.models.trip import Trip
from app.infrastructure.senders import EMAIL_CHANNEL, NotificationSender, build_sender

logger = structlog.get_logger(__name__)

MAX_ERROR_LENGTH = 500
# Pending entries younger than this are still owned by their request's background task
PENDING_GRACE_PERIOD = timedelta(minutes=1)

STATUS_HEADLINES = {
    BookingStatus.PENDING: "Your booking request was received",
    BookingStatus.CONFIRMED: "Your booking is confirmed",
    BookingStatus.CANCELLED: "Your booking was cancelled",
    BookingStatus.COMPLETED: "Your trip is complete, thanks for travelling with us",
}


class NotificationOutbox:
    """Collects outgoing messages for the current unit of work."""

    def __init__(self, db: Session):
        self.db = db
        self._entries: List[NotificationLog] = []

    def enqueue(self, channel: str, destination: str, message: str, subject: Optional[str] = None) -> NotificationLog:
        entry = NotificationLog(
            channel=channel,
            destination=destination,
            subject=subject,
            message=message,
            status="pending",
            attempts=0,
        )
        self.db.add(entry)
        self.db.flush()
        self._entries.append(entry)
        return entry

    def pending_ids(self) -> List[int]:
        return [entry.id for entry in self._entries if entry.id is not None]

    def clear(self) -> None:
        self._entries = []


def destination_for(channel: str, email: str, phone: str) -> str:
    return email if channel == EMAIL_CHANNEL else phone


def format_otp_message(otp: str, expire_minutes: int) -> str:
    return (
        f"Your verification code is {otp}.\n"
        f"It expires in {expire_minutes} minutes. "
        "If you did not create an account, ignore this message."
    )


def format_booking_message(booking: Booking, trip: Trip, settings: Settings) -> str:
    tz = pytz.timezone(settings.TIMEZONE)
    start = trip.start_date
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    start_str = start.astimezone(tz).strftime("%d/%m/%Y %H:%M")

    status = BookingStatus(booking.status)
    return "\n".join([
        STATUS_HEADLINES[status],
        "",
        f"Trip: {trip.title}",
        f"Departure: {start_str} ({settings.TIMEZONE})",
        f"Booking #{booking.id} ({status.value})",
    ])


async def deliver_notifications(
    log_ids: Iterable[int],
    session_factory: Optional[sessionmaker] = None,
    settings: Optional[Settings] = None,
    sender_factory: Callable[[str, Settings], NotificationSender] = build_sender,
) -> dict:
    """Attempt delivery of the given outbox entries. Never raises on provider failure."""
    ids = list(log_ids)
    if not ids:
        return {"sent": 0, "failed": 0}

    if session_factory is None:
        from app.infrastructure.database import SessionLocal
        session_factory = SessionLocal
    settings = settings or get_settings()

    db = session_factory()
    sent_count = 0
    failed_count = 0
    try:
        entries = (
            db.query(NotificationLog)
            .filter(NotificationLog.id.in_(ids), NotificationLog.status != "sent")
            .order_by(NotificationLog.id.asc())
            .all()
        )
        for entry in entries:
            entry.attempts = (entry.attempts or 0) + 1
            try:
                sender = sender_factory(entry.channel, settings)
                await sender.send(entry.destination, entry.message, entry.subject)
                entry.status = "sent"
                entry.error = None
                entry.sent_at = datetime.now(timezone.utc)
                sent_count += 1
            except Exception as e:
                # Delivery is best-effort: record it and let the retry job pick it up.
                entry.status = "failed"
                entry.error = str(e)[:MAX_ERROR_LENGTH]
                failed_count += 1
                logger.warning(
                    "Notification delivery failed",
                    notification_id=entry.id,
                    channel=entry.channel,
                    attempts=entry.attempts,
                    error=entry.error,
                )
            db.commit()
    finally:
        db.close()

    return {"sent": sent_count, "failed": failed_count}


def list_retryable_ids(db: Session, max_attempts: int, now: Optional[datetime] = None) -> List[int]:
    now = now or datetime.now(timezone.utc)
    rows = (
        db.query(NotificationLog.id)
        .filter(
            NotificationLog.attempts < max_attempts,
            or_(
                NotificationLog.status == "failed",
                and_(NotificationLog.status == "pending", NotificationLog.created_at < now - PENDING_GRACE_PERIOD),
            ),
        )
        .order_by(NotificationLog.id.asc())
        .all()
    )
    return [r[0] for r in rows]


async def retry_failed_notifications(
    session_factory: Optional[sessionmaker] = None,
    settings: Optional[Settings] = None,
    sender_factory: Callable[[str, Settings], NotificationSender] = build_sender,
) -> dict:
    if session_factory is None:
        from app.infrastructure.database import SessionLocal
        session_factory = SessionLocal
    settings = settings or get_settings()

    db = session_factory()
    try:
        ids = list_retryable_ids(db, settings.NOTIFICATION_MAX_ATTEMPTS)
    finally:
        db.close()

    if not ids:
        return {"sent": 0, "failed": 0}
    return await deliver_notifications(ids, session_factory, settings, sender_factory)
