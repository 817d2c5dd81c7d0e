"""APScheduler jobs: notification retries and completion of finished bookings."""

from datetime import datetime

import pytz
import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import get_settings
from app.infrastructure.database import SessionLocal

settings = get_settings()
logger = structlog.get_logger(__name__)
tz = pytz.timezone(settings.TIMEZONE)

scheduler = AsyncIOScheduler(timezone=tz)


async def notification_retry_job():
    """Periodic job: redeliver failed or stranded notifications."""
    from app.application.services.notification_service import retry_failed_notifications

    try:
        result = await retry_failed_notifications(SessionLocal, settings)
        if result["sent"] or result["failed"]:
            logger.info("Notification retry finished", **result)
    except Exception:
        # The scheduler must survive a broken run; the next tick retries
        logger.exception("Notification retry job failed")


async def booking_completion_job():
    """Periodic job: mark confirmed bookings of ended trips as completed."""
    from app.application.services.booking_service import BookingService
    from app.application.services.notification_service import NotificationOutbox, deliver_notifications
    from app.domain.models.booking import Booking
    from app.domain.models.trip import Trip
    from app.domain.models.user import User
    from app.infrastructure.repositories.booking_repository import SQLAlchemyBookingRepository
    from app.infrastructure.repositories.trip_repository import SQLAlchemyTripRepository
    from app.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

    logger.info("Running booking completion job", at=datetime.now(tz).strftime("%d/%m/%Y %H:%M"))

    db = SessionLocal()
    try:
        outbox = NotificationOutbox(db)
        service = BookingService(
            SQLAlchemyBookingRepository(db, Booking),
            SQLAlchemyTripRepository(db, Trip),
            SQLAlchemyUserRepository(db, User),
            outbox,
            settings,
        )
        completed = service.complete_finished_bookings()
        ids = outbox.pending_ids()
    except Exception:
        db.rollback()
        logger.exception("Booking completion job failed")
        return
    finally:
        db.close()

    if completed:
        await deliver_notifications(ids, SessionLocal, settings)


def start_scheduler():
    """Start the APScheduler with the retry and completion jobs."""
    scheduler.add_job(
        notification_retry_job,
        trigger=IntervalTrigger(minutes=settings.NOTIFICATION_RETRY_MINUTES, timezone=tz),
        id="notification_retry",
        name=f"Notification retry (every {settings.NOTIFICATION_RETRY_MINUTES} mins)",
        replace_existing=True,
    )

    scheduler.add_job(
        booking_completion_job,
        trigger=IntervalTrigger(minutes=settings.BOOKING_COMPLETION_INTERVAL_MINUTES, timezone=tz),
        id="booking_completion",
        name=f"Booking completion (every {settings.BOOKING_COMPLETION_INTERVAL_MINUTES} mins)",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started",
        retry_minutes=settings.NOTIFICATION_RETRY_MINUTES,
        completion_minutes=settings.BOOKING_COMPLETION_INTERVAL_MINUTES,
        timezone=settings.TIMEZONE,
    )


def stop_scheduler():
    """Stop the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
