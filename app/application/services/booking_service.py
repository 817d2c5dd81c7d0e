"""
Booking service: the booking ledger.

Trip.current_bookings counts the trip's pending and confirmed bookings. Every
status change that enters or leaves those states moves the counter in the same
transaction, through conditional UPDATEs whose row count decides the outcome:

    pending   -> confirmed | cancelled
    confirmed -> cancelled | completed
    cancelled -> confirmed   (re-claims a seat)
    completed -> terminal
"""

from datetime import datetime
from typing import Callable, List, Optional, Tuple

import structlog
from sqlalchemy.exc import IntegrityError

from app.application.services.access_control import STAFF_OR_OWNER, TOURIST_OR_STAFF, authorize, load_actor
from app.application.services.notification_service import (
    NotificationOutbox,
    destination_for,
    format_booking_message,
)
from app.config import Settings
from app.core.dates import utcnow
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError, integrity_detail
from app.core.responses import normalize_pagination, pagination_meta, skip_and_take
from app.domain.models.booking import ALLOWED_TRANSITIONS, CAPACITY_STATUSES, Booking, BookingStatus
from app.domain.models.trip import TripStatus
from app.domain.models.user import Role, User
from app.domain.repositories.booking_repository import BookingRepository
from app.domain.repositories.trip_repository import TripRepository
from app.domain.repositories.user_repository import UserRepository

logger = structlog.get_logger(__name__)

BOOKING_SUBJECT = "Booking update"

# Postgres names the constraint, SQLite lists its columns
DUPLICATE_BOOKING_MARKERS = ("uq_booking_trip_user", "bookings.trip_id, bookings.user_id")


def _booking_conflict(exc: IntegrityError) -> ConflictError:
    detail = integrity_detail(exc)
    if any(marker in detail for marker in DUPLICATE_BOOKING_MARKERS):
        # a concurrent request booked the same (trip, user)
        return ConflictError("A booking for this trip already exists")
    if "foreign key" in detail:
        # trip or tourist deleted while the booking was being written
        return ConflictError("Trip or user no longer exists")
    return ConflictError("Booking could not be created")


class BookingService:
    def __init__(
        self,
        booking_repo: BookingRepository,
        trip_repo: TripRepository,
        user_repo: UserRepository,
        outbox: NotificationOutbox,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.bookings = booking_repo
        self.trips = trip_repo
        self.users = user_repo
        self.outbox = outbox
        self.settings = settings
        self.clock = clock

    # -- commands --

    def create_booking(
        self, actor_id: int, trip_id: int, notes: Optional[str] = None, user_id: Optional[int] = None
    ) -> Booking:
        """
        Book a seat on a trip.

        Tourists book for themselves. Staff and owners book on behalf of a
        tourist and must name them in ``user_id``.
        """
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, TOURIST_OR_STAFF, "You are not allowed to create bookings")
        tourist = self._resolve_tourist(actor, user_id)

        trip = self.trips.get_by_id(trip_id)
        if not trip:
            raise ConflictError("Trip not found")
        if self.bookings.get_for_trip_and_user(trip.id, tourist.id):
            raise ConflictError("A booking for this trip already exists")
        if TripStatus(trip.status) is not TripStatus.ACTIVE:
            raise ConflictError("Trip is not open for booking")

        # Claim the seat first: the guard on current_bookings is the only capacity check
        if not self.trips.reserve_seat(trip.id):
            self.trips.rollback()
            raise ConflictError("Trip is fully booked")

        try:
            booking = self.bookings.add({
                "trip_id": trip.id,
                "user_id": tourist.id,
                "status": BookingStatus(self.settings.BOOKING_INITIAL_STATUS),
                "notes": notes,
            })
        except IntegrityError as e:
            # the seat goes back with the rollback
            self.bookings.rollback()
            raise _booking_conflict(e)

        self._notify(booking)
        self.bookings.commit()

        logger.info(
            "Booking created",
            booking_id=booking.id,
            trip_id=trip.id,
            user_id=tourist.id,
            actor_id=actor.id,
            status=booking.status.value,
        )
        return booking

    def update_booking(
        self,
        actor_id: int,
        booking_id: int,
        status: Optional[BookingStatus] = None,
        notes: Optional[str] = None,
    ) -> Booking:
        actor = load_actor(self.users, actor_id)
        booking = self._get_accessible(actor, booking_id)

        if status is not None:
            self._transition(actor, booking, BookingStatus(status))
        if notes is not None:
            self.bookings.update(booking, {"notes": notes})

        self.bookings.commit()
        return self.bookings.refresh(booking)

    def cancel_booking(self, actor_id: int, booking_id: int) -> Booking:
        return self.update_booking(actor_id, booking_id, status=BookingStatus.CANCELLED)

    def complete_finished_bookings(self, now: Optional[datetime] = None) -> int:
        """Move confirmed bookings of trips that have ended to completed."""
        now = now or self.clock()
        completed = 0
        for booking in self.bookings.list_confirmed_for_ended_trips(now):
            if not self.bookings.transition_status(booking.id, BookingStatus.CONFIRMED, BookingStatus.COMPLETED):
                # cancelled in the meantime
                continue
            self.trips.release_seat(booking.trip_id)
            self._notify(booking)
            completed += 1

        self.bookings.commit()
        if completed:
            logger.info("Bookings completed", count=completed)
        return completed

    # -- queries --

    def get_booking(self, actor_id: int, booking_id: int) -> Booking:
        actor = load_actor(self.users, actor_id)
        return self._get_accessible(actor, booking_id)

    def list_user_bookings(
        self,
        actor_id: int,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        status: Optional[BookingStatus] = None,
    ) -> Tuple[List[Booking], dict]:
        actor = load_actor(self.users, actor_id)
        page, limit = normalize_pagination(page, limit)
        skip, take = skip_and_take(page, limit)
        bookings, total = self.bookings.list_for_user(actor.id, skip, take, status)
        return bookings, pagination_meta(page, limit, total)

    def list_all_bookings(
        self,
        actor_id: int,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        status: Optional[BookingStatus] = None,
        trip_id: Optional[int] = None,
    ) -> Tuple[List[Booking], dict]:
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, STAFF_OR_OWNER, "Only staff or owners can list all bookings")

        page, limit = normalize_pagination(page, limit)
        skip, take = skip_and_take(page, limit)
        bookings, total = self.bookings.list_all(skip, take, status, trip_id)
        return bookings, pagination_meta(page, limit, total)

    # -- internals --

    def _resolve_tourist(self, actor: User, user_id: Optional[int]) -> User:
        if Role(actor.role) is Role.TOURIST:
            if user_id is not None and user_id != actor.id:
                raise AuthorizationError("Tourists can only book for themselves")
            return actor

        if user_id is None:
            raise ValidationError(
                "user_id is required when booking on behalf of a tourist",
                [{"field": "user_id", "message": "user_id is required", "value": None}],
            )
        tourist = self.users.get_by_id(user_id)
        if not tourist:
            raise NotFoundError("User not found")
        if Role(tourist.role) is not Role.TOURIST:
            raise ValidationError("Bookings can only be made for tourists")
        return tourist

    def _get_accessible(self, actor: User, booking_id: int) -> Booking:
        booking = self.bookings.get_by_id(booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if Role(actor.role) is Role.TOURIST and booking.user_id != actor.id:
            raise AuthorizationError("You can only access your own bookings")
        return booking

    def _transition(self, actor: User, booking: Booking, target: BookingStatus) -> None:
        current = BookingStatus(booking.status)
        if target is current:
            raise ValidationError(f"Booking is already {current.value}")
        if target not in ALLOWED_TRANSITIONS[current]:
            raise ValidationError(f"Cannot change booking status from {current.value} to {target.value}")
        if Role(actor.role) is Role.TOURIST and target is not BookingStatus.CANCELLED:
            raise AuthorizationError("Tourists can only cancel their bookings")

        claims_seat = target in CAPACITY_STATUSES and current not in CAPACITY_STATUSES
        frees_seat = current in CAPACITY_STATUSES and target not in CAPACITY_STATUSES

        if claims_seat:
            trip = booking.trip or self.trips.get_by_id(booking.trip_id)
            if TripStatus(trip.status) is not TripStatus.ACTIVE:
                raise ConflictError("Trip is not open for booking")
            if not self.trips.reserve_seat(booking.trip_id):
                self.bookings.rollback()
                raise ConflictError("Trip is fully booked")

        if not self.bookings.transition_status(booking.id, current, target):
            self.bookings.rollback()
            raise ConflictError("Booking was modified by another request, please retry")

        if frees_seat and not self.trips.release_seat(booking.trip_id):
            logger.error("Trip counter already at zero on release", trip_id=booking.trip_id, booking_id=booking.id)

        self._notify(booking)
        logger.info(
            "Booking status changed",
            booking_id=booking.id,
            trip_id=booking.trip_id,
            actor_id=actor.id,
            old=current.value,
            new=target.value,
        )

    def _notify(self, booking: Booking) -> None:
        user = booking.user or self.users.get_by_id(booking.user_id)
        trip = booking.trip or self.trips.get_by_id(booking.trip_id)
        channel = self.settings.BOOKING_NOTIFICATION_CHANNEL
        self.outbox.enqueue(
            channel,
            destination_for(channel, user.email, user.phone),
            format_booking_message(booking, trip, self.settings),
            BOOKING_SUBJECT,
        )
