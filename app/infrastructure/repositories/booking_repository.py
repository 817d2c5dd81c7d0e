"""
SQLAlchemy Implementation of Booking Repository.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import joinedload

from app.domain.models.booking import Booking, BookingStatus
from app.domain.models.trip import Trip
from app.domain.repositories.booking_repository import BookingRepository
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyBookingRepository(SQLAlchemyRepository[Booking], BookingRepository):
    """Booking repository implementation using SQLAlchemy."""

    def get_for_trip_and_user(self, trip_id: int, user_id: int) -> Optional[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.trip_id == trip_id, Booking.user_id == user_id)
            .first()
        )

    def transition_status(self, booking_id: int, from_status: BookingStatus, to_status: BookingStatus) -> bool:
        result = self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == from_status)
            .values(status=to_status, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(booking_id)
        return result.rowcount == 1

    def list_for_user(
        self, user_id: int, skip: int, limit: int, status: Optional[BookingStatus] = None
    ) -> Tuple[List[Booking], int]:
        query = self.db.query(Booking).filter(Booking.user_id == user_id)
        if status is not None:
            query = query.filter(Booking.status == status)
        return self._page(query, skip, limit)

    def list_all(
        self,
        skip: int,
        limit: int,
        status: Optional[BookingStatus] = None,
        trip_id: Optional[int] = None,
    ) -> Tuple[List[Booking], int]:
        query = self.db.query(Booking)
        if status is not None:
            query = query.filter(Booking.status == status)
        if trip_id is not None:
            query = query.filter(Booking.trip_id == trip_id)
        return self._page(query, skip, limit)

    def list_confirmed_for_ended_trips(self, now: datetime) -> List[Booking]:
        return (
            self.db.query(Booking)
            .join(Trip, Trip.id == Booking.trip_id)
            .filter(Booking.status == BookingStatus.CONFIRMED, Trip.end_date < now)
            .order_by(Booking.id.asc())
            .all()
        )

    def _page(self, query, skip: int, limit: int) -> Tuple[List[Booking], int]:
        return self.paginate(
            query.options(joinedload(Booking.trip)),
            skip,
            limit,
            Booking.created_at.desc(),
            Booking.id.desc(),
        )
