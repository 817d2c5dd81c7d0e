"""
SQLAlchemy Implementation of Trip Repository.

Capacity changes are single conditional UPDATE statements; the row count tells
whether the guard held, so no caller ever reads the counter and writes it back.
"""

from typing import List, Tuple

from sqlalchemy import delete, update

from app.domain.models.booking import Booking
from app.domain.models.trip import Trip, TripStatus
from app.domain.repositories.trip_repository import TripRepository
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyTripRepository(SQLAlchemyRepository[Trip], TripRepository):
    """Trip repository implementation using SQLAlchemy."""

    def list_available(self, skip: int, limit: int) -> Tuple[List[Trip], int]:
        query = self.db.query(Trip).filter(
            Trip.status == TripStatus.ACTIVE,
            Trip.current_bookings < Trip.max_capacity,
        )
        return self.paginate(query, skip, limit, Trip.start_date.asc(), Trip.id.asc())

    def list_by_owner(self, owner_id: int, skip: int, limit: int) -> Tuple[List[Trip], int]:
        query = self.db.query(Trip).filter(Trip.owner_id == owner_id)
        return self.paginate(query, skip, limit, Trip.created_at.desc(), Trip.id.desc())

    def reserve_seat(self, trip_id: int) -> bool:
        result = self.db.execute(
            update(Trip)
            .where(
                Trip.id == trip_id,
                Trip.status == TripStatus.ACTIVE,
                Trip.current_bookings < Trip.max_capacity,
            )
            .values(current_bookings=Trip.current_bookings + 1)
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(trip_id)
        return result.rowcount == 1

    def release_seat(self, trip_id: int) -> bool:
        result = self.db.execute(
            update(Trip)
            .where(Trip.id == trip_id, Trip.current_bookings > 0)
            .values(current_bookings=Trip.current_bookings - 1)
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(trip_id)
        return result.rowcount == 1

    def set_max_capacity(self, trip_id: int, max_capacity: int) -> bool:
        result = self.db.execute(
            update(Trip)
            .where(Trip.id == trip_id, Trip.current_bookings <= max_capacity)
            .values(max_capacity=max_capacity)
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(trip_id)
        return result.rowcount == 1

    def delete_if_unbooked(self, trip_id: int) -> bool:
        # Inactive bookings go with the trip; the counter guard keeps active ones safe.
        result = self.db.execute(
            delete(Trip)
            .where(Trip.id == trip_id, Trip.current_bookings == 0)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._expire_cached(trip_id)
            return False

        self.db.execute(
            delete(Booking)
            .where(Booking.trip_id == trip_id)
            .execution_options(synchronize_session=False)
        )
        self._expunge_cached(trip_id)
        return True
