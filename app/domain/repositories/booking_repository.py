"""
Booking Repository Interface.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from app.domain.models.booking import Booking, BookingStatus
from app.domain.repositories.base import BaseRepository


class BookingRepository(BaseRepository[Booking]):
    """Interface for Booking-specific operations."""

    def get_for_trip_and_user(self, trip_id: int, user_id: int) -> Optional[Booking]:
        ...

    def transition_status(self, booking_id: int, from_status: BookingStatus, to_status: BookingStatus) -> bool:
        """Set the status iff it still equals from_status. Returns success."""
        ...

    def list_for_user(
        self, user_id: int, skip: int, limit: int, status: Optional[BookingStatus] = None
    ) -> Tuple[List[Booking], int]:
        ...

    def list_all(
        self,
        skip: int,
        limit: int,
        status: Optional[BookingStatus] = None,
        trip_id: Optional[int] = None,
    ) -> Tuple[List[Booking], int]:
        ...

    def list_confirmed_for_ended_trips(self, now: datetime) -> List[Booking]:
        ...
