"""
Trip Repository Interface.
Trip CRUD plus the atomic capacity counter operations used by the booking ledger.
"""

from typing import List, Optional, Tuple

from app.domain.models.trip import Trip
from app.domain.repositories.base import BaseRepository


class TripRepository(BaseRepository[Trip]):
    """Interface for Trip-specific operations."""

    def list_available(self, skip: int, limit: int) -> Tuple[List[Trip], int]:
        """Active trips with spare capacity, earliest start first."""
        ...

    def list_by_owner(self, owner_id: int, skip: int, limit: int) -> Tuple[List[Trip], int]:
        ...

    def reserve_seat(self, trip_id: int) -> bool:
        """Increment current_bookings iff the trip is active and not full. Returns success."""
        ...

    def release_seat(self, trip_id: int) -> bool:
        """Decrement current_bookings iff it is positive. Returns success."""
        ...

    def set_max_capacity(self, trip_id: int, max_capacity: int) -> bool:
        """Change max_capacity iff it stays >= current_bookings. Returns success."""
        ...

    def delete_if_unbooked(self, trip_id: int) -> bool:
        """Delete the trip and its inactive bookings iff no active booking remains."""
        ...
