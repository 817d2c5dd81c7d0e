"""
User Repository Interface.
Credential store operations used by the auth lifecycle and user administration.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from app.domain.models.user import Role, User
from app.domain.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Interface for User-specific operations."""

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def get_by_phone(self, phone: str) -> Optional[User]:
        ...

    def consume_otp(self, user_id: int, otp: str, now: datetime) -> bool:
        """Mark the user verified iff the OTP matches, is unexpired and unused. Returns success."""
        ...

    def find_by_refresh_token(self, refresh_token: str, now: datetime, user_id: Optional[int] = None) -> Optional[User]:
        """Find the user holding this unexpired refresh token."""
        ...

    def list_paginated(self, skip: int, limit: int, role: Optional[Role] = None) -> Tuple[List[User], int]:
        ...

    def delete_if_no_active_bookings(self, user_id: int) -> bool:
        """Delete the user and their inactive bookings iff no pending or confirmed booking remains."""
        ...
