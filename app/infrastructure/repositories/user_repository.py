"""
SQLAlchemy Implementation of User Repository.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, exists, update

from app.domain.models.booking import CAPACITY_STATUSES, Booking
from app.domain.models.user import Role, User
from app.domain.repositories.user_repository import UserRepository
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyUserRepository(SQLAlchemyRepository[User], UserRepository):
    """User repository implementation using SQLAlchemy."""

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_by_phone(self, phone: str) -> Optional[User]:
        return self.db.query(User).filter(User.phone == phone).first()

    def consume_otp(self, user_id: int, otp: str, now: datetime) -> bool:
        result = self.db.execute(
            update(User)
            .where(
                User.id == user_id,
                User.otp_token == otp,
                User.otp_expiry > now,
                User.is_verified.is_(False),
            )
            .values(is_verified=True, otp_token=None, otp_expiry=None)
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(user_id)
        return result.rowcount == 1

    def find_by_refresh_token(self, refresh_token: str, now: datetime, user_id: Optional[int] = None) -> Optional[User]:
        query = self.db.query(User).filter(
            User.refresh_token == refresh_token,
            User.refresh_token_expiry > now,
        )
        if user_id is not None:
            query = query.filter(User.id == user_id)
        return query.first()

    def list_paginated(self, skip: int, limit: int, role: Optional[Role] = None) -> Tuple[List[User], int]:
        query = self.db.query(User)
        if role is not None:
            query = query.filter(User.role == role)
        return self.paginate(query, skip, limit, User.created_at.desc(), User.id.desc())

    def delete_if_no_active_bookings(self, user_id: int) -> bool:
        # A booking insert needs a share lock on this row, so once we hold it the
        # NOT EXISTS below sees every booking that will ever reference the user.
        if self.get_for_update(user_id) is None:
            return False

        active = exists().where(Booking.user_id == user_id, Booking.status.in_(CAPACITY_STATUSES))
        result = self.db.execute(
            delete(User)
            .where(User.id == user_id, ~active)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._expire_cached(user_id)
            return False

        # Inactive bookings go with the user through ON DELETE CASCADE
        self._expunge_cached(user_id)
        return True
