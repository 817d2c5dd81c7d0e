"""User administration for staff and owners."""

from typing import List, Optional, Tuple

import structlog

from app.application.services.access_control import OWNER_ONLY, STAFF_OR_OWNER, authorize, load_actor
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.core.responses import normalize_pagination, pagination_meta, skip_and_take
from app.domain.models.user import Role, User
from app.domain.repositories.user_repository import UserRepository

logger = structlog.get_logger(__name__)


class UserService:
    def __init__(self, user_repo: UserRepository):
        self.users = user_repo

    def list_users(
        self, actor_id: int, page: Optional[int] = None, limit: Optional[int] = None, role: Optional[Role] = None
    ) -> Tuple[List[User], dict]:
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, STAFF_OR_OWNER)

        page, limit = normalize_pagination(page, limit)
        skip, take = skip_and_take(page, limit)
        users, total = self.users.list_paginated(skip, take, Role(role) if role else None)
        return users, pagination_meta(page, limit, total)

    def get_user(self, actor_id: int, user_id: int) -> User:
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, STAFF_OR_OWNER)
        return self._get_or_404(user_id)

    def change_role(self, actor_id: int, user_id: int, role: Role) -> User:
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, OWNER_ONLY, "Only owners can change roles")

        target = self._get_or_404(user_id)
        if Role(target.role) is Role.OWNER:
            raise AuthorizationError("Cannot change the role of an owner")

        previous = Role(target.role)
        self.users.update(target, {"role": Role(role)})
        self.users.commit()

        logger.info("Role changed", actor_id=actor.id, user_id=target.id, old=previous.value, new=Role(role).value)
        return target

    def delete_user(self, actor_id: int, user_id: int) -> None:
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, OWNER_ONLY, "Only owners can delete users")

        target = self._get_or_404(user_id)
        if Role(target.role) is Role.OWNER:
            raise AuthorizationError("Cannot delete an owner")
        # Removing them would leave trip counters pointing at vanished bookings
        if not self.users.delete_if_no_active_bookings(target.id):
            self.users.rollback()
            if self.users.get_by_id(target.id) is None:
                raise NotFoundError("User not found")
            raise ValidationError("User has active bookings; cancel them first")
        self.users.commit()
        logger.info("User deleted", actor_id=actor.id, user_id=user_id)

    def _get_or_404(self, user_id: int) -> User:
        user = self.users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user
