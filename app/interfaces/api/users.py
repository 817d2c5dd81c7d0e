"""User administration API routes (staff and owners)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.application.services.user_service import UserService
from app.core.responses import success_response
from app.domain.models.user import Role, User
from app.domain.schemas.auth import UserRead
from app.domain.schemas.user import UpdateRoleRequest
from app.interfaces.api.deps import require_roles
from app.interfaces.deps import get_user_service

router = APIRouter(prefix="/api/users", tags=["Users"])

staff_or_owner = require_roles(Role.STAFF)
owner_only = require_roles(Role.OWNER)


@router.get("")
def list_users(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    role: Optional[Role] = Query(None),
    user: User = Depends(staff_or_owner),
    users: UserService = Depends(get_user_service),
):
    items, meta = users.list_users(user.id, page, limit, role)
    data = [UserRead.model_validate(u).model_dump(mode="json") for u in items]
    return success_response(data, "Users retrieved", meta=meta)


@router.get("/{user_id}")
def get_user(user_id: int, user: User = Depends(staff_or_owner), users: UserService = Depends(get_user_service)):
    target = users.get_user(user.id, user_id)
    return success_response(UserRead.model_validate(target).model_dump(mode="json"), "User retrieved")


@router.patch("/{user_id}/role")
def change_role(
    user_id: int,
    body: UpdateRoleRequest,
    user: User = Depends(owner_only),
    users: UserService = Depends(get_user_service),
):
    target = users.change_role(user.id, user_id, body.role)
    return success_response(UserRead.model_validate(target).model_dump(mode="json"), "Role updated")


@router.delete("/{user_id}")
def delete_user(user_id: int, user: User = Depends(owner_only), users: UserService = Depends(get_user_service)):
    users.delete_user(user.id, user_id)
    return success_response(None, "User deleted")
