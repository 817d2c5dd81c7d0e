"""Pydantic schemas for user administration."""

from pydantic import BaseModel

from app.domain.models.user import Role


class UpdateRoleRequest(BaseModel):
    role: Role


class UserSummary(BaseModel):
    id: int
    email: str
    phone: str
    role: Role

    model_config = {"from_attributes": True}
