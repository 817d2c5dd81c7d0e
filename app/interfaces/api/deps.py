"""FastAPI dependency: bearer token auth and role gates."""

from typing import Optional

from fastapi import BackgroundTasks, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.application.services.access_control import authorize
from app.application.services.auth_service import AuthService
from app.application.services.notification_service import NotificationOutbox, deliver_notifications
from app.core.exceptions import AuthError
from app.domain.models.user import Role, User
from app.interfaces.deps import get_auth_service

# auto_error=False so a missing header renders as our 401 envelope
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Extract and validate the current user from the access token."""
    if credentials is None or not credentials.credentials:
        raise AuthError("Authentication required")
    return auth.authenticate(credentials.credentials)


def require_roles(*roles: Role):
    """Dependency factory: the current user must hold one of ``roles`` (owners always pass)."""

    def dependency(user: User = Depends(get_current_user)) -> User:
        authorize(user.role, roles)
        return user

    return dependency


def schedule_delivery(background_tasks: BackgroundTasks, outbox: NotificationOutbox) -> None:
    """Deliver the request's queued notifications once the response is sent."""
    ids = outbox.pending_ids()
    if ids:
        background_tasks.add_task(deliver_notifications, ids)
    outbox.clear()
