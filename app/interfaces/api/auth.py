"""Auth API routes: register, OTP, login, refresh, logout, me."""

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.application.services.auth_service import AuthService
from app.application.services.notification_service import NotificationOutbox
from app.core.responses import created_response, success_response
from app.domain.models.user import User
from app.domain.schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    RefreshRequest,
    RegisterOwnerRequest,
    RegisterRequest,
    ResendOtpRequest,
    TokenResponse,
    UserRead,
    VerifyOtpRequest,
)
from app.interfaces.api.deps import get_current_user, schedule_delivery
from app.interfaces.deps import get_auth_service, get_outbox

router = APIRouter(prefix="/api/auth", tags=["Auth"])
owner_router = APIRouter(prefix="/api/owner", tags=["Owner"])


def _user(user: User) -> dict:
    return UserRead.model_validate(user).model_dump(mode="json")


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    auth: AuthService = Depends(get_auth_service),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    user = auth.register(body.email, body.password, body.phone, body.role)
    schedule_delivery(background_tasks, outbox)
    return created_response(_user(user), "Registration successful, check your inbox for the OTP code")


@owner_router.post("/register", status_code=status.HTTP_201_CREATED)
def register_owner(
    body: RegisterOwnerRequest,
    background_tasks: BackgroundTasks,
    auth: AuthService = Depends(get_auth_service),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    user = auth.register_owner(body.email, body.password, body.phone)
    schedule_delivery(background_tasks, outbox)
    message = "Owner registered successfully" if user.is_verified else "Owner registered, check your inbox for the OTP code"
    return created_response(_user(user), message)


@router.post("/verify-otp")
def verify_otp(body: VerifyOtpRequest, auth: AuthService = Depends(get_auth_service)):
    user = auth.verify_otp(body.email, body.otp)
    return success_response(_user(user), "Account verified successfully")


@router.post("/resend-otp")
def resend_otp(
    body: ResendOtpRequest,
    background_tasks: BackgroundTasks,
    auth: AuthService = Depends(get_auth_service),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    auth.resend_otp(body.email)
    schedule_delivery(background_tasks, outbox)
    return success_response(None, "A new OTP has been sent")


@router.post("/login")
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.login(body.email, body.password)
    data = TokenResponse(**{**result, "user": UserRead.model_validate(result["user"])})
    return success_response(data.model_dump(mode="json"), "Login successful")


@router.post("/refresh")
def refresh(body: RefreshRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.refresh_access_token(body.refresh_token, body.user_id)
    return success_response(AccessTokenResponse(**result).model_dump(mode="json"), "Token refreshed")


@router.post("/logout")
def logout(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    auth.logout(user.id)
    return success_response(None, "Logged out successfully")


@router.get("/me")
def get_me(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    return success_response(_user(auth.get_profile(user.id)), "Profile retrieved")
