"""Auth service: registration, OTP verification, login and token refresh."""

import hmac
import secrets
import string
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from sqlalchemy.exc import IntegrityError

from app.application.services.notification_service import (
    NotificationOutbox,
    destination_for,
    format_otp_message,
)
from app.config import Settings
from app.core.dates import as_utc, utcnow
from app.core.exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    ValidationError,
    conflict_from_integrity_error,
)
from app.domain.models.user import Role, User
from app.domain.repositories.user_repository import UserRepository
from app.infrastructure.security import InvalidTokenError, PasswordHasher, TokenIssuer

logger = structlog.get_logger(__name__)

OTP_ALPHABET = string.ascii_uppercase + string.digits
OTP_SUBJECT = "Your verification code"

INVALID_CREDENTIALS = "Invalid credentials"
NOT_VERIFIED = "Please verify your email before logging in"
INVALID_OTP = "Invalid or expired OTP"
ALREADY_VERIFIED = "User is already verified"
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AuthService:
    """Account lifecycle. Every public method is one unit of work."""

    def __init__(
        self,
        user_repo: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        outbox: NotificationOutbox,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.users = user_repo
        self.hasher = hasher
        self.tokens = tokens
        self.outbox = outbox
        self.settings = settings
        self.clock = clock

    def generate_otp(self) -> str:
        return "".join(secrets.choice(OTP_ALPHABET) for _ in range(self.settings.OTP_LENGTH))

    def _otp_expiry(self) -> datetime:
        return self.clock() + timedelta(minutes=self.settings.OTP_EXPIRE_MINUTES)

    def _queue_otp(self, user: User, otp: str) -> None:
        channel = self.settings.OTP_CHANNEL
        self.outbox.enqueue(
            channel,
            destination_for(channel, user.email, user.phone),
            format_otp_message(otp, self.settings.OTP_EXPIRE_MINUTES),
            OTP_SUBJECT,
        )

    def register(self, email: str, password: str, phone: str, role: Role = Role.TOURIST) -> User:
        """
        Create an account and queue its OTP.

        The OTP message is written in the same transaction as the user and is
        delivered only after commit, so a failing provider never loses the account.
        Owners skip the OTP when OWNER_AUTO_VERIFY is set.
        """
        email = normalize_email(email)
        phone = (phone or "").strip()
        role = Role(role)

        if not phone:
            raise ValidationError(
                "Phone number is required",
                [{"field": "phone", "message": "phone must not be empty", "value": phone}],
            )
        if self.users.get_by_email(email):
            raise ConflictError(
                "Email already registered",
                [{"field": "email", "message": "email already exists", "value": email}],
            )
        if self.users.get_by_phone(phone):
            raise ConflictError(
                "Phone already registered",
                [{"field": "phone", "message": "phone already exists", "value": phone}],
            )

        verified = role is Role.OWNER and self.settings.OWNER_AUTO_VERIFY
        otp = None if verified else self.generate_otp()

        try:
            user = self.users.add({
                "email": email,
                "phone": phone,
                "password_hash": self.hasher.hash(password),
                "role": role,
                "is_verified": verified,
                "otp_token": otp,
                "otp_expiry": None if verified else self._otp_expiry(),
            })
        except IntegrityError as e:
            # lost a race with a concurrent registration for the same email/phone
            self.users.rollback()
            raise conflict_from_integrity_error(e)

        if otp:
            self._queue_otp(user, otp)
        self.users.commit()

        logger.info("User registered", user_id=user.id, role=role.value, verified=verified)
        return user

    def register_owner(self, email: str, password: str, phone: str) -> User:
        return self.register(email, password, phone, Role.OWNER)

    def ensure_owner(self, email: str, password: str, phone: str) -> Optional[User]:
        """Create the bootstrap owner unless an account with that email already exists."""
        if self.users.get_by_email(normalize_email(email)):
            return None
        try:
            return self.register_owner(email, password, phone)
        except ConflictError:
            logger.warning("Bootstrap owner not created", email=email)
            return None

    def verify_otp(self, email: str, otp: str) -> User:
        user = self.users.get_by_email(normalize_email(email))
        if not user:
            raise AuthError(INVALID_OTP)
        if user.is_verified:
            raise ValidationError(ALREADY_VERIFIED)

        code = (otp or "").strip().upper()
        now = self.clock()
        expiry = as_utc(user.otp_expiry)
        if (
            not code
            or not user.otp_token
            or not hmac.compare_digest(code, user.otp_token)
            or expiry is None
            or expiry <= now
        ):
            raise AuthError(INVALID_OTP)

        # Single use: only one concurrent verification can flip the row
        if not self.users.consume_otp(user.id, code, now):
            self.users.rollback()
            raise AuthError(INVALID_OTP)
        self.users.commit()

        logger.info("User verified", user_id=user.id)
        return self.users.refresh(user)

    def resend_otp(self, email: str) -> None:
        user = self.users.get_by_email(normalize_email(email))
        if not user:
            raise ValidationError(
                "User not found",
                [{"field": "email", "message": "no account for this email", "value": email}],
            )
        if user.is_verified:
            raise ValidationError(ALREADY_VERIFIED)

        otp = self.generate_otp()
        # The previous code must stop working, even on a random repeat
        while otp == user.otp_token:
            otp = self.generate_otp()
        self.users.update(user, {"otp_token": otp, "otp_expiry": self._otp_expiry()})
        self._queue_otp(user, otp)
        self.users.commit()
        logger.info("OTP reissued", user_id=user.id)

    def login(self, email: str, password: str) -> dict:
        user = self.users.get_by_email(normalize_email(email))
        if not user:
            raise AuthError(INVALID_CREDENTIALS)
        if not user.is_verified:
            raise AuthError(NOT_VERIFIED)
        if not self.hasher.verify(password, user.password_hash):
            raise AuthError(INVALID_CREDENTIALS)

        role = Role(user.role)
        access_token = self.tokens.create_access_token(user.id, user.email, role.value)
        refresh_token = self.tokens.create_refresh_token(user.id)

        # One active session per user: a new login replaces the stored token
        self.users.update(user, {
            "refresh_token": refresh_token,
            "refresh_token_expiry": self.tokens.refresh_expiry(self.clock()),
        })
        self.users.commit()

        logger.info("User logged in", user_id=user.id)
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": self.tokens.access_ttl_seconds,
            "refresh_expires_in": self.tokens.refresh_ttl_seconds,
            "user": user,
        }

    def refresh_access_token(self, refresh_token: str, user_id: Optional[int] = None) -> dict:
        try:
            payload = self.tokens.decode_refresh_token(refresh_token)
            subject = int(payload["sub"])
        except (InvalidTokenError, KeyError, TypeError, ValueError):
            raise AuthError(INVALID_REFRESH_TOKEN)

        if user_id is not None and user_id != subject:
            raise AuthError(INVALID_REFRESH_TOKEN)

        user = self.users.find_by_refresh_token(refresh_token, self.clock(), subject)
        if not user:
            raise AuthError(INVALID_REFRESH_TOKEN)

        return {
            "access_token": self.tokens.create_access_token(user.id, user.email, Role(user.role).value),
            "token_type": "bearer",
            "expires_in": self.tokens.access_ttl_seconds,
        }

    def logout(self, user_id: int) -> None:
        user = self.users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        self.users.update(user, {"refresh_token": None, "refresh_token_expiry": None})
        self.users.commit()
        logger.info("User logged out", user_id=user_id)

    def get_profile(self, user_id: int) -> User:
        user = self.users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def authenticate(self, access_token: str) -> User:
        """Resolve a bearer access token to a verified user."""
        try:
            payload = self.tokens.decode_access_token(access_token)
            user_id = int(payload["sub"])
        except (InvalidTokenError, KeyError, TypeError, ValueError):
            raise AuthError("Invalid or expired token")

        user = self.users.get_by_id(user_id)
        if not user:
            raise AuthError("User not found")
        if not user.is_verified:
            raise AuthError(NOT_VERIFIED)
        return user
