"""Password hashing and JWT token management."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import Settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class InvalidTokenError(Exception):
    """Raised when a token fails signature, expiry or type checks."""


class PasswordHasher:
    """One-way bcrypt hashing with a configurable cost factor."""

    def __init__(self, settings: Settings):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=settings.BCRYPT_ROUNDS,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        return self._context.verify(plain_password, hashed_password)


class TokenIssuer:
    """Signs and verifies access and refresh tokens with distinct secrets."""

    def __init__(self, settings: Settings):
        self.algorithm = settings.JWT_ALGORITHM
        self.access_secret = settings.JWT_ACCESS_SECRET
        self.refresh_secret = settings.JWT_REFRESH_SECRET
        self.access_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    def sign(self, claims: Dict[str, Any], secret: str, ttl: timedelta, token_type: str) -> str:
        now = datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update({
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
            # two tokens issued in the same second must still differ
            "jti": uuid.uuid4().hex,
        })
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def verify(self, token: str, secret: str, token_type: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e
        if payload.get("type") != token_type:
            raise InvalidTokenError("Unexpected token type")
        return payload

    def create_access_token(self, user_id: int, email: str, role: str) -> str:
        claims = {"sub": str(user_id), "email": email, "role": role}
        return self.sign(claims, self.access_secret, self.access_ttl, ACCESS_TOKEN_TYPE)

    def create_refresh_token(self, user_id: int) -> str:
        return self.sign({"sub": str(user_id)}, self.refresh_secret, self.refresh_ttl, REFRESH_TOKEN_TYPE)

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        return self.verify(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        return self.verify(token, self.refresh_secret, REFRESH_TOKEN_TYPE)

    @property
    def access_ttl_seconds(self) -> int:
        return int(self.access_ttl.total_seconds())

    @property
    def refresh_ttl_seconds(self) -> int:
        return int(self.refresh_ttl.total_seconds())

    def refresh_expiry(self, now: Optional[datetime] = None) -> datetime:
        return (now or datetime.now(timezone.utc)) + self.refresh_ttl
