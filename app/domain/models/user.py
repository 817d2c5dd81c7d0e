"""User domain model: maps to the 'users' table."""

import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.infrastructure.database import Base


class Role(str, enum.Enum):
    OWNER = "owner"
    STAFF = "staff"
    TOURIST = "tourist"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(32), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.TOURIST,
    )
    is_verified = Column(Boolean, nullable=False, default=False)

    # Single active OTP; a resend overwrites it
    otp_token = Column(String(16), nullable=True)
    otp_expiry = Column(DateTime(timezone=True), nullable=True)

    # Single active refresh token; a new login overwrites it, logout clears it
    refresh_token = Column(String(1024), nullable=True)
    refresh_token_expiry = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    bookings = relationship("Booking", back_populates="user", cascade="all, delete-orphan")
    trips = relationship("Trip", back_populates="owner")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else None})>"
