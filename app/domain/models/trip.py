"""Trip domain model: maps to the 'trips' table."""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.infrastructure.database import Base


class TripStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Trip(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    # {name, location, description, highlights[], coordinates{lat, lng}}
    destination = Column(JSON, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)
    end_date = Column(DateTime(timezone=True), nullable=False)
    max_capacity = Column(Integer, nullable=False)
    # Number of pending + confirmed bookings, maintained by the booking ledger
    current_bookings = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=False)
    status = Column(
        Enum(TripStatus, name="trip_status", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TripStatus.ACTIVE,
        index=True,
    )
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    owner = relationship("User", back_populates="trips")
    bookings = relationship("Booking", back_populates="trip", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("max_capacity > 0", name="ck_trip_max_capacity_positive"),
        CheckConstraint("current_bookings >= 0", name="ck_trip_current_bookings_non_negative"),
        CheckConstraint("current_bookings <= max_capacity", name="ck_trip_current_bookings_within_capacity"),
        CheckConstraint("start_date <= end_date", name="ck_trip_dates_ordered"),
    )

    def __repr__(self):
        return f"<Trip {self.id} - {self.title} ({self.current_bookings}/{self.max_capacity})>"
