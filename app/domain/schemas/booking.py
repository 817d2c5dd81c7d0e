"""Pydantic schemas for Booking domain."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.domain.models.booking import BookingStatus
from app.domain.models.trip import TripStatus


class BookingCreate(BaseModel):
    trip_id: int
    notes: Optional[str] = Field(default=None, max_length=2000)
    # Only staff/owner may book on behalf of a tourist
    user_id: Optional[int] = None


class BookingUpdate(BaseModel):
    status: Optional[BookingStatus] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class BookingTripSummary(BaseModel):
    id: int
    title: str
    start_date: datetime
    end_date: datetime
    status: TripStatus

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    id: int
    trip_id: int
    user_id: int
    status: BookingStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    trip: Optional[BookingTripSummary] = None

    model_config = {"from_attributes": True}
