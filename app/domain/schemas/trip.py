"""Pydantic schemas for Trip domain."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.domain.models.booking import BookingStatus
from app.domain.models.trip import TripStatus
from app.domain.schemas.user import UserSummary


class Coordinates(BaseModel):
    lat: float
    lng: float


class Destination(BaseModel):
    name: str = Field(min_length=1)
    location: str = Field(min_length=1)
    description: str = ""
    highlights: List[str] = []
    coordinates: Optional[Coordinates] = None


class TripCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    destination: Destination
    # Kept as strings: only explicit UTC ISO-8601 values are accepted
    start_date: str
    end_date: str
    max_capacity: int = Field(gt=0)
    price: float = Field(gt=0)
    status: TripStatus = TripStatus.ACTIVE


class TripUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    destination: Optional[Destination] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    max_capacity: Optional[int] = Field(default=None, gt=0)
    price: Optional[float] = Field(default=None, gt=0)
    status: Optional[TripStatus] = None


class TripRead(BaseModel):
    id: int
    title: str
    description: str
    destination: Destination
    start_date: datetime
    end_date: datetime
    max_capacity: int
    current_bookings: int
    price: float
    status: TripStatus
    owner_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TripBookingSummary(BaseModel):
    id: int
    user_id: int
    status: BookingStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TripDetail(TripRead):
    owner: UserSummary
    bookings: List[TripBookingSummary] = []
