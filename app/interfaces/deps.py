"""
API Dependencies.

Repositories and services are built per request on the request's session.
FastAPI caches a dependency within one request, so the outbox a service
writes to is the same instance the route hands to the delivery task.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from app.application.services.auth_service import AuthService
from app.application.services.booking_service import BookingService
from app.application.services.notification_service import NotificationOutbox
from app.application.services.trip_service import TripService
from app.application.services.user_service import UserService
from app.config import Settings, get_settings
from app.domain.models.booking import Booking
from app.domain.models.trip import Trip
from app.domain.models.user import User
from app.domain.repositories.booking_repository import BookingRepository
from app.domain.repositories.trip_repository import TripRepository
from app.domain.repositories.user_repository import UserRepository
from app.infrastructure.database import get_db
from app.infrastructure.repositories.booking_repository import SQLAlchemyBookingRepository
from app.infrastructure.repositories.trip_repository import SQLAlchemyTripRepository
from app.infrastructure.repositories.user_repository import SQLAlchemyUserRepository
from app.infrastructure.security import PasswordHasher, TokenIssuer


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return SQLAlchemyUserRepository(db, User)


def get_trip_repository(db: Session = Depends(get_db)) -> TripRepository:
    return SQLAlchemyTripRepository(db, Trip)


def get_booking_repository(db: Session = Depends(get_db)) -> BookingRepository:
    return SQLAlchemyBookingRepository(db, Booking)


def get_outbox(db: Session = Depends(get_db)) -> NotificationOutbox:
    return NotificationOutbox(db)


def get_password_hasher(settings: Settings = Depends(get_settings)) -> PasswordHasher:
    return PasswordHasher(settings)


def get_token_issuer(settings: Settings = Depends(get_settings)) -> TokenIssuer:
    return TokenIssuer(settings)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenIssuer = Depends(get_token_issuer),
    outbox: NotificationOutbox = Depends(get_outbox),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(users, hasher, tokens, outbox, settings)


def get_user_service(
    users: UserRepository = Depends(get_user_repository),
) -> UserService:
    return UserService(users)


def get_trip_service(
    trips: TripRepository = Depends(get_trip_repository),
    users: UserRepository = Depends(get_user_repository),
) -> TripService:
    return TripService(trips, users)


def get_booking_service(
    bookings: BookingRepository = Depends(get_booking_repository),
    trips: TripRepository = Depends(get_trip_repository),
    users: UserRepository = Depends(get_user_repository),
    outbox: NotificationOutbox = Depends(get_outbox),
    settings: Settings = Depends(get_settings),
) -> BookingService:
    return BookingService(bookings, trips, users, outbox, settings)
