"""
Test configuration and fixtures.

Environment setup MUST happen before any app import: settings, the engine and
the session factory are built at import time from these variables.
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="travel-booking-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["OTP_CHANNEL"] = "email"
os.environ["BOOKING_NOTIFICATION_CHANNEL"] = "email"
os.environ["OWNER_AUTO_VERIFY"] = "true"
os.environ["BOOKING_INITIAL_STATUS"] = "pending"
os.environ["BOOTSTRAP_OWNER_EMAIL"] = ""
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime  # noqa: E402
from typing import Callable, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.application.services.auth_service import AuthService  # noqa: E402
from app.application.services.booking_service import BookingService  # noqa: E402
from app.application.services.notification_service import NotificationOutbox  # noqa: E402
from app.application.services.trip_service import TripService  # noqa: E402
from app.application.services.user_service import UserService  # noqa: E402
from app.config import get_settings  # noqa: E402
from app.domain.models.booking import Booking  # noqa: E402
from app.domain.models.trip import Trip  # noqa: E402
from app.domain.models.user import Role, User  # noqa: E402
from app.domain.schemas.trip import TripCreate  # noqa: E402
from app.infrastructure.database import Base, SessionLocal, engine  # noqa: E402
from app.infrastructure.repositories.booking_repository import SQLAlchemyBookingRepository  # noqa: E402
from app.infrastructure.repositories.trip_repository import SQLAlchemyTripRepository  # noqa: E402
from app.infrastructure.repositories.user_repository import SQLAlchemyUserRepository  # noqa: E402
from app.infrastructure.security import PasswordHasher, TokenIssuer  # noqa: E402
from factories import DEFAULT_PASSWORD, trip_payload  # noqa: E402


@pytest.fixture(autouse=True)
def clean_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


class Services:
    """All services wired on one session, sharing one outbox."""

    def __init__(self, session, settings, clock: Optional[Callable[[], datetime]] = None):
        self.db = session
        self.settings = settings
        self.users = SQLAlchemyUserRepository(session, User)
        self.trips_repo = SQLAlchemyTripRepository(session, Trip)
        self.bookings_repo = SQLAlchemyBookingRepository(session, Booking)
        self.outbox = NotificationOutbox(session)
        self.hasher = PasswordHasher(settings)
        self.tokens = TokenIssuer(settings)

        extra = {"clock": clock} if clock else {}
        self.auth = AuthService(self.users, self.hasher, self.tokens, self.outbox, settings, **extra)
        self.user_admin = UserService(self.users)
        self.trips = TripService(self.trips_repo, self.users)
        self.bookings = BookingService(self.bookings_repo, self.trips_repo, self.users, self.outbox, settings, **extra)


@pytest.fixture
def services(db, settings):
    return Services(db, settings)


@pytest.fixture
def make_services(settings):
    """Build Services on a fresh session; sessions are closed at teardown."""
    sessions = []

    def factory(clock=None):
        session = SessionLocal()
        sessions.append(session)
        return Services(session, settings, clock)

    yield factory
    for session in sessions:
        session.close()


@pytest.fixture
def create_user(db, settings):
    hasher = PasswordHasher(settings)
    counter = {"n": 0}

    def factory(role: Role = Role.TOURIST, email: Optional[str] = None, verified: bool = True, password: str = DEFAULT_PASSWORD) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"{role.value}{n}@example.com",
            phone=f"+62811000{n:04d}",
            password_hash=hasher.hash(password),
            role=role,
            is_verified=verified,
        )
        db.add(user)
        db.commit()
        return user

    return factory


@pytest.fixture
def create_trip(services):
    def factory(owner: User, **overrides) -> Trip:
        return services.trips.create_trip(owner.id, TripCreate(**trip_payload(**overrides)))

    return factory


@pytest.fixture
def client():
    from app.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_header(settings):
    tokens = TokenIssuer(settings)

    def factory(user: User) -> dict:
        token = tokens.create_access_token(user.id, user.email, Role(user.role).value)
        return {"Authorization": f"Bearer {token}"}

    return factory
