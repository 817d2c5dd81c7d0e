"""FastAPI application: main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.infrastructure.database import engine, Base
from app.core.logging import configure_logging
from app.core.middleware import setup_middleware
from app.core.exceptions import register_exception_handlers

# Import all models so SQLAlchemy knows about them
from app.domain.models.user import User
from app.domain.models.trip import Trip
from app.domain.models.booking import Booking
from app.domain.models.notification_log import NotificationLog

# Import routers
from app.interfaces.api.auth import router as auth_router, owner_router
from app.interfaces.api.users import router as users_router
from app.interfaces.api.trips import router as trips_router
from app.interfaces.api.bookings import router as bookings_router

settings = get_settings()

# Configure logging immediately
configure_logging()
logger = structlog.get_logger(__name__)

APP_NAME = "Travel Booking API"
APP_VERSION = "1.0.0"


def bootstrap_owner() -> None:
    """Create the configured owner account on first start."""
    if not (settings.BOOTSTRAP_OWNER_EMAIL and settings.BOOTSTRAP_OWNER_PASSWORD and settings.BOOTSTRAP_OWNER_PHONE):
        return

    from app.infrastructure.database import SessionLocal
    from app.application.services.auth_service import AuthService
    from app.application.services.notification_service import NotificationOutbox
    from app.infrastructure.repositories.user_repository import SQLAlchemyUserRepository
    from app.infrastructure.security import PasswordHasher, TokenIssuer

    db = SessionLocal()
    try:
        auth = AuthService(
            SQLAlchemyUserRepository(db, User),
            PasswordHasher(settings),
            TokenIssuer(settings),
            NotificationOutbox(db),
            settings,
        )
        owner = auth.ensure_owner(
            settings.BOOTSTRAP_OWNER_EMAIL,
            settings.BOOTSTRAP_OWNER_PASSWORD,
            settings.BOOTSTRAP_OWNER_PHONE,
        )
        if owner:
            logger.info("Bootstrap owner created", email=owner.email)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("Starting Travel Booking API...", env=settings.ENVIRONMENT)

    # Create DB tables (dev only, use migrations in production)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    bootstrap_owner()

    if settings.SCHEDULER_ENABLED:
        from app.scheduler.jobs import start_scheduler
        start_scheduler()

    yield

    if settings.SCHEDULER_ENABLED:
        from app.scheduler.jobs import stop_scheduler
        stop_scheduler()
    logger.info("Travel Booking API stopped")


app = FastAPI(
    title=APP_NAME,
    description="Trips, capacity-safe bookings, OTP-verified accounts and role-based access",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Setup Middleware (Correlation ID, Logging)
setup_middleware(app)

# Every error leaves in the response envelope
register_exception_handlers(app)

# Starlette runs middleware LIFO, so CORS added last sees the request first
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(owner_router)
app.include_router(users_router)
app.include_router(trips_router)
app.include_router(bookings_router)


@app.get("/")
def root():
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
