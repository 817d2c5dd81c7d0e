"""Shared test data builders and store checks."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import func

from app.domain.models.booking import CAPACITY_STATUSES, Booking

DEFAULT_PASSWORD = "Secret123"


def count_active_bookings(session, trip_id: int) -> int:
    """Pending and confirmed bookings counted straight from the table, to check the trip counter against."""
    return (
        session.query(func.count(Booking.id))
        .filter(Booking.trip_id == trip_id, Booking.status.in_(CAPACITY_STATUSES))
        .scalar()
        or 0
    )


def iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def trip_payload(**overrides) -> dict:
    start = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=30)
    payload = {
        "title": "Bali Adventure Package",
        "description": "Complete Bali package with a local guide",
        "destination": {
            "name": "Bali",
            "location": "Bali, Indonesia",
            "description": "Island of the gods",
            "highlights": ["Ubud", "Tanah Lot"],
            "coordinates": {"lat": -8.4095, "lng": 115.1889},
        },
        "start_date": iso(start),
        "end_date": iso(start + timedelta(days=5)),
        "max_capacity": 10,
        "price": 2500000,
    }
    payload.update(overrides)
    return payload
