"""Seed a development database with users, trips and bookings.

Wipes bookings, trips and users first. Trip counters are set from the
bookings created here, so the seeded data satisfies the capacity invariant.

    python scripts/seed.py
"""

import sys
import os
from datetime import datetime, timedelta, timezone

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import get_settings
from app.domain.models.booking import CAPACITY_STATUSES, Booking, BookingStatus
from app.domain.models.notification_log import NotificationLog
from app.domain.models.trip import Trip, TripStatus
from app.domain.models.user import Role, User
from app.infrastructure.database import Base, SessionLocal, engine
from app.infrastructure.security import PasswordHasher

OWNER = ("admin@travel-booking.com", "Owner123", "+6281234567890")
STAFF = [
    ("staff1@travel-booking.com", "Staff123", "+6281234567891"),
    ("staff2@travel-booking.com", "Staff123", "+6281234567892"),
    ("staff3@travel-booking.com", "Staff123", "+6281234567893"),
]
TOURISTS = [(f"tourist{i}@example.com", "Tourist123", f"+62812345679{i:02d}") for i in range(8)]
UNVERIFIED = [
    ("pending1@example.com", "Pending123", "+6281234567910", Role.TOURIST),
    ("pending2@example.com", "Pending123", "+6281234567911", Role.STAFF),
]

DESTINATIONS = {
    "bali": {
        "name": "Bali",
        "location": "Bali, Indonesia",
        "description": "Island of the gods, beaches and Hindu culture",
        "highlights": ["Kuta Beach", "Tanah Lot", "Ubud", "Seminyak"],
        "coordinates": {"lat": -8.4095, "lng": 115.1889},
    },
    "yogyakarta": {
        "name": "Yogyakarta",
        "location": "Yogyakarta, Indonesia",
        "description": "Cultural capital with Borobudur and Prambanan",
        "highlights": ["Borobudur", "Prambanan", "Malioboro", "Kraton"],
        "coordinates": {"lat": -7.7971, "lng": 110.3708},
    },
    "bandung": {
        "name": "Bandung",
        "location": "Bandung, Indonesia",
        "description": "Cool highland city known for food",
        "highlights": ["Tangkuban Perahu", "Kawah Putih", "Dago", "Braga"],
        "coordinates": {"lat": -6.9175, "lng": 107.6191},
    },
    "lombok": {
        "name": "Lombok",
        "location": "Lombok, Indonesia",
        "description": "Exotic beaches and Mount Rinjani",
        "highlights": ["Gili Islands", "Mount Rinjani", "Pink Beach", "Sasak Village"],
        "coordinates": {"lat": -8.5833, "lng": 116.1167},
    },
    "raja_ampat": {
        "name": "Raja Ampat",
        "location": "West Papua, Indonesia",
        "description": "Marine biodiversity hotspot",
        "highlights": ["Diving", "Snorkeling", "Island Hopping", "Bird Watching"],
        "coordinates": {"lat": -0.5, "lng": 130.0},
    },
}

# (title, description, destination, days from now, length in days, capacity, price)
TRIPS = [
    ("Bali Adventure Package", "Complete Bali package with a local guide", "bali", 30, 5, 15, 2500000),
    ("Bali Cultural Tour", "Temples and traditional villages", "bali", 40, 5, 12, 1800000),
    ("Bali Beach & Spa", "Relaxing beaches and spa", "bali", 50, 5, 10, 3000000),
    ("Yogyakarta Heritage Tour", "Javanese heritage in Yogyakarta", "yogyakarta", 34, 5, 20, 1500000),
    ("Yogyakarta Culinary Adventure", "Food trail in the city of gudeg", "yogyakarta", 45, 5, 15, 1200000),
    ("Bandung Nature Escape", "Escape to cool Bandung nature", "bandung", 38, 4, 18, 1000000),
    ("Bandung Shopping & Food", "Shopping and food in Paris van Java", "bandung", 55, 4, 25, 800000),
    ("Lombok Island Paradise", "Adventure on exotic Lombok", "lombok", 62, 7, 12, 3500000),
    ("Raja Ampat Diving Expedition", "Diving in an underwater paradise", "raja_ampat", 72, 7, 8, 5000000),
    ("Raja Ampat Island Hopping", "Island hopping across Raja Ampat", "raja_ampat", 82, 7, 10, 4000000),
]

# (trip index, tourist index, status, notes)
BOOKINGS = [
    (0, 0, BookingStatus.CONFIRMED, "First time to Bali, very excited!"),
    (0, 1, BookingStatus.PENDING, "Looking forward to the adventure"),
    (1, 2, BookingStatus.CONFIRMED, "Interested in Balinese culture"),
    (3, 3, BookingStatus.CONFIRMED, "Want to see Borobudur"),
    (5, 4, BookingStatus.PENDING, "Need an escape from city life"),
    (7, 5, BookingStatus.CONFIRMED, "Dream destination!"),
]


def seed():
    print("Seeding travel booking database...")
    settings = get_settings()
    hasher = PasswordHasher(settings)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        db.query(NotificationLog).delete()
        db.query(Booking).delete()
        db.query(Trip).delete()
        db.query(User).delete()
        db.flush()
        print("Cleaned existing data")

        def make_user(email, password, phone, role, verified=True):
            user = User(
                email=email,
                phone=phone,
                password_hash=hasher.hash(password),
                role=role,
                is_verified=verified,
            )
            db.add(user)
            return user

        owner = make_user(*OWNER, Role.OWNER)
        staff = [make_user(*s, Role.STAFF) for s in STAFF]
        tourists = [make_user(*t, Role.TOURIST) for t in TOURISTS]
        for email, password, phone, role in UNVERIFIED:
            make_user(email, password, phone, role, verified=False)
        db.flush()

        now = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        trips = []
        for title, description, dest, offset, length, capacity, price in TRIPS:
            start = now + timedelta(days=offset)
            trip = Trip(
                title=title,
                description=description,
                destination=DESTINATIONS[dest],
                start_date=start,
                end_date=start + timedelta(days=length),
                max_capacity=capacity,
                current_bookings=0,
                price=price,
                status=TripStatus.ACTIVE,
                owner_id=owner.id,
            )
            db.add(trip)
            trips.append(trip)
        db.flush()

        for trip_index, tourist_index, status, notes in BOOKINGS:
            trip = trips[trip_index]
            db.add(Booking(trip_id=trip.id, user_id=tourists[tourist_index].id, status=status, notes=notes))
            if status in CAPACITY_STATUSES:
                trip.current_bookings += 1

        db.commit()
    except Exception as e:
        db.rollback()
        print(f"Seed failed: {e}")
        raise
    finally:
        db.close()

    print("\nSummary:")
    print("   Owner: 1")
    print(f"   Staff: {len(staff)}")
    print(f"   Tourists: {len(tourists)}")
    print(f"   Trips: {len(trips)}")
    print(f"   Bookings: {len(BOOKINGS)}")
    print(f"   Unverified: {len(UNVERIFIED)}")
    print("\nTest credentials:")
    print(f"   Owner: {OWNER[0]} / {OWNER[1]}")
    print(f"   Staff: {STAFF[0][0]} / {STAFF[0][1]}")
    print(f"   Tourist: {TOURISTS[0][0]} / {TOURISTS[0][1]}")


if __name__ == "__main__":
    seed()
