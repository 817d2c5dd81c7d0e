"""Last-seat races: the counter guard must hold across sessions and threads."""

import threading

import pytest

from app.core.exceptions import ConflictError
from app.domain.models.booking import BookingStatus
from app.domain.models.user import Role
from factories import count_active_bookings


@pytest.fixture
def owner(create_user):
    return create_user(Role.OWNER)


def test_stale_read_cannot_overbook(make_services, owner, create_user, create_trip):
    first = create_user(Role.TOURIST)
    second = create_user(Role.TOURIST)
    trip = create_trip(owner, max_capacity=1)

    a = make_services()
    b = make_services()
    # both sessions see an empty trip before either books
    assert a.trips_repo.get_by_id(trip.id).current_bookings == 0
    assert b.trips_repo.get_by_id(trip.id).current_bookings == 0

    a.bookings.create_booking(first.id, trip.id)
    with pytest.raises(ConflictError):
        b.bookings.create_booking(second.id, trip.id)

    check = make_services()
    assert check.trips_repo.get_by_id(trip.id).current_bookings == 1
    assert count_active_bookings(check.db, trip.id) == 1


def test_concurrent_bookings_for_last_seats(make_services, owner, create_user, create_trip):
    capacity = 2
    tourists = [create_user(Role.TOURIST) for _ in range(6)]
    trip = create_trip(owner, max_capacity=capacity)

    workers = [make_services() for _ in tourists]
    barrier = threading.Barrier(len(tourists))
    results = []
    lock = threading.Lock()

    def attempt(services, tourist_id):
        barrier.wait()
        try:
            services.bookings.create_booking(tourist_id, trip.id)
            outcome = "booked"
        except ConflictError:
            outcome = "conflict"
        with lock:
            results.append(outcome)

    threads = [
        threading.Thread(target=attempt, args=(services, tourist.id))
        for services, tourist in zip(workers, tourists)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(results) == ["booked"] * capacity + ["conflict"] * (len(tourists) - capacity)

    check = make_services()
    assert check.trips_repo.get_by_id(trip.id).current_bookings == capacity
    assert count_active_bookings(check.db, trip.id) == capacity


def test_concurrent_duplicate_booking_keeps_one(make_services, owner, create_user, create_trip):
    tourist = create_user(Role.TOURIST)
    trip = create_trip(owner, max_capacity=5)

    workers = [make_services() for _ in range(3)]
    barrier = threading.Barrier(len(workers))
    results = []
    lock = threading.Lock()

    def attempt(services):
        barrier.wait()
        try:
            services.bookings.create_booking(tourist.id, trip.id)
            outcome = "booked"
        except ConflictError:
            outcome = "conflict"
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=attempt, args=(s,)) for s in workers]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(results) == ["booked", "conflict", "conflict"]
    check = make_services()
    assert check.trips_repo.get_by_id(trip.id).current_bookings == 1


def test_concurrent_cancel_releases_once(make_services, owner, create_user, create_trip):
    tourist = create_user(Role.TOURIST)
    trip = create_trip(owner, max_capacity=3)
    setup = make_services()
    booking = setup.bookings.create_booking(tourist.id, trip.id)

    a = make_services()
    b = make_services()
    a.bookings.get_booking(tourist.id, booking.id)
    b.bookings.get_booking(tourist.id, booking.id)

    a.bookings.cancel_booking(tourist.id, booking.id)
    # b still holds the booking as pending; its conditional update must lose
    with pytest.raises(ConflictError):
        b.bookings.cancel_booking(tourist.id, booking.id)

    check = make_services()
    assert check.bookings_repo.get_by_id(booking.id).status == BookingStatus.CANCELLED
    assert check.trips_repo.get_by_id(trip.id).current_bookings == 0
