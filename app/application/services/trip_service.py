"""Trip service: trip catalogue and capacity settings."""

from typing import List, Optional, Tuple

import structlog

from app.application.services.access_control import OWNER_ONLY, authorize, load_actor
from app.core.dates import as_utc, parse_utc_iso
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.core.responses import normalize_pagination, pagination_meta, skip_and_take
from app.domain.models.trip import Trip, TripStatus
from app.domain.repositories.trip_repository import TripRepository
from app.domain.repositories.user_repository import UserRepository
from app.domain.schemas.trip import TripCreate, TripUpdate

logger = structlog.get_logger(__name__)


def _check_date_order(start, end) -> None:
    if start > end:
        raise ValidationError(
            "start_date must be before or equal to end_date",
            [{"field": "end_date", "message": "end_date must not be before start_date", "value": end.isoformat()}],
        )


class TripService:
    def __init__(self, trip_repo: TripRepository, user_repo: UserRepository):
        self.trips = trip_repo
        self.users = user_repo

    def create_trip(self, actor_id: int, data: TripCreate) -> Trip:
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, OWNER_ONLY, "Only owners can create trips")

        start = parse_utc_iso(data.start_date, "start_date")
        end = parse_utc_iso(data.end_date, "end_date")
        _check_date_order(start, end)

        trip = self.trips.add({
            "title": data.title.strip(),
            "description": data.description,
            "destination": data.destination.model_dump(),
            "start_date": start,
            "end_date": end,
            "max_capacity": data.max_capacity,
            "current_bookings": 0,
            "price": data.price,
            "status": TripStatus(data.status),
            "owner_id": actor.id,
        })
        self.trips.commit()

        logger.info("Trip created", trip_id=trip.id, owner_id=actor.id, max_capacity=trip.max_capacity)
        return trip

    def update_trip(self, actor_id: int, trip_id: int, data: TripUpdate) -> Trip:
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, OWNER_ONLY, "Only owners can update trips")
        trip = self._get_owned(actor.id, trip_id)

        fields = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        max_capacity = fields.pop("max_capacity", None)

        if "start_date" in fields:
            fields["start_date"] = parse_utc_iso(fields["start_date"], "start_date")
        if "end_date" in fields:
            fields["end_date"] = parse_utc_iso(fields["end_date"], "end_date")
        if "start_date" in fields or "end_date" in fields:
            _check_date_order(
                fields.get("start_date", as_utc(trip.start_date)),
                fields.get("end_date", as_utc(trip.end_date)),
            )
        if "status" in fields:
            fields["status"] = TripStatus(fields["status"])

        if fields:
            self.trips.update(trip, fields)

        if max_capacity is not None and not self.trips.set_max_capacity(trip.id, max_capacity):
            self.trips.rollback()
            current = self.trips.refresh(trip).current_bookings
            raise ValidationError(
                f"max_capacity cannot be lower than current bookings ({current})",
                [{"field": "max_capacity", "message": "below current bookings", "value": max_capacity}],
            )

        self.trips.commit()
        logger.info("Trip updated", trip_id=trip.id, fields=sorted(fields), max_capacity=max_capacity)
        return self.trips.refresh(trip)

    def delete_trip(self, actor_id: int, trip_id: int) -> None:
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, OWNER_ONLY, "Only owners can delete trips")
        trip = self._get_owned(actor.id, trip_id)

        # The guard lives in the DELETE itself, so a concurrent booking cannot slip in
        if not self.trips.delete_if_unbooked(trip.id):
            self.trips.rollback()
            raise ValidationError("Cannot delete a trip with active bookings")
        self.trips.commit()
        logger.info("Trip deleted", trip_id=trip_id, owner_id=actor.id)

    def list_available_trips(self, page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[List[Trip], dict]:
        page, limit = normalize_pagination(page, limit)
        skip, take = skip_and_take(page, limit)
        trips, total = self.trips.list_available(skip, take)
        return trips, pagination_meta(page, limit, total)

    def get_trip(self, trip_id: int) -> Trip:
        trip = self.trips.get_by_id(trip_id)
        if not trip:
            raise NotFoundError("Trip not found")
        return trip

    def list_owner_trips(
        self, actor_id: int, page: Optional[int] = None, limit: Optional[int] = None
    ) -> Tuple[List[Trip], dict]:
        actor = load_actor(self.users, actor_id)
        authorize(actor.role, OWNER_ONLY, "Only owners can list their trips")

        page, limit = normalize_pagination(page, limit)
        skip, take = skip_and_take(page, limit)
        trips, total = self.trips.list_by_owner(actor.id, skip, take)
        return trips, pagination_meta(page, limit, total)

    def _get_owned(self, owner_id: int, trip_id: int) -> Trip:
        trip = self.get_trip(trip_id)
        if trip.owner_id != owner_id:
            raise AuthorizationError("You can only manage your own trips")
        return trip
