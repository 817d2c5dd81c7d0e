"""Trips API routes: catalogue for everyone, management for owners."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.application.services.trip_service import TripService
from app.core.responses import created_response, success_response
from app.domain.models.user import Role, User
from app.domain.schemas.trip import TripCreate, TripDetail, TripRead, TripUpdate
from app.interfaces.api.deps import get_current_user, require_roles
from app.interfaces.deps import get_trip_service

router = APIRouter(prefix="/api/trips", tags=["Trips"])

owner_only = require_roles(Role.OWNER)


def _trip(trip) -> dict:
    return TripRead.model_validate(trip).model_dump(mode="json")


@router.get("")
def list_available_trips(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    trips: TripService = Depends(get_trip_service),
):
    items, meta = trips.list_available_trips(page, limit)
    return success_response([_trip(t) for t in items], "Available trips retrieved", meta=meta)


@router.get("/owner/all")
def list_owner_trips(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    user: User = Depends(owner_only),
    trips: TripService = Depends(get_trip_service),
):
    items, meta = trips.list_owner_trips(user.id, page, limit)
    return success_response([_trip(t) for t in items], "Owner trips retrieved", meta=meta)


@router.get("/{trip_id}")
def get_trip(trip_id: int, user: User = Depends(get_current_user), trips: TripService = Depends(get_trip_service)):
    trip = trips.get_trip(trip_id)
    return success_response(TripDetail.model_validate(trip).model_dump(mode="json"), "Trip retrieved")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_trip(body: TripCreate, user: User = Depends(owner_only), trips: TripService = Depends(get_trip_service)):
    trip = trips.create_trip(user.id, body)
    return created_response(_trip(trip), "Trip created successfully")


@router.patch("/{trip_id}")
def update_trip(
    trip_id: int,
    body: TripUpdate,
    user: User = Depends(owner_only),
    trips: TripService = Depends(get_trip_service),
):
    trip = trips.update_trip(user.id, trip_id, body)
    return success_response(_trip(trip), "Trip updated successfully")


@router.delete("/{trip_id}")
def delete_trip(trip_id: int, user: User = Depends(owner_only), trips: TripService = Depends(get_trip_service)):
    trips.delete_trip(user.id, trip_id)
    return success_response(None, "Trip deleted successfully")
