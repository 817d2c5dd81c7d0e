"""Bookings API routes."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.application.services.booking_service import BookingService
from app.application.services.notification_service import NotificationOutbox
from app.core.responses import created_response, success_response
from app.domain.models.booking import BookingStatus
from app.domain.models.user import Role, User
from app.domain.schemas.booking import BookingCreate, BookingRead, BookingUpdate
from app.interfaces.api.deps import get_current_user, require_roles, schedule_delivery
from app.interfaces.deps import get_booking_service, get_outbox

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])

staff_or_owner = require_roles(Role.STAFF)


def _booking(booking) -> dict:
    return BookingRead.model_validate(booking).model_dump(mode="json")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_booking(
    body: BookingCreate,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    booking = bookings.create_booking(user.id, body.trip_id, body.notes, body.user_id)
    schedule_delivery(background_tasks, outbox)
    return created_response(_booking(booking), "Booking created successfully")


@router.get("/me")
def list_my_bookings(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    items, meta = bookings.list_user_bookings(user.id, page, limit, status_filter)
    return success_response([_booking(b) for b in items], "Bookings retrieved", meta=meta)


@router.get("/all")
def list_all_bookings(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    trip_id: Optional[int] = Query(None),
    user: User = Depends(staff_or_owner),
    bookings: BookingService = Depends(get_booking_service),
):
    items, meta = bookings.list_all_bookings(user.id, page, limit, status_filter, trip_id)
    return success_response([_booking(b) for b in items], "Bookings retrieved", meta=meta)


@router.get("/{booking_id}")
def get_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    return success_response(_booking(bookings.get_booking(user.id, booking_id)), "Booking retrieved")


@router.patch("/{booking_id}")
def update_booking(
    booking_id: int,
    body: BookingUpdate,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    booking = bookings.update_booking(user.id, booking_id, body.status, body.notes)
    schedule_delivery(background_tasks, outbox)
    return success_response(_booking(booking), "Booking updated successfully")


@router.delete("/{booking_id}")
def cancel_booking(
    booking_id: int,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    booking = bookings.cancel_booking(user.id, booking_id)
    schedule_delivery(background_tasks, outbox)
    return success_response(_booking(booking), "Booking cancelled successfully")
