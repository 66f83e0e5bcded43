"""Booking router - FastAPI endpoints for laundry machine reservations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import BookingCreate, BookingResponse
from .service import BookingService, booking_to_response

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


@router.get("", response_model=list[BookingResponse])
async def get_bookings(
    roomId: Optional[str] = Query(None),
    machine: Optional[str] = Query(None),
    upcoming: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings for the room, earliest first"""
    return [booking_to_response(b) for b in service.get_bookings(current_user, roomId, machine, upcoming)]


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Reserve a machine; overlapping the same machine answers 409"""
    return booking_to_response(service.create_booking(data, current_user))


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.delete_booking(booking_id, current_user)
