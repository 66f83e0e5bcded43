"""Booking service - Business logic for machine reservations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...membership import assert_membership
from ...models import Booking, User
from ...shared.validators import utcnow
from .overlap import Slot, find_conflicts
from .repository import BookingRepository
from .schemas import BookingConflict, BookingCreate, BookingResponse

logger = logging.getLogger(__name__)


def booking_to_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        roomId=booking.room_id,
        machine=booking.machine,
        userId=booking.user_id,
        userName=booking.user_name,
        start=booking.start,
        end=booking.end,
        notes=booking.notes,
        createdAt=booking.created_at,
    )


class BookingService:
    """Service layer for laundry machine bookings"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def get_bookings(
        self,
        user: User,
        room_id: Optional[str] = None,
        machine: Optional[str] = None,
        upcoming: bool = False,
    ) -> list[Booking]:
        room_id = assert_membership(user, room_id)
        return self.repo.get_bookings(
            self.db, room_id, machine.lower() if machine else None, utcnow() if upcoming else None
        )

    def create_booking(self, data: BookingCreate, user: User) -> Booking:
        """
        Reserve a machine for [start, end).

        The room row is locked before the overlap query, so concurrent bookings
        in one room run their check and insert one after the other. The lock is
        released by the commit, or by the rollback on conflict.
        """
        room_id = assert_membership(user, data.roomId)
        candidate = Slot(machine=data.machine, start=data.start, end=data.end)

        self.repo.lock_room(self.db, room_id)
        existing = self.repo.get_overlapping(self.db, room_id, data.machine, data.start, data.end)
        conflicts = find_conflicts(candidate, existing)
        if conflicts:
            conflict_ids = [b.id for b in conflicts]
            self.db.rollback()
            logger.info(f"⛔ Booking conflict on {data.machine} in room {room_id}: {conflict_ids}")
            raise HTTPException(
                status_code=409,
                detail=BookingConflict(
                    conflictingBookingId=conflict_ids[0],
                    conflictingBookingIds=conflict_ids,
                ).model_dump(),
            )

        try:
            booking = self.repo.add_booking(
                self.db,
                room_id,
                machine=data.machine,
                user_id=user.id,
                user_name=data.userName or user.name,
                start=data.start,
                end=data.end,
                notes=data.notes,
            )
            self.db.commit()
            self.db.refresh(booking)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save booking: {e}")
            raise HTTPException(status_code=500, detail=str(e)) from e

        logger.info(f"🧺 {user.id} booked the {booking.machine} {booking.start} -> {booking.end}")
        return booking

    def delete_booking(self, booking_id: str, user: User) -> dict:
        booking = self.repo.get_booking_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        assert_membership(user, booking.room_id)

        self.repo.delete_booking(self.db, booking)
        return {"id": booking_id}
