"""Booking repository - Database operations for machine reservations"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, Room


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_bookings(
        db: Session,
        room_id: str,
        machine: Optional[str] = None,
        ending_after: Optional[datetime] = None,
    ) -> list[Booking]:
        query = db.query(Booking).filter(Booking.room_id == room_id)
        if machine:
            query = query.filter(Booking.machine == machine)
        if ending_after:
            query = query.filter(Booking.end > ending_after)
        return query.order_by(Booking.start.asc()).all()

    @staticmethod
    def lock_room(db: Session, room_id: str) -> Optional[Room]:
        """SELECT ... FOR UPDATE on the room row; held until the transaction ends"""
        return db.query(Room).filter(Room.id == room_id).with_for_update().first()

    @staticmethod
    def get_overlapping(
        db: Session, room_id: str, machine: str, start: datetime, end: datetime
    ) -> list[Booking]:
        """Same-machine bookings whose window intersects [start, end)"""
        return (
            db.query(Booking)
            .filter(
                Booking.room_id == room_id,
                Booking.machine == machine,
                Booking.start < end,
                Booking.end > start,
            )
            .order_by(Booking.start.asc())
            .all()
        )

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def add_booking(db: Session, room_id: str, **booking_data) -> Booking:
        """Stage a booking without committing"""
        booking = Booking(room_id=room_id, **booking_data)
        db.add(booking)
        return booking

    @staticmethod
    def delete_booking(db: Session, booking: Booking) -> None:
        db.delete(booking)
        db.commit()
