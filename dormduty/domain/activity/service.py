"""Activity service - Room feed and reminders"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...membership import assert_membership, get_room_member
from ...models import ActivityLog, Room, User
from .repository import ActivityRepository
from .schemas import ActivityEntry, ReminderCreate

logger = logging.getLogger(__name__)


def activity_to_response(entry: ActivityLog) -> ActivityEntry:
    return ActivityEntry(
        id=entry.id,
        roomId=entry.room_id,
        type=entry.type,
        message=entry.message,
        userId=entry.user_id,
        createdBy=entry.created_by,
        createdAt=entry.created_at,
    )


class ActivityService:
    """Service layer for the room activity feed"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ActivityRepository()

    def get_feed(
        self, user: User, room_id: Optional[str] = None, user_id: Optional[str] = None, limit: int = 50
    ) -> list[ActivityLog]:
        room_id = assert_membership(user, room_id)
        return self.repo.get_feed(self.db, room_id, user_id, limit)

    def send_reminder(self, data: ReminderCreate, user: User) -> ActivityLog:
        room_id = assert_membership(user, data.roomId)

        if data.userId:
            target = get_room_member(self.db, room_id, data.userId)
            entry = self.repo.add_entry(
                self.db, room_id, "reminder", data.message, user_id=target.id, created_by=user.id
            )
        else:
            room = self.db.query(Room).filter(Room.id == room_id).first()
            room_name = room.name if room else "Room"
            entry = self.repo.add_entry(
                self.db,
                room_id,
                "group_notification",
                f"{room_name} notified: {data.message}",
                created_by=user.id,
            )

        try:
            self.db.commit()
            self.db.refresh(entry)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save reminder: {e}")
            raise HTTPException(status_code=500, detail=str(e)) from e

        logger.info(f"🔔 {user.id} sent a {entry.type} in room {room_id}")
        return entry
