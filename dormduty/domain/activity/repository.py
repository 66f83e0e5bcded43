"""Activity repository - Database operations for the room activity feed"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import ActivityLog


class ActivityRepository:
    """Repository for activity feed database operations"""

    @staticmethod
    def add_entry(
        db: Session,
        room_id: str,
        type: str,
        message: str,
        user_id: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> ActivityLog:
        """Stage an entry; it is committed with the change it describes"""
        entry = ActivityLog(
            room_id=room_id,
            type=type,
            message=message[:500],
            user_id=user_id,
            created_by=created_by,
        )
        db.add(entry)
        return entry

    @staticmethod
    def get_feed(
        db: Session, room_id: str, user_id: Optional[str] = None, limit: int = 50
    ) -> list[ActivityLog]:
        """Newest first. With user_id, entries about that roommate plus room-wide ones."""
        query = db.query(ActivityLog).filter(ActivityLog.room_id == room_id)
        if user_id:
            query = query.filter(or_(ActivityLog.user_id == user_id, ActivityLog.user_id.is_(None)))
        return query.order_by(ActivityLog.created_at.desc()).limit(limit).all()
