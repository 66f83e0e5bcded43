"""Room membership checks shared by every room-scoped handler"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from .models import User

logger = logging.getLogger(__name__)


def assert_membership(user: User, room_id: Optional[str] = None) -> str:
    """
    Resolve the room the caller may act in.

    Rejects with 403 when the caller has no room, or when a room was requested
    that is not the caller's. Returns the caller's room id.
    """
    if not user.room_id:
        raise HTTPException(status_code=403, detail="User is not assigned to a room")

    if room_id and room_id != user.room_id:
        logger.warning(f"🚫 User {user.id} tried to access room {room_id}")
        raise HTTPException(status_code=403, detail="User cannot access this room")

    return user.room_id


def assert_self(current_user: User, user_id: Optional[str]) -> None:
    """A userId sent by the client must be the caller's own"""
    if user_id and user_id != current_user.id:
        logger.warning(f"🚫 User {current_user.id} sent userId {user_id}")
        raise HTTPException(status_code=403, detail="userId does not match the authenticated user")


def get_room_member(db: Session, room_id: str, user_id: str, field: str = "userId") -> User:
    """Look up a user that must belong to room_id (400 otherwise)"""
    member = db.query(User).filter(User.id == user_id, User.room_id == room_id).first()
    if not member:
        raise HTTPException(status_code=400, detail=f"{field} is not a member of this room")
    return member


def room_member_ids(db: Session, room_id: str) -> list[str]:
    """Member ids in a stable order (join order, then id)"""
    rows = (
        db.query(User.id)
        .filter(User.room_id == room_id)
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )
    return [row[0] for row in rows]
