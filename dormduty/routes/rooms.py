import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..membership import assert_membership
from ..models import Room, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rooms", tags=["Rooms"])


class RoomCreate(BaseModel):
    name: Optional[str] = None
    createdBy: Optional[str] = None


class RoomChanges(BaseModel):
    name: Optional[str] = None


class RoomUpdate(BaseModel):
    roomId: Optional[str] = None
    updates: RoomChanges = RoomChanges()


class RoomMember(BaseModel):
    id: str
    name: str
    aura_points: int

    class Config:
        from_attributes = True


class RoomResponse(BaseModel):
    id: str
    name: str
    created_by: str
    created_at: Optional[datetime] = None
    members: list[RoomMember] = []

    class Config:
        from_attributes = True


@router.get("")
def get_rooms(
    roomId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """One room by id, or every room (to pick one to join)"""
    if roomId:
        room = db.query(Room).filter(Room.id == roomId).first()
        if not room:
            raise HTTPException(status_code=404, detail="Room not found")
        return {"room": RoomResponse.model_validate(room)}

    rooms = db.query(Room).order_by(Room.created_at.desc()).all()
    return {"rooms": [RoomResponse.model_validate(r) for r in rooms]}


@router.post("", status_code=201)
def create_room(
    data: RoomCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a room and move its creator into it"""
    if not data.name or not data.name.strip():
        raise HTTPException(status_code=400, detail="Room name is required")

    if data.createdBy and data.createdBy != current_user.id:
        raise HTTPException(status_code=403, detail="Cannot create room for another user")

    try:
        room = Room(name=data.name.strip(), created_by=current_user.id)
        db.add(room)
        db.commit()
        db.refresh(room)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error creating room: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info(f"🏠 Room {room.id} '{room.name}' created by {current_user.id}")

    # Second, independent write; the room stays even if this fails
    try:
        current_user.room_id = room.id
        db.commit()
        db.refresh(room)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"⚠️ Room {room.id} created but failed to update user {current_user.id}: {e}")

    return {
        "success": True,
        "roomId": room.id,
        "name": room.name,
        "room": RoomResponse.model_validate(room),
    }


@router.put("")
def update_room(
    data: RoomUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rename a room (members only)"""
    if not data.roomId:
        raise HTTPException(status_code=400, detail="Room ID is required")
    assert_membership(current_user, data.roomId)

    room = db.query(Room).filter(Room.id == data.roomId).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")

    if data.updates.name is None:
        raise HTTPException(status_code=400, detail="No valid update fields provided")
    if not data.updates.name.strip():
        raise HTTPException(status_code=400, detail="Room name is required")

    try:
        room.name = data.updates.name.strip()
        db.commit()
        db.refresh(room)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error updating room: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {"room": RoomResponse.model_validate(room)}
