import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..laundry_timer import remaining_seconds
from ..membership import assert_membership, get_room_member
from ..models import Laundry, User
from ..shared.validators import to_utc_naive, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/laundry", tags=["Laundry"])

# request key -> (column, is_user, is_timestamp)
LAUNDRY_FIELDS = {
    "washerUserId": ("washer_user", True, False),
    "dryerUserId": ("dryer_user", True, False),
    "washerTimerEnd": ("washer_timer_end", False, True),
    "dryerTimerEnd": ("dryer_timer_end", False, True),
}


class LaundryChanges(BaseModel):
    washerUserId: Optional[str] = None
    dryerUserId: Optional[str] = None
    washerTimerEnd: Optional[datetime] = None
    dryerTimerEnd: Optional[datetime] = None


class LaundryUpdate(BaseModel):
    roomId: Optional[str] = None
    updates: Optional[LaundryChanges] = None


class LaundryResponse(BaseModel):
    id: str
    room_id: str
    washer_user: Optional[str] = None
    dryer_user: Optional[str] = None
    washer_timer_end: Optional[datetime] = None
    dryer_timer_end: Optional[datetime] = None
    washer_remaining_seconds: int = 0
    dryer_remaining_seconds: int = 0
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def laundry_to_response(laundry: Laundry, now: Optional[datetime] = None) -> LaundryResponse:
    now = now or utcnow()
    response = LaundryResponse.model_validate(laundry)
    response.washer_remaining_seconds = remaining_seconds(laundry.washer_timer_end, now)
    response.dryer_remaining_seconds = remaining_seconds(laundry.dryer_timer_end, now)
    return response


@router.get("")
def get_laundry(
    roomId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Machine assignments and live countdowns for the room (null before first use)"""
    room_id = assert_membership(current_user, roomId)
    laundry = db.query(Laundry).filter(Laundry.room_id == room_id).first()
    return {"data": laundry_to_response(laundry) if laundry else None}


@router.patch("")
def update_laundry(
    data: LaundryUpdate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Write only the keys present in updates; creates the room's board on first write"""
    room_id = assert_membership(current_user, data.roomId)

    if data.updates is None:
        raise HTTPException(status_code=400, detail="updates payload is required")

    payload = {}
    for key in data.updates.model_fields_set:
        column, is_user, is_timestamp = LAUNDRY_FIELDS[key]
        value = getattr(data.updates, key)
        if is_user and value:
            get_room_member(db, room_id, value, field=key)
        if is_timestamp:
            value = to_utc_naive(value)
        payload[column] = value

    if not payload:
        raise HTTPException(status_code=400, detail="No valid update fields provided")

    try:
        laundry = db.query(Laundry).filter(Laundry.room_id == room_id).first()
        if laundry is None:
            laundry = Laundry(room_id=room_id, **payload)
            db.add(laundry)
            response.status_code = 201
            logger.info(f"🧺 Laundry board created for room {room_id}")
        else:
            for column, value in payload.items():
                setattr(laundry, column, value)
        db.commit()
        db.refresh(laundry)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error updating laundry: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {"data": laundry_to_response(laundry)}
