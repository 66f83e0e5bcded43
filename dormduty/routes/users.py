import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user, get_token_claims
from ..database import get_db
from ..membership import assert_membership
from ..models import Room, User
from ..services.aura import adjust_aura
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


class RegisterUserRequest(BaseModel):
    email: Optional[str] = None
    userId: Optional[str] = None
    name: Optional[str] = None


class RoomAssignment(BaseModel):
    roomId: Optional[str] = None


class AuraUpdate(BaseModel):
    userId: Optional[str] = None
    roomId: Optional[str] = None
    auraChange: int
    reason: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    aura_points: int
    room_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def registration_payload(user: User) -> dict:
    return {"userId": user.id, "email": user.email, "name": user.name, "roomId": user.room_id}


@router.post("/registerUser")
def register_user(
    data: RegisterUserRequest,
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
):
    """Create the profile for a signed-in account, or return the existing one unchanged"""
    if not data.email or not data.userId:
        raise HTTPException(status_code=400, detail="Email and userId are required")

    if data.userId != claims["sub"]:
        logger.warning(f"🚫 Token {claims['sub']} tried to register userId {data.userId}")
        raise HTTPException(status_code=403, detail="userId does not match the authenticated user")

    existing = db.query(User).filter(User.id == data.userId).first()
    if existing:
        return registration_payload(existing)

    try:
        email = validate_email(data.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        user = User(
            id=data.userId,
            email=email,
            name=(data.name or "").strip() or email.split("@")[0],
            aura_points=0,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"⚠️ Email {email} already belongs to another account")
        raise HTTPException(status_code=400, detail="Email is already registered to another account") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error creating user: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info(f"🆕 Registered user {user.id} ({user.email})")
    return registration_payload(user)


@router.patch("/user/aura")
def update_aura(
    data: AuraUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Adjust a roommate's aura balance (never below zero)"""
    room_id = assert_membership(current_user, data.roomId)
    target_id = data.userId or current_user.id

    target = db.query(User).filter(User.id == target_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if target.room_id != room_id:
        raise HTTPException(status_code=403, detail="User cannot access this room")

    try:
        new_total = adjust_aura(target, data.auraChange)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error updating aura: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    sign = "+" if data.auraChange > 0 else ""
    logger.info(f"✅ Aura points updated for {target.name}: {sign}{data.auraChange} (Total: {new_total})")
    if data.reason:
        logger.info(f"   Reason: {data.reason}")

    return {"data": {"userId": target.id, "aura_points": new_total, "change": data.auraChange}}


@router.get("/user/{user_id}")
def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Own profile, or a roommate's"""
    if user_id == current_user.id:
        return {"user": UserResponse.model_validate(current_user)}

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not current_user.room_id or user.room_id != current_user.room_id:
        raise HTTPException(status_code=403, detail="User cannot access this room")

    return {"user": UserResponse.model_validate(user)}


@router.put("/user/{user_id}/room")
def update_user_room(
    user_id: str,
    data: RoomAssignment,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Join (or switch to) a room"""
    if user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Cannot update another user's room")
    if not data.roomId:
        raise HTTPException(status_code=400, detail="Room ID is required")

    room = db.query(Room).filter(Room.id == data.roomId).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")

    try:
        current_user.room_id = room.id
        db.commit()
        db.refresh(current_user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error updating user room: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info(f"🏠 User {current_user.id} joined room {room.id}")
    return {"success": True, "user": UserResponse.model_validate(current_user)}
