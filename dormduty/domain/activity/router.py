"""Activity router - FastAPI endpoints for the room feed and reminders"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import ActivityEntry, ReminderCreate
from .service import ActivityService, activity_to_response

router = APIRouter(prefix="/api/activity", tags=["Activity"])

MAX_FEED_LIMIT = 200


def get_activity_service(db: Session = Depends(get_db)) -> ActivityService:
    """Dependency injection for ActivityService"""
    return ActivityService(db)


@router.get("", response_model=list[ActivityEntry])
async def get_activity_feed(
    roomId: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=MAX_FEED_LIMIT),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """Recent room activity, newest first"""
    return [activity_to_response(e) for e in service.get_feed(current_user, roomId, userId, limit)]


@router.post("/reminders", response_model=ActivityEntry, status_code=201)
async def send_reminder(
    data: ReminderCreate,
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """Remind one roommate, or the whole room when no userId is given"""
    return activity_to_response(service.send_reminder(data, current_user))
