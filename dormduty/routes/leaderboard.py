from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..membership import assert_membership
from ..models import User

router = APIRouter(prefix="/api/leaderboard", tags=["Leaderboard"])

DEFAULT_LIMIT = 10
MAX_LIMIT = 50


def parse_number(raw: Optional[str], fallback: int, low: int, high: Optional[int] = None) -> int:
    """Integer query value clamped to [low, high]; unparseable input uses the fallback"""
    try:
        value = int(raw) if raw is not None else fallback
    except ValueError:
        value = fallback
    value = max(value, low)
    return min(value, high) if high is not None else value


@router.get("")
def get_leaderboard(
    roomId: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Roommates ranked by aura points"""
    room_id = assert_membership(current_user, roomId)

    limit = parse_number(limit, DEFAULT_LIMIT, 1, MAX_LIMIT)
    page = parse_number(page, 1, 1)
    offset = (page - 1) * limit

    query = db.query(User).filter(User.room_id == room_id)
    total = query.count()
    users = (
        query.order_by(User.aura_points.desc(), User.created_at.asc(), User.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    return {
        "data": [
            {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "aura_points": user.aura_points,
                "rank": offset + index + 1,
            }
            for index, user in enumerate(users)
        ],
        "pagination": {"page": page, "limit": limit, "total": total},
    }
