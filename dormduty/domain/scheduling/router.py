"""Scheduling router - FastAPI endpoints for schedules and the AI optimizer"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ... import config
from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    AppliedTask,
    ApplySuggestionsRequest,
    BestTimeRequest,
    BestTimeResponse,
    ExtractedSchedule,
    ExtractRequest,
    OptimizeRequest,
    OptimizeResponse,
    ScheduleCreate,
    ScheduleResponse,
    ScheduleStats,
    ScheduleUpdate,
)
from .service import ScheduleService, schedule_to_response

router = APIRouter(prefix="/api/schedules", tags=["Schedules"])

optimizer_rate_limit = create_rate_limiter(
    limit=config.OPTIMIZER_RATE_LIMIT,
    window_seconds=config.OPTIMIZER_RATE_WINDOW_SECONDS,
    key_prefix="optimizer",
)


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


# ============================================================================
# SCHEDULES
# ============================================================================


@router.get("", response_model=list[ScheduleResponse])
async def get_schedules(
    roomId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return [schedule_to_response(s) for s in service.get_schedules(current_user, roomId)]


@router.post("", response_model=ScheduleResponse, status_code=201)
async def create_schedule(
    data: ScheduleCreate,
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Save a roommate's weekly availability"""
    return schedule_to_response(service.create_schedule(data, current_user))


@router.get("/stats", response_model=ScheduleStats)
async def get_schedule_stats(
    roomId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Counts of schedules and free/busy slots in the room"""
    return service.get_stats(current_user, roomId)


# ============================================================================
# OPTIMIZER
# ============================================================================


@router.post("/optimize", response_model=OptimizeResponse)
async def optimize_schedules(
    data: OptimizeRequest,
    _: None = Depends(optimizer_rate_limit),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Suggest who should do each task and when"""
    return await service.optimize(data, current_user)


@router.post("/best-time", response_model=BestTimeResponse)
async def find_best_time(
    data: BestTimeRequest,
    _: None = Depends(optimizer_rate_limit),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Best assignee and slot for a single task"""
    return await service.best_time(data, current_user)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_conflicts(
    data: AnalyzeRequest,
    _: None = Depends(optimizer_rate_limit),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.analyze(current_user, data.roomId, data.scheduleIds)


@router.post("/extract", response_model=ExtractedSchedule)
async def extract_schedule(
    data: ExtractRequest,
    _: None = Depends(optimizer_rate_limit),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Read a schedule out of pasted text or an uploaded timetable"""
    return await service.extract(data, current_user)


@router.post("/suggestions/apply", response_model=list[AppliedTask], status_code=201)
async def apply_suggestions(
    data: ApplySuggestionsRequest,
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create room tasks from accepted suggestions"""
    return service.apply_suggestions(data, current_user)


# ============================================================================
# SINGLE SCHEDULE
# ============================================================================


@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(
    schedule_id: str,
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return schedule_to_response(service.get_schedule(schedule_id, current_user))


@router.put("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: str,
    data: ScheduleUpdate,
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return schedule_to_response(service.update_schedule(schedule_id, data, current_user))


@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: str,
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_schedule(schedule_id, current_user)
