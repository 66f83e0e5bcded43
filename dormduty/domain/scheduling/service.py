"""Scheduling service - Business logic for schedules and the optimizer"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...membership import assert_membership
from ...models import Schedule, Task, User
from ...services.gemini_service import AIResponseError
from ...shared.validators import utcnow, validate_hhmm
from .optimizer import ScheduleOptimizer
from .repository import ScheduleRepository
from .schemas import (
    DAYS,
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
    TimeSlot,
)

logger = logging.getLogger(__name__)


def schedule_to_response(schedule: Schedule) -> ScheduleResponse:
    return ScheduleResponse(
        id=schedule.id,
        roomId=schedule.room_id,
        userId=schedule.user_id,
        userName=schedule.user_name,
        userEmail=schedule.user_email,
        roomNumber=schedule.room_number,
        preferences=schedule.preferences,
        timeSlots=[TimeSlot.model_validate(slot) for slot in schedule.time_slots or []],
        createdAt=schedule.created_at,
        updatedAt=schedule.updated_at,
    )


def next_occurrence(day: str, time: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """The next datetime falling on weekday `day` at HH:MM, or None if either is unreadable"""
    day = (day or "").strip().capitalize()
    if day not in DAYS:
        return None
    try:
        hours, minutes = (int(part) for part in validate_hhmm(time).split(":"))
    except ValueError:
        return None

    now = now or utcnow()
    candidate = now.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    candidate += timedelta(days=(DAYS.index(day) - now.weekday()) % 7)
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


class ScheduleService:
    """Service layer for roommate schedules and AI task suggestions"""

    def __init__(self, db: Session, optimizer: Optional[ScheduleOptimizer] = None):
        self.db = db
        self.repo = ScheduleRepository()
        self.optimizer = optimizer or ScheduleOptimizer()

    # ------------------------------------------------------------------
    # Schedules
    # ------------------------------------------------------------------

    def get_schedules(self, user: User, room_id: Optional[str] = None) -> list[Schedule]:
        room_id = assert_membership(user, room_id)
        return self.repo.get_schedules(self.db, room_id)

    def get_schedule(self, schedule_id: str, user: User) -> Schedule:
        schedule = self.repo.get_schedule_by_id(self.db, schedule_id)
        if not schedule:
            raise HTTPException(status_code=404, detail="Schedule not found")
        assert_membership(user, schedule.room_id)
        return schedule

    def get_own_schedule(self, schedule_id: str, user: User) -> Schedule:
        """Roommates can read a schedule; only its owner can change it"""
        schedule = self.get_schedule(schedule_id, user)
        if schedule.user_id != user.id:
            logger.warning(f"🚫 User {user.id} tried to modify schedule {schedule_id} of {schedule.user_id}")
            raise HTTPException(status_code=403, detail="Only the owner can modify this schedule")
        return schedule

    def create_schedule(self, data: ScheduleCreate, user: User) -> Schedule:
        room_id = assert_membership(user, data.roomId)
        schedule = self.repo.create_schedule(
            self.db,
            room_id,
            user.id,
            user_name=data.userName,
            user_email=data.userEmail or user.email,
            room_number=data.roomNumber,
            preferences=data.preferences,
            time_slots=[slot.model_dump() for slot in data.timeSlots],
        )
        logger.info(f"📅 Schedule {schedule.id} for {schedule.user_name} ({len(data.timeSlots)} slots)")
        return schedule

    def update_schedule(self, schedule_id: str, data: ScheduleUpdate, user: User) -> Schedule:
        schedule = self.get_own_schedule(schedule_id, user)

        updates = {}
        if data.userName is not None:
            updates["user_name"] = data.userName
        if data.userEmail is not None:
            updates["user_email"] = data.userEmail
        if data.roomNumber is not None:
            updates["room_number"] = data.roomNumber
        if data.preferences is not None:
            updates["preferences"] = data.preferences
        if data.timeSlots is not None:
            updates["time_slots"] = [slot.model_dump() for slot in data.timeSlots]

        if not updates:
            raise HTTPException(status_code=400, detail="No valid update fields provided")

        updates["updated_at"] = utcnow()
        return self.repo.update_schedule(self.db, schedule, **updates)

    def delete_schedule(self, schedule_id: str, user: User) -> dict:
        schedule = self.get_own_schedule(schedule_id, user)
        self.repo.delete_schedule(self.db, schedule)
        return {"id": schedule_id}

    def get_stats(self, user: User, room_id: Optional[str] = None) -> ScheduleStats:
        schedules = [schedule_to_response(s) for s in self.get_schedules(user, room_id)]
        slots = [slot for s in schedules for slot in s.timeSlots]
        return ScheduleStats(
            totalUsers=len(schedules),
            totalTimeSlots=len(slots),
            totalFreeSlots=sum(1 for slot in slots if not slot.isBusy),
            totalBusySlots=sum(1 for slot in slots if slot.isBusy),
        )

    # ------------------------------------------------------------------
    # Optimizer
    # ------------------------------------------------------------------

    def _load_schedules(
        self, user: User, room_id: Optional[str], schedule_ids: Optional[list[str]]
    ) -> list[ScheduleResponse]:
        room_id = assert_membership(user, room_id)
        schedules = self.repo.get_schedules(self.db, room_id, schedule_ids)
        if not schedules:
            raise HTTPException(status_code=400, detail="At least one schedule is required")
        return [schedule_to_response(s) for s in schedules]

    async def optimize(self, data: OptimizeRequest, user: User) -> OptimizeResponse:
        schedules = self._load_schedules(user, data.roomId, data.scheduleIds)
        try:
            suggestions, source = await self.optimizer.optimize_schedules(schedules, data.tasks)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return OptimizeResponse(suggestions=suggestions, source=source)

    async def best_time(self, data: BestTimeRequest, user: User) -> BestTimeResponse:
        schedules = self._load_schedules(user, data.roomId, data.scheduleIds)
        suggestion, source = await self.optimizer.find_best_time_for_task(
            data.task.strip(), schedules, data.durationMinutes
        )
        return BestTimeResponse(suggestion=suggestion, source=source)

    async def analyze(self, user: User, room_id: Optional[str] = None, schedule_ids=None) -> AnalyzeResponse:
        schedules = self._load_schedules(user, room_id, schedule_ids)
        analysis, source = await self.optimizer.analyze_conflicts(schedules)
        return AnalyzeResponse(
            conflicts=analysis.conflicts, recommendations=analysis.recommendations, source=source
        )

    async def extract(self, data: ExtractRequest, user: User) -> ExtractedSchedule:
        assert_membership(user)
        try:
            return await self.optimizer.extract_schedule(data.text, data.fileData, data.mimeType)
        except AIResponseError as e:
            logger.error(f"❌ Schedule extraction failed: {e}")
            raise HTTPException(status_code=500, detail=str(e)) from e

    def apply_suggestions(self, data: ApplySuggestionsRequest, user: User) -> list[AppliedTask]:
        """Turn accepted suggestions into room tasks"""
        room_id = assert_membership(user, data.roomId)
        members_by_name = {
            member.name.strip().lower(): member for member in self.repo.get_room_members(self.db, room_id)
        }

        tasks = []
        for suggestion in data.suggestions:
            assignee = members_by_name.get(suggestion.assignedTo.strip().lower())
            if assignee is None:
                logger.info(f"🤷 No roommate named '{suggestion.assignedTo}', leaving task unassigned")
            tasks.append(
                Task(
                    room_id=room_id,
                    user_id=assignee.id if assignee else None,
                    task_name=suggestion.task,
                    due_date=next_occurrence(suggestion.day, suggestion.time),
                    aura_awarded=round(suggestion.confidence * 100),
                    notes=suggestion.reasoning or None,
                )
            )

        created = self.repo.create_tasks(self.db, tasks)
        logger.info(f"✅ Applied {len(created)} suggestions in room {room_id}")
        return [
            AppliedTask(
                taskId=task.id,
                taskName=task.task_name,
                assignedUserId=task.user_id,
                auraAwarded=task.aura_awarded,
                dueDate=task.due_date,
            )
            for task in created
        ]
