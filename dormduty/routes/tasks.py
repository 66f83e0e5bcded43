import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AfterValidator, BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import config
from ..auth import get_current_user
from ..database import get_db
from ..membership import assert_membership, assert_self, get_room_member
from ..models import Task, User
from ..services.aura import complete_task, reopen_task
from ..shared.validators import to_utc_naive, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])

PRIORITIES = ("low", "medium", "high", "urgent")


def validate_priority(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().lower()
    if v not in PRIORITIES:
        raise ValueError(f"priority must be one of: {', '.join(PRIORITIES)}")
    return v


Priority = Annotated[Optional[str], AfterValidator(validate_priority)]


class TaskCreate(BaseModel):
    userId: Optional[str] = None
    roomId: Optional[str] = None
    taskName: str
    dueDate: Optional[datetime] = None
    assignedUserId: Optional[str] = None
    auraAwarded: Optional[int] = Field(None, ge=0)
    priority: Priority = None
    notes: Optional[str] = None

    @field_validator("taskName")
    @classmethod
    def validate_task_name(cls, v):
        if not v or not v.strip():
            raise ValueError("taskName is required")
        return v.strip()


class TaskChanges(BaseModel):
    """Only the keys present in the request are applied"""

    taskName: Optional[str] = None
    dueDate: Optional[datetime] = None
    completed: Optional[bool] = None
    auraAwarded: Optional[int] = Field(None, ge=0)
    assignedUserId: Optional[str] = None
    priority: Priority = None
    notes: Optional[str] = None


class TaskUpdate(BaseModel):
    taskId: Optional[str] = None
    userId: Optional[str] = None
    updates: TaskChanges = Field(default_factory=TaskChanges)


class TaskDelete(BaseModel):
    taskId: Optional[str] = None
    userId: Optional[str] = None


class TaskResponse(BaseModel):
    id: str
    room_id: str
    user_id: Optional[str] = None
    task_name: str
    due_date: Optional[datetime] = None
    completed: bool
    completed_at: Optional[datetime] = None
    aura_awarded: int
    priority: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def get_task_for_user(db: Session, task_id: Optional[str], user: User) -> Task:
    if not task_id:
        raise HTTPException(status_code=400, detail="taskId is required")
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    assert_membership(user, task.room_id)
    return task


@router.get("")
def get_tasks(
    roomId: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    onlyIncomplete: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Room tasks ordered by due date (undated last)"""
    assert_self(current_user, userId)
    room_id = assert_membership(current_user, roomId)

    query = db.query(Task).filter(Task.room_id == room_id)
    if onlyIncomplete:
        query = query.filter(Task.completed.is_(False))
    tasks = query.order_by(Task.due_date.is_(None), Task.due_date.asc(), Task.created_at.asc()).all()

    return {"data": [TaskResponse.model_validate(t) for t in tasks]}


@router.get("/stats")
def get_task_stats(
    roomId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Dashboard counters for the room"""
    room_id = assert_membership(current_user, roomId)
    tasks = db.query(Task).filter(Task.room_id == room_id).all()
    now = utcnow()

    total = len(tasks)
    completed = sum(1 for t in tasks if t.completed)
    overdue = sum(1 for t in tasks if not t.completed and t.due_date and t.due_date < now)
    high_priority = sum(1 for t in tasks if not t.completed and t.priority in ("high", "urgent"))

    return {
        "data": {
            "total": total,
            "completed": completed,
            "pending": total - completed,
            "overdue": overdue,
            "highPriority": high_priority,
            "completionRate": round(completed / total * 100, 1) if total else 0.0,
        }
    }


@router.post("", status_code=201)
def create_task(
    data: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a chore; the caller is the assignee unless another roommate is named"""
    assert_self(current_user, data.userId)
    room_id = assert_membership(current_user, data.roomId)

    assignee_id = current_user.id
    if data.assignedUserId and data.assignedUserId != current_user.id:
        assignee_id = get_room_member(db, room_id, data.assignedUserId, field="assignedUserId").id

    try:
        task = Task(
            room_id=room_id,
            user_id=assignee_id,
            task_name=data.taskName,
            due_date=to_utc_naive(data.dueDate),
            completed=False,
            aura_awarded=config.DEFAULT_TASK_AURA if data.auraAwarded is None else data.auraAwarded,
            priority=data.priority or "medium",
            notes=data.notes,
        )
        db.add(task)
        db.commit()
        db.refresh(task)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error creating task: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info(f"📝 Task '{task.task_name}' created in room {room_id} for {assignee_id}")
    return {"data": TaskResponse.model_validate(task)}


@router.patch("")
def update_task(
    data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Apply partial updates; toggling completion credits or revokes aura"""
    assert_self(current_user, data.userId)
    task = get_task_for_user(db, data.taskId, current_user)
    changes = data.updates
    present = changes.model_fields_set

    if not present:
        raise HTTPException(status_code=400, detail="No valid update fields provided")

    if "assignedUserId" in present and changes.assignedUserId:
        get_room_member(db, task.room_id, changes.assignedUserId, field="assignedUserId")
    if "taskName" in present and not (changes.taskName or "").strip():
        raise HTTPException(status_code=400, detail="taskName cannot be empty")

    try:
        # Re-open before reassigning so the aura comes back from the previous assignee
        if "completed" in present and changes.completed is False:
            reopen_task(db, task)

        if "taskName" in present:
            task.task_name = changes.taskName.strip()
        if "dueDate" in present:
            task.due_date = to_utc_naive(changes.dueDate)
        if "auraAwarded" in present and changes.auraAwarded is not None:
            task.aura_awarded = changes.auraAwarded
        if "assignedUserId" in present:
            task.user_id = changes.assignedUserId
        if "priority" in present and changes.priority:
            task.priority = changes.priority
        if "notes" in present:
            task.notes = changes.notes

        if "completed" in present and changes.completed:
            complete_task(db, task)

        db.commit()
        db.refresh(task)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error updating task: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {"data": TaskResponse.model_validate(task)}


@router.delete("")
def delete_task(
    data: TaskDelete,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    assert_self(current_user, data.userId)
    task = get_task_for_user(db, data.taskId, current_user)

    try:
        db.delete(task)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error deleting task: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {"data": {"id": data.taskId}}
