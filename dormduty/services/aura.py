"""
Aura points for chores.

A completed task credits its assignee with the task's aura_awarded value,
halved (rounded down) when it is completed after the due date. The credited
amount is stored on the task so re-opening it takes back exactly that much.
Balances never drop below zero.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Task, User
from ..shared.validators import utcnow

logger = logging.getLogger(__name__)


def completion_award(task: Task, completed_at: datetime) -> int:
    award = max(0, task.aura_awarded or 0)
    if task.due_date and completed_at > task.due_date:
        return award // 2
    return award


def adjust_aura(user: User, change: int) -> int:
    """Apply a change to a user's balance, clamped at zero. Returns the new balance."""
    user.aura_points = max(0, (user.aura_points or 0) + change)
    return user.aura_points


def _assignee(db: Session, task: Task) -> Optional[User]:
    if not task.user_id:
        return None
    return db.query(User).filter(User.id == task.user_id).first()


def complete_task(db: Session, task: Task, now: Optional[datetime] = None) -> int:
    """Mark a task done and credit its assignee. No-op if already complete."""
    if task.completed:
        return 0

    now = now or utcnow()
    task.completed = True
    task.completed_at = now

    assignee = _assignee(db, task)
    award = completion_award(task, now) if assignee else 0
    task.aura_granted = award
    if assignee and award:
        adjust_aura(assignee, award)
        overdue = " (overdue, halved)" if task.due_date and now > task.due_date else ""
        logger.info(f"✨ +{award} aura for {assignee.id} on '{task.task_name}'{overdue}")
    return award


def reopen_task(db: Session, task: Task) -> int:
    """Mark a task not done and take back what completing it granted"""
    if not task.completed:
        return 0

    granted = task.aura_granted or 0
    task.completed = False
    task.completed_at = None
    task.aura_granted = 0

    assignee = _assignee(db, task)
    if assignee and granted:
        adjust_aura(assignee, -granted)
        logger.info(f"↩️ -{granted} aura for {assignee.id} on re-opened '{task.task_name}'")
    return granted
