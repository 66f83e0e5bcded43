"""Scheduling repository - Database operations for roommate schedules"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Schedule, Task, User


class ScheduleRepository:
    """Repository for schedule database operations"""

    @staticmethod
    def get_schedules(db: Session, room_id: str, schedule_ids: Optional[list[str]] = None) -> list[Schedule]:
        query = db.query(Schedule).filter(Schedule.room_id == room_id)
        if schedule_ids:
            query = query.filter(Schedule.id.in_(schedule_ids))
        return query.order_by(Schedule.created_at.asc(), Schedule.id.asc()).all()

    @staticmethod
    def get_schedule_by_id(db: Session, schedule_id: str) -> Optional[Schedule]:
        return db.query(Schedule).filter(Schedule.id == schedule_id).first()

    @staticmethod
    def create_schedule(db: Session, room_id: str, user_id: str, **schedule_data) -> Schedule:
        schedule = Schedule(room_id=room_id, user_id=user_id, **schedule_data)
        db.add(schedule)
        db.commit()
        db.refresh(schedule)
        return schedule

    @staticmethod
    def update_schedule(db: Session, schedule: Schedule, **updates) -> Schedule:
        for key, value in updates.items():
            if hasattr(schedule, key):
                setattr(schedule, key, value)
        db.commit()
        db.refresh(schedule)
        return schedule

    @staticmethod
    def delete_schedule(db: Session, schedule: Schedule) -> None:
        db.delete(schedule)
        db.commit()

    @staticmethod
    def get_room_members(db: Session, room_id: str) -> list[User]:
        return db.query(User).filter(User.room_id == room_id).all()

    @staticmethod
    def create_tasks(db: Session, tasks: list[Task]) -> list[Task]:
        """Insert a batch of tasks in one commit"""
        db.add_all(tasks)
        db.commit()
        for task in tasks:
            db.refresh(task)
        return tasks
