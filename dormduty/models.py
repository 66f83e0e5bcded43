import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .shared.validators import utcnow


def generate_id():
    return str(uuid.uuid4())


class User(Base):
    """Profile mirror of an auth-provider account. The primary key is the provider's uid."""

    __tablename__ = "users"

    id = Column(String(128), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    aura_points = Column(Integer, default=0, nullable=False)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())

    room = relationship("Room", back_populates="members", foreign_keys=[room_id])


class Room(Base):
    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    # Derived from users whose room pointer matches
    members = relationship("User", back_populates="room", foreign_keys="User.room_id")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=True)  # None = unassigned
    task_name = Column(String(255), nullable=False)
    due_date = Column(DateTime, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    aura_awarded = Column(Integer, default=0, nullable=False)
    # Points actually credited on completion, so re-opening revokes the same amount
    aura_granted = Column(Integer, default=0, nullable=False)
    priority = Column(String(20), default="medium", nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Laundry(Base):
    """Per-room singleton holding the washer/dryer assignment and timer ends"""

    __tablename__ = "laundry"

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), unique=True, nullable=False)
    washer_user = Column(String(128), nullable=True)
    dryer_user = Column(String(128), nullable=True)
    washer_timer_end = Column(DateTime, nullable=True)
    dryer_timer_end = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    machine = Column(String(50), nullable=False)  # washer, dryer
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    user_name = Column(String(255), nullable=False)
    start = Column(DateTime, nullable=False)
    end = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Schedule(Base):
    """Weekly availability used by the schedule optimizer"""

    __tablename__ = "schedules"

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    user_name = Column(String(255), nullable=False)
    user_email = Column(String(255), nullable=True)
    room_number = Column(String(50), nullable=True)
    preferences = Column(Text, nullable=True)
    # [{day, startTime, endTime, isBusy, activity}]
    time_slots = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    payer_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    description = Column(String(500), nullable=False)
    category = Column(String(100), nullable=True)
    split_type = Column(String(20), nullable=False)  # equal, specific, percentage, shares, itemized
    # {participant_id: "12.34"} - decimal strings keep the exact sum
    splits = Column(JSON, default=dict, nullable=False)
    # Strategy parameters (amounts/percentages/shares/items) for recomputation
    split_details = Column(JSON, nullable=True)
    expense_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    payments = relationship("Payment", back_populates="expense")


class Payment(Base):
    """A settlement between two roommates. Never mutates the linked expense."""

    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    payer_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    payee_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    method = Column(String(50), nullable=True)
    expense_id = Column(String(36), ForeignKey("expenses.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    expense = relationship("Expense", back_populates="payments")


class RecurringExpense(Base):
    """Template for a bill that repeats (rent, utilities). Stores the split, not the shares."""

    __tablename__ = "recurring_expenses"

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    payer_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    description = Column(String(500), nullable=False)
    category = Column(String(100), nullable=True)
    frequency = Column(String(20), nullable=False)  # daily, weekly, monthly, yearly
    split_type = Column(String(20), nullable=False)
    # {"split": {...}, "participants": [...]}, same shape as Expense.split_details
    split_details = Column(JSON, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())


class ActivityLog(Base):
    """Room activity feed entry"""

    __tablename__ = "activity_log"

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # expense_added, payment_recorded, reminder, ...
    message = Column(String(500), nullable=False)
    # The roommate the entry concerns; None = the whole room
    user_id = Column(String(128), nullable=True, index=True)
    created_by = Column(String(128), nullable=True)
    # Python-side default, microsecond precision orders the feed
    created_at = Column(DateTime, default=utcnow, index=True)
