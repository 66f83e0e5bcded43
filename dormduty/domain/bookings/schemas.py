"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import to_utc_naive

MACHINES = ("washer", "dryer")

# Default cycle length per machine, used when a booking gives no end
MACHINE_MINUTES = {"washer": 30, "dryer": 45}


class BookingCreate(BaseModel):
    """Schema for reserving a machine"""

    roomId: Optional[str] = None
    machine: str
    start: datetime
    end: Optional[datetime] = None
    notes: Optional[str] = None
    userName: Optional[str] = None

    @field_validator("machine")
    @classmethod
    def validate_machine(cls, v):
        v = v.strip().lower()
        if v not in MACHINES:
            raise ValueError(f"machine must be one of: {', '.join(MACHINES)}")
        return v

    @field_validator("start", "end")
    @classmethod
    def normalize_timestamp(cls, v):
        return to_utc_naive(v)

    @model_validator(mode="after")
    def validate_window(self):
        if self.end is None:
            self.end = self.start + timedelta(minutes=MACHINE_MINUTES[self.machine])
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class BookingResponse(BaseModel):
    id: str
    roomId: str
    machine: str
    userId: str
    userName: str
    start: datetime
    end: datetime
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None


class BookingConflict(BaseModel):
    error: str = "Booking overlaps an existing booking"
    conflictingBookingId: str
    conflictingBookingIds: list[str]
