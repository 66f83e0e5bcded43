"""Activity domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class ActivityEntry(BaseModel):
    id: str
    roomId: str
    type: str
    message: str
    userId: Optional[str] = None
    createdBy: Optional[str] = None
    createdAt: Optional[datetime] = None


class ReminderCreate(BaseModel):
    """A nudge to one roommate (userId) or to the whole room"""

    roomId: Optional[str] = None
    userId: Optional[str] = None
    message: str

    @field_validator("message")
    @classmethod
    def validate_message(cls, v):
        if not v or not v.strip():
            raise ValueError("message is required")
        return v.strip()
