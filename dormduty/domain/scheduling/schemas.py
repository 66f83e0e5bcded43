"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_hhmm

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
EXTRACT_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp", "application/pdf")


class TimeSlot(BaseModel):
    day: str
    startTime: str
    endTime: str
    isBusy: bool = False
    activity: Optional[str] = None

    @field_validator("day")
    @classmethod
    def validate_day(cls, v):
        v = (v or "").strip().capitalize()
        if v not in DAYS:
            raise ValueError(f"day must be one of: {', '.join(DAYS)}")
        return v

    @field_validator("startTime")
    @classmethod
    def validate_start(cls, v):
        return validate_hhmm(v, "startTime")

    @field_validator("endTime")
    @classmethod
    def validate_end(cls, v):
        return validate_hhmm(v, "endTime")

    @model_validator(mode="after")
    def validate_order(self):
        if self.startTime >= self.endTime:
            raise ValueError("End time must be after start time")
        return self


class ScheduleCreate(BaseModel):
    """Schema for a roommate's weekly availability"""

    roomId: Optional[str] = None
    userName: str
    userEmail: Optional[str] = None
    roomNumber: Optional[str] = None
    preferences: Optional[str] = None
    timeSlots: list[TimeSlot] = Field(min_length=1)

    @field_validator("userName")
    @classmethod
    def validate_user_name(cls, v):
        if not v or not v.strip():
            raise ValueError("User name is required")
        return v.strip()


class ScheduleUpdate(BaseModel):
    userName: Optional[str] = None
    userEmail: Optional[str] = None
    roomNumber: Optional[str] = None
    preferences: Optional[str] = None
    timeSlots: Optional[list[TimeSlot]] = Field(None, min_length=1)

    @field_validator("userName")
    @classmethod
    def validate_user_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("User name is required")
        return v.strip() if v else v


class ScheduleData(BaseModel):
    """The part of a schedule the optimizer reads"""

    userName: str
    roomNumber: Optional[str] = None
    preferences: Optional[str] = None
    timeSlots: list[TimeSlot]


class ScheduleResponse(ScheduleData):
    id: str
    roomId: str
    userId: str
    userEmail: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ScheduleStats(BaseModel):
    totalUsers: int
    totalTimeSlots: int
    totalFreeSlots: int
    totalBusySlots: int


# ============================================================================
# OPTIMIZER
# ============================================================================


class TaskSuggestion(BaseModel):
    task: str
    assignedTo: str
    day: str
    time: str
    confidence: float = Field(ge=0, le=1)
    reasoning: str = ""


class OptimizeRequest(BaseModel):
    roomId: Optional[str] = None
    tasks: list[str]
    scheduleIds: Optional[list[str]] = None  # None = every schedule in the room


class OptimizeResponse(BaseModel):
    suggestions: list[TaskSuggestion]
    source: Literal["ai", "fallback"]


class BestTimeRequest(BaseModel):
    roomId: Optional[str] = None
    task: str = Field(min_length=1)
    durationMinutes: int = Field(30, gt=0, le=24 * 60)
    scheduleIds: Optional[list[str]] = None


class BestTimeResponse(BaseModel):
    suggestion: Optional[TaskSuggestion] = None
    source: Literal["ai", "fallback"]


class ConflictAnalysis(BaseModel):
    conflicts: list[Any] = []
    recommendations: list[Any] = []


class AnalyzeRequest(BaseModel):
    roomId: Optional[str] = None
    scheduleIds: Optional[list[str]] = None


class AnalyzeResponse(ConflictAnalysis):
    source: Literal["ai", "fallback"]


class ExtractRequest(BaseModel):
    """Free text, or a base64 image/PDF of a timetable"""

    text: Optional[str] = None
    fileData: Optional[str] = None
    mimeType: Optional[str] = None

    @model_validator(mode="after")
    def validate_source(self):
        if not (self.text and self.text.strip()) and not self.fileData:
            raise ValueError("text or fileData is required")
        if self.fileData and not self.mimeType:
            raise ValueError("mimeType is required with fileData")
        if self.fileData and self.mimeType not in EXTRACT_MIME_TYPES:
            raise ValueError("Invalid file type. Upload an image (JPG, PNG, GIF, WebP) or PDF")
        return self


class ExtractedSchedule(BaseModel):
    userName: Optional[str] = None
    roomNumber: Optional[str] = None
    preferences: Optional[str] = None
    timeSlots: list[TimeSlot] = Field(min_length=1)


class ApplySuggestionsRequest(BaseModel):
    roomId: Optional[str] = None
    suggestions: list[TaskSuggestion] = Field(min_length=1)


class AppliedTask(BaseModel):
    taskId: str
    taskName: str
    assignedUserId: Optional[str] = None
    auraAwarded: int
    dueDate: Optional[datetime] = None
