"""
Schedule optimizer - turns roommate availability into chore assignments.

Every AI call degrades instead of failing: a missing key, an HTTP error or a
response that does not parse into the expected shape switches to the
deterministic round-robin assignment below.
"""

import json
import logging
from collections.abc import Sequence
from typing import Optional

from pydantic import ValidationError

from ...services.gemini_service import AIResponseError, GeminiService, extract_json
from .schemas import ConflictAnalysis, ExtractedSchedule, ScheduleData, TaskSuggestion

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.6
FALLBACK_REASONING = "Based on availability (offline mode - AI unavailable)"


# ============================================================================
# PROMPTS
# ============================================================================


def build_optimization_prompt(schedules: Sequence[ScheduleData], tasks: Sequence[str]) -> str:
    lines = [
        "You are a scheduling assistant for a dorm. Analyze the following user schedules "
        "and optimize task assignments.",
        "",
        "USERS AND THEIR SCHEDULES:",
    ]

    for schedule in schedules:
        lines.append("")
        lines.append(f"User: {schedule.userName} (Room {schedule.roomNumber or 'N/A'})")
        if schedule.preferences:
            lines.append(f"Preferences: {schedule.preferences}")

        lines.append("Available Times:")
        free_slots = [slot for slot in schedule.timeSlots if not slot.isBusy]
        if not free_slots:
            lines.append("  - No free time slots available")
        for slot in free_slots:
            lines.append(f"  - {slot.day}: {slot.startTime} - {slot.endTime}")

        busy_slots = [slot for slot in schedule.timeSlots if slot.isBusy]
        if busy_slots:
            lines.append("Busy Times:")
            for slot in busy_slots:
                lines.append(
                    f"  - {slot.day}: {slot.startTime} - {slot.endTime} ({slot.activity or 'Busy'})"
                )

    lines += [
        "",
        f"TASKS TO ASSIGN: {', '.join(tasks)}",
        "",
        "INSTRUCTIONS:",
        "1. Assign each task to the most suitable person based on their availability",
        "2. Distribute tasks fairly among all users",
        "3. Avoid scheduling conflicts",
        "4. Consider task duration and time-of-day suitability",
        '5. Return JSON with an array called "suggestions" where each suggestion has task, '
        "assignedTo, day, time (HH:MM), confidence (0-1), and reasoning.",
    ]
    return "\n".join(lines)


def build_single_task_prompt(task: str, schedules: Sequence[ScheduleData], duration_minutes: int) -> str:
    return (
        f"{build_optimization_prompt(schedules, [task])}\n\n"
        f'Focus on scheduling the task "{task}" with an estimated duration of '
        f"{duration_minutes} minutes. Return a single JSON object with task, assignedTo, "
        "day, time, confidence and reasoning."
    )


def build_analysis_prompt(schedules: Sequence[ScheduleData]) -> str:
    data = json.dumps([schedule.model_dump() for schedule in schedules])
    return (
        "Analyze the following schedules for conflicts and provide recommendations. "
        'Return a JSON object with "conflicts" (array) and "recommendations" (array). '
        f"Data: {data}"
    )


def build_extraction_prompt(text: Optional[str] = None) -> str:
    fields = (
        "Return JSON with userName, roomNumber, preferences, and timeSlots "
        "(array with day, startTime, endTime in 24-hour HH:MM, isBusy, activity)."
    )
    if text:
        return f"Extract schedule information from the following text:\n\n{text}\n\n{fields}"
    return (
        "Analyze this schedule image/document and extract the person's name (if visible), "
        "every time slot with whether they are busy and the activity if busy, and any "
        f"preferences or notes mentioned.\n\n{fields}"
    )


# ============================================================================
# FALLBACK
# ============================================================================


def fallback_suggestions(schedules: Sequence[ScheduleData], tasks: Sequence[str]) -> list[TaskSuggestion]:
    """Task i goes to schedule i mod n, at that schedule's first free slot"""
    suggestions: list[TaskSuggestion] = []
    if not schedules:
        return suggestions

    for index, task in enumerate(tasks):
        schedule = schedules[index % len(schedules)]
        free_slots = [slot for slot in schedule.timeSlots if not slot.isBusy]
        if not free_slots:
            continue
        slot = free_slots[0]
        suggestions.append(
            TaskSuggestion(
                task=task,
                assignedTo=schedule.userName,
                day=slot.day,
                time=slot.startTime,
                confidence=FALLBACK_CONFIDENCE,
                reasoning=FALLBACK_REASONING,
            )
        )

    return suggestions


def parse_suggestions(text: str) -> list[TaskSuggestion]:
    """Accept either {"suggestions": [...]} or a bare array"""
    raw = None
    try:
        payload = extract_json(text, expect_array=False)
        raw = payload.get("suggestions")
    except AIResponseError:
        raw = None
    if raw is None:
        raw = extract_json(text, expect_array=True)
    if not isinstance(raw, list):
        raise AIResponseError("suggestions is not a list")

    try:
        return [TaskSuggestion.model_validate(item) for item in raw]
    except ValidationError as e:
        raise AIResponseError(f"Malformed suggestion: {e.errors()[0]['msg']}") from e


class ScheduleOptimizer:
    """AI-assisted chore scheduling with a deterministic offline mode"""

    def __init__(self, client: Optional[GeminiService] = None):
        self.client = client or GeminiService()

    async def optimize_schedules(
        self, schedules: Sequence[ScheduleData], tasks: Sequence[str]
    ) -> tuple[list[TaskSuggestion], str]:
        """
        Suggest an assignee and time for every task.

        Returns:
            (suggestions, source) where source is "ai" or "fallback"

        Raises:
            ValueError: If schedules or tasks is empty
        """
        if not schedules:
            raise ValueError("schedules must be a non-empty list")
        tasks = [task.strip() for task in tasks if task and task.strip()]
        if not tasks:
            raise ValueError("tasks must be a non-empty list")

        try:
            text = await self.client.generate(build_optimization_prompt(schedules, tasks))
            suggestions = parse_suggestions(text)
            logger.info(f"🤖 Gemini suggested {len(suggestions)} assignments for {len(tasks)} tasks")
            return suggestions, "ai"
        except AIResponseError as e:
            logger.warning(f"⚠️ Optimizer falling back to round-robin: {e}")
            return fallback_suggestions(schedules, tasks), "fallback"

    async def find_best_time_for_task(
        self, task: str, schedules: Sequence[ScheduleData], duration_minutes: int = 30
    ) -> tuple[Optional[TaskSuggestion], str]:
        if not schedules:
            raise ValueError("schedules must be a non-empty list")

        try:
            text = await self.client.generate(build_single_task_prompt(task, schedules, duration_minutes))
            payload = extract_json(text, expect_array=False)
            if "suggestions" in payload and isinstance(payload["suggestions"], list) and payload["suggestions"]:
                payload = payload["suggestions"][0]
            return TaskSuggestion.model_validate(payload), "ai"
        except (AIResponseError, ValidationError) as e:
            logger.warning(f"⚠️ Best-time lookup falling back to round-robin: {e}")
            suggestions = fallback_suggestions(schedules, [task])
            return (suggestions[0] if suggestions else None), "fallback"

    async def analyze_conflicts(self, schedules: Sequence[ScheduleData]) -> tuple[ConflictAnalysis, str]:
        if not schedules:
            raise ValueError("schedules must be a non-empty list")

        try:
            text = await self.client.generate(build_analysis_prompt(schedules))
            return ConflictAnalysis.model_validate(extract_json(text, expect_array=False)), "ai"
        except (AIResponseError, ValidationError) as e:
            logger.warning(f"⚠️ Conflict analysis unavailable: {e}")
            return ConflictAnalysis(), "fallback"

    async def extract_schedule(
        self,
        text: Optional[str] = None,
        file_data: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> ExtractedSchedule:
        """
        Read a schedule out of free text or an uploaded timetable.

        There is no offline equivalent, so failures propagate as AIResponseError.
        """
        inline_data = {"mimeType": mime_type, "data": file_data} if file_data else None
        response = await self.client.generate(build_extraction_prompt(text), inline_data=inline_data)

        try:
            return ExtractedSchedule.model_validate(extract_json(response, expect_array=False))
        except ValidationError as e:
            raise AIResponseError("No schedule information could be extracted") from e
