"""
Countdown timer for washer and dryer cycles.

The timer is driven one second at a time through tick(), either by a caller
(tests, a scheduler) or by the async run() loop. Completion fires the
callback exactly once per run down to zero.
"""

import asyncio
import logging
import math
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Optional

from .shared.validators import to_utc_naive, utcnow

logger = logging.getLogger(__name__)

# Longest cycle a timer can be created with
MAX_DURATION_SECONDS = 50 * 60 * 60


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


def format_countdown(seconds: int) -> str:
    """MM:SS, or HH:MM:SS once an hour or more is left"""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    mins, secs = divmod(rest, 60)
    if hours:
        return f"{hours:02d}:{mins:02d}:{secs:02d}"
    return f"{mins:02d}:{secs:02d}"


def remaining_seconds(timer_end: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole seconds left until a stored timer end, never negative"""
    if timer_end is None:
        return 0
    now = to_utc_naive(now) or utcnow()
    left = (to_utc_naive(timer_end) - now).total_seconds()
    return max(0, math.ceil(left))


class CountdownTimer:
    def __init__(self, duration_seconds: int, on_complete: Optional[Callable[[], None]] = None):
        duration = max(0, int(duration_seconds))
        if duration > MAX_DURATION_SECONDS:
            logger.warning(f"⏱️ Timer duration {duration}s capped at {MAX_DURATION_SECONDS}s")
            duration = MAX_DURATION_SECONDS

        self.total = duration
        self.remaining = duration
        self.state = TimerState.IDLE
        self.on_complete = on_complete
        self._completion_fired = False

    @property
    def progress(self) -> float:
        """Percentage of the cycle elapsed"""
        if not self.total:
            return 0.0
        return (self.total - self.remaining) / self.total * 100

    def formatted(self) -> str:
        return format_countdown(self.remaining)

    def start(self) -> None:
        if self.total <= 0:
            raise ValueError("Timer has no duration")
        if self.remaining <= 0:
            self.remaining = self.total
            self._completion_fired = False
        self.state = TimerState.RUNNING

    def pause(self) -> None:
        if self.state == TimerState.RUNNING:
            self.state = TimerState.PAUSED

    def reset(self) -> None:
        self.remaining = self.total
        self.state = TimerState.IDLE
        self._completion_fired = False

    def add_time(self, seconds: int) -> None:
        """Extend the cycle; both remaining and total grow by seconds"""
        if seconds <= 0:
            raise ValueError("seconds must be positive")
        self.total += seconds
        self.remaining += seconds
        if self.state == TimerState.COMPLETED:
            # A finished cycle given more time is a new run waiting to be resumed
            self.state = TimerState.PAUSED
            self._completion_fired = False

    def finish_now(self) -> None:
        self.remaining = 0
        self._complete()

    def tick(self) -> int:
        """Advance one second while running; returns the seconds left"""
        if self.state != TimerState.RUNNING:
            return self.remaining
        self.remaining = max(self.remaining - 1, 0)
        if self.remaining == 0:
            self._complete()
        return self.remaining

    def _complete(self) -> None:
        self.state = TimerState.COMPLETED
        if self._completion_fired:
            return
        self._completion_fired = True
        if self.on_complete:
            self.on_complete()

    async def run(self, tick_interval: float = 1.0) -> None:
        """Count down until completed or paused"""
        if self.state != TimerState.RUNNING:
            self.start()
        while self.state == TimerState.RUNNING:
            await asyncio.sleep(tick_interval)
            self.tick()
