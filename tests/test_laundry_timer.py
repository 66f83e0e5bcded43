"""Tests for dormduty.laundry_timer - washer/dryer countdowns."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from dormduty.laundry_timer import (
    MAX_DURATION_SECONDS,
    CountdownTimer,
    TimerState,
    format_countdown,
    remaining_seconds,
)


class TestFormatCountdown:
    def test_minutes_and_seconds(self):
        assert format_countdown(300) == "05:00"
        assert format_countdown(59) == "00:59"

    def test_hours_when_an_hour_or_more_is_left(self):
        assert format_countdown(3600) == "01:00:00"
        assert format_countdown(3725) == "01:02:05"

    def test_negative_is_zero(self):
        assert format_countdown(-5) == "00:00"


class TestRemainingSeconds:
    def test_counts_down_to_timer_end(self):
        now = datetime(2026, 3, 2, 10, 0, 0)
        assert remaining_seconds(now + timedelta(minutes=5), now) == 300

    def test_partial_seconds_round_up(self):
        now = datetime(2026, 3, 2, 10, 0, 0)
        assert remaining_seconds(now + timedelta(seconds=1, milliseconds=200), now) == 2

    def test_past_end_is_zero(self):
        now = datetime(2026, 3, 2, 10, 0, 0)
        assert remaining_seconds(now - timedelta(minutes=1), now) == 0

    def test_no_timer(self):
        assert remaining_seconds(None) == 0

    def test_aware_end_compared_in_utc(self):
        now = datetime(2026, 3, 2, 10, 0, 0)
        end = datetime(2026, 3, 2, 12, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        assert remaining_seconds(end, now) == 60


class TestCountdownTimer:
    def test_five_minute_cycle_completes_after_300_ticks(self):
        on_complete = MagicMock()
        timer = CountdownTimer(300, on_complete=on_complete)
        timer.start()

        for _ in range(299):
            timer.tick()
        assert timer.remaining == 1
        assert timer.state == TimerState.RUNNING
        on_complete.assert_not_called()

        timer.tick()
        assert timer.remaining == 0
        assert timer.state == TimerState.COMPLETED
        on_complete.assert_called_once()

    def test_completion_fires_once(self):
        on_complete = MagicMock()
        timer = CountdownTimer(2, on_complete=on_complete)
        timer.start()
        for _ in range(5):
            timer.tick()
        timer.finish_now()
        on_complete.assert_called_once()

    def test_pause_stops_ticking(self):
        timer = CountdownTimer(10)
        timer.start()
        timer.tick()
        timer.pause()
        timer.tick()
        assert timer.remaining == 9
        assert timer.state == TimerState.PAUSED

    def test_add_time_extends_remaining_and_total(self):
        timer = CountdownTimer(600)
        timer.start()
        for _ in range(100):
            timer.tick()
        timer.add_time(300)
        assert timer.remaining == 800
        assert timer.total == 900

    def test_add_time_after_completion_allows_a_new_run(self):
        on_complete = MagicMock()
        timer = CountdownTimer(1, on_complete=on_complete)
        timer.start()
        timer.tick()
        timer.add_time(1)
        assert timer.state == TimerState.PAUSED

        timer.start()
        timer.tick()
        assert on_complete.call_count == 2

    def test_add_time_must_be_positive(self):
        with pytest.raises(ValueError):
            CountdownTimer(60).add_time(0)

    def test_reset(self):
        timer = CountdownTimer(60)
        timer.start()
        timer.tick()
        timer.reset()
        assert timer.remaining == 60
        assert timer.state == TimerState.IDLE

    def test_restart_after_completion_starts_full_cycle(self):
        timer = CountdownTimer(3)
        timer.start()
        timer.finish_now()
        timer.start()
        assert timer.remaining == 3
        assert timer.state == TimerState.RUNNING

    def test_progress_and_formatting(self):
        timer = CountdownTimer(300)
        timer.start()
        for _ in range(150):
            timer.tick()
        assert timer.progress == 50.0
        assert timer.formatted() == "02:30"

    def test_duration_is_capped(self):
        timer = CountdownTimer(MAX_DURATION_SECONDS + 1000)
        assert timer.total == MAX_DURATION_SECONDS

    def test_zero_duration_cannot_start(self):
        with pytest.raises(ValueError):
            CountdownTimer(0).start()

    @pytest.mark.asyncio
    async def test_run_counts_down_to_completion(self):
        on_complete = MagicMock()
        timer = CountdownTimer(3, on_complete=on_complete)
        await timer.run(tick_interval=0)
        assert timer.state == TimerState.COMPLETED
        on_complete.assert_called_once()
