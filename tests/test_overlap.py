"""Tests for dormduty.domain.bookings.overlap - half-open booking windows."""

from datetime import datetime

from dormduty.domain.bookings.overlap import Slot, find_conflicts, has_conflict, overlaps


def at(hour, minute=0):
    return datetime(2026, 3, 2, hour, minute)


class TestOverlaps:
    def test_partial_overlap_on_same_machine(self):
        a = Slot("washer", at(10), at(10, 45))
        b = Slot("washer", at(10, 30), at(11, 15))
        assert overlaps(a, b)
        assert overlaps(b, a)

    def test_touching_windows_do_not_overlap(self):
        a = Slot("washer", at(10), at(11))
        b = Slot("washer", at(11), at(12))
        assert not overlaps(a, b)
        assert not overlaps(b, a)

    def test_other_machine_never_conflicts(self):
        a = Slot("washer", at(10), at(11))
        b = Slot("dryer", at(10), at(11))
        assert not overlaps(a, b)

    def test_containment_overlaps(self):
        outer = Slot("dryer", at(9), at(13))
        inner = Slot("dryer", at(10), at(11))
        assert overlaps(outer, inner)
        assert overlaps(inner, outer)


class TestFindConflicts:
    def test_returns_every_collision_in_order(self):
        existing = [
            Slot("washer", at(8), at(9), id="early"),
            Slot("washer", at(9, 30), at(10, 30), id="first"),
            Slot("dryer", at(10), at(11), id="dryer"),
            Slot("washer", at(10, 45), at(11, 30), id="second"),
        ]
        new = Slot("washer", at(10), at(11))
        assert [s.id for s in find_conflicts(new, existing)] == ["first", "second"]
        assert has_conflict(new, existing)

    def test_no_existing_bookings(self):
        assert find_conflicts(Slot("washer", at(10), at(11)), []) == []
        assert not has_conflict(Slot("washer", at(10), at(11)), [])
