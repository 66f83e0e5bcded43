"""
Booking overlap validator.

Bookings are half-open intervals [start, end) on one machine; two bookings
conflict only when they share a machine and their intervals intersect.
Anything with machine, start and end attributes can be checked, ORM rows
included.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


class Bookable(Protocol):
    machine: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Slot:
    machine: str
    start: datetime
    end: datetime
    id: Optional[str] = None


def overlaps(a: Bookable, b: Bookable) -> bool:
    return a.machine == b.machine and a.start < b.end and b.start < a.end


def find_conflicts(new: Bookable, existing: Iterable[Bookable]) -> list:
    """Every existing booking the new one collides with, in input order"""
    return [booking for booking in existing if overlaps(new, booking)]


def has_conflict(new: Bookable, existing: Iterable[Bookable]) -> bool:
    return any(overlaps(new, booking) for booking in existing)
