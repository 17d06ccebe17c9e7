# backend/barbershop/services/slots/intervals.py
"""
Half-open time intervals [start, end).

Every blocked/busy decision in the slot grid is a repeated overlap test.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def extended(self, minutes: int) -> "Interval":
        """Same start, end pushed out by `minutes`."""
        return Interval(self.start, self.end + timedelta(minutes=minutes))


def overlaps(a: Interval, b: Interval) -> bool:
    """True iff a.start < b.end and b.start < a.end.

    Touching intervals do not overlap; a zero-length interval overlaps nothing.
    """
    if a.is_empty or b.is_empty:
        return False
    return a.start < b.end and b.start < a.end


def overlaps_any(slot: Interval, others) -> bool:
    return any(overlaps(slot, other) for other in others)
