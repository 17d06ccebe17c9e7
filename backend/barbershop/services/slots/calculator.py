# backend/barbershop/services/slots/calculator.py
"""
Day grid calculation for the single chair.

Pure: no database, no clock. Given the weekday rule, ad-hoc blocks and the
intervals already taken by live bookings, labels every step of the working
day as AVAILABLE, BOOKED or BLOCKED.

Contains:
✓ weekly rule (working hours + optional break)
✓ blocked intervals (closures), buffer-exempt
✓ busy intervals, checked with the post-booking buffer

Does NOT contain:
✗ Reading anything from the store (see availability.py)
✗ Past-time filtering (a grid for today still lists slots that started)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Optional

from ..errors import ValidationError
from .config import combine
from .intervals import Interval, overlaps_any


class SlotState(str, Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    BLOCKED = "BLOCKED"


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    state: SlotState


@dataclass
class SlotGrid:
    slots: list[Slot] = field(default_factory=list)
    next_available: Optional[Slot] = None


def generate_slots(
    day: date,
    rule,
    blocked: Iterable[Interval],
    busy: Iterable[Interval],
    duration_minutes: int,
    step_minutes: int,
    buffer_minutes: int = 0,
) -> SlotGrid:
    """
    Build the slot grid for `day`.

    `rule` is anything with is_day_off / work_start / work_end /
    break_start / break_end (an AvailabilityRule row), or None.

    Walks t = work_start, work_start + step, ... while t + duration fits
    before work_end. BLOCKED wins over BOOKED.
    """
    if duration_minutes <= 0:
        raise ValidationError(f"Duration must be positive, got {duration_minutes}")
    if step_minutes <= 0:
        raise ValidationError(f"Step must be positive, got {step_minutes}")
    if buffer_minutes < 0:
        raise ValidationError(f"Buffer cannot be negative, got {buffer_minutes}")

    if rule is None or rule.is_day_off:
        return SlotGrid()

    work_start = combine(day, rule.work_start)
    work_end = combine(day, rule.work_end)

    closures = list(blocked)
    if rule.break_start is not None and rule.break_end is not None:
        closures.append(Interval(combine(day, rule.break_start), combine(day, rule.break_end)))
    taken = list(busy)

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)

    slots: list[Slot] = []
    t = work_start
    while t + duration <= work_end:
        candidate = Interval(t, t + duration)

        if overlaps_any(candidate, closures):
            state = SlotState.BLOCKED
        elif overlaps_any(candidate.extended(buffer_minutes), taken):
            state = SlotState.BOOKED
        else:
            state = SlotState.AVAILABLE

        slots.append(Slot(candidate.start, candidate.end, state))
        t += step

    next_available = next((s for s in slots if s.state == SlotState.AVAILABLE), None)
    return SlotGrid(slots=slots, next_available=next_available)
