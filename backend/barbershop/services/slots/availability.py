# backend/barbershop/services/slots/availability.py
"""
Read path for the day grid.

Loads the weekday rule, the day's blocks and the live bookings, then hands
them to the pure calculator. Runs the maintenance sweep first so expired
offers and holds never show up as busy.
"""

from datetime import date, datetime
from sqlalchemy.orm import Session

from ...database import transaction
from ...schemas.slots import SlotRead, SlotsDayResponse
from ..bookings import busy_intervals
from ..catalog import resolve_selection
from ..maintenance import run_maintenance_sweep
from ..schedule import blocked_intervals, get_rule
from .calculator import SlotGrid, generate_slots
from .config import ShopConfig, day_bounds, get_shop_config
from .intervals import Interval


def get_day_slots(
    db: Session,
    day: date,
    service_ids: list[int] | None = None,
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> SlotsDayResponse:
    """
    Slot grid for `day`, sized for the selected services.

    Without a selection the grid uses the default duration. Unknown or
    inactive ids raise ValidationError.
    """
    config = config or get_shop_config()
    run_maintenance_sweep(db, now=now, config=config)

    day_start, day_end = day_bounds(day)

    with transaction(db):
        if service_ids:
            duration = resolve_selection(db, service_ids).total_duration_minutes
        else:
            duration = config.default_duration_minutes

        rule = get_rule(db, day)
        blocked = [
            Interval(b.start_time, b.end_time)
            for b in blocked_intervals(db, day_start, day_end)
        ]
        busy = busy_intervals(db, day_start, day_end)

        grid = generate_slots(
            day,
            rule,
            blocked=blocked,
            busy=busy,
            duration_minutes=duration,
            step_minutes=config.slot_step_minutes,
            buffer_minutes=config.buffer_minutes,
        )

    return _to_response(day, duration, grid, config)


def _to_response(day: date, duration: int, grid: SlotGrid, config: ShopConfig) -> SlotsDayResponse:
    slots = [SlotRead(start=s.start, end=s.end, state=s.state.value) for s in grid.slots]
    next_available = None
    if grid.next_available is not None:
        s = grid.next_available
        next_available = SlotRead(start=s.start, end=s.end, state=s.state.value)

    return SlotsDayResponse(
        date=day,
        duration_minutes=duration,
        slots=slots,
        next_available=next_available,
        slot_step_minutes=config.slot_step_minutes,
        buffer_minutes=config.buffer_minutes,
    )
