"""
Owner's calendar: weekly availability rules and ad-hoc blocked intervals.
"""

import logging
from datetime import date, datetime, time
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ..database import transaction
from ..models import AvailabilityRule, BlockedInterval
from ..schemas.availability import (
    AvailabilityRuleRead,
    AvailabilityRuleUpsert,
    BlockedIntervalRead,
    OpenDayResult,
)
from .errors import NotFound, ValidationError
from .slots.config import combine, day_bounds, time_str_to_minutes, to_local_naive
from .slots.intervals import Interval, overlaps

logger = logging.getLogger(__name__)

CLOSED_TODAY = "CLOSED_TODAY"

DEFAULT_WORK_HOURS = ("10:00", "20:00")
DEFAULT_BREAK = ("14:00", "15:00")


def _parse_time(value: str) -> time:
    minutes = time_str_to_minutes(value)
    return time(minutes // 60, minutes % 60)


def default_rules() -> list[AvailabilityRuleUpsert]:
    """Every day open 10:00–20:00 with a 14:00–15:00 break."""
    work_start, work_end = (_parse_time(v) for v in DEFAULT_WORK_HOURS)
    break_start, break_end = (_parse_time(v) for v in DEFAULT_BREAK)
    return [
        AvailabilityRuleUpsert(
            day_of_week=dow,
            is_day_off=False,
            work_start=work_start,
            work_end=work_end,
            break_start=break_start,
            break_end=break_end,
        )
        for dow in range(7)
    ]


def validate_rule(rule: AvailabilityRuleUpsert) -> None:
    """
    work_start < work_end; a break is both-or-neither and sits inside work hours.

    Hours of a day off are never used, so they are not checked.
    """
    if rule.is_day_off:
        return
    label = f"day {rule.day_of_week}"
    if rule.work_start >= rule.work_end:
        raise ValidationError(f"{label}: work_start must be before work_end")

    if (rule.break_start is None) != (rule.break_end is None):
        raise ValidationError(f"{label}: set both break_start and break_end, or neither")
    if rule.break_start is None:
        return
    if rule.break_start >= rule.break_end:
        raise ValidationError(f"{label}: break_start must be before break_end")
    if rule.break_start < rule.work_start or rule.break_end > rule.work_end:
        raise ValidationError(f"{label}: break must lie within working hours")


def get_rule(db: Session, day: date):
    return db.get(AvailabilityRule, day.weekday())


def window_closure(db: Session, start: datetime, end: datetime) -> Optional[str]:
    """
    Why the chair cannot be booked for [start, end), or None if it can.

    Same closures the slot grid reports as BLOCKED: no rule or a day off,
    outside working hours, the break, any blocked interval. Runs inside the
    caller's transaction.
    """
    day = start.date()
    rule = get_rule(db, day)
    if rule is None or rule.is_day_off:
        return f"the shop is closed on {day.isoformat()}"

    window = Interval(start, end)
    if start < combine(day, rule.work_start) or end > combine(day, rule.work_end):
        return "outside working hours"
    if rule.break_start is not None and rule.break_end is not None:
        if overlaps(window, Interval(combine(day, rule.break_start), combine(day, rule.break_end))):
            return "during the break"

    blocks = blocked_intervals(db, start, end)
    if any(b.reason == CLOSED_TODAY for b in blocks):
        return f"the shop is closed on {day.isoformat()}"
    if blocks:
        return "the time is blocked"
    return None


# ── Rules ────────────────────────────────────────────────────────────────


def list_rules(db: Session) -> list[AvailabilityRuleRead]:
    with transaction(db):
        rows = db.query(AvailabilityRule).order_by(AvailabilityRule.day_of_week).all()
        return [AvailabilityRuleRead.model_validate(r) for r in rows]


def upsert_rules(db: Session, rules: Iterable[AvailabilityRuleUpsert]) -> list[AvailabilityRuleRead]:
    rules = list(rules)
    for rule in rules:
        validate_rule(rule)
    days = [r.day_of_week for r in rules]
    if len(days) != len(set(days)):
        raise ValidationError("Each day of the week may appear only once")

    with transaction(db):
        for rule in rules:
            row = db.get(AvailabilityRule, rule.day_of_week)
            if row is None:
                row = AvailabilityRule(day_of_week=rule.day_of_week)
                db.add(row)
            row.is_day_off = rule.is_day_off
            row.work_start = rule.work_start
            row.work_end = rule.work_end
            row.break_start = rule.break_start
            row.break_end = rule.break_end
        db.flush()

        rows = db.query(AvailabilityRule).order_by(AvailabilityRule.day_of_week).all()
        result = [AvailabilityRuleRead.model_validate(r) for r in rows]

    logger.info("Availability rules saved for days %s", sorted(days))
    return result


def initialize_default_rules(db: Session) -> list[AvailabilityRuleRead]:
    return upsert_rules(db, default_rules())


# ── Blocked intervals ────────────────────────────────────────────────────


def blocked_intervals(db: Session, start: datetime, end: datetime) -> list[BlockedInterval]:
    return (
        db.query(BlockedInterval)
        .filter(BlockedInterval.start_time < end, BlockedInterval.end_time > start)
        .order_by(BlockedInterval.start_time)
        .all()
    )


def list_blocks(db: Session, day: date) -> list[BlockedIntervalRead]:
    start, end = day_bounds(day)
    with transaction(db):
        return [BlockedIntervalRead.model_validate(b) for b in blocked_intervals(db, start, end)]


def add_block(
    db: Session,
    start_time: datetime,
    end_time: datetime,
    reason: str | None = None,
    now: datetime | None = None,
) -> BlockedIntervalRead:
    start_time = to_local_naive(start_time)
    end_time = to_local_naive(end_time)
    if start_time >= end_time:
        raise ValidationError("Block start must be before its end")

    with transaction(db):
        block = BlockedInterval(
            start_time=start_time,
            end_time=end_time,
            reason=(reason or "").strip() or None,
            created_at=now or datetime.now(),
        )
        db.add(block)
        db.flush()
        result = BlockedIntervalRead.model_validate(block)

    logger.info("Block added: id=%s %s–%s (%s)", result.id, start_time, end_time, result.reason)
    return result


def delete_block(db: Session, block_id: int) -> None:
    with transaction(db):
        block = db.get(BlockedInterval, block_id)
        if not block:
            raise NotFound(f"Blocked interval {block_id} not found")
        db.delete(block)
    logger.info("Block deleted: id=%s", block_id)


def close_day(db: Session, day: date, now: datetime | None = None) -> BlockedIntervalRead:
    """
    Block the whole working day (reason CLOSED_TODAY).

    Uses the weekday's hours, or the default hours when there is no rule.
    Closing an already closed day returns the existing block.
    """
    with transaction(db):
        rule = get_rule(db, day)
        if rule is not None and rule.work_start < rule.work_end:
            work_start, work_end = rule.work_start, rule.work_end
        else:
            work_start, work_end = (_parse_time(v) for v in DEFAULT_WORK_HOURS)

        start = combine(day, work_start)
        end = combine(day, work_end)

        existing = (
            db.query(BlockedInterval)
            .filter(
                BlockedInterval.reason == CLOSED_TODAY,
                BlockedInterval.start_time == start,
                BlockedInterval.end_time == end,
            )
            .first()
        )
        if existing is not None:
            return BlockedIntervalRead.model_validate(existing)

        block = BlockedInterval(
            start_time=start,
            end_time=end,
            reason=CLOSED_TODAY,
            created_at=now or datetime.now(),
        )
        db.add(block)
        db.flush()
        result = BlockedIntervalRead.model_validate(block)

    logger.info("Day closed: %s %s–%s", day, work_start.strftime("%H:%M"), work_end.strftime("%H:%M"))
    return result


def open_day(db: Session, day: date) -> OpenDayResult:
    """Remove the CLOSED_TODAY blocks starting on `day`; other blocks stay."""
    start, end = day_bounds(day)
    with transaction(db):
        removed = (
            db.query(BlockedInterval)
            .filter(
                BlockedInterval.reason == CLOSED_TODAY,
                BlockedInterval.start_time >= start,
                BlockedInterval.start_time < end,
            )
            .delete(synchronize_session="fetch")
        )

    logger.info("Day opened: %s (%s blocks removed)", day, removed)
    return OpenDayResult(date=day, removed=removed)
