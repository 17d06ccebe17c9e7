"""Tests for the pure day-grid calculator."""

from datetime import date, datetime, time
from types import SimpleNamespace

import pytest

from barbershop.services.errors import ValidationError
from barbershop.services.slots.calculator import SlotState, generate_slots
from barbershop.services.slots.intervals import Interval

DAY = date(2030, 6, 3)


def at(hour, minute=0):
    return datetime.combine(DAY, time(hour, minute))


def make_rule(
    work=(time(10), time(20)),
    brk=(time(14), time(15)),
    is_day_off=False,
):
    return SimpleNamespace(
        is_day_off=is_day_off,
        work_start=work[0],
        work_end=work[1],
        break_start=brk[0] if brk else None,
        break_end=brk[1] if brk else None,
    )


def by_start(grid):
    return {s.start: s for s in grid.slots}


class TestEmptyGrid:
    def test_missing_rule(self):
        grid = generate_slots(DAY, None, [], [], 30, 30)
        assert grid.slots == []
        assert grid.next_available is None

    def test_day_off(self):
        grid = generate_slots(DAY, make_rule(is_day_off=True), [], [], 30, 30)
        assert grid.slots == []
        assert grid.next_available is None

    def test_duration_longer_than_day(self):
        rule = make_rule(work=(time(10), time(11)), brk=None)
        grid = generate_slots(DAY, rule, [], [], 90, 30)
        assert grid.slots == []


class TestScenarioA:
    """Work 10:00–20:00, break 14:00–15:00, duration 30, step 30."""

    @pytest.fixture
    def grid(self):
        return generate_slots(DAY, make_rule(), [], [], 30, 30, 10)

    def test_first_slot_available(self, grid):
        first = grid.slots[0]
        assert (first.start, first.end, first.state) == (at(10), at(10, 30), SlotState.AVAILABLE)
        assert grid.next_available == first

    def test_break_slots_blocked(self, grid):
        slots = by_start(grid)
        assert slots[at(14)].state == SlotState.BLOCKED
        assert slots[at(14, 30)].state == SlotState.BLOCKED

    def test_slot_after_break_available(self, grid):
        assert by_start(grid)[at(15)].state == SlotState.AVAILABLE

    def test_last_slot_ends_at_close(self, grid):
        assert grid.slots[-1].start == at(19, 30)
        assert grid.slots[-1].end == at(20)
        assert len(grid.slots) == 20


class TestScenarioB:
    def test_buffer_marks_slot_before_busy_interval(self):
        busy = [Interval(at(11), at(11, 30))]
        grid = generate_slots(DAY, make_rule(brk=None), [], busy, 30, 10, 10)
        slots = by_start(grid)
        # buffered window 10:50–11:30 overlaps 11:00–11:30
        assert slots[at(10, 50)].state == SlotState.BOOKED

    def test_slot_ending_buffer_before_busy_is_available(self):
        busy = [Interval(at(11), at(11, 30))]
        grid = generate_slots(DAY, make_rule(brk=None), [], busy, 30, 10, 10)
        # 10:20–10:50, buffered to 11:00, touches but does not overlap
        assert by_start(grid)[at(10, 20)].state == SlotState.AVAILABLE

    def test_buffer_not_applied_before_slot_start(self):
        busy = [Interval(at(11), at(11, 30))]
        grid = generate_slots(DAY, make_rule(brk=None), [], busy, 30, 10, 10)
        assert by_start(grid)[at(11, 30)].state == SlotState.AVAILABLE

    def test_zero_buffer(self):
        busy = [Interval(at(11), at(11, 30))]
        grid = generate_slots(DAY, make_rule(brk=None), [], busy, 30, 30, 0)
        slots = by_start(grid)
        assert slots[at(10, 30)].state == SlotState.AVAILABLE
        assert slots[at(11)].state == SlotState.BOOKED


class TestBlockedPrecedence:
    def test_blocked_wins_over_booked(self):
        blocked = [Interval(at(12), at(13))]
        busy = [Interval(at(12), at(12, 30))]
        grid = generate_slots(DAY, make_rule(), blocked, busy, 30, 30, 10)
        assert by_start(grid)[at(12)].state == SlotState.BLOCKED

    def test_blocks_are_buffer_exempt(self):
        blocked = [Interval(at(11), at(12))]
        grid = generate_slots(DAY, make_rule(), blocked, [], 30, 30, 10)
        assert by_start(grid)[at(10, 30)].state == SlotState.AVAILABLE
        assert by_start(grid)[at(11)].state == SlotState.BLOCKED

    def test_partial_break_ignored(self):
        rule = make_rule()
        rule.break_end = None
        grid = generate_slots(DAY, rule, [], [], 30, 30)
        assert by_start(grid)[at(14)].state == SlotState.AVAILABLE

    def test_next_available_skips_taken_slots(self):
        blocked = [Interval(at(10), at(11))]
        busy = [Interval(at(11), at(12))]
        grid = generate_slots(DAY, make_rule(), blocked, busy, 30, 30, 0)
        assert grid.next_available.start == at(12)

    def test_no_available_slot(self):
        blocked = [Interval(at(10), at(20))]
        grid = generate_slots(DAY, make_rule(), blocked, [], 30, 30)
        assert grid.next_available is None
        assert all(s.state == SlotState.BLOCKED for s in grid.slots)


class TestBounds:
    @pytest.mark.parametrize("duration,step", [(30, 30), (50, 15), (90, 20), (20, 60)])
    def test_slots_stay_within_working_hours(self, duration, step):
        grid = generate_slots(DAY, make_rule(), [], [], duration, step, 10)
        assert grid.slots
        for slot in grid.slots:
            assert slot.start >= at(10)
            assert slot.end <= at(20)
            assert slot.state in (SlotState.AVAILABLE, SlotState.BOOKED, SlotState.BLOCKED)

    def test_no_partial_slot_at_close(self):
        grid = generate_slots(DAY, make_rule(brk=None), [], [], 45, 30)
        assert grid.slots[-1].start == at(19)
        assert grid.slots[-1].end == at(19, 45)


class TestValidation:
    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration(self, duration):
        with pytest.raises(ValidationError):
            generate_slots(DAY, make_rule(), [], [], duration, 30)

    def test_non_positive_step(self):
        with pytest.raises(ValidationError):
            generate_slots(DAY, make_rule(), [], [], 30, 0)

    def test_negative_buffer(self):
        with pytest.raises(ValidationError):
            generate_slots(DAY, make_rule(), [], [], 30, 30, -5)
