"""Tests for the booking lifecycle: create, status changes, customer access."""

import threading
from datetime import date, time, timedelta

import pytest

from barbershop.models import AvailabilityRule, Booking, BookingService
from barbershop.schemas.availability import AvailabilityRuleUpsert
from barbershop.services import bookings, schedule
from barbershop.services.errors import (
    InvalidState,
    NotFound,
    SlotConflict,
    Unauthorized,
    ValidationError,
)


def book(db, at, services, now, hour=11, minute=0, ids=("haircut",), name="Ann", phone="555-0101"):
    return bookings.create_booking(
        db, name, phone, at(hour, minute), [services[i] for i in ids], now=now,
    )


class TestCreateBooking:
    def test_create_returns_token_and_end_time(self, db, at, services, now):
        created = book(db, at, services, now, ids=("haircut", "beard"))
        assert created.booking_id > 0
        assert len(created.customer_token) >= 32
        assert created.end_time == at(11, 50)

    def test_services_snapshot_in_selection_order(self, db, at, services, now):
        created = book(db, at, services, now, ids=("beard", "haircut"))
        rows = (
            db.query(BookingService)
            .filter_by(booking_id=created.booking_id)
            .order_by(BookingService.sort_order)
            .all()
        )
        assert [r.service_name for r in rows] == ["Beard trim", "Haircut"]
        assert [r.sort_order for r in rows] == [0, 1]

    def test_booked_status_and_event(self, db, at, services, now, fake_redis):
        created = book(db, at, services, now)
        assert db.get(Booking, created.booking_id).status == "BOOKED"
        sent = fake_redis.events("booking_confirmed")
        assert [e["booking_id"] for e in sent] == [created.booking_id]

    def test_empty_service_list(self, db, at, now):
        with pytest.raises(ValidationError):
            bookings.create_booking(db, "Ann", "555", at(11), [], now=now)

    def test_unknown_service(self, db, at, services, now):
        with pytest.raises(ValidationError):
            bookings.create_booking(db, "Ann", "555", at(11), [9999], now=now)

    def test_inactive_service(self, db, at, services, now):
        with pytest.raises(ValidationError):
            book(db, at, services, now, ids=("haircut", "retired"))

    @pytest.mark.parametrize("name,phone", [("", "555"), ("Ann", "  "), (None, None)])
    def test_missing_customer_fields(self, db, at, services, now, name, phone):
        with pytest.raises(ValidationError):
            bookings.create_booking(db, name, phone, at(11), [services["haircut"]], now=now)

    def test_start_in_the_past(self, db, at, services, now):
        with pytest.raises(ValidationError):
            book(db, at, services, now, hour=8)

    def test_adjacent_bookings_allowed(self, db, at, services, now):
        book(db, at, services, now, hour=11)
        book(db, at, services, now, hour=11, minute=30, name="Bob")
        assert db.query(Booking).count() == 2


class TestOpeningHours:
    @pytest.mark.parametrize("hour,minute", [
        (14, 0),   # break
        (13, 45),  # runs into the break
        (9, 30),   # before opening
        (19, 45),  # runs past closing
    ])
    def test_closed_window_rejected(self, db, at, services, now, hour, minute):
        with pytest.raises(ValidationError):
            book(db, at, services, now, hour=hour, minute=minute)
        assert db.query(Booking).count() == 0

    def test_last_slot_of_the_day(self, db, at, services, now):
        created = book(db, at, services, now, hour=19, minute=30)
        assert created.end_time == at(20)

    def test_day_off(self, db, day, at, services, now):
        schedule.upsert_rules(db, [AvailabilityRuleUpsert(
            day_of_week=day.weekday(),
            is_day_off=True,
            work_start=time(10),
            work_end=time(20),
        )])
        with pytest.raises(ValidationError):
            book(db, at, services, now)

    def test_no_rule_for_the_day(self, db, at, services, now):
        db.query(AvailabilityRule).delete()
        db.commit()
        with pytest.raises(ValidationError):
            book(db, at, services, now)

    def test_closed_day(self, db, day, at, services, now):
        schedule.close_day(db, day)
        with pytest.raises(ValidationError, match="closed"):
            book(db, at, services, now)

        schedule.open_day(db, day)
        assert book(db, at, services, now).booking_id > 0

    def test_blocked_interval(self, db, at, services, now):
        schedule.add_block(db, at(12), at(13), "supplier")
        with pytest.raises(ValidationError):
            book(db, at, services, now, hour=12, minute=30)
        with pytest.raises(ValidationError):
            book(db, at, services, now, hour=11, minute=45)
        assert book(db, at, services, now, hour=13).booking_id > 0


class TestScenarioD:
    def test_overlap_rejected_and_no_rows_added(self, db, at, services, now):
        book(db, at, services, now, hour=11)
        before = (db.query(Booking).count(), db.query(BookingService).count())

        with pytest.raises(SlotConflict):
            book(db, at, services, now, hour=11, minute=15, name="Bob")

        after = (db.query(Booking).count(), db.query(BookingService).count())
        assert after == before

    def test_terminal_booking_does_not_conflict(self, db, at, services, now, config):
        first = book(db, at, services, now)
        bookings.update_booking_status(db, first.booking_id, "CANCELLED", now=now, config=config)
        second = book(db, at, services, now, name="Bob")
        assert second.booking_id != first.booking_id


class TestMutualExclusion:
    def test_concurrent_creates_exactly_one_wins(self, session_factory, at, services, now):
        barrier = threading.Barrier(2)
        outcomes = []
        lock = threading.Lock()

        def attempt(name):
            session = session_factory()
            try:
                barrier.wait()
                bookings.create_booking(
                    session, name, "555", at(12), [services["haircut"]], now=now,
                )
                result = "ok"
            except SlotConflict:
                result = "conflict"
            finally:
                session.close()
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt, args=(n,)) for n in ("Ann", "Bob")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["conflict", "ok"]


class TestUpdateStatus:
    def test_happy_path_to_completed(self, db, at, services, now, config, fake_redis):
        created = book(db, at, services, now)
        for status in ("CHECKED_IN", "IN_SERVICE", "COMPLETED"):
            changed = bookings.update_booking_status(
                db, created.booking_id, status, now=now, config=config,
            )
            assert changed.status == status
        assert db.get(Booking, created.booking_id).status == "COMPLETED"
        assert len(fake_redis.events("checkin")) == 1

    def test_status_is_case_insensitive(self, db, at, services, now, config):
        created = book(db, at, services, now)
        changed = bookings.update_booking_status(db, created.booking_id, "no_show", now=now, config=config)
        assert changed.status == "NO_SHOW"

    @pytest.mark.parametrize("status", ["IN_SERVICE", "COMPLETED", "BOOKED", "HOLD"])
    def test_illegal_transitions_from_booked(self, db, at, services, now, config, status):
        created = book(db, at, services, now)
        with pytest.raises(InvalidState):
            bookings.update_booking_status(db, created.booking_id, status, now=now, config=config)
        assert db.get(Booking, created.booking_id).status == "BOOKED"

    def test_terminal_is_final(self, db, at, services, now, config):
        created = book(db, at, services, now)
        bookings.update_booking_status(db, created.booking_id, "CANCELLED", now=now, config=config)
        with pytest.raises(InvalidState):
            bookings.update_booking_status(db, created.booking_id, "BOOKED", now=now, config=config)

    def test_unknown_status(self, db, at, services, now, config):
        created = book(db, at, services, now)
        with pytest.raises(ValidationError):
            bookings.update_booking_status(db, created.booking_id, "DONE", now=now, config=config)

    def test_unknown_booking(self, db, now, config):
        with pytest.raises(NotFound):
            bookings.update_booking_status(db, 404, "CANCELLED", now=now, config=config)

    def test_cancel_emits_event(self, db, at, services, now, config, fake_redis):
        created = book(db, at, services, now)
        bookings.update_booking_status(db, created.booking_id, "CANCELLED", now=now, config=config)
        assert [e["booking_id"] for e in fake_redis.events("cancelled")] == [created.booking_id]

    def test_transition_table(self):
        assert bookings.can_transition("HOLD", "BOOKED")
        assert bookings.can_transition("BOOKED", "EXPIRED")
        assert not bookings.can_transition("CHECKED_IN", "CANCELLED")
        assert not bookings.can_transition("COMPLETED", "CANCELLED")


class TestCustomerAccess:
    def test_check_in(self, db, at, services, now, fake_redis):
        created = book(db, at, services, now)
        details = bookings.customer_check_in(db, created.booking_id, created.customer_token)
        assert details.status == "CHECKED_IN"
        assert fake_redis.events("checkin")[0]["booking_id"] == created.booking_id

    def test_check_in_wrong_token(self, db, at, services, now):
        created = book(db, at, services, now)
        with pytest.raises(Unauthorized):
            bookings.customer_check_in(db, created.booking_id, "not-the-token")
        assert db.get(Booking, created.booking_id).status == "BOOKED"

    def test_check_in_twice(self, db, at, services, now):
        created = book(db, at, services, now)
        bookings.customer_check_in(db, created.booking_id, created.customer_token)
        with pytest.raises(InvalidState):
            bookings.customer_check_in(db, created.booking_id, created.customer_token)

    def test_check_in_unknown(self, db):
        with pytest.raises(NotFound):
            bookings.customer_check_in(db, 404, "x")

    def test_read_for_customer(self, db, at, services, now, config):
        created = book(db, at, services, now, ids=("haircut", "beard"))
        details = bookings.read_booking_for_customer(
            db, created.booking_id, created.customer_token, now=now, config=config,
        )
        assert details.id == created.booking_id
        assert [s.service_name for s in details.services] == ["Haircut", "Beard trim"]
        assert details.total_price_amount == 40.0
        assert details.total_duration_minutes == 50

    def test_read_wrong_token(self, db, at, services, now, config):
        created = book(db, at, services, now)
        with pytest.raises(Unauthorized):
            bookings.read_booking_for_customer(db, created.booking_id, "", now=now, config=config)

    def test_read_unknown(self, db, now, config):
        with pytest.raises(NotFound):
            bookings.read_booking_for_customer(db, 404, "x", now=now, config=config)

    def test_catalog_edit_does_not_touch_snapshot(self, db, at, services, now, config):
        from barbershop.services import catalog

        created = book(db, at, services, now)
        catalog.toggle_service(db, services["haircut"])
        details = bookings.read_booking_for_customer(
            db, created.booking_id, created.customer_token, now=now, config=config,
        )
        assert details.services[0].service_name == "Haircut"


class TestListing:
    def test_list_filters(self, db, at, services, now, config, day):
        book(db, at, services, now, hour=11, name="Ann Smith", phone="555-1")
        bob = book(db, at, services, now, hour=12, name="Bob", phone="555-2")
        bookings.update_booking_status(db, bob.booking_id, "CANCELLED", now=now, config=config)

        everything = bookings.list_bookings(db, day, day, now=now, config=config)
        assert [b.customer_name for b in everything] == ["Ann Smith", "Bob"]

        cancelled = bookings.list_bookings(db, day, day, status="cancelled", now=now, config=config)
        assert [b.id for b in cancelled] == [bob.booking_id]

        searched = bookings.list_bookings(db, day, day, search="smith", now=now, config=config)
        assert [b.customer_name for b in searched] == ["Ann Smith"]

    def test_list_range_excludes_other_days(self, db, at, services, now, config, day):
        book(db, at, services, now)
        tomorrow = day + timedelta(days=1)
        assert bookings.list_bookings(db, tomorrow, tomorrow, now=now, config=config) == []

    def test_list_bad_range(self, db, now, config):
        with pytest.raises(ValidationError):
            bookings.list_bookings(db, date(2030, 6, 4), date(2030, 6, 3), now=now, config=config)

    def test_busy_intervals_skip_terminal(self, db, at, services, now, config):
        book(db, at, services, now, hour=11)
        gone = book(db, at, services, now, hour=13, name="Bob")
        bookings.update_booking_status(db, gone.booking_id, "CANCELLED", now=now, config=config)

        busy = bookings.get_busy_intervals(db, at(0), at(23, 59))
        assert [(b.start, b.end) for b in busy] == [(at(11), at(11, 30))]
