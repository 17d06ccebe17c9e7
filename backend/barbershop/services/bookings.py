"""
Booking lifecycle for the single chair.

    HOLD ──► BOOKED ──► CHECKED_IN ──► IN_SERVICE ──► COMPLETED
      │         │
      └────┬────┘
           ▼
  CANCELLED / NO_SHOW / EXPIRED

HOLD exists only for bookings issued to a promoted waitlist customer and is
confirmed through promotion.confirm_promotion (or by the operator).

Every public operation is one store transaction. The overlap check and the
insert in create_booking share that transaction, and the engine serialises
writers (see database.build_engine), so two customers racing for the same
window cannot both succeed.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..database import transaction
from ..models import Booking, WaitlistEntry
from ..models.tables import (
    BOOKED,
    BOOKING_ACTIVE_STATUSES,
    BOOKING_TERMINAL_STATUSES,
    CANCELLED,
    CHECKED_IN,
    COMPLETED,
    EXPIRED,
    HOLD,
    IN_SERVICE,
    NO_SHOW,
    PROMOTED,
    CONFIRMED,
)
from ..schemas.bookings import (
    BookingCreated,
    BookingDetails,
    BookingRead,
    BookingServiceRead,
    BookingStatusChanged,
)
from . import events, tokens
from .catalog import resolve_selection
from .errors import InvalidState, NotFound, SlotConflict, Unauthorized, ValidationError
from .schedule import window_closure
from .slots.config import ShopConfig, day_bounds, get_shop_config, to_local_naive
from .slots.intervals import Interval

logger = logging.getLogger(__name__)


TRANSITIONS: dict[str, frozenset[str]] = {
    HOLD: frozenset({BOOKED, CANCELLED, NO_SHOW, EXPIRED}),
    BOOKED: frozenset({CHECKED_IN, CANCELLED, NO_SHOW, EXPIRED}),
    CHECKED_IN: frozenset({IN_SERVICE}),
    IN_SERVICE: frozenset({COMPLETED}),
}

ALL_STATUSES = BOOKING_ACTIVE_STATUSES + BOOKING_TERMINAL_STATUSES

# Transitions that give the chair back before the appointment happened
FREEING_STATUSES = (CANCELLED, NO_SHOW, EXPIRED)


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, frozenset())


def clean_customer(name: str, phone: str) -> tuple[str, str]:
    name = (name or "").strip()
    phone = (phone or "").strip()
    missing = [label for label, value in (("name", name), ("phone", phone)) if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return name, phone


# ── Store helpers (run inside the caller's transaction) ──────────────────


def find_overlapping_booking(
    db: Session,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
) -> Optional[Booking]:
    """First live booking intersecting [start, end), if any."""
    q = db.query(Booking).filter(
        Booking.status.in_(BOOKING_ACTIVE_STATUSES),
        Booking.start_time < end,
        Booking.end_time > start,
    )
    if exclude_id is not None:
        q = q.filter(Booking.id != exclude_id)
    return q.order_by(Booking.start_time).first()


def busy_intervals(db: Session, start: datetime, end: datetime) -> list[Interval]:
    """[start_time, end_time) of every live booking intersecting the range."""
    rows = (
        db.query(Booking.start_time, Booking.end_time)
        .filter(
            Booking.status.in_(BOOKING_ACTIVE_STATUSES),
            Booking.start_time < end,
            Booking.end_time > start,
        )
        .order_by(Booking.start_time)
        .all()
    )
    return [Interval(row.start_time, row.end_time) for row in rows]


def linked_entry(db: Session, booking_id: int) -> Optional[WaitlistEntry]:
    return db.query(WaitlistEntry).filter(WaitlistEntry.booking_id == booking_id).first()


def to_details(booking: Booking) -> BookingDetails:
    services = [BookingServiceRead.model_validate(s) for s in booking.services]
    return BookingDetails(
        **BookingRead.model_validate(booking).model_dump(),
        services=services,
        total_price_amount=sum(s.price_amount for s in services),
        total_duration_minutes=sum(s.duration_minutes for s in services),
    )


# ── Operations ───────────────────────────────────────────────────────────


def get_busy_intervals(db: Session, start: datetime, end: datetime) -> list[Interval]:
    with transaction(db):
        return busy_intervals(db, to_local_naive(start), to_local_naive(end))


def create_booking(
    db: Session,
    customer_name: str,
    customer_phone: str,
    start_time: datetime,
    service_ids: list[int],
    now: datetime | None = None,
) -> BookingCreated:
    """
    Book the chair for [start_time, start_time + sum(service durations)).

    Raises:
        ValidationError: bad customer data, empty/unknown/inactive services,
                         start in the past,
                         window closed (day off, off-hours, break, block).
        SlotConflict: a live booking already overlaps the window.
    """
    now = now or datetime.now()
    name, phone = clean_customer(customer_name, customer_phone)
    start_time = to_local_naive(start_time)
    if start_time < now:
        raise ValidationError("Start time is in the past")

    with transaction(db):
        selection = resolve_selection(db, service_ids)
        end_time = start_time + timedelta(minutes=selection.total_duration_minutes)

        closed = window_closure(db, start_time, end_time)
        if closed is not None:
            logger.warning("Booking rejected: %s–%s %s", start_time, end_time, closed)
            raise ValidationError(f"This time cannot be booked: {closed}")

        conflict = find_overlapping_booking(db, start_time, end_time)
        if conflict is not None:
            logger.warning(
                "Booking rejected: %s–%s overlaps booking %s",
                start_time, end_time, conflict.id,
            )
            raise SlotConflict("This time is no longer available")

        booking = Booking(
            customer_name=name,
            customer_phone=phone,
            customer_token=tokens.new_token(),
            start_time=start_time,
            end_time=end_time,
            status=BOOKED,
            created_at=now,
        )
        booking.services = selection.booking_rows()
        db.add(booking)
        db.flush()

        result = BookingCreated(
            booking_id=booking.id,
            customer_token=booking.customer_token,
            end_time=end_time,
        )

    logger.info(
        "Booking created: id=%s %s–%s for %s",
        result.booking_id, start_time, end_time, name,
    )
    events.emit_event(events.BOOKING_CONFIRMED, {"booking_id": result.booking_id})
    return result


def update_booking_status(
    db: Session,
    booking_id: int,
    new_status: str,
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> BookingStatusChanged:
    """
    Operator status change, validated against TRANSITIONS.

    Freeing a future slot (CANCELLED / NO_SHOW / EXPIRED) offers it to the
    slot's waitlist in the same transaction.
    """
    from .promotion import promote_next_locked, promoted_event

    now = now or datetime.now()
    config = config or get_shop_config()
    new_status = (new_status or "").strip().upper()
    if new_status not in ALL_STATUSES:
        raise ValidationError(f"Unknown status: {new_status!r}")

    pending: list[tuple[str, dict]] = []
    with transaction(db):
        booking = db.get(Booking, booking_id)
        if not booking:
            raise NotFound(f"Booking {booking_id} not found")

        old_status = booking.status
        if not can_transition(old_status, new_status):
            logger.warning(
                "Booking %s: transition %s -> %s rejected", booking_id, old_status, new_status,
            )
            raise InvalidState(f"Cannot change booking from {old_status} to {new_status}")

        booking.status = new_status

        if old_status == HOLD:
            booking.grace_expiry_time = None
            entry = linked_entry(db, booking.id)
            if entry is not None and entry.status == PROMOTED:
                entry.status = CONFIRMED if new_status == BOOKED else CANCELLED

        if new_status == BOOKED:
            pending.append((events.BOOKING_CONFIRMED, {"booking_id": booking.id}))
        elif new_status == CHECKED_IN:
            pending.append((events.CHECKIN, {"booking_id": booking.id}))
        elif new_status == CANCELLED:
            pending.append((events.CANCELLED, {"booking_id": booking.id}))

        promoted_id = None
        if new_status in FREEING_STATUSES and booking.start_time > now:
            db.flush()
            promoted = promote_next_locked(db, booking.start_time, now, config)
            if promoted is not None:
                promoted_id = promoted.id
                pending.append(promoted_event(promoted))

        result = BookingStatusChanged(
            booking_id=booking.id,
            status=new_status,
            promoted_waitlist_id=promoted_id,
        )

    logger.info("Booking %s: %s -> %s", booking_id, old_status, new_status)
    for event_type, payload in pending:
        events.emit_event(event_type, payload)
    return result


def customer_check_in(
    db: Session,
    booking_id: int,
    customer_token: str,
) -> BookingDetails:
    """Customer self check-in: BOOKED -> CHECKED_IN, token-gated."""
    with transaction(db):
        booking = db.get(Booking, booking_id)
        if not booking:
            raise NotFound(f"Booking {booking_id} not found")
        if not tokens.matches(booking.customer_token, customer_token):
            logger.warning("Check-in for booking %s refused: bad token", booking_id)
            raise Unauthorized("This link is not valid for the booking")
        if booking.status != BOOKED:
            raise InvalidState(f"Cannot check in a booking that is {booking.status}")

        booking.status = CHECKED_IN
        result = to_details(booking)

    logger.info("Booking %s: customer checked in", booking_id)
    events.emit_event(events.CHECKIN, {"booking_id": booking_id})
    return result


def read_booking_for_customer(
    db: Session,
    booking_id: int,
    customer_token: str,
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> BookingDetails:
    from .maintenance import run_maintenance_sweep

    run_maintenance_sweep(db, now=now, config=config)

    with transaction(db):
        booking = db.get(Booking, booking_id)
        if not booking:
            raise NotFound(f"Booking {booking_id} not found")
        if not tokens.matches(booking.customer_token, customer_token):
            raise Unauthorized("This link is not valid for the booking")
        return to_details(booking)


def list_bookings(
    db: Session,
    start_day: date,
    end_day: date,
    status: str | None = None,
    search: str | None = None,
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> list[BookingRead]:
    """Operator dashboard listing; refreshes time-dependent state first."""
    from .maintenance import run_maintenance_sweep

    if end_day < start_day:
        raise ValidationError("Pick a valid date range")
    if status is not None:
        status = status.strip().upper()
        if status not in ALL_STATUSES:
            raise ValidationError(f"Unknown status: {status!r}")

    run_maintenance_sweep(db, now=now, config=config)

    range_start, _ = day_bounds(start_day)
    _, range_end = day_bounds(end_day)

    with transaction(db):
        q = db.query(Booking).filter(
            Booking.start_time >= range_start,
            Booking.start_time < range_end,
        )
        if status:
            q = q.filter(Booking.status == status)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            q = q.filter(or_(
                Booking.customer_name.ilike(pattern),
                Booking.customer_phone.ilike(pattern),
            ))
        return [BookingRead.model_validate(b) for b in q.order_by(Booking.start_time).all()]
