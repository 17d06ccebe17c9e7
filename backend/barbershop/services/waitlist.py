"""
Per-slot waitlist queue.

Customers who want a slot that is already taken queue for its start time.
FIFO by created_at (id breaks ties). Promotion out of the queue lives in
promotion.py.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..database import transaction
from ..models import WaitlistEntry
from ..models.tables import CANCELLED, PROMOTED, WAITING, WAITLIST_ACTIVE_STATUSES
from ..schemas.waitlist import WaitlistEntryRead, WaitlistJoined
from . import events, tokens
from .bookings import clean_customer
from .catalog import resolve_selection
from .errors import InvalidState, NotFound, Unauthorized, ValidationError
from .schedule import window_closure
from .slots.config import ShopConfig, day_bounds, get_shop_config, to_local_naive

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (WAITING, PROMOTED)


def join_waitlist(
    db: Session,
    slot_start_time: datetime,
    customer_name: str,
    customer_phone: str,
    service_ids: list[int],
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> WaitlistJoined:
    """
    Queue for `slot_start_time`.

    If the slot happens to be free already, the new entry is promoted on the
    spot (status PROMOTED in the result) and the customer only has to confirm.
    """
    from .promotion import promote_next_locked, promoted_event

    now = now or datetime.now()
    config = config or get_shop_config()
    name, phone = clean_customer(customer_name, customer_phone)
    slot_start_time = to_local_naive(slot_start_time)
    if slot_start_time <= now:
        raise ValidationError("This slot has already started")

    pending: list[tuple[str, dict]] = []
    with transaction(db):
        selection = resolve_selection(db, service_ids)
        slot_end = slot_start_time + timedelta(minutes=selection.total_duration_minutes)
        closed = window_closure(db, slot_start_time, slot_end)
        if closed is not None:
            logger.warning("Waitlist join rejected: %s %s", slot_start_time, closed)
            raise ValidationError(f"This slot cannot be booked: {closed}")

        entry = WaitlistEntry(
            slot_start_time=slot_start_time,
            customer_name=name,
            customer_phone=phone,
            customer_token=tokens.new_token(),
            total_duration_minutes=selection.total_duration_minutes,
            total_price_amount=selection.total_price_amount,
            status=WAITING,
            created_at=now,
        )
        entry.services = selection.waitlist_rows()
        db.add(entry)
        db.flush()

        promoted = promote_next_locked(db, slot_start_time, now, config)
        if promoted is not None:
            pending.append(promoted_event(promoted))

        result = WaitlistJoined(
            waitlist_id=entry.id,
            customer_token=entry.customer_token,
            status=entry.status,
        )

    logger.info(
        "Waitlist joined: id=%s slot=%s status=%s",
        result.waitlist_id, slot_start_time, result.status,
    )
    for event_type, payload in pending:
        events.emit_event(event_type, payload)
    return result


def cancel_waitlist_entry(
    db: Session,
    entry_id: int,
    customer_token: Optional[str] = None,
    *,
    as_operator: bool = False,
) -> WaitlistEntryRead:
    """
    WAITING / PROMOTED → CANCELLED. Cancelling twice is a no-op.

    A cancelled offer's HOLD booking is left for the next sweep or
    promote_next call to release.
    """
    with transaction(db):
        entry = db.get(WaitlistEntry, entry_id)
        if not entry:
            raise NotFound(f"Waitlist entry {entry_id} not found")
        if not as_operator and not tokens.matches(entry.customer_token, customer_token):
            logger.warning("Cancel for waitlist %s refused: bad token", entry_id)
            raise Unauthorized("This link is not valid for the waitlist entry")

        previous = entry.status
        if previous == CANCELLED:
            return WaitlistEntryRead.model_validate(entry)
        if previous not in CANCELLABLE_STATUSES:
            raise InvalidState(f"Cannot cancel a waitlist entry that is {previous}")

        entry.status = CANCELLED
        result = WaitlistEntryRead.model_validate(entry)

    logger.info("Waitlist %s: %s -> %s", entry_id, previous, CANCELLED)
    return result


def read_waitlist_for_customer(
    db: Session,
    entry_id: int,
    customer_token: str,
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> WaitlistEntryRead:
    from .maintenance import run_maintenance_sweep

    run_maintenance_sweep(db, now=now, config=config)

    with transaction(db):
        entry = db.get(WaitlistEntry, entry_id)
        if not entry:
            raise NotFound(f"Waitlist entry {entry_id} not found")
        if not tokens.matches(entry.customer_token, customer_token):
            raise Unauthorized("This link is not valid for the waitlist entry")
        return WaitlistEntryRead.model_validate(entry)


def list_waitlist(
    db: Session,
    day: date,
    only_active: bool = True,
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> list[WaitlistEntryRead]:
    from .maintenance import run_maintenance_sweep

    run_maintenance_sweep(db, now=now, config=config)

    start, end = day_bounds(day)
    with transaction(db):
        q = db.query(WaitlistEntry).filter(
            WaitlistEntry.slot_start_time >= start,
            WaitlistEntry.slot_start_time < end,
        )
        if only_active:
            q = q.filter(WaitlistEntry.status.in_(WAITLIST_ACTIVE_STATUSES))
        q = q.order_by(
            WaitlistEntry.slot_start_time,
            WaitlistEntry.created_at,
            WaitlistEntry.id,
        )
        return [WaitlistEntryRead.model_validate(e) for e in q.all()]
