"""
Waitlist promotion: a freed slot is offered to exactly one queued customer
at a time, for a fixed window.

    WAITING ──promote──► PROMOTED ──confirm──► CONFIRMED   (HOLD → BOOKED)
                             │
                             └──window over──► EXPIRED     (HOLD → EXPIRED)
                                               └─► promote next WAITING

The offer is a HOLD booking, so the slot grid shows the slot as taken while
the customer decides. The partial unique index on waitlist.slot_start_time
(status = 'PROMOTED') backs the "one offer per slot" rule at the store level.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import transaction
from ..models import Booking, WaitlistEntry
from ..models.tables import (
    BOOKED,
    CANCELLED,
    CONFIRMED,
    EXPIRED,
    HOLD,
    PROMOTED,
    WAITING,
)
from ..schemas.waitlist import PromotionConfirmed, PromotionOutcome
from . import events, tokens
from .bookings import find_overlapping_booking
from .catalog import snapshot_from_rows
from .errors import Expired, InvalidState, NotFound, Unauthorized
from .schedule import window_closure
from .slots.config import ShopConfig, get_shop_config, to_local_naive

logger = logging.getLogger(__name__)


# ── Helpers (caller owns the transaction) ────────────────────────────────


def _expire_entry(entry: WaitlistEntry) -> None:
    entry.status = EXPIRED
    booking = entry.booking
    if booking is not None and booking.status == HOLD:
        booking.status = EXPIRED
    logger.info(
        "Promotion expired: waitlist=%s slot=%s hold=%s",
        entry.id, entry.slot_start_time, entry.booking_id,
    )


def expire_stale_promotions(
    db: Session,
    now: datetime,
    slot_start: Optional[datetime] = None,
) -> list[WaitlistEntry]:
    """PROMOTED entries whose window is over → EXPIRED, their HOLD with them."""
    q = db.query(WaitlistEntry).filter(
        WaitlistEntry.status == PROMOTED,
        WaitlistEntry.promotion_expires_at <= now,
    )
    if slot_start is not None:
        q = q.filter(WaitlistEntry.slot_start_time == slot_start)

    stale = q.order_by(WaitlistEntry.slot_start_time, WaitlistEntry.id).all()
    for entry in stale:
        _expire_entry(entry)
    return stale


def release_orphan_holds(
    db: Session,
    slot_start: Optional[datetime] = None,
) -> list[Booking]:
    """
    HOLD bookings no PROMOTED entry points at any more → CANCELLED.

    This is how a customer withdrawing a promoted entry frees the slot.
    """
    db.flush()
    live_offers = select(WaitlistEntry.booking_id).where(
        WaitlistEntry.status == PROMOTED,
        WaitlistEntry.booking_id.is_not(None),
    )
    q = db.query(Booking).filter(
        Booking.status == HOLD,
        Booking.id.not_in(live_offers),
    )
    if slot_start is not None:
        q = q.filter(Booking.start_time == slot_start)

    orphans = q.order_by(Booking.start_time).all()
    for booking in orphans:
        booking.status = CANCELLED
        logger.info("Hold released: booking=%s slot=%s", booking.id, booking.start_time)
    return orphans


def promote_next_locked(
    db: Session,
    slot_start: datetime,
    now: datetime,
    config: ShopConfig,
) -> Optional[WaitlistEntry]:
    """
    Offer `slot_start` to the head of its queue, inside the caller's
    transaction. Returns the promoted entry, or None when there is nothing
    to do (slot started, offer already live, queue empty, slot closed or
    occupied).
    """
    if slot_start <= now:
        return None

    expire_stale_promotions(db, now, slot_start=slot_start)
    release_orphan_holds(db, slot_start=slot_start)
    db.flush()

    live = (
        db.query(WaitlistEntry.id)
        .filter(
            WaitlistEntry.slot_start_time == slot_start,
            WaitlistEntry.status == PROMOTED,
        )
        .first()
    )
    if live is not None:
        return None

    head = (
        db.query(WaitlistEntry)
        .filter(
            WaitlistEntry.slot_start_time == slot_start,
            WaitlistEntry.status == WAITING,
        )
        .order_by(WaitlistEntry.created_at, WaitlistEntry.id)
        .first()
    )
    if head is None:
        return None

    # The head is never skipped: if its own window does not fit, nobody moves
    slot_end = slot_start + timedelta(minutes=head.total_duration_minutes)
    closed = window_closure(db, slot_start, slot_end)
    if closed is not None:
        logger.debug("No promotion for %s: %s", slot_start, closed)
        return None
    if find_overlapping_booking(db, slot_start, slot_end) is not None:
        return None

    expires_at = now + config.promotion_hold
    hold = Booking(
        customer_name=head.customer_name,
        customer_phone=head.customer_phone,
        customer_token=head.customer_token,
        start_time=slot_start,
        end_time=slot_end,
        status=HOLD,
        created_at=now,
        grace_expiry_time=expires_at,
    )
    hold.services = snapshot_from_rows(head.services).booking_rows()
    db.add(hold)
    db.flush()

    head.status = PROMOTED
    head.promoted_at = now
    head.promotion_expires_at = expires_at
    head.booking_id = hold.id
    db.flush()

    logger.info(
        "Waitlist promoted: waitlist=%s slot=%s hold=%s until %s",
        head.id, slot_start, hold.id, expires_at,
    )
    return head


def promoted_event(entry: WaitlistEntry) -> tuple[str, dict]:
    return events.WAITLIST_PROMOTED, {
        "waitlist_id": entry.id,
        "booking_id": entry.booking_id,
        "slot_start_time": entry.slot_start_time,
        "promotion_expires_at": entry.promotion_expires_at,
    }


# ── Operations ───────────────────────────────────────────────────────────


def promote_next(
    db: Session,
    slot_start: datetime,
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> PromotionOutcome:
    """
    Idempotent; safe to call after any cancellation, no-show or expiry.

    promoted=False is a normal outcome, not an error. Losing the race to a
    concurrent promoter (unique index violation) is reported the same way.
    """
    now = now or datetime.now()
    config = config or get_shop_config()
    slot_start = to_local_naive(slot_start)

    try:
        with transaction(db):
            entry = promote_next_locked(db, slot_start, now, config)
            if entry is None:
                return PromotionOutcome(slot_start_time=slot_start, promoted=False)
            outcome = PromotionOutcome(
                slot_start_time=slot_start,
                promoted=True,
                waitlist_id=entry.id,
                booking_id=entry.booking_id,
                promotion_expires_at=entry.promotion_expires_at,
            )
            event = promoted_event(entry)
    except IntegrityError:
        logger.warning("Promotion for %s already issued by a concurrent call", slot_start)
        return PromotionOutcome(slot_start_time=slot_start, promoted=False)

    events.emit_event(*event)
    return outcome


def confirm_promotion(
    db: Session,
    entry_id: int,
    customer_token: str,
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> PromotionConfirmed:
    """
    Customer accepts the offer: HOLD → BOOKED, entry → CONFIRMED.

    Raises:
        NotFound, Unauthorized
        Expired: window over. The hold is released and the slot offered to
                 the next customer before this is raised.
        InvalidState: entry is not PROMOTED (confirmed, cancelled, waiting).
    """
    now = now or datetime.now()
    config = config or get_shop_config()

    pending: list[tuple[str, dict]] = []
    window_over = False

    with transaction(db):
        entry = db.get(WaitlistEntry, entry_id)
        if not entry:
            raise NotFound(f"Waitlist entry {entry_id} not found")
        if not tokens.matches(entry.customer_token, customer_token):
            logger.warning("Confirm for waitlist %s refused: bad token", entry_id)
            raise Unauthorized("This link is not valid for the waitlist entry")
        if entry.status == EXPIRED:
            raise Expired("The offer for this slot has expired")
        if entry.status != PROMOTED:
            raise InvalidState(f"Cannot confirm a waitlist entry that is {entry.status}")

        if entry.promotion_expires_at is None or entry.promotion_expires_at <= now:
            window_over = True
            _expire_entry(entry)
            db.flush()
            successor = promote_next_locked(db, entry.slot_start_time, now, config)
            if successor is not None:
                pending.append(promoted_event(successor))
        else:
            booking = entry.booking
            if booking is None or booking.status != HOLD:
                raise InvalidState("The held booking is no longer available")

            booking.status = BOOKED
            booking.grace_expiry_time = None
            entry.status = CONFIRMED
            result = PromotionConfirmed(
                waitlist_id=entry.id,
                booking_id=booking.id,
                status=entry.status,
            )
            pending.append((events.BOOKING_CONFIRMED, {
                "booking_id": booking.id,
                "waitlist_id": entry.id,
            }))

    for event_type, payload in pending:
        events.emit_event(event_type, payload)

    if window_over:
        raise Expired("The offer for this slot has expired")

    logger.info("Promotion confirmed: waitlist=%s booking=%s", result.waitlist_id, result.booking_id)
    return result
