"""
backend/barbershop/services/maintenance.py

Maintenance sweep: advances every time-dependent record in one pass.

There is no background scheduler. The sweep runs lazily at the top of read
paths (slot grid, customer pages, operator lists) and on POST
/maintenance/sweep, so staleness is bounded by the next read.

Order of work:
    1. PROMOTED entries past their window → EXPIRED (HOLD → EXPIRED)
    2. HOLD bookings without a live offer → CANCELLED
    3. policy "expire": BOOKED past start + grace, never checked in → EXPIRED
    4. WAITING entries for slots that already started → CANCELLED
    5. promote_next for every future slot that still has a queue

Every change is guarded by the record's current status, so a repeated pass
finds nothing to do.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import transaction
from ..models import Booking, WaitlistEntry
from ..models.tables import BOOKED, CANCELLED, EXPIRED, WAITING
from ..schemas.maintenance import SweepReport
from . import events
from .promotion import (
    expire_stale_promotions,
    promote_next_locked,
    promoted_event,
    release_orphan_holds,
)
from .slots.config import ShopConfig, get_shop_config

logger = logging.getLogger(__name__)


def _expire_unattended(db: Session, now: datetime, config: ShopConfig) -> list[Booking]:
    if config.unattended_policy != "expire":
        return []

    cutoff = now - config.no_show_grace
    late = (
        db.query(Booking)
        .filter(Booking.status == BOOKED, Booking.start_time < cutoff)
        .order_by(Booking.start_time)
        .all()
    )
    for booking in late:
        booking.status = EXPIRED
        logger.info("Booking %s expired: no check-in by %s", booking.id, booking.start_time + config.no_show_grace)
    return late


def _lapse_waiting(db: Session, now: datetime) -> list[WaitlistEntry]:
    lapsed = (
        db.query(WaitlistEntry)
        .filter(WaitlistEntry.status == WAITING, WaitlistEntry.slot_start_time <= now)
        .all()
    )
    for entry in lapsed:
        entry.status = CANCELLED
    return lapsed


def _queued_slots(db: Session, now: datetime) -> list[datetime]:
    rows = (
        db.query(WaitlistEntry.slot_start_time)
        .filter(WaitlistEntry.status == WAITING, WaitlistEntry.slot_start_time > now)
        .distinct()
        .order_by(WaitlistEntry.slot_start_time)
        .all()
    )
    return [row.slot_start_time for row in rows]


def run_maintenance_sweep(
    db: Session,
    now: datetime | None = None,
    config: ShopConfig | None = None,
) -> SweepReport:
    """Run one sweep in a single transaction and report what changed."""
    now = now or datetime.now()
    config = config or get_shop_config()

    pending: list[tuple[str, dict]] = []
    try:
        with transaction(db):
            expired = expire_stale_promotions(db, now)
            db.flush()
            released = release_orphan_holds(db)
            late = _expire_unattended(db, now, config)
            lapsed = _lapse_waiting(db, now)
            db.flush()

            promoted_ids = []
            for slot_start in _queued_slots(db, now):
                entry = promote_next_locked(db, slot_start, now, config)
                if entry is not None:
                    promoted_ids.append(entry.id)
                    pending.append(promoted_event(entry))

            report = SweepReport(
                ran_at=now,
                expired_promotions=len(expired),
                released_holds=len(released),
                expired_bookings=len(late),
                lapsed_waiting=len(lapsed),
                promoted_waitlist_ids=promoted_ids,
            )
    except IntegrityError:
        # A concurrent sweep or promote_next issued the same offer first
        logger.warning("Maintenance sweep lost a promotion race; skipped")
        return SweepReport(ran_at=now)

    if report.changed:
        logger.info(
            "Sweep: %s promotions expired, %s holds released, %s bookings expired, "
            "%s waiting lapsed, promoted %s",
            report.expired_promotions,
            report.released_holds,
            report.expired_bookings,
            report.lapsed_waiting,
            report.promoted_waitlist_ids,
        )
    else:
        logger.debug("Sweep: nothing to do")

    for event_type, payload in pending:
        events.emit_event(event_type, payload)
    return report
