"""
backend/barbershop/services/events.py

Notification dispatch: pushes events to a Redis queue for the delivery worker
(barber e-mail, customer messages).

Fire-and-forget. A failed push is logged and dropped; it never undoes the
state transition that produced it, so callers emit only after commit.
"""

import json
import time
import logging

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"

BOOKING_CONFIRMED = "booking_confirmed"
CHECKIN = "checkin"
CANCELLED = "cancelled"
WAITLIST_PROMOTED = "waitlist_promoted"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event (instant delivery).

    Pushed to Redis list `events:p2p` for the consumer loop.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(P2P_QUEUE, json.dumps(event, default=str))
        logger.info("Event emitted: %s → %s", event_type, P2P_QUEUE)
    except Exception as e:
        logger.error("Failed to emit event %s: %s", event_type, e)
