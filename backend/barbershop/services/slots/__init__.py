# backend/barbershop/services/slots/__init__.py
"""
Slots calculation module.

Pure part: interval overlap and the day grid calculator.
Store-backed read path: slots.availability.get_day_slots (import it directly,
it depends on the booking and schedule services).
"""

from .config import ShopConfig, get_shop_config
from .intervals import Interval, overlaps, overlaps_any
from .calculator import Slot, SlotGrid, SlotState, generate_slots

__all__ = [
    "ShopConfig",
    "get_shop_config",
    "Interval",
    "overlaps",
    "overlaps_any",
    "Slot",
    "SlotGrid",
    "SlotState",
    "generate_slots",
]
