# backend/barbershop/services/slots/config.py
"""
Shop-level scheduling constants and time helpers.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from ...config import settings

ALLOWED_STEPS = (5, 10, 15, 20, 30, 60)
UNATTENDED_POLICIES = ("expire", "manual")


@dataclass(frozen=True)
class ShopConfig:
    """
    Configuration for the single-chair calendar.

    Attributes:
        slot_step_minutes: Grid granularity (5/10/15/20/30/60)
        buffer_minutes: Idle gap required after a booking before the next one
        default_duration_minutes: Grid duration when no service is selected
        promotion_hold_minutes: How long a promoted waitlist customer may confirm
        no_show_grace_minutes: How late past start a booking may still check in
        unattended_policy: "expire": sweep expires late bookings,
                           "manual": operator marks NO_SHOW by hand
    """
    slot_step_minutes: int = 30
    buffer_minutes: int = 10
    default_duration_minutes: int = 30
    promotion_hold_minutes: int = 5
    no_show_grace_minutes: int = 15
    unattended_policy: str = "expire"

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_step_minutes not in ALLOWED_STEPS:
            raise ValueError(
                f"slot_step_minutes must be one of {ALLOWED_STEPS}, got {self.slot_step_minutes}"
            )
        if self.buffer_minutes < 0:
            raise ValueError(f"buffer_minutes must be >= 0, got {self.buffer_minutes}")
        if self.default_duration_minutes <= 0:
            raise ValueError(
                f"default_duration_minutes must be > 0, got {self.default_duration_minutes}"
            )
        if self.promotion_hold_minutes < 1:
            raise ValueError(
                f"promotion_hold_minutes must be >= 1, got {self.promotion_hold_minutes}"
            )
        if self.no_show_grace_minutes < 0:
            raise ValueError(
                f"no_show_grace_minutes must be >= 0, got {self.no_show_grace_minutes}"
            )
        if self.unattended_policy not in UNATTENDED_POLICIES:
            raise ValueError(
                f"unattended_policy must be one of {UNATTENDED_POLICIES}, "
                f"got {self.unattended_policy!r}"
            )

    @property
    def promotion_hold(self) -> timedelta:
        return timedelta(minutes=self.promotion_hold_minutes)

    @property
    def no_show_grace(self) -> timedelta:
        return timedelta(minutes=self.no_show_grace_minutes)


@lru_cache
def get_shop_config() -> ShopConfig:
    """Get shop configuration (singleton), read from Settings."""
    return ShopConfig(
        slot_step_minutes=settings.slot_step_minutes,
        buffer_minutes=settings.buffer_minutes,
        default_duration_minutes=settings.default_duration_minutes,
        promotion_hold_minutes=settings.promotion_hold_minutes,
        no_show_grace_minutes=settings.no_show_grace_minutes,
        unattended_policy=settings.unattended_policy,
    )


# ── Time helpers ─────────────────────────────────────────────────────────


def time_str_to_minutes(value: str) -> int:
    """"HH:MM" or "HH:MM:SS" → minutes since midnight."""
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time string: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid time string: {value!r}")
    return hours * 60 + minutes


def combine(day: date, at: time) -> datetime:
    """Local wall-clock datetime for `at` on `day`."""
    return datetime.combine(day, at.replace(tzinfo=None))


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[start of day, start of next day)"""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


@lru_cache
def shop_zone() -> Optional[ZoneInfo]:
    """SHOP_TIMEZONE as a ZoneInfo; None means the server's local zone."""
    if not settings.shop_timezone:
        return None
    return ZoneInfo(settings.shop_timezone)


def to_local_naive(value: datetime) -> datetime:
    """Store-side datetimes are naive wall-clock times in the shop's zone."""
    if value.tzinfo is not None:
        return value.astimezone(shop_zone()).replace(tzinfo=None)
    return value
