# backend/barbershop/schemas/maintenance.py

from datetime import datetime
from pydantic import BaseModel, Field


class SweepReport(BaseModel):
    """What one maintenance pass changed. All zeros on a repeat pass."""
    ran_at: datetime
    expired_promotions: int = 0
    released_holds: int = 0
    expired_bookings: int = 0
    lapsed_waiting: int = 0
    promoted_waitlist_ids: list[int] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(
            self.expired_promotions
            or self.released_holds
            or self.expired_bookings
            or self.lapsed_waiting
            or self.promoted_waitlist_ids
        )
