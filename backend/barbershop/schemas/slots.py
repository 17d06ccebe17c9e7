# backend/barbershop/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import date, datetime
from pydantic import BaseModel, Field


class SlotRead(BaseModel):
    """A single grid slot."""
    start: datetime
    end: datetime
    state: str  # AVAILABLE / BOOKED / BLOCKED

    model_config = {"from_attributes": True}


class SlotsDayResponse(BaseModel):
    """Labeled grid for one day."""
    date: date
    duration_minutes: int
    slots: list[SlotRead]
    next_available: SlotRead | None = None

    # Metadata
    slot_step_minutes: int = Field(description="Grid step in minutes")
    buffer_minutes: int = Field(description="Idle gap enforced after each booking")

    model_config = {"from_attributes": True}

