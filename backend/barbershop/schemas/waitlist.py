# backend/barbershop/schemas/waitlist.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from .bookings import BookingServiceRead


class WaitlistJoin(BaseModel):
    slot_start_time: datetime
    customer_name: str
    customer_phone: str
    service_ids: list[int] = Field(default_factory=list)


class WaitlistJoined(BaseModel):
    waitlist_id: int
    customer_token: str
    status: str


class WaitlistEntryRead(BaseModel):
    id: int
    slot_start_time: datetime

    customer_name: str
    customer_phone: str

    total_duration_minutes: int
    total_price_amount: float

    status: str
    created_at: datetime
    promoted_at: Optional[datetime] = None
    promotion_expires_at: Optional[datetime] = None
    booking_id: Optional[int] = None

    services: list[BookingServiceRead] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class WaitlistCancel(BaseModel):
    customer_token: Optional[str] = None


class PromoteRequest(BaseModel):
    slot_start_time: datetime


class PromotionOutcome(BaseModel):
    """PromoteNext result; promoted=False is a normal no-op."""
    slot_start_time: datetime
    promoted: bool
    waitlist_id: Optional[int] = None
    booking_id: Optional[int] = None
    promotion_expires_at: Optional[datetime] = None


class PromotionConfirmed(BaseModel):
    waitlist_id: int
    booking_id: int
    status: str
