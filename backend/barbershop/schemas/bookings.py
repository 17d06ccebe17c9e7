# backend/barbershop/schemas/bookings.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    customer_name: str
    customer_phone: str
    start_time: datetime
    service_ids: list[int] = Field(default_factory=list)


class BookingCreated(BaseModel):
    booking_id: int
    customer_token: str
    end_time: datetime


class BookingServiceRead(BaseModel):
    service_name: str
    price_amount: float
    duration_minutes: int
    sort_order: int

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    """Operator view of a booking (no capability token)."""
    id: int

    customer_name: str
    customer_phone: str

    start_time: datetime
    end_time: datetime

    status: str
    created_at: datetime
    grace_expiry_time: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingDetails(BookingRead):
    """Customer view: booking + snapshot services + totals."""
    services: list[BookingServiceRead] = Field(default_factory=list)
    total_price_amount: float = 0
    total_duration_minutes: int = 0


class BookingStatusUpdate(BaseModel):
    status: str


class BookingStatusChanged(BaseModel):
    booking_id: int
    status: str
    promoted_waitlist_id: Optional[int] = None


class CustomerTokenBody(BaseModel):
    customer_token: str
