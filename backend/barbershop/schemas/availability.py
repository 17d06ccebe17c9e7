# backend/barbershop/schemas/availability.py

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field


class AvailabilityRuleUpsert(BaseModel):
    day_of_week: int = Field(ge=0, le=6, description="0 = Monday")
    is_day_off: bool = False

    work_start: time
    work_end: time
    break_start: Optional[time] = None
    break_end: Optional[time] = None

    model_config = {"from_attributes": True}


class AvailabilityRuleRead(AvailabilityRuleUpsert):
    pass


class BlockedIntervalCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    reason: Optional[str] = None


class BlockedIntervalRead(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    reason: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DayRequest(BaseModel):
    date: date


class OpenDayResult(BaseModel):
    date: date
    removed: int
