# backend/barbershop/routers/slots.py
"""
Slots API endpoints.

GET /slots/day - labeled grid for one day, sized for the selected services
"""

from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.slots import SlotsDayResponse
from ..services.slots.availability import get_day_slots


router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/day", response_model=SlotsDayResponse)
def get_slots_day(
    day: date = Query(alias="date"),
    service_ids: list[int] = Query(default=[]),
    db: Session = Depends(get_db),
):
    """Slot grid for a day. Without service_ids the default duration is used."""
    return get_day_slots(db, day, service_ids=service_ids)
