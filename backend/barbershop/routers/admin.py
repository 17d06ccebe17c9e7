# backend/barbershop/routers/admin.py
# Owner dashboard: weekly rules, blocked intervals, service catalog.
# Every route requires X-Operator-Token.

from datetime import date
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.availability import (
    AvailabilityRuleRead,
    AvailabilityRuleUpsert,
    BlockedIntervalCreate,
    BlockedIntervalRead,
    DayRequest,
    OpenDayResult,
)
from ..schemas.services import ServiceCreate, ServiceRead
from ..services import catalog, schedule
from .deps import require_operator

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_operator)],
)


# ── Availability rules ──


@router.get("/rules", response_model=list[AvailabilityRuleRead])
def list_rules(db: Session = Depends(get_db)):
    return schedule.list_rules(db)


@router.put("/rules", response_model=list[AvailabilityRuleRead])
def upsert_rules(data: list[AvailabilityRuleUpsert], db: Session = Depends(get_db)):
    return schedule.upsert_rules(db, data)


@router.post("/rules/defaults", response_model=list[AvailabilityRuleRead])
def initialize_default_rules(db: Session = Depends(get_db)):
    return schedule.initialize_default_rules(db)


# ── Blocked intervals ──


@router.get("/blocks", response_model=list[BlockedIntervalRead])
def list_blocks(day: date, db: Session = Depends(get_db)):
    return schedule.list_blocks(db, day)


@router.post("/blocks", response_model=BlockedIntervalRead, status_code=status.HTTP_201_CREATED)
def add_block(data: BlockedIntervalCreate, db: Session = Depends(get_db)):
    return schedule.add_block(db, data.start_time, data.end_time, data.reason)


@router.delete("/blocks/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_block(id: int, db: Session = Depends(get_db)):
    schedule.delete_block(db, id)


@router.post("/blocks/close-day", response_model=BlockedIntervalRead)
def close_day(data: DayRequest, db: Session = Depends(get_db)):
    return schedule.close_day(db, data.date)


@router.post("/blocks/open-day", response_model=OpenDayResult)
def open_day(data: DayRequest, db: Session = Depends(get_db)):
    return schedule.open_day(db, data.date)


# ── Services ──


@router.get("/services", response_model=list[ServiceRead])
def list_services(include_inactive: bool = False, db: Session = Depends(get_db)):
    return catalog.list_services(db, include_inactive=include_inactive)


@router.post("/services", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
def add_service(data: ServiceCreate, db: Session = Depends(get_db)):
    return catalog.add_service(db, data.name, data.price_amount, data.duration_minutes)


@router.post("/services/{id}/toggle", response_model=ServiceRead)
def toggle_service(id: int, db: Session = Depends(get_db)):
    return catalog.toggle_service(db, id)
