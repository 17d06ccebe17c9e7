# backend/barbershop/routers/waitlist.py

from datetime import date
from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..schemas.bookings import CustomerTokenBody
from ..schemas.waitlist import (
    PromoteRequest,
    PromotionConfirmed,
    PromotionOutcome,
    WaitlistCancel,
    WaitlistEntryRead,
    WaitlistJoin,
    WaitlistJoined,
)
from ..services import promotion, tokens, waitlist
from .deps import require_operator

router = APIRouter(prefix="/waitlist", tags=["waitlist"])


@router.post("/", response_model=WaitlistJoined, status_code=status.HTTP_201_CREATED)
def join_waitlist(data: WaitlistJoin, db: Session = Depends(get_db)):
    return waitlist.join_waitlist(
        db,
        slot_start_time=data.slot_start_time,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        service_ids=data.service_ids,
    )


@router.get("/", response_model=list[WaitlistEntryRead], dependencies=[Depends(require_operator)])
def list_waitlist(
    day: date | None = None,
    only_active: bool = True,
    db: Session = Depends(get_db),
):
    return waitlist.list_waitlist(db, day or date.today(), only_active=only_active)


@router.post("/promote", response_model=PromotionOutcome, dependencies=[Depends(require_operator)])
def promote_next(data: PromoteRequest, db: Session = Depends(get_db)):
    return promotion.promote_next(db, data.slot_start_time)


@router.get("/{id}", response_model=WaitlistEntryRead)
def get_entry(id: int, token: str, db: Session = Depends(get_db)):
    return waitlist.read_waitlist_for_customer(db, id, token)


@router.post("/{id}/confirm", response_model=PromotionConfirmed)
def confirm(id: int, data: CustomerTokenBody, db: Session = Depends(get_db)):
    return promotion.confirm_promotion(db, id, data.customer_token)


@router.post("/{id}/cancel", response_model=WaitlistEntryRead)
def cancel(
    id: int,
    data: WaitlistCancel,
    x_operator_token: str | None = Header(None),
    db: Session = Depends(get_db),
):
    """Customer (body token) or operator (header) withdraws an entry."""
    as_operator = tokens.matches(settings.operator_token, x_operator_token)
    return waitlist.cancel_waitlist_entry(
        db, id, data.customer_token, as_operator=as_operator,
    )
