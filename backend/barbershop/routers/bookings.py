# backend/barbershop/routers/bookings.py
# Customer endpoints are gated by the booking's customer_token,
# operator endpoints by X-Operator-Token.

from datetime import date, timedelta
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.bookings import (
    BookingCreate,
    BookingCreated,
    BookingDetails,
    BookingRead,
    BookingStatusChanged,
    BookingStatusUpdate,
    CustomerTokenBody,
)
from ..services import bookings as booking_service
from .deps import require_operator

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/", response_model=BookingCreated, status_code=status.HTTP_201_CREATED)
def create_booking(data: BookingCreate, db: Session = Depends(get_db)):
    return booking_service.create_booking(
        db,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        start_time=data.start_time,
        service_ids=data.service_ids,
    )


@router.get("/", response_model=list[BookingRead], dependencies=[Depends(require_operator)])
def list_bookings(
    start_date: date | None = None,
    end_date: date | None = None,
    status_filter: str | None = Query(None, alias="status"),
    search: str | None = None,
    db: Session = Depends(get_db),
):
    start_date = start_date or date.today()
    end_date = end_date or start_date + timedelta(days=6)
    return booking_service.list_bookings(
        db, start_date, end_date, status=status_filter, search=search,
    )


@router.get("/{id}", response_model=BookingDetails)
def get_booking(id: int, token: str, db: Session = Depends(get_db)):
    return booking_service.read_booking_for_customer(db, id, token)


@router.post("/{id}/check-in", response_model=BookingDetails)
def check_in(id: int, data: CustomerTokenBody, db: Session = Depends(get_db)):
    return booking_service.customer_check_in(db, id, data.customer_token)


@router.patch(
    "/{id}/status",
    response_model=BookingStatusChanged,
    dependencies=[Depends(require_operator)],
)
def update_status(id: int, data: BookingStatusUpdate, db: Session = Depends(get_db)):
    return booking_service.update_booking_status(db, id, data.status)
