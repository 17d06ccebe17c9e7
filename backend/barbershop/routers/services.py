# backend/barbershop/routers/services.py
# Public catalog for the booking page; editing lives under /admin/services.

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.services import ServiceRead
from ..services import catalog

router = APIRouter(prefix="/services", tags=["services"])


@router.get("/", response_model=list[ServiceRead])
def list_active_services(db: Session = Depends(get_db)):
    return catalog.list_services(db)
