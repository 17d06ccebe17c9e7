# backend/barbershop/routers/maintenance.py
# Open endpoint: the sweep only applies transitions that are already due,
# so any caller (cron, uptime probe, the front end) may trigger it.

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.maintenance import SweepReport
from ..services.maintenance import run_maintenance_sweep

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/sweep", response_model=SweepReport)
def sweep(db: Session = Depends(get_db)):
    return run_maintenance_sweep(db)
