import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .redis_client import redis_client
from .routers import admin, bookings, maintenance, services, slots, waitlist
from .services.errors import (
    Expired,
    InvalidState,
    NotFound,
    SchedulingError,
    SlotConflict,
    StoreUnavailable,
    Unauthorized,
    ValidationError,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    Unauthorized: 403,
    NotFound: 404,
    SlotConflict: 409,
    InvalidState: 409,
    Expired: 410,
    StoreUnavailable: 503,
}

app = FastAPI(title=f"{settings.shop_name} Booking API")


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message},
    )


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except Exception as e:
        logger.warning("Redis ping failed: %s", e)
        redis_ok = False
    return {"status": "ok", "redis": redis_ok}


app.include_router(slots.router)
app.include_router(services.router)
app.include_router(bookings.router)
app.include_router(waitlist.router)
app.include_router(maintenance.router)
app.include_router(admin.router)
