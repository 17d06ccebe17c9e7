# backend/barbershop/routers/deps.py

import logging

from fastapi import Header, HTTPException

from ..config import settings
from ..services import tokens

logger = logging.getLogger(__name__)


def require_operator(x_operator_token: str | None = Header(None)) -> None:
    """Barber / owner endpoints. No OPERATOR_TOKEN configured → always 403."""
    if not tokens.matches(settings.operator_token, x_operator_token):
        logger.warning("Operator endpoint refused: missing or bad X-Operator-Token")
        raise HTTPException(status_code=403, detail="Forbidden")
