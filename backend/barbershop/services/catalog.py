"""
Service catalog: lookup of selectable services and the owner's edits.

A selection is resolved once, at booking / queue time, into an ordered
snapshot. Later catalog edits never touch existing bookings.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ..database import transaction
from ..models import BookingService, Service, WaitlistService
from ..schemas.services import ServiceRead
from .errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedService:
    name: str
    price_amount: float
    duration_minutes: int


@dataclass
class Selection:
    items: list[SelectedService] = field(default_factory=list)

    @property
    def total_duration_minutes(self) -> int:
        return sum(item.duration_minutes for item in self.items)

    @property
    def total_price_amount(self) -> float:
        return sum(item.price_amount for item in self.items)

    def booking_rows(self) -> list[BookingService]:
        return [
            BookingService(
                service_name=item.name,
                price_amount=item.price_amount,
                duration_minutes=item.duration_minutes,
                sort_order=i,
            )
            for i, item in enumerate(self.items)
        ]

    def waitlist_rows(self) -> list[WaitlistService]:
        return [
            WaitlistService(
                service_name=item.name,
                price_amount=item.price_amount,
                duration_minutes=item.duration_minutes,
                sort_order=i,
            )
            for i, item in enumerate(self.items)
        ]


def resolve_selection(db: Session, service_ids: list[int]) -> Selection:
    """
    Resolve service ids (in the customer's order) into a snapshot.

    Raises:
        ValidationError: empty list, unknown or inactive id.
    """
    if not service_ids:
        raise ValidationError("Select at least one service")

    rows = db.query(Service).filter(Service.id.in_(set(service_ids))).all()
    by_id = {row.id: row for row in rows}

    missing = [sid for sid in service_ids if sid not in by_id or not by_id[sid].is_active]
    if missing:
        raise ValidationError(f"Unknown or inactive services: {sorted(set(missing))}")

    items = [
        SelectedService(
            name=by_id[sid].name,
            price_amount=float(by_id[sid].price_amount),
            duration_minutes=by_id[sid].duration_minutes,
        )
        for sid in service_ids
    ]
    selection = Selection(items=items)
    if selection.total_duration_minutes <= 0:
        raise ValidationError("Selected services have no duration")
    return selection


def snapshot_from_rows(rows) -> Selection:
    """Rebuild a Selection from stored snapshot rows (booking or waitlist)."""
    return Selection(items=[
        SelectedService(
            name=row.service_name,
            price_amount=float(row.price_amount),
            duration_minutes=row.duration_minutes,
        )
        for row in rows
    ])


# ── Owner operations ─────────────────────────────────────────────────────


def list_services(db: Session, include_inactive: bool = False) -> list[ServiceRead]:
    with transaction(db):
        q = db.query(Service)
        if not include_inactive:
            q = q.filter(Service.is_active.is_(True))
        return [ServiceRead.model_validate(s) for s in q.order_by(Service.name).all()]


def add_service(db: Session, name: str, price_amount: float, duration_minutes: int) -> ServiceRead:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Service name is required")
    if price_amount is None or price_amount < 0:
        raise ValidationError("Enter a valid price")
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError("Enter a valid duration (minutes)")

    with transaction(db):
        service = Service(
            name=name,
            price_amount=price_amount,
            duration_minutes=duration_minutes,
            is_active=True,
        )
        db.add(service)
        db.flush()
        result = ServiceRead.model_validate(service)

    logger.info("Service added: id=%s name=%s", result.id, name)
    return result


def toggle_service(db: Session, service_id: int) -> ServiceRead:
    with transaction(db):
        service = db.get(Service, service_id)
        if not service:
            raise NotFound(f"Service {service_id} not found")
        service.is_active = not service.is_active
        result = ServiceRead.model_validate(service)

    logger.info("Service %s active=%s", service_id, result.is_active)
    return result
