# backend/barbershop/schemas/services.py

from pydantic import BaseModel


class ServiceCreate(BaseModel):
    name: str
    price_amount: float
    duration_minutes: int


class ServiceRead(BaseModel):
    id: int
    name: str
    price_amount: float
    duration_minutes: int
    is_active: bool

    model_config = {"from_attributes": True}
