from decimal import Decimal

from pydantic import BaseModel


class ZoneRead(BaseModel):
    id: int
    name: str
    minimum_order_value: Decimal

    class Config:
        from_attributes = True


class ResellerRead(BaseModel):
    id: int
    name: str
    zone_id: int | None
    active: bool
    address: str | None = None

    class Config:
        from_attributes = True
