from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from backend.app.db.models.core_types import OrderStatus


class OrderLineRead(BaseModel):
    sku: str
    description: str | None = None
    quantity: int
    unit_price: Decimal

    class Config:
        from_attributes = True


class ResellerOrderRead(BaseModel):
    id: int
    reseller_id: int | None
    reseller_name: str
    zone_name: str | None
    address: str | None
    source_location: str
    total_amount: Decimal
    status: OrderStatus
    is_deducted: bool
    has_packing_list: bool
    created_at: datetime
    completed_at: datetime | None
    lines: list[OrderLineRead]

    @classmethod
    def from_order(cls, o) -> "ResellerOrderRead":
        return cls(
            id=o.id,
            reseller_id=o.reseller_id,
            reseller_name=o.reseller_name,
            zone_name=o.zone_name,
            address=o.address,
            source_location=o.source_location.name,
            total_amount=o.total_amount,
            status=o.status,
            is_deducted=o.is_deducted,
            has_packing_list=o.has_packing_list,
            created_at=o.created_at,
            completed_at=o.completed_at,
            lines=[OrderLineRead.model_validate(l) for l in o.lines],
        )


class TransferOrderRead(BaseModel):
    id: int
    from_location: str
    destination: str
    total_amount: Decimal
    status: OrderStatus
    is_deducted: bool
    has_packing_list: bool
    created_at: datetime
    completed_at: datetime | None
    lines: list[OrderLineRead]

    @classmethod
    def from_order(cls, o) -> "TransferOrderRead":
        return cls(
            id=o.id,
            from_location=o.from_location.name,
            destination=o.destination.name,
            total_amount=o.total_amount,
            status=o.status,
            is_deducted=o.is_deducted,
            has_packing_list=o.has_packing_list,
            created_at=o.created_at,
            completed_at=o.completed_at,
            lines=[OrderLineRead.model_validate(l) for l in o.lines],
        )


class StatusChangeResult(BaseModel):
    id: int
    status: OrderStatus
    applied: bool
    unmatched: list[str] = []
