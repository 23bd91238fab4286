from pydantic import BaseModel

from backend.app.db.models.core_types import MovementType


class InventoryRowRead(BaseModel):
    sku: str
    description: str
    uom: str
    location: str

    qty_on_hand: int

    class Config:
        from_attributes = True


class StockMovementRead(BaseModel):
    id: int
    sku: str
    location_id: int
    movement_type: MovementType
    quantity_delta: int
    reason: str | None = None
    idempotency_key: str

    class Config:
        from_attributes = True
