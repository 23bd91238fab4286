from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_app_settings, get_db, require_admin
from backend.app.core.config import Settings
from backend.app.db.models.core_types import OrderStatus
from backend.app.schemas.order import TransferOrderRead, StatusChangeResult
from backend.services import documents, notifications, orders

router = APIRouter(prefix="/transfer-orders")


class TransferOrderCreate(BaseModel):
    from_location: str = Field(min_length=1, max_length=200)
    destination: str = Field(min_length=1, max_length=200)
    # {sku: quantity}
    items: dict[str, int] = Field(default_factory=dict)


class OrderItemsUpdate(BaseModel):
    items: dict[str, int] = Field(default_factory=dict)


class StatusUpdate(BaseModel):
    status: OrderStatus


@router.get("", response_model=list[TransferOrderRead])
def list_orders(
    status: OrderStatus | None = None,
    location: str | None = None,
    db: Session = Depends(get_db),
):
    return [TransferOrderRead.from_order(o) for o in orders.list_transfer_orders(db, status, location)]


@router.get("/{order_id}", response_model=TransferOrderRead)
def get_order(order_id: int, db: Session = Depends(get_db)):
    return TransferOrderRead.from_order(orders.get_transfer_order(db, order_id))


@router.post("", response_model=TransferOrderRead, status_code=201)
def create_order(
    payload: TransferOrderCreate,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    order = orders.create_transfer_order(
        db,
        from_location=payload.from_location,
        destination=payload.destination,
        items=payload.items,
    )
    db.commit()
    db.refresh(order)

    background.add_task(
        notifications.post_embed,
        settings.discord_transfer_webhook_url,
        notifications.build_transfer_embed(order),
    )
    return TransferOrderRead.from_order(order)


@router.put("/{order_id}/items", response_model=TransferOrderRead)
def update_items(order_id: int, payload: OrderItemsUpdate, db: Session = Depends(get_db)):
    order = orders.get_transfer_order(db, order_id)
    orders.update_order_lines(db, order, payload.items)
    db.commit()
    db.refresh(order)
    return TransferOrderRead.from_order(order)


@router.patch("/{order_id}/status", response_model=StatusChangeResult)
def change_status(order_id: int, payload: StatusUpdate, db: Session = Depends(get_db)):
    order = orders.get_transfer_order(db, order_id)
    result = orders.change_status(db, order, payload.status)
    db.commit()
    return StatusChangeResult(
        id=order.id,
        status=order.status,
        applied=result.applied,
        unmatched=result.unmatched,
    )


@router.post("/{order_id}/packing-list")
def packing_list(order_id: int, db: Session = Depends(get_db)):
    order = orders.get_transfer_order(db, order_id)
    pdf = documents.transfer_packing_list(order)
    order.has_packing_list = True
    db.commit()
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="packing-list-T{order_id}.pdf"'},
    )


@router.delete("/{order_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_order(order_id: int, db: Session = Depends(get_db)):
    orders.delete_order(db, orders.get_transfer_order(db, order_id))
    db.commit()
