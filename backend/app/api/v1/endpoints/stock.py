from __future__ import annotations

import hashlib

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_admin
from backend.app.schemas.stock_level import InventoryRowRead, StockMovementRead
from backend.services import exports, inventory

router = APIRouter(prefix="/stock")


class StockAdjust(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    location: str = Field(min_length=1, max_length=200)
    delta: int
    reason: str | None = Field(default=None, max_length=255)


def _require_idempotency_key(idempotency_key: str | None) -> str:
    if not idempotency_key or not idempotency_key.strip():
        raise HTTPException(status_code=400, detail="Missing Idempotency-Key header")
    return idempotency_key.strip()


def _movement_key(provided: str) -> str:
    raw = f"ADJ-IDEMP:{provided}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@router.get("", response_model=list[InventoryRowRead])
def get_stock(location: str | None = None, db: Session = Depends(get_db)):
    return inventory.list_inventory(db, location)


@router.get("/export")
def export_stock(location: str | None = None, db: Session = Depends(get_db)):
    csv = exports.inventory_csv(db, location)
    return Response(
        content=csv,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="inventory.csv"'},
    )


@router.post("/adjust", response_model=StockMovementRead, dependencies=[Depends(require_admin)])
def adjust_stock(
    payload: StockAdjust,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    db: Session = Depends(get_db),
):
    idem = _require_idempotency_key(idempotency_key)
    if payload.delta == 0:
        raise HTTPException(status_code=400, detail="delta must not be zero")

    mv, created = inventory.adjust_stock(
        db,
        sku=payload.sku,
        location=payload.location,
        delta=payload.delta,
        idempotency_key=_movement_key(idem),
        reason=payload.reason,
    )
    if created:
        db.commit()
        db.refresh(mv)
    return mv
