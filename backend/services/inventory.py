from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import (
    Location,
    Product,
    StockLevel,
    StockMovement,
)
from backend.app.db.models.core_types import MovementType
from backend.services.catalog import get_product, list_products
from backend.services.errors import InsufficientStock, InvalidInput
from backend.services.locations import list_locations, resolve_location

logger = logging.getLogger(__name__)


@dataclass
class InventoryRow:
    sku: str
    description: str
    uom: str
    location: str
    qty_on_hand: int


def get_or_create_stock_level(db: Session, product_id: int, location_id: int) -> StockLevel:
    sl = (
        db.execute(
            select(StockLevel)
            .where(StockLevel.product_id == product_id)
            .where(StockLevel.location_id == location_id)
            .with_for_update()
        )
        .scalar_one_or_none()
    )
    if sl:
        return sl

    sl = StockLevel(product_id=product_id, location_id=location_id, qty_on_hand=0)
    db.add(sl)
    db.flush()
    return sl


def find_movement(db: Session, idempotency_key: str) -> StockMovement | None:
    return db.execute(
        select(StockMovement).where(StockMovement.idempotency_key == idempotency_key)
    ).scalar_one_or_none()


def apply_delta(
    db: Session,
    *,
    product: Product,
    location: Location,
    delta: int,
    movement_type: MovementType,
    idempotency_key: str,
    reason: str | None = None,
) -> StockMovement:
    """
    Apply a signed quantity change to one (product, location) stock level.

    The stock row is locked for the rest of the transaction. On-hand never
    goes below zero; the ledger row is written in the same flush.
    """
    if delta == 0:
        raise InvalidInput("Quantity delta must not be zero")

    sl = get_or_create_stock_level(db, product.id, location.id)
    if sl.qty_on_hand + delta < 0:
        raise InsufficientStock(
            f"Insufficient stock for {product.sku} at {location.name} "
            f"(on_hand={sl.qty_on_hand}, requested={-delta})"
        )

    sl.qty_on_hand += delta

    mv = StockMovement(
        product_id=product.id,
        sku=product.sku,
        location_id=location.id,
        movement_type=movement_type,
        quantity_delta=delta,
        reason=reason,
        idempotency_key=idempotency_key,
    )
    db.add(mv)
    db.flush()
    return mv


def adjust_stock(
    db: Session,
    *,
    sku: str,
    location: str,
    delta: int,
    idempotency_key: str,
    reason: str | None = None,
) -> tuple[StockMovement, bool]:
    """Manual stock adjustment. Returns (movement, created)."""
    existing = find_movement(db, idempotency_key)
    if existing:
        return existing, False

    product = get_product(db, sku)
    loc = resolve_location(db, location)
    try:
        mv = apply_delta(
            db,
            product=product,
            location=loc,
            delta=delta,
            movement_type=MovementType.adjustment,
            idempotency_key=idempotency_key,
            reason=reason,
        )
    except InsufficientStock as exc:
        raise InvalidInput(exc.message) from exc

    logger.info("stock adjusted: %s @ %s %+d (%s)", product.sku, loc.name, delta, reason or "-")
    return mv, True


def list_inventory(db: Session, location: str | None = None) -> list[InventoryRow]:
    """
    Quantities per location for the SKUs visible there.

    Without a location, every (visible SKU, location) pair is listed.
    """
    locations = [resolve_location(db, location)] if location else list_locations(db)
    products = list_products(db)

    levels = {
        (sl.product_id, sl.location_id): sl.qty_on_hand
        for sl in db.execute(select(StockLevel)).scalars().all()
    }

    rows = []
    for loc in locations:
        for p in products:
            if not p.is_visible_at(loc):
                continue
            rows.append(
                InventoryRow(
                    sku=p.sku,
                    description=p.description,
                    uom=p.uom.value,
                    location=loc.name,
                    qty_on_hand=levels.get((p.id, loc.id), 0),
                )
            )
    return rows
