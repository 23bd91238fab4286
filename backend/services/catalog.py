"""
SKU catalog.

A SKU is unique; the uniqueness check happens before any write so callers get
a clear conflict instead of an integrity error. Visibility is a subset of the
configured locations, the empty subset meaning "every location".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.models_v1 import Product, StockMovement
from backend.app.db.models.core_types import UnitOfMeasure
from backend.services.errors import Conflict, InvalidInput, NotFound
from backend.services.locations import find_location

logger = logging.getLogger(__name__)

_FLAVORS = [
    "Cafe Mocha",
    "Mango Peach Pie Crust",
    "Milky Chocolate",
    "Suman at Mangga",
    "Vanilla Langka",
]
_SIZES = [("FGC", "Cup"), ("FGP", "Pint"), ("FGL", "Liter"), ("FGG", "Gallon"), ("FGT", "Tray")]

# finished goods, one SKU per size and flavor
DEFAULT_CATALOG = [
    (f"{prefix}-{i:03d}", f"{flavor} {size}")
    for prefix, size in _SIZES
    for i, flavor in enumerate(_FLAVORS, start=1)
]


@dataclass
class SkuData:
    sku: str
    description: str
    uom: UnitOfMeasure = UnitOfMeasure.pcs
    locations: list[str] | None = None
    reseller_visible: bool = True


def normalize_sku(sku: str) -> str:
    sku = sku.strip().upper()
    if not sku:
        raise InvalidInput("SKU is required")
    return sku


def find_product(db: Session, sku: str) -> Product | None:
    return db.execute(select(Product).where(Product.sku == sku.strip().upper())).scalar_one_or_none()


def get_product(db: Session, sku: str) -> Product:
    p = find_product(db, sku)
    if not p:
        raise NotFound(f"SKU '{sku}' not found")
    return p


def list_products(db: Session, *, location: str | None = None, reseller_only: bool = False) -> list[Product]:
    stmt = select(Product).options(selectinload(Product.visible_locations)).order_by(Product.sku)
    if reseller_only:
        stmt = stmt.where(Product.reseller_visible.is_(True))
    rows = list(db.execute(stmt).scalars().all())

    if location is None:
        return rows

    loc = find_location(db, location)
    if not loc:
        raise NotFound(f"Unknown location '{location}'")
    return [p for p in rows if p.is_visible_at(loc)]


def _resolve_locations(db: Session, names: Iterable[str] | None):
    if not names:
        return []
    resolved = []
    for name in names:
        loc = find_location(db, name)
        if not loc:
            raise InvalidInput(f"Unknown location '{name}'")
        if loc not in resolved:
            resolved.append(loc)
    return resolved


def add_sku(db: Session, data: SkuData) -> Product:
    sku = normalize_sku(data.sku)
    if not data.description.strip():
        raise InvalidInput("Description is required")

    if find_product(db, sku):
        raise Conflict("SKU already exists")

    p = Product(
        sku=sku,
        description=data.description.strip(),
        uom=data.uom,
        reseller_visible=data.reseller_visible,
    )
    p.visible_locations = _resolve_locations(db, data.locations)
    db.add(p)
    db.flush()
    logger.info("sku added: %s", sku)
    return p


def update_sku(db: Session, original_sku: str, data: SkuData) -> Product:
    p = get_product(db, original_sku)
    new_sku = normalize_sku(data.sku)

    if new_sku != p.sku:
        other = find_product(db, new_sku)
        if other and other.id != p.id:
            raise Conflict("SKU already exists! Please choose a different SKU.")

    if not data.description.strip():
        raise InvalidInput("Description is required")

    old = p.sku
    p.sku = new_sku
    p.description = data.description.strip()
    p.uom = data.uom
    p.reseller_visible = data.reseller_visible
    if data.locations is not None:
        p.visible_locations = _resolve_locations(db, data.locations)
    db.flush()

    if old != new_sku:
        logger.info("sku renamed: %s -> %s", old, new_sku)
    return p


def delete_sku(db: Session, sku: str) -> None:
    p = get_product(db, sku)

    # ledger rows keep their sku snapshot
    db.execute(
        update(StockMovement)
        .where(StockMovement.product_id == p.id)
        .values(product_id=None)
        .execution_options(synchronize_session=False)
    )
    db.delete(p)
    db.flush()
    logger.info("sku deleted: %s", p.sku)


def set_visibility(db: Session, sku: str, locations: list[str]) -> Product:
    p = get_product(db, sku)
    p.visible_locations = _resolve_locations(db, locations)
    db.flush()
    return p


def set_reseller_visibility(db: Session, sku: str, visible: bool) -> Product:
    p = get_product(db, sku)
    p.reseller_visible = visible
    db.flush()
    return p
