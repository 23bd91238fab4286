from __future__ import annotations

import logging

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import (
    Location,
    LocationSRP,
    ResellerOrder,
    StockLevel,
    StockMovement,
    TransferOrder,
    inventory_location_visibility,
)
from backend.app.db.models.core_types import LocationType
from backend.services.errors import Conflict, NotFound

logger = logging.getLogger(__name__)

DEFAULT_LOCATIONS = [
    ("FTF Manufacturing", LocationType.warehouse),
    ("Legazpi Storage", LocationType.warehouse),
    ("SM Sorsogon", LocationType.branch),
    ("SM Legazpi", LocationType.branch),
    ("SM Daet", LocationType.branch),
]


def find_location(db: Session, name: str) -> Location | None:
    return (
        db.execute(select(Location).where(func.lower(Location.name) == name.strip().lower()))
        .scalars()
        .first()
    )


def resolve_location(db: Session, name: str) -> Location:
    loc = find_location(db, name)
    if not loc:
        raise NotFound(f"Unknown location '{name}'")
    return loc


def list_locations(db: Session) -> list[Location]:
    return list(db.execute(select(Location).order_by(Location.type, Location.name)).scalars().all())


def add_location(db: Session, name: str, type: LocationType = LocationType.branch) -> Location:
    name = name.strip()
    if find_location(db, name):
        raise Conflict(f"Location '{name}' already exists")

    loc = Location(name=name, type=type, active=True)
    db.add(loc)
    db.flush()
    logger.info("location added: %s (%s)", name, type.value)
    return loc


def rename_location(db: Session, old_name: str, new_name: str) -> Location:
    loc = resolve_location(db, old_name)
    new_name = new_name.strip()
    if new_name == loc.name:
        return loc

    clash = find_location(db, new_name)
    if clash and clash.id != loc.id:
        raise Conflict(f"Location '{new_name}' already exists")

    loc.name = new_name
    db.flush()
    logger.info("location renamed: %s -> %s", old_name, new_name)
    return loc


def delete_location(db: Session, name: str) -> None:
    """
    Delete a location with its SRPs and visibility rows.

    Refused while stock is on hand there, or while orders or ledger rows
    reference it.
    """
    loc = resolve_location(db, name)

    on_hand = db.execute(
        select(func.coalesce(func.sum(StockLevel.qty_on_hand), 0)).where(StockLevel.location_id == loc.id)
    ).scalar_one()
    if on_hand:
        raise Conflict(f"Location '{loc.name}' still holds {on_hand} units")

    references = [
        (
            "transfer orders",
            TransferOrder.id,
            or_(TransferOrder.from_location_id == loc.id, TransferOrder.destination_location_id == loc.id),
        ),
        ("reseller orders", ResellerOrder.id, ResellerOrder.source_location_id == loc.id),
        ("stock movements", StockMovement.id, StockMovement.location_id == loc.id),
    ]
    for label, column, condition in references:
        if db.execute(select(column).where(condition).limit(1)).first():
            raise Conflict(f"Location '{loc.name}' is referenced by {label}")

    db.execute(delete(LocationSRP).where(LocationSRP.location_id == loc.id))
    db.execute(delete(StockLevel).where(StockLevel.location_id == loc.id))
    db.execute(
        delete(inventory_location_visibility).where(inventory_location_visibility.c.location_id == loc.id)
    )
    db.delete(loc)
    db.flush()
    logger.info("location deleted: %s", loc.name)
