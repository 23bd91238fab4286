from __future__ import annotations

import logging
import re
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import Reseller, ResellerOrder, ResellerZone
from backend.services.errors import Conflict, InvalidInput, NotFound

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_name(name: str) -> str:
    """'St. James  Store' and 'st james store' are the same reseller."""
    return _NON_ALNUM.sub(" ", name.lower()).strip()


# ---------- Zones ----------
def list_zones(db: Session) -> list[ResellerZone]:
    return list(db.execute(select(ResellerZone).order_by(ResellerZone.name)).scalars().all())


def get_zone(db: Session, zone_id: int) -> ResellerZone:
    zone = db.get(ResellerZone, zone_id)
    if not zone:
        raise NotFound("Zone not found")
    return zone


def _zone_minimum(value) -> Decimal:
    try:
        minimum = Decimal(str(value))
    except ArithmeticError as exc:
        raise InvalidInput(f"Invalid minimum order value {value!r}") from exc
    if minimum < 0:
        raise InvalidInput("Minimum order value must be >= 0")
    return minimum


def add_zone(db: Session, name: str, minimum_order_value=0) -> ResellerZone:
    name = name.strip()
    if not name:
        raise InvalidInput("Zone name is required")
    exists = db.execute(
        select(ResellerZone.id).where(func.lower(ResellerZone.name) == name.lower())
    ).first()
    if exists:
        raise Conflict(f"Zone '{name}' already exists")

    zone = ResellerZone(name=name, minimum_order_value=_zone_minimum(minimum_order_value))
    db.add(zone)
    db.flush()
    return zone


def update_zone(db: Session, zone_id: int, *, name: str | None = None, minimum_order_value=None) -> ResellerZone:
    zone = get_zone(db, zone_id)
    if name is not None and name.strip() != zone.name:
        clash = db.execute(
            select(ResellerZone.id)
            .where(func.lower(ResellerZone.name) == name.strip().lower())
            .where(ResellerZone.id != zone.id)
        ).first()
        if clash:
            raise Conflict(f"Zone '{name.strip()}' already exists")
        zone.name = name.strip()
    if minimum_order_value is not None:
        zone.minimum_order_value = _zone_minimum(minimum_order_value)
    db.flush()
    return zone


def delete_zone(db: Session, zone_id: int) -> None:
    zone = get_zone(db, zone_id)
    # resellers fall back to the global price list
    db.execute(
        update(Reseller)
        .where(Reseller.zone_id == zone.id)
        .values(zone_id=None)
        .execution_options(synchronize_session=False)
    )
    db.delete(zone)
    db.flush()


# ---------- Resellers ----------
def list_resellers(db: Session, *, active_only: bool = False) -> list[Reseller]:
    stmt = select(Reseller).order_by(Reseller.name, Reseller.id)
    if active_only:
        stmt = stmt.where(Reseller.active.is_(True))
    return list(db.execute(stmt).scalars().all())


def get_reseller(db: Session, reseller_id: int) -> Reseller:
    r = db.get(Reseller, reseller_id)
    if not r:
        raise NotFound("Reseller not found")
    return r


def add_reseller(
    db: Session,
    name: str,
    *,
    zone_id: int | None = None,
    address: str | None = None,
    active: bool = True,
) -> Reseller:
    name = name.strip()
    if not name:
        raise InvalidInput("Reseller name is required")
    if zone_id is not None:
        get_zone(db, zone_id)

    r = Reseller(name=name, zone_id=zone_id, address=address, active=active)
    db.add(r)
    db.flush()
    logger.info("reseller added: %s", name)
    return r


def update_reseller(
    db: Session,
    reseller_id: int,
    *,
    name: str | None = None,
    zone_id: int | None = None,
    address: str | None = None,
    active: bool | None = None,
    clear_zone: bool = False,
) -> Reseller:
    """``zone_id=None`` leaves the zone alone; ``clear_zone`` removes it."""
    r = get_reseller(db, reseller_id)

    if name is not None:
        name = name.strip()
        if not name:
            raise InvalidInput("Reseller name is required")
        if name != r.name:
            db.execute(
                update(ResellerOrder)
                .where(ResellerOrder.reseller_id == r.id)
                .values(reseller_name=name)
                .execution_options(synchronize_session=False)
            )
            r.name = name
    if clear_zone:
        r.zone_id = None
    elif zone_id is not None:
        r.zone_id = get_zone(db, zone_id).id
    if address is not None:
        r.address = address
    if active is not None:
        r.active = active
    db.flush()
    return r


def delete_reseller(db: Session, reseller_id: int) -> None:
    r = get_reseller(db, reseller_id)
    # orders keep the name snapshot, reseller_id goes NULL
    db.execute(
        update(ResellerOrder)
        .where(ResellerOrder.reseller_id == r.id)
        .values(reseller_id=None)
        .execution_options(synchronize_session=False)
    )
    db.delete(r)
    db.flush()


def find_duplicate_resellers(db: Session) -> list[list[Reseller]]:
    groups: dict[str, list[Reseller]] = defaultdict(list)
    for r in list_resellers(db):
        groups[normalize_name(r.name)].append(r)
    return [sorted(g, key=lambda r: r.id) for _, g in sorted(groups.items()) if len(g) > 1]


def merge_resellers(db: Session, target_id: int, source_ids: list[int]) -> int:
    """
    Fold duplicate resellers into one.

    Orders of the sources (and orphaned orders carrying a source name) move to
    the target; the sources are deleted. Returns the number of orders moved.
    """
    target = get_reseller(db, target_id)
    sources = []
    for sid in dict.fromkeys(source_ids):
        if sid == target.id:
            raise InvalidInput("Cannot merge a reseller into itself")
        sources.append(get_reseller(db, sid))
    if not sources:
        raise InvalidInput("No resellers to merge")

    moved = 0
    for src in sources:
        moved += db.execute(
            update(ResellerOrder)
            .where(ResellerOrder.reseller_id == src.id)
            .values(reseller_id=target.id, reseller_name=target.name)
            .execution_options(synchronize_session=False)
        ).rowcount
        moved += db.execute(
            update(ResellerOrder)
            .where(ResellerOrder.reseller_id.is_(None))
            .where(func.lower(ResellerOrder.reseller_name) == src.name.lower())
            .values(reseller_id=target.id, reseller_name=target.name)
            .execution_options(synchronize_session=False)
        ).rowcount

    for src in sources:
        db.delete(src)
    db.flush()
    # loaded orders may still carry the old reseller_id
    db.expire_all()

    logger.info(
        "merged resellers %s into %s (%s), %d orders moved",
        [s.id for s in sources],
        target.id,
        target.name,
        moved,
    )
    return moved
