"""
Unit prices for order lines.

Reseller prices are set per SKU prefix (size category), most specific first:
zone price, then the global reseller price list, then the built-in base
prices. Transfers to a branch are valued at the branch SRP; transfers to a
warehouse carry no value.
"""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import (
    Location,
    LocationSRP,
    Product,
    ResellerZone,
    ZonePrice,
)
from backend.app.db.models.core_types import LocationType
from backend.services.errors import InvalidInput, NotFound
from backend.services.settings import get_setting, put_setting

RESELLER_PRICES_KEY = "reseller_prices"

BASE_PRICES = {
    "FGC": Decimal("23"),
    "FGP": Decimal("85"),
    "FGL": Decimal("170"),
    "FGG": Decimal("680"),
    "FGT": Decimal("1000"),
}


def sku_prefix(sku: str) -> str:
    return sku.split("-")[0].upper()


def _money(value) -> Decimal:
    try:
        d = Decimal(str(value))
    except ArithmeticError as exc:
        raise InvalidInput(f"Invalid price {value!r}") from exc
    if d < 0:
        raise InvalidInput("Price must be >= 0")
    return d.quantize(Decimal("0.01"))


def get_reseller_prices(db: Session) -> dict[str, Decimal]:
    raw = get_setting(db, RESELLER_PRICES_KEY, {}) or {}
    return {str(k).upper(): Decimal(str(v)) for k, v in raw.items()}


def set_reseller_prices(db: Session, prices: dict[str, object]) -> dict[str, Decimal]:
    cleaned = {sku_prefix(k): _money(v) for k, v in prices.items()}
    # JSON column: store as strings to keep cents exact
    put_setting(db, RESELLER_PRICES_KEY, {k: str(v) for k, v in cleaned.items()})
    return cleaned


def resolve_reseller_price(db: Session, sku: str, zone: ResellerZone | None) -> Decimal:
    prefix = sku_prefix(sku)

    if zone is not None:
        zp = db.get(ZonePrice, (zone.id, prefix))
        if zp is not None:
            return Decimal(zp.price)

    global_prices = get_reseller_prices(db)
    if prefix in global_prices:
        return global_prices[prefix]

    return BASE_PRICES.get(prefix, Decimal("0"))


def resolve_transfer_price(db: Session, sku: str, destination: Location) -> Decimal:
    if destination.type == LocationType.warehouse:
        return Decimal("0")
    srp = db.get(LocationSRP, (destination.id, sku))
    return Decimal(srp.price) if srp is not None else Decimal("0")


def set_zone_price(db: Session, zone_id: int, prefix: str, price) -> ZonePrice:
    zone = db.get(ResellerZone, zone_id)
    if not zone:
        raise NotFound("Zone not found")

    key = (zone.id, sku_prefix(prefix))
    zp = db.get(ZonePrice, key)
    if zp is None:
        zp = ZonePrice(zone_id=zone.id, sku_prefix=key[1], price=_money(price))
        db.add(zp)
    else:
        zp.price = _money(price)
    db.flush()
    return zp


def set_location_srp(db: Session, location: Location, sku: str, price) -> LocationSRP:
    sku = sku.strip().upper()
    srp = db.get(LocationSRP, (location.id, sku))
    if srp is None:
        srp = LocationSRP(location_id=location.id, sku=sku, price=_money(price))
        db.add(srp)
    else:
        srp.price = _money(price)
    db.flush()
    return srp


def set_location_category_prices(db: Session, location: Location, category_prices: dict[str, object]) -> int:
    """Apply one price per SKU prefix to every matching SKU at a location."""
    prices = {sku_prefix(k): v for k, v in category_prices.items()}
    count = 0
    for p in db.execute(select(Product).order_by(Product.sku)).scalars().all():
        prefix = sku_prefix(p.sku)
        if prefix in prices:
            set_location_srp(db, location, p.sku, prices[prefix])
            count += 1
    return count


def location_srps(db: Session, location: Location) -> dict[str, Decimal]:
    rows = db.execute(select(LocationSRP).where(LocationSRP.location_id == location.id)).scalars().all()
    return {r.sku: Decimal(r.price) for r in rows}
