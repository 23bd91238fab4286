from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_admin
from backend.services import pricing
from backend.services.locations import resolve_location

router = APIRouter(prefix="/pricing")


class PriceMap(BaseModel):
    prices: dict[str, Decimal] = Field(default_factory=dict)


class SinglePrice(BaseModel):
    price: Decimal = Field(ge=0)


@router.get("/reseller")
def get_reseller_prices(db: Session = Depends(get_db)):
    current = pricing.get_reseller_prices(db)
    return {"prices": {**pricing.BASE_PRICES, **current}, "overrides": current}


@router.put("/reseller", dependencies=[Depends(require_admin)])
def set_reseller_prices(payload: PriceMap, db: Session = Depends(get_db)):
    prices = pricing.set_reseller_prices(db, payload.prices)
    db.commit()
    return {"prices": prices}


@router.put("/zones/{zone_id}/{prefix}", dependencies=[Depends(require_admin)])
def set_zone_price(zone_id: int, prefix: str, payload: SinglePrice, db: Session = Depends(get_db)):
    zp = pricing.set_zone_price(db, zone_id, prefix, payload.price)
    db.commit()
    return {"zone_id": zp.zone_id, "sku_prefix": zp.sku_prefix, "price": zp.price}


@router.put("/locations/{location}/srp/{sku}", dependencies=[Depends(require_admin)])
def set_location_srp(location: str, sku: str, payload: SinglePrice, db: Session = Depends(get_db)):
    loc = resolve_location(db, location)
    srp = pricing.set_location_srp(db, loc, sku, payload.price)
    db.commit()
    return {"location": loc.name, "sku": srp.sku, "price": srp.price}


@router.put("/locations/{location}/categories", dependencies=[Depends(require_admin)])
def set_location_category_prices(location: str, payload: PriceMap, db: Session = Depends(get_db)):
    loc = resolve_location(db, location)
    count = pricing.set_location_category_prices(db, loc, payload.prices)
    db.commit()
    return {"location": loc.name, "updated": count}
