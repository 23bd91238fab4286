from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_admin
from backend.app.db.models.core_types import UnitOfMeasure
from backend.app.schemas.product import ProductRead
from backend.services import catalog

router = APIRouter(prefix="/products")


class ProductWrite(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    description: str = Field(min_length=1, max_length=255)
    uom: UnitOfMeasure = UnitOfMeasure.pcs
    # None on update = leave visibility as is
    locations: list[str] | None = None
    reseller_visible: bool = True


class VisibilityUpdate(BaseModel):
    locations: list[str] = Field(default_factory=list)


class ResellerVisibilityUpdate(BaseModel):
    reseller_visible: bool


def _sku_data(payload: ProductWrite) -> catalog.SkuData:
    return catalog.SkuData(
        sku=payload.sku,
        description=payload.description,
        uom=payload.uom,
        locations=payload.locations,
        reseller_visible=payload.reseller_visible,
    )


@router.get("", response_model=list[ProductRead])
def list_products(
    location: str | None = None,
    reseller_only: bool = False,
    db: Session = Depends(get_db),
):
    rows = catalog.list_products(db, location=location, reseller_only=reseller_only)
    return [ProductRead.from_product(p) for p in rows]


@router.get("/{sku}", response_model=ProductRead)
def get_product(sku: str, db: Session = Depends(get_db)):
    return ProductRead.from_product(catalog.get_product(db, sku))


@router.post("", response_model=ProductRead, status_code=201, dependencies=[Depends(require_admin)])
def create_product(payload: ProductWrite, db: Session = Depends(get_db)):
    p = catalog.add_sku(db, _sku_data(payload))
    db.commit()
    db.refresh(p)
    return ProductRead.from_product(p)


@router.put("/{sku}", response_model=ProductRead, dependencies=[Depends(require_admin)])
def update_product(sku: str, payload: ProductWrite, db: Session = Depends(get_db)):
    p = catalog.update_sku(db, sku, _sku_data(payload))
    db.commit()
    db.refresh(p)
    return ProductRead.from_product(p)


@router.delete("/{sku}", status_code=204, dependencies=[Depends(require_admin)])
def delete_product(sku: str, db: Session = Depends(get_db)):
    catalog.delete_sku(db, sku)
    db.commit()


@router.put("/{sku}/visibility", response_model=ProductRead, dependencies=[Depends(require_admin)])
def set_visibility(sku: str, payload: VisibilityUpdate, db: Session = Depends(get_db)):
    p = catalog.set_visibility(db, sku, payload.locations)
    db.commit()
    db.refresh(p)
    return ProductRead.from_product(p)


@router.put("/{sku}/reseller-visibility", response_model=ProductRead, dependencies=[Depends(require_admin)])
def set_reseller_visibility(sku: str, payload: ResellerVisibilityUpdate, db: Session = Depends(get_db)):
    p = catalog.set_reseller_visibility(db, sku, payload.reseller_visible)
    db.commit()
    db.refresh(p)
    return ProductRead.from_product(p)
