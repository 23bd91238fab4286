from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_admin
from backend.app.schemas.reseller import ResellerRead, ZoneRead
from backend.services import resellers

router = APIRouter(prefix="/resellers")


class ResellerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    zone_id: int | None = None
    address: str | None = None
    active: bool = True


class ResellerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    zone_id: int | None = None
    address: str | None = None
    active: bool | None = None


class ZoneWrite(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    minimum_order_value: Decimal = Field(default=Decimal("0"), ge=0)


class ZoneUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    minimum_order_value: Decimal | None = Field(default=None, ge=0)


class MergeRequest(BaseModel):
    target_id: int
    source_ids: list[int] = Field(min_length=1)


# ---------- Zones ----------
@router.get("/zones", response_model=list[ZoneRead])
def list_zones(db: Session = Depends(get_db)):
    return resellers.list_zones(db)


@router.post("/zones", response_model=ZoneRead, status_code=201, dependencies=[Depends(require_admin)])
def create_zone(payload: ZoneWrite, db: Session = Depends(get_db)):
    zone = resellers.add_zone(db, payload.name, payload.minimum_order_value)
    db.commit()
    return zone


@router.put("/zones/{zone_id}", response_model=ZoneRead, dependencies=[Depends(require_admin)])
def update_zone(zone_id: int, payload: ZoneUpdate, db: Session = Depends(get_db)):
    zone = resellers.update_zone(
        db, zone_id, name=payload.name, minimum_order_value=payload.minimum_order_value
    )
    db.commit()
    return zone


@router.delete("/zones/{zone_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_zone(zone_id: int, db: Session = Depends(get_db)):
    resellers.delete_zone(db, zone_id)
    db.commit()


# ---------- Resellers ----------
@router.get("", response_model=list[ResellerRead])
def list_resellers(active_only: bool = False, db: Session = Depends(get_db)):
    return resellers.list_resellers(db, active_only=active_only)


@router.get("/duplicates", response_model=list[list[ResellerRead]])
def duplicate_resellers(db: Session = Depends(get_db)):
    return resellers.find_duplicate_resellers(db)


@router.post("/merge", dependencies=[Depends(require_admin)])
def merge_resellers(payload: MergeRequest, db: Session = Depends(get_db)):
    moved = resellers.merge_resellers(db, payload.target_id, payload.source_ids)
    db.commit()
    return {"target_id": payload.target_id, "merged": payload.source_ids, "orders_moved": moved}


@router.get("/{reseller_id}", response_model=ResellerRead)
def get_reseller(reseller_id: int, db: Session = Depends(get_db)):
    return resellers.get_reseller(db, reseller_id)


@router.post("", response_model=ResellerRead, status_code=201, dependencies=[Depends(require_admin)])
def create_reseller(payload: ResellerCreate, db: Session = Depends(get_db)):
    r = resellers.add_reseller(
        db, payload.name, zone_id=payload.zone_id, address=payload.address, active=payload.active
    )
    db.commit()
    return r


@router.put("/{reseller_id}", response_model=ResellerRead, dependencies=[Depends(require_admin)])
def update_reseller(reseller_id: int, payload: ResellerUpdate, db: Session = Depends(get_db)):
    r = resellers.update_reseller(
        db,
        reseller_id,
        name=payload.name,
        zone_id=payload.zone_id,
        address=payload.address,
        active=payload.active,
        # an explicit "zone_id": null takes the reseller out of its zone
        clear_zone="zone_id" in payload.model_fields_set and payload.zone_id is None,
    )
    db.commit()
    return r


@router.delete("/{reseller_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_reseller(reseller_id: int, db: Session = Depends(get_db)):
    resellers.delete_reseller(db, reseller_id)
    db.commit()
