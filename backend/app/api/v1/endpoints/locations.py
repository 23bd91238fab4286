from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db, require_admin
from backend.app.db.models.core_types import LocationType
from backend.services import locations as location_service
from backend.services import pricing

router = APIRouter(prefix="/locations")


class LocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: LocationType = LocationType.branch


class LocationRename(BaseModel):
    name: str = Field(min_length=1, max_length=200)


def _out(l) -> dict:
    return {"id": l.id, "name": l.name, "type": l.type.value, "active": l.active}


@router.get("")
def list_locations(db: Session = Depends(get_db)):
    return [_out(l) for l in location_service.list_locations(db)]


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def create_location(payload: LocationCreate, db: Session = Depends(get_db)):
    loc = location_service.add_location(db, payload.name, payload.type)
    db.commit()
    return _out(loc)


@router.put("/{name}", dependencies=[Depends(require_admin)])
def rename_location(name: str, payload: LocationRename, db: Session = Depends(get_db)):
    loc = location_service.rename_location(db, name, payload.name)
    db.commit()
    return _out(loc)


@router.delete("/{name}", status_code=204, dependencies=[Depends(require_admin)])
def delete_location(name: str, db: Session = Depends(get_db)):
    location_service.delete_location(db, name)
    db.commit()


@router.get("/{name}/srp")
def get_srps(name: str, db: Session = Depends(get_db)) -> dict[str, Decimal]:
    loc = location_service.resolve_location(db, name)
    return pricing.location_srps(db, loc)
