from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_app_settings, get_db, require_admin
from backend.app.core.config import Settings
from backend.services import admin_gate
from backend.services.errors import AdminRejected

router = APIRouter(prefix="/admin")


class PassphraseChange(BaseModel):
    current: str = Field(min_length=1)
    new: str
    confirm: str = Field(min_length=1)


@router.get("/status")
def gate_status(db: Session = Depends(get_db)):
    return {"configured": admin_gate.is_configured(db)}


@router.post("/verify", dependencies=[Depends(require_admin)])
def verify():
    return {"ok": True}


@router.put("/passphrase")
def change_passphrase(
    payload: PassphraseChange,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    try:
        admin_gate.change_passphrase(
            db,
            current=payload.current,
            new=payload.new,
            confirm=payload.confirm,
            max_failures=settings.admin_max_failures,
            lockout_minutes=settings.admin_lockout_minutes,
        )
    except AdminRejected:
        db.commit()
        raise
    db.commit()
    return {"ok": True}
