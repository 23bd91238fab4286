from __future__ import annotations

from typing import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from backend.app.core.config import Settings, get_settings
from backend.app.db.session import SessionLocal
from backend.services import admin_gate
from backend.services.errors import AdminRejected
from backend.services.mailer import SmtpMailer


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_app_settings() -> Settings:
    return get_settings()


def get_mailer(settings: Settings = Depends(get_app_settings)) -> SmtpMailer:
    return SmtpMailer.from_settings(settings)


def require_admin(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> None:
    try:
        admin_gate.verify(
            db,
            x_admin_key,
            max_failures=settings.admin_max_failures,
            lockout_minutes=settings.admin_lockout_minutes,
        )
    except AdminRejected:
        # the failure counter must survive the error response
        db.commit()
        raise
    db.commit()
