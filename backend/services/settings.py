from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from backend.app.db.models.models_v1 import AppSetting


def get_setting(db: Session, key: str, default: Any = None) -> Any:
    row = db.get(AppSetting, key)
    if row is None or row.value is None:
        return default
    return row.value


def put_setting(db: Session, key: str, value: Any) -> AppSetting:
    # upsert on the primary key
    row = db.get(AppSetting, key)
    if row is None:
        row = AppSetting(key=key, value=value)
        db.add(row)
    else:
        row.value = value
    db.flush()
    return row
