from __future__ import annotations

from dataclasses import asdict

import pandas as pd
from sqlalchemy.orm import Session

from backend.services.inventory import list_inventory

INVENTORY_COLUMNS = ["location", "sku", "description", "uom", "qty_on_hand"]


def inventory_frame(db: Session, location: str | None = None) -> pd.DataFrame:
    rows = [asdict(r) for r in list_inventory(db, location)]
    return pd.DataFrame(rows, columns=INVENTORY_COLUMNS)


def inventory_csv(db: Session, location: str | None = None) -> str:
    return inventory_frame(db, location).to_csv(index=False)
