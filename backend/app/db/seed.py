from __future__ import annotations

import logging
import os
import sys

from sqlalchemy.orm import Session

from backend.app.core.config import ConfigError
from backend.app.db.models.models_v1 import Location, Product
from backend.services import admin_gate
from backend.services.catalog import DEFAULT_CATALOG, find_product
from backend.services.locations import DEFAULT_LOCATIONS, find_location

logger = logging.getLogger(__name__)


def seed_locations(db: Session) -> int:
    added = 0
    for name, type_ in DEFAULT_LOCATIONS:
        if not find_location(db, name):
            db.add(Location(name=name, type=type_, active=True))
            added += 1
    db.flush()
    return added


def seed_catalog(db: Session) -> int:
    """Insert the default finished goods that are missing. Existing SKUs are left alone."""
    added = 0
    for sku, description in DEFAULT_CATALOG:
        if not find_product(db, sku):
            db.add(Product(sku=sku, description=description))
            added += 1
    db.flush()
    return added


def seed_admin(db: Session, passphrase: str | None) -> bool:
    if not passphrase or admin_gate.is_configured(db):
        return False
    admin_gate.set_passphrase(db, passphrase)
    return True


def run_seed(db: Session) -> dict:
    result = {
        "locations": seed_locations(db),
        "skus": seed_catalog(db),
        "admin": seed_admin(db, os.getenv("ADMIN_PASSPHRASE")),
    }
    db.commit()
    return result


def main() -> int:
    try:
        from backend.app.db.session import SessionLocal
    except ConfigError as exc:
        print(f"SEED FAILED: {exc}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        result = run_seed(db)
    finally:
        db.close()

    print(
        f"SEED OK: locations+={result['locations']}, skus+={result['skus']}, "
        f"admin passphrase {'set' if result['admin'] else 'unchanged'}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
