"""
Maintenance commands for the Kikiks database.

    python -m backend.scripts.maintenance check
    python -m backend.scripts.maintenance duplicates
    python -m backend.scripts.maintenance merge-resellers TARGET_ID SOURCE_ID [SOURCE_ID ...]
    python -m backend.scripts.maintenance restore-catalog
"""
from __future__ import annotations

import argparse
import logging
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.core.config import ConfigError
from backend.app.db.models.models_v1 import (
    Location,
    Product,
    Reseller,
    ResellerOrder,
    StockLevel,
    TransferOrder,
)
from backend.app.db.seed import seed_catalog
from backend.services import resellers
from backend.services.errors import ServiceError

logger = logging.getLogger("backend.scripts.maintenance")


def _count(db: Session, model) -> int:
    return int(db.execute(select(func.count()).select_from(model)).scalar_one())


def collect_summary(db: Session, recent: int = 5) -> dict:
    negative = db.execute(
        select(func.count()).select_from(StockLevel).where(StockLevel.qty_on_hand < 0)
    ).scalar_one()
    recent_orders = (
        db.execute(select(ResellerOrder).order_by(ResellerOrder.created_at.desc()).limit(recent))
        .scalars()
        .all()
    )
    return {
        "locations": _count(db, Location),
        "skus": _count(db, Product),
        "resellers": _count(db, Reseller),
        "reseller_orders": _count(db, ResellerOrder),
        "transfer_orders": _count(db, TransferOrder),
        "negative_stock_rows": int(negative),
        "recent_orders": [
            (o.id, o.reseller_name, o.status.value, "deducted" if o.is_deducted else "-") for o in recent_orders
        ],
    }


def cmd_check(db: Session) -> int:
    summary = collect_summary(db)
    for key in ("locations", "skus", "resellers", "reseller_orders", "transfer_orders"):
        print(f"{key:<16} {summary[key]}")
    print("Recent reseller orders:")
    for order_id, name, status, deducted in summary["recent_orders"]:
        print(f" - #{order_id} {name} [{status}] {deducted}")
    if summary["negative_stock_rows"]:
        print(f"⚠️ {summary['negative_stock_rows']} stock rows below zero")
        return 1
    print("✅ Stock levels look sane")
    return 0


def cmd_duplicates(db: Session) -> int:
    groups = resellers.find_duplicate_resellers(db)
    if not groups:
        print("✅ No duplicate resellers")
        return 0
    for group in groups:
        print(" / ".join(f"#{r.id} {r.name}" for r in group))
    return 1


def cmd_merge(db: Session, target_id: int, source_ids: Sequence[int]) -> int:
    moved = resellers.merge_resellers(db, target_id, list(source_ids))
    db.commit()
    print(f"MERGE OK: {len(source_ids)} resellers merged into #{target_id}, {moved} orders moved")
    return 0


def cmd_restore_catalog(db: Session) -> int:
    added = seed_catalog(db)
    db.commit()
    print(f"RESTORE OK: {added} missing SKUs re-inserted")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Kikiks database maintenance")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("check", help="Row counts, recent orders, negative stock")
    sub.add_parser("duplicates", help="List resellers whose names only differ in case or punctuation")
    merge = sub.add_parser("merge-resellers", help="Move orders to TARGET and delete the SOURCE resellers")
    merge.add_argument("target", type=int)
    merge.add_argument("sources", type=int, nargs="+")
    sub.add_parser("restore-catalog", help="Re-insert missing default SKUs")
    return parser


def run(db: Session, args: argparse.Namespace) -> int:
    if args.command == "check":
        return cmd_check(db)
    if args.command == "duplicates":
        return cmd_duplicates(db)
    if args.command == "merge-resellers":
        return cmd_merge(db, args.target, args.sources)
    return cmd_restore_catalog(db)


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    args = build_parser().parse_args(argv)

    try:
        from backend.app.db.session import SessionLocal
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2

    db = SessionLocal()
    try:
        return run(db, args)
    except ServiceError as exc:
        db.rollback()
        logger.error("%s failed: %s", args.command, exc.message)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
