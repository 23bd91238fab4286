"""
Reseller and transfer orders: intake and lifecycle.

Status flow::

    Unread <-> Read -> Completed -> Cancelled
    Unread/Read ------------------> Cancelled

Stock moves only on completion (and back on cancellation of a completed
order). The "deducted" flag is claimed with a single conditional UPDATE in the
same transaction as the stock deltas, so an order is deducted at most once
even when two completions race.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Union

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from backend.app.db.base import utcnow
from backend.app.db.models.models_v1 import (
    Location,
    Product,
    Reseller,
    ResellerOrder,
    ResellerOrderLine,
    StockMovement,
    TransferOrder,
    TransferOrderLine,
)
from backend.app.db.models.core_types import MovementType, OrderStatus
from backend.services.catalog import find_product
from backend.services.errors import AmbiguousItem, Conflict, InvalidInput, NotFound
from backend.services.inventory import apply_delta
from backend.services.locations import find_location, resolve_location
from backend.services.pricing import (
    resolve_reseller_price,
    resolve_transfer_price,
    sku_prefix,
)

logger = logging.getLogger(__name__)

Order = Union[ResellerOrder, TransferOrder]

# Cups are packed by tens
CUP_PREFIX = "FGC"
CUP_MULTIPLE = 10

ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.unread: {OrderStatus.read, OrderStatus.completed, OrderStatus.cancelled},
    OrderStatus.read: {OrderStatus.unread, OrderStatus.completed, OrderStatus.cancelled},
    OrderStatus.completed: {OrderStatus.cancelled},
    OrderStatus.cancelled: set(),
}


@dataclass
class CompletionResult:
    order: Order
    applied: bool
    unmatched: list[str] = field(default_factory=list)


# ---------- Helpers ----------
def _order_kind(order: Order) -> str:
    return "reseller" if isinstance(order, ResellerOrder) else "transfer"


def _clean_items(items: Mapping[str, int]) -> dict[str, int]:
    cleaned: dict[str, int] = {}
    for raw_sku, qty in items.items():
        sku = str(raw_sku).strip().upper()
        if not sku:
            raise InvalidInput("Item SKU is required")
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise InvalidInput(f"Quantity for {sku} must be an integer")
        if qty < 0:
            raise InvalidInput(f"Quantity for {sku} must be positive")
        if qty == 0:
            continue
        cleaned[sku] = cleaned.get(sku, 0) + qty

    if not cleaned:
        raise InvalidInput("Please add at least one item to the order.")
    return cleaned


def _catalog_lookup(db: Session, skus) -> dict[str, Product]:
    found = {}
    for sku in skus:
        p = find_product(db, sku)
        if not p:
            raise InvalidInput(f"Unknown SKU {sku}")
        found[sku] = p
    return found


def resolve_line_product(db: Session, sku: str, description: str | None) -> Product | None:
    """
    Match an order line to a catalog product.

    SKU first; when the SKU no longer exists (renamed or deleted), fall back to
    a case-insensitive match on the description captured with the line. Two
    products sharing that description is an error, not a guess.
    """
    p = find_product(db, sku)
    if p:
        return p
    if not description or not description.strip():
        return None

    matches = (
        db.execute(
            select(Product)
            .where(func.lower(Product.description) == description.strip().lower())
            .order_by(Product.id)
        )
        .scalars()
        .all()
    )
    if len(matches) > 1:
        skus = ", ".join(m.sku for m in matches)
        raise AmbiguousItem(f"Item '{description}' ({sku}) matches several SKUs: {skus}")
    return matches[0] if matches else None


# ---------- Intake ----------
def create_reseller_order(
    db: Session,
    *,
    reseller_id: int,
    items: Mapping[str, int],
    source_location: str,
    address: str | None = None,
) -> ResellerOrder:
    reseller = db.get(Reseller, reseller_id)
    if not reseller:
        raise InvalidInput("Please select a reseller.")
    if not reseller.active:
        raise InvalidInput(f"Reseller '{reseller.name}' is inactive")

    cleaned = _clean_items(items)
    products = _catalog_lookup(db, cleaned)

    for sku, qty in cleaned.items():
        if not products[sku].reseller_visible:
            raise InvalidInput(f"{sku} is not available for reseller orders")
        if sku_prefix(sku) == CUP_PREFIX and qty % CUP_MULTIPLE != 0:
            raise InvalidInput(
                f"Order for {sku} must be in multiples of {CUP_MULTIPLE} "
                f"(e.g., 10, 20, 30). Current: {qty}"
            )

    source = find_location(db, source_location)
    if not source:
        raise NotFound(f"Source location '{source_location}' is not configured")

    zone = reseller.zone
    order = ResellerOrder(
        reseller_id=reseller.id,
        reseller_name=reseller.name,
        zone_name=zone.name if zone else None,
        address=address if address is not None else reseller.address,
        source_location_id=source.id,
        status=OrderStatus.unread,
        is_deducted=False,
    )

    total = Decimal("0")
    for sku, qty in cleaned.items():
        price = resolve_reseller_price(db, sku, zone)
        total += price * qty
        order.lines.append(
            ResellerOrderLine(sku=sku, description=products[sku].description, quantity=qty, unit_price=price)
        )
    order.total_amount = total

    minimum = Decimal(zone.minimum_order_value) if zone else Decimal("0")
    if total < minimum:
        raise InvalidInput(
            f"The minimum order requirement for {zone.name} is {minimum:,.2f}. "
            f"Your current total is {total:,.2f}."
        )

    db.add(order)
    db.flush()
    logger.info("reseller order %s created for %s (total=%s)", order.id, reseller.name, total)
    return order


def create_transfer_order(
    db: Session,
    *,
    from_location: str,
    destination: str,
    items: Mapping[str, int],
) -> TransferOrder:
    if not from_location or not from_location.strip():
        raise InvalidInput("Please select a FROM location")
    if not destination or not destination.strip():
        raise InvalidInput("Please select a TO location")

    src = find_location(db, from_location)
    dst = find_location(db, destination)
    if not src or not dst:
        raise InvalidInput(f"Unknown location '{from_location if not src else destination}'")
    if src.id == dst.id:
        raise InvalidInput("FROM and TO locations cannot be the same")

    cleaned = _clean_items(items)
    products = _catalog_lookup(db, cleaned)

    order = TransferOrder(
        from_location_id=src.id,
        destination_location_id=dst.id,
        status=OrderStatus.unread,
        is_deducted=False,
    )
    total = Decimal("0")
    for sku, qty in cleaned.items():
        price = resolve_transfer_price(db, sku, dst)
        total += price * qty
        order.lines.append(
            TransferOrderLine(sku=sku, description=products[sku].description, quantity=qty, unit_price=price)
        )
    order.total_amount = total

    db.add(order)
    db.flush()
    logger.info("transfer order %s created: %s -> %s", order.id, src.name, dst.name)
    return order


def update_order_lines(db: Session, order: Order, items: Mapping[str, int]) -> Order:
    """Replace the lines of an order that has not moved stock yet."""
    if order.status in (OrderStatus.completed, OrderStatus.cancelled) or order.is_deducted:
        raise Conflict(f"Order is {order.status.value} and can no longer be edited")

    cleaned = _clean_items(items)
    products = _catalog_lookup(db, cleaned)

    if isinstance(order, ResellerOrder):
        zone = order.reseller.zone if order.reseller else None
        line_cls = ResellerOrderLine
        price_of = lambda sku: resolve_reseller_price(db, sku, zone)  # noqa: E731
    else:
        line_cls = TransferOrderLine
        price_of = lambda sku: resolve_transfer_price(db, sku, order.destination)  # noqa: E731

    order.lines.clear()
    db.flush()

    total = Decimal("0")
    for sku, qty in cleaned.items():
        price = price_of(sku)
        total += price * qty
        order.lines.append(line_cls(sku=sku, description=products[sku].description, quantity=qty, unit_price=price))
    order.total_amount = total
    db.flush()
    return order


# ---------- Lookup ----------
def get_reseller_order(db: Session, order_id: int) -> ResellerOrder:
    order = db.get(ResellerOrder, order_id)
    if not order:
        raise NotFound("Reseller order not found")
    return order


def get_transfer_order(db: Session, order_id: int) -> TransferOrder:
    order = db.get(TransferOrder, order_id)
    if not order:
        raise NotFound("Transfer order not found")
    return order


def list_reseller_orders(db: Session, status: OrderStatus | None = None) -> list[ResellerOrder]:
    stmt = select(ResellerOrder).order_by(ResellerOrder.created_at.desc(), ResellerOrder.id.desc())
    if status is not None:
        stmt = stmt.where(ResellerOrder.status == status)
    return list(db.execute(stmt).scalars().all())


def list_transfer_orders(
    db: Session,
    status: OrderStatus | None = None,
    location: str | None = None,
) -> list[TransferOrder]:
    stmt = select(TransferOrder).order_by(TransferOrder.created_at.desc(), TransferOrder.id.desc())
    if status is not None:
        stmt = stmt.where(TransferOrder.status == status)
    if location is not None:
        loc = resolve_location(db, location)
        stmt = stmt.where(
            or_(
                TransferOrder.from_location_id == loc.id,
                TransferOrder.destination_location_id == loc.id,
            )
        )
    return list(db.execute(stmt).scalars().all())


# ---------- Lifecycle ----------
def _deltas_for(db: Session, order: Order) -> tuple[list[tuple[Product, Location, int, MovementType]], list[str]]:
    """Aggregate per (product, location) so each pair moves once per order."""
    per_product: dict[int, int] = defaultdict(int)
    products: dict[int, Product] = {}
    unmatched: list[str] = []

    for line in order.lines:
        p = resolve_line_product(db, line.sku, line.description)
        if p is None:
            unmatched.append(line.sku)
            continue
        products[p.id] = p
        per_product[p.id] += line.quantity

    deltas = []
    for pid, qty in per_product.items():
        p = products[pid]
        if isinstance(order, ResellerOrder):
            deltas.append((p, order.source_location, -qty, MovementType.order_deduction))
        else:
            deltas.append((p, order.from_location, -qty, MovementType.transfer_out))
            deltas.append((p, order.destination, qty, MovementType.transfer_in))
    return deltas, unmatched


def complete_order(db: Session, order: Order) -> CompletionResult:
    """
    Mark an order Completed and move its stock, at most once.

    The claim ``UPDATE ... WHERE is_deducted = false`` is the only guard; a
    second (or concurrent) completion affects no row and moves nothing. If any
    line cannot be applied the caller's rollback undoes the claim as well.
    """
    if order.status == OrderStatus.cancelled:
        raise Conflict("Cancelled orders cannot be completed")

    model = type(order)
    claimed = db.execute(
        update(model)
        .where(model.id == order.id)
        .where(model.is_deducted.is_(False))
        .where(model.status != OrderStatus.cancelled)
        .values(status=OrderStatus.completed, is_deducted=True, completed_at=utcnow())
        .execution_options(synchronize_session=False)
    ).rowcount
    db.refresh(order)

    if claimed != 1:
        logger.info("%s order %s already deducted, nothing to apply", _order_kind(order), order.id)
        return CompletionResult(order=order, applied=False)

    deltas, unmatched = _deltas_for(db, order)
    kind = _order_kind(order)
    for product, location, delta, movement_type in deltas:
        apply_delta(
            db,
            product=product,
            location=location,
            delta=delta,
            movement_type=movement_type,
            idempotency_key=f"{kind}:{order.id}:apply:{product.id}:{location.id}",
            reason=f"{kind} order {order.id} completed",
        )

    if unmatched:
        logger.warning("%s order %s: no product for %s, skipped", kind, order.id, ", ".join(unmatched))
    return CompletionResult(order=order, applied=True, unmatched=unmatched)


def cancel_order(db: Session, order: Order) -> bool:
    """
    Cancel an order. A deducted order gets its stock movements reversed.

    Returns True when stock was restored. Both branches are conditional
    updates on ``is_deducted``; a completion that lands between them is
    released on the second pass.
    """
    if order.status == OrderStatus.cancelled:
        return False

    model = type(order)
    kind = _order_kind(order)

    for _ in range(2):
        released = db.execute(
            update(model)
            .where(model.id == order.id)
            .where(model.is_deducted.is_(True))
            .values(status=OrderStatus.cancelled, is_deducted=False)
            .execution_options(synchronize_session=False)
        ).rowcount
        if released == 1:
            break

        # never deducted: a plain status change
        plain = db.execute(
            update(model)
            .where(model.id == order.id)
            .where(model.is_deducted.is_(False))
            .where(model.status != OrderStatus.cancelled)
            .values(status=OrderStatus.cancelled)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.refresh(order)
        if plain == 1 or order.status == OrderStatus.cancelled:
            return False
    else:
        raise Conflict(f"{kind} order {order.id} changed while cancelling, try again")

    db.refresh(order)
    applied = (
        db.execute(
            select(StockMovement)
            .where(StockMovement.idempotency_key.like(f"{kind}:{order.id}:apply:%"))
            .order_by(StockMovement.id)
        )
        .scalars()
        .all()
    )
    for mv in applied:
        if mv.product_id is None:
            logger.warning("%s order %s: %s was deleted, not restocked", kind, order.id, mv.sku)
            continue
        product = db.get(Product, mv.product_id)
        location = db.get(Location, mv.location_id)
        apply_delta(
            db,
            product=product,
            location=location,
            delta=-mv.quantity_delta,
            movement_type=MovementType.order_restock,
            idempotency_key=f"{kind}:{order.id}:revert:{mv.product_id}:{mv.location_id}",
            reason=f"{kind} order {order.id} cancelled",
        )

    logger.info("%s order %s cancelled, %d movements reverted", kind, order.id, len(applied))
    return True


def change_status(db: Session, order: Order, status: OrderStatus) -> CompletionResult:
    if status == OrderStatus.completed:
        return complete_order(db, order)
    if status == OrderStatus.cancelled:
        restocked = cancel_order(db, order)
        return CompletionResult(order=order, applied=restocked)

    if status == order.status:
        return CompletionResult(order=order, applied=False)
    if status not in ALLOWED_TRANSITIONS[order.status]:
        raise Conflict(f"Cannot move order from {order.status.value} to {status.value}")

    order.status = status
    db.flush()
    return CompletionResult(order=order, applied=False)


def mark_read(db: Session, order: Order) -> Order:
    if order.status == OrderStatus.unread:
        change_status(db, order, OrderStatus.read)
    return order


def delete_order(db: Session, order: Order) -> None:
    if order.is_deducted:
        cancel_order(db, order)
    db.delete(order)
    db.flush()
    logger.info("%s order %s deleted", _order_kind(order), order.id)
