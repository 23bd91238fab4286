from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    String,
    Integer,
    DateTime,
    Boolean,
    Column,
    ForeignKey,
    Numeric,
    Table,
    Text,
    Enum,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base, BigIntPK, utcnow
from backend.app.db.models.core_types import (
    LocationType,
    UnitOfMeasure,
    OrderStatus,
    MovementType,
)

# ---------- MASTER DATA ----------
class Location(Base):
    __tablename__ = "kikiks_locations"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    type: Mapped[LocationType] = mapped_column(
        Enum(LocationType, name="location_type"),
        default=LocationType.branch,
        nullable=False,
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# Empty visibility set for a product means "visible everywhere"
inventory_location_visibility = Table(
    "inventory_location_visibility",
    Base.metadata,
    Column("product_id", ForeignKey("inventory.id", ondelete="CASCADE"), primary_key=True),
    Column("location_id", ForeignKey("kikiks_locations.id", ondelete="CASCADE"), primary_key=True),
)


class Product(Base):
    __tablename__ = "inventory"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    uom: Mapped[UnitOfMeasure] = mapped_column(
        Enum(UnitOfMeasure, name="unit_of_measure"),
        default=UnitOfMeasure.pcs,
        nullable=False,
    )
    reseller_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    visible_locations: Mapped[list[Location]] = relationship(
        secondary=inventory_location_visibility,
        order_by=Location.name,
    )
    stock_levels: Mapped[list["StockLevel"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def is_visible_at(self, location: Location) -> bool:
        if not self.visible_locations:
            return True
        return any(loc.id == location.id for loc in self.visible_locations)


# ---------- INVENTORY ----------
class StockLevel(Base):
    __tablename__ = "stock_levels"
    product_id: Mapped[int] = mapped_column(ForeignKey("inventory.id", ondelete="CASCADE"), primary_key=True)
    location_id: Mapped[int] = mapped_column(
        ForeignKey("kikiks_locations.id", ondelete="RESTRICT"),
        primary_key=True,
    )

    qty_on_hand: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    product: Mapped[Product] = relationship(back_populates="stock_levels")
    location: Mapped[Location] = relationship()

    __table_args__ = (CheckConstraint("qty_on_hand >= 0", name="ck_stock_on_hand_nonneg"),)


class StockMovement(Base):
    __tablename__ = "stock_movements"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("inventory.id", ondelete="SET NULL"),
        index=True,
    )
    # snapshot, survives SKU deletion and renames
    sku: Mapped[str] = mapped_column(String(64), nullable=False)
    location_id: Mapped[int] = mapped_column(ForeignKey("kikiks_locations.id", ondelete="RESTRICT"), nullable=False)

    movement_type: Mapped[MovementType] = mapped_column(Enum(MovementType, name="movement_type"), nullable=False)
    quantity_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255))

    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity_delta <> 0", name="ck_stock_movement_delta_nonzero"),
        Index("ix_stock_movements_location_time", "location_id", "created_at"),
    )


# ---------- PRICING ----------
class ResellerZone(Base):
    __tablename__ = "reseller_zones"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    minimum_order_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)

    prices: Mapped[list["ZonePrice"]] = relationship(back_populates="zone", cascade="all, delete-orphan")

    __table_args__ = (CheckConstraint("minimum_order_value >= 0", name="ck_zone_minimum_nonneg"),)


class ZonePrice(Base):
    __tablename__ = "zone_prices"
    zone_id: Mapped[int] = mapped_column(ForeignKey("reseller_zones.id", ondelete="CASCADE"), primary_key=True)
    sku_prefix: Mapped[str] = mapped_column(String(16), primary_key=True)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    zone: Mapped[ResellerZone] = relationship(back_populates="prices")

    __table_args__ = (CheckConstraint("price >= 0", name="ck_zone_price_nonneg"),)


class LocationSRP(Base):
    __tablename__ = "location_srps"
    location_id: Mapped[int] = mapped_column(ForeignKey("kikiks_locations.id", ondelete="CASCADE"), primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), primary_key=True)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    __table_args__ = (CheckConstraint("price >= 0", name="ck_location_srp_nonneg"),)


# ---------- RESELLERS ----------
class Reseller(Base):
    __tablename__ = "resellers"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    zone_id: Mapped[int | None] = mapped_column(ForeignKey("reseller_zones.id", ondelete="SET NULL"))
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    address: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    zone: Mapped[ResellerZone | None] = relationship()


# ---------- ORDERS ----------
ORDER_STATUS = Enum(OrderStatus, name="order_status")


class ResellerOrder(Base):
    __tablename__ = "reseller_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    reseller_id: Mapped[int | None] = mapped_column(ForeignKey("resellers.id", ondelete="SET NULL"), index=True)
    # denormalised copies, kept for history
    reseller_name: Mapped[str] = mapped_column(String(255), nullable=False)
    zone_name: Mapped[str | None] = mapped_column(String(200))
    address: Mapped[str | None] = mapped_column(Text)

    source_location_id: Mapped[int] = mapped_column(
        ForeignKey("kikiks_locations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        ORDER_STATUS,
        default=OrderStatus.unread,
        nullable=False,
    )
    is_deducted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_packing_list: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    reseller: Mapped[Reseller | None] = relationship()
    source_location: Mapped[Location] = relationship()
    lines: Mapped[list["ResellerOrderLine"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ResellerOrderLine.sku",
    )

    __table_args__ = (
        CheckConstraint("NOT (status = 'cancelled' AND is_deducted)", name="ck_reseller_order_cancel_not_deducted"),
    )


class ResellerOrderLine(Base):
    __tablename__ = "reseller_order_lines"
    order_id: Mapped[int] = mapped_column(ForeignKey("reseller_orders.id", ondelete="CASCADE"), primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), primary_key=True)
    description: Mapped[str | None] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)

    order: Mapped[ResellerOrder] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_reseller_line_qty_pos"),
        CheckConstraint("unit_price >= 0", name="ck_reseller_line_price_nonneg"),
    )


class TransferOrder(Base):
    __tablename__ = "transfer_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    from_location_id: Mapped[int] = mapped_column(
        ForeignKey("kikiks_locations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    destination_location_id: Mapped[int] = mapped_column(
        ForeignKey("kikiks_locations.id", ondelete="RESTRICT"),
        nullable=False,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        ORDER_STATUS,
        default=OrderStatus.unread,
        nullable=False,
    )
    is_deducted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_packing_list: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    from_location: Mapped[Location] = relationship(foreign_keys=[from_location_id])
    destination: Mapped[Location] = relationship(foreign_keys=[destination_location_id])
    lines: Mapped[list["TransferOrderLine"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="TransferOrderLine.sku",
    )

    __table_args__ = (
        CheckConstraint("from_location_id <> destination_location_id", name="ck_transfer_locations_differ"),
        CheckConstraint("NOT (status = 'cancelled' AND is_deducted)", name="ck_transfer_order_cancel_not_deducted"),
    )


class TransferOrderLine(Base):
    __tablename__ = "transfer_order_lines"
    order_id: Mapped[int] = mapped_column(ForeignKey("transfer_orders.id", ondelete="CASCADE"), primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), primary_key=True)
    description: Mapped[str | None] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, nullable=False)

    order: Mapped[TransferOrder] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transfer_line_qty_pos"),
        CheckConstraint("unit_price >= 0", name="ck_transfer_line_price_nonneg"),
    )


# ---------- SETTINGS ----------
class AppSetting(Base):
    __tablename__ = "app_settings"
    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
