"""initial schema

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-01-05
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1a9c2d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

location_type = postgresql.ENUM("warehouse", "branch", name="location_type", create_type=False)
unit_of_measure = postgresql.ENUM("pcs", "box", "pack", "kg", "liter", name="unit_of_measure", create_type=False)
movement_type = postgresql.ENUM(
    "adjustment",
    "order_deduction",
    "order_restock",
    "transfer_out",
    "transfer_in",
    name="movement_type",
    create_type=False,
)
order_status = postgresql.ENUM("unread", "read", "completed", "cancelled", name="order_status", create_type=False)


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    # enum types are shared between tables, create them once up front
    bind = op.get_bind()
    for enum in (location_type, unit_of_measure, movement_type, order_status):
        enum.create(bind, checkfirst=True)

    op.create_table(
        "kikiks_locations",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("type", location_type, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "inventory",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("uom", unit_of_measure, nullable=False),
        sa.Column("reseller_visible", sa.Boolean(), nullable=False),
        _ts("created_at"),
    )

    op.create_table(
        "inventory_location_visibility",
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "location_id",
            sa.BigInteger(),
            sa.ForeignKey("kikiks_locations.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "stock_levels",
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "location_id",
            sa.BigInteger(),
            sa.ForeignKey("kikiks_locations.id", ondelete="RESTRICT"),
            primary_key=True,
        ),
        sa.Column("qty_on_hand", sa.Integer(), nullable=False, server_default="0"),
        _ts("updated_at"),
        sa.CheckConstraint("qty_on_hand >= 0", name="ck_stock_on_hand_nonneg"),
    )

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory.id", ondelete="SET NULL")),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column(
            "location_id",
            sa.BigInteger(),
            sa.ForeignKey("kikiks_locations.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("movement_type", movement_type, nullable=False),
        sa.Column("quantity_delta", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255)),
        sa.Column("idempotency_key", sa.String(128), nullable=False, unique=True),
        _ts("created_at"),
        sa.CheckConstraint("quantity_delta <> 0", name="ck_stock_movement_delta_nonzero"),
    )
    op.create_index("ix_stock_movements_product_id", "stock_movements", ["product_id"])
    op.create_index("ix_stock_movements_location_time", "stock_movements", ["location_id", "created_at"])

    op.create_table(
        "reseller_zones",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("minimum_order_value", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.CheckConstraint("minimum_order_value >= 0", name="ck_zone_minimum_nonneg"),
    )

    op.create_table(
        "zone_prices",
        sa.Column(
            "zone_id",
            sa.BigInteger(),
            sa.ForeignKey("reseller_zones.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("sku_prefix", sa.String(16), primary_key=True),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        _ts("updated_at"),
        sa.CheckConstraint("price >= 0", name="ck_zone_price_nonneg"),
    )

    op.create_table(
        "location_srps",
        sa.Column(
            "location_id",
            sa.BigInteger(),
            sa.ForeignKey("kikiks_locations.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("sku", sa.String(64), primary_key=True),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_location_srp_nonneg"),
    )

    op.create_table(
        "resellers",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("zone_id", sa.BigInteger(), sa.ForeignKey("reseller_zones.id", ondelete="SET NULL")),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("address", sa.Text()),
        _ts("created_at"),
    )
    op.create_index("ix_resellers_name", "resellers", ["name"])

    op.create_table(
        "reseller_orders",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("reseller_id", sa.BigInteger(), sa.ForeignKey("resellers.id", ondelete="SET NULL")),
        sa.Column("reseller_name", sa.String(255), nullable=False),
        sa.Column("zone_name", sa.String(200)),
        sa.Column("address", sa.Text()),
        sa.Column(
            "source_location_id",
            sa.BigInteger(),
            sa.ForeignKey("kikiks_locations.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("status", order_status, nullable=False),
        sa.Column("is_deducted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_packing_list", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
        _ts("completed_at", nullable=True),
        sa.CheckConstraint(
            "NOT (status = 'cancelled' AND is_deducted)",
            name="ck_reseller_order_cancel_not_deducted",
        ),
    )
    op.create_index("ix_reseller_orders_reseller_id", "reseller_orders", ["reseller_id"])

    op.create_table(
        "reseller_order_lines",
        sa.Column(
            "order_id",
            sa.BigInteger(),
            sa.ForeignKey("reseller_orders.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("sku", sa.String(64), primary_key=True),
        sa.Column("description", sa.String(255)),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.CheckConstraint("quantity > 0", name="ck_reseller_line_qty_pos"),
        sa.CheckConstraint("unit_price >= 0", name="ck_reseller_line_price_nonneg"),
    )

    op.create_table(
        "transfer_orders",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "from_location_id",
            sa.BigInteger(),
            sa.ForeignKey("kikiks_locations.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "destination_location_id",
            sa.BigInteger(),
            sa.ForeignKey("kikiks_locations.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("status", order_status, nullable=False),
        sa.Column("is_deducted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_packing_list", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
        _ts("completed_at", nullable=True),
        sa.CheckConstraint("from_location_id <> destination_location_id", name="ck_transfer_locations_differ"),
        sa.CheckConstraint(
            "NOT (status = 'cancelled' AND is_deducted)",
            name="ck_transfer_order_cancel_not_deducted",
        ),
    )

    op.create_table(
        "transfer_order_lines",
        sa.Column(
            "order_id",
            sa.BigInteger(),
            sa.ForeignKey("transfer_orders.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("sku", sa.String(64), primary_key=True),
        sa.Column("description", sa.String(255)),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.CheckConstraint("quantity > 0", name="ck_transfer_line_qty_pos"),
        sa.CheckConstraint("unit_price >= 0", name="ck_transfer_line_price_nonneg"),
    )

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(64), primary_key=True),
        sa.Column("value", sa.JSON()),
        _ts("updated_at"),
    )


def downgrade() -> None:
    for table in (
        "app_settings",
        "transfer_order_lines",
        "transfer_orders",
        "reseller_order_lines",
        "reseller_orders",
        "resellers",
        "location_srps",
        "zone_prices",
        "reseller_zones",
        "stock_movements",
        "stock_levels",
        "inventory_location_visibility",
        "inventory",
        "kikiks_locations",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (order_status, movement_type, unit_of_measure, location_type):
        enum.drop(bind, checkfirst=True)
