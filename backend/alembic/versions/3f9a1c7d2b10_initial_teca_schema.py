"""initial teca schema: catalogue, stock par magasin, pedidos, mouvements

Revision ID: 3f9a1c7d2b10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f9a1c7d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Les enums SQLAlchemy stockent le NOM du membre (ASCII), pas la valeur affichée
ENUMS = {
    "store_name": ("teca", "ione"),
    "cushion_size": ("square_40", "square_45", "square_50", "square_60", "lumbar"),
    "item_type": ("cover", "full"),
    "sale_status": ("pending", "completed"),
    "sale_type": ("sale", "preorder"),
    "payment_method": ("pix", "debit", "credit", "card_online", "whatsapp", "cash"),
    "movement_type": ("sale", "adjustment"),
    "water_resistance": ("none", "semi", "full"),
}


def _enum(name: str) -> sa.Enum:
    # type créé une seule fois dans upgrade(), réutilisé par plusieurs tables
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False).with_variant(
        sa.Enum(*ENUMS[name], name=name), "sqlite"
    )


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "colors",
        sa.Column("name", sa.String(64), primary_key=True),
        sa.Column("hex", sa.String(7), nullable=False),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("brand", sa.String(128), nullable=False),
        sa.Column("category", sa.String(128), nullable=False),
        sa.Column("sub_category", sa.String(128)),
        sa.Column("fabric_type", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("water_resistance", _enum("water_resistance"), nullable=False),
        sa.Column("variation_group_id", sa.String(64)),
        sa.Column("is_multi_color", sa.Boolean(), nullable=False),
        sa.Column("production_cost", sa.Numeric(12, 2)),
        sa.Column("units_sold", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("units_sold >= 0", name="ck_product_units_sold_nonneg"),
    )
    op.create_index("ix_products_variation_group_id", "products", ["variation_group_id"])
    op.create_index("ix_products_family", "products", ["brand", "category", "sub_category"])

    op.create_table(
        "product_colors",
        sa.Column("product_id", sa.String(32), sa.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("hex", sa.String(7), nullable=False),
        sa.CheckConstraint("position >= 0 AND position < 3", name="ck_product_color_max_3"),
    )

    op.create_table(
        "variations",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True),
        sa.Column("product_id", sa.String(32), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("size", _enum("cushion_size"), nullable=False),
        sa.Column("price_cover", sa.Numeric(12, 2), nullable=False),
        sa.Column("price_full", sa.Numeric(12, 2), nullable=False),
        sa.UniqueConstraint("product_id", "size", name="uq_variation_product_size"),
        sa.CheckConstraint("price_cover >= 0", name="ck_variation_price_cover_nonneg"),
        sa.CheckConstraint("price_full >= 0", name="ck_variation_price_full_nonneg"),
    )
    op.create_index("ix_variations_product_id", "variations", ["product_id"])

    op.create_table(
        "variation_stocks",
        sa.Column("variation_id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), sa.ForeignKey("variations.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("store", _enum("store_name"), primary_key=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_variation_stock_nonneg"),
    )

    op.create_table(
        "sale_requests",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("status", _enum("sale_status"), nullable=False),
        sa.Column("type", _enum("sale_type"), nullable=False),
        sa.Column("payment_method", _enum("payment_method"), nullable=False),
        sa.Column("customer_name", sa.String(200)),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount", sa.Numeric(12, 2)),
        sa.Column("final_price", sa.Numeric(12, 2)),
        sa.Column("installments", sa.Integer()),
        sa.Column("net_value", sa.Numeric(12, 2)),
        sa.Column("total_production_cost", sa.Numeric(12, 2)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("total_price >= 0", name="ck_sale_total_nonneg"),
        sa.CheckConstraint("installments IS NULL OR installments BETWEEN 1 AND 3", name="ck_sale_installments_1_3"),
    )
    op.create_index("ix_sale_requests_status", "sale_requests", ["status"])

    op.create_table(
        "sale_request_lines",
        sa.Column("sale_request_id", sa.String(32), sa.ForeignKey("sale_requests.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer(), primary_key=True),
        sa.Column("product_id", sa.String(32), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("variation_size", _enum("cushion_size"), nullable=False),
        sa.Column("item_type", _enum("item_type"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("is_pre_order", sa.Boolean(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_sale_line_qty_pos"),
        sa.CheckConstraint("unit_price >= 0", name="ck_sale_line_unit_price_nonneg"),
    )
    op.create_index("ix_sale_request_lines_product_id", "sale_request_lines", ["product_id"])

    op.create_table(
        "card_fees",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("debit", sa.Numeric(5, 2), nullable=False),
        sa.Column("credit_1x", sa.Numeric(5, 2), nullable=False),
        sa.Column("credit_2x", sa.Numeric(5, 2), nullable=False),
        sa.Column("credit_3x", sa.Numeric(5, 2), nullable=False),
    )

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True),
        sa.Column("variation_id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), sa.ForeignKey("variations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("store", _enum("store_name"), nullable=False),
        sa.Column("movement_type", _enum("movement_type"), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("applied_delta", sa.Integer(), nullable=False),
        sa.Column("quantity_after", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255)),
        sa.Column("sale_request_id", sa.String(32), sa.ForeignKey("sale_requests.id", ondelete="SET NULL")),
        sa.Column("happened_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("idempotency_key", sa.String(128), nullable=False, unique=True),
        sa.CheckConstraint("delta <> 0", name="ck_stock_movement_delta_nonzero"),
        sa.CheckConstraint("quantity_after >= 0", name="ck_stock_movement_after_nonneg"),
    )
    op.create_index("ix_stock_movements_variation_id", "stock_movements", ["variation_id"])
    op.create_index("ix_stock_movements_variation_time", "stock_movements", ["variation_id", "happened_at"])


def downgrade() -> None:
    op.drop_table("stock_movements")
    op.drop_table("card_fees")
    op.drop_table("sale_request_lines")
    op.drop_table("sale_requests")
    op.drop_table("variation_stocks")
    op.drop_table("variations")
    op.drop_table("product_colors")
    op.drop_table("products")
    op.drop_table("colors")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in reversed(list(ENUMS)):
            postgresql.ENUM(name=name).drop(bind, checkfirst=True)
