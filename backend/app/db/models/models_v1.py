from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base
from backend.app.db.models.core_types import (
    StoreName,
    CushionSize,
    ItemType,
    SaleStatus,
    SaleType,
    PaymentMethod,
    MovementType,
    WaterResistance,
)

# SQLite n'auto-incrémente que INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------- CATALOGUE ----------
class Color(Base):
    """Vocabulaire de couleurs connu du catalogue (sert au FamilyResolver)."""

    __tablename__ = "colors"
    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    hex: Mapped[str] = mapped_column(String(7), nullable=False)


class Product(Base):
    __tablename__ = "products"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str] = mapped_column(String(128), nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    sub_category: Mapped[str | None] = mapped_column(String(128))
    fabric_type: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    water_resistance: Mapped[WaterResistance] = mapped_column(
        Enum(WaterResistance, name="water_resistance"),
        default=WaterResistance.none,
        nullable=False,
    )
    # Lien explicite posé par l'assistant de création par couleurs
    variation_group_id: Mapped[str | None] = mapped_column(String(64), index=True)
    is_multi_color: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    production_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    units_sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    colors: Mapped[list["ProductColor"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductColor.position",
    )
    variations: Mapped[list["Variation"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Variation.position",
    )

    __table_args__ = (
        CheckConstraint("units_sold >= 0", name="ck_product_units_sold_nonneg"),
        Index("ix_products_family", "brand", "category", "sub_category"),
    )


class ProductColor(Base):
    __tablename__ = "product_colors"
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    hex: Mapped[str] = mapped_column(String(7), nullable=False)

    product: Mapped[Product] = relationship(back_populates="colors")

    __table_args__ = (CheckConstraint("position >= 0 AND position < 3", name="ck_product_color_max_3"),)


class Variation(Base):
    __tablename__ = "variations"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    size: Mapped[CushionSize] = mapped_column(Enum(CushionSize, name="cushion_size"), nullable=False)
    price_cover: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    price_full: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    product: Mapped[Product] = relationship(back_populates="variations")
    stocks: Mapped[list["VariationStock"]] = relationship(
        back_populates="variation",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("product_id", "size", name="uq_variation_product_size"),
        CheckConstraint("price_cover >= 0", name="ck_variation_price_cover_nonneg"),
        CheckConstraint("price_full >= 0", name="ck_variation_price_full_nonneg"),
    )


class VariationStock(Base):
    __tablename__ = "variation_stocks"
    variation_id: Mapped[int] = mapped_column(ForeignKey("variations.id", ondelete="CASCADE"), primary_key=True)
    store: Mapped[StoreName] = mapped_column(Enum(StoreName, name="store_name"), primary_key=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    variation: Mapped[Variation] = relationship(back_populates="stocks")

    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_variation_stock_nonneg"),)


# ---------- VENTES ----------
class SaleRequest(Base):
    __tablename__ = "sale_requests"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    status: Mapped[SaleStatus] = mapped_column(
        Enum(SaleStatus, name="sale_status"),
        default=SaleStatus.pending,
        nullable=False,
        index=True,
    )
    type: Mapped[SaleType] = mapped_column(Enum(SaleType, name="sale_type"), default=SaleType.sale, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(Enum(PaymentMethod, name="payment_method"), nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String(200))

    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    final_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    installments: Mapped[int | None] = mapped_column(Integer)
    net_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    total_production_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    lines: Mapped[list["SaleRequestLine"]] = relationship(
        back_populates="sale_request",
        cascade="all, delete-orphan",
        order_by="SaleRequestLine.position",
    )

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_sale_total_nonneg"),
        CheckConstraint("installments IS NULL OR installments BETWEEN 1 AND 3", name="ck_sale_installments_1_3"),
    )


class SaleRequestLine(Base):
    __tablename__ = "sale_request_lines"
    sale_request_id: Mapped[str] = mapped_column(
        ForeignKey("sale_requests.id", ondelete="CASCADE"),
        primary_key=True,
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    variation_size: Mapped[CushionSize] = mapped_column(Enum(CushionSize, name="cushion_size"), nullable=False)
    item_type: Mapped[ItemType] = mapped_column(Enum(ItemType, name="item_type"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    is_pre_order: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    sale_request: Mapped[SaleRequest] = relationship(back_populates="lines")
    product: Mapped[Product] = relationship()

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_line_qty_pos"),
        CheckConstraint("unit_price >= 0", name="ck_sale_line_unit_price_nonneg"),
    )


class CardFees(Base):
    """Taux (en %) prélevés par la maquininha, une seule ligne id=1."""

    __tablename__ = "card_fees"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    debit: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("1.0"), nullable=False)
    credit_1x: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("1.5"), nullable=False)
    credit_2x: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("2.0"), nullable=False)
    credit_3x: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("4.0"), nullable=False)


# ---------- INVENTAIRE ----------
class StockMovement(Base):
    __tablename__ = "stock_movements"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)

    variation_id: Mapped[int] = mapped_column(
        ForeignKey("variations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    store: Mapped[StoreName] = mapped_column(Enum(StoreName, name="store_name"), nullable=False)
    movement_type: Mapped[MovementType] = mapped_column(Enum(MovementType, name="movement_type"), nullable=False)
    # delta demandé et delta réellement appliqué (différents si clamp à 0)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    applied_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255))
    sale_request_id: Mapped[str | None] = mapped_column(ForeignKey("sale_requests.id", ondelete="SET NULL"))

    happened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_stock_movement_delta_nonzero"),
        CheckConstraint("quantity_after >= 0", name="ck_stock_movement_after_nonneg"),
        Index("ix_stock_movements_variation_time", "variation_id", "happened_at"),
    )
