"""
CartReconciler : découpe une quantité demandée en lignes "en stock" / "encomenda".

Règle métier :
    available_now = max(0, stock physique (A + B) - déjà réservé)
    immediate     = min(demandé, available_now)
    preorder      = demandé - immediate

Propriétés :
- pur, déterministe, idempotent (mêmes entrées -> même découpage)
- ne modifie JAMAIS le stock (lecture seule)
- à recalculer, jamais à mettre en cache, dès que stock ou réservations changent
- stock insuffisant n'est pas une erreur : le reste part en encomenda
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.core_types import CushionSize, ItemType, SaleStatus
from backend.app.db.models.models_v1 import SaleRequest, SaleRequestLine, Variation
from backend.services.ledger import physical_stock, stock_map

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Allocation:
    immediate: int
    preorder: int


@dataclass(frozen=True)
class CartLine:
    product_id: str
    variation_size: CushionSize
    item_type: ItemType
    quantity: int
    is_pre_order: bool
    unit_price: Decimal | None = None


class CartLineLike(Protocol):
    product_id: str
    variation_size: CushionSize
    quantity: int
    is_pre_order: bool


def allocate(requested_qty: int, physical_stock: int, already_reserved_qty: int) -> Allocation:
    for label, value in (
        ("requested_qty", requested_qty),
        ("physical_stock", physical_stock),
        ("already_reserved_qty", already_reserved_qty),
    ):
        if value < 0:
            raise ValueError(f"{label} must be >= 0, got {value}")

    available_now = max(0, physical_stock - already_reserved_qty)
    immediate = min(requested_qty, available_now)
    return Allocation(immediate=immediate, preorder=requested_qty - immediate)


def unit_price_for(variation: Variation, item_type: ItemType) -> Decimal:
    price = variation.price_cover if item_type == ItemType.cover else variation.price_full
    return Decimal(price)


def reconcile(
    requested_qty: int,
    variation: Variation,
    reserved_qty: int,
    *,
    product_id: str,
    item_type: ItemType,
) -> list[CartLine]:
    """
    0 disponible -> une seule ligne encomenda.
    Sinon -> ligne en stock + (si besoin) ligne encomenda séparée.
    Les deux lignes ne sont jamais fusionnées : sémantiques de livraison différentes.
    """
    allocation = allocate(requested_qty, physical_stock(stock_map(variation)), reserved_qty)
    price = unit_price_for(variation, item_type)

    def line(quantity: int, is_pre_order: bool) -> CartLine:
        return CartLine(
            product_id=product_id,
            variation_size=variation.size,
            item_type=item_type,
            quantity=quantity,
            is_pre_order=is_pre_order,
            unit_price=price,
        )

    lines: list[CartLine] = []
    if allocation.immediate > 0:
        lines.append(line(allocation.immediate, False))
    if allocation.preorder > 0:
        lines.append(line(allocation.preorder, True))

    logger.debug(
        "Reconciled %s x %s/%s/%s: immediate=%s preorder=%s (reserved=%s)",
        requested_qty,
        product_id,
        variation.size.value,
        item_type.value,
        allocation.immediate,
        allocation.preorder,
        reserved_qty,
    )
    return lines


def reserved_in_lines(lines: Iterable[CartLineLike], product_id: str, size: CushionSize) -> int:
    """
    Quantité déjà prise par des lignes EN STOCK de la même variation.
    Capa et cheia consomment les mêmes almofadas physiques : les deux types comptent.
    Les lignes encomenda ne réservent rien.
    """
    return sum(
        line.quantity
        for line in lines
        if line.product_id == product_id and line.variation_size == size and not line.is_pre_order
    )


def reserved_by_pending_orders(db: Session, product_id: str, size: CushionSize) -> int:
    """Pedidos pendentes : stock pas encore déduit, donc encore réservé."""
    lines = (
        db.execute(
            select(SaleRequestLine)
            .join(SaleRequest, SaleRequest.id == SaleRequestLine.sale_request_id)
            .where(SaleRequest.status == SaleStatus.pending)
            .where(SaleRequestLine.product_id == product_id)
            .where(SaleRequestLine.variation_size == size)
            .where(SaleRequestLine.is_pre_order.is_(False))
        )
        .scalars()
        .all()
    )
    return reserved_in_lines(lines, product_id, size)


def reserved_quantity(
    db: Session,
    product_id: str,
    size: CushionSize,
    other_cart_lines: Iterable[CartLineLike] = (),
    *,
    include_pending_orders: bool = True,
) -> int:
    reserved = reserved_in_lines(other_cart_lines, product_id, size)
    if include_pending_orders:
        reserved += reserved_by_pending_orders(db, product_id, size)
    return reserved
