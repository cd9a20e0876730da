"""
StockLedger : lecture / ajustement des compteurs par variation et par magasin.

Deux couches :
- fonctions pures sur une map {StoreName: int} (aucune politique, aucun I/O)
- adaptateur SQLAlchemy (lecture, verrouillage, décrément atomique côté serveur)

Politique documentée : un décrément qui passerait sous zéro est ramené à 0
au lieu d'échouer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, MutableMapping

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from backend.app.core.config import settings
from backend.app.db.models.core_types import CushionSize, MovementType, StoreName
from backend.app.db.models.models_v1 import Product, StockMovement, Variation, VariationStock
from backend.services.exceptions import ProductNotFound, VariationNotFound

logger = logging.getLogger(__name__)

StockMap = Mapping[StoreName, int]


# ---------- PURE ----------
def available(stock: StockMap, store: StoreName) -> int:
    return max(0, int(stock.get(store, 0) or 0))


def adjust(stock: MutableMapping[StoreName, int], store: StoreName, delta: int) -> int:
    new_value = max(0, available(stock, store) + int(delta))
    stock[store] = new_value
    return new_value


def physical_stock(stock: StockMap) -> int:
    return sum(available(stock, store) for store in StoreName)


@dataclass(frozen=True)
class StoreOrder:
    """Ordre explicite dans lequel une vente consomme le stock des magasins."""

    stores: tuple[StoreName, ...]

    def __post_init__(self) -> None:
        if len(set(self.stores)) != len(self.stores):
            raise ValueError(f"Duplicate store in deduction order: {self.stores}")
        missing = [s for s in StoreName if s not in self.stores]
        if missing:
            raise ValueError(f"Deduction order does not cover stores: {missing}")

    @classmethod
    def default(cls) -> "StoreOrder":
        return cls(settings.store_deduction_order)

    @classmethod
    def of(cls, stores: Iterable[StoreName]) -> "StoreOrder":
        return cls(tuple(stores))


@dataclass(frozen=True)
class DeductionPlan:
    takes: tuple[tuple[StoreName, int], ...]
    shortfall: int  # unités demandées au-delà du stock total (absorbées par le clamp)

    @property
    def total_taken(self) -> int:
        return sum(qty for _, qty in self.takes)


def deduction_plan(stock: StockMap, quantity: int, order: StoreOrder) -> DeductionPlan:
    """
    Magasin A d'abord, le reste sur B, etc.
    Le dernier magasin absorbe le manque : il est ramené à 0, jamais négatif.
    """
    if quantity < 0:
        raise ValueError(f"quantity must be >= 0, got {quantity}")

    remaining = quantity
    takes: list[tuple[StoreName, int]] = []
    for store in order.stores:
        if remaining == 0:
            break
        take = min(remaining, available(stock, store))
        if take > 0:
            takes.append((store, take))
            remaining -= take
    return DeductionPlan(takes=tuple(takes), shortfall=remaining)


# ---------- ADAPTATEUR DB ----------
def stock_map(variation: Variation) -> dict[StoreName, int]:
    stock = {store: 0 for store in StoreName}
    for row in variation.stocks:
        stock[row.store] = int(row.quantity)
    return stock


def get_variation(db: Session, product_id: str, size: CushionSize) -> Variation:
    variation = (
        db.execute(
            select(Variation)
            .where(Variation.product_id == product_id)
            .where(Variation.size == size)
        )
        .scalars()
        .first()
    )
    if variation is not None:
        return variation
    if db.get(Product, product_id) is None:
        raise ProductNotFound(product_id)
    raise VariationNotFound(product_id, size.value)


def _get_or_create_stock_row(db: Session, variation_id: int, store: StoreName, *, lock: bool) -> VariationStock:
    stmt = (
        select(VariationStock)
        .where(VariationStock.variation_id == variation_id)
        .where(VariationStock.store == store)
    )
    if lock:
        stmt = stmt.with_for_update()
    row = db.execute(stmt).scalar_one_or_none()
    if row:
        return row

    row = VariationStock(variation_id=variation_id, store=store, quantity=0)
    db.add(row)
    db.flush()
    return row


def lock_stock_rows(db: Session, variation_id: int) -> dict[StoreName, int]:
    """Verrouille (FOR UPDATE) toutes les lignes de stock d'une variation et renvoie la map."""
    return {
        store: int(_get_or_create_stock_row(db, variation_id, store, lock=True).quantity)
        for store in StoreName
    }


def adjust_stock(db: Session, variation_id: int, store: StoreName, delta: int) -> tuple[int, int]:
    """
    Décrément / incrément évalué côté serveur, clamp à 0 :
        UPDATE ... SET quantity = CASE WHEN quantity + :delta < 0 THEN 0 ELSE quantity + :delta END

    Renvoie (ancienne valeur, nouvelle valeur).
    """
    before = int(_get_or_create_stock_row(db, variation_id, store, lock=True).quantity)

    new_quantity = case(
        (VariationStock.quantity + delta < 0, 0),
        else_=VariationStock.quantity + delta,
    )
    db.execute(
        update(VariationStock)
        .where(VariationStock.variation_id == variation_id)
        .where(VariationStock.store == store)
        .values(quantity=new_quantity, updated_at=datetime.utcnow())
        .execution_options(synchronize_session="fetch")
    )
    after = db.execute(
        select(VariationStock.quantity)
        .where(VariationStock.variation_id == variation_id)
        .where(VariationStock.store == store)
    ).scalar_one()

    if before + delta < 0:
        logger.warning(
            "Stock clamped at 0: variation=%s store=%s before=%s delta=%s",
            variation_id,
            store.value,
            before,
            delta,
        )
    return before, int(after)


def find_movement(db: Session, idempotency_key: str) -> StockMovement | None:
    return db.execute(
        select(StockMovement).where(StockMovement.idempotency_key == idempotency_key)
    ).scalar_one_or_none()


def record_movement(
    db: Session,
    *,
    variation_id: int,
    store: StoreName,
    movement_type: MovementType,
    delta: int,
    before: int,
    after: int,
    idempotency_key: str,
    reason: str | None = None,
    sale_request_id: str | None = None,
) -> StockMovement:
    mv = StockMovement(
        variation_id=variation_id,
        store=store,
        movement_type=movement_type,
        delta=delta,
        applied_delta=after - before,
        quantity_after=after,
        reason=reason,
        sale_request_id=sale_request_id,
        happened_at=datetime.utcnow(),
        idempotency_key=idempotency_key,
    )
    db.add(mv)
    return mv


def apply_manual_adjustment(
    db: Session,
    *,
    product_id: str,
    size: CushionSize,
    store: StoreName,
    delta: int,
    idempotency_key: str,
    reason: str | None = None,
) -> tuple[StockMovement, bool]:
    """
    Ajustement manuel (inventaire, réception, casse...).
    Rejeu avec la même Idempotency-Key -> mouvement d'origine, delta non réappliqué.
    Renvoie (mouvement, créé?). Ne commit pas.
    """
    existing = find_movement(db, idempotency_key)
    if existing:
        return existing, False

    if delta == 0:
        raise ValueError("delta must be non-zero")

    variation = get_variation(db, product_id, size)
    before, after = adjust_stock(db, variation.id, store, delta)
    mv = record_movement(
        db,
        variation_id=variation.id,
        store=store,
        movement_type=MovementType.adjustment,
        delta=delta,
        before=before,
        after=after,
        idempotency_key=idempotency_key,
        reason=reason,
    )
    db.flush()
    logger.info(
        "Stock adjusted: product=%s size=%s store=%s %s -> %s",
        product_id,
        size.value,
        store.value,
        before,
        after,
    )
    return mv, True
