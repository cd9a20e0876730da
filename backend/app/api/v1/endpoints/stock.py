from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.api.errors import http_error, require_idempotency_key
from backend.app.core.config import settings
from backend.app.db.models.core_types import CushionSize, StoreName
from backend.app.db.models.models_v1 import Product, Variation, VariationStock
from backend.app.schemas.stock_level import (
    InventorySummaryRead,
    StockAdjust,
    StockLevelRead,
    StockMovementRead,
)
from backend.services.catalog import list_products
from backend.services.exceptions import DomainError
from backend.services.ledger import apply_manual_adjustment
from backend.services.reporting import inventory_summary, restock_candidates, total_stock

router = APIRouter(prefix="/stock")


@router.get(
    "",
    response_model=list[StockLevelRead],
)
def get_stock(
    product_id: str | None = None,
    size: CushionSize | None = None,
    store: StoreName | None = None,
    db: Session = Depends(get_db),
):
    """
    Stock (READ ONLY)
    - une ligne par variation et par magasin
    - toute écriture passe par /stock/adjust ou par la conclusion d'une venda
    """

    stmt = (
        select(VariationStock, Variation, Product)
        .join(Variation, Variation.id == VariationStock.variation_id)
        .join(Product, Product.id == Variation.product_id)
        .order_by(Product.name, Variation.position, VariationStock.store)
    )

    if product_id is not None:
        stmt = stmt.where(Variation.product_id == product_id)

    if size is not None:
        stmt = stmt.where(Variation.size == size)

    if store is not None:
        stmt = stmt.where(VariationStock.store == store)

    return [
        {
            "product_id": p.id,
            "product_name": p.name,
            "size": v.size,
            "store": row.store,
            "quantity": row.quantity,
        }
        for row, v, p in db.execute(stmt).all()
    ]


@router.post("/adjust", response_model=StockMovementRead)
def adjust(
    payload: StockAdjust,
    db: Session = Depends(get_db),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    idem = require_idempotency_key(idempotency_key)

    try:
        mv, _created = apply_manual_adjustment(
            db,
            product_id=payload.product_id,
            size=payload.size,
            store=payload.store,
            delta=payload.delta,
            idempotency_key=idem,
            reason=payload.reason,
        )
    except (DomainError, ValueError) as e:
        raise http_error(e)

    db.commit()
    db.refresh(mv)
    return mv


@router.get("/restock")
def get_restock(threshold: int | None = None, db: Session = Depends(get_db)):
    """"Está na hora de repor" : produits dont le stock total est <= seuil."""
    limit = settings.restock_threshold if threshold is None else threshold
    return [
        {"id": p.id, "name": p.name, "total_stock": total_stock(p)}
        for p in restock_candidates(list_products(db), limit)
    ]


@router.get("/summary", response_model=InventorySummaryRead)
def get_summary(db: Session = Depends(get_db)):
    s = inventory_summary(list_products(db))
    return {"total_units": s.total_units, "potential_revenue": float(s.potential_revenue)}
