from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backend.app.api.deps import get_db
from backend.app.db.models.models_v1 import SaleRequest
from backend.app.schemas.sales import SalesReportRead
from backend.services.catalog import list_products
from backend.services.reporting import (
    PERIODS,
    completed_in_window,
    rank_units_sold,
    summarize_sales,
    top_sold_in_orders,
    window_predicate,
)

router = APIRouter(prefix="/reports")


def _entries(ranking: list[tuple[str, int]]) -> list[dict]:
    return [{"key": key, "units": units} for key, units in ranking]


@router.get("/sales", response_model=SalesReportRead)
def sales_report(
    period: str = "month",
    rank_by: str = "product",
    limit: int = 5,
    db: Session = Depends(get_db),
):
    """
    Relatório de vendas (lecture seule)
    - fenêtre sur la date de création du pedido, seuls les concluídos comptent
    - net = valor líquido (après frais carte), brut sinon
    """
    if period not in PERIODS:
        raise HTTPException(status_code=400, detail=f"period must be one of {PERIODS}")
    if rank_by not in ("product", "brand", "color"):
        raise HTTPException(status_code=400, detail="rank_by must be product, brand or color")

    orders = db.execute(select(SaleRequest).options(selectinload(SaleRequest.lines))).scalars().all()
    products = list_products(db)

    predicate = window_predicate(period)
    summary = summarize_sales(orders, predicate)
    top = top_sold_in_orders(completed_in_window(orders, predicate), {p.id: p for p in products}, limit)

    return {
        "period": period,
        "order_count": summary.order_count,
        "gross": float(summary.gross),
        "net": float(summary.net),
        "production_cost": float(summary.production_cost),
        "profit": float(summary.profit),
        "margin": float(summary.margin),
        "per_day": {day: float(amount) for day, amount in summary.per_day.items()},
        "top_products": _entries(top.products),
        "top_colors": _entries(top.colors),
        "units_sold_ranking": _entries(rank_units_sold(products, by=rank_by, limit=limit)),
    }
