from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.api.errors import http_error
from backend.app.schemas.cart import ReconcileRequest, ReconcileResponse
from backend.services.cart import allocate, reconcile, reserved_quantity
from backend.services.exceptions import DomainError
from backend.services.ledger import get_variation, physical_stock, stock_map

router = APIRouter(prefix="/cart")


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile_line(payload: ReconcileRequest, db: Session = Depends(get_db)):
    """
    Lecture seule : rien n'est réservé ni déduit ici.
    Le client renvoie ses autres lignes de panier à chaque changement de quantité.
    """
    try:
        variation = get_variation(db, payload.product_id, payload.variation_size)
    except DomainError as e:
        raise http_error(e)

    reserved = reserved_quantity(
        db,
        payload.product_id,
        payload.variation_size,
        payload.cart,
        include_pending_orders=payload.include_pending_orders,
    )
    physical = physical_stock(stock_map(variation))
    allocation = allocate(payload.requested_qty, physical, reserved)
    lines = reconcile(
        payload.requested_qty,
        variation,
        reserved,
        product_id=payload.product_id,
        item_type=payload.item_type,
    )
    return {
        "physical_stock": physical,
        "reserved_qty": reserved,
        "immediate": allocation.immediate,
        "preorder": allocation.preorder,
        "lines": [asdict(ln) for ln in lines],
    }
