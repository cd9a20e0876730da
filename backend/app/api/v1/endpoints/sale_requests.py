from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backend.app.api.deps import get_db
from backend.app.api.errors import http_error
from backend.app.db.models.core_types import SaleStatus
from backend.app.db.models.models_v1 import SaleRequest
from backend.app.schemas.sales import SaleComplete, SaleRequestCreate, SaleRequestRead
from backend.services.exceptions import DomainError, SaleRequestNotFound
from backend.services.fulfillment import CompletionDetails, complete_sale, create_sale_request

router = APIRouter(prefix="/sale-requests")


@router.post("", response_model=SaleRequestRead, status_code=201)
def checkout(payload: SaleRequestCreate, db: Session = Depends(get_db)):
    """Pedido "pending" : le stock n'est déduit qu'à la conclusion."""
    try:
        sale = create_sale_request(
            db,
            lines=payload.lines,
            payment_method=payload.payment_method,
            customer_name=payload.customer_name,
        )
    except DomainError as e:
        raise http_error(e)
    db.commit()
    db.refresh(sale)
    return sale


@router.get("", response_model=list[SaleRequestRead])
def list_sale_requests(status: SaleStatus | None = None, db: Session = Depends(get_db)):
    stmt = (
        select(SaleRequest)
        .options(selectinload(SaleRequest.lines))
        .order_by(SaleRequest.created_at.desc())
    )
    if status is not None:
        stmt = stmt.where(SaleRequest.status == status)
    return db.execute(stmt).scalars().all()


@router.get("/{sale_request_id}", response_model=SaleRequestRead)
def get_sale_request(sale_request_id: str, db: Session = Depends(get_db)):
    sale = db.get(SaleRequest, sale_request_id)
    if not sale:
        raise http_error(SaleRequestNotFound(sale_request_id))
    return sale


@router.post("/{sale_request_id}/complete")
def complete(
    sale_request_id: str,
    payload: SaleComplete | None = None,
    db: Session = Depends(get_db),
):
    """
    Conclusion d'une venda.
    - rejouable : un pedido déjà concluído renvoie applied=false, rien n'est redéduit
    - tout ou rien : une erreur annule toutes les lignes
    """
    payload = payload or SaleComplete()
    details = CompletionDetails(
        discount=Decimal(str(payload.discount)),
        installments=payload.installments,
    )
    try:
        sale, applied = complete_sale(db, sale_request_id, details)
    except (DomainError, ValueError) as e:
        db.rollback()
        raise http_error(e)

    db.commit()
    db.refresh(sale)
    return {
        "applied": applied,
        "sale_request": SaleRequestRead.model_validate(sale),
    }
