from __future__ import annotations

from fastapi import HTTPException

from backend.services.exceptions import (
    DomainError,
    InvalidQuantity,
    ProductNameConflict,
    ProductNotFound,
    SaleRequestNotFound,
    VariationInUse,
    VariationNotFound,
)


def http_error(exc: DomainError | ValueError) -> HTTPException:
    """Erreur métier -> HTTPException (404 introuvable, 409 conflit, 400 sinon)."""
    if isinstance(exc, (ProductNotFound, VariationNotFound, SaleRequestNotFound)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (ProductNameConflict, VariationInUse)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (InvalidQuantity, ValueError)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def require_idempotency_key(idempotency_key: str | None) -> str:
    if not idempotency_key or not idempotency_key.strip():
        raise HTTPException(status_code=400, detail="Missing Idempotency-Key header")
    return idempotency_key.strip()
