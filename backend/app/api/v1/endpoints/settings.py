from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.schemas.sales import CardFeesRead
from backend.services.fulfillment import get_card_fees

router = APIRouter(prefix="/settings")


@router.get("/card-fees", response_model=CardFeesRead)
def read_card_fees(db: Session = Depends(get_db)):
    fees = get_card_fees(db)
    db.commit()
    return fees


@router.put("/card-fees", response_model=CardFeesRead)
def update_card_fees(payload: CardFeesRead, db: Session = Depends(get_db)):
    """Taux en %, appliqués aux pedidos concluídos APRÈS le changement (pas de recalcul)."""
    fees = get_card_fees(db)
    for field, value in payload.model_dump().items():
        setattr(fees, field, Decimal(str(value)))
    db.commit()
    db.refresh(fees)
    return fees
