from datetime import datetime

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import CushionSize, MovementType, StoreName


class StockLevelRead(BaseModel):
    product_id: str
    product_name: str
    size: CushionSize
    store: StoreName
    quantity: int


class StockAdjust(BaseModel):
    product_id: str
    size: CushionSize
    store: StoreName
    delta: int
    reason: str | None = Field(default=None, max_length=255)


class StockMovementRead(BaseModel):
    id: int
    variation_id: int
    store: StoreName
    movement_type: MovementType
    delta: int
    applied_delta: int
    quantity_after: int
    reason: str | None
    happened_at: datetime
    idempotency_key: str

    class Config:
        from_attributes = True


class InventorySummaryRead(BaseModel):
    total_units: int
    potential_revenue: float
