from datetime import date, datetime

from pydantic import BaseModel, Field

from backend.app.db.models.core_types import PaymentMethod, SaleStatus, SaleType
from backend.app.schemas.cart import CartLineIn, CartLineRead


class SaleRequestCreate(BaseModel):
    lines: list[CartLineIn] = Field(min_length=1)
    payment_method: PaymentMethod
    customer_name: str | None = Field(default=None, max_length=200)


class SaleLineRead(CartLineRead):
    position: int
    name: str


class SaleRequestRead(BaseModel):
    id: str
    status: SaleStatus
    type: SaleType
    payment_method: PaymentMethod
    customer_name: str | None
    total_price: float
    discount: float | None
    final_price: float | None
    installments: int | None
    net_value: float | None
    total_production_cost: float | None
    created_at: datetime
    completed_at: datetime | None
    lines: list[SaleLineRead]

    class Config:
        from_attributes = True


class SaleComplete(BaseModel):
    discount: float = Field(default=0, ge=0)
    installments: int | None = Field(default=None, ge=1, le=3)


class CardFeesRead(BaseModel):
    debit: float = Field(ge=0, le=100)
    credit_1x: float = Field(ge=0, le=100)
    credit_2x: float = Field(ge=0, le=100)
    credit_3x: float = Field(ge=0, le=100)

    class Config:
        from_attributes = True


class RankingEntry(BaseModel):
    key: str
    units: int


class SalesReportRead(BaseModel):
    period: str
    order_count: int
    gross: float
    net: float
    production_cost: float
    profit: float
    margin: float
    per_day: dict[date, float]
    top_products: list[RankingEntry]
    top_colors: list[RankingEntry]
    units_sold_ranking: list[RankingEntry]
