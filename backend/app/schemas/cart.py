from pydantic import BaseModel, Field

from backend.app.db.models.core_types import CushionSize, ItemType


class CartLineIn(BaseModel):
    product_id: str
    variation_size: CushionSize
    item_type: ItemType
    quantity: int = Field(gt=0)
    is_pre_order: bool = False


class CartLineRead(CartLineIn):
    unit_price: float | None = None

    class Config:
        from_attributes = True


class ReconcileRequest(BaseModel):
    product_id: str
    variation_size: CushionSize
    item_type: ItemType
    requested_qty: int = Field(ge=0)
    # les AUTRES lignes du panier du client (celle en cours d'édition exclue)
    cart: list[CartLineIn] = Field(default_factory=list)
    include_pending_orders: bool = True


class ReconcileResponse(BaseModel):
    physical_stock: int
    reserved_qty: int
    immediate: int
    preorder: int
    lines: list[CartLineRead]
