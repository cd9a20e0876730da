from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from backend.app.db.models.core_types import CushionSize, StoreName, WaterResistance


class ColorIn(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    hex: str = Field(pattern=r"^#[0-9A-Fa-f]{6}$")


class VariationIn(BaseModel):
    size: CushionSize
    price_cover: float = Field(ge=0)
    price_full: float = Field(ge=0)
    stock: dict[StoreName, int] = Field(default_factory=dict)

    @field_validator("stock")
    @classmethod
    def _stock_nonneg(cls, v: dict[StoreName, int]) -> dict[StoreName, int]:
        for store, qty in v.items():
            if qty < 0:
                raise ValueError(f"stock for {store.value} must be >= 0")
        return v


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    brand: str = Field(min_length=1, max_length=128)
    category: str = Field(min_length=1, max_length=128)
    sub_category: str | None = Field(default=None, max_length=128)
    fabric_type: str = ""
    description: str = ""
    water_resistance: WaterResistance = WaterResistance.none
    colors: list[ColorIn] = Field(min_length=1, max_length=3)
    variations: list[VariationIn] = Field(default_factory=list)
    is_multi_color: bool = False
    production_cost: float | None = Field(default=None, ge=0)
    variation_group_id: str | None = None

    @field_validator("variations")
    @classmethod
    def _unique_sizes(cls, v: list[VariationIn]) -> list[VariationIn]:
        sizes = [x.size for x in v]
        if len(sizes) != len(set(sizes)):
            raise ValueError("variations must be unique by size")
        return v


class FamilyCreate(BaseModel):
    """Assistant de création : un produit par couleur, même groupe de variation."""

    base_name: str = Field(min_length=1, max_length=200)
    brand: str = Field(min_length=1, max_length=128)
    category: str = Field(min_length=1, max_length=128)
    sub_category: str | None = None
    fabric_type: str = ""
    description: str = ""
    water_resistance: WaterResistance = WaterResistance.none
    production_cost: float | None = Field(default=None, ge=0)
    colors: list[ColorIn] = Field(min_length=1)
    sizes: list[CushionSize] = Field(default_factory=lambda: [CushionSize.square_45], min_length=1)
