from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.api.errors import http_error
from backend.app.db.models.models_v1 import Product
from backend.app.schemas.catalog import FamilyCreate, ProductCreate
from backend.services import catalog
from backend.services.exceptions import DomainError
from backend.services.family import family_members
from backend.services.ledger import stock_map

router = APIRouter(prefix="/products")


def product_out(p: Product) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "brand": p.brand,
        "category": p.category,
        "sub_category": p.sub_category,
        "fabric_type": p.fabric_type,
        "description": p.description,
        "water_resistance": p.water_resistance.value,
        "variation_group_id": p.variation_group_id,
        "is_multi_color": p.is_multi_color,
        "production_cost": float(p.production_cost) if p.production_cost is not None else None,
        "units_sold": p.units_sold,
        "colors": [{"name": c.name, "hex": c.hex} for c in p.colors],
        "variations": [
            {
                "size": v.size.value,
                "price_cover": float(v.price_cover),
                "price_full": float(v.price_full),
                "stock": {store.value: qty for store, qty in stock_map(v).items()},
            }
            for v in p.variations
        ],
    }


@router.get("")
def list_products(db: Session = Depends(get_db)):
    return [product_out(p) for p in catalog.list_products(db)]


@router.post("", status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    try:
        p = catalog.create_product(db, payload)
    except DomainError as e:
        raise http_error(e)
    db.commit()
    db.refresh(p)
    return product_out(p)


@router.post("/families", status_code=201)
def create_family(payload: FamilyCreate, db: Session = Depends(get_db)):
    """Un produit par couleur, reliés par un variation_group_id commun."""
    try:
        products = catalog.create_color_family(db, payload)
    except (DomainError, ValueError) as e:
        raise http_error(e)
    db.commit()
    return [product_out(p) for p in products]


@router.get("/{product_id}")
def get_product(product_id: str, db: Session = Depends(get_db)):
    try:
        return product_out(catalog.get_product(db, product_id))
    except DomainError as e:
        raise http_error(e)


@router.put("/{product_id}")
def update_product(product_id: str, payload: ProductCreate, db: Session = Depends(get_db)):
    try:
        p = catalog.update_product(db, product_id, payload)
    except DomainError as e:
        raise http_error(e)
    db.commit()
    db.refresh(p)
    return product_out(p)


@router.post("/{product_id}/duplicate", status_code=201)
def duplicate_product(product_id: str, db: Session = Depends(get_db)):
    try:
        p = catalog.duplicate_product(db, product_id)
    except DomainError as e:
        raise http_error(e)
    db.commit()
    db.refresh(p)
    return product_out(p)


@router.get("/{product_id}/family")
def get_family(product_id: str, db: Session = Depends(get_db)):
    """Outras cores deste item."""
    try:
        product = catalog.get_product(db, product_id)
    except DomainError as e:
        raise http_error(e)

    members = family_members(product, catalog.list_products(db), catalog.load_vocabulary(db))
    return [{"id": p.id, "name": p.name, "colors": [c.name for c in p.colors]} for p in members]
