"""
Catalogue : création / édition des produits et du vocabulaire de couleurs.

Règle métier à l'enregistrement :
    - nom standardisé "<Base> (<Couleur principale>)" (sauf produit multicolore)
    - catégorie et sous-catégorie au pluriel
    - nom unique (insensible à la casse), sinon ProductNameConflict
    - chaque variation a une ligne de stock par magasin

Les changements de stock passés par l'édition d'un produit sont tracés
comme des ajustements (StockMovement), jamais écrits en direct.
"""

from __future__ import annotations

import logging
import time
import uuid
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.db.models.core_types import VARIATION_DEFAULTS, CushionSize, MovementType, SaleStatus, StoreName
from backend.app.db.models.models_v1 import (
    Color,
    Product,
    ProductColor,
    SaleRequest,
    SaleRequestLine,
    Variation,
    VariationStock,
)
from backend.app.schemas.catalog import ColorIn, FamilyCreate, ProductCreate, VariationIn
from backend.services.exceptions import ProductNameConflict, ProductNotFound, VariationInUse
from backend.services.family import pluralize, standardize_product_name
from backend.services.ledger import adjust_stock, record_movement, stock_map

logger = logging.getLogger(__name__)

DEFAULT_SIZE = CushionSize.square_45


# ---------- VOCABULAIRE ----------
def load_vocabulary(db: Session) -> list[Color]:
    return list(db.execute(select(Color).order_by(Color.name)).scalars().all())


def add_color(db: Session, name: str, hex_code: str) -> Color:
    """Upsert : une couleur déjà connue voit seulement son hex mis à jour."""
    name = name.strip()
    color = db.get(Color, name)
    if color:
        color.hex = hex_code.upper()
    else:
        color = Color(name=name, hex=hex_code.upper())
        db.add(color)
    db.flush()
    return color


def delete_color(db: Session, name: str) -> bool:
    color = db.get(Color, name)
    if not color:
        return False
    db.delete(color)
    db.flush()
    return True


# ---------- VALIDATION ----------
def ensure_unique_name(db: Session, name: str, exclude_id: str | None = None) -> None:
    stmt = select(Product.id).where(func.lower(Product.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    existing = db.execute(stmt).scalars().first()
    if existing:
        raise ProductNameConflict(name, existing)


def ensure_sizes_not_pending(db: Session, product_id: str, removed: Iterable[CushionSize]) -> None:
    """Une taille retirée du produit ne doit plus être attendue par un pedido pending."""
    for size in removed:
        pending = (
            db.execute(
                select(SaleRequestLine.sale_request_id)
                .join(SaleRequest, SaleRequest.id == SaleRequestLine.sale_request_id)
                .where(SaleRequest.status == SaleStatus.pending)
                .where(SaleRequestLine.product_id == product_id)
                .where(SaleRequestLine.variation_size == size)
                .distinct()
            )
            .scalars()
            .all()
        )
        if pending:
            raise VariationInUse(product_id, size.value, sorted(pending))


def _normalized_name(db: Session, payload: ProductCreate) -> str:
    if payload.is_multi_color:
        return payload.name.strip()
    return standardize_product_name(payload.name, payload.colors, load_vocabulary(db))


def _default_variation(size: CushionSize = DEFAULT_SIZE) -> VariationIn:
    cover, full = VARIATION_DEFAULTS[size]
    return VariationIn(size=size, price_cover=cover, price_full=full)


def _product_colors(colors: Iterable[ColorIn]) -> list[ProductColor]:
    return [ProductColor(position=i, name=c.name, hex=c.hex.upper()) for i, c in enumerate(colors)]


def _new_variation(position: int, v: VariationIn, *, with_stock: bool = True) -> Variation:
    variation = Variation(
        position=position,
        size=v.size,
        price_cover=Decimal(str(v.price_cover)),
        price_full=Decimal(str(v.price_full)),
    )
    variation.stocks = [
        VariationStock(store=store, quantity=(v.stock.get(store, 0) if with_stock else 0))
        for store in StoreName
    ]
    return variation


# ---------- PRODUITS ----------
def get_product(db: Session, product_id: str) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise ProductNotFound(product_id)
    return product


def list_products(db: Session) -> list[Product]:
    return list(db.execute(select(Product).order_by(Product.name)).scalars().all())


def create_product(db: Session, payload: ProductCreate) -> Product:
    name = _normalized_name(db, payload)
    ensure_unique_name(db, name)

    variations = payload.variations or [_default_variation()]
    product = Product(
        name=name,
        brand=payload.brand.strip(),
        category=pluralize(payload.category),
        sub_category=pluralize(payload.sub_category) if payload.sub_category else None,
        fabric_type=payload.fabric_type,
        description=payload.description,
        water_resistance=payload.water_resistance,
        variation_group_id=payload.variation_group_id,
        is_multi_color=payload.is_multi_color,
        production_cost=Decimal(str(payload.production_cost)) if payload.production_cost is not None else None,
        units_sold=0,
    )
    product.colors = _product_colors(payload.colors)
    product.variations = [_new_variation(i, v) for i, v in enumerate(variations)]
    db.add(product)
    db.flush()

    logger.info("Product created: %s (%s)", product.name, product.id)
    return product


def update_product(db: Session, product_id: str, payload: ProductCreate) -> Product:
    """
    Variations rapprochées par taille : une taille conservée garde son id
    (et donc son historique de mouvements), une taille absente est supprimée.
    Un stock différent de l'actuel devient un ajustement tracé.
    """
    product = get_product(db, product_id)
    name = _normalized_name(db, payload)
    ensure_unique_name(db, name, exclude_id=product.id)

    wanted = payload.variations or [_default_variation()]
    wanted_sizes = {v.size for v in wanted}
    ensure_sizes_not_pending(db, product.id, [v.size for v in product.variations if v.size not in wanted_sizes])

    product.name = name
    product.brand = payload.brand.strip()
    product.category = pluralize(payload.category)
    product.sub_category = pluralize(payload.sub_category) if payload.sub_category else None
    product.fabric_type = payload.fabric_type
    product.description = payload.description
    product.water_resistance = payload.water_resistance
    product.variation_group_id = payload.variation_group_id
    product.is_multi_color = payload.is_multi_color
    product.production_cost = (
        Decimal(str(payload.production_cost)) if payload.production_cost is not None else None
    )
    # anciennes couleurs supprimées avant l'insert : même clé (product_id, position)
    product.colors = []
    db.flush()
    product.colors = _product_colors(payload.colors)

    current = {v.size: v for v in product.variations}
    kept: list[Variation] = []
    edit_id = uuid.uuid4().hex

    for position, v in enumerate(wanted):
        variation = current.get(v.size)
        if variation is None:
            kept.append(_new_variation(position, v))
            continue

        variation.position = position
        variation.price_cover = Decimal(str(v.price_cover))
        variation.price_full = Decimal(str(v.price_full))
        stock = stock_map(variation)
        for store, target in v.stock.items():
            delta = target - stock[store]
            if delta == 0:
                continue
            before, after = adjust_stock(db, variation.id, store, delta)
            record_movement(
                db,
                variation_id=variation.id,
                store=store,
                movement_type=MovementType.adjustment,
                delta=delta,
                before=before,
                after=after,
                idempotency_key=f"edit:{edit_id}:{variation.id}:{store.name}",
                reason="product edit",
            )
        kept.append(variation)

    product.variations = kept
    db.flush()
    for variation in kept:
        db.refresh(variation)

    logger.info("Product updated: %s (%s)", product.name, product.id)
    return product


def duplicate_product(db: Session, product_id: str) -> Product:
    """Copie "<nom> (Cópia)" : mêmes variations et prix, stock à zéro, aucune vente."""
    source = get_product(db, product_id)
    name = f"{source.name} (Cópia)"
    ensure_unique_name(db, name)

    copy = Product(
        name=name,
        brand=source.brand,
        category=source.category,
        sub_category=source.sub_category,
        fabric_type=source.fabric_type,
        description=source.description,
        water_resistance=source.water_resistance,
        variation_group_id=source.variation_group_id,
        is_multi_color=source.is_multi_color,
        production_cost=source.production_cost,
        units_sold=0,
    )
    copy.colors = [ProductColor(position=c.position, name=c.name, hex=c.hex) for c in source.colors]
    copy.variations = [
        _new_variation(
            v.position,
            VariationIn(size=v.size, price_cover=float(v.price_cover), price_full=float(v.price_full)),
            with_stock=False,
        )
        for v in source.variations
    ]
    db.add(copy)
    db.flush()

    logger.info("Product %s duplicated as %s", source.id, copy.id)
    return copy


def new_variation_group_id() -> str:
    return f"var_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def create_color_family(db: Session, payload: FamilyCreate) -> list[Product]:
    """
    Assistant "um produto por cor" : "<Base> (<Cor>)" pour chaque couleur,
    tous liés par le même variation_group_id, prix par défaut de la taille, stock à zéro.
    Un seul nom déjà pris bloque toute la famille.
    """
    group_id = new_variation_group_id()
    base = payload.base_name.strip()
    names = []
    for color in payload.colors:
        name = f"{base} ({color.name[:1].upper() + color.name[1:]})"
        if name.lower() in (n.lower() for n in names):
            raise ValueError(f"Colour {color.name} given twice")
        ensure_unique_name(db, name)
        names.append(name)

    sizes = list(dict.fromkeys(payload.sizes))
    products: list[Product] = []
    for name, color in zip(names, payload.colors):
        product = Product(
            name=name,
            brand=payload.brand.strip(),
            category=pluralize(payload.category),
            sub_category=pluralize(payload.sub_category) if payload.sub_category else None,
            fabric_type=payload.fabric_type,
            description=payload.description,
            water_resistance=payload.water_resistance,
            variation_group_id=group_id,
            is_multi_color=False,
            production_cost=(
                Decimal(str(payload.production_cost)) if payload.production_cost is not None else None
            ),
            units_sold=0,
        )
        product.colors = _product_colors([color])
        product.variations = [_new_variation(i, _default_variation(size)) for i, size in enumerate(sizes)]
        db.add(product)
        products.append(product)

    db.flush()
    logger.info("Colour family %s created: %s product(s)", group_id, len(products))
    return products
