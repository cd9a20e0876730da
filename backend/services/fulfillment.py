"""
SaleFulfillment : applique un pedido confirmé au stock, une seule fois.

Règle métier, pour chaque ligne :
    1. charger la variation
    2. déduire la quantité du magasin A d'abord, le reste du magasin B (clamp à 0)
       -> ordre explicite (StoreOrder), indépendant du magasin "nominal" de la ligne
    3. units_sold += quantité
puis status = completed.

Propriétés :
- idempotent : un pedido déjà completed -> no-op silencieux (livraison at-least-once)
- verrouillage SQL (FOR UPDATE) du pedido puis de toutes les lignes de stock,
  par id de variation croissant, avant la première déduction
- une seule transaction pour toutes les lignes (commit à la charge de l'appelant) :
  un échec de persistance annule TOUT le pedido, pas d'application partielle
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.db.models.core_types import (
    CushionSize,
    ItemType,
    MovementType,
    PaymentMethod,
    SaleStatus,
    SaleType,
)
from backend.app.db.models.models_v1 import CardFees, Product, SaleRequest, SaleRequestLine
from backend.services.cart import unit_price_for
from backend.services.exceptions import InvalidQuantity, SaleRequestNotFound
from backend.services.ledger import (
    StoreOrder,
    adjust,
    adjust_stock,
    deduction_plan,
    get_variation,
    lock_stock_rows,
    record_movement,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class OrderLineInput(Protocol):
    product_id: str
    variation_size: CushionSize
    item_type: ItemType
    quantity: int
    is_pre_order: bool


@dataclass(frozen=True)
class CompletionDetails:
    discount: Decimal = Decimal("0")
    installments: int | None = None


# ---------- CHECKOUT ----------
def create_sale_request(
    db: Session,
    *,
    lines: Iterable[OrderLineInput],
    payment_method: PaymentMethod,
    customer_name: str | None = None,
) -> SaleRequest:
    """Persiste un pedido "pending". Les prix viennent du catalogue, pas du client."""
    sale = SaleRequest(
        status=SaleStatus.pending,
        type=SaleType.sale,
        payment_method=payment_method,
        customer_name=customer_name,
        total_price=Decimal("0"),
    )
    total = Decimal("0")
    for position, ln in enumerate(lines):
        if ln.quantity <= 0:
            raise InvalidQuantity(ln.quantity, "order lines need a positive quantity")

        variation = get_variation(db, ln.product_id, ln.variation_size)
        price = unit_price_for(variation, ln.item_type)
        sale.lines.append(
            SaleRequestLine(
                position=position,
                product_id=ln.product_id,
                variation_size=ln.variation_size,
                item_type=ln.item_type,
                quantity=ln.quantity,
                is_pre_order=ln.is_pre_order,
                unit_price=price,
                name=variation.product.name,
            )
        )
        total += price * ln.quantity
        if ln.is_pre_order:
            sale.type = SaleType.preorder

    if not sale.lines:
        raise InvalidQuantity(0, "a sale request needs at least one line")

    sale.total_price = total
    db.add(sale)
    db.flush()
    logger.info("Sale request %s created: %s line(s), total=%s", sale.id, len(sale.lines), total)
    return sale


# ---------- FRAIS CARTE ----------
def get_card_fees(db: Session) -> CardFees:
    fees = db.get(CardFees, 1)
    if fees is None:
        fees = CardFees(
            id=1,
            debit=Decimal("1.0"),
            credit_1x=Decimal("1.5"),
            credit_2x=Decimal("2.0"),
            credit_3x=Decimal("4.0"),
        )
        db.add(fees)
        db.flush()
    return fees


def fee_rate(fees: CardFees, payment_method: PaymentMethod, installments: int | None) -> Decimal:
    """Taux en % retenu par la maquininha. PIX / dinheiro / WhatsApp : aucun."""
    if payment_method == PaymentMethod.debit:
        return Decimal(fees.debit)
    if payment_method in (PaymentMethod.credit, PaymentMethod.card_online):
        by_installments = {1: fees.credit_1x, 2: fees.credit_2x, 3: fees.credit_3x}
        return Decimal(by_installments.get(installments or 1, fees.credit_3x))
    return Decimal("0")


def net_value(final_price: Decimal, rate: Decimal) -> Decimal:
    return (final_price * (Decimal("100") - rate) / Decimal("100")).quantize(CENT)


# ---------- COMPLETION ----------
def _lock_sale_request(db: Session, sale_request_id: str) -> SaleRequest:
    sale = (
        db.execute(
            select(SaleRequest)
            .where(SaleRequest.id == sale_request_id)
            .with_for_update()
        )
        .scalar_one_or_none()
    )
    if not sale:
        raise SaleRequestNotFound(sale_request_id)
    return sale


def complete_sale(
    db: Session,
    sale_request_id: str,
    details: CompletionDetails | None = None,
    *,
    order: StoreOrder | None = None,
) -> tuple[SaleRequest, bool]:
    """
    Renvoie (pedido, appliqué?). appliqué=False si le pedido était déjà completed.
    Ne commit pas : l'appelant commit (ou rollback -> rien n'est appliqué).
    """
    details = details or CompletionDetails()
    order = order or StoreOrder.default()

    sale = _lock_sale_request(db, sale_request_id)
    if sale.status == SaleStatus.completed:
        logger.warning("Sale request %s already completed, ignoring", sale.id)
        return sale, False

    discount = Decimal(details.discount or 0)
    if discount < 0 or discount > Decimal(sale.total_price):
        raise ValueError(f"discount must be between 0 and {sale.total_price}, got {discount}")

    variations = {
        line.position: get_variation(db, line.product_id, line.variation_size) for line in sale.lines
    }
    # tous les verrous d'abord, par id croissant : deux pedidos aux lignes
    # croisées (X, Y) / (Y, X) verrouillent dans le même ordre, pas d'interblocage
    locked = {
        variation_id: lock_stock_rows(db, variation_id)
        for variation_id in sorted({v.id for v in variations.values()})
    }

    production_cost = Decimal("0")
    for line in sale.lines:
        variation = variations[line.position]
        stock = locked[variation.id]
        plan = deduction_plan(stock, line.quantity, order)

        for store, take in plan.takes:
            # map verrouillée tenue à jour : deux lignes peuvent viser la même variation
            adjust(stock, store, -take)
            before, after = adjust_stock(db, variation.id, store, -take)
            record_movement(
                db,
                variation_id=variation.id,
                store=store,
                movement_type=MovementType.sale,
                delta=-take,
                before=before,
                after=after,
                idempotency_key=f"sale:{sale.id}:{line.position}:{store.name}",
                sale_request_id=sale.id,
            )
        if plan.shortfall:
            # stock insuffisant (encomenda ou survente) : les magasins finissent à 0
            logger.warning(
                "Sale %s line %s: %s unit(s) beyond physical stock of %s/%s",
                sale.id,
                line.position,
                plan.shortfall,
                line.product_id,
                line.variation_size.value,
            )

        product = db.get(Product, line.product_id)
        product.units_sold = (product.units_sold or 0) + line.quantity
        if product.production_cost is not None:
            production_cost += Decimal(product.production_cost) * line.quantity

    final_price = Decimal(sale.total_price) - discount
    installments = details.installments if sale.payment_method == PaymentMethod.credit else None
    rate = fee_rate(get_card_fees(db), sale.payment_method, installments)

    sale.discount = discount if discount > 0 else None
    sale.final_price = final_price
    sale.installments = installments
    sale.net_value = net_value(final_price, rate)
    sale.total_production_cost = production_cost
    sale.completed_at = datetime.utcnow()
    sale.status = SaleStatus.completed
    db.flush()

    logger.info("Sale request %s completed: final=%s net=%s", sale.id, final_price, sale.net_value)
    return sale, True
