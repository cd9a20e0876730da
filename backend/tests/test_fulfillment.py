from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from backend.app.db.models.core_types import (
    CushionSize,
    ItemType,
    MovementType,
    PaymentMethod,
    SaleStatus,
    SaleType,
    StoreName,
)
from backend.app.db.models.models_v1 import Product, SaleRequest, StockMovement
from backend.services.cart import CartLine
from backend.services.exceptions import InvalidQuantity, SaleRequestNotFound, VariationNotFound
from backend.services.fulfillment import (
    CompletionDetails,
    complete_sale,
    create_sale_request,
    fee_rate,
    get_card_fees,
    net_value,
)
from backend.services.ledger import StoreOrder, get_variation, stock_map

TECA_FIRST = StoreOrder.of([StoreName.teca, StoreName.ione])


def _line(product_id, qty, item_type=ItemType.full, pre_order=False):
    return CartLine(product_id, CushionSize.square_45, item_type, qty, pre_order)


def _stock(db, product_id):
    db.expire_all()
    return stock_map(get_variation(db, product_id, CushionSize.square_45))


def test_create_sale_request_prices_from_catalogue(db_session, make_product):
    """
    GIVEN 2 cheias (45) + 1 capa (35)
    THEN total 125, pedido pending, type sale
    """
    p = make_product(teca=5)
    sale = create_sale_request(
        db_session,
        lines=[_line(p.id, 2), _line(p.id, 1, ItemType.cover)],
        payment_method=PaymentMethod.pix,
        customer_name="Ana",
    )
    db_session.commit()

    assert sale.status == SaleStatus.pending
    assert sale.type == SaleType.sale
    assert sale.total_price == Decimal("125")
    assert [ln.name for ln in sale.lines] == ["Lisa (Verde)", "Lisa (Verde)"]


def test_create_sale_request_with_preorder_line_is_preorder(db_session, make_product):
    p = make_product()
    sale = create_sale_request(
        db_session,
        lines=[_line(p.id, 1, pre_order=True)],
        payment_method=PaymentMethod.whatsapp,
    )
    assert sale.type == SaleType.preorder


def test_create_sale_request_rejects_bad_input(db_session, make_product):
    p = make_product()
    with pytest.raises(InvalidQuantity):
        create_sale_request(db_session, lines=[], payment_method=PaymentMethod.pix)
    with pytest.raises(InvalidQuantity):
        create_sale_request(db_session, lines=[_line(p.id, 0)], payment_method=PaymentMethod.pix)
    with pytest.raises(VariationNotFound):
        create_sale_request(
            db_session,
            lines=[CartLine(p.id, CushionSize.square_60, ItemType.full, 1, False)],
            payment_method=PaymentMethod.pix,
        )


def test_complete_deducts_first_store_then_second(db_session, make_product):
    """
    GIVEN A=3, B=5 et une vente de 4
    THEN A=0, B=4 ; units_sold += 4 ; deux mouvements SALE
    """
    p = make_product(teca=3, ione=5)
    sale = create_sale_request(db_session, lines=[_line(p.id, 4)], payment_method=PaymentMethod.pix)
    db_session.commit()

    _, applied = complete_sale(db_session, sale.id, order=TECA_FIRST)
    db_session.commit()

    assert applied is True
    assert _stock(db_session, p.id) == {StoreName.teca: 0, StoreName.ione: 4}
    assert db_session.get(Product, p.id).units_sold == 4

    movements = db_session.execute(select(StockMovement).order_by(StockMovement.id)).scalars().all()
    assert [(m.store, m.delta, m.movement_type) for m in movements] == [
        (StoreName.teca, -3, MovementType.sale),
        (StoreName.ione, -1, MovementType.sale),
    ]
    assert all(m.sale_request_id == sale.id for m in movements)


def test_complete_twice_applies_once(db_session, make_product):
    """
    GIVEN un pedido concluído deux fois (livraison at-least-once)
    THEN stock et units_sold identiques à une seule application
    """
    p = make_product(teca=3, ione=5)
    sale = create_sale_request(db_session, lines=[_line(p.id, 4)], payment_method=PaymentMethod.pix)
    db_session.commit()

    complete_sale(db_session, sale.id, order=TECA_FIRST)
    db_session.commit()
    again, applied = complete_sale(db_session, sale.id, order=TECA_FIRST)
    db_session.commit()

    assert applied is False
    assert again.status == SaleStatus.completed
    assert _stock(db_session, p.id) == {StoreName.teca: 0, StoreName.ione: 4}
    assert db_session.get(Product, p.id).units_sold == 4


def test_complete_beyond_stock_clamps_to_zero(db_session, make_product):
    """
    GIVEN une encomenda de 5 avec seulement A=1, B=1
    THEN les deux magasins finissent à 0 (jamais négatifs), units_sold += 5
    """
    p = make_product(teca=1, ione=1)
    sale = create_sale_request(
        db_session,
        lines=[_line(p.id, 2), _line(p.id, 3, pre_order=True)],
        payment_method=PaymentMethod.whatsapp,
    )
    db_session.commit()

    complete_sale(db_session, sale.id, order=TECA_FIRST)
    db_session.commit()

    assert _stock(db_session, p.id) == {StoreName.teca: 0, StoreName.ione: 0}
    assert db_session.get(Product, p.id).units_sold == 5


def test_complete_computes_discount_and_net_value(db_session, make_product):
    """
    GIVEN 2 cheias (90), desconto 10, crédito 2x (2 %)
    THEN final 80, net 78.40, coût de production 2 x 12
    """
    p = make_product(teca=5, production_cost=12)
    sale = create_sale_request(db_session, lines=[_line(p.id, 2)], payment_method=PaymentMethod.credit)
    db_session.commit()

    done, _ = complete_sale(
        db_session,
        sale.id,
        CompletionDetails(discount=Decimal("10"), installments=2),
        order=TECA_FIRST,
    )
    db_session.commit()

    assert done.final_price == Decimal("80")
    assert done.discount == Decimal("10")
    assert done.installments == 2
    assert done.net_value == Decimal("78.40")
    assert done.total_production_cost == Decimal("24")
    assert done.completed_at is not None


def test_complete_rejects_discount_above_total(db_session, make_product):
    p = make_product(teca=5)
    sale = create_sale_request(db_session, lines=[_line(p.id, 1)], payment_method=PaymentMethod.pix)
    db_session.commit()

    with pytest.raises(ValueError):
        complete_sale(db_session, sale.id, CompletionDetails(discount=Decimal("100")))
    db_session.rollback()

    assert _stock(db_session, p.id)[StoreName.teca] == 5


def test_complete_unknown_sale_request(db_session):
    with pytest.raises(SaleRequestNotFound):
        complete_sale(db_session, "nope")


def test_fee_rate_per_payment_method(db_session):
    fees = get_card_fees(db_session)
    assert fee_rate(fees, PaymentMethod.pix, None) == 0
    assert fee_rate(fees, PaymentMethod.debit, None) == Decimal("1.0")
    assert fee_rate(fees, PaymentMethod.credit, 3) == Decimal("4.0")
    assert fee_rate(fees, PaymentMethod.card_online, None) == Decimal("1.5")
    assert net_value(Decimal("100"), Decimal("1.5")) == Decimal("98.50")


def test_locks_taken_by_ascending_variation_before_any_deduction(db_session, make_product, monkeypatch):
    """
    GIVEN un pedido dont les lignes visent Y puis X (id de X < id de Y)
    THEN toutes les lignes de stock sont verrouillées par id croissant,
         avant le premier décrément
    """
    import backend.services.fulfillment as fulfillment

    x = make_product(name="Lisa", teca=2)
    y = make_product(name="Floral", teca=2)
    x_id = get_variation(db_session, x.id, CushionSize.square_45).id
    y_id = get_variation(db_session, y.id, CushionSize.square_45).id
    assert x_id < y_id

    sale = create_sale_request(
        db_session,
        lines=[_line(y.id, 1), _line(x.id, 1)],
        payment_method=PaymentMethod.pix,
    )
    db_session.commit()

    calls = []
    real_lock, real_adjust = fulfillment.lock_stock_rows, fulfillment.adjust_stock

    def recording_lock(db, variation_id):
        calls.append(("lock", variation_id))
        return real_lock(db, variation_id)

    def recording_adjust(db, variation_id, store, delta):
        calls.append(("adjust", variation_id))
        return real_adjust(db, variation_id, store, delta)

    monkeypatch.setattr(fulfillment, "lock_stock_rows", recording_lock)
    monkeypatch.setattr(fulfillment, "adjust_stock", recording_adjust)

    complete_sale(db_session, sale.id, order=TECA_FIRST)
    db_session.commit()

    assert calls == [("lock", x_id), ("lock", y_id), ("adjust", y_id), ("adjust", x_id)]


def test_two_lines_on_same_variation_share_the_locked_stock(db_session, make_product):
    """
    GIVEN A=3, B=5 et deux lignes de 2 (capa + cheia) sur la même variation
    THEN 2 puis 1+1 : A=0, B=4, comme une seule vente de 4
    """
    p = make_product(teca=3, ione=5)
    sale = create_sale_request(
        db_session,
        lines=[_line(p.id, 2, ItemType.cover), _line(p.id, 2)],
        payment_method=PaymentMethod.pix,
    )
    db_session.commit()

    complete_sale(db_session, sale.id, order=TECA_FIRST)
    db_session.commit()

    assert _stock(db_session, p.id) == {StoreName.teca: 0, StoreName.ione: 4}


def test_write_failure_on_second_line_rolls_back_whole_order(db_session, make_product, monkeypatch):
    """
    GIVEN un pedido de deux lignes dont l'écriture de la seconde échoue
    THEN l'erreur remonte ; après rollback stock, units_sold et statut sont intacts
    """
    import backend.services.fulfillment as fulfillment

    x = make_product(name="Lisa", teca=2, ione=1)
    y = make_product(name="Floral", teca=2, ione=1)
    sale = create_sale_request(
        db_session,
        lines=[_line(x.id, 1), _line(y.id, 1)],
        payment_method=PaymentMethod.pix,
    )
    db_session.commit()

    real_adjust = fulfillment.adjust_stock
    seen = []

    def failing_adjust(db, variation_id, store, delta):
        seen.append(variation_id)
        if len(seen) == 2:
            raise SQLAlchemyError("write failed")
        return real_adjust(db, variation_id, store, delta)

    monkeypatch.setattr(fulfillment, "adjust_stock", failing_adjust)

    with pytest.raises(SQLAlchemyError):
        complete_sale(db_session, sale.id, order=TECA_FIRST)
    db_session.rollback()

    assert len(seen) == 2
    assert _stock(db_session, x.id) == {StoreName.teca: 2, StoreName.ione: 1}
    assert _stock(db_session, y.id) == {StoreName.teca: 2, StoreName.ione: 1}
    assert db_session.get(Product, x.id).units_sold == 0
    assert db_session.get(Product, y.id).units_sold == 0
    assert db_session.get(SaleRequest, sale.id).status == SaleStatus.pending
    assert db_session.execute(select(StockMovement)).scalars().all() == []
