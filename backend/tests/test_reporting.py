from datetime import datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from backend.app.db.models.core_types import CushionSize, ItemType, SaleStatus, StoreName
from backend.app.db.models.models_v1 import (
    Product,
    ProductColor,
    SaleRequest,
    SaleRequestLine,
    Variation,
    VariationStock,
)
from backend.services.reporting import (
    inventory_summary,
    rank_units_sold,
    restock_candidates,
    summarize_sales,
    top_sold_in_orders,
    window_predicate,
    window_start,
)

NOW = datetime(2026, 10, 15, 14, 30)  # jeudi


def _order(amount, created_at=NOW, status=SaleStatus.completed, net=None, cost=None, final=None, lines=()):
    o = SaleRequest(
        status=status,
        total_price=Decimal(amount),
        final_price=Decimal(final) if final is not None else None,
        net_value=Decimal(net) if net is not None else None,
        total_production_cost=Decimal(cost) if cost is not None else None,
        created_at=created_at,
    )
    o.lines = list(lines)
    return o


def _product(id, name, brand, color, units_sold=0, stock=(0, 0), price_full="45"):
    p = Product(id=id, name=name, brand=brand, category="Lisas", units_sold=units_sold)
    p.colors = [ProductColor(position=0, name=color, hex="#000000")]
    v = Variation(size=CushionSize.square_45, price_cover=Decimal("35"), price_full=Decimal(price_full))
    v.stocks = [
        VariationStock(store=StoreName.teca, quantity=stock[0]),
        VariationStock(store=StoreName.ione, quantity=stock[1]),
    ]
    p.variations = [v]
    return p


def test_zero_orders_gives_zero_and_empty_ranking():
    s = summarize_sales([])
    assert s.order_count == 0
    assert s.gross == 0 and s.net == 0 and s.profit == 0
    assert s.margin == 0
    assert s.per_day == {}
    assert top_sold_in_orders([], {}).products == []


def test_only_completed_orders_count_and_final_price_wins():
    orders = [
        _order("100", final="90", net="88.65", cost="30"),
        _order("50"),
        _order("70", status=SaleStatus.pending),
    ]
    s = summarize_sales(orders)

    assert s.order_count == 2
    assert s.gross == Decimal("140")
    # sans net_value, le net est le brut
    assert s.net == Decimal("138.65")
    assert s.production_cost == Decimal("30")
    assert s.profit == Decimal("108.65")


def test_summary_is_order_independent():
    orders = [
        _order("10", created_at=datetime(2026, 10, 1, 9)),
        _order("25", created_at=datetime(2026, 10, 2, 9), net="24.50"),
        _order("40", created_at=datetime(2026, 10, 1, 18), cost="12"),
    ]
    assert summarize_sales(orders) == summarize_sales(list(reversed(orders)))
    assert summarize_sales(orders).per_day == {
        datetime(2026, 10, 1).date(): Decimal("50"),
        datetime(2026, 10, 2).date(): Decimal("25"),
    }


def test_window_start_week_begins_on_sunday():
    assert window_start("today", NOW) == datetime(2026, 10, 15)
    assert window_start("week", NOW) == datetime(2026, 10, 11)
    assert window_start("month", NOW) == datetime(2026, 10, 1)
    assert window_start("all", NOW) is None
    with pytest.raises(ValueError):
        window_start("year", NOW)


def test_window_predicate_filters_by_creation_date():
    old = _order("10", created_at=datetime(2026, 9, 30, 23))
    recent = _order("20", created_at=datetime(2026, 10, 12, 8))

    assert summarize_sales([old, recent], window_predicate("month", NOW)).gross == Decimal("20")
    assert summarize_sales([old, recent], window_predicate("all", NOW)).gross == Decimal("30")


def test_rank_units_sold_by_product_brand_color():
    products = [
        _product("1", "Lisa (Verde)", "Karsten", "Verde", units_sold=5),
        _product("2", "Lisa (Azul)", "Karsten", "Azul", units_sold=2),
        _product("3", "Floral (Verde)", "Döhler", "Verde", units_sold=4),
        _product("4", "Xadrez (Rosa)", "Döhler", "Rosa", units_sold=0),
    ]
    assert rank_units_sold(products) == [("Lisa (Verde)", 5), ("Floral (Verde)", 4), ("Lisa (Azul)", 2)]
    assert rank_units_sold(products, by="brand") == [("Karsten", 7), ("Döhler", 4)]
    assert rank_units_sold(products, by="color", limit=1) == [("Verde", 9)]


def test_top_sold_groups_by_base_name():
    catalog = {
        "1": _product("1", "Lisa (Verde)", "Karsten", "Verde"),
        "2": _product("2", "Lisa (Azul)", "Karsten", "Azul"),
    }
    order = _order(
        "135",
        lines=[
            SaleRequestLine(position=0, product_id="1", name="Lisa (Verde)", quantity=2, item_type=ItemType.full),
            SaleRequestLine(position=1, product_id="2", name="Lisa (Azul)", quantity=1, item_type=ItemType.full),
        ],
    )
    top = top_sold_in_orders([order], catalog)
    assert top.products == [("Lisa", 3)]
    assert top.colors == [("Verde", 2), ("Azul", 1)]


def test_inventory_summary_and_restock():
    products = [
        _product("1", "Lisa (Verde)", "Karsten", "Verde", stock=(2, 1)),
        _product("2", "Lisa (Azul)", "Karsten", "Azul", stock=(0, 1)),
        _product("3", "Floral (Verde)", "Döhler", "Verde", stock=(0, 0), price_full="60"),
    ]
    s = inventory_summary(products)
    assert s.total_units == 4
    assert s.potential_revenue == Decimal("180")

    assert [p.id for p in restock_candidates(products, threshold=1)] == ["2", "3"]


SAO_PAULO = ZoneInfo("America/Sao_Paulo")


def test_windows_follow_shop_local_clock():
    """
    GIVEN 01:00 UTC le 16/10, soit 22:00 le 15/10 à São Paulo (UTC-3)
    THEN "today" est encore le 15/10 local : une vente de 13:00 UTC le 15 compte,
         une vente de 23:30 locale la veille (02:30 UTC le 15) ne compte pas
    """
    now = datetime(2026, 10, 16, 1, 0, tzinfo=timezone.utc)
    morning = _order("30", created_at=datetime(2026, 10, 15, 13, 0))
    late_yesterday = _order("15", created_at=datetime(2026, 10, 15, 2, 30))

    today = window_predicate("today", now, SAO_PAULO)
    assert summarize_sales([morning, late_yesterday], today, SAO_PAULO).gross == Decimal("30")


def test_per_day_uses_shop_local_date():
    """Une vente à 21:30 locale (00:30 UTC le lendemain) reste sur le jour local."""
    evening = _order("40", created_at=datetime(2026, 10, 16, 0, 30))
    assert summarize_sales([evening], tz=SAO_PAULO).per_day == {datetime(2026, 10, 15).date(): Decimal("40")}
