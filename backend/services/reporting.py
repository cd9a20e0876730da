"""
SalesAggregator : replis (folds) en lecture seule sur les pedidos terminés.

Aucune invariante propre hormis la commutativité / associativité des sommes :
l'ordre des pedidos en entrée ne change pas le résultat.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Callable, Iterable, Mapping
from zoneinfo import ZoneInfo

from backend.app.core.config import settings
from backend.app.db.models.core_types import SaleStatus
from backend.app.db.models.models_v1 import Product, SaleRequest
from backend.services.ledger import physical_stock, stock_map

PERIODS = ("today", "week", "month", "all")

OrderPredicate = Callable[[SaleRequest], bool]


def shop_zone(name: str | None = None) -> ZoneInfo:
    return ZoneInfo(name or settings.shop_timezone)


def _local(dt: datetime, tz: ZoneInfo) -> datetime:
    """Heure murale du magasin, sans tzinfo. Une date naïve est de l'UTC (colonnes en base)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz).replace(tzinfo=None)


def window_start(period: str, now: datetime) -> datetime | None:
    """Début de fenêtre en heure locale (now déjà local) ; la semaine commence le dimanche."""
    today = datetime.combine(now.date(), time.min)
    if period == "today":
        return today
    if period == "week":
        return today - timedelta(days=(now.weekday() + 1) % 7)
    if period == "month":
        return today.replace(day=1)
    if period == "all":
        return None
    raise ValueError(f"Unknown period {period!r}, expected one of {PERIODS}")


def window_predicate(period: str, now: datetime | None = None, tz: ZoneInfo | None = None) -> OrderPredicate:
    tz = tz or shop_zone()
    start = window_start(period, _local(now or datetime.now(timezone.utc), tz))
    if start is None:
        return lambda order: True
    return lambda order: order.created_at is not None and _local(order.created_at, tz) >= start


def sale_amount(order: SaleRequest) -> Decimal:
    """finalPrice ?? totalPrice"""
    return Decimal(order.final_price if order.final_price is not None else order.total_price)


@dataclass(frozen=True)
class SalesSummary:
    order_count: int = 0
    gross: Decimal = Decimal("0")
    net: Decimal = Decimal("0")
    production_cost: Decimal = Decimal("0")
    per_day: dict[date, Decimal] = field(default_factory=dict)

    @property
    def profit(self) -> Decimal:
        return self.net - self.production_cost

    @property
    def margin(self) -> Decimal:
        if self.net <= 0:
            return Decimal("0")
        return (self.profit / self.net * 100).quantize(Decimal("0.01"))


def completed_in_window(orders: Iterable[SaleRequest], predicate: OrderPredicate | None = None) -> list[SaleRequest]:
    return [
        o
        for o in orders
        if o.status == SaleStatus.completed and (predicate is None or predicate(o))
    ]


def summarize_sales(
    orders: Iterable[SaleRequest],
    predicate: OrderPredicate | None = None,
    tz: ZoneInfo | None = None,
) -> SalesSummary:
    tz = tz or shop_zone()
    gross = net = cost = Decimal("0")
    per_day: dict[date, Decimal] = defaultdict(lambda: Decimal("0"))
    selected = completed_in_window(orders, predicate)

    for order in selected:
        amount = sale_amount(order)
        gross += amount
        # pedidos anciens sans net_value : net = brut
        net += Decimal(order.net_value) if order.net_value is not None else amount
        cost += Decimal(order.total_production_cost or 0)
        if order.created_at is not None:
            per_day[_local(order.created_at, tz).date()] += amount

    return SalesSummary(
        order_count=len(selected),
        gross=gross,
        net=net,
        production_cost=cost,
        per_day=dict(sorted(per_day.items())),
    )


def _ranked(counts: Mapping[str, int], limit: int | None = None) -> list[tuple[str, int]]:
    ranking = sorted(((k, v) for k, v in counts.items() if v > 0), key=lambda kv: (-kv[1], kv[0]))
    return ranking[:limit] if limit is not None else ranking


def rank_units_sold(products: Iterable[Product], by: str = "product", limit: int | None = None) -> list[tuple[str, int]]:
    """Classement sur le compteur cumulé units_sold, par produit, marque ou couleur principale."""
    counts: Counter[str] = Counter()
    for p in products:
        if by == "product":
            key = p.name
        elif by == "brand":
            key = p.brand
        elif by == "color":
            key = p.colors[0].name if p.colors else ""
        else:
            raise ValueError(f"Unknown ranking key {by!r}")
        if key:
            counts[key] += int(p.units_sold or 0)
    return _ranked(counts, limit)


@dataclass(frozen=True)
class TopSellers:
    products: list[tuple[str, int]]
    colors: list[tuple[str, int]]


def top_sold_in_orders(
    orders: Iterable[SaleRequest],
    catalog: Mapping[str, Product],
    limit: int = 5,
) -> TopSellers:
    """Meilleures ventes de la fenêtre, par nom de base ("Lisa (Verde)" -> "Lisa") et par couleur."""
    by_name: Counter[str] = Counter()
    by_color: Counter[str] = Counter()
    for order in orders:
        for line in order.lines:
            by_name[line.name.split("(")[0].strip()] += line.quantity
            product = catalog.get(line.product_id)
            if product is not None and product.colors:
                by_color[product.colors[0].name] += line.quantity
    return TopSellers(products=_ranked(by_name, limit), colors=_ranked(by_color))


# ---------- INVENTAIRE ----------
def total_stock(product: Product) -> int:
    return sum(physical_stock(stock_map(v)) for v in product.variations)


@dataclass(frozen=True)
class InventorySummary:
    total_units: int
    potential_revenue: Decimal


def inventory_summary(products: Iterable[Product]) -> InventorySummary:
    units = 0
    revenue = Decimal("0")
    for product in products:
        for variation in product.variations:
            qty = physical_stock(stock_map(variation))
            units += qty
            revenue += qty * Decimal(variation.price_full or 0)
    return InventorySummary(total_units=units, potential_revenue=revenue)


def restock_candidates(products: Iterable[Product], threshold: int) -> list[Product]:
    """"Está na hora de repor" : stock total (toutes tailles, tous magasins) <= seuil."""
    return [p for p in products if total_stock(p) <= threshold]
