"""
Managed product costing

Cost is quantity x the product's live unit cost. When costing from the
snapshot is enabled, each usage row is costed at its unit_cost_at_time and
falls back to the live cost when the snapshot is missing.
"""
from collections import defaultdict
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional

from opsmetrics.metrics.records import ManagedProduct, ProductUsage
from opsmetrics.utils.helpers import percent_of, to_float


@dataclass
class UsageTotals:
    quantity: float = 0.0
    cost: float = 0.0


@dataclass
class ProductSummary:
    id: str
    name: str
    unit: str
    unit_cost: float
    total_quantity: float
    total_cost: float
    pct: float
    target_pct: Optional[float]
    diff_pct: float
    prev_month_pct: Optional[float]
    prev_month_change: float
    prev_year_pct: Optional[float]
    prev_year_change: float

    def to_dict(self) -> dict:
        return asdict(self)


def aggregate_usage(
    rows: Iterable[ProductUsage],
    products: Iterable[ManagedProduct],
    use_unit_cost_snapshot: bool = False,
) -> Dict[str, UsageTotals]:
    """Quantity and cost per tracked product"""
    live_cost = {p.id: to_float(p.unit_cost) for p in products}
    totals: Dict[str, UsageTotals] = defaultdict(UsageTotals)
    for row in rows:
        if row.product_id not in live_cost:
            continue
        quantity = to_float(row.quantity)
        unit_cost = live_cost[row.product_id]
        if use_unit_cost_snapshot and row.unit_cost_at_time is not None:
            unit_cost = to_float(row.unit_cost_at_time)
        agg = totals[row.product_id]
        agg.quantity += quantity
        agg.cost += quantity * unit_cost
    return dict(totals)


def _historical_pct(usage: Optional[UsageTotals], income_before_vat: float) -> Optional[float]:
    if usage is None or usage.quantity <= 0 or income_before_vat <= 0:
        return None
    return percent_of(usage.cost, income_before_vat)


def summarize_products(
    products: Iterable[ManagedProduct],
    current: Dict[str, UsageTotals],
    income_before_vat: float,
    prev_month: Optional[Dict[str, UsageTotals]] = None,
    prev_month_income_before_vat: float = 0.0,
    prev_year: Optional[Dict[str, UsageTotals]] = None,
    prev_year_income_before_vat: float = 0.0,
) -> List[ProductSummary]:
    prev_month = prev_month or {}
    prev_year = prev_year or {}
    summaries = []
    for product in products:
        usage = current.get(product.id) or UsageTotals()
        pct = percent_of(usage.cost, income_before_vat)
        target = to_float(product.target_pct) if product.target_pct is not None else None
        pm_pct = _historical_pct(prev_month.get(product.id), prev_month_income_before_vat)
        py_pct = _historical_pct(prev_year.get(product.id), prev_year_income_before_vat)
        summaries.append(ProductSummary(
            id=product.id,
            name=product.name,
            unit=product.unit,
            unit_cost=to_float(product.unit_cost),
            total_quantity=usage.quantity,
            total_cost=usage.cost,
            pct=pct,
            target_pct=target,
            diff_pct=pct - target if target else 0.0,
            prev_month_pct=pm_pct,
            prev_month_change=pct - pm_pct if pm_pct is not None else 0.0,
            prev_year_pct=py_pct,
            prev_year_change=pct - py_pct if py_pct is not None else 0.0,
        ))
    return summaries
