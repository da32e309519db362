"""
Trailing-window chart builder

The rows for the whole trailing span are fetched once. They are grouped here by
YYYY-MM and every month is evaluated on its own slice, so no per-month query
is ever issued.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from opsmetrics.metrics.period_kpis import PeriodData, SelectionContext, evaluate_period
from opsmetrics.metrics.records import Goal
from opsmetrics.utils.helpers import month_key, to_float


@dataclass
class ChartPoint:
    month: str  # YYYY-MM
    total_income: float
    income_before_vat: float
    revenue_target: float
    monthly_pace: float
    labor_cost_pct: float
    labor_target_pct: float
    food_cost: float
    food_cost_pct: float
    food_target_amount: float
    current_expenses_pct: float
    # Series keyed by source or product id, display names in source_names/product_names
    avg_ticket_by_source: Dict[str, float] = field(default_factory=dict)
    product_cost: Dict[str, float] = field(default_factory=dict)
    product_target_cost: Dict[str, float] = field(default_factory=dict)
    source_names: Dict[str, str] = field(default_factory=dict)
    product_names: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "total_income": self.total_income,
            "income_before_vat": self.income_before_vat,
            "revenue_target": self.revenue_target,
            "monthly_pace": self.monthly_pace,
            "labor_cost_pct": self.labor_cost_pct,
            "labor_target_pct": self.labor_target_pct,
            "food_cost": self.food_cost,
            "food_cost_pct": self.food_cost_pct,
            "food_target_amount": self.food_target_amount,
            "current_expenses_pct": self.current_expenses_pct,
            "avg_ticket_by_source": dict(self.avg_ticket_by_source),
            "product_cost": dict(self.product_cost),
            "product_target_cost": dict(self.product_target_cost),
            "source_names": dict(self.source_names),
            "product_names": dict(self.product_names),
        }


def group_by_month(span: PeriodData, goals: List[Goal]) -> Dict[str, PeriodData]:
    """Split span-wide rows into per-month slices keyed by YYYY-MM"""
    buckets: Dict[str, PeriodData] = defaultdict(PeriodData)
    entry_month: Dict[str, str] = {}

    for entry in span.entries:
        key = month_key(entry.entry_date)
        entry_month[entry.id] = key
        buckets[key].entries.append(entry)
    for inv in span.goods_invoices:
        buckets[month_key(inv.invoice_date)].goods_invoices.append(inv)
    for inv in span.expense_invoices:
        buckets[month_key(inv.invoice_date)].expense_invoices.append(inv)
    # Breakdown and usage rows belong to the month of their daily entry
    for row in span.breakdowns:
        key = entry_month.get(row.daily_entry_id)
        if key:
            buckets[key].breakdowns.append(row)
    for row in span.product_usage:
        key = entry_month.get(row.daily_entry_id)
        if key:
            buckets[key].product_usage.append(row)
    for goal in goals:
        buckets[f"{goal.year:04d}-{goal.month:02d}"].goals.append(goal)

    return dict(buckets)


def build_trailing_chart(
    context: SelectionContext,
    months: List[Tuple[int, int]],
    span: PeriodData,
    goals: List[Goal],
) -> List[ChartPoint]:
    """One chart point per (year, month), in the order given"""
    by_month = group_by_month(span, goals)
    sources = sorted(context.income_sources, key=lambda s: s.display_order)
    points = []

    for year, month in months:
        key = f"{year:04d}-{month:02d}"
        period = evaluate_period(context, by_month.get(key) or PeriodData(), year, month)

        avg_ticket = {}
        for source in sources:
            totals = period.source_totals.get(source.id)
            avg_ticket[source.id] = totals.avg_amount if totals else 0.0

        product_cost = {}
        product_target_cost = {}
        for product in context.managed_products:
            usage = period.product_usage.get(product.id)
            product_cost[product.id] = usage.cost if usage else 0.0
            target_pct = to_float(product.target_pct)
            product_target_cost[product.id] = target_pct / 100 * period.income_before_vat

        points.append(ChartPoint(
            month=key,
            total_income=period.total_income,
            income_before_vat=period.income_before_vat,
            revenue_target=period.pace.revenue_target,
            monthly_pace=period.pace.monthly_pace,
            labor_cost_pct=period.labor_kpi.actual_pct,
            labor_target_pct=period.labor_kpi.target_pct,
            food_cost=period.food_kpi.amount,
            food_cost_pct=period.food_kpi.actual_pct,
            food_target_amount=period.food_kpi.target_pct / 100 * period.income_before_vat,
            current_expenses_pct=period.current_expenses_kpi.actual_pct,
            avg_ticket_by_source=avg_ticket,
            product_cost=product_cost,
            product_target_cost=product_target_cost,
            source_names={s.id: s.name for s in sources},
            product_names={p.id: p.name for p in context.managed_products},
        ))

    return points
