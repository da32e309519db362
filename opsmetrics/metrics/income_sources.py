"""
Income source aggregation

Average ticket per income source, its target variance, and its change against
the previous month / previous year. A historical change is reported as 0 when
the historical window had no orders for that source, so "no data" never reads
as a 100% decline.
"""
from collections import defaultdict
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional

from opsmetrics.metrics.records import (
    INCOME_BUSINESS,
    IncomeBreakdown,
    IncomeSource,
    IncomeSourceGoal,
)
from opsmetrics.utils.helpers import safe_divide, to_float


@dataclass
class SourceTotals:
    total_amount: float = 0.0
    orders_count: float = 0.0

    @property
    def avg_amount(self) -> float:
        return safe_divide(self.total_amount, self.orders_count) if self.orders_count > 0 else 0.0


@dataclass
class IncomeSourceSummary:
    id: str
    name: str
    income_type: str
    total_amount: float
    orders_count: float
    avg_amount: float
    avg_ticket_target: float
    avg_ticket_diff: float
    target_diff_amount: float
    prev_month_avg: float
    prev_month_change: float
    prev_year_avg: float
    prev_year_change: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class IncomeSplit:
    """Private vs business customers"""
    private_income: float = 0.0
    private_orders: float = 0.0
    business_income: float = 0.0
    business_orders: float = 0.0

    @property
    def private_avg(self) -> float:
        return safe_divide(self.private_income, self.private_orders)

    @property
    def business_avg(self) -> float:
        return safe_divide(self.business_income, self.business_orders)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["private_avg"] = self.private_avg
        data["business_avg"] = self.business_avg
        return data


def aggregate_breakdowns(rows: Iterable[IncomeBreakdown]) -> Dict[str, SourceTotals]:
    """Sum amount and orders per income source"""
    totals: Dict[str, SourceTotals] = defaultdict(SourceTotals)
    for row in rows:
        agg = totals[row.income_source_id]
        agg.total_amount += to_float(row.amount)
        agg.orders_count += to_float(row.orders_count)
    return dict(totals)


def avg_ticket_targets(rows: Iterable[IncomeSourceGoal]) -> Dict[str, float]:
    """income_source_id -> average ticket target"""
    return {row.income_source_id: to_float(row.avg_ticket_target) for row in rows}


def split_by_income_type(
    sources: Iterable[IncomeSource],
    totals: Dict[str, SourceTotals],
) -> IncomeSplit:
    """Rows whose source is not a known business source count as private"""
    type_by_source = {s.id: s.income_type for s in sources}
    split = IncomeSplit()
    for source_id, agg in totals.items():
        if type_by_source.get(source_id) == INCOME_BUSINESS:
            split.business_income += agg.total_amount
            split.business_orders += agg.orders_count
        else:
            split.private_income += agg.total_amount
            split.private_orders += agg.orders_count
    return split


def _historical_change(current_avg: float, historical: Optional[SourceTotals]) -> float:
    if historical is None or historical.orders_count <= 0:
        return 0.0
    return current_avg - historical.avg_amount


def summarize_income_sources(
    sources: Iterable[IncomeSource],
    current: Dict[str, SourceTotals],
    targets: Dict[str, float],
    prev_month: Optional[Dict[str, SourceTotals]] = None,
    prev_year: Optional[Dict[str, SourceTotals]] = None,
) -> List[IncomeSourceSummary]:
    """One summary per source, including sources without any rows"""
    prev_month = prev_month or {}
    prev_year = prev_year or {}
    summaries = []
    for source in sorted(sources, key=lambda s: s.display_order):
        agg = current.get(source.id) or SourceTotals()
        avg_amount = agg.avg_amount
        target = targets.get(source.id, 0.0)
        diff = avg_amount - target
        pm = prev_month.get(source.id)
        py = prev_year.get(source.id)
        summaries.append(IncomeSourceSummary(
            id=source.id,
            name=source.name,
            income_type=source.income_type,
            total_amount=agg.total_amount,
            orders_count=agg.orders_count,
            avg_amount=avg_amount,
            avg_ticket_target=target,
            avg_ticket_diff=diff,
            target_diff_amount=diff * agg.orders_count,
            prev_month_avg=pm.avg_amount if pm else 0.0,
            prev_month_change=_historical_change(avg_amount, pm),
            prev_year_avg=py.avg_amount if py else 0.0,
            prev_year_change=_historical_change(avg_amount, py),
        ))
    return summaries
