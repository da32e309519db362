"""
Dashboard result assembly

Combines the current-period KPIs, both historical comparisons, the income
source and managed product summaries, and the trailing chart into the single
structure the dashboard renders.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from opsmetrics.metrics.charts import ChartPoint, build_trailing_chart
from opsmetrics.metrics.comparison import (
    BASIS_PACE,
    BASIS_TOTAL,
    PeriodComparison,
    compare_periods,
    evaluate_historical_period,
)
from opsmetrics.metrics.income_sources import IncomeSourceSummary, summarize_income_sources
from opsmetrics.metrics.period_kpis import PeriodData, PeriodKpis, SelectionContext, evaluate_period
from opsmetrics.metrics.periods import DateRange, previous_month, previous_year
from opsmetrics.metrics.products import ProductSummary, summarize_products
from opsmetrics.metrics.records import Goal, MonthlySummary


@dataclass
class DashboardMetrics:
    business_ids: List[str]
    start: str
    end: str
    current: PeriodKpis
    prev_month: PeriodComparison
    prev_year: PeriodComparison
    income_sources: List[IncomeSourceSummary] = field(default_factory=list)
    managed_products: List[ProductSummary] = field(default_factory=list)
    chart: List[ChartPoint] = field(default_factory=list)
    generation: Optional[int] = None

    def to_dict(self) -> dict:
        current = self.current.to_dict()
        return {
            "business_ids": list(self.business_ids),
            "start": self.start,
            "end": self.end,
            "generation": self.generation,
            **current,
            "prev_month": self.prev_month.to_dict(),
            "prev_year": self.prev_year.to_dict(),
            "income_sources": [s.to_dict() for s in self.income_sources],
            "managed_products": [p.to_dict() for p in self.managed_products],
            "chart": [p.to_dict() for p in self.chart],
        }


def build_dashboard_metrics(
    context: SelectionContext,
    business_ids: List[str],
    base: DateRange,
    current_data: PeriodData,
    prev_month_data: PeriodData,
    prev_year_data: PeriodData,
    prev_year_fallback: Optional[List[MonthlySummary]] = None,
    chart_months: Optional[list] = None,
    chart_span: Optional[PeriodData] = None,
    chart_goals: Optional[List[Goal]] = None,
) -> DashboardMetrics:
    """Evaluate every window over already-fetched rows"""
    pm_range = previous_month(base)
    py_range = previous_year(base)

    current = evaluate_period(context, current_data, base.year, base.month)
    pm = evaluate_historical_period(context, prev_month_data, pm_range.year, pm_range.month)
    py = evaluate_historical_period(
        context, prev_year_data, py_range.year, py_range.month, fallback_summaries=prev_year_fallback
    )

    chart = []
    if chart_months:
        chart = build_trailing_chart(context, chart_months, chart_span or PeriodData(), chart_goals or [])

    return DashboardMetrics(
        business_ids=list(business_ids),
        start=base.start.isoformat(),
        end=base.end.isoformat(),
        current=current,
        prev_month=compare_periods(
            "prev_month", current, pm, pm_range.start.isoformat(), pm_range.end.isoformat(), BASIS_PACE
        ),
        prev_year=compare_periods(
            "prev_year", current, py, py_range.start.isoformat(), py_range.end.isoformat(), BASIS_TOTAL
        ),
        income_sources=summarize_income_sources(
            context.income_sources,
            current.source_totals,
            current.source_targets,
            prev_month=pm.source_totals,
            prev_year=py.source_totals,
        ),
        managed_products=summarize_products(
            context.managed_products,
            current.product_usage,
            current.income_before_vat,
            prev_month=pm.product_usage,
            prev_month_income_before_vat=pm.income_before_vat,
            prev_year=py.product_usage,
            prev_year_income_before_vat=py.income_before_vat,
        ),
        chart=chart,
    )
