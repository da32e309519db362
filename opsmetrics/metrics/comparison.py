"""
Historical comparison

Compares the current period against the previous-month and previous-year
windows. Each window is evaluated on its own goals and schedule month through
evaluate_period, for the same business selection.

Income basis:
    previous month -> monthly pace vs. the previous month's raw income
    previous year  -> raw total income vs. the previous year's raw income

Percentage deltas are only reported when the historical window has income
before VAT and at least one underlying row; otherwise they are 0.
"""
from dataclasses import dataclass, asdict
from typing import Iterable, Optional

from opsmetrics.metrics.period_kpis import PeriodData, PeriodKpis, SelectionContext, evaluate_period
from opsmetrics.metrics.records import MonthlySummary
from opsmetrics.utils.helpers import to_float

BASIS_PACE = "pace"
BASIS_TOTAL = "total"


@dataclass
class PeriodComparison:
    label: str
    start: str
    end: str
    total_income: float
    income_before_vat: float
    used_monthly_summary: bool
    income_basis: str
    income_change: float
    income_change_pct: float
    labor_cost_pct: float
    labor_cost_change: float
    food_cost_pct: float
    food_cost_change: float
    current_expenses_pct: float
    current_expenses_change: float

    def to_dict(self) -> dict:
        return asdict(self)


def evaluate_historical_period(
    context: SelectionContext,
    data: PeriodData,
    year: int,
    month: int,
    fallback_summaries: Optional[Iterable[MonthlySummary]] = None,
) -> PeriodKpis:
    """
    Evaluate a historical window. When it has no daily entries at all, the
    stored monthly summaries (if any) stand in for its total income.
    """
    income_override = None
    summaries = list(fallback_summaries or [])
    if not data.entries and summaries:
        income_override = sum(to_float(s.total_income) for s in summaries)
    return evaluate_period(context, data, year, month, income_override=income_override)


def _delta(current_pct: float, historical_pct: float, has_data: bool) -> float:
    return current_pct - historical_pct if has_data else 0.0


def income_change(current_value: float, historical_income: float) -> tuple:
    """(amount change, % change) against a historical income, zero without a baseline"""
    if historical_income <= 0:
        return 0.0, 0.0
    return current_value - historical_income, (current_value / historical_income - 1) * 100


def compare_periods(
    label: str,
    current: PeriodKpis,
    historical: PeriodKpis,
    start: str,
    end: str,
    income_basis: str = BASIS_TOTAL,
) -> PeriodComparison:
    current_value = current.pace.monthly_pace if income_basis == BASIS_PACE else current.total_income
    change, change_pct = income_change(current_value, historical.total_income)

    has_income = historical.income_before_vat > 0
    return PeriodComparison(
        label=label,
        start=start,
        end=end,
        total_income=historical.total_income,
        income_before_vat=historical.income_before_vat,
        used_monthly_summary=historical.used_monthly_summary,
        income_basis=income_basis,
        income_change=change,
        income_change_pct=change_pct,
        labor_cost_pct=historical.labor_kpi.actual_pct,
        labor_cost_change=_delta(
            current.labor_kpi.actual_pct,
            historical.labor_kpi.actual_pct,
            has_income and historical.entry_count > 0,
        ),
        food_cost_pct=historical.food_kpi.actual_pct,
        food_cost_change=_delta(
            current.food_kpi.actual_pct,
            historical.food_kpi.actual_pct,
            has_income and historical.goods_invoice_count > 0,
        ),
        current_expenses_pct=historical.current_expenses_kpi.actual_pct,
        current_expenses_change=_delta(
            current.current_expenses_kpi.actual_pct,
            historical.current_expenses_kpi.actual_pct,
            has_income and historical.expense_invoice_count > 0,
        ),
    )
