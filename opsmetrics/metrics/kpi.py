"""
VAT normalization and percentage-of-income KPIs

Every percentage metric (labor, food, current expenses, managed products) uses
income before VAT as its denominator. Diff sign convention:
positive = over target (adverse), negative = under target (favorable).
"""
from dataclasses import dataclass, asdict
from typing import Iterable

from opsmetrics.metrics.records import Goal
from opsmetrics.utils.helpers import mean, percent_of, to_float


def income_before_vat(total_income: float, vat_divisor: float) -> float:
    if vat_divisor <= 0:
        return total_income
    return total_income / vat_divisor


@dataclass
class CostKpi:
    """One cost metric against its monthly target"""
    amount: float
    actual_pct: float
    target_pct: float
    diff_pct: float
    diff_amount: float

    def to_dict(self) -> dict:
        return asdict(self)


def cost_kpi(amount: float, target_pct: float, income_before_vat: float) -> CostKpi:
    actual_pct = percent_of(amount, income_before_vat)
    diff_pct = actual_pct - target_pct
    return CostKpi(
        amount=amount,
        actual_pct=actual_pct,
        target_pct=target_pct,
        diff_pct=diff_pct,
        diff_amount=diff_pct * income_before_vat / 100,
    )


def labor_target_pct(goals: Iterable[Goal]) -> float:
    return mean(to_float(g.labor_cost_target_pct) for g in goals)


def food_target_pct(goals: Iterable[Goal]) -> float:
    return mean(to_float(g.food_cost_target_pct) for g in goals)


def current_expenses_target_pct(goals: Iterable[Goal], income_before_vat: float) -> float:
    """Goals store the current-expenses target as an amount; convert to % of income"""
    target_amount = sum(to_float(g.current_expenses_target) for g in goals)
    return percent_of(target_amount, income_before_vat)


def revenue_target(goals: Iterable[Goal]) -> float:
    return sum(to_float(g.revenue_target) for g in goals)
