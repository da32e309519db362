"""
Labor cost calculation

The manager's monthly salary is a fixed cost. It is prorated by the share of
the month's scheduled work that has actually been worked:

    manager_daily_cost     = salary_sum / expected_work_days
    manager_cost_for_period = manager_daily_cost * actual_work_days
    labor_cost             = (raw_labor_cost + manager_cost_for_period) * markup
"""
from dataclasses import dataclass, asdict
from typing import Iterable

from opsmetrics.metrics.records import Business, DailyEntry
from opsmetrics.utils.helpers import safe_divide, to_float


@dataclass
class LaborCost:
    raw_labor_cost: float
    actual_work_days: float
    manager_salary: float
    manager_daily_cost: float
    manager_cost_for_period: float
    markup: float
    labor_cost: float

    def to_dict(self) -> dict:
        return asdict(self)


def manager_salary_sum(businesses: Iterable[Business]) -> float:
    return sum(to_float(b.manager_monthly_salary) for b in businesses)


def calculate_labor_cost(
    raw_labor_cost: float,
    actual_work_days: float,
    manager_salary: float,
    expected_work_days: float,
    markup: float,
) -> LaborCost:
    manager_daily_cost = safe_divide(manager_salary, expected_work_days) if expected_work_days > 0 else 0.0
    manager_cost_for_period = manager_daily_cost * actual_work_days
    labor_cost = (raw_labor_cost + manager_cost_for_period) * markup
    return LaborCost(
        raw_labor_cost=raw_labor_cost,
        actual_work_days=actual_work_days,
        manager_salary=manager_salary,
        manager_daily_cost=manager_daily_cost,
        manager_cost_for_period=manager_cost_for_period,
        markup=markup,
        labor_cost=labor_cost,
    )


def labor_cost_for_entries(
    entries: Iterable[DailyEntry],
    manager_salary: float,
    expected_work_days: float,
    markup: float,
) -> LaborCost:
    """Labor cost over a set of daily entries"""
    entries = list(entries)
    return calculate_labor_cost(
        raw_labor_cost=sum(to_float(e.labor_cost) for e in entries),
        actual_work_days=sum(to_float(e.day_factor) for e in entries),
        manager_salary=manager_salary,
        expected_work_days=expected_work_days,
        markup=markup,
    )
