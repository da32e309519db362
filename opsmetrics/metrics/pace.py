"""
Monthly pace projection and revenue target variance
"""
from dataclasses import dataclass, asdict

from opsmetrics.utils.helpers import safe_divide


@dataclass
class PaceProjection:
    monthly_pace: float
    daily_average: float
    revenue_target: float
    revenue_target_before_vat: float
    target_diff_pct: float
    target_diff_amount: float

    def to_dict(self) -> dict:
        return asdict(self)


def monthly_pace(
    total_income: float,
    actual_day_factors: float,
    expected_work_days: float,
    has_schedule: bool = True,
) -> float:
    """Average income per actual work-day unit, scaled to the month's schedule"""
    if actual_day_factors <= 0 or not has_schedule:
        return 0.0
    return (total_income / actual_day_factors) * expected_work_days


def project_pace(
    total_income: float,
    actual_day_factors: float,
    expected_work_days: float,
    revenue_target: float,
    vat_divisor: float = 1.0,
    has_schedule: bool = True,
) -> PaceProjection:
    """
    Forecast the full month and compare it to the revenue target.

    target_diff_amount is the full-month gap prorated back to the share of
    the month actually worked, not the raw pace - target difference.
    """
    pace = monthly_pace(total_income, actual_day_factors, expected_work_days, has_schedule)

    target_diff_pct = 0.0
    target_diff_amount = 0.0
    if revenue_target > 0 and expected_work_days > 0:
        target_diff_pct = (pace / revenue_target - 1) * 100
        daily_diff = (pace - revenue_target) / expected_work_days
        target_diff_amount = daily_diff * actual_day_factors

    return PaceProjection(
        monthly_pace=pace,
        daily_average=safe_divide(total_income, actual_day_factors),
        revenue_target=revenue_target,
        revenue_target_before_vat=safe_divide(revenue_target, vat_divisor),
        target_diff_pct=target_diff_pct,
        target_diff_amount=target_diff_amount,
    )
