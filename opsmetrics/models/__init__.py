"""Database models for the metrics engine"""

from opsmetrics.models.business import (
    Business,
    BusinessSchedule,
    Goal,
    IncomeSource,
    IncomeSourceGoal,
    ManagedProduct,
)

from opsmetrics.models.operations import (
    DailyEntry,
    DailyIncomeBreakdown,
    DailyProductUsage,
    MonthlySummary,
)

from opsmetrics.models.expenses import Supplier, Invoice

from opsmetrics.models.monthly_metrics import BusinessMonthlyMetrics

__all__ = [
    "Business",
    "BusinessSchedule",
    "Goal",
    "IncomeSource",
    "IncomeSourceGoal",
    "ManagedProduct",
    "DailyEntry",
    "DailyIncomeBreakdown",
    "DailyProductUsage",
    "MonthlySummary",
    "Supplier",
    "Invoice",
    "BusinessMonthlyMetrics",
]
