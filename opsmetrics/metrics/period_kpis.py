"""
Per-period KPI evaluation

Runs rate resolution, labor costing, VAT normalization, the cost KPIs, pace
projection, income-source and managed-product aggregation over one period's
slice of already-fetched rows. The current window, both comparison windows,
the snapshot refresh and every trailing chart month go through evaluate_period.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from opsmetrics.metrics import kpi
from opsmetrics.metrics.income_sources import (
    IncomeSplit,
    SourceTotals,
    aggregate_breakdowns,
    avg_ticket_targets,
    split_by_income_type,
)
from opsmetrics.metrics.labor import LaborCost, labor_cost_for_entries, manager_salary_sum
from opsmetrics.metrics.pace import PaceProjection, project_pace
from opsmetrics.metrics.products import UsageTotals, aggregate_usage
from opsmetrics.metrics.rates import ResolvedRates, resolve_rates
from opsmetrics.metrics.records import (
    Business,
    DailyEntry,
    Goal,
    IncomeBreakdown,
    IncomeSource,
    IncomeSourceGoal,
    Invoice,
    ManagedProduct,
    ProductUsage,
    ScheduleRule,
)
from opsmetrics.metrics.schedule import average_day_factors, expected_work_days
from opsmetrics.utils.helpers import to_float


@dataclass(frozen=True)
class SelectionContext:
    """Business-level inputs shared by every period of one computation"""
    businesses: tuple
    schedule: tuple
    income_sources: tuple = ()
    managed_products: tuple = ()
    default_vat_rate: float = 0.0
    default_markup: float = 1.0
    use_unit_cost_snapshot: bool = False

    @classmethod
    def build(
        cls,
        businesses: List[Business],
        schedule: List[ScheduleRule],
        income_sources: Optional[List[IncomeSource]] = None,
        managed_products: Optional[List[ManagedProduct]] = None,
        **options,
    ) -> "SelectionContext":
        return cls(
            businesses=tuple(businesses),
            schedule=tuple(schedule),
            income_sources=tuple(income_sources or ()),
            managed_products=tuple(managed_products or ()),
            **options,
        )

    @property
    def day_factors(self) -> Dict[int, float]:
        return average_day_factors(self.schedule)

    @property
    def manager_salary(self) -> float:
        return manager_salary_sum(self.businesses)


@dataclass
class PeriodData:
    """Rows fetched for one period"""
    entries: List[DailyEntry] = field(default_factory=list)
    goals: List[Goal] = field(default_factory=list)
    goods_invoices: List[Invoice] = field(default_factory=list)
    expense_invoices: List[Invoice] = field(default_factory=list)
    breakdowns: List[IncomeBreakdown] = field(default_factory=list)
    product_usage: List[ProductUsage] = field(default_factory=list)
    income_source_goals: List[IncomeSourceGoal] = field(default_factory=list)

    @property
    def entry_ids(self) -> List[str]:
        return [e.id for e in self.entries]


@dataclass
class PeriodKpis:
    year: int
    month: int
    total_income: float
    income_before_vat: float
    rates: ResolvedRates
    expected_work_days: float
    actual_work_days: float  # Sum of entry day factors
    labor: LaborCost
    labor_kpi: kpi.CostKpi
    food_kpi: kpi.CostKpi
    current_expenses_kpi: kpi.CostKpi
    pace: PaceProjection
    source_totals: Dict[str, SourceTotals]
    source_targets: Dict[str, float]
    income_split: IncomeSplit
    product_usage: Dict[str, UsageTotals]
    entry_count: int
    goods_invoice_count: int
    expense_invoice_count: int
    labor_hours: float
    discounts: float
    used_monthly_summary: bool = False

    @property
    def fixed_expenses(self) -> float:
        return self.labor.labor_cost

    @property
    def variable_expenses(self) -> float:
        return self.food_kpi.amount

    @property
    def total_expenses(self) -> float:
        return self.fixed_expenses + self.variable_expenses

    @property
    def profit_loss(self) -> float:
        return self.total_income - self.total_expenses

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "total_income": self.total_income,
            "income_before_vat": self.income_before_vat,
            "vat_rate": self.rates.vat_rate,
            "markup": self.rates.markup,
            "expected_work_days": self.expected_work_days,
            "actual_work_days": self.actual_work_days,
            "entry_count": self.entry_count,
            "labor": self.labor.to_dict(),
            "labor_cost": self.labor_kpi.to_dict(),
            "food_cost": self.food_kpi.to_dict(),
            "current_expenses": self.current_expenses_kpi.to_dict(),
            "pace": self.pace.to_dict(),
            "income_split": self.income_split.to_dict(),
            "fixed_expenses": self.fixed_expenses,
            "variable_expenses": self.variable_expenses,
            "total_expenses": self.total_expenses,
            "profit_loss": self.profit_loss,
            "labor_hours": self.labor_hours,
            "discounts": self.discounts,
            "used_monthly_summary": self.used_monthly_summary,
        }


def _invoice_total(invoices: List[Invoice]) -> float:
    return sum(to_float(inv.subtotal) for inv in invoices)


def evaluate_period(
    context: SelectionContext,
    data: PeriodData,
    year: int,
    month: int,
    income_override: Optional[float] = None,
) -> PeriodKpis:
    """
    Evaluate every KPI for one period.

    Args:
        context: Businesses, schedule, sources and products of the selection
        data: Rows fetched for the period
        year, month: Month the period is attributed to (goals, schedule)
        income_override: Substitute total income, used for the monthly-summary
            fallback when the period has no daily entries
    """
    rates = resolve_rates(
        context.businesses,
        data.goals,
        default_vat_rate=context.default_vat_rate,
        default_markup=context.default_markup,
    )
    expected = expected_work_days(context.day_factors, year, month)

    total_income = sum(to_float(e.total_register) for e in data.entries)
    used_summary = False
    if income_override is not None:
        total_income = income_override
        used_summary = True
    ibv = kpi.income_before_vat(total_income, rates.vat_divisor)

    labor = labor_cost_for_entries(data.entries, context.manager_salary, expected, rates.markup)

    labor_kpi = kpi.cost_kpi(labor.labor_cost, kpi.labor_target_pct(data.goals), ibv)
    food_kpi = kpi.cost_kpi(_invoice_total(data.goods_invoices), kpi.food_target_pct(data.goals), ibv)
    current_expenses_kpi = kpi.cost_kpi(
        _invoice_total(data.expense_invoices),
        kpi.current_expenses_target_pct(data.goals, ibv),
        ibv,
    )

    pace = project_pace(
        total_income=total_income,
        actual_day_factors=labor.actual_work_days,
        expected_work_days=expected,
        revenue_target=kpi.revenue_target(data.goals),
        vat_divisor=rates.vat_divisor,
        has_schedule=bool(context.schedule),
    )

    source_totals = aggregate_breakdowns(data.breakdowns)

    return PeriodKpis(
        year=year,
        month=month,
        total_income=total_income,
        income_before_vat=ibv,
        rates=rates,
        expected_work_days=expected,
        actual_work_days=labor.actual_work_days,
        labor=labor,
        labor_kpi=labor_kpi,
        food_kpi=food_kpi,
        current_expenses_kpi=current_expenses_kpi,
        pace=pace,
        source_totals=source_totals,
        source_targets=avg_ticket_targets(data.income_source_goals),
        income_split=split_by_income_type(context.income_sources, source_totals),
        product_usage=aggregate_usage(
            data.product_usage, context.managed_products, context.use_unit_cost_snapshot
        ),
        entry_count=len(data.entries),
        goods_invoice_count=len(data.goods_invoices),
        expense_invoice_count=len(data.expense_invoices),
        labor_hours=sum(to_float(e.labor_hours) for e in data.entries),
        discounts=sum(to_float(e.discounts) for e in data.entries),
        used_monthly_summary=used_summary,
    )
