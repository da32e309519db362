"""
Snapshot Service - Stored monthly KPIs per business

Runs the period evaluation for one business over a full calendar month and
upserts the rounded result into business_monthly_metrics, so reports can read
a month's KPIs without recomputing them.

Comparisons in the snapshot are against the previous calendar month and the
same month last year, both as raw daily-entry income, and both measured
against the current month's pace.
"""
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from opsmetrics.config import Settings, get_settings
from opsmetrics.connectors.base import DataProvider
from opsmetrics.connectors.sql_provider import SqlDataProvider
from opsmetrics.metrics.comparison import income_change
from opsmetrics.metrics.dashboard import DashboardMetrics
from opsmetrics.metrics.kpi import CostKpi
from opsmetrics.metrics.errors import InvalidSelectionError
from opsmetrics.metrics.periods import month_range, previous_month, previous_year
from opsmetrics.models.monthly_metrics import BusinessMonthlyMetrics
from opsmetrics.services.metrics_service import MetricsService
from opsmetrics.utils.helpers import round_or_none, to_float
from opsmetrics.utils.logger import log

SNAPSHOT_PRODUCTS = 3


class MetricsSnapshotService:
    def __init__(self, db: Session, provider: Optional[DataProvider] = None, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.provider = provider or SqlDataProvider(sessionmaker(bind=db.get_bind()))
        self.metrics = MetricsService(self.provider, self.settings)

    async def refresh(self, business_id: str, year: int, month: int) -> Dict:
        """
        Recalculate and store the snapshot for one business and month.

        Args:
            business_id: Business to snapshot
            year, month: Calendar month

        Returns:
            Dict of the stored snapshot row

        Raises:
            InvalidSelectionError: the business does not exist or was deleted
            MetricsFetchError: a fetch failed or timed out, nothing is stored
        """
        fetched = await self.metrics.fetch_batch("snapshot_business", {
            "businesses": self.provider.fetch_businesses([business_id]),
        })
        if not fetched["businesses"]:
            raise InvalidSelectionError(f"Unknown business: {business_id}")

        period = month_range(year, month)
        log.info(f"Refreshing metrics snapshot for {business_id} {year}-{month:02d}")

        result = await self.metrics.compute([business_id], period, include_chart=False)

        prev_month_range = previous_month(period)
        prev_year_range = previous_year(period)
        fetched = await self.metrics.fetch_batch("snapshot_history", {
            "prev_month": self.provider.fetch_daily_entries([business_id], prev_month_range.start, prev_month_range.end),
            "prev_year": self.provider.fetch_daily_entries([business_id], prev_year_range.start, prev_year_range.end),
        })
        prev_month_income = sum(to_float(e.total_register) for e in fetched["prev_month"])
        prev_year_income = sum(to_float(e.total_register) for e in fetched["prev_year"])

        snapshot = self._upsert(business_id, year, month, result, prev_month_income, prev_year_income)

        log.info(
            f"Snapshot {business_id} {year}-{month:02d}: income={snapshot.total_income}, "
            f"pace={snapshot.monthly_pace}, labor={snapshot.labor_cost_pct}%"
        )
        return self._snapshot_to_dict(snapshot)

    def get_snapshots(self, business_id: str, months: int = 6) -> List[Dict]:
        """Latest N stored snapshots for a business, oldest first."""
        results = (
            self.db.query(BusinessMonthlyMetrics)
            .filter(BusinessMonthlyMetrics.business_id == business_id)
            .order_by(BusinessMonthlyMetrics.year.desc(), BusinessMonthlyMetrics.month.desc())
            .limit(months)
            .all()
        )
        return [self._snapshot_to_dict(r) for r in reversed(results)]

    def get_snapshot(self, business_id: str, year: int, month: int) -> Optional[Dict]:
        result = self._find(business_id, year, month)
        if not result:
            return None
        return self._snapshot_to_dict(result)

    # ── Private methods ──

    def _find(self, business_id: str, year: int, month: int) -> Optional[BusinessMonthlyMetrics]:
        return self.db.query(BusinessMonthlyMetrics).filter(
            BusinessMonthlyMetrics.business_id == business_id,
            BusinessMonthlyMetrics.year == year,
            BusinessMonthlyMetrics.month == month,
        ).first()

    def _upsert(
        self,
        business_id: str,
        year: int,
        month: int,
        result: DashboardMetrics,
        prev_month_income: float,
        prev_year_income: float,
    ) -> BusinessMonthlyMetrics:
        digits = self.settings.snapshot_round_digits

        def r(value):
            return round_or_none(value, digits)

        current = result.current
        pace = current.pace
        split = current.income_split
        _, prev_month_change_pct = income_change(pace.monthly_pace, prev_month_income)
        _, prev_year_change_pct = income_change(pace.monthly_pace, prev_year_income)

        existing = self._find(business_id, year, month)
        if not existing:
            existing = BusinessMonthlyMetrics(business_id=business_id, year=year, month=month)
            self.db.add(existing)

        existing.entry_count = current.entry_count
        existing.actual_work_days = r(current.actual_work_days)
        existing.expected_work_days = r(current.expected_work_days)

        existing.total_income = r(current.total_income)
        existing.income_before_vat = r(current.income_before_vat)
        existing.monthly_pace = r(pace.monthly_pace)
        existing.daily_avg = r(pace.daily_average)

        existing.revenue_target = r(pace.revenue_target)
        has_revenue_target = pace.revenue_target > 0
        existing.target_diff_pct = r(pace.target_diff_pct) if has_revenue_target else None
        existing.target_diff_amount = r(pace.target_diff_amount) if has_revenue_target else None

        self._apply_kpi(existing, "labor", "labor_cost", current.labor_kpi, r)
        self._apply_kpi(existing, "food", "food_cost", current.food_kpi, r)
        self._apply_kpi(existing, "current_expenses", "current_expenses", current.current_expenses_kpi, r)

        existing.managed_products = [
            {
                "name": p.name,
                "cost": r(p.total_cost),
                "pct": r(p.pct),
                "target_pct": r(p.target_pct),
                "diff_pct": r(p.diff_pct) if p.target_pct else None,
            }
            for p in result.managed_products[:SNAPSHOT_PRODUCTS]
        ]

        existing.private_income = r(split.private_income)
        existing.private_orders_count = int(split.private_orders)
        existing.private_avg_ticket = r(split.private_avg)
        existing.business_income = r(split.business_income)
        existing.business_orders_count = int(split.business_orders)
        existing.business_avg_ticket = r(split.business_avg)

        existing.prev_month_income = r(prev_month_income)
        existing.prev_month_change_pct = r(prev_month_change_pct)
        existing.prev_year_income = r(prev_year_income)
        existing.prev_year_change_pct = r(prev_year_change_pct)

        existing.vat_pct = round_or_none(current.rates.vat_rate, 4)
        existing.markup_pct = round_or_none(current.rates.markup, 4)
        existing.manager_salary = r(current.labor.manager_salary)
        existing.manager_daily_cost = r(current.labor.manager_daily_cost)

        existing.total_labor_hours = r(current.labor_hours)
        existing.total_discounts = r(current.discounts)
        existing.computed_at = datetime.utcnow()

        self.db.commit()
        return existing

    @staticmethod
    def _apply_kpi(row: BusinessMonthlyMetrics, prefix: str, amount_prefix: str, value: CostKpi, r):
        """Write one cost KPI; diffs stay NULL when no target is set"""
        has_target = value.target_pct > 0
        setattr(row, f"{amount_prefix}_amount", r(value.amount))
        setattr(row, f"{amount_prefix}_pct", r(value.actual_pct))
        setattr(row, f"{prefix}_target_pct", r(value.target_pct))
        setattr(row, f"{prefix}_diff_pct", r(value.diff_pct) if has_target else None)
        setattr(row, f"{prefix}_diff_amount", r(value.diff_amount) if has_target else None)

    def _snapshot_to_dict(self, row: BusinessMonthlyMetrics) -> Dict:
        """Convert a snapshot row to a dict, Numeric columns as floats"""

        def f(value):
            return float(value) if value is not None else None

        return {
            "business_id": row.business_id,
            "year": row.year,
            "month": row.month,
            "period": f"{row.year:04d}-{row.month:02d}",
            "entry_count": row.entry_count,
            "actual_work_days": f(row.actual_work_days),
            "expected_work_days": f(row.expected_work_days),
            "total_income": f(row.total_income),
            "income_before_vat": f(row.income_before_vat),
            "monthly_pace": f(row.monthly_pace),
            "daily_avg": f(row.daily_avg),
            "revenue_target": f(row.revenue_target),
            "target_diff_pct": f(row.target_diff_pct),
            "target_diff_amount": f(row.target_diff_amount),
            "labor_cost_amount": f(row.labor_cost_amount),
            "labor_cost_pct": f(row.labor_cost_pct),
            "labor_target_pct": f(row.labor_target_pct),
            "labor_diff_pct": f(row.labor_diff_pct),
            "labor_diff_amount": f(row.labor_diff_amount),
            "food_cost_amount": f(row.food_cost_amount),
            "food_cost_pct": f(row.food_cost_pct),
            "food_target_pct": f(row.food_target_pct),
            "food_diff_pct": f(row.food_diff_pct),
            "food_diff_amount": f(row.food_diff_amount),
            "current_expenses_amount": f(row.current_expenses_amount),
            "current_expenses_pct": f(row.current_expenses_pct),
            "current_expenses_target_pct": f(row.current_expenses_target_pct),
            "current_expenses_diff_pct": f(row.current_expenses_diff_pct),
            "current_expenses_diff_amount": f(row.current_expenses_diff_amount),
            "managed_products": row.managed_products or [],
            "private_income": f(row.private_income),
            "private_orders_count": row.private_orders_count,
            "private_avg_ticket": f(row.private_avg_ticket),
            "business_income": f(row.business_income),
            "business_orders_count": row.business_orders_count,
            "business_avg_ticket": f(row.business_avg_ticket),
            "prev_month_income": f(row.prev_month_income),
            "prev_month_change_pct": f(row.prev_month_change_pct),
            "prev_year_income": f(row.prev_year_income),
            "prev_year_change_pct": f(row.prev_year_change_pct),
            "vat_pct": f(row.vat_pct),
            "markup_pct": f(row.markup_pct),
            "manager_salary": f(row.manager_salary),
            "manager_daily_cost": f(row.manager_daily_cost),
            "total_labor_hours": f(row.total_labor_hours),
            "total_discounts": f(row.total_discounts),
            "computed_at": row.computed_at.isoformat() if row.computed_at else None,
        }

