"""
In-memory data provider

Serves plain record lists. Used by the tests and for offline runs over rows
loaded from elsewhere.
"""
from datetime import date
from typing import Iterable, List, Optional, Sequence

from opsmetrics.connectors.base import DataProvider
from opsmetrics.metrics.records import (
    Business,
    DailyEntry,
    Goal,
    IncomeBreakdown,
    IncomeSource,
    IncomeSourceGoal,
    Invoice,
    ManagedProduct,
    MonthlySummary,
    ProductUsage,
    ScheduleRule,
    Supplier,
)


class InMemoryDataProvider(DataProvider):
    """
    Record lists filtered the way the SQL provider filters its tables.

    Every call is recorded in ``calls`` as (method, args) so tests can assert
    which fetches were issued.
    """

    name = "memory"

    def __init__(
        self,
        businesses: Optional[Iterable[Business]] = None,
        schedule: Optional[Iterable[ScheduleRule]] = None,
        entries: Optional[Iterable[DailyEntry]] = None,
        goals: Optional[Iterable[Goal]] = None,
        income_source_goals: Optional[Iterable[IncomeSourceGoal]] = None,
        suppliers: Optional[Iterable[Supplier]] = None,
        invoices: Optional[Iterable[Invoice]] = None,
        income_sources: Optional[Iterable[IncomeSource]] = None,
        breakdowns: Optional[Iterable[IncomeBreakdown]] = None,
        managed_products: Optional[Iterable[ManagedProduct]] = None,
        product_usage: Optional[Iterable[ProductUsage]] = None,
        monthly_summaries: Optional[Iterable[MonthlySummary]] = None,
    ):
        self.businesses = list(businesses or [])
        self.schedule = list(schedule or [])
        self.entries = list(entries or [])
        self.goals = list(goals or [])
        self.income_source_goals = list(income_source_goals or [])
        self.suppliers = list(suppliers or [])
        self.invoices = list(invoices or [])
        self.income_sources = list(income_sources or [])
        self.breakdowns = list(breakdowns or [])
        self.managed_products = list(managed_products or [])
        self.product_usage = list(product_usage or [])
        self.monthly_summaries = list(monthly_summaries or [])
        self.calls = []

    def _record(self, method: str, *args):
        self.calls.append((method, args))

    def call_count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def fetch_businesses(self, business_ids: Sequence[str]) -> List[Business]:
        if not business_ids:
            return []
        self._record("fetch_businesses", tuple(business_ids))
        ids = set(business_ids)
        return [b for b in self.businesses if b.id in ids]

    async def fetch_daily_entries(self, business_ids: Sequence[str], start: date, end: date) -> List[DailyEntry]:
        if not business_ids:
            return []
        self._record("fetch_daily_entries", tuple(business_ids), start, end)
        ids = set(business_ids)
        rows = [e for e in self.entries if e.business_id in ids and start <= e.entry_date <= end]
        return sorted(rows, key=lambda e: e.entry_date)

    async def fetch_schedule(self, business_ids: Sequence[str]) -> List[ScheduleRule]:
        if not business_ids:
            return []
        self._record("fetch_schedule", tuple(business_ids))
        ids = set(business_ids)
        return [r for r in self.schedule if r.business_id in ids]

    async def fetch_goals(self, business_ids: Sequence[str], year: int, month: int) -> List[Goal]:
        if not business_ids:
            return []
        self._record("fetch_goals", tuple(business_ids), year, month)
        ids = set(business_ids)
        return [g for g in self.goals if g.business_id in ids and g.year == year and g.month == month]

    async def fetch_income_source_goals(self, goal_ids: Sequence[str]) -> List[IncomeSourceGoal]:
        if not goal_ids:
            return []
        self._record("fetch_income_source_goals", tuple(goal_ids))
        ids = set(goal_ids)
        return [g for g in self.income_source_goals if g.goal_id in ids]

    async def fetch_suppliers(self, business_ids: Sequence[str], expense_type: str) -> List[Supplier]:
        if not business_ids:
            return []
        self._record("fetch_suppliers", tuple(business_ids), expense_type)
        ids = set(business_ids)
        return [
            s for s in self.suppliers
            if s.business_id in ids and s.expense_type == expense_type and s.is_active
        ]

    async def fetch_invoices(
        self,
        supplier_ids: Sequence[str],
        business_ids: Sequence[str],
        start: date,
        end: date,
    ) -> List[Invoice]:
        if not supplier_ids or not business_ids:
            return []
        self._record("fetch_invoices", tuple(supplier_ids), tuple(business_ids), start, end)
        suppliers = set(supplier_ids)
        ids = set(business_ids)
        return [
            inv for inv in self.invoices
            if inv.supplier_id in suppliers and inv.business_id in ids and start <= inv.invoice_date <= end
        ]

    async def fetch_income_sources(self, business_ids: Sequence[str]) -> List[IncomeSource]:
        if not business_ids:
            return []
        self._record("fetch_income_sources", tuple(business_ids))
        ids = set(business_ids)
        rows = [s for s in self.income_sources if s.business_id in ids]
        return sorted(rows, key=lambda s: s.display_order)

    async def fetch_income_breakdown(self, entry_ids: Sequence[str]) -> List[IncomeBreakdown]:
        if not entry_ids:
            return []
        self._record("fetch_income_breakdown", tuple(entry_ids))
        ids = set(entry_ids)
        return [b for b in self.breakdowns if b.daily_entry_id in ids]

    async def fetch_managed_products(self, business_ids: Sequence[str]) -> List[ManagedProduct]:
        if not business_ids:
            return []
        self._record("fetch_managed_products", tuple(business_ids))
        ids = set(business_ids)
        return [p for p in self.managed_products if p.business_id in ids]

    async def fetch_product_usage(self, entry_ids: Sequence[str]) -> List[ProductUsage]:
        if not entry_ids:
            return []
        self._record("fetch_product_usage", tuple(entry_ids))
        ids = set(entry_ids)
        return [u for u in self.product_usage if u.daily_entry_id in ids]

    async def fetch_monthly_summary_fallback(
        self, business_ids: Sequence[str], year: int, month: int
    ) -> List[MonthlySummary]:
        if not business_ids:
            return []
        self._record("fetch_monthly_summary_fallback", tuple(business_ids), year, month)
        ids = set(business_ids)
        return [
            s for s in self.monthly_summaries
            if s.business_id in ids and s.year == year and s.month == month
        ]
