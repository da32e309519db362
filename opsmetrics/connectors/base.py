"""
Base Data Provider

Every source of engine inputs implements this interface. Fetches are async so
the service can issue each dependency stage as one concurrent batch.

An empty id list is a valid request that returns no rows; implementations
must not query for it. "No rows" is never an error, only a raised exception
or a timeout is.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Sequence

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


class DataProvider(ABC):
    """
    Read-only access to the rows the metrics engine consumes

    Implementations:
    - SqlDataProvider: SQLAlchemy tables, soft-deleted and inactive rows excluded
    - InMemoryDataProvider: plain record lists (tests, offline runs)
    """

    name = "base"

    @abstractmethod
    async def fetch_businesses(self, business_ids: Sequence[str]) -> List[Business]:
        pass

    @abstractmethod
    async def fetch_daily_entries(self, business_ids: Sequence[str], start: date, end: date) -> List[DailyEntry]:
        """Entries with start <= entry_date <= end"""
        pass

    @abstractmethod
    async def fetch_schedule(self, business_ids: Sequence[str]) -> List[ScheduleRule]:
        pass

    @abstractmethod
    async def fetch_goals(self, business_ids: Sequence[str], year: int, month: int) -> List[Goal]:
        pass

    @abstractmethod
    async def fetch_income_source_goals(self, goal_ids: Sequence[str]) -> List[IncomeSourceGoal]:
        pass

    @abstractmethod
    async def fetch_suppliers(self, business_ids: Sequence[str], expense_type: str) -> List[Supplier]:
        """Active suppliers of one expense type"""
        pass

    @abstractmethod
    async def fetch_invoices(
        self,
        supplier_ids: Sequence[str],
        business_ids: Sequence[str],
        start: date,
        end: date,
    ) -> List[Invoice]:
        """Invoices of the given suppliers with start <= invoice_date <= end"""
        pass

    @abstractmethod
    async def fetch_income_sources(self, business_ids: Sequence[str]) -> List[IncomeSource]:
        pass

    @abstractmethod
    async def fetch_income_breakdown(self, entry_ids: Sequence[str]) -> List[IncomeBreakdown]:
        pass

    @abstractmethod
    async def fetch_managed_products(self, business_ids: Sequence[str]) -> List[ManagedProduct]:
        pass

    @abstractmethod
    async def fetch_product_usage(self, entry_ids: Sequence[str]) -> List[ProductUsage]:
        pass

    @abstractmethod
    async def fetch_monthly_summary_fallback(
        self, business_ids: Sequence[str], year: int, month: int
    ) -> List[MonthlySummary]:
        """Stored monthly totals, used when a historical month has no daily entries"""
        pass
