"""
Metrics Service - Dashboard KPI computation

Fetches the rows for a business selection and date range through a
DataProvider, then runs the calculation library over them.

Fetches are organized as three dependent stages. Each stage is issued as one
concurrent batch and bounded by fetch_batch_timeout_seconds:

    1. businesses, schedule, income sources, managed products, supplier lists,
       entries and goals of every window, the monthly-summary fallback and the
       trailing chart span
    2. income-source goals (goal ids) and invoices (supplier ids)
    3. income breakdowns and product usage (entry ids)

The current, previous-month and previous-year windows are fetched side by
side in the same stages. Any failure or timeout fails the whole computation.
"""
import asyncio
from datetime import date
from typing import Dict, List, Optional, Sequence

from opsmetrics.config import Settings, get_settings
from opsmetrics.connectors.base import DataProvider
from opsmetrics.metrics.dashboard import DashboardMetrics, build_dashboard_metrics
from opsmetrics.metrics.errors import MetricsEngineError, MetricsFetchError
from opsmetrics.metrics.period_kpis import PeriodData, SelectionContext
from opsmetrics.metrics.periods import DateRange, previous_month, previous_year, trailing_months
from opsmetrics.metrics.records import CURRENT_EXPENSES, GOODS_PURCHASES
from opsmetrics.utils.logger import log


class MetricsService:
    def __init__(self, provider: DataProvider, settings: Optional[Settings] = None):
        self.provider = provider
        self.settings = settings or get_settings()

    async def compute(
        self,
        business_ids: Sequence[str],
        date_range: DateRange,
        include_chart: bool = True,
    ) -> DashboardMetrics:
        """
        Compute dashboard metrics for a business selection.

        Args:
            business_ids: Selected businesses. An empty selection yields an
                all-zero result without fetching anything.
            date_range: Base period (inclusive)
            include_chart: Fetch and build the trailing chart

        Returns:
            DashboardMetrics for the base period, its comparisons and chart

        Raises:
            MetricsFetchError: a fetch stage failed or timed out
        """
        business_ids = list(dict.fromkeys(business_ids))
        chart_months = []
        if include_chart and self.settings.trailing_chart_months > 0:
            chart_months = trailing_months(date_range.end, self.settings.trailing_chart_months)

        if not business_ids:
            log.info("Metrics requested for an empty selection, returning zeros")
            return build_dashboard_metrics(
                self._context([], []),
                [],
                date_range,
                PeriodData(),
                PeriodData(),
                PeriodData(),
                chart_months=chart_months,
            )

        log.info(
            f"Computing metrics for {len(business_ids)} business(es) "
            f"{date_range.start.isoformat()}..{date_range.end.isoformat()}"
        )

        windows = {
            "current": date_range,
            "prev_month": previous_month(date_range),
            "prev_year": previous_year(date_range),
        }
        if chart_months:
            first_year, first_month = chart_months[0]
            windows["chart"] = DateRange(date(first_year, first_month, 1), date_range.end)

        # ── Stage 1: no dependencies ──
        p = self.provider
        stage1 = {
            "businesses": p.fetch_businesses(business_ids),
            "schedule": p.fetch_schedule(business_ids),
            "income_sources": p.fetch_income_sources(business_ids),
            "managed_products": p.fetch_managed_products(business_ids),
            "goods_suppliers": p.fetch_suppliers(business_ids, GOODS_PURCHASES),
            "expense_suppliers": p.fetch_suppliers(business_ids, CURRENT_EXPENSES),
            "prev_year_summary": p.fetch_monthly_summary_fallback(
                business_ids, windows["prev_year"].year, windows["prev_year"].month
            ),
        }
        for name, window in windows.items():
            stage1[f"{name}:entries"] = p.fetch_daily_entries(business_ids, window.start, window.end)
            if name != "chart":
                stage1[f"{name}:goals"] = p.fetch_goals(business_ids, window.year, window.month)
        for year, month in chart_months:
            stage1[f"chart_goals:{year}-{month}"] = p.fetch_goals(business_ids, year, month)

        fetched = await self.fetch_batch("stage1", stage1)

        data = {name: PeriodData() for name in windows}
        for name in windows:
            data[name].entries = fetched[f"{name}:entries"]
            if name != "chart":
                data[name].goals = fetched[f"{name}:goals"]
        chart_goals = []
        for year, month in chart_months:
            chart_goals.extend(fetched[f"chart_goals:{year}-{month}"])

        goods_supplier_ids = [s.id for s in fetched["goods_suppliers"]]
        expense_supplier_ids = [s.id for s in fetched["expense_suppliers"]]

        # ── Stage 2: goal ids, supplier ids ──
        stage2 = {
            "income_source_goals": p.fetch_income_source_goals([g.id for g in data["current"].goals]),
        }
        for name, window in windows.items():
            stage2[f"{name}:goods"] = p.fetch_invoices(goods_supplier_ids, business_ids, window.start, window.end)
            stage2[f"{name}:expenses"] = p.fetch_invoices(
                expense_supplier_ids, business_ids, window.start, window.end
            )

        fetched2 = await self.fetch_batch("stage2", stage2)

        data["current"].income_source_goals = fetched2["income_source_goals"]
        for name in windows:
            data[name].goods_invoices = fetched2[f"{name}:goods"]
            data[name].expense_invoices = fetched2[f"{name}:expenses"]

        # ── Stage 3: entry ids ──
        stage3 = {}
        for name in windows:
            entry_ids = data[name].entry_ids
            stage3[f"{name}:breakdowns"] = p.fetch_income_breakdown(entry_ids)
            stage3[f"{name}:usage"] = p.fetch_product_usage(entry_ids)

        fetched3 = await self.fetch_batch("stage3", stage3)

        for name in windows:
            data[name].breakdowns = fetched3[f"{name}:breakdowns"]
            data[name].product_usage = fetched3[f"{name}:usage"]

        # ── Evaluate ──
        context = self._context(
            fetched["businesses"],
            fetched["schedule"],
            fetched["income_sources"],
            fetched["managed_products"],
        )
        result = build_dashboard_metrics(
            context,
            business_ids,
            date_range,
            data["current"],
            data["prev_month"],
            data["prev_year"],
            prev_year_fallback=fetched["prev_year_summary"],
            chart_months=chart_months,
            chart_span=data.get("chart"),
            chart_goals=chart_goals,
        )

        if result.prev_year.used_monthly_summary:
            log.warning(
                f"No daily entries for {result.prev_year.start}..{result.prev_year.end}, "
                f"using stored monthly summary income {result.prev_year.total_income:.2f}"
            )

        log.info(
            f"Metrics computed: income={result.current.total_income:.2f}, "
            f"entries={result.current.entry_count}, chart_months={len(result.chart)}"
        )
        return result

    def _context(self, businesses, schedule, income_sources=None, managed_products=None) -> SelectionContext:
        return SelectionContext.build(
            businesses,
            schedule,
            income_sources,
            managed_products,
            default_vat_rate=self.settings.default_vat_rate,
            default_markup=self.settings.default_markup,
            use_unit_cost_snapshot=self.settings.use_unit_cost_snapshot,
        )

    async def fetch_batch(self, stage: str, fetches: Dict[str, object]) -> Dict[str, list]:
        """Run one batch of fetches concurrently, all or nothing"""
        keys = list(fetches)
        timeout = self.settings.fetch_batch_timeout_seconds
        try:
            results = await asyncio.wait_for(asyncio.gather(*fetches.values()), timeout=timeout)
        except asyncio.TimeoutError:
            log.bind(fetch_stage=stage).error(f"Metrics fetch {stage} timed out after {timeout}s ({len(keys)} fetches)")
            raise MetricsFetchError(stage, f"timed out after {timeout}s")
        except MetricsEngineError:
            raise
        except Exception as e:
            log.bind(fetch_stage=stage).error(f"Metrics fetch {stage} failed: {e}")
            raise MetricsFetchError(stage, str(e)) from e
        return dict(zip(keys, results))


class MetricsRecomputeCoordinator:
    """
    Serializes dashboard recomputes by generation.

    Every call to recompute() takes the next generation number. When a
    computation finishes after a newer one has started, its result (or its
    failure) is dropped and None is returned to that caller. Only the latest
    generation's result is committed to ``latest``.
    """

    def __init__(self, service: MetricsService):
        self.service = service
        self._generation = 0
        self.latest: Optional[DashboardMetrics] = None

    @property
    def generation(self) -> int:
        return self._generation

    async def recompute(self, business_ids: List[str], date_range: DateRange) -> Optional[DashboardMetrics]:
        self._generation += 1
        generation = self._generation

        try:
            result = await self.service.compute(business_ids, date_range)
        except MetricsFetchError:
            if generation != self._generation:
                log.debug(f"Dropping failed metrics generation {generation}, superseded by {self._generation}")
                return None
            raise

        if generation != self._generation:
            log.debug(f"Dropping stale metrics generation {generation}, superseded by {self._generation}")
            return None

        result.generation = generation
        self.latest = result
        return result
