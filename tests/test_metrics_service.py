"""
Metrics service tests: the staged fetch DAG, failure handling and stale
generation dropping, driven through the in-memory provider.
"""
import asyncio
from datetime import date

import pytest

from opsmetrics.config import Settings
from opsmetrics.connectors.memory_provider import InMemoryDataProvider
from opsmetrics.metrics.errors import MetricsFetchError
from opsmetrics.metrics.periods import DateRange
from opsmetrics.metrics.records import (
    CURRENT_EXPENSES,
    GOODS_PURCHASES,
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
from opsmetrics.services.metrics_service import MetricsRecomputeCoordinator, MetricsService

MARCH = DateRange(date(2026, 3, 1), date(2026, 3, 31))


def _run(coro):
    """Run an async coroutine in a sync test."""
    return asyncio.run(coro)


def _settings(**overrides):
    values = {"fetch_batch_timeout_seconds": 5.0, "trailing_chart_months": 6}
    values.update(overrides)
    return Settings(**values)


def _provider_kwargs():
    return dict(
        businesses=[Business("b1", "Cafe", vat_rate=0.18, markup=1.0, manager_monthly_salary=0)],
        schedule=[ScheduleRule("b1", dow, 1.0) for dow in range(7)],
        entries=[
            DailyEntry("e1", "b1", date(2026, 3, 2), total_register=1180, labor_cost=100, day_factor=1),
            DailyEntry("e2", "b1", date(2026, 3, 3), total_register=2360, labor_cost=200, day_factor=1),
            DailyEntry("pm1", "b1", date(2026, 2, 10), total_register=1180, labor_cost=150, day_factor=1),
            DailyEntry("old", "b1", date(2025, 11, 4), total_register=590, labor_cost=50, day_factor=1),
            DailyEntry("other", "b2", date(2026, 3, 2), total_register=99999, day_factor=1),
        ],
        goals=[
            Goal(
                "g1", "b1", 2026, 3,
                revenue_target=50000,
                labor_cost_target_pct=10,
                food_cost_target_pct=30,
                current_expenses_target=300,
            ),
        ],
        income_source_goals=[IncomeSourceGoal("g1", "s1", avg_ticket_target=100)],
        suppliers=[
            Supplier("sup-g", "b1", GOODS_PURCHASES),
            Supplier("sup-x", "b1", CURRENT_EXPENSES),
            Supplier("sup-old", "b1", GOODS_PURCHASES, is_active=False),
        ],
        invoices=[
            Invoice("i1", "sup-g", "b1", date(2026, 3, 5), subtotal=900),
            Invoice("i2", "sup-x", "b1", date(2026, 3, 6), subtotal=300),
            Invoice("i3", "sup-old", "b1", date(2026, 3, 7), subtotal=5000),
        ],
        income_sources=[IncomeSource("s1", "b1", "Dine-in")],
        breakdowns=[
            IncomeBreakdown("e1", "s1", amount=1180, orders_count=10),
            IncomeBreakdown("e2", "s1", amount=2360, orders_count=20),
        ],
        managed_products=[ManagedProduct("p1", "b1", "Salmon", unit_cost=50, target_pct=5)],
        product_usage=[ProductUsage("e1", "p1", quantity=6)],
        monthly_summaries=[MonthlySummary("b1", 2025, 3, total_income=11800)],
    )


def _compute(provider, business_ids=("b1",), date_range=MARCH, **settings):
    service = MetricsService(provider, _settings(**settings))
    return _run(service.compute(list(business_ids), date_range))


# ────────────────────────────────────────────
# FULL COMPUTATION
# ────────────────────────────────────────────


class TestCompute:

    def test_current_period(self):
        result = _compute(InMemoryDataProvider(**_provider_kwargs()))
        current = result.current
        assert current.total_income == pytest.approx(3540)
        assert current.income_before_vat == pytest.approx(3000)
        assert current.labor_kpi.amount == pytest.approx(300)
        assert current.labor_kpi.actual_pct == pytest.approx(10)
        assert current.labor_kpi.diff_pct == pytest.approx(0)
        # Inactive supplier's invoice is excluded
        assert current.food_kpi.amount == pytest.approx(900)
        assert current.food_kpi.actual_pct == pytest.approx(30)
        assert current.current_expenses_kpi.target_pct == pytest.approx(10)
        assert current.pace.monthly_pace == pytest.approx(3540 / 2 * 31)

    def test_income_sources_and_products(self):
        result = _compute(InMemoryDataProvider(**_provider_kwargs()))
        (source,) = result.income_sources
        assert source.avg_amount == pytest.approx(118)
        assert source.avg_ticket_target == pytest.approx(100)
        (product,) = result.managed_products
        assert product.total_cost == pytest.approx(300)
        assert product.pct == pytest.approx(10)
        assert product.diff_pct == pytest.approx(5)

    def test_comparisons(self):
        result = _compute(InMemoryDataProvider(**_provider_kwargs()))
        pace = 3540 / 2 * 31

        assert result.prev_month.start == "2026-02-01"
        assert result.prev_month.end == "2026-02-28"
        assert result.prev_month.total_income == pytest.approx(1180)
        assert result.prev_month.income_change == pytest.approx(pace - 1180)

        assert result.prev_year.used_monthly_summary is True
        assert result.prev_year.total_income == pytest.approx(11800)
        assert result.prev_year.income_change == pytest.approx(3540 - 11800)

    def test_trailing_chart(self):
        result = _compute(InMemoryDataProvider(**_provider_kwargs()))
        assert [p.month for p in result.chart] == [
            "2025-10", "2025-11", "2025-12", "2026-01", "2026-02", "2026-03",
        ]
        assert result.chart[1].total_income == pytest.approx(590)
        assert result.chart[-1].total_income == pytest.approx(3540)
        assert result.chart[-1].revenue_target == pytest.approx(50000)

    def test_chart_disabled(self):
        result = _compute(InMemoryDataProvider(**_provider_kwargs()), trailing_chart_months=0)
        assert result.chart == []

    def test_result_serializes(self):
        data = _compute(InMemoryDataProvider(**_provider_kwargs())).to_dict()
        assert data["business_ids"] == ["b1"]
        assert data["total_income"] == pytest.approx(3540)
        assert data["labor_cost"]["actual_pct"] == pytest.approx(10)
        assert data["prev_year"]["used_monthly_summary"] is True
        assert len(data["chart"]) == 6

    def test_empty_selection_returns_zeros_without_fetching(self):
        provider = InMemoryDataProvider(**_provider_kwargs())
        result = _compute(provider, business_ids=())
        assert provider.calls == []
        assert result.current.total_income == 0.0
        assert result.current.pace.monthly_pace == 0.0
        assert result.income_sources == []
        assert all(p.total_income == 0.0 for p in result.chart)


# ────────────────────────────────────────────
# FETCH DAG
# ────────────────────────────────────────────


class TestFetchDag:

    def test_span_fetched_once_not_per_month(self):
        provider = InMemoryDataProvider(**_provider_kwargs())
        _compute(provider)
        # current, previous month, previous year, chart span
        assert provider.call_count("fetch_daily_entries") == 4
        # three windows plus six chart months
        assert provider.call_count("fetch_goals") == 9
        # the previous-year window has no entries, so no keyed fetch is issued for it
        assert provider.call_count("fetch_income_breakdown") == 3
        assert provider.call_count("fetch_product_usage") == 3

    def test_stages_run_in_dependency_order(self):
        provider = InMemoryDataProvider(**_provider_kwargs())
        _compute(provider)
        names = [name for name, _ in provider.calls]

        last_stage1 = max(i for i, n in enumerate(names) if n in ("fetch_daily_entries", "fetch_goals", "fetch_suppliers"))
        first_stage2 = min(i for i, n in enumerate(names) if n in ("fetch_invoices", "fetch_income_source_goals"))
        last_stage2 = max(i for i, n in enumerate(names) if n in ("fetch_invoices", "fetch_income_source_goals"))
        first_stage3 = min(i for i, n in enumerate(names) if n in ("fetch_income_breakdown", "fetch_product_usage"))

        assert last_stage1 < first_stage2
        assert last_stage2 < first_stage3

    def test_second_stage_keyed_by_first_stage_ids(self):
        provider = InMemoryDataProvider(**_provider_kwargs())
        _compute(provider)
        goal_calls = [args for name, args in provider.calls if name == "fetch_income_source_goals"]
        assert goal_calls == [(("g1",),)]
        invoice_suppliers = {args[0] for name, args in provider.calls if name == "fetch_invoices"}
        assert invoice_suppliers == {("sup-g",), ("sup-x",)}


# ────────────────────────────────────────────
# FAILURES
# ────────────────────────────────────────────


class _SlowScheduleProvider(InMemoryDataProvider):
    async def fetch_schedule(self, business_ids):
        await asyncio.sleep(1)
        return await super().fetch_schedule(business_ids)


class _BrokenUsageProvider(InMemoryDataProvider):
    async def fetch_product_usage(self, entry_ids):
        raise RuntimeError("connection reset")


class TestFailures:

    def test_timeout_fails_whole_computation(self):
        provider = _SlowScheduleProvider(**_provider_kwargs())
        with pytest.raises(MetricsFetchError) as exc:
            _compute(provider, fetch_batch_timeout_seconds=0.05)
        assert exc.value.stage == "stage1"
        # nothing after the failed stage is fetched
        assert provider.call_count("fetch_invoices") == 0

    def test_provider_error_wrapped(self):
        provider = _BrokenUsageProvider(**_provider_kwargs())
        with pytest.raises(MetricsFetchError) as exc:
            _compute(provider)
        assert exc.value.stage == "stage3"
        assert isinstance(exc.value.__cause__, RuntimeError)

    def test_no_rows_is_not_a_failure(self):
        result = _compute(InMemoryDataProvider(businesses=[Business("b1")]))
        assert result.current.total_income == 0.0
        assert result.prev_year.used_monthly_summary is False


# ────────────────────────────────────────────
# GENERATIONS
# ────────────────────────────────────────────


class _SelectiveSlowProvider(InMemoryDataProvider):
    """Selections containing "slow" or "broken" take a while to fetch"""

    async def fetch_businesses(self, business_ids):
        if "slow" in business_ids or "broken" in business_ids:
            await asyncio.sleep(0.1)
        if "broken" in business_ids:
            raise RuntimeError("query failed")
        return await super().fetch_businesses(business_ids)


class TestRecomputeCoordinator:

    def _coordinator(self):
        provider = _SelectiveSlowProvider(**_provider_kwargs())
        return MetricsRecomputeCoordinator(MetricsService(provider, _settings()))

    def test_sequential_runs_committed(self):
        coordinator = self._coordinator()
        first = _run(coordinator.recompute(["b1"], MARCH))
        second = _run(coordinator.recompute(["b1"], MARCH))
        assert first.generation == 1
        assert second.generation == 2
        assert coordinator.latest is second

    def test_stale_result_dropped(self):
        coordinator = self._coordinator()

        async def scenario():
            stale = asyncio.create_task(coordinator.recompute(["slow"], MARCH))
            await asyncio.sleep(0)
            fresh = await coordinator.recompute(["b1"], MARCH)
            return await stale, fresh

        stale, fresh = _run(scenario())
        assert stale is None
        assert fresh.generation == 2
        assert coordinator.latest is fresh
        assert coordinator.generation == 2

    def test_stale_failure_dropped(self):
        coordinator = self._coordinator()

        async def scenario():
            stale = asyncio.create_task(coordinator.recompute(["broken"], MARCH))
            await asyncio.sleep(0)
            fresh = await coordinator.recompute(["b1"], MARCH)
            return await stale, fresh

        stale, fresh = _run(scenario())
        assert stale is None
        assert fresh.current.total_income == pytest.approx(3540)

    def test_latest_failure_raised(self):
        coordinator = self._coordinator()
        with pytest.raises(MetricsFetchError):
            _run(coordinator.recompute(["broken"], MARCH))
        assert coordinator.latest is None
