"""
SQL data provider tests against a seeded SQLite database.
"""
import asyncio
from datetime import date

import pytest

from opsmetrics.connectors.sql_provider import SqlDataProvider

MARCH = (date(2026, 3, 1), date(2026, 3, 31))


def _run(coro):
    """Run an async coroutine in a sync test."""
    return asyncio.run(coro)


@pytest.fixture
def provider(seeded_factory):
    return SqlDataProvider(seeded_factory)


def test_businesses_exclude_deleted(provider):
    (business,) = _run(provider.fetch_businesses(["b1", "b-closed"]))
    assert business.id == "b1"
    assert business.vat_rate == pytest.approx(0.18)
    assert business.manager_monthly_salary == pytest.approx(3100)


def test_entries_in_range_without_deleted(provider):
    entries = _run(provider.fetch_daily_entries(["b1"], *MARCH))
    assert [e.id for e in entries] == ["e1", "e2"]
    assert entries[0].total_register == pytest.approx(1180)
    assert entries[0].labor_hours == pytest.approx(8)


def test_range_is_inclusive(provider):
    entries = _run(provider.fetch_daily_entries(["b1"], date(2026, 2, 28), date(2026, 2, 28)))
    assert [e.id for e in entries] == ["pm1"]


def test_goals_for_month(provider):
    (goal,) = _run(provider.fetch_goals(["b1"], 2026, 3))
    assert goal.labor_cost_target_pct == pytest.approx(10)
    assert goal.food_cost_target_pct is None
    assert goal.vat_rate is None
    assert _run(provider.fetch_goals(["b1"], 2026, 4)) == []


def test_active_suppliers_only(provider):
    suppliers = _run(provider.fetch_suppliers(["b1"], "goods_purchases"))
    assert [s.id for s in suppliers] == ["sup-g"]
    assert _run(provider.fetch_suppliers(["b1"], "current_expenses")) == []


def test_invoices_exclude_deleted(provider):
    invoices = _run(provider.fetch_invoices(["sup-g"], ["b1"], *MARCH))
    assert [i.id for i in invoices] == ["i1"]
    assert invoices[0].subtotal == pytest.approx(600)


def test_active_sources_and_products(provider):
    sources = _run(provider.fetch_income_sources(["b1"]))
    products = _run(provider.fetch_managed_products(["b1"]))
    assert [s.id for s in sources] == ["s1"]
    assert [p.id for p in products] == ["p1"]
    assert products[0].target_pct == pytest.approx(5)


def test_keyed_rows(provider):
    (breakdown,) = _run(provider.fetch_income_breakdown(["e1", "e2"]))
    assert breakdown.orders_count == pytest.approx(10)
    (usage,) = _run(provider.fetch_product_usage(["e1"]))
    assert usage.unit_cost_at_time == pytest.approx(45)
    (target,) = _run(provider.fetch_income_source_goals(["g1"]))
    assert target.avg_ticket_target == pytest.approx(100)


def test_monthly_summary_fallback(provider):
    (summary,) = _run(provider.fetch_monthly_summary_fallback(["b1"], 2025, 3))
    assert summary.total_income == pytest.approx(99999)


def test_empty_ids_short_circuit():
    def fail():
        raise AssertionError("no session should be opened")

    provider = SqlDataProvider(fail)
    assert _run(provider.fetch_businesses([])) == []
    assert _run(provider.fetch_income_breakdown([])) == []
    assert _run(provider.fetch_invoices([], ["b1"], *MARCH)) == []
