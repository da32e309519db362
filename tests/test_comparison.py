"""
Historical comparison tests.

Previous-month income is compared against the current monthly pace and
previous-year income against the current raw total. Cost deltas need both
income and rows in the historical window.
"""
from datetime import date

import pytest

from opsmetrics.metrics.comparison import (
    BASIS_PACE,
    BASIS_TOTAL,
    compare_periods,
    evaluate_historical_period,
    income_change,
)
from opsmetrics.metrics.period_kpis import PeriodData, SelectionContext, evaluate_period
from opsmetrics.metrics.records import Business, DailyEntry, Invoice, MonthlySummary, ScheduleRule


def _context():
    # Every day of the week is a full work day
    return SelectionContext.build(
        [Business("b1", vat_rate=0.0, markup=1.0, manager_monthly_salary=0)],
        [ScheduleRule("b1", dow, 1.0) for dow in range(7)],
    )


def _entry(entry_id, day, total, labor):
    return DailyEntry(entry_id, "b1", day, total_register=total, labor_cost=labor, day_factor=1)


def _invoice(invoice_id, day, subtotal):
    return Invoice(invoice_id, "sup", "b1", day, subtotal=subtotal)


@pytest.fixture
def current():
    data = PeriodData(
        entries=[
            _entry("c1", date(2026, 3, 2), 1000, 100),
            _entry("c2", date(2026, 3, 3), 1000, 100),
            _entry("c3", date(2026, 3, 4), 1000, 100),
        ],
        goods_invoices=[_invoice("cg", date(2026, 3, 5), 600)],
        expense_invoices=[_invoice("cx", date(2026, 3, 5), 300)],
    )
    return evaluate_period(_context(), data, 2026, 3)


@pytest.fixture
def prev_month():
    data = PeriodData(
        entries=[
            _entry("p1", date(2026, 2, 2), 2000, 100),
            _entry("p2", date(2026, 2, 3), 2000, 100),
        ],
        goods_invoices=[_invoice("pg", date(2026, 2, 5), 400)],
    )
    return evaluate_period(_context(), data, 2026, 2)


def test_income_change_without_baseline():
    assert income_change(5000, 0) == (0.0, 0.0)


def test_current_period_values(current):
    assert current.expected_work_days == pytest.approx(31)
    assert current.pace.monthly_pace == pytest.approx(31000)
    assert current.labor_kpi.actual_pct == pytest.approx(10)
    assert current.food_kpi.actual_pct == pytest.approx(20)
    assert current.current_expenses_kpi.actual_pct == pytest.approx(10)


def test_work_days_sum_day_factors_not_entries():
    data = PeriodData(entries=[
        DailyEntry("h1", "b1", date(2026, 3, 2), total_register=1000, day_factor=0.5),
        DailyEntry("h2", "b1", date(2026, 3, 3), total_register=2000, day_factor=1),
    ])
    period = evaluate_period(_context(), data, 2026, 3)
    assert period.entry_count == 2
    assert period.actual_work_days == pytest.approx(1.5)
    assert period.labor.actual_work_days == pytest.approx(1.5)
    assert period.pace.monthly_pace == pytest.approx(62000)
    assert period.to_dict()["actual_work_days"] == pytest.approx(1.5)


def test_month_over_month_uses_pace(current, prev_month):
    cmp = compare_periods("prev_month", current, prev_month, "2026-02-01", "2026-02-28", BASIS_PACE)
    assert cmp.income_basis == BASIS_PACE
    assert cmp.total_income == pytest.approx(4000)
    assert cmp.income_change == pytest.approx(27000)
    assert cmp.income_change_pct == pytest.approx(675)


def test_year_over_year_uses_raw_total(current, prev_month):
    cmp = compare_periods("prev_year", current, prev_month, "2025-03-01", "2025-03-31", BASIS_TOTAL)
    assert cmp.income_change == pytest.approx(-1000)
    assert cmp.income_change_pct == pytest.approx(-25)


def test_cost_deltas_guarded_by_rows(current, prev_month):
    cmp = compare_periods("prev_month", current, prev_month, "2026-02-01", "2026-02-28", BASIS_PACE)
    # labor: 10% now vs 5% then
    assert cmp.labor_cost_change == pytest.approx(5)
    # food: 20% now vs 10% then
    assert cmp.food_cost_change == pytest.approx(10)
    # no current-expense invoices last month, so no delta
    assert cmp.current_expenses_pct == 0.0
    assert cmp.current_expenses_change == 0.0


def test_empty_historical_window(current):
    empty = evaluate_period(_context(), PeriodData(), 2025, 3)
    cmp = compare_periods("prev_year", current, empty, "2025-03-01", "2025-03-31")
    assert cmp.income_change == 0.0
    assert cmp.income_change_pct == 0.0
    assert cmp.labor_cost_change == 0.0
    assert cmp.food_cost_change == 0.0


class TestMonthlySummaryFallback:

    def test_used_when_no_entries(self):
        hist = evaluate_historical_period(
            _context(),
            PeriodData(),
            2025,
            3,
            fallback_summaries=[MonthlySummary("b1", 2025, 3, total_income=5000)],
        )
        assert hist.used_monthly_summary is True
        assert hist.total_income == pytest.approx(5000)
        assert hist.income_before_vat == pytest.approx(5000)

    def test_ignored_when_entries_exist(self):
        data = PeriodData(entries=[_entry("h1", date(2025, 3, 3), 1500, 0)])
        hist = evaluate_historical_period(
            _context(),
            data,
            2025,
            3,
            fallback_summaries=[MonthlySummary("b1", 2025, 3, total_income=5000)],
        )
        assert hist.used_monthly_summary is False
        assert hist.total_income == pytest.approx(1500)

    def test_no_summary_no_income(self):
        hist = evaluate_historical_period(_context(), PeriodData(), 2025, 3, fallback_summaries=[])
        assert hist.used_monthly_summary is False
        assert hist.total_income == 0.0

    def test_fallback_income_gives_change_but_no_cost_deltas(self, current):
        hist = evaluate_historical_period(
            _context(),
            PeriodData(),
            2025,
            3,
            fallback_summaries=[MonthlySummary("b1", 2025, 3, total_income=2000)],
        )
        cmp = compare_periods("prev_year", current, hist, "2025-03-01", "2025-03-31", BASIS_TOTAL)
        assert cmp.used_monthly_summary is True
        assert cmp.income_change_pct == pytest.approx(50)
        assert cmp.labor_cost_change == 0.0
