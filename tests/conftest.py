"""
Shared fixtures: a throwaway SQLite database per test, seeded with one cafe.
"""
from datetime import date, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

import opsmetrics.models as m
from opsmetrics.models.base import Base


@pytest.fixture
def session_factory(tmp_path):
    # File-backed so every worker-thread session gets its own connection
    engine = create_engine(
        f"sqlite:///{tmp_path / 'metrics.db'}",
        connect_args={"check_same_thread": False},
        poolclass=NullPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def seeded_factory(session_factory):
    """
    Business b1 ("Cafe"), March 2026:
      two live entries (1180 + 2360), one soft-deleted entry,
      last day of February 2000, March 2025 5900,
      one active goods supplier (600 in March), one inactive,
      Salmon used on e1 (2 x 50 live, 45 recorded).
    """
    deleted = datetime(2026, 3, 20)
    db = session_factory()
    try:
        db.add_all([
            m.Business(id="b1", name="Cafe", vat_percentage=0.18, markup_percentage=1.0, manager_monthly_salary=3100),
            m.Business(id="b-closed", name="Closed", deleted_at=deleted),
        ])
        db.add_all([m.BusinessSchedule(business_id="b1", day_of_week=dow, day_factor=1) for dow in range(7)])
        db.add_all([
            m.DailyEntry(id="e1", business_id="b1", entry_date=date(2026, 3, 2), total_register=1180,
                         labor_cost=100, day_factor=1, labor_hours=8, discounts=10),
            m.DailyEntry(id="e2", business_id="b1", entry_date=date(2026, 3, 3), total_register=2360,
                         labor_cost=200, day_factor=1, labor_hours=0, discounts=0),
            m.DailyEntry(id="e-del", business_id="b1", entry_date=date(2026, 3, 4), total_register=5000,
                         labor_cost=500, day_factor=1, deleted_at=deleted),
            m.DailyEntry(id="pm1", business_id="b1", entry_date=date(2026, 2, 28), total_register=2000,
                         labor_cost=100, day_factor=1),
            m.DailyEntry(id="py1", business_id="b1", entry_date=date(2025, 3, 15), total_register=5900,
                         labor_cost=100, day_factor=1),
        ])
        db.add(m.Goal(id="g1", business_id="b1", year=2026, month=3, revenue_target=60000, labor_cost_target_pct=10))
        db.add_all([
            m.IncomeSource(id="s1", business_id="b1", name="Dine-in", income_type="private", display_order=1),
            m.IncomeSource(id="s-off", business_id="b1", name="Old delivery", is_active=False),
        ])
        db.add(m.IncomeSourceGoal(goal_id="g1", income_source_id="s1", avg_ticket_target=100))
        db.add(m.DailyIncomeBreakdown(daily_entry_id="e1", income_source_id="s1", amount=1180, orders_count=10))
        db.add_all([
            m.Supplier(id="sup-g", business_id="b1", name="Fish market", expense_type="goods_purchases"),
            m.Supplier(id="sup-off", business_id="b1", name="Old vendor", expense_type="goods_purchases",
                       is_active=False),
        ])
        db.add_all([
            m.Invoice(id="i1", supplier_id="sup-g", business_id="b1", invoice_date=date(2026, 3, 5), subtotal=600),
            m.Invoice(id="i2", supplier_id="sup-off", business_id="b1", invoice_date=date(2026, 3, 5), subtotal=1000),
            m.Invoice(id="i3", supplier_id="sup-g", business_id="b1", invoice_date=date(2026, 3, 6), subtotal=700,
                      deleted_at=deleted),
        ])
        db.add_all([
            m.ManagedProduct(id="p1", business_id="b1", name="Salmon", unit="kg", unit_cost=50, target_pct=5),
            m.ManagedProduct(id="p-off", business_id="b1", name="Tuna", unit="kg", unit_cost=80, is_active=False),
        ])
        db.add(m.DailyProductUsage(daily_entry_id="e1", product_id="p1", quantity=2, unit_cost_at_time=45))
        db.add(m.MonthlySummary(business_id="b1", year=2025, month=3, total_income=99999))
        db.commit()
    finally:
        db.close()
    return session_factory
