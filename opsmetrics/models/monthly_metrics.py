"""
Business Monthly Metrics Model

Stored KPI snapshot per business and calendar month. Recalculated on demand
by MetricsSnapshotService.refresh() and read back for reports.
"""
from sqlalchemy import Column, Integer, String, DateTime, Numeric, JSON, ForeignKey, UniqueConstraint
from datetime import datetime

from opsmetrics.models.base import Base


class BusinessMonthlyMetrics(Base):
    __tablename__ = "business_monthly_metrics"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(String(36), ForeignKey("businesses.id"), index=True, nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)

    # Work days
    entry_count = Column(Integer, default=0)               # Number of daily entries
    actual_work_days = Column(Numeric(6, 2), default=0)    # Sum of entry day factors
    expected_work_days = Column(Numeric(6, 2), default=0)  # From the weekly schedule

    # Income
    total_income = Column(Numeric(12, 2), default=0)
    income_before_vat = Column(Numeric(12, 2), default=0)
    monthly_pace = Column(Numeric(12, 2), default=0)
    daily_avg = Column(Numeric(12, 2), default=0)

    # Revenue target
    revenue_target = Column(Numeric(12, 2), default=0)
    target_diff_pct = Column(Numeric(8, 2), nullable=True)
    target_diff_amount = Column(Numeric(12, 2), nullable=True)

    # Labor
    labor_cost_amount = Column(Numeric(12, 2), default=0)
    labor_cost_pct = Column(Numeric(8, 2), default=0)
    labor_target_pct = Column(Numeric(8, 2), default=0)
    labor_diff_pct = Column(Numeric(8, 2), nullable=True)  # NULL = no target set
    labor_diff_amount = Column(Numeric(12, 2), nullable=True)

    # Food
    food_cost_amount = Column(Numeric(12, 2), default=0)
    food_cost_pct = Column(Numeric(8, 2), default=0)
    food_target_pct = Column(Numeric(8, 2), default=0)
    food_diff_pct = Column(Numeric(8, 2), nullable=True)
    food_diff_amount = Column(Numeric(12, 2), nullable=True)

    # Current expenses
    current_expenses_amount = Column(Numeric(12, 2), default=0)
    current_expenses_pct = Column(Numeric(8, 2), default=0)
    current_expenses_target_pct = Column(Numeric(8, 2), default=0)
    current_expenses_diff_pct = Column(Numeric(8, 2), nullable=True)
    current_expenses_diff_amount = Column(Numeric(12, 2), nullable=True)

    # Managed products: [{name, cost, pct, target_pct, diff_pct}, ...] (first three)
    managed_products = Column(JSON, nullable=True)

    # Income breakdown
    private_income = Column(Numeric(12, 2), default=0)
    private_orders_count = Column(Integer, default=0)
    private_avg_ticket = Column(Numeric(10, 2), default=0)
    business_income = Column(Numeric(12, 2), default=0)
    business_orders_count = Column(Integer, default=0)
    business_avg_ticket = Column(Numeric(10, 2), default=0)

    # Comparisons
    prev_month_income = Column(Numeric(12, 2), default=0)
    prev_month_change_pct = Column(Numeric(8, 2), default=0)
    prev_year_income = Column(Numeric(12, 2), default=0)
    prev_year_change_pct = Column(Numeric(8, 2), default=0)

    # Parameters used
    vat_pct = Column(Numeric(6, 4), default=0)
    markup_pct = Column(Numeric(6, 4), default=1)
    manager_salary = Column(Numeric(12, 2), default=0)
    manager_daily_cost = Column(Numeric(12, 2), default=0)

    # Hours
    total_labor_hours = Column(Numeric(10, 2), default=0)
    total_discounts = Column(Numeric(12, 2), default=0)

    computed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("business_id", "year", "month", name="uq_monthly_metrics_business_month"),)

    def __repr__(self):
        return f"<BusinessMonthlyMetrics {self.business_id} {self.year}-{self.month:02d}: income={self.total_income}>"
