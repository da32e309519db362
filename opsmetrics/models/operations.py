"""
Daily Operations Models

Daily register entries with their income-source breakdown and managed
product usage, plus the pre-migration monthly summaries used as a fallback
for old periods without daily entries.
"""
from sqlalchemy import Column, Integer, String, DateTime, Numeric, Date, ForeignKey, UniqueConstraint, Index
from datetime import datetime

from opsmetrics.models.base import Base, new_id


class DailyEntry(Base):
    """One business day of one business"""
    __tablename__ = "daily_entries"

    id = Column(String(36), primary_key=True, default=new_id)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False)
    entry_date = Column(Date, nullable=False)

    total_register = Column(Numeric(12, 2), default=0)  # Gross, VAT included
    labor_cost = Column(Numeric(12, 2), default=0)
    labor_hours = Column(Numeric(8, 2), default=0)
    discounts = Column(Numeric(12, 2), default=0)
    day_factor = Column(Numeric(4, 2), default=1)  # Actual fraction of a work day

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("business_id", "entry_date", name="uq_daily_entry_business_date"),
        Index("ix_daily_entries_business_date", "business_id", "entry_date"),
    )

    def __repr__(self):
        return f"<DailyEntry {self.business_id} {self.entry_date}: {self.total_register}>"


class DailyIncomeBreakdown(Base):
    """Amount and orders of one income source within a daily entry"""
    __tablename__ = "daily_income_breakdown"

    id = Column(Integer, primary_key=True, index=True)
    daily_entry_id = Column(String(36), ForeignKey("daily_entries.id"), index=True, nullable=False)
    income_source_id = Column(String(36), ForeignKey("income_sources.id"), index=True, nullable=False)
    amount = Column(Numeric(12, 2), default=0)
    orders_count = Column(Integer, default=0)


class DailyProductUsage(Base):
    """Quantity of a managed product used within a daily entry"""
    __tablename__ = "daily_product_usage"

    id = Column(Integer, primary_key=True, index=True)
    daily_entry_id = Column(String(36), ForeignKey("daily_entries.id"), index=True, nullable=False)
    product_id = Column(String(36), ForeignKey("managed_products.id"), index=True, nullable=False)
    quantity = Column(Numeric(10, 3), default=0)
    unit_cost_at_time = Column(Numeric(10, 2), nullable=True)  # Unit cost when recorded


class MonthlySummary(Base):
    """Aggregated monthly figures imported for periods before daily entries existed"""
    __tablename__ = "monthly_summaries"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(String(36), ForeignKey("businesses.id"), index=True, nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    total_income = Column(Numeric(12, 2), default=0)

    __table_args__ = (UniqueConstraint("business_id", "year", "month", name="uq_monthly_summary_business_month"),)
