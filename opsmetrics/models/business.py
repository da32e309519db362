"""
Business, Schedule & Goal Models

Tenant-owned configuration the metrics engine reads: VAT/markup defaults,
weekly work schedule, monthly goals and their per-income-source targets,
income sources and managed products.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey, UniqueConstraint, Index
from datetime import datetime

from opsmetrics.models.base import Base, new_id


class Business(Base):
    """A restaurant or shop"""
    __tablename__ = "businesses"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)

    # Defaults, overridable per month by Goal
    vat_percentage = Column(Numeric(6, 4), nullable=True)  # Decimal fraction (0.18)
    markup_percentage = Column(Numeric(6, 4), nullable=True)  # Multiplier (1.25)
    manager_monthly_salary = Column(Numeric(12, 2), default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Business {self.name}>"


class BusinessSchedule(Base):
    """Expected fraction of a work day per weekday"""
    __tablename__ = "business_schedule"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(String(36), ForeignKey("businesses.id"), index=True, nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    day_factor = Column(Numeric(4, 2), default=0)  # 0..1

    __table_args__ = (UniqueConstraint("business_id", "day_of_week", name="uq_schedule_business_dow"),)


class Goal(Base):
    """Monthly targets for one business"""
    __tablename__ = "goals"

    id = Column(String(36), primary_key=True, default=new_id)
    business_id = Column(String(36), ForeignKey("businesses.id"), index=True, nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)  # 1-12

    revenue_target = Column(Numeric(12, 2), nullable=True)
    labor_cost_target_pct = Column(Numeric(6, 2), nullable=True)
    food_cost_target_pct = Column(Numeric(6, 2), nullable=True)
    current_expenses_target = Column(Numeric(12, 2), nullable=True)  # ILS amount

    # Monthly overrides of the business defaults
    vat_percentage = Column(Numeric(6, 4), nullable=True)
    markup_percentage = Column(Numeric(6, 4), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("business_id", "year", "month", name="uq_goal_business_month"),
        Index("ix_goals_year_month", "year", "month"),
    )

    def __repr__(self):
        return f"<Goal {self.business_id} {self.year}-{self.month:02d}>"


class IncomeSource(Base):
    """A sales channel (dine-in, delivery app, catering...)"""
    __tablename__ = "income_sources"

    id = Column(String(36), primary_key=True, default=new_id)
    business_id = Column(String(36), ForeignKey("businesses.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    income_type = Column(String, default="private", nullable=False)  # private | business
    display_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    deleted_at = Column(DateTime, nullable=True)


class IncomeSourceGoal(Base):
    """Average ticket target of an income source within a monthly goal"""
    __tablename__ = "income_source_goals"

    id = Column(Integer, primary_key=True, index=True)
    goal_id = Column(String(36), ForeignKey("goals.id"), index=True, nullable=False)
    income_source_id = Column(String(36), ForeignKey("income_sources.id"), index=True, nullable=False)
    avg_ticket_target = Column(Numeric(10, 2), nullable=True)


class ManagedProduct(Base):
    """A tracked high-cost product (meat, coffee beans...)"""
    __tablename__ = "managed_products"

    id = Column(String(36), primary_key=True, default=new_id)
    business_id = Column(String(36), ForeignKey("businesses.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    unit = Column(String, default="")
    unit_cost = Column(Numeric(10, 2), default=0)
    target_pct = Column(Numeric(6, 2), nullable=True)  # % of income before VAT
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
