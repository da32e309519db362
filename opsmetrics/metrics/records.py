"""
Input records consumed by the metrics engine

All records are frozen: the engine reads them and never mutates them.
Numeric fields may be None where the source column is nullable; calculators
coerce them with to_float() before use.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

GOODS_PURCHASES = "goods_purchases"
CURRENT_EXPENSES = "current_expenses"
EXPENSE_TYPES = (GOODS_PURCHASES, CURRENT_EXPENSES)

INCOME_PRIVATE = "private"
INCOME_BUSINESS = "business"


@dataclass(frozen=True)
class Business:
    id: str
    name: str = ""
    vat_rate: Optional[float] = None  # Decimal fraction, 0.18 = 18%
    markup: Optional[float] = None  # Multiplier, 1.25 = 25% employer overhead
    manager_monthly_salary: Optional[float] = None


@dataclass(frozen=True)
class ScheduleRule:
    business_id: str
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    day_factor: Optional[float] = None


@dataclass(frozen=True)
class DailyEntry:
    id: str
    business_id: str
    entry_date: date
    total_register: Optional[float] = None
    labor_cost: Optional[float] = None
    day_factor: Optional[float] = None  # Actual fraction of a work day
    labor_hours: Optional[float] = None
    discounts: Optional[float] = None


@dataclass(frozen=True)
class Goal:
    id: str
    business_id: str
    year: int
    month: int
    revenue_target: Optional[float] = None
    labor_cost_target_pct: Optional[float] = None
    food_cost_target_pct: Optional[float] = None
    current_expenses_target: Optional[float] = None  # ILS amount, not a percentage
    vat_rate: Optional[float] = None  # Overrides Business.vat_rate for this month
    markup: Optional[float] = None  # Overrides Business.markup for this month


@dataclass(frozen=True)
class IncomeSourceGoal:
    goal_id: str
    income_source_id: str
    avg_ticket_target: Optional[float] = None


@dataclass(frozen=True)
class Supplier:
    id: str
    business_id: str
    expense_type: str
    is_active: bool = True


@dataclass(frozen=True)
class Invoice:
    id: str
    supplier_id: str
    business_id: str
    invoice_date: date
    subtotal: Optional[float] = None


@dataclass(frozen=True)
class IncomeSource:
    id: str
    business_id: str
    name: str
    income_type: str = INCOME_PRIVATE
    display_order: int = 0


@dataclass(frozen=True)
class IncomeBreakdown:
    daily_entry_id: str
    income_source_id: str
    amount: Optional[float] = None
    orders_count: Optional[float] = None


@dataclass(frozen=True)
class ManagedProduct:
    id: str
    business_id: str
    name: str
    unit: str = ""
    unit_cost: Optional[float] = None
    target_pct: Optional[float] = None


@dataclass(frozen=True)
class ProductUsage:
    daily_entry_id: str
    product_id: str
    quantity: Optional[float] = None
    unit_cost_at_time: Optional[float] = None


@dataclass(frozen=True)
class MonthlySummary:
    business_id: str
    year: int
    month: int
    total_income: Optional[float] = None
