"""
SQLAlchemy data provider

Reads engine inputs from the relational tables in opsmetrics.models. Each
fetch runs in a worker thread with its own session, so a stage's fetches run
concurrently without sharing a Session across threads.

Soft-deleted rows (deleted_at set) are never returned. Inactive suppliers,
income sources and managed products are excluded.
"""
import asyncio
from datetime import date
from typing import Callable, List, Optional, Sequence

from sqlalchemy.orm import Session

from opsmetrics.connectors.base import DataProvider
from opsmetrics.metrics import records
from opsmetrics.models import (
    Business,
    BusinessSchedule,
    DailyEntry,
    DailyIncomeBreakdown,
    DailyProductUsage,
    Goal,
    IncomeSource,
    IncomeSourceGoal,
    Invoice,
    ManagedProduct,
    MonthlySummary,
    Supplier,
)
from opsmetrics.models.base import SessionLocal


def _num(value) -> Optional[float]:
    """Numeric column to float, keeping NULL as None"""
    return float(value) if value is not None else None


class SqlDataProvider(DataProvider):
    name = "sql"

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    async def _run(self, query: Callable[[Session], list]) -> list:
        return await asyncio.to_thread(self._run_sync, query)

    def _run_sync(self, query: Callable[[Session], list]) -> list:
        db = self.session_factory()
        try:
            return query(db)
        finally:
            db.close()

    # ── Business-level rows ──

    async def fetch_businesses(self, business_ids: Sequence[str]) -> List[records.Business]:
        if not business_ids:
            return []

        def query(db: Session):
            rows = db.query(Business).filter(
                Business.id.in_(list(business_ids)),
                Business.deleted_at.is_(None),
            ).all()
            return [
                records.Business(
                    id=r.id,
                    name=r.name,
                    vat_rate=_num(r.vat_percentage),
                    markup=_num(r.markup_percentage),
                    manager_monthly_salary=_num(r.manager_monthly_salary),
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_schedule(self, business_ids: Sequence[str]) -> List[records.ScheduleRule]:
        if not business_ids:
            return []

        def query(db: Session):
            rows = db.query(BusinessSchedule).filter(
                BusinessSchedule.business_id.in_(list(business_ids))
            ).all()
            return [
                records.ScheduleRule(
                    business_id=r.business_id,
                    day_of_week=r.day_of_week,
                    day_factor=_num(r.day_factor),
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_income_sources(self, business_ids: Sequence[str]) -> List[records.IncomeSource]:
        if not business_ids:
            return []

        def query(db: Session):
            rows = db.query(IncomeSource).filter(
                IncomeSource.business_id.in_(list(business_ids)),
                IncomeSource.is_active.is_(True),
                IncomeSource.deleted_at.is_(None),
            ).order_by(IncomeSource.display_order).all()
            return [
                records.IncomeSource(
                    id=r.id,
                    business_id=r.business_id,
                    name=r.name,
                    income_type=r.income_type or records.INCOME_PRIVATE,
                    display_order=r.display_order or 0,
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_managed_products(self, business_ids: Sequence[str]) -> List[records.ManagedProduct]:
        if not business_ids:
            return []

        def query(db: Session):
            rows = db.query(ManagedProduct).filter(
                ManagedProduct.business_id.in_(list(business_ids)),
                ManagedProduct.is_active.is_(True),
                ManagedProduct.deleted_at.is_(None),
            ).order_by(ManagedProduct.created_at).all()
            return [
                records.ManagedProduct(
                    id=r.id,
                    business_id=r.business_id,
                    name=r.name,
                    unit=r.unit or "",
                    unit_cost=_num(r.unit_cost),
                    target_pct=_num(r.target_pct),
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_suppliers(self, business_ids: Sequence[str], expense_type: str) -> List[records.Supplier]:
        if not business_ids:
            return []

        def query(db: Session):
            rows = db.query(Supplier).filter(
                Supplier.business_id.in_(list(business_ids)),
                Supplier.expense_type == expense_type,
                Supplier.is_active.is_(True),
                Supplier.deleted_at.is_(None),
            ).all()
            return [
                records.Supplier(
                    id=r.id,
                    business_id=r.business_id,
                    expense_type=r.expense_type,
                    is_active=bool(r.is_active),
                )
                for r in rows
            ]

        return await self._run(query)

    # ── Period rows ──

    async def fetch_daily_entries(
        self, business_ids: Sequence[str], start: date, end: date
    ) -> List[records.DailyEntry]:
        if not business_ids:
            return []

        def query(db: Session):
            rows = db.query(DailyEntry).filter(
                DailyEntry.business_id.in_(list(business_ids)),
                DailyEntry.entry_date >= start,
                DailyEntry.entry_date <= end,
                DailyEntry.deleted_at.is_(None),
            ).order_by(DailyEntry.entry_date).all()
            return [
                records.DailyEntry(
                    id=r.id,
                    business_id=r.business_id,
                    entry_date=r.entry_date,
                    total_register=_num(r.total_register),
                    labor_cost=_num(r.labor_cost),
                    day_factor=_num(r.day_factor),
                    labor_hours=_num(r.labor_hours),
                    discounts=_num(r.discounts),
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_goals(self, business_ids: Sequence[str], year: int, month: int) -> List[records.Goal]:
        if not business_ids:
            return []

        def query(db: Session):
            rows = db.query(Goal).filter(
                Goal.business_id.in_(list(business_ids)),
                Goal.year == year,
                Goal.month == month,
                Goal.deleted_at.is_(None),
            ).all()
            return [
                records.Goal(
                    id=r.id,
                    business_id=r.business_id,
                    year=r.year,
                    month=r.month,
                    revenue_target=_num(r.revenue_target),
                    labor_cost_target_pct=_num(r.labor_cost_target_pct),
                    food_cost_target_pct=_num(r.food_cost_target_pct),
                    current_expenses_target=_num(r.current_expenses_target),
                    vat_rate=_num(r.vat_percentage),
                    markup=_num(r.markup_percentage),
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_income_source_goals(self, goal_ids: Sequence[str]) -> List[records.IncomeSourceGoal]:
        if not goal_ids:
            return []

        def query(db: Session):
            rows = db.query(IncomeSourceGoal).filter(
                IncomeSourceGoal.goal_id.in_(list(goal_ids))
            ).all()
            return [
                records.IncomeSourceGoal(
                    goal_id=r.goal_id,
                    income_source_id=r.income_source_id,
                    avg_ticket_target=_num(r.avg_ticket_target),
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_invoices(
        self,
        supplier_ids: Sequence[str],
        business_ids: Sequence[str],
        start: date,
        end: date,
    ) -> List[records.Invoice]:
        if not supplier_ids or not business_ids:
            return []

        def query(db: Session):
            rows = db.query(Invoice).filter(
                Invoice.supplier_id.in_(list(supplier_ids)),
                Invoice.business_id.in_(list(business_ids)),
                Invoice.invoice_date >= start,
                Invoice.invoice_date <= end,
                Invoice.deleted_at.is_(None),
            ).all()
            return [
                records.Invoice(
                    id=r.id,
                    supplier_id=r.supplier_id,
                    business_id=r.business_id,
                    invoice_date=r.invoice_date,
                    subtotal=_num(r.subtotal),
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_income_breakdown(self, entry_ids: Sequence[str]) -> List[records.IncomeBreakdown]:
        if not entry_ids:
            return []

        def query(db: Session):
            rows = db.query(DailyIncomeBreakdown).filter(
                DailyIncomeBreakdown.daily_entry_id.in_(list(entry_ids))
            ).all()
            return [
                records.IncomeBreakdown(
                    daily_entry_id=r.daily_entry_id,
                    income_source_id=r.income_source_id,
                    amount=_num(r.amount),
                    orders_count=_num(r.orders_count),
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_product_usage(self, entry_ids: Sequence[str]) -> List[records.ProductUsage]:
        if not entry_ids:
            return []

        def query(db: Session):
            rows = db.query(DailyProductUsage).filter(
                DailyProductUsage.daily_entry_id.in_(list(entry_ids))
            ).all()
            return [
                records.ProductUsage(
                    daily_entry_id=r.daily_entry_id,
                    product_id=r.product_id,
                    quantity=_num(r.quantity),
                    unit_cost_at_time=_num(r.unit_cost_at_time),
                )
                for r in rows
            ]

        return await self._run(query)

    async def fetch_monthly_summary_fallback(
        self, business_ids: Sequence[str], year: int, month: int
    ) -> List[records.MonthlySummary]:
        if not business_ids:
            return []

        def query(db: Session):
            rows = db.query(MonthlySummary).filter(
                MonthlySummary.business_id.in_(list(business_ids)),
                MonthlySummary.year == year,
                MonthlySummary.month == month,
            ).all()
            return [
                records.MonthlySummary(
                    business_id=r.business_id,
                    year=r.year,
                    month=r.month,
                    total_income=_num(r.total_income),
                )
                for r in rows
            ]

        return await self._run(query)
