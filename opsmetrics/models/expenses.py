"""
Supplier & Invoice Models

A supplier's expense_type decides which cost bucket its invoices feed:
goods_purchases -> food cost, current_expenses -> current expenses.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Numeric, Date, ForeignKey, Index
from datetime import datetime

from opsmetrics.models.base import Base, new_id


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(String(36), primary_key=True, default=new_id)
    business_id = Column(String(36), ForeignKey("businesses.id"), index=True, nullable=False)
    name = Column(String, nullable=False, default="")
    expense_type = Column(String, index=True, nullable=False)  # goods_purchases | current_expenses
    is_active = Column(Boolean, default=True)
    deleted_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Supplier {self.name} ({self.expense_type})>"


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=new_id)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), index=True, nullable=False)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False)
    invoice_date = Column(Date, nullable=False)
    subtotal = Column(Numeric(12, 2), default=0)  # Before VAT

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_invoices_business_date", "business_id", "invoice_date"),)
