"""Persisted payroll record model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staffma_payroll.models.base import Base

if TYPE_CHECKING:
    from staffma_payroll.models.employee import Employee


class PayrollRecordRow(Base):
    """One employee's payroll for one month."""

    __tablename__ = "payroll_record"

    payroll_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    business_id: Mapped[UUID] = mapped_column(
        ForeignKey("business.business_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    basic_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    taxable_income: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    paye: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    statutory_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    allowances: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    allowances_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    deductions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    deductions_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    status: Mapped[str] = mapped_column(String, nullable=False, default="processed")
    calculation_id: Mapped[UUID | None] = mapped_column(nullable=True)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("employee_id", "year", "month", name="payroll_record_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_record_month_check"),
        CheckConstraint(
            "status IN ('processed', 'approved', 'paid')",
            name="payroll_record_status_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship()
