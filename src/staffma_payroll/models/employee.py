"""Employee and individual deduction models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staffma_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from staffma_payroll.models.business import Business


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    business_id: Mapped[UUID] = mapped_column(
        ForeignKey("business.business_id", ondelete="CASCADE"),
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    department: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    basic_salary: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    # Relationships
    business: Mapped[Business] = relationship(back_populates="employees")
    deductions: Mapped[list[IndividualDeductionRow]] = relationship(
        back_populates="employee",
        order_by="IndividualDeductionRow.start_date",
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"


class IndividualDeductionRow(Base, TimestampMixin):
    """Employee-level amortized deduction with its outstanding balance."""

    __tablename__ = "individual_deduction"

    deduction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String, nullable=False)
    deduction_type: Mapped[str] = mapped_column(String, nullable=False, default="advance")
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    monthly_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    remaining_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint("remaining_amount >= 0", name="individual_deduction_remaining_check"),
        CheckConstraint(
            "status IN ('active', 'completed')",
            name="individual_deduction_status_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="deductions")
