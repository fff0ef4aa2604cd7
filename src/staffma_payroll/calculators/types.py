"""Type definitions for calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class RuleType(str, Enum):
    """How a configured allowance or deduction amount is derived."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DeductionStatus(str, Enum):
    """Individual deduction lifecycle. COMPLETED is terminal."""

    ACTIVE = "active"
    COMPLETED = "completed"


class LineKind(str, Enum):
    """Payroll line item kinds."""

    ALLOWANCE = "allowance"
    STATUTORY = "statutory"
    TAX = "tax"
    CUSTOM = "custom"
    INDIVIDUAL = "individual"


@dataclass(frozen=True)
class TaxBracket:
    """Tax bracket for progressive taxation."""

    lower_bound: Decimal
    upper_bound: Decimal | None  # None = no upper limit
    rate: Decimal  # Percent, 0-100
    enabled: bool = True


@dataclass(frozen=True)
class AmountRule:
    """A named business rule producing an amount from basic salary."""

    name: str
    type: RuleType
    value: Decimal
    enabled: bool = True

    def amount_for(self, basic_salary: Decimal) -> Decimal:
        if self.type == RuleType.PERCENTAGE:
            return basic_salary * self.value / 100
        return self.value


@dataclass(frozen=True)
class AllowanceRule(AmountRule):
    """Allowance paid on top of basic salary (reported, not deducted)."""


@dataclass(frozen=True)
class CustomDeductionRule(AmountRule):
    """Business-wide deduction, always active when enabled."""


@dataclass(frozen=True, order=True)
class PayPeriod:
    """A monthly pay period. Ordered by (year, month)."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {self.month}")

    @classmethod
    def from_date(cls, value: date) -> PayPeriod:
        return cls(year=value.year, month=value.month)

    def __str__(self) -> str:
        return f"{self.month}/{self.year}"


@dataclass(frozen=True)
class IndividualDeduction:
    """Employee-level amortized deduction (salary advance, loan, ...)."""

    description: str
    type: str
    amount: Decimal  # Principal
    monthly_amount: Decimal  # Installment
    remaining_amount: Decimal  # Outstanding balance
    start_date: date
    end_date: date | None = None
    status: DeductionStatus = DeductionStatus.ACTIVE
    deduction_id: UUID | None = None

    @property
    def is_active(self) -> bool:
        return self.status == DeductionStatus.ACTIVE


@dataclass(frozen=True)
class LineItem:
    """A single allowance or deduction line."""

    name: str
    amount: Decimal
    kind: LineKind
    code: str | None = None
    deduction_type: str | None = None
    deduction_id: UUID | None = None

    @property
    def is_individual(self) -> bool:
        return self.kind == LineKind.INDIVIDUAL

    def to_dict(self) -> dict[str, str | None]:
        return {
            "name": self.name,
            "amount": str(self.amount),
            "kind": self.kind.value,
            "code": self.code,
            "deduction_type": self.deduction_type,
            "deduction_id": str(self.deduction_id) if self.deduction_id else None,
        }


@dataclass(frozen=True)
class ItemTotals:
    """Line items with their total."""

    items: tuple[LineItem, ...] = ()
    total: Decimal = Decimal("0")


@dataclass(frozen=True)
class PayrollConfig:
    """Fully-resolved payroll configuration for one business.

    Empty ``tax_brackets`` means the built-in default schedule is used.
    ``custom_deductions_reduce_net`` is off by default: business-level custom
    deductions are reported in the deductions total but do not reduce net
    salary.
    """

    tax_brackets: tuple[TaxBracket, ...] = ()
    allowances: tuple[AllowanceRule, ...] = ()
    custom_deductions: tuple[CustomDeductionRule, ...] = ()
    personal_relief: Decimal = Decimal("2400")
    currency: str = "KES"
    custom_deductions_reduce_net: bool = False


@dataclass(frozen=True)
class EmployeePayInput:
    """Everything the engine needs to know about one employee."""

    employee_id: UUID
    basic_salary: Decimal
    individual_deductions: tuple[IndividualDeduction, ...] = ()
    business_id: UUID | None = None


@dataclass(frozen=True)
class PayrollRecord:
    """Computed payroll for one employee and one period."""

    employee_id: UUID
    business_id: UUID | None
    month: int
    year: int
    basic_salary: Decimal
    taxable_income: Decimal
    paye: Decimal
    allowances: ItemTotals
    deductions: ItemTotals
    net_salary: Decimal
    status: str = "processed"
    calculation_id: UUID | None = None

    @property
    def gross_salary(self) -> Decimal:
        return self.basic_salary + self.allowances.total

    @property
    def period(self) -> PayPeriod:
        return PayPeriod(year=self.year, month=self.month)


@dataclass(frozen=True)
class PayrollResult:
    """Engine output: the record plus deduction balances to persist."""

    record: PayrollRecord
    updated_deductions: tuple[IndividualDeduction, ...] = field(default_factory=tuple)
