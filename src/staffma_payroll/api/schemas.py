"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ErrorResponse(BaseModel):
    """Error payload returned by exception handlers."""

    detail: str
    code: str
    warnings: list[str] | None = None


# ============================================================================
# Rule and bracket schemas
# ============================================================================


class AmountRuleSchema(BaseModel):
    """Allowance or custom deduction rule."""

    name: str = Field(min_length=1)
    type: Literal["percentage", "fixed"]
    value: Decimal = Field(ge=0)
    enabled: bool = True

    @model_validator(mode="after")
    def check_percentage(self) -> "AmountRuleSchema":
        if self.type == "percentage" and self.value > 100:
            raise ValueError("Percentage value cannot exceed 100%")
        return self


class TaxBracketSchema(BaseModel):
    """A single PAYE bracket. Rate is a percentage."""

    lower_bound: Decimal = Field(ge=0)
    upper_bound: Decimal | None = None
    rate: Decimal = Field(ge=0, le=100)
    enabled: bool = True


class IndividualDeductionSchema(BaseModel):
    """Employee-level amortized deduction."""

    deduction_id: UUID | None = None
    description: str
    type: str = "advance"
    amount: Decimal = Field(ge=0)
    monthly_amount: Decimal = Field(ge=0)
    remaining_amount: Decimal = Field(ge=0)
    start_date: date
    end_date: date | None = None
    status: Literal["active", "completed"] = "active"


# ============================================================================
# Payroll schemas
# ============================================================================


class PayPeriodRequest(BaseModel):
    """Month/year of a payroll run."""

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)


class LineItemResponse(BaseModel):
    """An allowance or deduction line."""

    name: str
    amount: Decimal
    kind: str
    code: str | None = None
    deduction_type: str | None = None
    deduction_id: UUID | None = None


class PayrollRecordResponse(BaseModel):
    """Schema for a stored payroll record."""

    model_config = ConfigDict(from_attributes=True)

    payroll_record_id: UUID
    employee_id: UUID
    employee_name: str | None = None
    month: int
    year: int
    basic_salary: Decimal
    gross_salary: Decimal
    taxable_income: Decimal
    paye: Decimal
    allowances: list[LineItemResponse]
    allowances_total: Decimal
    deductions: list[LineItemResponse]
    deductions_total: Decimal
    net_salary: Decimal
    status: str
    calculation_id: UUID | None = None
    processed_at: datetime


class ProcessPayrollResponse(BaseModel):
    """Schema for a payroll run response."""

    message: str
    count: int
    total_gross: Decimal
    total_net: Decimal
    warnings: list[str] | None = None
    records: list[PayrollRecordResponse]


class PayrollSummaryResponse(BaseModel):
    """Aggregate totals for a period."""

    month: int
    year: int
    total_employees: int
    total_gross_salary: Decimal
    total_net_salary: Decimal
    total_paye: Decimal
    total_statutory: Decimal
    total_deductions: Decimal


class StatusTransitionRequest(BaseModel):
    status: Literal["processed", "approved", "paid"]


class CalculateRequest(PayPeriodRequest):
    """Stateless calculation for one salary against an ad-hoc configuration."""

    basic_salary: Decimal = Field(ge=0)
    allowances: list[AmountRuleSchema] = Field(default_factory=list)
    custom_deductions: list[AmountRuleSchema] = Field(default_factory=list)
    tax_brackets: list[TaxBracketSchema] = Field(default_factory=list)
    individual_deductions: list[IndividualDeductionSchema] = Field(default_factory=list)
    custom_deductions_reduce_net: bool = False


class CalculateResponse(BaseModel):
    """Breakdown produced by the engine."""

    month: int
    year: int
    basic_salary: Decimal
    gross_salary: Decimal
    taxable_income: Decimal
    paye: Decimal
    allowances: list[LineItemResponse]
    allowances_total: Decimal
    deductions: list[LineItemResponse]
    deductions_total: Decimal
    net_salary: Decimal
    calculation_id: UUID | None = None
    updated_deductions: list[IndividualDeductionSchema]


# ============================================================================
# Settings schemas
# ============================================================================


class PayrollSettingsResponse(BaseModel):
    """Schema for a business's payroll settings."""

    model_config = ConfigDict(from_attributes=True)

    business_id: UUID
    currency: str
    allowances: list[AmountRuleSchema]
    custom_deductions: list[AmountRuleSchema]
    tax_brackets: list[TaxBracketSchema]
    tax_region: str
    tax_business_type: str
    tax_source: str


class PayrollRulesUpdate(BaseModel):
    """Replace allowance and/or custom deduction rules."""

    currency: str | None = None
    allowances: list[AmountRuleSchema] | None = None
    custom_deductions: list[AmountRuleSchema] | None = None


class TaxBracketsUpdate(BaseModel):
    brackets: list[TaxBracketSchema]
    source: Literal["upload", "template", "manual"] = "manual"
    region: str = ""
    business_type: str = ""


class TemplateApplyRequest(BaseModel):
    region: str
    business_type: str


class TaxTemplateResponse(BaseModel):
    region: str
    business_type: str
    brackets: list[TaxBracketSchema]


class RegionListResponse(BaseModel):
    regions: list[str]


class BusinessTypeListResponse(BaseModel):
    region: str
    business_types: list[str]
