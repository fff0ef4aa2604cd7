"""Payroll API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from staffma_payroll.api.dependencies import BusinessId, DbSession
from staffma_payroll.api.schemas import (
    CalculateRequest,
    CalculateResponse,
    ErrorResponse,
    IndividualDeductionSchema,
    LineItemResponse,
    PayPeriodRequest,
    PayrollRecordResponse,
    PayrollSummaryResponse,
    ProcessPayrollResponse,
    StatusTransitionRequest,
)
from staffma_payroll.calculators.engine import PayrollEngine
from staffma_payroll.calculators.types import (
    AllowanceRule,
    CustomDeductionRule,
    DeductionStatus,
    EmployeePayInput,
    IndividualDeduction,
    LineItem,
    PayPeriod,
    PayrollConfig,
    RuleType,
    TaxBracket,
)
from staffma_payroll.models import PayrollRecordRow
from staffma_payroll.services.payroll_service import PayrollService

router = APIRouter(prefix="/payroll", tags=["payroll"])

MonthQuery = Annotated[int, Query(ge=1, le=12)]
YearQuery = Annotated[int, Query(ge=2000, le=2100)]


def _record_response(row: PayrollRecordRow, with_employee: bool = False) -> PayrollRecordResponse:
    resp = PayrollRecordResponse.model_validate(row)
    if with_employee and row.employee is not None:
        resp.employee_name = row.employee.full_name
    return resp


def _line_response(item: LineItem) -> LineItemResponse:
    return LineItemResponse(
        name=item.name,
        amount=item.amount,
        kind=item.kind.value,
        code=item.code,
        deduction_type=item.deduction_type,
        deduction_id=item.deduction_id,
    )


# ============================================================================
# Payroll runs
# ============================================================================


@router.post(
    "/process",
    response_model=ProcessPayrollResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def process_payroll(
    db: DbSession,
    business_id: BusinessId,
    payload: PayPeriodRequest,
) -> ProcessPayrollResponse:
    """Process payroll for every active employee of the business."""
    service = PayrollService(db)
    outcome = await service.process_payroll(
        business_id, PayPeriod(year=payload.year, month=payload.month)
    )
    await db.commit()

    return ProcessPayrollResponse(
        message=f"Payroll processed successfully for {outcome.count} employees",
        count=outcome.count,
        total_gross=outcome.total_gross,
        total_net=outcome.total_net,
        warnings=outcome.warnings or None,
        records=[_record_response(row) for row in outcome.records],
    )


@router.get("/history", response_model=list[PayrollRecordResponse])
async def get_payroll_history(
    db: DbSession,
    business_id: BusinessId,
    month: MonthQuery,
    year: YearQuery,
) -> list[PayrollRecordResponse]:
    """List payroll records for a period."""
    service = PayrollService(db)
    rows = await service.get_history(business_id, PayPeriod(year=year, month=month))
    return [_record_response(row, with_employee=True) for row in rows]


@router.get("/summary", response_model=PayrollSummaryResponse)
async def get_payroll_summary(
    db: DbSession,
    business_id: BusinessId,
    month: MonthQuery,
    year: YearQuery,
) -> PayrollSummaryResponse:
    """Aggregate totals for a period."""
    return await _summary_response(db, business_id, PayPeriod(year=year, month=month))


@router.get("/stats", response_model=PayrollSummaryResponse)
async def get_payroll_stats(db: DbSession, business_id: BusinessId) -> PayrollSummaryResponse:
    """Aggregate totals for the current month."""
    return await _summary_response(db, business_id, PayPeriod.from_date(date.today()))


@router.get(
    "/employees/{employee_id}/history",
    response_model=list[PayrollRecordResponse],
    responses={404: {"model": ErrorResponse}},
)
async def get_employee_payroll_history(
    db: DbSession,
    business_id: BusinessId,
    employee_id: Annotated[UUID, Path()],
) -> list[PayrollRecordResponse]:
    """List every payroll record of one employee, latest period first."""
    service = PayrollService(db)
    rows = await service.get_employee_history(business_id, employee_id)
    return [_record_response(row) for row in rows]


async def _summary_response(
    db: DbSession, business_id: UUID, period: PayPeriod
) -> PayrollSummaryResponse:
    summary = await PayrollService(db).get_summary(business_id, period)
    return PayrollSummaryResponse(
        month=period.month,
        year=period.year,
        total_employees=summary.total_employees,
        total_gross_salary=summary.total_gross_salary,
        total_net_salary=summary.total_net_salary,
        total_paye=summary.total_paye,
        total_statutory=summary.total_statutory,
        total_deductions=summary.total_deductions,
    )


@router.post(
    "/records/{record_id}/status",
    response_model=PayrollRecordResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def transition_payroll_record(
    db: DbSession,
    business_id: BusinessId,
    record_id: Annotated[UUID, Path()],
    payload: StatusTransitionRequest,
) -> PayrollRecordResponse:
    """Approve, pay, or reopen a payroll record."""
    service = PayrollService(db)
    row = await service.transition_record(business_id, record_id, payload.status)
    await db.commit()
    return _record_response(row)


# ============================================================================
# Stateless calculation
# ============================================================================


@router.post("/calculate", response_model=CalculateResponse)
async def calculate_payroll(payload: CalculateRequest) -> CalculateResponse:
    """Run the engine for one salary without touching stored data."""
    config = PayrollConfig(
        tax_brackets=tuple(
            TaxBracket(
                lower_bound=b.lower_bound,
                upper_bound=b.upper_bound,
                rate=b.rate,
                enabled=b.enabled,
            )
            for b in payload.tax_brackets
        ),
        allowances=tuple(
            AllowanceRule(name=r.name, type=RuleType(r.type), value=r.value, enabled=r.enabled)
            for r in payload.allowances
        ),
        custom_deductions=tuple(
            CustomDeductionRule(name=r.name, type=RuleType(r.type), value=r.value, enabled=r.enabled)
            for r in payload.custom_deductions
        ),
        custom_deductions_reduce_net=payload.custom_deductions_reduce_net,
    )
    employee = EmployeePayInput(
        employee_id=UUID(int=0),
        basic_salary=payload.basic_salary,
        individual_deductions=tuple(
            IndividualDeduction(
                description=d.description,
                type=d.type,
                amount=d.amount,
                monthly_amount=d.monthly_amount,
                remaining_amount=d.remaining_amount,
                start_date=d.start_date,
                end_date=d.end_date,
                status=DeductionStatus(d.status),
                deduction_id=d.deduction_id,
            )
            for d in payload.individual_deductions
        ),
    )

    result = PayrollEngine().resolve_payroll(
        employee, config, PayPeriod(year=payload.year, month=payload.month)
    )
    record = result.record

    return CalculateResponse(
        month=record.month,
        year=record.year,
        basic_salary=record.basic_salary,
        gross_salary=record.gross_salary,
        taxable_income=record.taxable_income,
        paye=record.paye,
        allowances=[_line_response(i) for i in record.allowances.items],
        allowances_total=record.allowances.total,
        deductions=[_line_response(i) for i in record.deductions.items],
        deductions_total=record.deductions.total,
        net_salary=record.net_salary,
        calculation_id=record.calculation_id,
        updated_deductions=[
            IndividualDeductionSchema(
                deduction_id=d.deduction_id,
                description=d.description,
                type=d.type,
                amount=d.amount,
                monthly_amount=d.monthly_amount,
                remaining_amount=d.remaining_amount,
                start_date=d.start_date,
                end_date=d.end_date,
                status=d.status.value,
            )
            for d in result.updated_deductions
        ],
    )
