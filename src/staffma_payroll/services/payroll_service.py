"""Business-level payroll processing: load, calculate, persist."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from staffma_payroll.calculators.engine import PayrollEngine
from staffma_payroll.calculators.line_builder import LineItemBuilder
from staffma_payroll.calculators.types import (
    DeductionStatus,
    EmployeePayInput,
    IndividualDeduction,
    LineKind,
    PayPeriod,
    PayrollRecord,
)
from staffma_payroll.models import Business, Employee, IndividualDeductionRow, PayrollRecordRow
from staffma_payroll.services.config_loader import ConfigLoader, SqlConfigLoader
from staffma_payroll.services.state_machine import PayrollStateMachine, PayrollStatus

logger = logging.getLogger(__name__)


class PayrollError(Exception):
    """Base class for payroll processing failures."""

    code = "PAYROLL_ERROR"


class BusinessNotFoundError(PayrollError):
    code = "BUSINESS_NOT_FOUND"

    def __init__(self, business_id: UUID):
        self.business_id = business_id
        super().__init__(f"Business {business_id} not found")


class PayrollRecordNotFoundError(PayrollError):
    code = "PAYROLL_RECORD_NOT_FOUND"

    def __init__(self, record_id: UUID):
        self.record_id = record_id
        super().__init__(f"Payroll record {record_id} not found")


class EmployeeNotFoundError(PayrollError):
    code = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found")


class InvalidPayrollPeriodError(PayrollError):
    """Raised for future periods or periods before business registration."""

    code = "INVALID_PERIOD"

    def __init__(self, period: PayPeriod, reason: str):
        self.period = period
        self.reason = reason
        super().__init__(f"Cannot process payroll for {period}: {reason}")


class PayrollAlreadyProcessedError(PayrollError):
    code = "ALREADY_PROCESSED"

    def __init__(self, period: PayPeriod):
        self.period = period
        super().__init__(f"Payroll for {period} has already been processed")


class NoActiveEmployeesError(PayrollError):
    code = "NO_ACTIVE_EMPLOYEES"

    def __init__(self) -> None:
        super().__init__("No active employees found")


class NoPayrollGeneratedError(PayrollError):
    code = "NO_PAYROLL_GENERATED"

    def __init__(self, warnings: list[str]):
        self.warnings = warnings
        super().__init__("No valid payroll records could be generated")


class InvalidSalaryError(PayrollError):
    code = "INVALID_SALARY"

    def __init__(self, employee: Employee, reason: str):
        self.employee_id = employee.employee_id
        self.reason = reason
        super().__init__(f"Employee {employee.full_name} {reason}")


@dataclass
class ProcessOutcome:
    """Result of processing payroll for a business period."""

    period: PayPeriod
    records: list[PayrollRecordRow]
    warnings: list[str] = field(default_factory=list)
    total_gross: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")

    @property
    def count(self) -> int:
        return len(self.records)


@dataclass
class PayrollSummary:
    """Aggregate totals for a business period."""

    total_employees: int = 0
    total_gross_salary: Decimal = Decimal("0")
    total_net_salary: Decimal = Decimal("0")
    total_paye: Decimal = Decimal("0")
    total_statutory: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")


def deduction_to_domain(row: IndividualDeductionRow) -> IndividualDeduction:
    return IndividualDeduction(
        description=row.description,
        type=row.deduction_type,
        amount=Decimal(row.amount),
        monthly_amount=Decimal(row.monthly_amount),
        remaining_amount=Decimal(row.remaining_amount),
        start_date=row.start_date,
        end_date=row.end_date,
        status=DeductionStatus(row.status),
        deduction_id=row.deduction_id,
    )


def record_to_row(record: PayrollRecord, business_id: UUID) -> PayrollRecordRow:
    statutory_total = LineItemBuilder.sum_by_kind(record.deductions.items)[LineKind.STATUTORY]
    return PayrollRecordRow(
        business_id=business_id,
        employee_id=record.employee_id,
        month=record.month,
        year=record.year,
        basic_salary=record.basic_salary,
        gross_salary=record.gross_salary,
        taxable_income=record.taxable_income,
        paye=record.paye,
        statutory_total=statutory_total,
        allowances=[item.to_dict() for item in record.allowances.items],
        allowances_total=record.allowances.total,
        deductions=[item.to_dict() for item in record.deductions.items],
        deductions_total=record.deductions.total,
        net_salary=record.net_salary,
        status=record.status,
        calculation_id=record.calculation_id,
        processed_at=datetime.now(timezone.utc),
    )


def validate_salary(employee: Employee) -> Decimal:
    """Return the employee's basic salary or raise InvalidSalaryError."""
    if employee.basic_salary is None:
        raise InvalidSalaryError(employee, "has no valid salary data")
    basic_salary = Decimal(employee.basic_salary)
    if basic_salary < 0:
        raise InvalidSalaryError(employee, "has invalid basic salary")
    return basic_salary


def validate_period(business: Business, period: PayPeriod, today: date) -> None:
    """Reject future months and months before the business registered."""
    if period > PayPeriod.from_date(today):
        raise InvalidPayrollPeriodError(period, "period is in the future")
    if period < PayPeriod.from_date(business.created_at):
        raise InvalidPayrollPeriodError(period, "period is before business registration")


class PayrollService:
    """Runs payroll for a whole business and persists the results.

    Each employee's individual deduction rows are read with
    SELECT ... FOR UPDATE so concurrent runs cannot lose balance updates.
    The caller owns the transaction (commit/rollback).
    """

    def __init__(
        self,
        session: AsyncSession,
        config_loader: ConfigLoader | None = None,
        engine: PayrollEngine | None = None,
    ):
        self.session = session
        self.config_loader = config_loader or SqlConfigLoader(session)
        self.engine = engine or PayrollEngine()

    async def process_payroll(
        self,
        business_id: UUID,
        period: PayPeriod,
        today: date | None = None,
    ) -> ProcessOutcome:
        """Calculate and store payroll for all active employees."""
        business = await self.session.get(Business, business_id)
        if business is None:
            raise BusinessNotFoundError(business_id)

        validate_period(business, period, today or date.today())

        employees = await self._get_active_employees(business_id)
        if not employees:
            raise NoActiveEmployeesError()

        if await self._period_processed(business_id, period):
            raise PayrollAlreadyProcessedError(period)

        config = await self.config_loader.load(business_id)
        deduction_rows = await self._lock_deductions([e.employee_id for e in employees])

        warnings: list[str] = []
        inputs: list[EmployeePayInput] = []
        for employee in employees:
            try:
                basic_salary = validate_salary(employee)
            except InvalidSalaryError as e:
                warnings.append(str(e))
                continue
            inputs.append(
                EmployeePayInput(
                    employee_id=employee.employee_id,
                    business_id=business_id,
                    basic_salary=basic_salary,
                    individual_deductions=tuple(
                        deduction_to_domain(row)
                        for row in deduction_rows.get(employee.employee_id, [])
                    ),
                )
            )

        batch = self.engine.process_batch(inputs, config, period)

        names = {e.employee_id: e.full_name for e in employees}
        records: list[PayrollRecordRow] = []
        for employee_id, calculation in batch.results.items():
            if not calculation.success or calculation.result is None:
                warnings.append(
                    f"Error processing {names[employee_id]}: {'; '.join(calculation.errors)}"
                )
                continue

            row = record_to_row(calculation.result.record, business_id)
            self.session.add(row)
            records.append(row)
            self._apply_deduction_updates(
                deduction_rows.get(employee_id, []),
                calculation.result.updated_deductions,
            )

        if not records:
            raise NoPayrollGeneratedError(warnings)

        try:
            await self.session.flush()
        except IntegrityError as e:
            # Another run stored this period after the duplicate check
            raise PayrollAlreadyProcessedError(period) from e

        logger.info(
            "Processed payroll for business %s (%s): %d records, %d warnings",
            business_id,
            period,
            len(records),
            len(warnings),
        )
        return ProcessOutcome(
            period=period,
            records=records,
            warnings=warnings,
            total_gross=batch.total_gross,
            total_net=batch.total_net,
        )

    async def get_history(self, business_id: UUID, period: PayPeriod) -> list[PayrollRecordRow]:
        """Payroll records for a period, newest first, with employees loaded."""
        result = await self.session.execute(
            select(PayrollRecordRow)
            .where(
                PayrollRecordRow.business_id == business_id,
                PayrollRecordRow.year == period.year,
                PayrollRecordRow.month == period.month,
            )
            .options(selectinload(PayrollRecordRow.employee))
            .order_by(PayrollRecordRow.processed_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_employee_history(
        self, business_id: UUID, employee_id: UUID
    ) -> list[PayrollRecordRow]:
        """All payroll records of one employee, latest period first."""
        employee = await self.session.get(Employee, employee_id)
        if employee is None or employee.business_id != business_id:
            raise EmployeeNotFoundError(employee_id)

        result = await self.session.execute(
            select(PayrollRecordRow)
            .where(PayrollRecordRow.employee_id == employee_id)
            .order_by(PayrollRecordRow.year.desc(), PayrollRecordRow.month.desc())
        )
        return list(result.scalars().all())

    async def get_summary(self, business_id: UUID, period: PayPeriod) -> PayrollSummary:
        result = await self.session.execute(
            select(
                func.count(PayrollRecordRow.payroll_record_id),
                func.sum(PayrollRecordRow.gross_salary),
                func.sum(PayrollRecordRow.net_salary),
                func.sum(PayrollRecordRow.paye),
                func.sum(PayrollRecordRow.statutory_total),
                func.sum(PayrollRecordRow.deductions_total),
            ).where(
                PayrollRecordRow.business_id == business_id,
                PayrollRecordRow.year == period.year,
                PayrollRecordRow.month == period.month,
            )
        )
        count, gross, net, paye, statutory, deductions = result.one()
        return PayrollSummary(
            total_employees=count or 0,
            total_gross_salary=Decimal(gross or 0),
            total_net_salary=Decimal(net or 0),
            total_paye=Decimal(paye or 0),
            total_statutory=Decimal(statutory or 0),
            total_deductions=Decimal(deductions or 0),
        )

    async def transition_record(
        self, business_id: UUID, record_id: UUID, to_status: str
    ) -> PayrollRecordRow:
        """Move a payroll record through processed → approved → paid."""
        record = await self.session.get(PayrollRecordRow, record_id)
        if record is None or record.business_id != business_id:
            raise PayrollRecordNotFoundError(record_id)

        PayrollStateMachine.validate_transition(record.status, to_status)

        now = datetime.now(timezone.utc)
        if to_status == PayrollStatus.APPROVED.value:
            record.approved_at = now
        elif to_status == PayrollStatus.PAID.value:
            record.paid_at = now
        elif PayrollStateMachine.is_reopen(record.status, to_status):
            record.approved_at = None

        record.status = to_status
        await self.session.flush()
        return record

    # === Data Loading Methods ===

    async def _get_active_employees(self, business_id: UUID) -> list[Employee]:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.business_id == business_id, Employee.status == "active")
            .order_by(Employee.last_name, Employee.first_name)
        )
        return list(result.scalars().all())

    async def _period_processed(self, business_id: UUID, period: PayPeriod) -> bool:
        result = await self.session.execute(
            select(PayrollRecordRow.payroll_record_id)
            .where(
                PayrollRecordRow.business_id == business_id,
                PayrollRecordRow.year == period.year,
                PayrollRecordRow.month == period.month,
            )
            .limit(1)
        )
        return result.first() is not None

    async def _lock_deductions(
        self, employee_ids: list[UUID]
    ) -> dict[UUID, list[IndividualDeductionRow]]:
        """Load and row-lock active deductions, grouped by employee."""
        result = await self.session.execute(
            select(IndividualDeductionRow)
            .where(
                IndividualDeductionRow.employee_id.in_(employee_ids),
                IndividualDeductionRow.status == DeductionStatus.ACTIVE.value,
            )
            .order_by(IndividualDeductionRow.start_date)
            .with_for_update()
        )
        grouped: dict[UUID, list[IndividualDeductionRow]] = {}
        for row in result.scalars().all():
            grouped.setdefault(row.employee_id, []).append(row)
        return grouped

    def _apply_deduction_updates(
        self,
        rows: list[IndividualDeductionRow],
        updated: tuple[IndividualDeduction, ...],
    ) -> None:
        by_id = {d.deduction_id: d for d in updated}
        for row in rows:
            deduction = by_id.get(row.deduction_id)
            if deduction is None:
                continue
            row.remaining_amount = deduction.remaining_amount
            row.status = deduction.status.value
