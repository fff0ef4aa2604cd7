"""Payroll service integration tests.

Runs full business payroll against the database: period guards, deduction
balance persistence, summaries and record status transitions.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from staffma_payroll.calculators.types import PayPeriod
from staffma_payroll.models import Business, Employee, IndividualDeductionRow
from staffma_payroll.services.payroll_service import (
    BusinessNotFoundError,
    EmployeeNotFoundError,
    InvalidPayrollPeriodError,
    NoActiveEmployeesError,
    NoPayrollGeneratedError,
    PayrollAlreadyProcessedError,
    PayrollRecordNotFoundError,
    PayrollService,
)
from staffma_payroll.services.state_machine import InvalidTransitionError

from .conftest import ALICE_ID, BRIAN_ID, BUSINESS_ID, TODAY

MARCH = PayPeriod(year=2024, month=3)
APRIL = PayPeriod(year=2024, month=4)


class UncheckedPayrollService(PayrollService):
    """Skips the duplicate check, as a run racing another one would."""

    async def _period_processed(self, business_id, period) -> bool:
        return False


class TestProcessPayroll:
    """Test processing a business period."""

    async def test_process_all_active_employees(self, db_session: AsyncSession, employees):
        outcome = await PayrollService(db_session).process_payroll(BUSINESS_ID, MARCH, TODAY)

        assert outcome.count == 2
        assert outcome.warnings == []
        by_employee = {row.employee_id: row for row in outcome.records}

        alice = by_employee[ALICE_ID]
        assert alice.gross_salary == Decimal("57500.00")
        assert alice.taxable_income == Decimal("46795")
        assert alice.paye == Decimal("6422")
        assert alice.statutory_total == Decimal("3205")
        assert alice.net_salary == Decimal("40373")
        assert alice.status == "processed"
        assert alice.allowances[0]["name"] == "Housing"

        brian = by_employee[BRIAN_ID]
        assert brian.paye == Decimal("911")
        assert brian.net_salary == Decimal("26734")

        assert outcome.total_gross == Decimal("92000.00")
        assert outcome.total_net == Decimal("67107")

    async def test_inactive_employees_are_skipped(self, db_session: AsyncSession, employees):
        employees[1].status = "inactive"
        await db_session.commit()

        outcome = await PayrollService(db_session).process_payroll(BUSINESS_ID, MARCH, TODAY)
        assert [row.employee_id for row in outcome.records] == [ALICE_ID]

    async def test_duplicate_period_is_rejected(self, db_session: AsyncSession, employees):
        service = PayrollService(db_session)
        await service.process_payroll(BUSINESS_ID, MARCH, TODAY)

        with pytest.raises(PayrollAlreadyProcessedError):
            await service.process_payroll(BUSINESS_ID, MARCH, TODAY)

    async def test_racing_duplicate_is_rejected_at_flush(
        self, db_session: AsyncSession, employees
    ):
        await PayrollService(db_session).process_payroll(BUSINESS_ID, MARCH, TODAY)
        await db_session.commit()

        with pytest.raises(PayrollAlreadyProcessedError):
            await UncheckedPayrollService(db_session).process_payroll(BUSINESS_ID, MARCH, TODAY)

    async def test_future_period_is_rejected(self, db_session: AsyncSession, employees):
        with pytest.raises(InvalidPayrollPeriodError, match="future"):
            await PayrollService(db_session).process_payroll(
                BUSINESS_ID, PayPeriod(2024, 7), date(2024, 6, 15)
            )

    async def test_current_period_is_allowed(self, db_session: AsyncSession, employees):
        outcome = await PayrollService(db_session).process_payroll(
            BUSINESS_ID, PayPeriod(2024, 6), date(2024, 6, 15)
        )
        assert outcome.count == 2

    async def test_period_before_registration_is_rejected(
        self, db_session: AsyncSession, employees
    ):
        with pytest.raises(InvalidPayrollPeriodError, match="registration"):
            await PayrollService(db_session).process_payroll(
                BUSINESS_ID, PayPeriod(2022, 12), TODAY
            )

    async def test_unknown_business(self, db_session: AsyncSession):
        with pytest.raises(BusinessNotFoundError):
            await PayrollService(db_session).process_payroll(uuid4(), MARCH, TODAY)

    async def test_no_active_employees(self, db_session: AsyncSession, business):
        with pytest.raises(NoActiveEmployeesError):
            await PayrollService(db_session).process_payroll(BUSINESS_ID, MARCH, TODAY)

    async def test_missing_salary_becomes_warning(self, db_session: AsyncSession, employees):
        employees[1].basic_salary = None
        await db_session.commit()

        outcome = await PayrollService(db_session).process_payroll(BUSINESS_ID, MARCH, TODAY)

        assert outcome.count == 1
        assert outcome.warnings == ["Employee Brian Otieno has no valid salary data"]

    async def test_no_valid_records(self, db_session: AsyncSession, employees):
        for employee in employees:
            employee.basic_salary = None
        await db_session.commit()

        with pytest.raises(NoPayrollGeneratedError) as exc_info:
            await PayrollService(db_session).process_payroll(BUSINESS_ID, MARCH, TODAY)
        assert len(exc_info.value.warnings) == 2


class TestIndividualDeductionBalances:
    """Test that installment balances are written back."""

    async def test_balance_is_reduced(
        self, db_session: AsyncSession, salary_advance: IndividualDeductionRow
    ):
        outcome = await PayrollService(db_session).process_payroll(BUSINESS_ID, MARCH, TODAY)
        await db_session.commit()
        await db_session.refresh(salary_advance)

        assert salary_advance.remaining_amount == Decimal("8000")
        assert salary_advance.status == "active"

        alice = next(row for row in outcome.records if row.employee_id == ALICE_ID)
        assert alice.net_salary == Decimal("38373")
        assert alice.deductions[-1]["kind"] == "individual"
        assert alice.deductions[-1]["deduction_id"] == str(salary_advance.deduction_id)

    async def test_advance_completes_after_five_periods(
        self, db_session: AsyncSession, salary_advance: IndividualDeductionRow
    ):
        service = PayrollService(db_session)
        for month in range(3, 8):
            await service.process_payroll(BUSINESS_ID, PayPeriod(2024, month), TODAY)
            await db_session.commit()

        await db_session.refresh(salary_advance)
        assert salary_advance.remaining_amount == Decimal("0")
        assert salary_advance.status == "completed"

        outcome = await service.process_payroll(BUSINESS_ID, PayPeriod(2024, 8), TODAY)
        alice = next(row for row in outcome.records if row.employee_id == ALICE_ID)
        assert alice.net_salary == Decimal("40373")

    async def test_deduction_not_due_before_start(
        self, db_session: AsyncSession, salary_advance: IndividualDeductionRow
    ):
        await PayrollService(db_session).process_payroll(BUSINESS_ID, PayPeriod(2024, 2), TODAY)
        await db_session.commit()
        await db_session.refresh(salary_advance)

        assert salary_advance.remaining_amount == Decimal("10000")


class TestHistoryAndSummary:
    async def test_summary(self, db_session: AsyncSession, employees):
        service = PayrollService(db_session)
        await service.process_payroll(BUSINESS_ID, MARCH, TODAY)
        await db_session.commit()

        summary = await service.get_summary(BUSINESS_ID, MARCH)
        assert summary.total_employees == 2
        assert summary.total_gross_salary == Decimal("92000")
        assert summary.total_net_salary == Decimal("67107")
        assert summary.total_paye == Decimal("7333")
        assert summary.total_statutory == Decimal("5560")

    async def test_empty_summary(self, db_session: AsyncSession, business: Business):
        summary = await PayrollService(db_session).get_summary(BUSINESS_ID, MARCH)
        assert summary.total_employees == 0
        assert summary.total_net_salary == Decimal("0")

    async def test_history_includes_employee(self, db_session: AsyncSession, employees):
        service = PayrollService(db_session)
        await service.process_payroll(BUSINESS_ID, MARCH, TODAY)
        await db_session.commit()

        rows = await service.get_history(BUSINESS_ID, MARCH)
        assert {row.employee.full_name for row in rows} == {"Alice Wanjiku", "Brian Otieno"}
        assert await service.get_history(BUSINESS_ID, PayPeriod(2024, 4)) == []


class TestRecordTransitions:
    async def _processed_record(self, db_session: AsyncSession):
        outcome = await PayrollService(db_session).process_payroll(BUSINESS_ID, MARCH, TODAY)
        await db_session.commit()
        return outcome.records[0]

    async def test_approve_then_pay(self, db_session: AsyncSession, employees: list[Employee]):
        record = await self._processed_record(db_session)
        service = PayrollService(db_session)

        approved = await service.transition_record(BUSINESS_ID, record.payroll_record_id, "approved")
        assert approved.status == "approved"
        assert approved.approved_at is not None

        paid = await service.transition_record(BUSINESS_ID, record.payroll_record_id, "paid")
        assert paid.status == "paid"
        assert paid.paid_at is not None

    async def test_reopen_clears_approval(self, db_session: AsyncSession, employees):
        record = await self._processed_record(db_session)
        service = PayrollService(db_session)

        await service.transition_record(BUSINESS_ID, record.payroll_record_id, "approved")
        reopened = await service.transition_record(
            BUSINESS_ID, record.payroll_record_id, "processed"
        )
        assert reopened.status == "processed"
        assert reopened.approved_at is None

    async def test_cannot_pay_unapproved(self, db_session: AsyncSession, employees):
        record = await self._processed_record(db_session)

        with pytest.raises(InvalidTransitionError):
            await PayrollService(db_session).transition_record(
                BUSINESS_ID, record.payroll_record_id, "paid"
            )

    async def test_record_of_other_business(self, db_session: AsyncSession, employees):
        record = await self._processed_record(db_session)

        with pytest.raises(PayrollRecordNotFoundError):
            await PayrollService(db_session).transition_record(
                uuid4(), record.payroll_record_id, "approved"
            )


class TestEmployeeHistory:
    async def test_latest_period_first(self, db_session: AsyncSession, employees):
        service = PayrollService(db_session)
        await service.process_payroll(BUSINESS_ID, MARCH, TODAY)
        await service.process_payroll(BUSINESS_ID, APRIL, TODAY)
        await service.process_payroll(BUSINESS_ID, PayPeriod(year=2023, month=12), TODAY)
        await db_session.commit()

        rows = await service.get_employee_history(BUSINESS_ID, ALICE_ID)
        assert [(row.year, row.month) for row in rows] == [(2024, 4), (2024, 3), (2023, 12)]
        assert {row.employee_id for row in rows} == {ALICE_ID}

    async def test_no_records_yet(self, db_session: AsyncSession, employees):
        assert await PayrollService(db_session).get_employee_history(BUSINESS_ID, BRIAN_ID) == []

    async def test_employee_of_other_business(self, db_session: AsyncSession, employees):
        with pytest.raises(EmployeeNotFoundError):
            await PayrollService(db_session).get_employee_history(uuid4(), ALICE_ID)

    async def test_unknown_employee(self, db_session: AsyncSession, employees):
        with pytest.raises(EmployeeNotFoundError):
            await PayrollService(db_session).get_employee_history(BUSINESS_ID, uuid4())
