"""Unit tests for custom and individual deductions."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from staffma_payroll.calculators.deductions import (
    apply_custom_deductions,
    apply_deductions,
    apply_individual_deduction,
    is_deduction_applicable,
)
from staffma_payroll.calculators.types import (
    CustomDeductionRule,
    DeductionStatus,
    LineKind,
    PayPeriod,
    RuleType,
)


class TestApplicability:
    """Test when an individual deduction is due."""

    def test_not_due_before_start(self, salary_advance):
        assert not is_deduction_applicable(salary_advance, PayPeriod(2024, 2))

    def test_due_in_start_month(self, salary_advance):
        assert is_deduction_applicable(salary_advance, PayPeriod(2024, 3))

    def test_due_after_start_without_end(self, salary_advance):
        assert is_deduction_applicable(salary_advance, PayPeriod(2025, 1))

    def test_not_due_after_end(self, salary_advance):
        deduction = replace(salary_advance, end_date=date(2024, 5, 1))
        assert is_deduction_applicable(deduction, PayPeriod(2024, 5))
        assert not is_deduction_applicable(deduction, PayPeriod(2024, 6))

    def test_start_month_applies_even_if_end_precedes_start(self, salary_advance):
        deduction = replace(salary_advance, end_date=date(2024, 1, 31))
        assert is_deduction_applicable(deduction, PayPeriod(2024, 3))
        assert not is_deduction_applicable(deduction, PayPeriod(2024, 4))

    def test_completed_is_never_due(self, salary_advance):
        deduction = replace(salary_advance, status=DeductionStatus.COMPLETED)
        assert not is_deduction_applicable(deduction, PayPeriod(2024, 3))

    def test_no_balance_is_never_due(self, salary_advance):
        deduction = replace(salary_advance, remaining_amount=Decimal("0"))
        assert not is_deduction_applicable(deduction, PayPeriod(2024, 3))


class TestAmortization:
    """Test installments across consecutive periods."""

    def test_five_installments_then_completed(self, salary_advance):
        deduction = salary_advance
        for month in range(3, 8):
            line, deduction = apply_individual_deduction(deduction, PayPeriod(2024, month))
            assert line is not None
            assert line.amount == Decimal("2000")
            assert line.kind == LineKind.INDIVIDUAL
            assert line.deduction_id == salary_advance.deduction_id

        assert deduction.remaining_amount == Decimal("0")
        assert deduction.status == DeductionStatus.COMPLETED

        line, after = apply_individual_deduction(deduction, PayPeriod(2024, 8))
        assert line is None
        assert after == deduction

    def test_final_installment_is_the_remainder(self, salary_advance):
        deduction = replace(salary_advance, remaining_amount=Decimal("1500"))
        line, updated = apply_individual_deduction(deduction, PayPeriod(2024, 4))
        assert line.amount == Decimal("1500")
        assert updated.remaining_amount == Decimal("0")
        assert updated.status == DeductionStatus.COMPLETED

    def test_zero_installment_has_no_effect(self, salary_advance):
        deduction = replace(salary_advance, monthly_amount=Decimal("0"))
        line, updated = apply_individual_deduction(deduction, PayPeriod(2024, 3))
        assert line is None
        assert updated == deduction

    def test_input_is_not_modified(self, salary_advance):
        _, updated = apply_individual_deduction(salary_advance, PayPeriod(2024, 3))
        assert salary_advance.remaining_amount == Decimal("10000")
        assert salary_advance.status == DeductionStatus.ACTIVE
        assert updated.remaining_amount == Decimal("8000")
        assert updated.status == DeductionStatus.ACTIVE


class TestApplyDeductions:
    def test_custom_deductions(self):
        rules = [
            CustomDeductionRule(name="Welfare", type=RuleType.FIXED, value=Decimal("500")),
            CustomDeductionRule(name="Sacco", type=RuleType.PERCENTAGE, value=Decimal("2.5")),
            CustomDeductionRule(
                name="Union", type=RuleType.FIXED, value=Decimal("200"), enabled=False
            ),
        ]
        lines = apply_custom_deductions(Decimal("50000"), rules)
        assert [(line.name, line.amount) for line in lines] == [
            ("Welfare", Decimal("500.00")),
            ("Sacco", Decimal("1250.00")),
        ]
        assert all(line.kind == LineKind.CUSTOM for line in lines)

    def test_custom_before_individual(self, welfare_deduction, salary_advance):
        outcome = apply_deductions(
            Decimal("50000"), [welfare_deduction], [salary_advance], PayPeriod(2024, 3)
        )
        assert [line.kind for line in outcome.items] == [LineKind.CUSTOM, LineKind.INDIVIDUAL]
        assert outcome.custom_total == Decimal("500.00")
        assert outcome.individual_total == Decimal("2000")
        assert outcome.total == Decimal("2500.00")

    def test_updated_deductions_keep_input_order(self, salary_advance):
        future = replace(salary_advance, description="Loan", start_date=date(2024, 9, 1))
        outcome = apply_deductions(
            Decimal("50000"), [], [future, salary_advance], PayPeriod(2024, 3)
        )
        assert [d.description for d in outcome.updated_deductions] == ["Loan", "Salary advance"]
        assert outcome.updated_deductions[0] == future
        assert outcome.updated_deductions[1].remaining_amount == Decimal("8000")

    @pytest.mark.parametrize("month", [1, 2])
    def test_nothing_due(self, salary_advance, month):
        outcome = apply_deductions(Decimal("50000"), [], [salary_advance], PayPeriod(2024, month))
        assert outcome.items == ()
        assert outcome.total == Decimal("0")
