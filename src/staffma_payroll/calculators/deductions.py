"""Business-wide custom deductions and employee-level amortized deductions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal

from staffma_payroll.calculators.line_builder import LineItemBuilder
from staffma_payroll.calculators.types import (
    CustomDeductionRule,
    DeductionStatus,
    IndividualDeduction,
    LineItem,
    PayPeriod,
)


@dataclass(frozen=True)
class DeductionOutcome:
    """Applied deduction lines plus the post-period deduction balances."""

    items: tuple[LineItem, ...]
    custom_total: Decimal
    individual_total: Decimal
    updated_deductions: tuple[IndividualDeduction, ...]

    @property
    def total(self) -> Decimal:
        return self.custom_total + self.individual_total


def is_deduction_applicable(deduction: IndividualDeduction, period: PayPeriod) -> bool:
    """Check whether an individual deduction is due in ``period``.

    Comparison is by (year, month) only. The start month always applies
    while a balance remains, even when the end date precedes it.
    """
    if deduction.status != DeductionStatus.ACTIVE:
        return False

    start = PayPeriod.from_date(deduction.start_date)
    is_after_start = period >= start
    is_before_end = deduction.end_date is None or period <= PayPeriod.from_date(deduction.end_date)
    has_remaining = deduction.remaining_amount > 0

    if period == start:
        return has_remaining

    return is_after_start and is_before_end and has_remaining


def apply_individual_deduction(
    deduction: IndividualDeduction, period: PayPeriod
) -> tuple[LineItem | None, IndividualDeduction]:
    """Apply one installment for ``period``.

    Returns the line item (None if nothing was deducted) and the deduction
    with its balance and status advanced. The input is not modified.
    """
    if not is_deduction_applicable(deduction, period):
        return None, deduction

    amount = min(deduction.monthly_amount, deduction.remaining_amount)
    if amount <= 0:
        return None, deduction

    remaining = max(Decimal("0"), deduction.remaining_amount - amount)
    status = DeductionStatus.COMPLETED if remaining == 0 else deduction.status

    line = LineItemBuilder.create_individual_deduction_line(
        description=deduction.description,
        amount=amount,
        deduction_type=deduction.type,
        deduction_id=deduction.deduction_id,
    )
    return line, replace(deduction, remaining_amount=remaining, status=status)


def apply_custom_deductions(
    basic_salary: Decimal, rules: Sequence[CustomDeductionRule]
) -> list[LineItem]:
    return [
        LineItemBuilder.create_custom_deduction_line(rule.name, rule.amount_for(basic_salary))
        for rule in rules
        if rule.enabled
    ]


def apply_deductions(
    basic_salary: Decimal,
    custom_rules: Sequence[CustomDeductionRule],
    individual_deductions: Sequence[IndividualDeduction],
    period: PayPeriod,
) -> DeductionOutcome:
    """Apply custom rules then individual deductions for a pay period.

    ``updated_deductions`` holds every input deduction in input order,
    advanced where an installment was taken and unchanged otherwise.
    """
    custom_lines = apply_custom_deductions(basic_salary, custom_rules)

    individual_lines: list[LineItem] = []
    updated: list[IndividualDeduction] = []
    for deduction in individual_deductions:
        line, advanced = apply_individual_deduction(deduction, period)
        if line is not None:
            individual_lines.append(line)
        updated.append(advanced)

    return DeductionOutcome(
        items=tuple(custom_lines + individual_lines),
        custom_total=LineItemBuilder.sum_lines(custom_lines),
        individual_total=LineItemBuilder.sum_lines(individual_lines),
        updated_deductions=tuple(updated),
    )
