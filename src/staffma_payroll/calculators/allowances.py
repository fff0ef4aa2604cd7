"""Allowance aggregation from business rules."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from staffma_payroll.calculators.line_builder import LineItemBuilder
from staffma_payroll.calculators.types import AllowanceRule, ItemTotals


def aggregate_allowances(
    basic_salary: Decimal, rules: Sequence[AllowanceRule]
) -> ItemTotals:
    """Sum enabled allowances in configuration order.

    Disabled rules are left out of the items entirely. Allowances are
    reported on the payslip only; they never enter taxable income or net
    salary.
    """
    items = [
        LineItemBuilder.create_allowance_line(rule.name, rule.amount_for(basic_salary))
        for rule in rules
        if rule.enabled
    ]
    return LineItemBuilder.totals(items)
