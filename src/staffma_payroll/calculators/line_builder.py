"""Line item builder and rounding conventions."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from staffma_payroll.calculators.types import ItemTotals, LineItem, LineKind


class LineItemBuilder:
    """Builds allowance and deduction line items.

    Sign conventions: every amount is stored positive. Whether a line adds to
    or subtracts from pay is decided by the section it is reported in
    (allowances vs deductions), not by its sign.

    Rounding:
    - Statutory levies and PAYE to whole currency units (half up)
    - Rule-based allowances and deductions to 2 decimals
    """

    UNIT_PRECISION = Decimal("1")
    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_units(amount: Decimal) -> Decimal:
        """Round to whole currency units, halves away from zero."""
        return amount.quantize(LineItemBuilder.UNIT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def create_allowance_line(name: str, amount: Decimal) -> LineItem:
        return LineItem(
            name=name,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
            kind=LineKind.ALLOWANCE,
        )

    @staticmethod
    def create_statutory_line(name: str, code: str, amount: Decimal) -> LineItem:
        return LineItem(name=name, amount=abs(amount), kind=LineKind.STATUTORY, code=code)

    @staticmethod
    def create_tax_line(amount: Decimal) -> LineItem:
        return LineItem(name="PAYE", amount=abs(amount), kind=LineKind.TAX, code="paye")

    @staticmethod
    def create_custom_deduction_line(name: str, amount: Decimal) -> LineItem:
        return LineItem(
            name=name,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
            kind=LineKind.CUSTOM,
        )

    @staticmethod
    def create_individual_deduction_line(
        description: str,
        amount: Decimal,
        deduction_type: str,
        deduction_id: UUID | None = None,
    ) -> LineItem:
        """Create a line for an employee-level deduction installment."""
        return LineItem(
            name=description,
            amount=abs(amount),
            kind=LineKind.INDIVIDUAL,
            deduction_type=deduction_type,
            deduction_id=deduction_id,
        )

    @staticmethod
    def sum_lines(lines: Iterable[LineItem]) -> Decimal:
        total = Decimal("0")
        for line in lines:
            total += line.amount
        return total

    @staticmethod
    def sum_by_kind(lines: Iterable[LineItem]) -> dict[LineKind, Decimal]:
        """Sum line amounts by kind."""
        totals: dict[LineKind, Decimal] = {kind: Decimal("0") for kind in LineKind}
        for line in lines:
            totals[line.kind] += line.amount
        return totals

    @staticmethod
    def totals(lines: Iterable[LineItem]) -> ItemTotals:
        items = tuple(lines)
        return ItemTotals(items=items, total=LineItemBuilder.sum_lines(items))
