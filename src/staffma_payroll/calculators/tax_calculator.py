"""PAYE calculation over progressive tax brackets."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from staffma_payroll.calculators.line_builder import LineItemBuilder
from staffma_payroll.calculators.tax_templates import KENYA_SCHEDULE
from staffma_payroll.calculators.types import TaxBracket

logger = logging.getLogger(__name__)

# Flat monthly personal relief subtracted from computed tax
PERSONAL_RELIEF = Decimal("2400")

DEFAULT_TAX_BRACKETS: tuple[TaxBracket, ...] = KENYA_SCHEDULE


class MalformedBracketError(ValueError):
    """Raised when a tax bracket cannot be used for calculation."""

    def __init__(self, bracket: TaxBracket, reason: str):
        self.bracket = bracket
        self.reason = reason
        super().__init__(f"Malformed tax bracket {bracket}: {reason}")


def validate_bracket(bracket: TaxBracket) -> None:
    """Raise MalformedBracketError if the bracket is unusable."""
    bounds = [bracket.lower_bound, bracket.rate]
    if bracket.upper_bound is not None:
        bounds.append(bracket.upper_bound)
    if not all(value.is_finite() for value in bounds):
        raise MalformedBracketError(bracket, "non-finite bound or rate")
    if bracket.lower_bound < 0:
        raise MalformedBracketError(bracket, "negative lower bound")
    if bracket.upper_bound is not None and bracket.upper_bound < bracket.lower_bound:
        raise MalformedBracketError(bracket, "upper bound below lower bound")
    if not 0 <= bracket.rate <= 100:
        raise MalformedBracketError(bracket, "rate outside 0-100")


def resolve_brackets(brackets: Sequence[TaxBracket] | None) -> tuple[TaxBracket, ...]:
    """Return the enabled brackets sorted by lower bound.

    Falls back to DEFAULT_TAX_BRACKETS when nothing usable is configured,
    so payroll can always be computed.
    """
    enabled = [b for b in brackets or () if b.enabled]
    if not enabled:
        return DEFAULT_TAX_BRACKETS

    try:
        for bracket in enabled:
            validate_bracket(bracket)
    except MalformedBracketError as e:
        logger.warning("Falling back to default tax brackets: %s", e)
        return DEFAULT_TAX_BRACKETS

    return tuple(sorted(enabled, key=lambda b: b.lower_bound))


class TaxCalculator:
    """Calculates monthly PAYE from a bracket schedule.

    Tax is rounded to whole units inside each bracket before being summed,
    so the result can differ by a unit or two from rounding the total once.
    The last bracket absorbs any income above its upper bound.
    """

    def __init__(
        self,
        brackets: Sequence[TaxBracket] | None = None,
        personal_relief: Decimal = PERSONAL_RELIEF,
    ):
        self.brackets = resolve_brackets(brackets)
        self.personal_relief = personal_relief

    def calculate(self, taxable_income: Decimal) -> Decimal:
        if taxable_income <= 0:
            return Decimal("0")

        total_tax = Decimal("0")
        remaining = taxable_income
        last_index = len(self.brackets) - 1

        for index, bracket in enumerate(self.brackets):
            if remaining <= 0:
                break

            if index == last_index or bracket.upper_bound is None:
                taxable_in_bracket = remaining
            else:
                taxable_in_bracket = min(remaining, bracket.upper_bound - bracket.lower_bound)

            total_tax += LineItemBuilder.round_to_units(taxable_in_bracket * bracket.rate / 100)
            remaining -= taxable_in_bracket

        return max(Decimal("0"), total_tax - self.personal_relief)


def calculate_paye(
    taxable_income: Decimal,
    brackets: Sequence[TaxBracket] | None = None,
    personal_relief: Decimal = PERSONAL_RELIEF,
) -> Decimal:
    """Calculate PAYE for a taxable income figure."""
    return TaxCalculator(brackets, personal_relief).calculate(taxable_income)
