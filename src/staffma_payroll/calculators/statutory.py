"""Statutory pre-tax levies computed from basic salary."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from staffma_payroll.calculators.line_builder import LineItemBuilder
from staffma_payroll.calculators.types import LineItem

HEALTH_LEVY_RATE = Decimal("0.0275")
PENSION_LEVY_RATE = Decimal("0.06")
PENSION_LEVY_CAP = Decimal("1080")
HOUSING_LEVY_RATE = Decimal("0.015")


def calculate_health_levy(basic_salary: Decimal) -> Decimal:
    return LineItemBuilder.round_to_units(basic_salary * HEALTH_LEVY_RATE)


def calculate_pension_levy(basic_salary: Decimal) -> Decimal:
    """Pension contribution, capped at PENSION_LEVY_CAP."""
    return min(LineItemBuilder.round_to_units(basic_salary * PENSION_LEVY_RATE), PENSION_LEVY_CAP)


def calculate_housing_levy(basic_salary: Decimal) -> Decimal:
    return LineItemBuilder.round_to_units(basic_salary * HOUSING_LEVY_RATE)


@dataclass(frozen=True)
class StatutoryDeductions:
    """The three statutory levies for one employee."""

    health: Decimal
    pension: Decimal
    housing: Decimal

    @property
    def total(self) -> Decimal:
        return self.health + self.pension + self.housing

    def to_line_items(self) -> list[LineItem]:
        return [
            LineItemBuilder.create_statutory_line("Health Levy (SHIF)", "health_levy", self.health),
            LineItemBuilder.create_statutory_line("Pension (NSSF)", "pension_levy", self.pension),
            LineItemBuilder.create_statutory_line("Housing Levy", "housing_levy", self.housing),
        ]


def calculate_statutory_deductions(basic_salary: Decimal) -> StatutoryDeductions:
    return StatutoryDeductions(
        health=calculate_health_levy(basic_salary),
        pension=calculate_pension_levy(basic_salary),
        housing=calculate_housing_levy(basic_salary),
    )
