"""Payroll calculation engine."""

from staffma_payroll.calculators.allowances import aggregate_allowances
from staffma_payroll.calculators.deductions import apply_deductions, is_deduction_applicable
from staffma_payroll.calculators.engine import (
    CalculationResult,
    PayrollBatchResult,
    PayrollEngine,
    resolve_payroll,
)
from staffma_payroll.calculators.line_builder import LineItemBuilder
from staffma_payroll.calculators.statutory import calculate_statutory_deductions
from staffma_payroll.calculators.tax_calculator import TaxCalculator, calculate_paye

__all__ = [
    "PayrollEngine",
    "PayrollBatchResult",
    "CalculationResult",
    "LineItemBuilder",
    "TaxCalculator",
    "aggregate_allowances",
    "apply_deductions",
    "calculate_paye",
    "calculate_statutory_deductions",
    "is_deduction_applicable",
    "resolve_payroll",
]
