"""Staffma payroll: monthly PAYE, statutory levies and amortized deductions."""

__version__ = "1.0.0"
