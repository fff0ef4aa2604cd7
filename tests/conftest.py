"""Pytest fixtures for payroll calculation tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from staffma_payroll.calculators.engine import PayrollEngine
from staffma_payroll.calculators.types import (
    AllowanceRule,
    CustomDeductionRule,
    EmployeePayInput,
    IndividualDeduction,
    PayPeriod,
    PayrollConfig,
    RuleType,
)


@pytest.fixture
def engine() -> PayrollEngine:
    return PayrollEngine(engine_version="test")


@pytest.fixture
def period() -> PayPeriod:
    return PayPeriod(year=2024, month=3)


@pytest.fixture
def housing_allowance() -> AllowanceRule:
    return AllowanceRule(name="Housing", type=RuleType.PERCENTAGE, value=Decimal("15"))


@pytest.fixture
def welfare_deduction() -> CustomDeductionRule:
    return CustomDeductionRule(name="Welfare", type=RuleType.FIXED, value=Decimal("500"))


@pytest.fixture
def config(housing_allowance: AllowanceRule) -> PayrollConfig:
    """Default brackets with a 15% housing allowance."""
    return PayrollConfig(allowances=(housing_allowance,))


@pytest.fixture
def salary_advance() -> IndividualDeduction:
    """10,000 advance repaid at 2,000 a month from March 2024."""
    return IndividualDeduction(
        description="Salary advance",
        type="advance",
        amount=Decimal("10000"),
        monthly_amount=Decimal("2000"),
        remaining_amount=Decimal("10000"),
        start_date=date(2024, 3, 15),
        deduction_id=uuid4(),
    )


@pytest.fixture
def employee() -> EmployeePayInput:
    return EmployeePayInput(employee_id=uuid4(), basic_salary=Decimal("50000"))
