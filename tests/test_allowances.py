"""Unit tests for allowance aggregation."""

from decimal import Decimal

from staffma_payroll.calculators.allowances import aggregate_allowances
from staffma_payroll.calculators.types import AllowanceRule, LineKind, RuleType


def test_percentage_and_fixed_allowances():
    rules = [
        AllowanceRule(name="Housing", type=RuleType.PERCENTAGE, value=Decimal("15")),
        AllowanceRule(name="Transport", type=RuleType.FIXED, value=Decimal("2000")),
    ]
    totals = aggregate_allowances(Decimal("50000"), rules)

    assert [item.name for item in totals.items] == ["Housing", "Transport"]
    assert totals.items[0].amount == Decimal("7500.00")
    assert totals.items[1].amount == Decimal("2000.00")
    assert totals.total == Decimal("9500.00")
    assert all(item.kind == LineKind.ALLOWANCE for item in totals.items)


def test_disabled_allowances_are_omitted():
    rules = [
        AllowanceRule(name="Housing", type=RuleType.PERCENTAGE, value=Decimal("15")),
        AllowanceRule(name="Meals", type=RuleType.FIXED, value=Decimal("800"), enabled=False),
    ]
    totals = aggregate_allowances(Decimal("50000"), rules)

    assert [item.name for item in totals.items] == ["Housing"]
    assert totals.total == Decimal("7500.00")


def test_percentage_rounds_to_cents():
    rules = [AllowanceRule(name="Risk", type=RuleType.PERCENTAGE, value=Decimal("33.333"))]
    totals = aggregate_allowances(Decimal("1000"), rules)
    assert totals.total == Decimal("333.33")


def test_no_rules():
    totals = aggregate_allowances(Decimal("50000"), [])
    assert totals.items == ()
    assert totals.total == Decimal("0")
