"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from staffma_payroll.calculators.allowances import aggregate_allowances
from staffma_payroll.calculators.deductions import apply_deductions
from staffma_payroll.calculators.line_builder import LineItemBuilder
from staffma_payroll.calculators.statutory import calculate_statutory_deductions
from staffma_payroll.calculators.tax_calculator import TaxCalculator
from staffma_payroll.calculators.types import (
    EmployeePayInput,
    PayPeriod,
    PayrollConfig,
    PayrollRecord,
    PayrollResult,
)
from staffma_payroll.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CalculationResult:
    """Result of calculating pay for one employee."""

    employee_id: UUID
    result: PayrollResult | None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.result is not None and len(self.errors) == 0


@dataclass
class PayrollBatchResult:
    """Result of calculating payroll for a group of employees."""

    period: PayPeriod
    results: dict[UUID, CalculationResult]  # employee_id -> result
    total_gross: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    error_count: int = 0

    @property
    def records(self) -> list[PayrollRecord]:
        return [r.result.record for r in self.results.values() if r.success and r.result]


class PayrollEngine:
    """Main payroll calculation engine.

    Calculation pipeline (stable order per employee):
    1) Aggregate allowances (reported only)
    2) Statutory pre-tax levies
    3) Taxable income = basic - pre-tax levies
    4) PAYE over the bracket schedule
    5) Custom and individual deductions
    6) Net salary

    The engine is pure: it reads nothing from storage and mutates none of
    its inputs. Updated individual deduction balances are returned for the
    caller to persist.
    """

    def __init__(self, engine_version: str | None = None):
        self.engine_version = engine_version or get_settings().engine_version

    def resolve_payroll(
        self,
        employee: EmployeePayInput,
        config: PayrollConfig,
        period: PayPeriod,
    ) -> PayrollResult:
        """Calculate payroll for a single employee."""
        basic_salary = employee.basic_salary

        # 1) Allowances
        allowances = aggregate_allowances(basic_salary, config.allowances)

        # 2) Pre-tax statutory levies
        statutory = calculate_statutory_deductions(basic_salary)
        pre_tax_total = statutory.total

        # 3) Taxable income
        taxable_income = basic_salary - pre_tax_total

        # 4) PAYE
        paye = TaxCalculator(config.tax_brackets, config.personal_relief).calculate(taxable_income)

        # 5) Custom and individual deductions
        outcome = apply_deductions(
            basic_salary,
            config.custom_deductions,
            employee.individual_deductions,
            period,
        )

        # 6) Net salary. Custom deductions only reduce net when configured to.
        net_reducing = pre_tax_total + paye + outcome.individual_total
        if config.custom_deductions_reduce_net:
            net_reducing += outcome.custom_total
        net_salary = basic_salary - net_reducing

        deduction_lines = statutory.to_line_items()
        deduction_lines.append(LineItemBuilder.create_tax_line(paye))
        deduction_lines.extend(outcome.items)
        deductions = LineItemBuilder.totals(deduction_lines)

        calculation_id = self._generate_calculation_id(
            employee.employee_id,
            period,
            self._compute_inputs_fingerprint(employee, config),
        )

        record = PayrollRecord(
            employee_id=employee.employee_id,
            business_id=employee.business_id,
            month=period.month,
            year=period.year,
            basic_salary=basic_salary,
            taxable_income=taxable_income,
            paye=paye,
            allowances=allowances,
            deductions=deductions,
            net_salary=net_salary,
            calculation_id=calculation_id,
        )

        logger.debug(
            "Calculated payroll for employee %s (%s): taxable=%s paye=%s net=%s",
            employee.employee_id,
            period,
            taxable_income,
            paye,
            net_salary,
        )
        return PayrollResult(record=record, updated_deductions=outcome.updated_deductions)

    def process_batch(
        self,
        employees: Sequence[EmployeePayInput],
        config: PayrollConfig,
        period: PayPeriod,
    ) -> PayrollBatchResult:
        """Calculate payroll for every employee, isolating failures."""
        results: dict[UUID, CalculationResult] = {}
        total_gross = Decimal("0")
        total_net = Decimal("0")
        error_count = 0

        for employee in employees:
            try:
                result = self.resolve_payroll(employee, config, period)
            except Exception as e:
                # One bad employee must not abort the rest of the run
                logger.exception("Payroll calculation failed for employee %s", employee.employee_id)
                results[employee.employee_id] = CalculationResult(
                    employee_id=employee.employee_id,
                    result=None,
                    errors=[f"Unexpected error: {e}"],
                )
                error_count += 1
                continue

            results[employee.employee_id] = CalculationResult(
                employee_id=employee.employee_id, result=result
            )
            total_gross += result.record.gross_salary
            total_net += result.record.net_salary

        return PayrollBatchResult(
            period=period,
            results=results,
            total_gross=total_gross,
            total_net=total_net,
            error_count=error_count,
        )

    def _generate_calculation_id(
        self,
        employee_id: UUID,
        period: PayPeriod,
        inputs_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "employee_id": str(employee_id),
            "period": [period.year, period.month],
            "engine_version": self.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    def _compute_inputs_fingerprint(
        self, employee: EmployeePayInput, config: PayrollConfig
    ) -> str:
        """Compute fingerprint of all inputs used in calculation."""
        data: dict[str, Any] = {
            "basic_salary": str(employee.basic_salary),
            "individual_deductions": [
                [str(d.deduction_id), str(d.monthly_amount), str(d.remaining_amount), d.status.value]
                for d in employee.individual_deductions
            ],
            "tax_brackets": [
                [str(b.lower_bound), str(b.upper_bound), str(b.rate), b.enabled]
                for b in config.tax_brackets
            ],
            "allowances": [
                [r.name, r.type.value, str(r.value), r.enabled] for r in config.allowances
            ],
            "custom_deductions": [
                [r.name, r.type.value, str(r.value), r.enabled] for r in config.custom_deductions
            ],
            "personal_relief": str(config.personal_relief),
            "custom_deductions_reduce_net": config.custom_deductions_reduce_net,
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]


def resolve_payroll(
    employee: EmployeePayInput,
    config: PayrollConfig,
    period: PayPeriod,
) -> PayrollResult:
    """Calculate payroll for one employee with the default engine."""
    return PayrollEngine().resolve_payroll(employee, config, period)
