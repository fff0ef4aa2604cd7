"""Payroll settings management for a business."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffma_payroll.calculators.tax_calculator import validate_bracket
from staffma_payroll.calculators.tax_templates import get_tax_bracket_template
from staffma_payroll.calculators.types import (
    AllowanceRule,
    CustomDeductionRule,
    TaxBracket,
)
from staffma_payroll.models import PayrollSettings
from staffma_payroll.services.config_loader import parse_bracket, parse_rule

SUPPORTED_CURRENCIES = ("KES", "USD", "EUR", "GBP", "INR", "UGX", "TZS", "RWF")
BRACKET_SOURCES = ("upload", "template", "manual")


class InvalidSettingsError(ValueError):
    """Raised when submitted payroll settings fail validation."""


def bracket_to_dict(bracket: TaxBracket) -> dict[str, Any]:
    return {
        "lower_bound": str(bracket.lower_bound),
        "upper_bound": str(bracket.upper_bound) if bracket.upper_bound is not None else None,
        "rate": str(bracket.rate),
        "enabled": bracket.enabled,
    }


class PayrollSettingsService:
    """Reads and updates the payroll_settings row of a business."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_or_create(self, business_id: UUID) -> PayrollSettings:
        """Get settings for a business, creating empty ones on first access."""
        result = await self.session.execute(
            select(PayrollSettings).where(PayrollSettings.business_id == business_id)
        )
        settings = result.scalar_one_or_none()
        if settings is None:
            settings = PayrollSettings(
                business_id=business_id,
                currency="KES",
                allowances=[],
                custom_deductions=[],
                tax_brackets=[],
                tax_region="",
                tax_business_type="",
                tax_source="",
            )
            self.session.add(settings)
            await self.session.flush()
        return settings

    async def update_rules(
        self,
        business_id: UUID,
        allowances: list[dict[str, Any]] | None = None,
        custom_deductions: list[dict[str, Any]] | None = None,
        currency: str | None = None,
    ) -> PayrollSettings:
        """Replace allowance and/or custom deduction rules."""
        settings = await self.get_or_create(business_id)

        if currency is not None:
            if currency not in SUPPORTED_CURRENCIES:
                raise InvalidSettingsError(f"Unsupported currency: {currency}")
            settings.currency = currency
        if allowances is not None:
            settings.allowances = self._validate_rules(allowances, AllowanceRule)
        if custom_deductions is not None:
            settings.custom_deductions = self._validate_rules(custom_deductions, CustomDeductionRule)

        await self.session.flush()
        return settings

    async def update_tax_brackets(
        self,
        business_id: UUID,
        brackets: list[dict[str, Any]],
        source: str = "manual",
        region: str = "",
        business_type: str = "",
    ) -> PayrollSettings:
        """Replace the bracket schedule after validating every bracket."""
        if source not in BRACKET_SOURCES:
            raise InvalidSettingsError(f"Unknown bracket source: {source}")

        parsed = []
        for data in brackets:
            try:
                bracket = parse_bracket(data)
                validate_bracket(bracket)
            except (KeyError, ValueError) as e:
                raise InvalidSettingsError(str(e)) from e
            parsed.append(bracket)

        parsed.sort(key=lambda b: b.lower_bound)
        for previous, current in zip(parsed, parsed[1:]):
            if previous.upper_bound is None or previous.upper_bound > current.lower_bound:
                raise InvalidSettingsError(
                    f"Tax brackets overlap at {current.lower_bound}"
                )

        settings = await self.get_or_create(business_id)
        settings.tax_brackets = [bracket_to_dict(b) for b in parsed]
        settings.tax_source = source
        settings.tax_region = region
        settings.tax_business_type = business_type
        settings.brackets_updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return settings

    async def apply_template(
        self, business_id: UUID, region: str, business_type: str
    ) -> PayrollSettings:
        """Adopt the bracket template for a region and business type."""
        template = get_tax_bracket_template(region, business_type)
        return await self.update_tax_brackets(
            business_id,
            [bracket_to_dict(b) for b in template],
            source="template",
            region=region,
            business_type=business_type,
        )

    def _validate_rules(
        self, entries: list[dict[str, Any]], rule_cls: type[AllowanceRule] | type[CustomDeductionRule]
    ) -> list[dict[str, Any]]:
        validated = []
        for entry in entries:
            try:
                rule = parse_rule(entry, rule_cls)
            except (KeyError, ValueError) as e:
                raise InvalidSettingsError(str(e)) from e
            validated.append(
                {
                    "name": rule.name,
                    "type": rule.type.value,
                    "value": str(rule.value),
                    "enabled": rule.enabled,
                }
            )
        return validated
