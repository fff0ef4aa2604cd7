"""Resolve stored payroll settings into an explicit PayrollConfig."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffma_payroll.calculators.types import (
    AllowanceRule,
    AmountRule,
    CustomDeductionRule,
    PayrollConfig,
    RuleType,
    TaxBracket,
)
from staffma_payroll.models import PayrollSettings

logger = logging.getLogger(__name__)


class ConfigLoader(Protocol):
    """Supplies the payroll configuration for a business."""

    async def load(self, business_id: UUID) -> PayrollConfig: ...


def parse_rule(data: dict[str, Any], rule_cls: type[AmountRule]) -> AmountRule:
    """Build an allowance or custom deduction rule from stored JSON.

    Raises ValueError (or KeyError) for unusable entries.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Rule must be an object, got {data!r}")
    try:
        value = Decimal(str(data["value"]))
    except InvalidOperation as e:
        raise ValueError(f"Invalid rule value: {data.get('value')!r}") from e
    if not value.is_finite():
        raise ValueError(f"Non-finite rule value: {value}")
    if value < 0:
        raise ValueError(f"Negative rule value: {value}")

    rule_type = RuleType(data["type"])
    if rule_type == RuleType.PERCENTAGE and value > 100:
        raise ValueError("Percentage value cannot exceed 100%")

    return rule_cls(
        name=str(data["name"]),
        type=rule_type,
        value=value,
        enabled=bool(data.get("enabled", True)),
    )


def parse_bracket(data: dict[str, Any]) -> TaxBracket:
    if not isinstance(data, dict):
        raise ValueError(f"Tax bracket must be an object, got {data!r}")
    try:
        upper = data.get("upper_bound")
        return TaxBracket(
            lower_bound=Decimal(str(data["lower_bound"])),
            upper_bound=Decimal(str(upper)) if upper not in (None, "") else None,
            rate=Decimal(str(data["rate"])),
            enabled=bool(data.get("enabled", True)),
        )
    except InvalidOperation as e:
        raise ValueError(f"Invalid tax bracket: {data!r}") from e


def _parse_rules(
    entries: list[dict[str, Any]], rule_cls: type[AmountRule], business_id: UUID | None
) -> tuple[Any, ...]:
    rules = []
    for entry in entries:
        try:
            rules.append(parse_rule(entry, rule_cls))
        except (KeyError, ValueError) as e:
            logger.warning(
                "Skipping invalid %s for business %s: %s", rule_cls.__name__, business_id, e
            )
    return tuple(rules)


def parse_payroll_config(settings: PayrollSettings | None) -> PayrollConfig:
    """Convert a settings row into a PayrollConfig.

    Missing settings give the defaults. A malformed bracket list is dropped
    as a whole so the engine falls back to its default schedule rather than
    taxing against a partial one.
    """
    if settings is None:
        return PayrollConfig()

    brackets: tuple[TaxBracket, ...] = ()
    try:
        brackets = tuple(parse_bracket(b) for b in settings.tax_brackets or [])
    except (KeyError, ValueError) as e:
        logger.warning(
            "Ignoring malformed tax brackets for business %s: %s", settings.business_id, e
        )

    return PayrollConfig(
        tax_brackets=brackets,
        allowances=_parse_rules(settings.allowances or [], AllowanceRule, settings.business_id),
        custom_deductions=_parse_rules(
            settings.custom_deductions or [], CustomDeductionRule, settings.business_id
        ),
        currency=settings.currency,
    )


class SqlConfigLoader:
    """Loads payroll configuration from the payroll_settings table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, business_id: UUID) -> PayrollConfig:
        result = await self.session.execute(
            select(PayrollSettings).where(PayrollSettings.business_id == business_id)
        )
        return parse_payroll_config(result.scalar_one_or_none())
