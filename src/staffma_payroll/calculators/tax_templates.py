"""Tax bracket templates by region and business type.

Templates are monthly PAYE schedules a business can adopt instead of entering
brackets by hand. Every business type in a region currently shares the same
schedule; the per-type mapping is kept so a region can diverge later.
"""

from __future__ import annotations

from decimal import Decimal

from staffma_payroll.calculators.types import TaxBracket

BUSINESS_TYPES: tuple[str, ...] = (
    "Small Business",
    "Corporation",
    "Non-Profit",
    "Government",
    "Startup",
    "Other",
)

DEFAULT_REGION = "Kenya"
DEFAULT_BUSINESS_TYPE = "Small Business"


def _schedule(*rows: tuple[int, int, str]) -> tuple[TaxBracket, ...]:
    return tuple(
        TaxBracket(
            lower_bound=Decimal(lower),
            upper_bound=Decimal(upper),
            rate=Decimal(rate),
        )
        for lower, upper, rate in rows
    )


KENYA_SCHEDULE = _schedule(
    (0, 24000, "10"),
    (24001, 32333, "25"),
    (32334, 500000, "30"),
    (500001, 800000, "32.5"),
    (800001, 1000000, "35"),
)

UGANDA_SCHEDULE = _schedule(
    (0, 235000, "0"),
    (235001, 335000, "10"),
    (335001, 410000, "20"),
    (410001, 10000000, "30"),
)

TANZANIA_SCHEDULE = _schedule(
    (0, 270000, "0"),
    (270001, 520000, "8"),
    (520001, 760000, "20"),
    (760001, 10000000, "25"),
)

RWANDA_SCHEDULE = _schedule(
    (0, 60000, "0"),
    (60001, 120000, "20"),
    (120001, 1000000, "30"),
)

TAX_BRACKET_TEMPLATES: dict[str, dict[str, tuple[TaxBracket, ...]]] = {
    "Kenya": {business_type: KENYA_SCHEDULE for business_type in BUSINESS_TYPES},
    "Uganda": {business_type: UGANDA_SCHEDULE for business_type in BUSINESS_TYPES},
    "Tanzania": {business_type: TANZANIA_SCHEDULE for business_type in BUSINESS_TYPES},
    "Rwanda": {business_type: RWANDA_SCHEDULE for business_type in BUSINESS_TYPES},
    "Other": {business_type: KENYA_SCHEDULE for business_type in BUSINESS_TYPES},
}


def get_tax_bracket_template(region: str, business_type: str) -> tuple[TaxBracket, ...]:
    """Get the bracket template for a region and business type.

    Unknown regions fall back to the Kenya small-business schedule; unknown
    business types fall back to the region's first business type.
    """
    region_templates = TAX_BRACKET_TEMPLATES.get(region)
    if region_templates is None:
        return TAX_BRACKET_TEMPLATES[DEFAULT_REGION][DEFAULT_BUSINESS_TYPE]

    template = region_templates.get(business_type)
    if template is None:
        first_business_type = next(iter(region_templates))
        return region_templates[first_business_type]

    return template


def get_available_regions() -> list[str]:
    return list(TAX_BRACKET_TEMPLATES)


def get_available_business_types(region: str) -> list[str]:
    """Business types with a template in ``region`` (empty if unknown)."""
    return list(TAX_BRACKET_TEMPLATES.get(region, {}))
