"""Payroll settings and tax bracket template endpoints."""

from fastapi import APIRouter, HTTPException, status

from staffma_payroll.api.dependencies import BusinessId, DbSession
from staffma_payroll.api.schemas import (
    BusinessTypeListResponse,
    ErrorResponse,
    PayrollRulesUpdate,
    PayrollSettingsResponse,
    RegionListResponse,
    TaxBracketsUpdate,
    TaxBracketSchema,
    TaxTemplateResponse,
    TemplateApplyRequest,
)
from staffma_payroll.calculators.tax_templates import (
    TAX_BRACKET_TEMPLATES,
    get_available_business_types,
    get_available_regions,
    get_tax_bracket_template,
)
from staffma_payroll.services.settings_service import PayrollSettingsService

router = APIRouter(prefix="/payroll-settings", tags=["payroll-settings"])
templates_router = APIRouter(prefix="/tax-templates", tags=["tax-templates"])


@router.get("", response_model=PayrollSettingsResponse)
async def get_payroll_settings(db: DbSession, business_id: BusinessId) -> PayrollSettingsResponse:
    """Get payroll settings, creating empty ones on first access."""
    service = PayrollSettingsService(db)
    settings = await service.get_or_create(business_id)
    await db.commit()
    return PayrollSettingsResponse.model_validate(settings)


@router.put(
    "/rules",
    response_model=PayrollSettingsResponse,
    responses={400: {"model": ErrorResponse}},
)
async def update_payroll_rules(
    db: DbSession, business_id: BusinessId, payload: PayrollRulesUpdate
) -> PayrollSettingsResponse:
    """Replace allowances, custom deductions, or currency."""
    service = PayrollSettingsService(db)
    settings = await service.update_rules(
        business_id,
        allowances=(
            [r.model_dump(mode="json") for r in payload.allowances]
            if payload.allowances is not None
            else None
        ),
        custom_deductions=(
            [r.model_dump(mode="json") for r in payload.custom_deductions]
            if payload.custom_deductions is not None
            else None
        ),
        currency=payload.currency,
    )
    await db.commit()
    return PayrollSettingsResponse.model_validate(settings)


@router.put(
    "/tax-brackets",
    response_model=PayrollSettingsResponse,
    responses={400: {"model": ErrorResponse}},
)
async def update_tax_brackets(
    db: DbSession, business_id: BusinessId, payload: TaxBracketsUpdate
) -> PayrollSettingsResponse:
    """Replace the tax bracket schedule."""
    service = PayrollSettingsService(db)
    settings = await service.update_tax_brackets(
        business_id,
        [b.model_dump(mode="json") for b in payload.brackets],
        source=payload.source,
        region=payload.region,
        business_type=payload.business_type,
    )
    await db.commit()
    return PayrollSettingsResponse.model_validate(settings)


@router.post("/tax-brackets/template", response_model=PayrollSettingsResponse)
async def apply_tax_template(
    db: DbSession, business_id: BusinessId, payload: TemplateApplyRequest
) -> PayrollSettingsResponse:
    """Adopt a region/business-type bracket template."""
    service = PayrollSettingsService(db)
    settings = await service.apply_template(business_id, payload.region, payload.business_type)
    await db.commit()
    return PayrollSettingsResponse.model_validate(settings)


# ============================================================================
# Templates
# ============================================================================


@templates_router.get("/regions", response_model=RegionListResponse)
async def list_regions() -> RegionListResponse:
    return RegionListResponse(regions=get_available_regions())


@templates_router.get(
    "/regions/{region}/business-types",
    response_model=BusinessTypeListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_business_types(region: str) -> BusinessTypeListResponse:
    if region not in TAX_BRACKET_TEMPLATES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown region '{region}'",
        )
    return BusinessTypeListResponse(
        region=region, business_types=get_available_business_types(region)
    )


@templates_router.get("", response_model=TaxTemplateResponse)
async def get_template(region: str, business_type: str) -> TaxTemplateResponse:
    """Get a bracket template, falling back as the template lookup does."""
    brackets = get_tax_bracket_template(region, business_type)
    return TaxTemplateResponse(
        region=region,
        business_type=business_type,
        brackets=[
            TaxBracketSchema(
                lower_bound=b.lower_bound,
                upper_bound=b.upper_bound,
                rate=b.rate,
                enabled=b.enabled,
            )
            for b in brackets
        ],
    )
