"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from staffma_payroll.api.routes import (
    health_router,
    payroll_router,
    settings_router,
    templates_router,
)
from staffma_payroll.config import get_settings
from staffma_payroll.database import create_schema, dispose_db, init_db
from staffma_payroll.services.payroll_service import (
    BusinessNotFoundError,
    EmployeeNotFoundError,
    NoPayrollGeneratedError,
    PayrollAlreadyProcessedError,
    PayrollError,
    PayrollRecordNotFoundError,
)
from staffma_payroll.services.settings_service import InvalidSettingsError
from staffma_payroll.services.state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    if get_settings().debug:
        await create_schema()
    yield
    await dispose_db()


def _payroll_error_status(exc: PayrollError) -> int:
    if isinstance(
        exc, (BusinessNotFoundError, EmployeeNotFoundError, PayrollRecordNotFoundError)
    ):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, PayrollAlreadyProcessedError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Staffma Payroll API",
        description="Monthly payroll processing with PAYE and statutory deductions",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_error_handler(request: Request, exc: PayrollError) -> JSONResponse:
        content: dict = {"detail": str(exc), "code": exc.code}
        if isinstance(exc, NoPayrollGeneratedError):
            content["warnings"] = exc.warnings
        return JSONResponse(status_code=_payroll_error_status(exc), content=content)

    @app.exception_handler(InvalidTransitionError)
    async def transition_error_handler(
        request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc), "code": "INVALID_TRANSITION"},
        )

    @app.exception_handler(InvalidSettingsError)
    async def settings_error_handler(
        request: Request, exc: InvalidSettingsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc), "code": "INVALID_SETTINGS"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(settings_router, prefix="/api/v1")
    app.include_router(templates_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
