"""API routes."""

from staffma_payroll.api.routes.health import router as health_router
from staffma_payroll.api.routes.payroll import router as payroll_router
from staffma_payroll.api.routes.settings import router as settings_router
from staffma_payroll.api.routes.settings import templates_router

__all__ = ["health_router", "payroll_router", "settings_router", "templates_router"]
