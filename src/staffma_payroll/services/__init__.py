"""Payroll services."""

from staffma_payroll.services.config_loader import ConfigLoader, SqlConfigLoader, parse_payroll_config
from staffma_payroll.services.payroll_service import PayrollError, PayrollService
from staffma_payroll.services.settings_service import PayrollSettingsService
from staffma_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollStateMachine,
    PayrollStatus,
)

__all__ = [
    "ConfigLoader",
    "SqlConfigLoader",
    "parse_payroll_config",
    "PayrollError",
    "PayrollService",
    "PayrollSettingsService",
    "PayrollStateMachine",
    "PayrollStatus",
    "InvalidTransitionError",
]
