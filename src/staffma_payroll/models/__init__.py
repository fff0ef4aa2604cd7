"""ORM models."""

from staffma_payroll.models.base import Base, TimestampMixin
from staffma_payroll.models.business import Business, PayrollSettings
from staffma_payroll.models.employee import Employee, IndividualDeductionRow
from staffma_payroll.models.payroll import PayrollRecordRow

__all__ = [
    "Base",
    "TimestampMixin",
    "Business",
    "PayrollSettings",
    "Employee",
    "IndividualDeductionRow",
    "PayrollRecordRow",
]
