"""Payroll record state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class PayrollStatus(str, Enum):
    """Payroll record status values."""

    PROCESSED = "processed"
    APPROVED = "approved"
    PAID = "paid"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollStateMachine:
    """State machine for payroll record status transitions.

    Allowed transitions:
    - processed → approved
    - approved → processed (reopen)
    - approved → paid
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollStatus.PROCESSED.value: [PayrollStatus.APPROVED.value],
        PayrollStatus.APPROVED.value: [PayrollStatus.PROCESSED.value, PayrollStatus.PAID.value],
        PayrollStatus.PAID.value: [],  # Terminal state
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_reopen(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition is a reopen (approved → processed)."""
        return from_status == PayrollStatus.APPROVED and to_status == PayrollStatus.PROCESSED

