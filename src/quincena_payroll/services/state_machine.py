"""Payroll run state machine with transition validation."""

from __future__ import annotations

from quincena_payroll.errors import InvalidTransitionError
from quincena_payroll.models.enums import RunStatus

__all__ = ["InvalidTransitionError", "PayrollRunStateMachine", "RunStatus"]


class PayrollRunStateMachine:
    """State machine for payroll run status transitions.

    Allowed transitions:
    - draft → review (first recalculation)
    - review → review (further recalculations)
    - draft → approved
    - review → approved
    - approved → paid
    - paid → closed

    Status only moves forward; closed is terminal.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[RunStatus, list[RunStatus]] = {
        RunStatus.DRAFT: [RunStatus.REVIEW, RunStatus.APPROVED],
        RunStatus.REVIEW: [RunStatus.REVIEW, RunStatus.APPROVED],
        RunStatus.APPROVED: [RunStatus.PAID],
        RunStatus.PAID: [RunStatus.CLOSED],
        RunStatus.CLOSED: [],  # Terminal state
    }

    # Statuses where recalculation and movement import are allowed
    CALCULATION_ALLOWED = {
        RunStatus.DRAFT,
        RunStatus.REVIEW,
    }

    # Statuses where summaries are locked and payslips exist
    RESULTS_IMMUTABLE = {
        RunStatus.APPROVED,
        RunStatus.PAID,
        RunStatus.CLOSED,
    }

    # Statuses visible to employees in their payroll history
    EMPLOYEE_VISIBLE = {
        RunStatus.PAID,
        RunStatus.CLOSED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        try:
            allowed = cls.VALID_TRANSITIONS.get(RunStatus(from_status), [])
            return RunStatus(to_status) in allowed
        except ValueError:
            return False

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise cls.transition_error(from_status, to_status)

    @staticmethod
    def transition_error(
        from_status: str, to_status: str, reason: str | None = None
    ) -> InvalidTransitionError:
        return InvalidTransitionError(
            _value(from_status), _value(to_status), reason
        )

    @classmethod
    def can_calculate(cls, status: str) -> bool:
        """Check if recalculation is allowed in this status."""
        return status in cls.CALCULATION_ALLOWED

    @classmethod
    def can_import_movements(cls, status: str) -> bool:
        """Check if movements can be claimed into the run's period."""
        return status in cls.CALCULATION_ALLOWED

    @classmethod
    def can_approve(cls, status: str) -> bool:
        return cls.can_transition(status, RunStatus.APPROVED)

    @classmethod
    def can_mark_paid(cls, status: str) -> bool:
        return cls.can_transition(status, RunStatus.PAID)

    @classmethod
    def are_results_immutable(cls, status: str) -> bool:
        """Check if summaries and line items are locked."""
        return status in cls.RESULTS_IMMUTABLE

    @classmethod
    def is_visible_to_employee(cls, status: str) -> bool:
        return status in cls.EMPLOYEE_VISIBLE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[RunStatus]:
        """Get list of valid next statuses from current status."""
        return list(cls.VALID_TRANSITIONS.get(RunStatus(current_status), []))


def _value(status: str) -> str:
    return status.value if isinstance(status, RunStatus) else str(status)
