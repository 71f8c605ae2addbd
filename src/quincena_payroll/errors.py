"""Typed errors raised by the payroll run engine.

Every error carries a machine-readable ``code`` so the HTTP layer (and any
other caller) can branch on the kind of failure instead of its message:

    PayrollError
    +-- NotFoundError              not_found
    +-- InvalidInputError          invalid_input
    +-- ConflictError              conflict
    |   +-- ConcurrentModificationError
    +-- InvalidStateError          invalid_state
    |   +-- InvalidTransitionError
    +-- ForbiddenError             forbidden
    +-- DocumentGenerationError    document_error

Kinds other than ``document_error`` are detected before any mutation starts.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID


class PayrollError(Exception):
    """Base class for payroll engine errors."""

    code: str = "payroll_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(PayrollError):
    """An addressed period, run, movement or payslip does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: UUID | str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity} not found"
        if entity_id is not None:
            message = f"{entity} {entity_id} not found"
        super().__init__(message, {"entity": entity, "id": str(entity_id) if entity_id else None})


class InvalidInputError(PayrollError):
    """Malformed amounts, dates or missing references."""

    code = "invalid_input"


class ConflictError(PayrollError):
    """The operation would duplicate an existing record."""

    code = "conflict"


class ConcurrentModificationError(ConflictError):
    """A run changed underneath the caller (stale version token)."""

    def __init__(self, run_id: UUID, expected_version: int):
        self.run_id = run_id
        self.expected_version = expected_version
        super().__init__(
            f"Payroll run {run_id} was modified concurrently "
            f"(expected version {expected_version})",
            {"run_id": str(run_id), "expected_version": expected_version},
        )


class InvalidStateError(PayrollError):
    """The operation is not allowed in the current run or movement status."""

    code = "invalid_state"


class InvalidTransitionError(InvalidStateError):
    """Raised when an invalid run status transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        self.reason = reason
        msg = f"Invalid transition from '{self.from_status}' to '{self.to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"from": self.from_status, "to": self.to_status})


class ForbiddenError(PayrollError):
    """The caller may not see the requested record."""

    code = "forbidden"


class DocumentGenerationError(PayrollError):
    """Rendering or storing one or more payslip documents failed."""

    code = "document_error"

    def __init__(self, run_id: UUID, failures: dict[UUID, str]):
        self.run_id = run_id
        self.failures = failures
        super().__init__(
            f"{len(failures)} payslip document(s) failed for run {run_id}",
            {"run_id": str(run_id), "failures": {str(k): v for k, v in failures.items()}},
        )
