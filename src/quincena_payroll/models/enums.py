"""Closed status and classification enumerations for payroll records."""

from __future__ import annotations

from enum import Enum


class PeriodHalf(str, Enum):
    """Which half of the month a quincena covers."""

    FIRST = "FIRST"
    SECOND = "SECOND"


class PeriodStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class RunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    APPROVED = "APPROVED"
    PAID = "PAID"
    CLOSED = "CLOSED"


class SummaryStatus(str, Enum):
    """Employee summary status values."""

    READY = "READY"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    LOCKED = "LOCKED"


class MovementType(str, Enum):
    EARNING = "EARNING"
    DEDUCTION = "DEDUCTION"


class MovementSource(str, Enum):
    MANUAL = "MANUAL"
    SALES_COMMISSION = "SALES_COMMISSION"
    ADVANCE = "ADVANCE"
    LOAN = "LOAN"
    ADJUSTMENT = "ADJUSTMENT"
    OTHER = "OTHER"


class MovementStatus(str, Enum):
    """Movement status values."""

    PENDING = "PENDING"
    APPLIED = "APPLIED"
    VOIDED = "VOIDED"


class LineItemType(str, Enum):
    EARNING = "EARNING"
    DEDUCTION = "DEDUCTION"
