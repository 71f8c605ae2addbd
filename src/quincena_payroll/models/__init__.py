"""ORM models."""

from quincena_payroll.models.audit import AuditLog
from quincena_payroll.models.base import Base, TimestampMixin
from quincena_payroll.models.company import Company, Employee
from quincena_payroll.models.enums import (
    LineItemType,
    MovementSource,
    MovementStatus,
    MovementType,
    PeriodHalf,
    PeriodStatus,
    RunStatus,
    SummaryStatus,
)
from quincena_payroll.models.payroll import (
    PayrollEmployeeSummary,
    PayrollLineItem,
    PayrollMovement,
    PayrollPayslip,
    PayrollPeriod,
    PayrollRun,
    StatutoryConfig,
)

__all__ = [
    "AuditLog",
    "Base",
    "TimestampMixin",
    "Company",
    "Employee",
    "LineItemType",
    "MovementSource",
    "MovementStatus",
    "MovementType",
    "PeriodHalf",
    "PeriodStatus",
    "RunStatus",
    "SummaryStatus",
    "PayrollEmployeeSummary",
    "PayrollLineItem",
    "PayrollMovement",
    "PayrollPayslip",
    "PayrollPeriod",
    "PayrollRun",
    "StatutoryConfig",
]
