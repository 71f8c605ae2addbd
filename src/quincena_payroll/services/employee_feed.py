"""Employee-facing view of paid payroll: history, payslip detail, notifications."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select

from quincena_payroll.errors import ForbiddenError, NotFoundError
from quincena_payroll.models import (
    AuditLog,
    PayrollEmployeeSummary,
    PayrollPayslip,
    PayrollPeriod,
    PayrollRun,
)
from quincena_payroll.services.audit_trail import AuditAction
from quincena_payroll.services.state_machine import PayrollRunStateMachine

if TYPE_CHECKING:
    from quincena_payroll.database import UnitOfWork

HISTORY_LIMIT = 200
NOTIFICATION_LIMIT = 50
PAID_MESSAGE = "Tu nómina fue marcada como PAGADA"


@dataclass
class HistoryItem:
    run: PayrollRun
    period: PayrollPeriod
    summary: PayrollEmployeeSummary


@dataclass
class PayslipDetail:
    run: PayrollRun
    period: PayrollPeriod
    payslip: PayrollPayslip


@dataclass
class Notification:
    audit_log_id: UUID
    created_at: datetime
    run_id: str | None
    pdf_url: str | None
    message: str = PAID_MESSAGE


class EmployeeFeed:
    """Read-only queries scoped to one employee; only PAID or CLOSED runs show."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @property
    def session(self):
        return self.uow.session

    async def history(self, company_id: UUID, employee_id: UUID) -> list[HistoryItem]:
        result = await self.session.execute(
            select(PayrollEmployeeSummary, PayrollRun, PayrollPeriod)
            .join(PayrollRun, PayrollRun.run_id == PayrollEmployeeSummary.run_id)
            .join(PayrollPeriod, PayrollPeriod.period_id == PayrollRun.period_id)
            .where(
                PayrollEmployeeSummary.employee_id == employee_id,
                PayrollRun.company_id == company_id,
                PayrollRun.status.in_(list(PayrollRunStateMachine.EMPLOYEE_VISIBLE)),
            )
            .order_by(PayrollRun.paid_at.desc(), PayrollEmployeeSummary.updated_at.desc())
            .limit(HISTORY_LIMIT)
        )
        return [
            HistoryItem(run=run, period=period, summary=summary)
            for summary, run, period in result.all()
        ]

    async def detail(self, company_id: UUID, employee_id: UUID, run_id: UUID) -> PayslipDetail:
        result = await self.session.execute(
            select(PayrollRun, PayrollPeriod)
            .join(PayrollPeriod, PayrollPeriod.period_id == PayrollRun.period_id)
            .where(
                PayrollRun.run_id == run_id,
                PayrollRun.company_id == company_id,
                PayrollRun.status.in_(list(PayrollRunStateMachine.EMPLOYEE_VISIBLE)),
            )
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Payroll run", run_id)
        run, period = row

        payslip_result = await self.session.execute(
            select(PayrollPayslip).where(
                PayrollPayslip.run_id == run_id,
                PayrollPayslip.employee_id == employee_id,
            )
        )
        payslip = payslip_result.scalar_one_or_none()
        if payslip is None:
            raise ForbiddenError("Not allowed to view this payroll", {"run_id": str(run_id)})

        return PayslipDetail(run=run, period=period, payslip=payslip)

    async def notifications(self, company_id: UUID, employee_id: UUID) -> list[Notification]:
        result = await self.session.execute(
            select(AuditLog)
            .where(
                AuditLog.company_id == company_id,
                AuditLog.action == AuditAction.EMPLOYEE_PAID_NOTIFY,
                AuditLog.meta["employeeUserId"].as_string() == str(employee_id),
            )
            .order_by(AuditLog.created_at.desc())
            .limit(NOTIFICATION_LIMIT)
        )
        items: list[Notification] = []
        for log in result.scalars().all():
            meta = log.meta or {}
            items.append(
                Notification(
                    audit_log_id=log.audit_log_id,
                    created_at=log.created_at,
                    run_id=meta.get("runId"),
                    pdf_url=meta.get("pdfUrl"),
                )
            )
        return items
