"""Run approval - lock summaries, apply movements and snapshot payslips."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select, update

from quincena_payroll.documents.snapshot import PayslipSnapshot
from quincena_payroll.integrations.base import CompanyProfile, EmployeeDirectory
from quincena_payroll.integrations.directory import SqlCompanyProfile, SqlEmployeeDirectory
from quincena_payroll.models import PayrollEmployeeSummary, PayrollPayslip, PayrollRun, SummaryStatus
from quincena_payroll.services.audit_trail import AuditAction, AuditTrail
from quincena_payroll.services.movement_ledger import MovementLedger
from quincena_payroll.services.run_repository import RunRepository
from quincena_payroll.services.state_machine import PayrollRunStateMachine, RunStatus

if TYPE_CHECKING:
    from quincena_payroll.database import UnitOfWork

logger = logging.getLogger(__name__)


class ApprovalService:
    """Approves DRAFT or REVIEW runs.

    In one transaction: the run becomes APPROVED, every summary LOCKED,
    the period's PENDING movements APPLIED, and each summary gets a payslip
    whose snapshot is the only input of later rendering.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        company_profile: CompanyProfile | None = None,
        employee_directory: EmployeeDirectory | None = None,
        audit: AuditTrail | None = None,
    ):
        self.uow = uow
        self._company_profile = company_profile
        self._employee_directory = employee_directory
        self.audit = audit or AuditTrail(uow.session_factory)

    @property
    def session(self):
        return self.uow.session

    @property
    def company_profile(self) -> CompanyProfile:
        return self._company_profile or SqlCompanyProfile(self.session)

    @property
    def employee_directory(self) -> EmployeeDirectory:
        return self._employee_directory or SqlEmployeeDirectory(self.session)

    async def approve(
        self,
        company_id: UUID,
        actor_user_id: UUID,
        run_id: UUID,
        expected_version: int | None = None,
    ) -> PayrollRun:
        runs = RunRepository(self.session)
        approved_at = datetime.now(timezone.utc)

        async with self.uow.atomic():
            run = await runs.get_run(company_id, run_id, load_summaries=True, refresh=True)
            if not PayrollRunStateMachine.can_approve(run.status):
                raise PayrollRunStateMachine.transition_error(
                    run.status, RunStatus.APPROVED, "Only DRAFT or REVIEW runs can be approved"
                )

            await runs.compare_and_swap(
                run,
                RunStatus.APPROVED,
                expected_version,
                approved_by_user_id=actor_user_id,
                approved_at=approved_at,
            )

            await self.session.execute(
                update(PayrollEmployeeSummary)
                .where(PayrollEmployeeSummary.run_id == run.run_id)
                .values(status=SummaryStatus.LOCKED)
                .execution_options(synchronize_session="fetch")
            )

            applied = await MovementLedger(self.uow, self.audit).apply_claimed_movements(
                run, actor_user_id
            )

            payslip_count = await self._snapshot_payslips(run, approved_at)

        logger.info(
            "Approved run %s: %d payslip(s), %d movement(s) applied",
            run_id,
            payslip_count,
            applied,
        )
        await self.audit.log_audit(
            company_id=company_id,
            actor_user_id=actor_user_id,
            action=AuditAction.RUN_APPROVE,
            entity="payroll_runs",
            entity_id=run_id,
            meta={"employeeCount": payslip_count, "appliedMovements": applied},
        )
        return run

    async def _snapshot_payslips(self, run: PayrollRun, captured_at: datetime) -> int:
        """Upsert one payslip per summary."""
        company = await self.company_profile.get_company_info(run.company_id)
        employees = await self.employee_directory.get_employees(
            run.company_id, [s.employee_id for s in run.summaries]
        )

        existing_result = await self.session.execute(
            select(PayrollPayslip).where(PayrollPayslip.run_id == run.run_id)
        )
        existing = {p.employee_id: p for p in existing_result.scalars().all()}

        for summary in run.summaries:
            snapshot = PayslipSnapshot.capture(
                company=company,
                employee=employees.get(summary.employee_id),
                period=run.period,
                summary=summary,
                captured_at=captured_at,
            ).to_json()

            payslip = existing.get(summary.employee_id)
            if payslip is None:
                self.session.add(
                    PayrollPayslip(
                        run_id=run.run_id,
                        employee_id=summary.employee_id,
                        snapshot=snapshot,
                    )
                )
            else:
                payslip.snapshot = snapshot
                payslip.pdf_url = None

        await self.session.flush()
        return len(run.summaries)
