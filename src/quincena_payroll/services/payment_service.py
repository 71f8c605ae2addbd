"""Mark approved runs paid, materializing one payslip document per employee."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select

from quincena_payroll.config import get_settings
from quincena_payroll.errors import ConcurrentModificationError, DocumentGenerationError
from quincena_payroll.integrations.base import DocumentRenderer, DocumentStorage
from quincena_payroll.models import PayrollPayslip, PayrollRun
from quincena_payroll.services.audit_trail import AuditAction, AuditEntry, AuditTrail
from quincena_payroll.services.run_repository import RunRepository
from quincena_payroll.services.state_machine import PayrollRunStateMachine, RunStatus

if TYPE_CHECKING:
    from quincena_payroll.database import UnitOfWork

logger = logging.getLogger(__name__)


def payslip_path(run_id: UUID, employee_id: UUID, extension: str = "pdf") -> str:
    """Deterministic storage path, so a retry overwrites instead of duplicating."""
    return f"payroll/payslips/{run_id}/{employee_id}.{extension}"


@dataclass(frozen=True)
class StoredDocument:
    payslip_id: UUID
    employee_id: UUID
    url: str


class PaymentService:
    """Moves APPROVED runs to PAID.

    Documents are rendered and stored first, with bounded concurrency and
    off the event loop. Only when every document succeeded is the run set
    PAID together with all payslip URLs; otherwise the run stays APPROVED
    with no URL recorded and the call can simply be retried.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        renderer: DocumentRenderer,
        storage: DocumentStorage,
        audit: AuditTrail | None = None,
        concurrency: int | None = None,
    ):
        self.uow = uow
        self.renderer = renderer
        self.storage = storage
        self.audit = audit or AuditTrail(uow.session_factory)
        self.concurrency = max(1, concurrency or get_settings().document_concurrency)

    @property
    def session(self):
        return self.uow.session

    async def mark_paid(
        self,
        company_id: UUID,
        actor_user_id: UUID,
        run_id: UUID,
        expected_version: int | None = None,
    ) -> PayrollRun:
        runs = RunRepository(self.session)

        run = await runs.get_run(company_id, run_id, refresh=True)
        if not PayrollRunStateMachine.can_mark_paid(run.status):
            raise PayrollRunStateMachine.transition_error(
                run.status, RunStatus.PAID, "Only APPROVED runs can be marked paid"
            )
        if expected_version is not None and expected_version != run.version:
            raise ConcurrentModificationError(run.run_id, expected_version)
        version = run.version

        payslips = await self._load_payslips(run.run_id)
        # End the read transaction so no connection idles while documents render
        await self.uow.commit()
        documents = await self._materialize(run, payslips)

        paid_at = datetime.now(timezone.utc)
        async with self.uow.atomic():
            await runs.compare_and_swap(
                run,
                RunStatus.PAID,
                version,
                paid_by_user_id=actor_user_id,
                paid_at=paid_at,
            )
            by_id = {p.payslip_id: p for p in payslips}
            for doc in documents:
                by_id[doc.payslip_id].pdf_url = doc.url
            await self.session.flush()

        logger.info("Run %s marked paid with %d payslip document(s)", run_id, len(documents))

        # Notifications first, then the run-level record
        await self.audit.log_entries(
            [
                AuditEntry(
                    company_id=company_id,
                    actor_user_id=actor_user_id,
                    action=AuditAction.EMPLOYEE_PAID_NOTIFY,
                    entity="payroll_payslips",
                    entity_id=str(doc.payslip_id),
                    meta={
                        "runId": str(run_id),
                        "employeeId": str(doc.employee_id),
                        "employeeUserId": str(doc.employee_id),
                        "pdfUrl": doc.url,
                    },
                )
                for doc in documents
            ]
        )
        await self.audit.log_audit(
            company_id=company_id,
            actor_user_id=actor_user_id,
            action=AuditAction.RUN_MARK_PAID,
            entity="payroll_runs",
            entity_id=run_id,
            meta={"payslipCount": len(documents)},
        )
        return run

    async def _load_payslips(self, run_id: UUID) -> list[PayrollPayslip]:
        result = await self.session.execute(
            select(PayrollPayslip)
            .where(PayrollPayslip.run_id == run_id)
            .order_by(PayrollPayslip.employee_id)
        )
        return list(result.scalars().all())

    async def _materialize(
        self, run: PayrollRun, payslips: list[PayrollPayslip]
    ) -> list[StoredDocument]:
        """Render and store every payslip; raise if any of them failed."""
        semaphore = asyncio.Semaphore(self.concurrency)
        extension = getattr(self.renderer, "file_extension", "pdf")

        def render_and_store(payslip_id: UUID, employee_id: UUID, snapshot: dict) -> StoredDocument:
            data = self.renderer.render(snapshot)
            url = self.storage.save(data, payslip_path(run.run_id, employee_id, extension))
            return StoredDocument(payslip_id=payslip_id, employee_id=employee_id, url=url)

        async def one(payslip: PayrollPayslip) -> StoredDocument:
            async with semaphore:
                return await asyncio.to_thread(
                    render_and_store,
                    payslip.payslip_id,
                    payslip.employee_id,
                    dict(payslip.snapshot),
                )

        outcomes = await asyncio.gather(*(one(p) for p in payslips), return_exceptions=True)

        failures: dict[UUID, str] = {}
        documents: list[StoredDocument] = []
        for payslip, outcome in zip(payslips, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(
                    "Payslip document failed for employee %s in run %s",
                    payslip.employee_id,
                    run.run_id,
                    exc_info=outcome,
                )
                failures[payslip.employee_id] = str(outcome) or type(outcome).__name__
            else:
                documents.append(outcome)

        if failures:
            raise DocumentGenerationError(run.run_id, failures)
        return documents
