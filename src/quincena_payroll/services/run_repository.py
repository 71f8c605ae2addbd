"""Run loading and compare-and-swap status updates."""

from __future__ import annotations

from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from quincena_payroll.errors import ConcurrentModificationError, NotFoundError
from quincena_payroll.models import PayrollEmployeeSummary, PayrollRun
from quincena_payroll.models.base import utcnow
from quincena_payroll.services.state_machine import PayrollRunStateMachine, RunStatus


class RunRepository:
    """Loads runs scoped to a company and moves them between statuses.

    Every status change is a conditional UPDATE on (status, version) that
    bumps the version; a lost race raises ConcurrentModificationError and
    the caller's unit of work rolls back.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_run(
        self,
        company_id: UUID,
        run_id: UUID,
        load_period: bool = True,
        load_summaries: bool = False,
        load_payslips: bool = False,
        refresh: bool = False,
    ) -> PayrollRun:
        """Load a run or raise NotFoundError."""
        options = []
        if load_period:
            options.append(selectinload(PayrollRun.period))
        if load_summaries:
            options.append(
                selectinload(PayrollRun.summaries).selectinload(PayrollEmployeeSummary.line_items)
            )
        if load_payslips:
            options.append(selectinload(PayrollRun.payslips))

        stmt = (
            select(PayrollRun)
            .where(PayrollRun.run_id == run_id, PayrollRun.company_id == company_id)
            .options(*options)
        )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        run = result.scalar_one_or_none()
        if run is None:
            raise NotFoundError("Payroll run", run_id)
        return run

    async def compare_and_swap(
        self,
        run: PayrollRun,
        to_status: RunStatus,
        expected_version: int | None = None,
        **values: Any,
    ) -> PayrollRun:
        """Move ``run`` to ``to_status`` if nobody changed it since it was read."""
        PayrollRunStateMachine.validate_transition(run.status, to_status)
        version = run.version if expected_version is None else expected_version
        return await self._swap(run, [run.status], version, status=to_status, **values)

    async def touch(
        self,
        run: PayrollRun,
        allowed_statuses: Iterable[RunStatus],
        expected_version: int | None = None,
    ) -> PayrollRun:
        """Bump the version without changing status (serializes writers)."""
        version = run.version if expected_version is None else expected_version
        return await self._swap(run, list(allowed_statuses), version)

    async def _swap(
        self,
        run: PayrollRun,
        expected_statuses: list[RunStatus],
        version: int,
        **values: Any,
    ) -> PayrollRun:
        values["version"] = version + 1
        values["updated_at"] = utcnow()

        result = await self.session.execute(
            update(PayrollRun)
            .where(
                PayrollRun.run_id == run.run_id,
                PayrollRun.status.in_(expected_statuses),
                PayrollRun.version == version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrentModificationError(run.run_id, version)

        for key, value in values.items():
            set_committed_value(run, key, value)
        return run
