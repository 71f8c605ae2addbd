"""Payroll run lifecycle - create, recalculate, list and inspect runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError

from quincena_payroll.calculators.engine import CalculationEngine
from quincena_payroll.calculators.line_builder import LineItemBuilder
from quincena_payroll.calculators.rate_resolver import RateResolver
from quincena_payroll.calculators.types import RunCalculationResult
from quincena_payroll.config import get_settings
from quincena_payroll.errors import ConflictError
from quincena_payroll.integrations.base import EmployeeDirectory, StatutoryConfigStore
from quincena_payroll.integrations.directory import (
    SqlEmployeeDirectory,
    SqlStatutoryConfigStore,
)
from quincena_payroll.models import (
    PayrollEmployeeSummary,
    PayrollPeriod,
    PayrollRun,
    PeriodHalf,
    SummaryStatus,
)
from quincena_payroll.services.audit_trail import AuditAction, AuditTrail
from quincena_payroll.services.period_service import PeriodService
from quincena_payroll.services.run_repository import RunRepository
from quincena_payroll.services.state_machine import PayrollRunStateMachine, RunStatus

if TYPE_CHECKING:
    from quincena_payroll.database import UnitOfWork

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class RunTotals:
    """Aggregate figures of a run."""

    gross: Decimal = ZERO
    statutory: Decimal = ZERO
    other_deductions: Decimal = ZERO
    net: Decimal = ZERO
    employee_count: int = 0
    negative_net_count: int = 0
    needs_review_count: int = 0

    @property
    def deductions(self) -> Decimal:
        return LineItemBuilder.round_to_cents(self.statutory + self.other_deductions)

    @classmethod
    def from_summaries(cls, summaries: list[PayrollEmployeeSummary]) -> RunTotals:
        rnd = LineItemBuilder.round_to_cents
        totals = cls()
        for s in summaries:
            totals.gross = rnd(totals.gross + s.gross_amount)
            totals.statutory = rnd(totals.statutory + s.statutory_deductions_amount)
            totals.other_deductions = rnd(totals.other_deductions + s.other_deductions_amount)
            totals.net = rnd(totals.net + s.net_amount)
            totals.employee_count += 1
            if s.net_amount < 0:
                totals.negative_net_count += 1
            if s.status == SummaryStatus.NEEDS_REVIEW:
                totals.needs_review_count += 1
        return totals


@dataclass
class RunListItem:
    run: PayrollRun
    period: PayrollPeriod
    totals: RunTotals = field(default_factory=RunTotals)


@dataclass
class RunDetail:
    run: PayrollRun
    period: PayrollPeriod
    summaries: list[PayrollEmployeeSummary]
    totals: RunTotals


class RunLifecycleService:
    """Orchestrates a run from creation through recalculation.

    Approval and payment live in ``ApprovalService`` and ``PaymentService``;
    every state change goes through the compare-and-swap in
    ``RunRepository``.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        employee_directory: EmployeeDirectory | None = None,
        config_store: StatutoryConfigStore | None = None,
        audit: AuditTrail | None = None,
    ):
        self.uow = uow
        self._employee_directory = employee_directory
        self._config_store = config_store
        self.audit = audit or AuditTrail(uow.session_factory)

    @property
    def session(self):
        return self.uow.session

    @property
    def employee_directory(self) -> EmployeeDirectory:
        return self._employee_directory or SqlEmployeeDirectory(self.session)

    @property
    def config_store(self) -> StatutoryConfigStore:
        return self._config_store or SqlStatutoryConfigStore(self.session)

    @property
    def runs(self) -> RunRepository:
        return RunRepository(self.session)

    async def create_run(
        self,
        company_id: UUID,
        actor_user_id: UUID,
        period_id: UUID | None = None,
        year: int | None = None,
        month: int | None = None,
        half: PeriodHalf | None = None,
        notes: str | None = None,
    ) -> PayrollRun:
        """Create a DRAFT run with one blank summary per active employee."""
        currency = get_settings().default_currency

        async with self.uow.atomic():
            period = await PeriodService(self.uow, self.audit).resolve_period(
                company_id, period_id=period_id, year=year, month=month, half=half
            )

            existing = await self.session.execute(
                select(PayrollRun.run_id).where(PayrollRun.period_id == period.period_id)
            )
            existing_id = existing.scalar_one_or_none()
            if existing_id is not None:
                raise ConflictError(
                    "A payroll run already exists for this period",
                    {"period_id": str(period.period_id), "run_id": str(existing_id)},
                )

            run = PayrollRun(
                company_id=company_id,
                period_id=period.period_id,
                status=RunStatus.DRAFT,
                created_by_user_id=actor_user_id,
                notes=notes,
                version=1,
            )
            self.session.add(run)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                # Lost the race to another create for the same period
                raise ConflictError(
                    "A payroll run already exists for this period",
                    {"period_id": str(period.period_id)},
                ) from exc

            employees = await self.employee_directory.list_active_employees(company_id)
            for employee in employees:
                base = ZERO
                if employee.monthly_salary is not None:
                    base = LineItemBuilder.round_to_cents(
                        LineItemBuilder.to_money(employee.monthly_salary) / 2
                    )
                status = SummaryStatus.READY if base > 0 else SummaryStatus.NEEDS_REVIEW
                self.session.add(
                    PayrollEmployeeSummary(
                        run_id=run.run_id,
                        employee_id=employee.employee_id,
                        base_salary_amount=base,
                        commissions_amount=ZERO,
                        other_earnings_amount=ZERO,
                        gross_amount=base,
                        statutory_deductions_amount=ZERO,
                        other_deductions_amount=ZERO,
                        net_amount=base,
                        currency=currency,
                        status=status,
                    )
                )
            await self.session.flush()

        logger.info(
            "Created payroll run %s for period %s with %d employee(s)",
            run.run_id,
            period.period_id,
            len(employees),
        )
        await self.audit.log_audit(
            company_id=company_id,
            actor_user_id=actor_user_id,
            action=AuditAction.RUN_CREATE,
            entity="payroll_runs",
            entity_id=run.run_id,
            meta={"periodId": period.period_id, "employeeCount": len(employees)},
        )
        return run

    async def recalculate(
        self,
        company_id: UUID,
        actor_user_id: UUID,
        run_id: UUID,
        expected_version: int | None = None,
    ) -> RunCalculationResult:
        """Recompute every summary and its line items, then move the run to REVIEW."""
        runs = self.runs
        async with self.uow.atomic():
            run = await runs.get_run(company_id, run_id)
            if not PayrollRunStateMachine.can_calculate(run.status):
                raise PayrollRunStateMachine.transition_error(
                    run.status, RunStatus.REVIEW, "Run does not allow recalculation in this status"
                )

            # Claim the run first so a concurrent approve cannot interleave
            await runs.compare_and_swap(run, RunStatus.REVIEW, expected_version)

            engine = CalculationEngine(self.uow, RateResolver(self.config_store))
            rates = await engine.resolve_rates(run)
            result = await engine.recalculate_run(run, rates)

        logger.info(
            "Recalculated run %s: gross=%s net=%s needs_review=%d",
            run_id,
            result.total_gross,
            result.total_net,
            result.needs_review_count,
        )
        await self.audit.log_audit(
            company_id=company_id,
            actor_user_id=actor_user_id,
            action=AuditAction.RUN_RECALCULATE,
            entity="payroll_runs",
            entity_id=run_id,
            meta={
                "statutoryConfigId": result.statutory_config_id,
                "employeeCount": len(result.results),
                "needsReviewCount": result.needs_review_count,
            },
        )
        return result

    async def list_runs(
        self,
        company_id: UUID,
        year: int | None = None,
        month: int | None = None,
        half: PeriodHalf | None = None,
        status: RunStatus | None = None,
    ) -> list[RunListItem]:
        """Runs of the company, newest period first, with per-run totals."""
        stmt = (
            select(PayrollRun, PayrollPeriod)
            .join(PayrollPeriod, PayrollPeriod.period_id == PayrollRun.period_id)
            .where(PayrollRun.company_id == company_id)
        )
        if year is not None:
            stmt = stmt.where(PayrollPeriod.year == year)
        if month is not None:
            stmt = stmt.where(PayrollPeriod.month == month)
        if half is not None:
            stmt = stmt.where(PayrollPeriod.half == PeriodHalf(half))
        if status is not None:
            stmt = stmt.where(PayrollRun.status == RunStatus(status))
        stmt = stmt.order_by(
            PayrollPeriod.year.desc(),
            PayrollPeriod.month.desc(),
            PayrollPeriod.half.desc(),
        )

        rows = (await self.session.execute(stmt)).all()
        if not rows:
            return []

        run_ids = [run.run_id for run, _ in rows]
        totals_rows = await self.session.execute(
            select(
                PayrollEmployeeSummary.run_id,
                func.count(PayrollEmployeeSummary.summary_id),
                func.coalesce(func.sum(PayrollEmployeeSummary.gross_amount), 0),
                func.coalesce(func.sum(PayrollEmployeeSummary.statutory_deductions_amount), 0),
                func.coalesce(func.sum(PayrollEmployeeSummary.other_deductions_amount), 0),
                func.coalesce(func.sum(PayrollEmployeeSummary.net_amount), 0),
                func.coalesce(
                    func.sum(case((PayrollEmployeeSummary.net_amount < 0, 1), else_=0)), 0
                ),
                func.coalesce(
                    func.sum(
                        case(
                            (PayrollEmployeeSummary.status == SummaryStatus.NEEDS_REVIEW, 1),
                            else_=0,
                        )
                    ),
                    0,
                ),
            )
            .where(PayrollEmployeeSummary.run_id.in_(run_ids))
            .group_by(PayrollEmployeeSummary.run_id)
        )
        to_money = LineItemBuilder.to_money
        totals_by_run: dict[UUID, RunTotals] = {}
        for run_id, count, gross, statutory, other, net, negative, review in totals_rows.all():
            totals_by_run[run_id] = RunTotals(
                gross=to_money(gross),
                statutory=to_money(statutory),
                other_deductions=to_money(other),
                net=to_money(net),
                employee_count=count,
                negative_net_count=int(negative),
                needs_review_count=int(review),
            )

        return [
            RunListItem(run=run, period=period, totals=totals_by_run.get(run.run_id, RunTotals()))
            for run, period in rows
        ]

    async def get_run(self, company_id: UUID, run_id: UUID) -> RunDetail:
        """Run with its summaries, line items and totals."""
        run = await self.runs.get_run(company_id, run_id, load_summaries=True, refresh=True)
        summaries = sorted(run.summaries, key=lambda s: str(s.employee_id))
        return RunDetail(
            run=run,
            period=run.period,
            summaries=summaries,
            totals=RunTotals.from_summaries(summaries),
        )
