"""Payroll calculation engine - per-employee figures and line items."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import delete, select

from quincena_payroll.calculators.line_builder import (
    COMMISSION_CODE,
    OTHER_EARNINGS_CODE,
    LineItemBuilder,
)
from quincena_payroll.calculators.rate_resolver import RateResolver
from quincena_payroll.calculators.types import (
    CalculationResult,
    LineCandidate,
    MovementInput,
    ResolvedRates,
    RunCalculationResult,
)
from quincena_payroll.models import (
    MovementStatus,
    PayrollEmployeeSummary,
    PayrollLineItem,
    PayrollMovement,
    PayrollRun,
    SummaryStatus,
)
from quincena_payroll.services.state_machine import PayrollRunStateMachine, RunStatus

if TYPE_CHECKING:
    from quincena_payroll.database import UnitOfWork

logger = logging.getLogger(__name__)


class PayrollCalculator:
    """Pure calculation for one employee summary.

    Pipeline (stable order):
    1) Partition movements into commissions, other earnings and deductions
    2) gross = base + commissions + other earnings
    3) Each statutory rate applied to gross independently, then summed
    4) net = gross - statutory total - other deductions
    5) Flag for review when net is negative or there is no base salary
    6) Build line items: base, aggregates, statutory lines, one per movement
    """

    @staticmethod
    def calculate(
        base_salary: Decimal,
        movements: list[MovementInput],
        rates: ResolvedRates,
    ) -> CalculationResult:
        rnd = LineItemBuilder.round_to_cents

        commission_movements = [m for m in movements if m.is_commission]
        other_earning_movements = [
            m for m in movements if m.is_earning and not m.is_commission
        ]
        deduction_movements = [m for m in movements if m.is_deduction]

        commissions = LineItemBuilder.sum_money(m.amount for m in commission_movements)
        other_earnings = LineItemBuilder.sum_money(m.amount for m in other_earning_movements)
        other_deductions = LineItemBuilder.sum_money(m.amount for m in deduction_movements)

        base = LineItemBuilder.to_money(base_salary)
        gross = rnd(base + commissions + other_earnings)

        statutory_lines: list[LineCandidate] = []
        statutory_amounts: list[Decimal] = []
        for rate in rates.rates:
            amount = rnd(gross * rate.rate)
            statutory_amounts.append(amount)
            if rate.rate > 0 and amount > 0:
                statutory_lines.append(LineItemBuilder.create_statutory_line(rate, amount))
        statutory_total = LineItemBuilder.sum_money(statutory_amounts)

        net = rnd(gross - statutory_total - other_deductions)

        review_reasons: list[str] = []
        if base <= 0:
            review_reasons.append("No base salary on file")
        if net < 0:
            review_reasons.append(f"Negative net pay: {net}")

        lines: list[LineCandidate] = []
        if base > 0:
            lines.append(LineItemBuilder.create_base_salary_line(base))
        if commissions > 0:
            lines.append(
                LineItemBuilder.create_aggregate_earning_line(
                    COMMISSION_CODE, "Comisiones", commissions, commission_movements
                )
            )
        if other_earnings > 0:
            lines.append(
                LineItemBuilder.create_aggregate_earning_line(
                    OTHER_EARNINGS_CODE, "Otros ingresos", other_earnings, other_earning_movements
                )
            )
        lines.extend(statutory_lines)
        for movement in movements:
            lines.append(LineItemBuilder.create_movement_line(movement))

        return CalculationResult(
            base=base,
            commissions=commissions,
            other_earnings=other_earnings,
            gross=gross,
            statutory_total=statutory_total,
            other_deductions=other_deductions,
            net=net,
            needs_review=bool(review_reasons),
            lines=lines,
            review_reasons=review_reasons,
        )


class CalculationEngine:
    """Recalculates every summary of a run and regenerates its line items.

    Runs inside the caller's unit of work and never commits on its own;
    ``RunLifecycleService.recalculate`` owns the transaction.
    """

    def __init__(self, uow: UnitOfWork, rate_resolver: RateResolver):
        self.uow = uow
        self.rate_resolver = rate_resolver

    @property
    def session(self):
        return self.uow.session

    async def resolve_rates(self, run: PayrollRun) -> ResolvedRates:
        return await self.rate_resolver.resolve(run.company_id, run.period.year)

    async def recalculate_run(
        self, run: PayrollRun, rates: ResolvedRates
    ) -> RunCalculationResult:
        """Recalculate all summaries of a run (status must allow it)."""
        if not PayrollRunStateMachine.can_calculate(run.status):
            raise PayrollRunStateMachine.transition_error(
                run.status, RunStatus.REVIEW, "Run does not allow recalculation in this status"
            )

        summaries = await self._load_summaries(run.run_id)
        movements_by_employee = await self._load_movements(run)

        results: dict[UUID, CalculationResult] = {}
        total_gross = Decimal("0")
        total_net = Decimal("0")
        needs_review_count = 0

        for summary in summaries:
            movements = movements_by_employee.get(summary.employee_id, [])
            result = PayrollCalculator.calculate(summary.base_salary_amount, movements, rates)
            results[summary.employee_id] = result

            summary.commissions_amount = result.commissions
            summary.other_earnings_amount = result.other_earnings
            summary.gross_amount = result.gross
            summary.statutory_deductions_amount = result.statutory_total
            summary.other_deductions_amount = result.other_deductions
            summary.net_amount = result.net
            summary.status = (
                SummaryStatus.NEEDS_REVIEW if result.needs_review else SummaryStatus.READY
            )

            await self._replace_line_items(summary, result.lines)

            total_gross += result.gross
            total_net += result.net
            if result.needs_review:
                needs_review_count += 1
                logger.info(
                    "Summary %s needs review: %s",
                    summary.summary_id,
                    "; ".join(result.review_reasons),
                )

        await self.session.flush()

        return RunCalculationResult(
            run_id=run.run_id,
            statutory_config_id=rates.config_id,
            results=results,
            total_gross=LineItemBuilder.round_to_cents(total_gross),
            total_net=LineItemBuilder.round_to_cents(total_net),
            needs_review_count=needs_review_count,
        )

    async def _replace_line_items(
        self, summary: PayrollEmployeeSummary, lines: list[LineCandidate]
    ) -> None:
        """Delete and recreate the summary's line items."""
        await self.session.execute(
            delete(PayrollLineItem).where(PayrollLineItem.summary_id == summary.summary_id)
        )
        for position, line in enumerate(lines):
            self.session.add(
                PayrollLineItem(
                    summary_id=summary.summary_id,
                    position=position,
                    type=line.line_type,
                    concept_code=line.concept_code,
                    concept_name=line.concept_name,
                    amount=line.amount,
                    meta=line.meta,
                )
            )

    # === Data Loading Methods ===

    async def _load_summaries(self, run_id: UUID) -> list[PayrollEmployeeSummary]:
        result = await self.session.execute(
            select(PayrollEmployeeSummary)
            .where(PayrollEmployeeSummary.run_id == run_id)
            .order_by(PayrollEmployeeSummary.employee_id)
        )
        return list(result.scalars().all())

    async def _load_movements(self, run: PayrollRun) -> dict[UUID, list[MovementInput]]:
        """PENDING movements claimed by the run's period, grouped by employee."""
        result = await self.session.execute(
            select(PayrollMovement)
            .where(
                PayrollMovement.company_id == run.company_id,
                PayrollMovement.period_id == run.period_id,
                PayrollMovement.status == MovementStatus.PENDING,
            )
            .order_by(PayrollMovement.created_at, PayrollMovement.movement_id)
        )
        grouped: dict[UUID, list[MovementInput]] = {}
        for m in result.scalars().all():
            grouped.setdefault(m.employee_id, []).append(
                MovementInput(
                    movement_id=m.movement_id,
                    movement_type=m.movement_type,
                    source=m.source,
                    concept_code=m.concept_code,
                    concept_name=m.concept_name,
                    amount=LineItemBuilder.to_money(m.amount),
                )
            )
        return grouped
