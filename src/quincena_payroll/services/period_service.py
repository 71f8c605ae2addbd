"""Quincena period boundaries and idempotent period upserts."""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select

from quincena_payroll.errors import InvalidInputError, NotFoundError
from quincena_payroll.models import PayrollPeriod, PeriodHalf, PeriodStatus
from quincena_payroll.services.audit_trail import AuditAction, AuditTrail

if TYPE_CHECKING:
    from quincena_payroll.database import UnitOfWork

logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100


def validate_year_month(year: int, month: int) -> None:
    """Reject years outside [2000, 2100] and months outside [1, 12]."""
    if isinstance(year, bool) or not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidInputError(
            f"Year must be between {MIN_YEAR} and {MAX_YEAR}", {"year": year}
        )
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise InvalidInputError("Month must be between 1 and 12", {"month": month})


def compute_quincena_range(year: int, month: int, half: PeriodHalf) -> tuple[date, date]:
    """Return (date_from, date_to) for one half of a month.

    FIRST covers days 1-15, SECOND covers day 16 through the last day.
    """
    validate_year_month(year, month)
    if PeriodHalf(half) == PeriodHalf.FIRST:
        return date(year, month, 1), date(year, month, 15)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 16), date(year, month, last_day)


class PeriodService:
    """Creates and resolves payroll periods."""

    def __init__(self, uow: UnitOfWork, audit: AuditTrail | None = None):
        self.uow = uow
        self.audit = audit or AuditTrail(uow.session_factory)

    @property
    def session(self):
        return self.uow.session

    async def ensure_current_periods(
        self,
        company_id: UUID,
        actor_user_id: UUID | None,
        year: int | None = None,
        month: int | None = None,
        today: date | None = None,
    ) -> list[PayrollPeriod]:
        """Create or update both quincenas of a month (default: current UTC month).

        Idempotent: the same (company, year, month) always yields the same
        two period ids and boundaries.
        """
        today = today or datetime.now(timezone.utc).date()
        year = today.year if year is None else year
        month = today.month if month is None else month
        validate_year_month(year, month)

        periods: list[PayrollPeriod] = []
        async with self.uow.atomic():
            for half in (PeriodHalf.FIRST, PeriodHalf.SECOND):
                periods.append(await self._upsert_period(company_id, year, month, half))

        await self.audit.log_audit(
            company_id=company_id,
            actor_user_id=actor_user_id,
            action=AuditAction.PERIODS_ENSURE,
            entity="payroll_periods",
            entity_id=f"{year}-{month}",
            meta={"year": year, "month": month},
        )
        return periods

    async def _upsert_period(
        self, company_id: UUID, year: int, month: int, half: PeriodHalf
    ) -> PayrollPeriod:
        date_from, date_to = compute_quincena_range(year, month, half)

        result = await self.session.execute(
            select(PayrollPeriod).where(
                PayrollPeriod.company_id == company_id,
                PayrollPeriod.year == year,
                PayrollPeriod.month == month,
                PayrollPeriod.half == half,
            )
        )
        period = result.scalar_one_or_none()

        if period is None:
            period = PayrollPeriod(
                company_id=company_id,
                year=year,
                month=month,
                half=half,
                date_from=date_from,
                date_to=date_to,
                status=PeriodStatus.OPEN,
            )
            self.session.add(period)
            await self.session.flush()
            logger.info("Created payroll period %s-%02d %s", year, month, half.value)
        elif period.date_from != date_from or period.date_to != date_to:
            period.date_from = date_from
            period.date_to = date_to

        return period

    async def get_period(self, company_id: UUID, period_id: UUID) -> PayrollPeriod:
        result = await self.session.execute(
            select(PayrollPeriod).where(
                PayrollPeriod.period_id == period_id,
                PayrollPeriod.company_id == company_id,
            )
        )
        period = result.scalar_one_or_none()
        if period is None:
            raise NotFoundError("Payroll period", period_id)
        return period

    async def resolve_period(
        self,
        company_id: UUID,
        period_id: UUID | None = None,
        year: int | None = None,
        month: int | None = None,
        half: PeriodHalf | None = None,
    ) -> PayrollPeriod:
        """Find a period by id or by (year, month, half)."""
        if period_id is not None:
            return await self.get_period(company_id, period_id)

        if year is None or month is None or half is None:
            raise InvalidInputError("Either period_id or year/month/half is required")
        validate_year_month(year, month)

        result = await self.session.execute(
            select(PayrollPeriod).where(
                PayrollPeriod.company_id == company_id,
                PayrollPeriod.year == year,
                PayrollPeriod.month == month,
                PayrollPeriod.half == PeriodHalf(half),
            )
        )
        period = result.scalar_one_or_none()
        if period is None:
            raise NotFoundError("Payroll period", f"{year}-{month:02d}-{PeriodHalf(half).value}")
        return period
