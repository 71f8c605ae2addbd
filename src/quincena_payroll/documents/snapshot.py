"""Immutable payslip snapshot captured at approval time.

The snapshot is the only input of document rendering, so later edits to the
company, the employee or the run never change an issued payslip.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from quincena_payroll.integrations.base import CompanyInfo, EmployeeRecord
from quincena_payroll.models import (
    LineItemType,
    PayrollEmployeeSummary,
    PayrollPeriod,
    PeriodHalf,
)


class SnapshotCompany(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    tax_id: str | None = None
    address: str | None = None
    phone: str | None = None
    logo_url: str | None = None


class SnapshotEmployee(BaseModel):
    model_config = ConfigDict(frozen=True)

    employee_id: UUID
    name: str
    email: str | None = None
    role: str | None = None


class SnapshotPeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    period_id: UUID
    year: int
    month: int
    half: PeriodHalf
    date_from: date
    date_to: date


class SnapshotSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_salary_amount: Decimal
    commissions_amount: Decimal
    other_earnings_amount: Decimal
    gross_amount: Decimal
    statutory_deductions_amount: Decimal
    other_deductions_amount: Decimal
    net_amount: Decimal
    currency: str


class SnapshotLineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: LineItemType
    concept_code: str
    concept_name: str
    amount: Decimal
    meta: dict[str, Any] | None = None


class PayslipSnapshot(BaseModel):
    """Deep, time-stamped copy of one approved summary."""

    model_config = ConfigDict(frozen=True)

    run_id: UUID
    company: SnapshotCompany
    employee: SnapshotEmployee
    period: SnapshotPeriod
    summary: SnapshotSummary
    line_items: list[SnapshotLineItem] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def capture(
        cls,
        company: CompanyInfo,
        employee: EmployeeRecord | None,
        period: PayrollPeriod,
        summary: PayrollEmployeeSummary,
        captured_at: datetime | None = None,
    ) -> PayslipSnapshot:
        """Build a snapshot from live records (line items must be loaded)."""
        if employee is None:
            snapshot_employee = SnapshotEmployee(
                employee_id=summary.employee_id, name=str(summary.employee_id)
            )
        else:
            snapshot_employee = SnapshotEmployee(
                employee_id=employee.employee_id,
                name=employee.name,
                email=employee.email,
                role=employee.role,
            )

        return cls(
            run_id=summary.run_id,
            company=SnapshotCompany(
                name=company.name,
                tax_id=company.tax_id,
                address=company.address,
                phone=company.phone,
                logo_url=company.logo_url,
            ),
            employee=snapshot_employee,
            period=SnapshotPeriod(
                period_id=period.period_id,
                year=period.year,
                month=period.month,
                half=period.half,
                date_from=period.date_from,
                date_to=period.date_to,
            ),
            summary=SnapshotSummary(
                base_salary_amount=summary.base_salary_amount,
                commissions_amount=summary.commissions_amount,
                other_earnings_amount=summary.other_earnings_amount,
                gross_amount=summary.gross_amount,
                statutory_deductions_amount=summary.statutory_deductions_amount,
                other_deductions_amount=summary.other_deductions_amount,
                net_amount=summary.net_amount,
                currency=summary.currency,
            ),
            line_items=[
                SnapshotLineItem(
                    type=li.type,
                    concept_code=li.concept_code,
                    concept_name=li.concept_name,
                    amount=li.amount,
                    meta=dict(li.meta) if li.meta else None,
                )
                for li in summary.line_items
            ],
            created_at=captured_at or datetime.now(timezone.utc),
        )

    def to_json(self) -> dict[str, Any]:
        """JSON-safe dict for the payslip ``snapshot`` column."""
        return self.model_dump(mode="json")
