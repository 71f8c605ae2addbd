"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from quincena_payroll.models import (
    LineItemType,
    MovementSource,
    MovementStatus,
    MovementType,
    PeriodHalf,
    PeriodStatus,
    RunStatus,
    SummaryStatus,
)


# ============================================================================
# Period schemas
# ============================================================================


class EnsurePeriodsRequest(BaseModel):
    """Target month; both default to the current UTC month."""

    year: int | None = Field(default=None, ge=2000, le=2100)
    month: int | None = Field(default=None, ge=1, le=12)


class PeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    company_id: UUID
    year: int
    month: int
    half: PeriodHalf
    date_from: date
    date_to: date
    status: PeriodStatus


class PeriodListResponse(BaseModel):
    items: list[PeriodResponse]


# ============================================================================
# Run schemas
# ============================================================================


class RunCreate(BaseModel):
    """Create a run for a period given by id or by year/month/half."""

    period_id: UUID | None = None
    year: int | None = Field(default=None, ge=2000, le=2100)
    month: int | None = Field(default=None, ge=1, le=12)
    half: PeriodHalf | None = None
    notes: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _period_reference(self) -> "RunCreate":
        if self.period_id is None and (
            self.year is None or self.month is None or self.half is None
        ):
            raise ValueError("Either period_id or year/month/half is required")
        return self


class RunAction(BaseModel):
    """Optional concurrency token for state-changing run actions."""

    expected_version: int | None = Field(default=None, ge=1)


class RunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    run_id: UUID
    company_id: UUID
    period_id: UUID
    status: RunStatus
    created_by_user_id: UUID
    approved_by_user_id: UUID | None = None
    approved_at: datetime | None = None
    paid_by_user_id: UUID | None = None
    paid_at: datetime | None = None
    notes: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime


class RunTotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gross: Decimal
    statutory: Decimal
    other_deductions: Decimal
    deductions: Decimal
    net: Decimal
    employee_count: int
    negative_net_count: int = 0
    needs_review_count: int = 0


class RunListItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    run: RunResponse
    period: PeriodResponse
    totals: RunTotalsResponse


class RunListResponse(BaseModel):
    items: list[RunListItemResponse]
    total: int


class LineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: LineItemType
    concept_code: str
    concept_name: str
    amount: Decimal
    meta: dict[str, Any] | None = None


class SummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    summary_id: UUID
    employee_id: UUID
    base_salary_amount: Decimal
    commissions_amount: Decimal
    other_earnings_amount: Decimal
    gross_amount: Decimal
    statutory_deductions_amount: Decimal
    other_deductions_amount: Decimal
    net_amount: Decimal
    currency: str
    status: SummaryStatus
    line_items: list[LineItemResponse] = Field(default_factory=list)


class RunDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    run: RunResponse
    period: PeriodResponse
    summaries: list[SummaryResponse]
    totals: RunTotalsResponse


class ImportMovementsResponse(BaseModel):
    run_id: UUID
    claimed: int


class RecalculateResponse(BaseModel):
    run: RunResponse
    statutory_config_id: UUID | None = None
    total_gross: Decimal
    total_net: Decimal
    needs_review_count: int


# ============================================================================
# Movement schemas
# ============================================================================


class MovementCreate(BaseModel):
    employee_id: UUID
    movement_type: MovementType
    source: MovementSource
    concept_code: str = Field(min_length=1, max_length=64)
    concept_name: str = Field(min_length=1, max_length=200)
    amount: Decimal = Field(gt=0)
    effective_date: date
    note: str | None = Field(default=None, max_length=2000)


class MovementUpdate(BaseModel):
    """Partial update; only fields present in the request are changed."""

    movement_type: MovementType | None = None
    source: MovementSource | None = None
    concept_code: str | None = Field(default=None, min_length=1, max_length=64)
    concept_name: str | None = Field(default=None, min_length=1, max_length=200)
    amount: Decimal | None = Field(default=None, gt=0)
    effective_date: date | None = None
    note: str | None = Field(default=None, max_length=2000)


class MovementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    movement_id: UUID
    company_id: UUID
    employee_id: UUID
    movement_type: MovementType
    source: MovementSource
    concept_code: str
    concept_name: str
    amount: Decimal
    effective_date: date
    period_id: UUID | None = None
    status: MovementStatus
    created_by_user_id: UUID
    approved_by_user_id: UUID | None = None
    note: str | None = None
    created_at: datetime
    updated_at: datetime


class MovementListResponse(BaseModel):
    items: list[MovementResponse]


# ============================================================================
# Employee (my payroll) schemas
# ============================================================================


class MyPayrollItem(BaseModel):
    run_id: UUID
    status: RunStatus
    paid_at: datetime | None = None
    period: PeriodResponse
    gross_amount: Decimal
    net_amount: Decimal
    currency: str


class MyPayrollListResponse(BaseModel):
    items: list[MyPayrollItem]


class PayslipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payslip_id: UUID
    run_id: UUID
    employee_id: UUID
    snapshot: dict[str, Any]
    pdf_url: str | None = None


class MyPayrollDetailResponse(BaseModel):
    run_id: UUID
    status: RunStatus
    paid_at: datetime | None = None
    period: PeriodResponse
    payslip: PayslipResponse


class NotificationResponse(BaseModel):
    id: UUID
    created_at: datetime
    run_id: str | None = None
    pdf_url: str | None = None
    message: str


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
