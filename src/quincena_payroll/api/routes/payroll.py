"""Payroll period and run API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from quincena_payroll.api.dependencies import CompanyId, Renderer, Storage, Uow, UserId
from quincena_payroll.api.schemas import (
    EnsurePeriodsRequest,
    ErrorResponse,
    ImportMovementsResponse,
    PeriodListResponse,
    PeriodResponse,
    RecalculateResponse,
    RunAction,
    RunCreate,
    RunDetailResponse,
    RunListItemResponse,
    RunListResponse,
    RunResponse,
    RunTotalsResponse,
    SummaryResponse,
)
from quincena_payroll.models import PeriodHalf, RunStatus
from quincena_payroll.services.approval_service import ApprovalService
from quincena_payroll.services.movement_ledger import MovementLedger
from quincena_payroll.services.payment_service import PaymentService
from quincena_payroll.services.period_service import PeriodService
from quincena_payroll.services.run_lifecycle import RunLifecycleService

router = APIRouter(prefix="/payroll", tags=["payroll"])

_STATE_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def _expected_version(payload: RunAction | None) -> int | None:
    return payload.expected_version if payload else None


# ============================================================================
# Periods
# ============================================================================


@router.post(
    "/periods/ensure-current",
    response_model=PeriodListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def ensure_current_periods(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    payload: EnsurePeriodsRequest | None = None,
) -> PeriodListResponse:
    """Create or update both quincenas of the target month."""
    payload = payload or EnsurePeriodsRequest()
    periods = await PeriodService(uow).ensure_current_periods(
        company_id, user_id, year=payload.year, month=payload.month
    )
    return PeriodListResponse(items=[PeriodResponse.model_validate(p) for p in periods])


# ============================================================================
# Runs
# ============================================================================


@router.post(
    "/runs",
    response_model=RunResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_STATE_ERRORS,
)
async def create_run(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    payload: RunCreate,
) -> RunResponse:
    """Create a DRAFT run with one summary per active employee."""
    run = await RunLifecycleService(uow).create_run(
        company_id,
        user_id,
        period_id=payload.period_id,
        year=payload.year,
        month=payload.month,
        half=payload.half,
        notes=payload.notes,
    )
    return RunResponse.model_validate(run)


@router.get("/runs", response_model=RunListResponse)
async def list_runs(
    uow: Uow,
    company_id: CompanyId,
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
    half: PeriodHalf | None = None,
    status_filter: Annotated[RunStatus | None, Query(alias="status")] = None,
) -> RunListResponse:
    """List runs with per-run totals."""
    items = await RunLifecycleService(uow).list_runs(
        company_id, year=year, month=month, half=half, status=status_filter
    )
    return RunListResponse(
        items=[RunListItemResponse.model_validate(item) for item in items],
        total=len(items),
    )


@router.get(
    "/runs/{run_id}",
    response_model=RunDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(
    uow: Uow,
    company_id: CompanyId,
    run_id: Annotated[UUID, Path()],
) -> RunDetailResponse:
    """Get a run with its summaries, line items and totals."""
    detail = await RunLifecycleService(uow).get_run(company_id, run_id)
    return RunDetailResponse(
        run=RunResponse.model_validate(detail.run),
        period=PeriodResponse.model_validate(detail.period),
        summaries=[SummaryResponse.model_validate(s) for s in detail.summaries],
        totals=RunTotalsResponse.model_validate(detail.totals),
    )


@router.post(
    "/runs/{run_id}/import-movements",
    response_model=ImportMovementsResponse,
    responses=_STATE_ERRORS,
)
async def import_movements(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    run_id: Annotated[UUID, Path()],
    payload: RunAction | None = None,
) -> ImportMovementsResponse:
    """Claim unassigned pending movements dated inside the run's period."""
    claimed = await MovementLedger(uow).import_movements(
        company_id, user_id, run_id, _expected_version(payload)
    )
    return ImportMovementsResponse(run_id=run_id, claimed=claimed)


@router.post(
    "/runs/{run_id}/recalculate",
    response_model=RecalculateResponse,
    responses=_STATE_ERRORS,
)
async def recalculate_run(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    run_id: Annotated[UUID, Path()],
    payload: RunAction | None = None,
) -> RecalculateResponse:
    """Recompute every summary and move the run to REVIEW."""
    service = RunLifecycleService(uow)
    result = await service.recalculate(company_id, user_id, run_id, _expected_version(payload))
    run = await service.runs.get_run(company_id, run_id, load_period=False)
    return RecalculateResponse(
        run=RunResponse.model_validate(run),
        statutory_config_id=result.statutory_config_id,
        total_gross=result.total_gross,
        total_net=result.total_net,
        needs_review_count=result.needs_review_count,
    )


@router.post(
    "/runs/{run_id}/approve",
    response_model=RunResponse,
    responses=_STATE_ERRORS,
)
async def approve_run(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    run_id: Annotated[UUID, Path()],
    payload: RunAction | None = None,
) -> RunResponse:
    """Lock summaries, apply movements and snapshot payslips."""
    run = await ApprovalService(uow).approve(
        company_id, user_id, run_id, _expected_version(payload)
    )
    return RunResponse.model_validate(run)


@router.post(
    "/runs/{run_id}/mark-paid",
    response_model=RunResponse,
    responses={**_STATE_ERRORS, 502: {"model": ErrorResponse}},
)
async def mark_run_paid(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    renderer: Renderer,
    storage: Storage,
    run_id: Annotated[UUID, Path()],
    payload: RunAction | None = None,
) -> RunResponse:
    """Render every payslip document and mark the run PAID."""
    run = await PaymentService(uow, renderer, storage).mark_paid(
        company_id, user_id, run_id, _expected_version(payload)
    )
    return RunResponse.model_validate(run)
