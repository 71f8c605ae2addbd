"""Payroll movement API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from quincena_payroll.api.dependencies import CompanyId, Uow, UserId
from quincena_payroll.api.schemas import (
    ErrorResponse,
    MovementCreate,
    MovementListResponse,
    MovementResponse,
    MovementUpdate,
)
from quincena_payroll.models import MovementStatus
from quincena_payroll.services.movement_ledger import MovementLedger

router = APIRouter(prefix="/payroll/movements", tags=["movements"])


@router.post(
    "",
    response_model=MovementResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_movement(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    payload: MovementCreate,
) -> MovementResponse:
    """Record a pending earning or deduction."""
    movement = await MovementLedger(uow).create_movement(
        company_id, user_id, **payload.model_dump()
    )
    return MovementResponse.model_validate(movement)


@router.get("", response_model=MovementListResponse)
async def list_movements(
    uow: Uow,
    company_id: CompanyId,
    employee_id: Annotated[UUID | None, Query(alias="employeeId")] = None,
    status_filter: Annotated[MovementStatus | None, Query(alias="status")] = None,
    date_from: Annotated[date | None, Query(alias="from")] = None,
    date_to: Annotated[date | None, Query(alias="to")] = None,
) -> MovementListResponse:
    """List movements, newest effective date first."""
    movements = await MovementLedger(uow).list_movements(
        company_id,
        employee_id=employee_id,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
    )
    return MovementListResponse(items=[MovementResponse.model_validate(m) for m in movements])


@router.put(
    "/{movement_id}",
    response_model=MovementResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_movement(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    movement_id: Annotated[UUID, Path()],
    payload: MovementUpdate,
) -> MovementResponse:
    """Edit a movement that no period has claimed yet."""
    movement = await MovementLedger(uow).update_movement(
        company_id, user_id, movement_id, payload.model_dump(exclude_unset=True)
    )
    return MovementResponse.model_validate(movement)


@router.delete(
    "/{movement_id}",
    response_model=MovementResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def void_movement(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    movement_id: Annotated[UUID, Path()],
) -> MovementResponse:
    """Void a movement that no period has claimed yet."""
    movement = await MovementLedger(uow).void_movement(company_id, user_id, movement_id)
    return MovementResponse.model_validate(movement)
