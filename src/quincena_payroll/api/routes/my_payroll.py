"""Employee-facing payroll endpoints (the caller is the employee)."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from quincena_payroll.api.dependencies import CompanyId, Uow, UserId
from quincena_payroll.api.schemas import (
    ErrorResponse,
    MyPayrollDetailResponse,
    MyPayrollItem,
    MyPayrollListResponse,
    NotificationListResponse,
    NotificationResponse,
    PayslipResponse,
    PeriodResponse,
)
from quincena_payroll.services.employee_feed import EmployeeFeed

router = APIRouter(prefix="/my/payroll", tags=["my-payroll"])


@router.get("", response_model=MyPayrollListResponse)
async def my_payroll_history(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
) -> MyPayrollListResponse:
    """Paid payroll history of the calling employee."""
    items = await EmployeeFeed(uow).history(company_id, user_id)
    return MyPayrollListResponse(
        items=[
            MyPayrollItem(
                run_id=item.run.run_id,
                status=item.run.status,
                paid_at=item.run.paid_at,
                period=PeriodResponse.model_validate(item.period),
                gross_amount=item.summary.gross_amount,
                net_amount=item.summary.net_amount,
                currency=item.summary.currency,
            )
            for item in items
        ]
    )


@router.get("/notifications", response_model=NotificationListResponse)
async def my_payroll_notifications(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
) -> NotificationListResponse:
    """Latest payment notifications of the calling employee."""
    notifications = await EmployeeFeed(uow).notifications(company_id, user_id)
    return NotificationListResponse(
        items=[
            NotificationResponse(
                id=n.audit_log_id,
                created_at=n.created_at,
                run_id=n.run_id,
                pdf_url=n.pdf_url,
                message=n.message,
            )
            for n in notifications
        ]
    )


@router.get(
    "/{run_id}",
    response_model=MyPayrollDetailResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def my_payroll_detail(
    uow: Uow,
    company_id: CompanyId,
    user_id: UserId,
    run_id: Annotated[UUID, Path()],
) -> MyPayrollDetailResponse:
    """Payslip snapshot of the calling employee for one paid run."""
    detail = await EmployeeFeed(uow).detail(company_id, user_id, run_id)
    return MyPayrollDetailResponse(
        run_id=detail.run.run_id,
        status=detail.run.status,
        paid_at=detail.run.paid_at,
        period=PeriodResponse.model_validate(detail.period),
        payslip=PayslipResponse.model_validate(detail.payslip),
    )
