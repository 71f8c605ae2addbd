"""Tests for the employee-facing payroll feed."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from quincena_payroll.errors import ForbiddenError, NotFoundError
from quincena_payroll.models import PeriodHalf, RunStatus
from quincena_payroll.services.approval_service import ApprovalService
from quincena_payroll.services.employee_feed import PAID_MESSAGE, EmployeeFeed
from quincena_payroll.services.payment_service import PaymentService
from quincena_payroll.services.run_lifecycle import RunLifecycleService

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def paid_run(uow, company, employees, statutory_config, actor_id, draft_run, renderer, storage):
    """First quincena recalculated, approved and paid."""
    run_id = draft_run.run_id
    await RunLifecycleService(uow).recalculate(company.company_id, actor_id, run_id)
    await ApprovalService(uow).approve(company.company_id, actor_id, run_id)
    await PaymentService(uow, renderer, storage).mark_paid(company.company_id, actor_id, run_id)
    return draft_run


@pytest_asyncio.fixture
async def approved_second_run(uow, company, employees, periods, actor_id):
    """Second quincena approved but not yet paid."""
    service = RunLifecycleService(uow)
    run = await service.create_run(
        company.company_id, actor_id, period_id=periods[PeriodHalf.SECOND].period_id
    )
    await ApprovalService(uow).approve(company.company_id, actor_id, run.run_id)
    return run


class TestHistory:
    """Paid history of one employee."""

    async def test_only_paid_runs_are_listed(
        self, uow, company, employees, paid_run, approved_second_run
    ):
        items = await EmployeeFeed(uow).history(company.company_id, employees["ana"].employee_id)

        assert [item.run.run_id for item in items] == [paid_run.run_id]
        item = items[0]
        assert item.run.status == RunStatus.PAID
        assert item.period.half == PeriodHalf.FIRST
        assert item.summary.employee_id == employees["ana"].employee_id
        assert item.summary.net_amount == Decimal("14113.50")

    async def test_employee_without_summary_sees_nothing(
        self, uow, company, employees, paid_run
    ):
        feed = EmployeeFeed(uow)

        assert await feed.history(company.company_id, employees["pedro"].employee_id) == []
        assert await feed.history(company.company_id, uuid4()) == []

    async def test_scoped_to_company(self, uow, other_company, employees, paid_run):
        items = await EmployeeFeed(uow).history(
            other_company.company_id, employees["ana"].employee_id
        )

        assert items == []


class TestDetail:
    """Payslip detail of one paid run."""

    async def test_returns_own_payslip(self, uow, company, employees, paid_run):
        detail = await EmployeeFeed(uow).detail(
            company.company_id, employees["ana"].employee_id, paid_run.run_id
        )

        assert detail.run.run_id == paid_run.run_id
        assert detail.payslip.employee_id == employees["ana"].employee_id
        assert detail.payslip.pdf_url.endswith(f"{employees['ana'].employee_id}.pdf")
        assert detail.payslip.snapshot["employee"]["name"] == "Ana Pérez"
        assert detail.period.date_from == date(2026, 1, 1)

    async def test_unpaid_run_is_not_found(self, uow, company, employees, approved_second_run):
        with pytest.raises(NotFoundError):
            await EmployeeFeed(uow).detail(
                company.company_id, employees["ana"].employee_id, approved_second_run.run_id
            )

    async def test_unknown_run_is_not_found(self, uow, company, employees):
        with pytest.raises(NotFoundError):
            await EmployeeFeed(uow).detail(
                company.company_id, employees["ana"].employee_id, uuid4()
            )

    async def test_someone_elses_run_is_forbidden(self, uow, company, employees, paid_run):
        with pytest.raises(ForbiddenError):
            await EmployeeFeed(uow).detail(
                company.company_id, employees["pedro"].employee_id, paid_run.run_id
            )


class TestNotifications:
    """Payment notifications read from the audit trail."""

    async def test_employee_sees_own_notification(self, uow, company, employees, paid_run):
        ana_id = employees["ana"].employee_id

        notifications = await EmployeeFeed(uow).notifications(company.company_id, ana_id)

        assert len(notifications) == 1
        note = notifications[0]
        assert note.run_id == str(paid_run.run_id)
        assert note.pdf_url.endswith(f"{ana_id}.pdf")
        assert note.message == PAID_MESSAGE
        assert note.created_at is not None

    async def test_no_notifications_for_others(self, uow, company, other_company, employees, paid_run):
        feed = EmployeeFeed(uow)

        assert await feed.notifications(company.company_id, employees["pedro"].employee_id) == []
        assert await feed.notifications(other_company.company_id, employees["ana"].employee_id) == []

    async def test_nothing_before_payment(self, uow, company, employees, approved_second_run):
        notifications = await EmployeeFeed(uow).notifications(
            company.company_id, employees["ana"].employee_id
        )

        assert notifications == []
