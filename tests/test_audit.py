"""Tests for the best-effort audit trail."""

import logging
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from quincena_payroll.models import PeriodHalf
from quincena_payroll.services.audit_trail import AuditAction, AuditEntry, AuditTrail
from quincena_payroll.services.period_service import PeriodService

pytestmark = pytest.mark.asyncio


def broken_session_factory():
    raise RuntimeError("database unavailable")


class TestAuditTrail:
    """Appending audit records."""

    async def test_log_audit_writes_json_safe_meta(self, session_factory, company, audit_rows):
        trail = AuditTrail(session_factory)
        actor = uuid4()
        entity_id = uuid4()

        ok = await trail.log_audit(
            company_id=company.company_id,
            actor_user_id=actor,
            action=AuditAction.RUN_CREATE,
            entity="payroll_runs",
            entity_id=entity_id,
            meta={"periodId": entity_id, "amount": Decimal("10.50"), "day": date(2026, 1, 2)},
        )

        assert ok is True
        rows = await audit_rows(AuditAction.RUN_CREATE)
        assert len(rows) == 1
        assert rows[0].company_id == company.company_id
        assert rows[0].actor_user_id == actor
        assert rows[0].entity_id == str(entity_id)
        assert rows[0].meta == {
            "periodId": str(entity_id),
            "amount": "10.50",
            "day": "2026-01-02",
        }
        assert rows[0].created_at is not None

    async def test_log_entries_writes_all(self, session_factory, company, audit_rows):
        entries = [
            AuditEntry(
                company_id=company.company_id,
                actor_user_id=None,
                action=AuditAction.EMPLOYEE_PAID_NOTIFY,
                entity="payroll_payslips",
                entity_id=str(uuid4()),
                meta={"n": n},
            )
            for n in range(3)
        ]

        assert await AuditTrail(session_factory).log_entries(entries) is True
        assert await AuditTrail(session_factory).log_entries([]) is True

        rows = await audit_rows(AuditAction.EMPLOYEE_PAID_NOTIFY)
        assert sorted(r.meta["n"] for r in rows) == [0, 1, 2]

    async def test_failure_is_logged_not_raised(self, caplog):
        trail = AuditTrail(broken_session_factory)

        with caplog.at_level(logging.WARNING, logger="quincena_payroll.services.audit_trail"):
            ok = await trail.log_audit(
                company_id=uuid4(),
                actor_user_id=None,
                action=AuditAction.MOVEMENT_VOID,
                entity="payroll_movements",
                entity_id=uuid4(),
            )

        assert ok is False
        assert "PAYROLL_MOVEMENT_VOID" in caplog.text

    async def test_operation_succeeds_when_audit_fails(self, uow, company, actor_id):
        service = PeriodService(uow, audit=AuditTrail(broken_session_factory))

        periods = await service.ensure_current_periods(company.company_id, actor_id, 2026, 2)

        assert [p.half for p in periods] == [PeriodHalf.FIRST, PeriodHalf.SECOND]
