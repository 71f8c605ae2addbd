"""Movement ledger - earnings and deductions waiting to be claimed by a period."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import select, update

from quincena_payroll.calculators.line_builder import LineItemBuilder
from quincena_payroll.errors import InvalidInputError, InvalidStateError, NotFoundError
from quincena_payroll.models import (
    Employee,
    MovementSource,
    MovementStatus,
    MovementType,
    PayrollMovement,
    PayrollRun,
)
from quincena_payroll.services.audit_trail import AuditAction, AuditTrail
from quincena_payroll.services.run_repository import RunRepository
from quincena_payroll.services.state_machine import PayrollRunStateMachine, RunStatus

if TYPE_CHECKING:
    from quincena_payroll.database import UnitOfWork

logger = logging.getLogger(__name__)

LIST_LIMIT = 500
CONCEPT_CODE_MAX = 64
CONCEPT_NAME_MAX = 200
NOTE_MAX = 2000

# Fields a pending movement may change
UPDATABLE_FIELDS = frozenset(
    {
        "movement_type",
        "source",
        "concept_code",
        "concept_name",
        "amount",
        "effective_date",
        "note",
    }
)


def _validate_amount(amount: Any) -> Decimal:
    if isinstance(amount, bool) or amount is None:
        raise InvalidInputError("Amount is required", {"amount": amount})
    value = LineItemBuilder.to_money(amount)
    if value <= 0:
        raise InvalidInputError("Amount must be greater than zero", {"amount": str(amount)})
    return value


def _validate_text(name: str, value: Any, max_length: int, required: bool = True) -> str | None:
    if value is None:
        if required:
            raise InvalidInputError(f"{name} is required")
        return None
    text = str(value).strip()
    if required and not text:
        raise InvalidInputError(f"{name} is required")
    if len(text) > max_length:
        raise InvalidInputError(f"{name} must be at most {max_length} characters")
    return text


def _validate_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise InvalidInputError("Invalid effective date", {"effective_date": str(value)})


def _validate_enum(enum_cls: type, name: str, value: Any):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInputError(f"Invalid {name}", {name: str(value)})


class MovementLedger:
    """Create, edit, void and claim payroll movements.

    A movement is editable only while PENDING and unclaimed. Claiming
    (``import_movements``) sets its period once; approval marks the
    claimed movements APPLIED.
    """

    def __init__(self, uow: UnitOfWork, audit: AuditTrail | None = None):
        self.uow = uow
        self.audit = audit or AuditTrail(uow.session_factory)

    @property
    def session(self):
        return self.uow.session

    async def create_movement(
        self,
        company_id: UUID,
        actor_user_id: UUID,
        employee_id: UUID,
        movement_type: MovementType | str,
        source: MovementSource | str,
        concept_code: str,
        concept_name: str,
        amount: Decimal | str | int,
        effective_date: date | str,
        note: str | None = None,
    ) -> PayrollMovement:
        """Insert a PENDING, unclaimed movement."""
        values = {
            "movement_type": _validate_enum(MovementType, "movement_type", movement_type),
            "source": _validate_enum(MovementSource, "source", source),
            "concept_code": _validate_text("concept_code", concept_code, CONCEPT_CODE_MAX),
            "concept_name": _validate_text("concept_name", concept_name, CONCEPT_NAME_MAX),
            "amount": _validate_amount(amount),
            "effective_date": _validate_date(effective_date),
            "note": _validate_text("note", note, NOTE_MAX, required=False),
        }

        async with self.uow.atomic():
            employee = await self.session.get(Employee, employee_id)
            if employee is None or employee.company_id != company_id:
                raise InvalidInputError(
                    "Employee does not belong to this company",
                    {"employee_id": str(employee_id)},
                )

            movement = PayrollMovement(
                company_id=company_id,
                employee_id=employee_id,
                status=MovementStatus.PENDING,
                period_id=None,
                created_by_user_id=actor_user_id,
                **values,
            )
            self.session.add(movement)
            await self.session.flush()

        await self.audit.log_audit(
            company_id=company_id,
            actor_user_id=actor_user_id,
            action=AuditAction.MOVEMENT_CREATE,
            entity="payroll_movements",
            entity_id=movement.movement_id,
            meta={
                "employeeId": employee_id,
                "type": movement.movement_type.value,
                "amount": movement.amount,
            },
        )
        return movement

    async def get_movement(self, company_id: UUID, movement_id: UUID) -> PayrollMovement:
        result = await self.session.execute(
            select(PayrollMovement).where(
                PayrollMovement.movement_id == movement_id,
                PayrollMovement.company_id == company_id,
            )
        )
        movement = result.scalar_one_or_none()
        if movement is None:
            raise NotFoundError("Payroll movement", movement_id)
        return movement

    async def list_movements(
        self,
        company_id: UUID,
        employee_id: UUID | None = None,
        status: MovementStatus | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[PayrollMovement]:
        """Newest effective date first, capped at 500 rows."""
        stmt = select(PayrollMovement).where(PayrollMovement.company_id == company_id)
        if employee_id is not None:
            stmt = stmt.where(PayrollMovement.employee_id == employee_id)
        if status is not None:
            stmt = stmt.where(PayrollMovement.status == MovementStatus(status))
        if date_from is not None:
            stmt = stmt.where(PayrollMovement.effective_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(PayrollMovement.effective_date <= date_to)

        result = await self.session.execute(
            stmt.order_by(
                PayrollMovement.effective_date.desc(), PayrollMovement.created_at.desc()
            ).limit(LIST_LIMIT)
        )
        return list(result.scalars().all())

    def _ensure_editable(self, movement: PayrollMovement) -> None:
        if movement.status != MovementStatus.PENDING or movement.is_claimed:
            raise InvalidStateError(
                "Movement is already claimed by a payroll calculation",
                {"movement_id": str(movement.movement_id), "status": movement.status.value},
            )

    async def update_movement(
        self,
        company_id: UUID,
        actor_user_id: UUID,
        movement_id: UUID,
        changes: dict[str, Any],
    ) -> PayrollMovement:
        """Patch a pending, unclaimed movement."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidInputError(
                "Unknown movement fields", {"fields": sorted(unknown)}
            )

        values: dict[str, Any] = {}
        if "movement_type" in changes:
            values["movement_type"] = _validate_enum(
                MovementType, "movement_type", changes["movement_type"]
            )
        if "source" in changes:
            values["source"] = _validate_enum(MovementSource, "source", changes["source"])
        if "concept_code" in changes:
            values["concept_code"] = _validate_text(
                "concept_code", changes["concept_code"], CONCEPT_CODE_MAX
            )
        if "concept_name" in changes:
            values["concept_name"] = _validate_text(
                "concept_name", changes["concept_name"], CONCEPT_NAME_MAX
            )
        if "amount" in changes:
            values["amount"] = _validate_amount(changes["amount"])
        if "effective_date" in changes:
            values["effective_date"] = _validate_date(changes["effective_date"])
        if "note" in changes:
            values["note"] = _validate_text("note", changes["note"], NOTE_MAX, required=False)

        async with self.uow.atomic():
            movement = await self.get_movement(company_id, movement_id)
            self._ensure_editable(movement)
            for key, value in values.items():
                setattr(movement, key, value)
            await self.session.flush()

        await self.audit.log_audit(
            company_id=company_id,
            actor_user_id=actor_user_id,
            action=AuditAction.MOVEMENT_UPDATE,
            entity="payroll_movements",
            entity_id=movement_id,
            meta={"fields": sorted(values)},
        )
        return movement

    async def void_movement(
        self, company_id: UUID, actor_user_id: UUID, movement_id: UUID
    ) -> PayrollMovement:
        """Mark a pending, unclaimed movement VOIDED."""
        async with self.uow.atomic():
            movement = await self.get_movement(company_id, movement_id)
            self._ensure_editable(movement)
            movement.status = MovementStatus.VOIDED
            await self.session.flush()

        await self.audit.log_audit(
            company_id=company_id,
            actor_user_id=actor_user_id,
            action=AuditAction.MOVEMENT_VOID,
            entity="payroll_movements",
            entity_id=movement_id,
        )
        return movement

    async def import_movements(
        self,
        company_id: UUID,
        actor_user_id: UUID,
        run_id: UUID,
        expected_version: int | None = None,
    ) -> int:
        """Claim every unclaimed PENDING movement dated inside the run's period.

        Only rows with ``period_id IS NULL`` are touched, so repeated calls
        converge: the second call claims nothing new. Returns the count.
        """
        runs = RunRepository(self.session)
        async with self.uow.atomic():
            run = await runs.get_run(company_id, run_id)
            if not PayrollRunStateMachine.can_import_movements(run.status):
                raise PayrollRunStateMachine.transition_error(
                    run.status, RunStatus.REVIEW, "Movements can only be imported into DRAFT or REVIEW runs"
                )

            # Serialize against approval and other writers of this run
            await runs.touch(run, PayrollRunStateMachine.CALCULATION_ALLOWED, expected_version)

            claimed = await self._claim(run)

        logger.info("Claimed %d movement(s) into run %s", claimed, run_id)
        await self.audit.log_audit(
            company_id=company_id,
            actor_user_id=actor_user_id,
            action=AuditAction.RUN_IMPORT_MOVEMENTS,
            entity="payroll_runs",
            entity_id=run_id,
            meta={"count": claimed, "periodId": run.period_id},
        )
        return claimed

    async def _claim(self, run: PayrollRun) -> int:
        period = run.period
        result = await self.session.execute(
            update(PayrollMovement)
            .where(
                PayrollMovement.company_id == run.company_id,
                PayrollMovement.status == MovementStatus.PENDING,
                PayrollMovement.period_id.is_(None),
                PayrollMovement.effective_date >= period.date_from,
                PayrollMovement.effective_date <= period.date_to,
            )
            .values(period_id=run.period_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def apply_claimed_movements(self, run: PayrollRun, actor_user_id: UUID) -> int:
        """Mark the period's PENDING movements APPLIED (inside the caller's unit of work)."""
        result = await self.session.execute(
            update(PayrollMovement)
            .where(
                PayrollMovement.company_id == run.company_id,
                PayrollMovement.period_id == run.period_id,
                PayrollMovement.status == MovementStatus.PENDING,
            )
            .values(status=MovementStatus.APPLIED, approved_by_user_id=actor_user_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
