"""Best-effort, append-only audit trail."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quincena_payroll.models import AuditLog

logger = logging.getLogger(__name__)


class AuditAction:
    """Action names written by the payroll engine."""

    PERIODS_ENSURE = "PAYROLL_PERIODS_ENSURE"
    RUN_CREATE = "PAYROLL_RUN_CREATE"
    RUN_IMPORT_MOVEMENTS = "PAYROLL_RUN_IMPORT_MOVEMENTS"
    RUN_RECALCULATE = "PAYROLL_RUN_RECALCULATE"
    RUN_APPROVE = "PAYROLL_RUN_APPROVE"
    RUN_MARK_PAID = "PAYROLL_RUN_MARK_PAID"
    EMPLOYEE_PAID_NOTIFY = "PAYROLL_EMPLOYEE_PAID_NOTIFY"
    MOVEMENT_CREATE = "PAYROLL_MOVEMENT_CREATE"
    MOVEMENT_UPDATE = "PAYROLL_MOVEMENT_UPDATE"
    MOVEMENT_VOID = "PAYROLL_MOVEMENT_VOID"


@dataclass(frozen=True)
class AuditEntry:
    """One audit record to append."""

    company_id: UUID
    actor_user_id: UUID | None
    action: str
    entity: str
    entity_id: str
    meta: dict[str, Any] | None = field(default=None)


class AuditTrail:
    """Writes audit records in their own short-lived session.

    Audit is a side effect: callers log after their unit of work has
    committed, and a failure here is logged as a warning and never
    propagates to the caller.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def log_audit(
        self,
        company_id: UUID,
        actor_user_id: UUID | None,
        action: str,
        entity: str,
        entity_id: UUID | str,
        meta: dict[str, Any] | None = None,
    ) -> bool:
        """Append one record. Returns False if the write failed."""
        return await self.log_entries(
            [
                AuditEntry(
                    company_id=company_id,
                    actor_user_id=actor_user_id,
                    action=action,
                    entity=entity,
                    entity_id=str(entity_id),
                    meta=meta,
                )
            ]
        )

    async def log_entries(self, entries: list[AuditEntry]) -> bool:
        """Append several records in one write. Returns False if it failed."""
        if not entries:
            return True
        try:
            async with self.session_factory() as session:
                for entry in entries:
                    session.add(
                        AuditLog(
                            company_id=entry.company_id,
                            actor_user_id=entry.actor_user_id,
                            action=entry.action,
                            entity=entry.entity,
                            entity_id=entry.entity_id,
                            meta=_json_safe(entry.meta),
                        )
                    )
                await session.commit()
            return True
        except Exception:
            logger.warning(
                "Audit log write failed for %s",
                ", ".join(e.action for e in entries),
                exc_info=True,
            )
            return False


def _json_safe(meta: dict[str, Any] | None) -> dict[str, Any] | None:
    """Round-trip through JSON so UUIDs, dates and Decimals become strings."""
    if meta is None:
        return None
    return json.loads(json.dumps(meta, default=str))
