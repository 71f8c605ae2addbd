"""Protocols and record types for the collaborators the payroll engine consumes.

The engine never reaches into the employee, company or statutory tables
directly; it talks to these protocols. The default implementations live in
``directory.py`` (SQL) and ``storage.py`` (filesystem), and the default
renderer in ``quincena_payroll.documents.payslip_pdf``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID


@dataclass(frozen=True)
class EmployeeRecord:
    """An active employee as listed by the employee directory."""

    employee_id: UUID
    name: str
    role: str | None = None
    email: str | None = None
    monthly_salary: Decimal | None = None


@dataclass(frozen=True)
class CompanyInfo:
    """Company profile captured into payslip snapshots."""

    name: str
    tax_id: str | None = None
    address: str | None = None
    phone: str | None = None
    logo_url: str | None = None


@dataclass(frozen=True)
class StatutoryConfigRecord:
    """The active statutory configuration for a company and year."""

    config_id: UUID
    year: int
    rates: dict[str, Any] = field(default_factory=dict)


class EmployeeDirectory(Protocol):
    """Source of the employees a run is created for."""

    async def list_active_employees(self, company_id: UUID) -> list[EmployeeRecord]:
        """Return every active employee of the company."""
        ...

    async def get_employees(
        self, company_id: UUID, employee_ids: list[UUID]
    ) -> dict[UUID, EmployeeRecord]:
        """Return the given employees (active or not), keyed by id."""
        ...


class StatutoryConfigStore(Protocol):
    """Read-only source of statutory deduction rates."""

    async def get_active_config(
        self, company_id: UUID, year: int
    ) -> StatutoryConfigRecord | None:
        """Return the active config for the year, or None if none exists."""
        ...


class CompanyProfile(Protocol):
    """Source of the company header printed on payslips."""

    async def get_company_info(self, company_id: UUID) -> CompanyInfo:
        """Return the company profile."""
        ...


class DocumentRenderer(Protocol):
    """Pure function from a payslip snapshot to document bytes."""

    content_type: str
    file_extension: str

    def render(self, snapshot: dict[str, Any]) -> bytes:
        """Render the snapshot."""
        ...


class DocumentStorage(Protocol):
    """Persists rendered documents and returns a URL to them."""

    def save(self, data: bytes, path: str) -> str:
        """Store ``data`` at the relative ``path`` (overwriting) and return its URL."""
        ...
