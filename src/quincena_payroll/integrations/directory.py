"""SQL-backed employee directory, statutory config store and company profile."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quincena_payroll.integrations.base import (
    CompanyInfo,
    EmployeeRecord,
    StatutoryConfigRecord,
)
from quincena_payroll.models import Company, Employee, StatutoryConfig

DEFAULT_COMPANY_NAME = "Empresa"


def _to_record(employee: Employee) -> EmployeeRecord:
    return EmployeeRecord(
        employee_id=employee.employee_id,
        name=employee.full_name,
        role=employee.role,
        email=employee.email,
        monthly_salary=employee.monthly_salary,
    )


class SqlEmployeeDirectory:
    """Reads employees from the ``employee`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_active_employees(self, company_id: UUID) -> list[EmployeeRecord]:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.company_id == company_id, Employee.active.is_(True))
            .order_by(Employee.full_name, Employee.employee_id)
        )
        return [_to_record(e) for e in result.scalars().all()]

    async def get_employees(
        self, company_id: UUID, employee_ids: list[UUID]
    ) -> dict[UUID, EmployeeRecord]:
        if not employee_ids:
            return {}
        result = await self.session.execute(
            select(Employee).where(
                Employee.company_id == company_id,
                Employee.employee_id.in_(employee_ids),
            )
        )
        return {e.employee_id: _to_record(e) for e in result.scalars().all()}


class SqlStatutoryConfigStore:
    """Reads the active statutory configuration.

    When several configs are active for the same year, the most recently
    updated one wins.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_config(
        self, company_id: UUID, year: int
    ) -> StatutoryConfigRecord | None:
        result = await self.session.execute(
            select(StatutoryConfig)
            .where(
                StatutoryConfig.company_id == company_id,
                StatutoryConfig.year == year,
                StatutoryConfig.active.is_(True),
            )
            .order_by(StatutoryConfig.updated_at.desc())
            .limit(1)
        )
        config = result.scalar_one_or_none()
        if config is None:
            return None
        return StatutoryConfigRecord(
            config_id=config.statutory_config_id,
            year=config.year,
            rates=dict(config.rates or {}),
        )


class SqlCompanyProfile:
    """Reads the company header from the ``company`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_company_info(self, company_id: UUID) -> CompanyInfo:
        company = await self.session.get(Company, company_id)
        if company is None:
            return CompanyInfo(name=DEFAULT_COMPANY_NAME)
        return CompanyInfo(
            name=company.name or DEFAULT_COMPANY_NAME,
            tax_id=company.tax_id,
            address=company.address,
            phone=company.phone,
            logo_url=company.logo_url,
        )
