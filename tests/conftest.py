"""Pytest fixtures for payroll run engine tests.

Uses SQLite in-memory with StaticPool so every session (unit of work, audit
trail, HTTP requests, assertions) shares one connection and sees the same
data. Fixtures commit what they create.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, AsyncGenerator
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from quincena_payroll.api.app import create_app
from quincena_payroll.api.dependencies import (
    get_document_renderer,
    get_document_storage,
    get_session_factory,
)
from quincena_payroll.database import UnitOfWork, make_session_factory
from quincena_payroll.models import (
    AuditLog,
    Base,
    Company,
    Employee,
    MovementSource,
    MovementType,
    PayrollMovement,
    PeriodHalf,
    StatutoryConfig,
)
from quincena_payroll.services.period_service import PeriodService
from quincena_payroll.services.run_lifecycle import RunLifecycleService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Example rates: tssSfs=3.04%, tssAfp=2.87%, isr=0
TEST_RATES = {"tss_sfs_rate": 0.0304, "tss_afp_rate": 0.0287, "isr_rate": 0}


class FakeRenderer:
    """Renderer that records what it rendered and can fail for chosen employees."""

    content_type = "application/pdf"
    file_extension = "pdf"

    def __init__(self, fail_for: set[str] | None = None):
        self.fail_for = fail_for or set()
        self.rendered: list[str] = []

    def render(self, snapshot: dict[str, Any]) -> bytes:
        employee_id = snapshot["employee"]["employee_id"]
        if employee_id in self.fail_for:
            raise RuntimeError(f"renderer exploded for {employee_id}")
        self.rendered.append(employee_id)
        return f"%PDF-fake {employee_id} {snapshot['summary']['net_amount']}".encode()


class MemoryStorage:
    """Storage collaborator keeping documents in a dict."""

    def __init__(self):
        self.files: dict[str, bytes] = {}

    def save(self, data: bytes, path: str) -> str:
        self.files[path] = data
        return f"/uploads/{path}"


# ── Database ─────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite engine per test with a shared connection."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding data."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def uow(session_factory) -> AsyncGenerator[UnitOfWork, None]:
    """Unit of work the services under test run in."""
    async with UnitOfWork(session_factory) as unit:
        yield unit


@pytest.fixture
def fresh(session_factory):
    """Open a new session for assertions, bypassing any identity map."""
    return session_factory


# ── Domain data ──────────────────────────────────────────────────────────────


@pytest.fixture
def actor_id() -> UUID:
    return uuid4()


@pytest_asyncio.fixture
async def company(db: AsyncSession) -> Company:
    c = Company(
        company_id=uuid4(),
        name="Servicios Técnicos SRL",
        tax_id="131-12345-6",
        address="Av. Winston Churchill 10, Santo Domingo",
        phone="809-555-0100",
    )
    db.add(c)
    await db.commit()
    return c


@pytest_asyncio.fixture
async def other_company(db: AsyncSession) -> Company:
    c = Company(company_id=uuid4(), name="Otra Empresa")
    db.add(c)
    await db.commit()
    return c


@pytest_asyncio.fixture
async def employees(db: AsyncSession, company: Company) -> dict[str, Employee]:
    """Three active employees (one without salary) and one inactive."""
    rows = {
        "ana": Employee(
            employee_id=uuid4(),
            company_id=company.company_id,
            full_name="Ana Pérez",
            email="ana@example.com",
            role="TECNICO",
            monthly_salary=Decimal("30000.00"),
            active=True,
        ),
        "luis": Employee(
            employee_id=uuid4(),
            company_id=company.company_id,
            full_name="Luis Gómez",
            email="luis@example.com",
            role="VENDEDOR",
            monthly_salary=Decimal("45000.00"),
            active=True,
        ),
        "marta": Employee(
            employee_id=uuid4(),
            company_id=company.company_id,
            full_name="Marta Díaz",
            email="marta@example.com",
            role="ASISTENTE",
            monthly_salary=None,
            active=True,
        ),
        "pedro": Employee(
            employee_id=uuid4(),
            company_id=company.company_id,
            full_name="Pedro Ruiz",
            email="pedro@example.com",
            role="TECNICO",
            monthly_salary=Decimal("20000.00"),
            active=False,
        ),
    }
    db.add_all(rows.values())
    await db.commit()
    return rows


@pytest_asyncio.fixture
async def statutory_config(db: AsyncSession, company: Company) -> StatutoryConfig:
    config = StatutoryConfig(
        statutory_config_id=uuid4(),
        company_id=company.company_id,
        year=2026,
        rates=dict(TEST_RATES),
        active=True,
    )
    db.add(config)
    await db.commit()
    return config


@pytest_asyncio.fixture
async def periods(uow: UnitOfWork, company: Company, actor_id: UUID) -> dict[PeriodHalf, Any]:
    """Both quincenas of January 2026."""
    created = await PeriodService(uow).ensure_current_periods(
        company.company_id, actor_id, year=2026, month=1
    )
    return {p.half: p for p in created}


@pytest.fixture
def make_movement(db: AsyncSession, company: Company, actor_id: UUID):
    """Insert a pending movement directly."""

    async def _make(
        employee: Employee,
        amount: str,
        effective_date: date,
        movement_type: MovementType = MovementType.EARNING,
        source: MovementSource = MovementSource.MANUAL,
        concept_code: str = "BONO",
        concept_name: str = "Bono",
    ) -> PayrollMovement:
        movement = PayrollMovement(
            movement_id=uuid4(),
            company_id=company.company_id,
            employee_id=employee.employee_id,
            movement_type=movement_type,
            source=source,
            concept_code=concept_code,
            concept_name=concept_name,
            amount=Decimal(amount),
            effective_date=effective_date,
            created_by_user_id=actor_id,
        )
        db.add(movement)
        await db.commit()
        return movement

    return _make


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest_asyncio.fixture
async def draft_run(uow: UnitOfWork, company: Company, employees, periods, actor_id: UUID):
    """DRAFT run for the first quincena of January 2026."""
    return await RunLifecycleService(uow).create_run(
        company.company_id, actor_id, period_id=periods[PeriodHalf.FIRST].period_id
    )


# ── HTTP ─────────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory, renderer, storage) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test database and fake documents."""
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_document_renderer] = lambda: renderer
    app.dependency_overrides[get_document_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def audit_rows(fresh):
    """Fetch audit records of one action in write order."""

    async def _rows(action: str) -> list[AuditLog]:
        async with fresh() as session:
            result = await session.execute(
                select(AuditLog).where(AuditLog.action == action).order_by(AuditLog.created_at)
            )
            return list(result.scalars().all())

    return _rows
