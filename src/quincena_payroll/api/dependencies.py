"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quincena_payroll.config import get_settings
from quincena_payroll.database import UnitOfWork, init_db
from quincena_payroll.documents.payslip_pdf import PayslipPdfRenderer
from quincena_payroll.integrations.base import DocumentRenderer, DocumentStorage
from quincena_payroll.integrations.storage import LocalFileStorage


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory of the global engine."""
    _, factory = init_db()
    return factory


async def get_uow(
    factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> AsyncGenerator[UnitOfWork, None]:
    """One unit of work per request."""
    async with UnitOfWork(factory) as uow:
        yield uow


def _parse_uuid_header(value: str | None, name: str) -> UUID:
    if not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} header is required",
        )
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} format",
        )


async def get_company_id(x_company_id: Annotated[str | None, Header()] = None) -> UUID:
    """Extract company ID from header."""
    return _parse_uuid_header(x_company_id, "X-Company-ID")


async def get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> UUID:
    """Extract acting user ID from header."""
    return _parse_uuid_header(x_user_id, "X-User-ID")


def get_document_renderer() -> DocumentRenderer:
    return PayslipPdfRenderer()


def get_document_storage() -> DocumentStorage:
    settings = get_settings()
    return LocalFileStorage(settings.uploads_dir, settings.public_base_url)


# Type aliases for cleaner dependency injection
Uow = Annotated[UnitOfWork, Depends(get_uow)]
CompanyId = Annotated[UUID, Depends(get_company_id)]
UserId = Annotated[UUID, Depends(get_user_id)]
Renderer = Annotated[DocumentRenderer, Depends(get_document_renderer)]
Storage = Annotated[DocumentStorage, Depends(get_document_storage)]
