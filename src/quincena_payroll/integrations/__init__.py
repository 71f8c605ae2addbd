"""Collaborators consumed by the payroll engine."""

from quincena_payroll.integrations.base import (
    CompanyInfo,
    CompanyProfile,
    DocumentRenderer,
    DocumentStorage,
    EmployeeDirectory,
    EmployeeRecord,
    StatutoryConfigRecord,
    StatutoryConfigStore,
)
from quincena_payroll.integrations.directory import (
    SqlCompanyProfile,
    SqlEmployeeDirectory,
    SqlStatutoryConfigStore,
)
from quincena_payroll.integrations.storage import LocalFileStorage

__all__ = [
    "CompanyInfo",
    "CompanyProfile",
    "DocumentRenderer",
    "DocumentStorage",
    "EmployeeDirectory",
    "EmployeeRecord",
    "StatutoryConfigRecord",
    "StatutoryConfigStore",
    "SqlCompanyProfile",
    "SqlEmployeeDirectory",
    "SqlStatutoryConfigStore",
    "LocalFileStorage",
]
