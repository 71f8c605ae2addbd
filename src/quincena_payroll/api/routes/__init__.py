"""API routes."""

from quincena_payroll.api.routes.health import router as health_router
from quincena_payroll.api.routes.movements import router as movements_router
from quincena_payroll.api.routes.my_payroll import router as my_payroll_router
from quincena_payroll.api.routes.payroll import router as payroll_router

__all__ = ["health_router", "movements_router", "my_payroll_router", "payroll_router"]
