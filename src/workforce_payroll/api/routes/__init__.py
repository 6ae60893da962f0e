"""API routes."""

from workforce_payroll.api.routes.approvals import router as approvals_router
from workforce_payroll.api.routes.attendance import router as attendance_router
from workforce_payroll.api.routes.config import router as config_router
from workforce_payroll.api.routes.health import router as health_router
from workforce_payroll.api.routes.payroll import router as payroll_router

__all__ = [
    "approvals_router",
    "attendance_router",
    "config_router",
    "health_router",
    "payroll_router",
]
