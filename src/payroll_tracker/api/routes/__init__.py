"""API routes."""

from payroll_tracker.api.routes.employees import router as employees_router
from payroll_tracker.api.routes.health import router as health_router
from payroll_tracker.api.routes.payouts import router as payouts_router
from payroll_tracker.api.routes.settings import router as settings_router
from payroll_tracker.api.routes.time_entries import router as time_entries_router
from payroll_tracker.api.routes.webhook import router as webhook_router

__all__ = [
    "employees_router",
    "health_router",
    "payouts_router",
    "settings_router",
    "time_entries_router",
    "webhook_router",
]
