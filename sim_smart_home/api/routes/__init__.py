"""
API route modules for the dashboard.

Route handlers are organized by domain:
- dashboard: Evaluation cycles, stored cycles and the event log
- settings: User settings read and section updates
- catalog: Hardware tiers, tariff evaluation, habitation profile
- advisor: Natural-language commands and insights

All routers are prefixed with /api.
"""

from __future__ import annotations

from .advisor import router as advisor_router
from .catalog import router as catalog_router
from .dashboard import router as dashboard_router
from .settings import router as settings_router

__all__ = [
    "dashboard_router",
    "settings_router",
    "catalog_router",
    "advisor_router",
]
