"""
Pydantic schemas for API request/response validation.

Organized by domain:
- dashboard: Cycle snapshot, stored cycles and log entries
- catalog: Hardware tiers, tariff evaluation, habitation profile
- advisor: Natural-language command and insight

Settings endpoints reuse :class:`sim_smart_home.settings_store.HomeSettings`
directly.
"""

from __future__ import annotations

from .advisor import CommandRequest, CommandResponse, InsightResponse
from .catalog import BehaviorResponse, TariffResponse, TierResponse
from .dashboard import CycleRecordResponse, DashboardResponse, LogEntry

__all__ = [
    # Dashboard
    "DashboardResponse",
    "CycleRecordResponse",
    "LogEntry",
    # Catalog
    "TierResponse",
    "TariffResponse",
    "BehaviorResponse",
    # Advisor
    "CommandRequest",
    "CommandResponse",
    "InsightResponse",
]
