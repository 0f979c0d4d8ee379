"""
Dashboard snapshot schemas.

Response models mirror :meth:`DashboardSnapshot.as_dict` so the API and the
persisted cycle payload share one shape.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class WeatherOut(BaseModel):
    irradiance_wm2: float
    outdoor_temp_c: float
    description: str
    forecast: str
    source: str


class StateOut(BaseModel):
    """Simulator state after the cycle's step."""
    solar_pv_kw: float
    battery_soc_percent: float
    battery_power_kw: float = Field(..., description="Negative = charging, positive = discharging")
    battery_flow_kw: float = Field(0.0, description="Power that actually flowed; 0 while SoC is pinned at a bound")
    heat_pump_kw: float
    buh_active: bool
    buh_kw: float
    cop_ratio: float
    base_load_kw: float
    total_load_kw: float
    dhw_temp_c: float
    dhw_energy_kw: float
    daily_pv_kwh: float
    daily_load_kwh: float


class StrategyOut(BaseModel):
    period: str
    price: float
    goal: str
    recommendation: str
    next_change_hint: str
    future_period: str
    future_price: float
    period_key: str
    strategy_key: str


class ActionOut(BaseModel):
    target: str
    op: str
    value: float
    reason: str


class GovernanceOut(BaseModel):
    """
    Advisory governance decision.

    Attributes:
        stress_index: Net load over redline, rounded to 2 decimals.
        actions: Recommended actions, redline protection first.
        strategy_approved: Goal passed through from the strategist.
        sovereignty: Always "ADVISORY"; nothing is dispatched to hardware.
    """
    stress_index: float
    actions: List[ActionOut]
    strategy_approved: str
    sovereignty: str


class ForceOut(BaseModel):
    ex: float
    sy: float
    tz: float
    magnitude: float


class AxialOut(BaseModel):
    ex: float
    sy: float
    tz: float
    overall: float
    pulse_freq: float
    breach_predicted: bool
    breach_accepted: bool
    safety_status: str


class DashboardResponse(BaseModel):
    """
    Complete result of one evaluation cycle.

    Example:
        ```python
        # GET /api/dashboard
        {
            "local_time": "2024-07-01T17:00:00+10:00",
            "state": {"solar_pv_kw": 4.1, "battery_soc_percent": 71.8, ...},
            "strategy": {"period": "peak", "goal": "PEAK_SHAVING", ...},
            "governance": {"stress_index": 0.0, "actions": [...], ...},
            ...
        }
        ```
    """
    local_time: datetime
    weather: WeatherOut
    outdoor_temp_c: float
    indoor_target_c: float
    irradiance_wm2: float
    delta_temp_c: float
    state: StateOut
    strategy: StrategyOut
    governance: GovernanceOut
    force: ForceOut
    axial: AxialOut


class CycleRecordResponse(BaseModel):
    """Stored cycle summary (``GET /api/cycles``)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    local_time: datetime
    period: str
    goal: str
    stress_index: float
    battery_soc_percent: float
    payload: Dict[str, Any] | None = None


class LogEntry(BaseModel):
    timestamp: str
    level: str
    logger: str
    message: str
