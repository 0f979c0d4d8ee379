"""
Static catalog schemas: hardware tiers, tariff evaluation, habitation profile.
"""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel


class TierResponse(BaseModel):
    """
    One hardware tier.

    Attributes:
        id: Canonical tier identifier used in ``energy.tier_id``.
        name: Display name.
        max_battery_power_kw: Battery bandwidth with the default module count.
    """
    id: str
    name: str
    max_inverter_kw: float
    max_pv_kw: float
    heat_pump_rated_kw: float
    heat_pump_max_input_kw: float
    backup_heater_kw: float
    default_battery_modules: int
    tank_volume_liters: float
    max_battery_power_kw: float


class TariffResponse(BaseModel):
    at: datetime
    period: str
    price: float
    goal: str
    recommendation: str
    next_change_hint: str
    future_period: str
    future_price: float


class BehaviorResponse(BaseModel):
    hour: int
    label: str
    background_flux_kw: float
    active_appliances: List[str]
    autopilot_load_kw: float
