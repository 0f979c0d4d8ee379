"""
Read-only reference data: hardware tiers, tariff evaluation and the
habitation profile.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Path, Query

from ...engine import DashboardEngine
from ...simulation import BehaviorProfile, HardwareCatalog
from .. import dependencies
from ..schemas import catalog as catalog_schemas

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/tiers", response_model=list[catalog_schemas.TierResponse])
def list_tiers(
    catalog: HardwareCatalog = Depends(dependencies.get_catalog),
) -> list[catalog_schemas.TierResponse]:
    return [
        catalog_schemas.TierResponse(
            id=tier_id,
            name=tier.name,
            max_inverter_kw=tier.max_inverter_kw,
            max_pv_kw=tier.max_pv_kw,
            heat_pump_rated_kw=tier.heat_pump_rated_kw,
            heat_pump_max_input_kw=tier.heat_pump_max_input_kw,
            backup_heater_kw=tier.backup_heater_kw,
            default_battery_modules=tier.default_battery_modules,
            tank_volume_liters=tier.tank_volume_liters,
            max_battery_power_kw=tier.max_battery_power_kw(tier.default_battery_modules),
        )
        for tier_id, tier in catalog.tiers()
    ]


@router.get("/tariff", response_model=catalog_schemas.TariffResponse)
def evaluate_tariff(
    at: datetime | None = Query(None, description="ISO timestamp; defaults to the engine clock"),
    engine: DashboardEngine = Depends(dependencies.get_engine),
) -> catalog_schemas.TariffResponse:
    """
    Classify ``at`` and evaluate the 30-minute lookahead strategy.

    Prices reflect the overrides in the ``time`` settings section.
    """
    when = at or engine.clock.now()
    prices = engine.store.get().time
    strategy = engine.strategist.with_prices(
        peak=prices.peak_price,
        offpeak=prices.offpeak_price,
    ).evaluate(when)
    return catalog_schemas.TariffResponse(
        at=when,
        period=strategy.period.value,
        price=strategy.price,
        goal=strategy.goal.value,
        recommendation=strategy.recommendation,
        next_change_hint=strategy.next_change_hint,
        future_period=strategy.future_period.value,
        future_price=strategy.future_price,
    )


@router.get("/behavior/{hour}", response_model=catalog_schemas.BehaviorResponse)
def get_behavior(
    hour: int = Path(..., ge=0, le=23),
    profile: BehaviorProfile = Depends(dependencies.get_behavior_profile),
) -> catalog_schemas.BehaviorResponse:
    slot = profile.slot_for(hour)
    load = profile.autopilot_load(hour)
    return catalog_schemas.BehaviorResponse(
        hour=hour,
        label=slot.label,
        background_flux_kw=slot.background_flux_kw,
        active_appliances=sorted(slot.active_appliances),
        autopilot_load_kw=load.total_kw,
    )
