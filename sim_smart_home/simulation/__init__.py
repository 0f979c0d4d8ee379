"""
Deterministic simulation and advisory core.

This package collects the components evaluated once per dashboard cycle:

* Static data: the hardware tier catalog and the habitation profile.
* The fixed-step process simulator (PV, heat pump, hot water, battery).
* The time-of-use pricing strategist and the governance arbiter that turn
  simulated state into stress metrics and advisory actions.

Nothing in this package performs I/O or reads ambient configuration; all
inputs are passed explicitly so higher layers (`engine`, FastAPI routes,
CLI) stay in control of where settings and weather come from.
"""

from __future__ import annotations

from .behavior import (
    DEFAULT_APPLIANCES,
    DEFAULT_SLOTS,
    ApplianceSpec,
    AutopilotLoad,
    Behavior,
    BehaviorProfile,
    BehaviorSlot,
)
from .governance import (
    DEFAULT_REDLINE_KW,
    AxialStress,
    DispatchAction,
    ForceVector,
    GovernanceArbiter,
    GovernanceResult,
)
from .hardware import (
    BATTERY_MODULE_CAPACITY_KWH,
    BATTERY_MODULE_POWER_KW,
    HIGH_CAPACITY_TIER,
    STANDARD_TIER,
    DeviceTier,
    HardwareCatalog,
)
from .pricing import (
    DEFAULT_TARIFF,
    PriceQuote,
    PricingStrategist,
    StrategyGoal,
    StrategyResult,
    TariffPeriod,
    TariffWindow,
)
from .process import (
    ONE_MINUTE_H,
    ProcessSimulator,
    SimulationSnapshot,
    SimulationState,
    StepInputs,
)

__all__ = [
    # Hardware + physical models
    "BATTERY_MODULE_CAPACITY_KWH",
    "BATTERY_MODULE_POWER_KW",
    "DeviceTier",
    "HardwareCatalog",
    "HIGH_CAPACITY_TIER",
    "STANDARD_TIER",
    "ONE_MINUTE_H",
    "ProcessSimulator",
    "SimulationSnapshot",
    "SimulationState",
    "StepInputs",
    # Habitation profile
    "ApplianceSpec",
    "AutopilotLoad",
    "Behavior",
    "BehaviorProfile",
    "BehaviorSlot",
    "DEFAULT_APPLIANCES",
    "DEFAULT_SLOTS",
    # Pricing + governance
    "DEFAULT_TARIFF",
    "PriceQuote",
    "PricingStrategist",
    "StrategyGoal",
    "StrategyResult",
    "TariffPeriod",
    "TariffWindow",
    "AxialStress",
    "DEFAULT_REDLINE_KW",
    "DispatchAction",
    "ForceVector",
    "GovernanceArbiter",
    "GovernanceResult",
]
