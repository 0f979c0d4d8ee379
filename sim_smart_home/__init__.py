from .simulation.behavior import BehaviorProfile, BehaviorSlot
from .simulation.governance import GovernanceArbiter, GovernanceResult
from .simulation.hardware import DeviceTier, HardwareCatalog
from .simulation.pricing import PricingStrategist, StrategyGoal, StrategyResult, TariffPeriod
from .simulation.process import ProcessSimulator, SimulationSnapshot, StepInputs
from .settings_store import ConfigStore, HomeSettings
from .environment import FixedClock, TimeProvider, WeatherProvider, WeatherReading
from .advisor import NaturalLanguageAdvisor
from .engine import DashboardEngine, DashboardSnapshot
from .runtime import DashboardRuntime
from .reporting import simulate_day, summarize_day

__all__ = [
    "BehaviorProfile",
    "BehaviorSlot",
    "GovernanceArbiter",
    "GovernanceResult",
    "DeviceTier",
    "HardwareCatalog",
    "PricingStrategist",
    "StrategyGoal",
    "StrategyResult",
    "TariffPeriod",
    "ProcessSimulator",
    "SimulationSnapshot",
    "StepInputs",
    "ConfigStore",
    "HomeSettings",
    "FixedClock",
    "TimeProvider",
    "WeatherProvider",
    "WeatherReading",
    "NaturalLanguageAdvisor",
    "DashboardEngine",
    "DashboardSnapshot",
    "DashboardRuntime",
    "simulate_day",
    "summarize_day",
]
