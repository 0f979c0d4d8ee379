"""
Static hardware capability catalog for the simulated villa.

Each :class:`DeviceTier` bundles the ratings of one heat-pump / hybrid
inverter package. The values are configuration constants and are never
computed at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping

# Per-module battery characteristics (H1 stackable module).
BATTERY_MODULE_CAPACITY_KWH = 5.12
BATTERY_MODULE_POWER_KW = 2.5

DEFAULT_TIER_ID = "standard"


@dataclass(frozen=True)
class DeviceTier:
    """
    Capability envelope of one hardware tier.

    Attributes:
        name: Human readable tier name.
        max_inverter_kw: Hybrid inverter AC limit, also caps battery power (kW).
        max_pv_kw: PV array ceiling (kW).
        heat_pump_rated_kw: Average electrical input of the heat pump (kW).
        heat_pump_max_input_kw: Maximum electrical input of the heat pump (kW).
        backup_heater_kw: Resistive backup heater power (kW).
        default_battery_modules: Module count shipped with the tier.
        tank_volume_liters: Domestic hot water tank volume (L).

    Notes:
        - All values must be strictly positive.
        - heat_pump_max_input_kw must not be lower than heat_pump_rated_kw.
    """
    name: str
    max_inverter_kw: float
    max_pv_kw: float
    heat_pump_rated_kw: float
    heat_pump_max_input_kw: float
    backup_heater_kw: float
    default_battery_modules: int
    tank_volume_liters: float

    def __post_init__(self) -> None:
        numeric = {
            "max_inverter_kw": self.max_inverter_kw,
            "max_pv_kw": self.max_pv_kw,
            "heat_pump_rated_kw": self.heat_pump_rated_kw,
            "heat_pump_max_input_kw": self.heat_pump_max_input_kw,
            "backup_heater_kw": self.backup_heater_kw,
            "default_battery_modules": self.default_battery_modules,
            "tank_volume_liters": self.tank_volume_liters,
        }
        for field_name, value in numeric.items():
            if value <= 0:
                raise ValueError(f"{field_name} must be > 0 for tier '{self.name}'")
        if self.heat_pump_max_input_kw < self.heat_pump_rated_kw:
            raise ValueError(
                f"heat_pump_max_input_kw must be >= heat_pump_rated_kw for tier '{self.name}'"
            )

    def max_battery_power_kw(self, battery_modules: int) -> float:
        """Charge/discharge bandwidth for a bank, limited by the inverter."""
        return min(self.max_inverter_kw, battery_modules * BATTERY_MODULE_POWER_KW)


STANDARD_TIER = DeviceTier(
    name="Arctic 12kW",
    max_inverter_kw=8.0,
    max_pv_kw=10.0,
    heat_pump_rated_kw=3.5,
    heat_pump_max_input_kw=4.2,
    backup_heater_kw=3.0,
    default_battery_modules=3,
    tank_volume_liters=240.0,
)

HIGH_CAPACITY_TIER = DeviceTier(
    name="Arctic 14kW",
    max_inverter_kw=10.0,
    max_pv_kw=15.0,
    heat_pump_rated_kw=4.2,
    heat_pump_max_input_kw=5.5,
    backup_heater_kw=6.0,
    default_battery_modules=4,
    tank_volume_liters=300.0,
)

# Product codes used by older stored settings.
TIER_ALIASES: Dict[str, str] = {
    "arctic_12": "standard",
    "arctic_14": "high_capacity",
}


class HardwareCatalog:
    """
    Lookup table of device tiers.

    ``lookup`` never raises: unknown identifiers resolve to the default
    tier so a stale or hand-edited configuration still simulates.

    Example:
        ```python
        catalog = HardwareCatalog()
        tier = catalog.lookup("high_capacity")
        tier.max_pv_kw            # 15.0
        catalog.lookup("bogus")   # STANDARD_TIER
        ```
    """

    def __init__(
        self,
        tiers: Mapping[str, DeviceTier] | None = None,
        default_tier_id: str = DEFAULT_TIER_ID,
    ) -> None:
        self._tiers: Dict[str, DeviceTier] = dict(
            tiers
            if tiers is not None
            else {"standard": STANDARD_TIER, "high_capacity": HIGH_CAPACITY_TIER}
        )
        if default_tier_id not in self._tiers:
            raise ValueError(f"Default tier '{default_tier_id}' is not in the catalog")
        self.default_tier_id = default_tier_id

    def resolve_id(self, tier_id: str | None) -> str:
        """Return the canonical tier id for ``tier_id`` (default when unknown)."""
        if not tier_id:
            return self.default_tier_id
        key = tier_id.strip().lower()
        key = TIER_ALIASES.get(key, key)
        return key if key in self._tiers else self.default_tier_id

    def lookup(self, tier_id: str | None) -> DeviceTier:
        return self._tiers[self.resolve_id(tier_id)]

    def tiers(self) -> List[tuple[str, DeviceTier]]:
        return list(self._tiers.items())

    def __contains__(self, tier_id: object) -> bool:
        if not isinstance(tier_id, str):
            return False
        key = tier_id.strip().lower()
        return TIER_ALIASES.get(key, key) in self._tiers
