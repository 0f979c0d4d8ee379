"""
Fixed-step physical process simulator.

Couples PV generation, heat-pump draw and COP, backup heater, the domestic
hot water buffer and the battery bank into one energy balance advanced by
:meth:`ProcessSimulator.step`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict

from .hardware import BATTERY_MODULE_CAPACITY_KWH, HardwareCatalog

ONE_MINUTE_H = 1.0 / 60.0

COP_MAX = 5.0
COP_MIN = 1.8
COP_SLOPE_PER_DEG = 0.12
HEAT_PUMP_MIN_KW = 0.4
BUH_DELTA_THRESHOLD_C = 15.0
DHW_STANDING_LOSS_C_PER_MIN = 0.05
DHW_HYSTERESIS_C = 5.0
DHW_HEATING_FACTOR = 1.2
WATER_WH_PER_L_C = 1.16
SOC_MIN = 10.0
SOC_MAX = 100.0


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


@dataclass
class SimulationState:
    """
    Mutable physical state carried between steps.

    Attributes:
        solar_pv_kw: Instantaneous PV output (kW).
        battery_soc_percent: Battery state of charge, kept within [10, 100].
        battery_power_kw: Signed battery power; negative = charging,
            positive = discharging (kW).
        battery_flow_kw: Power that actually entered or left the bank over
            the step, same sign convention; differs from
            ``battery_power_kw`` when the SoC is pinned at a bound (kW).
        heat_pump_kw: Heat-pump electrical draw (kW).
        buh_active: Backup heater engaged.
        buh_kw: Backup heater draw (kW).
        cop_ratio: Heat-pump coefficient of performance (>= 1.8).
        base_load_kw: Household base load used in the last step (kW).
        total_load_kw: heat pump + base + DHW + backup heater (kW).
        dhw_temp_c: Hot water buffer temperature (°C).
        dhw_energy_kw: Power spent reheating the buffer (kW).
        daily_pv_kwh: PV energy accumulated since the last daily reset.
        daily_load_kwh: Load energy accumulated since the last daily reset.
    """
    solar_pv_kw: float = 0.0
    battery_soc_percent: float = 72.0
    battery_power_kw: float = 0.0
    battery_flow_kw: float = 0.0
    heat_pump_kw: float = 1.5
    buh_active: bool = False
    buh_kw: float = 0.0
    cop_ratio: float = 4.2
    base_load_kw: float = 0.85
    total_load_kw: float = 2.35
    dhw_temp_c: float = 48.0
    dhw_energy_kw: float = 0.0
    daily_pv_kwh: float = 12.8
    daily_load_kwh: float = 15.4


@dataclass(frozen=True)
class SimulationSnapshot:
    """Immutable copy of :class:`SimulationState` handed to consumers."""
    solar_pv_kw: float
    battery_soc_percent: float
    battery_power_kw: float
    battery_flow_kw: float
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

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StepInputs:
    """
    Environmental and configuration inputs for one simulation step.

    Attributes:
        irradiance_wm2: Plane-of-array irradiance proxy (W/m²).
        delta_temp_c: Indoor target minus outdoor temperature; negative
            values are clamped to 0.
        base_load_kw: Manual or autopilot base load (kW).
        tier_id: Hardware tier identifier (unknown ids use the default tier).
        battery_modules: Number of 5.12 kWh battery modules.
        thermal_coefficient: Building loss multiplier on heat-pump draw.
        dhw_target_temp_c: Hot water set point (°C).
        dhw_tank_volume_liters: Hot water tank volume (L).
    """
    irradiance_wm2: float
    delta_temp_c: float
    base_load_kw: float = 0.85
    tier_id: str = "standard"
    battery_modules: int = 3
    thermal_coefficient: float = 1.0
    dhw_target_temp_c: float = 55.0
    dhw_tank_volume_liters: float = 200.0


class ProcessSimulator:
    """
    Owns the :class:`SimulationState` and advances it one step at a time.

    The step duration is explicit. With the default of one minute the
    results match the dashboard's historical one-sample-per-minute
    integration.

    Example:
        ```python
        sim = ProcessSimulator()
        state = sim.step(StepInputs(irradiance_wm2=800, delta_temp_c=8))
        state.battery_soc_percent
        ```
    """

    def __init__(
        self,
        catalog: HardwareCatalog | None = None,
        initial_state: SimulationState | None = None,
    ) -> None:
        self.catalog = catalog or HardwareCatalog()
        self.state = initial_state if initial_state is not None else SimulationState()

    def step(self, inputs: StepInputs, dt_hours: float = ONE_MINUTE_H) -> SimulationState:
        """
        Advance the simulation by ``dt_hours``.

        Order of evaluation: solar, COP, heat-pump draw, backup heater,
        hot water buffer, battery, totals and daily accumulators.

        Args:
            inputs: Environmental and configuration inputs.
            dt_hours: Step duration in hours (default one minute).

        Returns:
            The mutated state object (use :meth:`snapshot` for a frozen copy).

        Raises:
            ValueError: If ``dt_hours`` is not positive.
        """
        if dt_hours <= 0:
            raise ValueError("dt_hours must be > 0")
        tier = self.catalog.lookup(inputs.tier_id)
        state = self.state
        delta_temp = max(0.0, inputs.delta_temp_c)
        state.base_load_kw = inputs.base_load_kw

        # Output scales with irradiance relative to 1000 W/m², capped at the array rating.
        potential_pv = (inputs.irradiance_wm2 / 1000.0) * tier.max_pv_kw
        state.solar_pv_kw = min(tier.max_pv_kw, potential_pv)

        state.cop_ratio = max(COP_MIN, COP_MAX - delta_temp * COP_SLOPE_PER_DEG)

        raw_draw = (delta_temp / state.cop_ratio) * tier.heat_pump_rated_kw
        state.heat_pump_kw = _clamp(
            raw_draw * inputs.thermal_coefficient,
            HEAT_PUMP_MIN_KW,
            tier.heat_pump_max_input_kw,
        )

        if delta_temp > BUH_DELTA_THRESHOLD_C:
            state.buh_active = True
            state.buh_kw = tier.backup_heater_kw
        else:
            state.buh_active = False
            state.buh_kw = 0.0

        self._update_hot_water(inputs, tier.heat_pump_rated_kw, dt_hours)

        consumption = state.heat_pump_kw + state.base_load_kw + state.dhw_energy_kw + state.buh_kw
        net_power = state.solar_pv_kw - consumption
        max_batt_kw = tier.max_battery_power_kw(inputs.battery_modules)
        if net_power > 0:
            state.battery_power_kw = -min(max_batt_kw, net_power)
        else:
            state.battery_power_kw = min(max_batt_kw, abs(net_power))

        capacity_kwh = inputs.battery_modules * BATTERY_MODULE_CAPACITY_KWH
        state.battery_flow_kw = 0.0
        if capacity_kwh > 0:
            soc_before = state.battery_soc_percent
            energy_delta_kwh = state.battery_power_kw * dt_hours
            soc_delta = (energy_delta_kwh / capacity_kwh) * 100.0
            state.battery_soc_percent = _clamp(soc_before - soc_delta, SOC_MIN, SOC_MAX)
            state.battery_flow_kw = (soc_before - state.battery_soc_percent) / 100.0 * capacity_kwh / dt_hours

        state.total_load_kw = consumption
        state.daily_pv_kwh += state.solar_pv_kw * dt_hours
        state.daily_load_kwh += state.total_load_kw * dt_hours
        return state

    def _update_hot_water(self, inputs: StepInputs, heat_pump_rated_kw: float, dt_hours: float) -> None:
        state = self.state
        state.dhw_temp_c -= DHW_STANDING_LOSS_C_PER_MIN * (dt_hours * 60.0)
        if state.dhw_temp_c < inputs.dhw_target_temp_c - DHW_HYSTERESIS_C:
            state.dhw_energy_kw = heat_pump_rated_kw * DHW_HEATING_FACTOR
            temp_increase = (state.dhw_energy_kw * 1000.0 * dt_hours) / (
                inputs.dhw_tank_volume_liters * WATER_WH_PER_L_C
            )
            state.dhw_temp_c += temp_increase
        else:
            state.dhw_energy_kw = 0.0
        state.dhw_temp_c = min(inputs.dhw_target_temp_c, state.dhw_temp_c)

    def reset_daily(self) -> None:
        """Zero the daily PV and load accumulators (local day boundary)."""
        self.state.daily_pv_kwh = 0.0
        self.state.daily_load_kwh = 0.0

    def snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot(**asdict(self.state))

    def restore(self, snapshot: SimulationSnapshot | Dict[str, Any]) -> None:
        """Replace the current state with a saved snapshot."""
        values = snapshot.as_dict() if isinstance(snapshot, SimulationSnapshot) else dict(snapshot)
        self.state = replace(SimulationState(), **values)
