from __future__ import annotations

import numpy as np
import pytest

from sim_smart_home.simulation.hardware import HIGH_CAPACITY_TIER, STANDARD_TIER
from sim_smart_home.simulation.process import ProcessSimulator, SimulationState, StepInputs


def test_initial_state_matches_start_of_day_values() -> None:
    snapshot = ProcessSimulator().snapshot()
    assert snapshot.battery_soc_percent == pytest.approx(72.0)
    assert snapshot.total_load_kw == pytest.approx(2.35)
    assert snapshot.dhw_temp_c == pytest.approx(48.0)
    assert snapshot.daily_pv_kwh == pytest.approx(12.8)
    assert snapshot.daily_load_kwh == pytest.approx(15.4)


def test_full_sun_no_heating_demand() -> None:
    sim = ProcessSimulator()
    state = sim.step(StepInputs(irradiance_wm2=1000.0, delta_temp_c=0.0, base_load_kw=0.85))

    assert state.solar_pv_kw == pytest.approx(STANDARD_TIER.max_pv_kw)
    assert state.cop_ratio == pytest.approx(5.0)
    assert state.heat_pump_kw == pytest.approx(0.4)
    assert state.buh_active is False
    assert state.buh_kw == 0.0
    # DHW starts below target - hysteresis, so the buffer is reheated.
    assert state.dhw_energy_kw == pytest.approx(3.5 * 1.2)
    consumption = 0.4 + 0.85 + 3.5 * 1.2
    assert state.total_load_kw == pytest.approx(consumption)
    assert state.battery_power_kw == pytest.approx(-(10.0 - consumption))
    assert state.battery_soc_percent > 72.0


def test_cold_day_engages_backup_heater() -> None:
    sim = ProcessSimulator()
    state = sim.step(StepInputs(irradiance_wm2=200.0, delta_temp_c=20.0))

    assert state.buh_active is True
    assert state.buh_kw == STANDARD_TIER.backup_heater_kw
    assert state.cop_ratio == pytest.approx(2.6)
    assert state.heat_pump_kw == pytest.approx(STANDARD_TIER.heat_pump_max_input_kw)


def test_backup_heater_threshold_is_strict() -> None:
    sim = ProcessSimulator()
    assert sim.step(StepInputs(irradiance_wm2=500.0, delta_temp_c=15.0)).buh_active is False
    assert sim.step(StepInputs(irradiance_wm2=500.0, delta_temp_c=15.01)).buh_active is True


def test_negative_delta_temp_is_clamped() -> None:
    state = ProcessSimulator().step(StepInputs(irradiance_wm2=500.0, delta_temp_c=-8.0))
    assert state.cop_ratio == pytest.approx(5.0)
    assert state.heat_pump_kw == pytest.approx(0.4)


def test_unknown_tier_uses_default_ratings() -> None:
    state = ProcessSimulator().step(StepInputs(irradiance_wm2=1000.0, delta_temp_c=0.0, tier_id="bogus"))
    assert state.solar_pv_kw == pytest.approx(STANDARD_TIER.max_pv_kw)


def test_high_capacity_tier_raises_pv_ceiling() -> None:
    state = ProcessSimulator().step(
        StepInputs(irradiance_wm2=1000.0, delta_temp_c=0.0, tier_id="high_capacity")
    )
    assert state.solar_pv_kw == pytest.approx(HIGH_CAPACITY_TIER.max_pv_kw)


def test_zero_battery_modules_leave_soc_unchanged() -> None:
    state = ProcessSimulator().step(
        StepInputs(irradiance_wm2=0.0, delta_temp_c=10.0, battery_modules=0)
    )
    assert state.battery_power_kw == 0.0
    assert state.battery_soc_percent == pytest.approx(72.0)


def test_soc_stays_within_bounds_over_random_steps() -> None:
    rng = np.random.default_rng(7)
    sim = ProcessSimulator()
    for _ in range(3000):
        inputs = StepInputs(
            irradiance_wm2=float(rng.uniform(0.0, 1400.0)),
            delta_temp_c=float(rng.uniform(-10.0, 40.0)),
            base_load_kw=float(rng.uniform(0.0, 6.0)),
            tier_id=str(rng.choice(["standard", "high_capacity"])),
            battery_modules=int(rng.integers(1, 6)),
            thermal_coefficient=float(rng.uniform(0.1, 3.0)),
        )
        state = sim.step(inputs, dt_hours=float(rng.uniform(1 / 60, 0.5)))
        assert 10.0 <= state.battery_soc_percent <= 100.0
        spec = sim.catalog.lookup(inputs.tier_id)
        assert 0.4 <= state.heat_pump_kw <= spec.heat_pump_max_input_kw
        assert state.buh_active == (inputs.delta_temp_c > 15.0)
        assert state.dhw_temp_c <= inputs.dhw_target_temp_c


def test_dhw_never_rises_without_heating() -> None:
    sim = ProcessSimulator(initial_state=SimulationState(dhw_temp_c=54.0))
    previous = sim.state.dhw_temp_c
    for _ in range(30):
        state = sim.step(StepInputs(irradiance_wm2=600.0, delta_temp_c=5.0))
        if state.dhw_energy_kw == 0.0:
            assert state.dhw_temp_c <= previous
        previous = state.dhw_temp_c


def test_dhw_reheats_below_hysteresis_band() -> None:
    sim = ProcessSimulator()
    state = sim.step(StepInputs(irradiance_wm2=600.0, delta_temp_c=5.0))
    temp_rise = (3.5 * 1.2 * 1000.0 / 60.0) / (200.0 * 1.16)
    assert state.dhw_temp_c == pytest.approx(48.0 - 0.05 + temp_rise)


def test_daily_accumulators_integrate_and_reset() -> None:
    sim = ProcessSimulator()
    state = sim.step(StepInputs(irradiance_wm2=1000.0, delta_temp_c=0.0), dt_hours=0.5)
    assert state.daily_pv_kwh == pytest.approx(12.8 + 10.0 * 0.5)
    assert state.daily_load_kwh == pytest.approx(15.4 + state.total_load_kw * 0.5)

    sim.reset_daily()
    assert sim.state.daily_pv_kwh == 0.0
    assert sim.state.daily_load_kwh == 0.0


def test_snapshot_is_an_independent_copy() -> None:
    sim = ProcessSimulator()
    snapshot = sim.snapshot()
    sim.step(StepInputs(irradiance_wm2=1000.0, delta_temp_c=0.0))
    assert snapshot.solar_pv_kw == 0.0
    with pytest.raises(AttributeError):
        snapshot.solar_pv_kw = 1.0  # type: ignore[misc]

    sim.restore(snapshot)
    assert sim.state.solar_pv_kw == 0.0


def test_battery_flow_matches_request_between_bounds() -> None:
    sim = ProcessSimulator()
    state = sim.step(StepInputs(irradiance_wm2=0.0, delta_temp_c=5.0))
    assert state.battery_power_kw > 0
    assert state.battery_flow_kw == pytest.approx(state.battery_power_kw)


def test_battery_flow_is_zero_when_soc_pinned() -> None:
    empty = ProcessSimulator(initial_state=SimulationState(battery_soc_percent=10.0))
    state = empty.step(StepInputs(irradiance_wm2=0.0, delta_temp_c=5.0))
    assert state.battery_power_kw > 0
    assert state.battery_soc_percent == pytest.approx(10.0)
    assert state.battery_flow_kw == 0.0

    full = ProcessSimulator(initial_state=SimulationState(battery_soc_percent=100.0))
    state = full.step(StepInputs(irradiance_wm2=1000.0, delta_temp_c=0.0))
    assert state.battery_power_kw < 0
    assert state.battery_flow_kw == 0.0


def test_battery_flow_limited_by_remaining_charge() -> None:
    sim = ProcessSimulator(initial_state=SimulationState(battery_soc_percent=10.5))
    state = sim.step(StepInputs(irradiance_wm2=0.0, delta_temp_c=5.0), dt_hours=0.5)
    capacity_kwh = 3 * 5.12
    assert state.battery_soc_percent == pytest.approx(10.0)
    assert state.battery_flow_kw == pytest.approx(0.5 / 100.0 * capacity_kwh / 0.5)
    assert state.battery_flow_kw < state.battery_power_kw


@pytest.mark.parametrize("dt_hours", [0.0, -0.5])
def test_non_positive_step_is_rejected(dt_hours: float) -> None:
    sim = ProcessSimulator()
    with pytest.raises(ValueError):
        sim.step(StepInputs(irradiance_wm2=1000.0, delta_temp_c=0.0), dt_hours=dt_hours)
    assert sim.state.daily_pv_kwh == pytest.approx(12.8)
    assert sim.state.daily_load_kwh == pytest.approx(15.4)
