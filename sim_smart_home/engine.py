"""
Evaluation cycle: behavior -> simulate -> price -> govern.

:class:`DashboardEngine` reads settings from the injected store, writes back
derived fields (autopilot base load, synced outdoor temperature, thermal
fingerprint), advances the simulator one step and publishes an immutable
:class:`DashboardSnapshot`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict

import numpy as np
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .advisor import CommandResult, NaturalLanguageAdvisor
from .environment import FALLBACK_WEATHER, SOURCE_DEFAULT, WeatherProvider, WeatherReading
from .persistence import PersistenceService
from .settings_store import ConfigStore
from .simulation.behavior import BehaviorProfile
from .simulation.governance import (
    AxialStress,
    ForceVector,
    GovernanceArbiter,
    GovernanceResult,
)
from .simulation.pricing import PricingStrategist, StrategyResult
from .simulation.process import ONE_MINUTE_H, ProcessSimulator, SimulationSnapshot, StepInputs

logger = logging.getLogger(__name__)

REFERENCE_PV_EFFICIENCY = 0.18
AUTOPILOT_TOLERANCE_KW = 0.01
OUTDOOR_SYNC_TOLERANCE_C = 0.05
FINGERPRINT_DRIFT = 0.001
FINGERPRINT_BOUNDS = (0.4, 2.0)


@dataclass(frozen=True)
class DashboardSnapshot:
    """
    Everything the UI renders for one cycle.

    Attributes:
        local_time: Local wall-clock time of the cycle.
        weather: Weather inputs used.
        outdoor_temp_c: Outdoor temperature fed to the simulation.
        indoor_target_c: Indoor set point.
        irradiance_wm2: Irradiance after PV-efficiency scaling.
        delta_temp_c: Heating temperature difference.
        state: Simulator state after the step.
        strategy: Pricing strategy for the cycle.
        governance: Stress index and advisory actions.
        force: Visualization force vector.
        axial: Visualization stress payload.
    """
    local_time: datetime
    weather: WeatherReading
    outdoor_temp_c: float
    indoor_target_c: float
    irradiance_wm2: float
    delta_temp_c: float
    state: SimulationSnapshot
    strategy: StrategyResult
    governance: GovernanceResult
    force: ForceVector
    axial: AxialStress

    def as_dict(self) -> Dict[str, Any]:
        strategy = self.strategy
        return {
            "local_time": self.local_time.isoformat(),
            "weather": {
                "irradiance_wm2": self.weather.irradiance_wm2,
                "outdoor_temp_c": self.weather.outdoor_temp_c,
                "description": self.weather.description,
                "forecast": self.weather.forecast,
                "source": self.weather.source,
            },
            "outdoor_temp_c": self.outdoor_temp_c,
            "indoor_target_c": self.indoor_target_c,
            "irradiance_wm2": self.irradiance_wm2,
            "delta_temp_c": self.delta_temp_c,
            "state": self.state.as_dict(),
            "strategy": {
                "period": strategy.period.value,
                "price": strategy.price,
                "goal": strategy.goal.value,
                "recommendation": strategy.recommendation,
                "next_change_hint": strategy.next_change_hint,
                "future_period": strategy.future_period.value,
                "future_price": strategy.future_price,
                "period_key": strategy.period_key,
                "strategy_key": strategy.strategy_key,
            },
            "governance": self.governance.as_dict(),
            "force": {
                "ex": self.force.ex,
                "sy": self.force.sy,
                "tz": self.force.tz,
                "magnitude": self.force.magnitude,
            },
            "axial": {
                "ex": self.axial.ex,
                "sy": self.axial.sy,
                "tz": self.axial.tz,
                "overall": self.axial.overall,
                "pulse_freq": self.axial.pulse_freq,
                "breach_predicted": self.axial.breach_predicted,
                "breach_accepted": self.axial.breach_accepted,
                "safety_status": self.axial.safety_status,
            },
        }


class DashboardEngine:
    """
    Runs evaluation cycles against injected collaborators.

    Only one cycle runs at a time: a trigger arriving while a cycle is in
    progress (for instance the store notification caused by the cycle's own
    write-back) is dropped, not queued.

    Args:
        store: Settings service (read each cycle, written for derived fields).
        clock: Object with ``now() -> datetime`` (TimeProvider or FixedClock).
        weather: Weather provider; None uses the fallback reading.
        simulator: Process simulator owning the physical state.
        strategist: Base tariff strategist; prices are overridden from settings.
        arbiter: Governance arbiter.
        behavior: Habitation profile for the autopilot.
        advisor: Optional natural-language advisor.
        persistence: Optional snapshot persistence.
        rng: numpy Generator for the thermal fingerprint drift.
        dt_hours: Simulated duration of one cycle (must be > 0).
    """

    def __init__(
        self,
        store: ConfigStore,
        clock: Any,
        weather: WeatherProvider | None = None,
        simulator: ProcessSimulator | None = None,
        strategist: PricingStrategist | None = None,
        arbiter: GovernanceArbiter | None = None,
        behavior: BehaviorProfile | None = None,
        advisor: NaturalLanguageAdvisor | None = None,
        persistence: PersistenceService | None = None,
        rng: np.random.Generator | None = None,
        dt_hours: float = ONE_MINUTE_H,
    ) -> None:
        self.store = store
        self.clock = clock
        self.weather = weather
        self.simulator = simulator or ProcessSimulator()
        self.strategist = strategist or PricingStrategist()
        self.arbiter = arbiter or GovernanceArbiter()
        self.behavior = behavior or BehaviorProfile()
        self.advisor = advisor or NaturalLanguageAdvisor(None)
        if dt_hours <= 0:
            raise ValueError("dt_hours must be > 0")
        self.persistence = persistence
        self.rng = rng or np.random.default_rng()
        self.dt_hours = dt_hours
        self.latest: DashboardSnapshot | None = None
        self._busy = False
        self._current_day: date | None = None

    @property
    def busy(self) -> bool:
        return self._busy

    def fetch_weather(self) -> WeatherReading:
        if self.weather is None:
            return FALLBACK_WEATHER
        return self.weather.current()

    def run_cycle(
        self,
        now: datetime | None = None,
        weather: WeatherReading | None = None,
    ) -> DashboardSnapshot | None:
        """
        Execute one full evaluation.

        Args:
            now: Local time of the cycle (defaults to ``clock.now()``).
            weather: Pre-fetched weather; fetched synchronously when None.

        Returns:
            The new snapshot, or None when a cycle was already running.
        """
        if self._busy:
            logger.debug("Cycle already in progress; trigger dropped")
            return None
        self._busy = True
        try:
            when = now or self.clock.now()
            reading = weather if weather is not None else self.fetch_weather()
            return self._evaluate(when, reading)
        finally:
            self._busy = False

    def _roll_day(self, when: datetime) -> None:
        today = when.date()
        if self._current_day is not None and today != self._current_day:
            self.simulator.reset_daily()
            logger.info("New day %s: daily accumulators reset", today.isoformat())
        self._current_day = today

    def _evaluate(self, when: datetime, weather: WeatherReading) -> DashboardSnapshot:
        self._roll_day(when)
        settings = self.store.get()

        if settings.field.autopilot:
            load = self.behavior.autopilot_load(when.hour)
            updates: Dict[str, float] = {}
            if abs(settings.field.base_load_kw - load.total_kw) > AUTOPILOT_TOLERANCE_KW:
                updates["base_load_kw"] = load.total_kw
            if abs(settings.field.background_flux - load.background_kw) > AUTOPILOT_TOLERANCE_KW:
                updates["background_flux"] = load.background_kw
            if updates:
                settings = self.store.update("field", updates)

        outdoor_temp = settings.space.outdoor_temp
        if weather.source != SOURCE_DEFAULT and not settings.space.override:
            outdoor_temp = weather.outdoor_temp_c
            if weather.is_live and abs(settings.space.outdoor_temp - outdoor_temp) > OUTDOOR_SYNC_TOLERANCE_C:
                settings = self.store.update("space", {"outdoor_temp": outdoor_temp})

        energy = settings.energy
        thermal_coefficient = energy.thermal_coefficient
        if energy.thermal_type == "AI_FINGERPRINT":
            drift = float(self.rng.uniform(-FINGERPRINT_DRIFT, FINGERPRINT_DRIFT))
            fingerprint = float(np.clip(energy.fingerprint_val + drift, *FINGERPRINT_BOUNDS))
            settings = self.store.update(
                "energy",
                {"fingerprint_val": fingerprint, "thermal_coefficient": fingerprint},
            )
            thermal_coefficient = fingerprint

        irradiance = weather.irradiance_wm2 * (energy.pv_efficiency / REFERENCE_PV_EFFICIENCY)
        delta_temp = max(0.0, settings.space.indoor_target - outdoor_temp)
        self.simulator.step(
            StepInputs(
                irradiance_wm2=irradiance,
                delta_temp_c=delta_temp,
                base_load_kw=settings.field.base_load_kw,
                tier_id=energy.tier_id,
                battery_modules=energy.battery_modules,
                thermal_coefficient=thermal_coefficient,
                dhw_target_temp_c=energy.dhw_target,
                dhw_tank_volume_liters=energy.dhw_tank_volume,
            ),
            self.dt_hours,
        )
        state = self.simulator.snapshot()

        strategist = self.strategist.with_prices(
            peak=settings.time.peak_price,
            offpeak=settings.time.offpeak_price,
        )
        strategy = strategist.evaluate(when)
        governance = self.arbiter.govern(state, strategy)
        force = self.arbiter.force_vector(state, strategy, outdoor_temp, settings.space.indoor_target)
        axial = self.arbiter.axial_stress(state, strategy, governance, force)

        if state.buh_active:
            logger.info("Backup heater active: %.1f kW", state.buh_kw)
        if axial.breach_accepted:
            logger.warning("Load %.2f kW above redline %.1f kW", state.total_load_kw, self.arbiter.redline_kw)

        snapshot = DashboardSnapshot(
            local_time=when,
            weather=weather,
            outdoor_temp_c=outdoor_temp,
            indoor_target_c=settings.space.indoor_target,
            irradiance_wm2=irradiance,
            delta_temp_c=delta_temp,
            state=state,
            strategy=strategy,
            governance=governance,
            force=force,
            axial=axial,
        )
        self.latest = snapshot
        self._record(snapshot)
        return snapshot

    def _record(self, snapshot: DashboardSnapshot) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.record_cycle(
                local_time=snapshot.local_time,
                period=snapshot.strategy.period.value,
                goal=snapshot.governance.approved_goal.value,
                stress_index=snapshot.governance.stress_index,
                battery_soc_percent=snapshot.state.battery_soc_percent,
                payload=snapshot.as_dict(),
            )
        except SQLAlchemyError:
            logger.exception("Could not record cycle snapshot")

    def insight(self, lang: str = "en") -> str:
        snapshot = self.latest
        if snapshot is None:
            snapshot = self.run_cycle()
        if snapshot is None:
            return self.advisor.last_insight
        return self.advisor.insight(
            snapshot.state.as_dict(),
            snapshot.strategy.period.value,
            snapshot.weather,
            snapshot.local_time.strftime("%H:%M"),
            lang=lang,
        )

    def handle_command(self, command: str, lang: str = "en") -> CommandResult:
        """
        Interpret a natural-language command and apply its settings delta.

        Sections rejected by validation are skipped and left out of the
        returned delta.
        """
        telemetry = self.latest.state.as_dict() if self.latest else None
        forecast = self.latest.weather.forecast if self.latest else FALLBACK_WEATHER.forecast
        result = self.advisor.interpret(command, self.store.get(), telemetry, forecast, lang=lang)
        if not result.delta:
            return result

        applied: Dict[str, Dict[str, Any]] = {}
        for section, values in result.delta.items():
            try:
                self.store.update(section, values)
            except (KeyError, ValidationError) as exc:
                logger.warning("Rejected advisor change to %s: %s", section, exc)
                continue
            applied[section] = dict(values)
        logger.info("Advisor command applied: %s", result.feedback)
        return CommandResult(delta=applied or None, feedback=result.feedback)
