from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Mapping

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .engine import DashboardEngine
from .environment import FixedClock, WeatherReading
from .settings_store import ConfigStore, HomeSettings
from .simulation.process import ProcessSimulator

SOURCE_SYNTHETIC = "SYNTHETIC_DAY"
SUNRISE_HOUR = 6.0
SUNSET_HOUR = 18.0
CLEAR_SKY_IRRADIANCE_WM2 = 1000.0


def diurnal_irradiance(hour: float | np.ndarray, peak_wm2: float = CLEAR_SKY_IRRADIANCE_WM2) -> np.ndarray:
    """
    Half-sine irradiance between sunrise and sunset, zero at night.

    Args:
        hour: Fractional local hour(s) in [0, 24).
        peak_wm2: Irradiance at solar noon.
    """
    hours = np.asarray(hour, dtype=float)
    phase = (hours - SUNRISE_HOUR) / (SUNSET_HOUR - SUNRISE_HOUR)
    curve = np.sin(np.pi * np.clip(phase, 0.0, 1.0))
    return peak_wm2 * np.where((phase > 0.0) & (phase < 1.0), curve, 0.0)


def simulate_day(
    settings: HomeSettings | Mapping[str, Any] | None,
    start: datetime,
    dt_minutes: float = 1.0,
    weather: WeatherReading | None = None,
    seed: int | None = 0,
) -> pd.DataFrame:
    """
    Replay 24 hours of evaluation cycles offline.

    Each step uses a synthetic diurnal irradiance curve scaled to the
    given weather's irradiance (clear sky when None) and the full
    behavior -> simulate -> price -> govern chain.

    Args:
        settings: Starting settings; autopilot and fingerprint write-backs
            are applied to a private copy.
        start: Local start time (timezone-aware or naive).
        dt_minutes: Step duration in minutes.
        weather: Optional weather providing peak irradiance and outdoor temp.
        seed: Seed for the fingerprint drift generator.

    Returns:
        DataFrame with one row per step. ``grid_kw`` balances load against
        PV and the battery power that actually flowed, so steps with the
        SoC pinned at a bound draw from (or export to) the grid.

    Example:
        ```python
        frame = simulate_day(HomeSettings(), datetime(2024, 7, 1))
        summary = summarize_day(frame)
        ```
    """
    if dt_minutes <= 0:
        raise ValueError("dt_minutes must be > 0")

    store = ConfigStore(settings)
    clock = FixedClock(start)
    engine = DashboardEngine(
        store,
        clock,
        simulator=ProcessSimulator(),
        rng=np.random.default_rng(seed),
        dt_hours=dt_minutes / 60.0,
    )
    peak = weather.irradiance_wm2 if weather is not None else CLEAR_SKY_IRRADIANCE_WM2
    outdoor = weather.outdoor_temp_c if weather is not None else store.get().space.outdoor_temp
    description = weather.description if weather is not None else "clear"

    rows = []
    n_steps = int(round(24 * 60 / dt_minutes))
    for _ in range(n_steps):
        now = clock.now()
        hour = now.hour + now.minute / 60.0 + now.second / 3600.0
        reading = WeatherReading(
            irradiance_wm2=float(diurnal_irradiance(hour, peak)),
            outdoor_temp_c=outdoor,
            description=description,
            forecast=description,
            source=SOURCE_SYNTHETIC,
        )
        snapshot = engine.run_cycle(now=now, weather=reading)
        state = snapshot.state
        rows.append(
            {
                "time": now,
                "period": snapshot.strategy.period.value,
                "price": snapshot.strategy.price,
                "goal": snapshot.governance.approved_goal.value,
                "irradiance_wm2": snapshot.irradiance_wm2,
                "solar_pv_kw": state.solar_pv_kw,
                "battery_soc_percent": state.battery_soc_percent,
                "battery_power_kw": state.battery_power_kw,
                "battery_flow_kw": state.battery_flow_kw,
                "heat_pump_kw": state.heat_pump_kw,
                "buh_kw": state.buh_kw,
                "dhw_temp_c": state.dhw_temp_c,
                "total_load_kw": state.total_load_kw,
                "grid_kw": state.total_load_kw - state.solar_pv_kw - state.battery_flow_kw,
                "stress_index": snapshot.governance.stress_index,
                "actions": len(snapshot.governance.actions),
                "redline": snapshot.axial.breach_accepted,
            }
        )
        clock.advance(timedelta(minutes=dt_minutes))

    frame = pd.DataFrame(rows)
    frame.attrs["dt_hours"] = dt_minutes / 60.0
    return frame


def summarize_day(frame: pd.DataFrame) -> Dict[str, float]:
    """Aggregate a :func:`simulate_day` frame into daily totals."""
    if frame.empty:
        raise ValueError("Cannot summarize an empty day")
    dt_hours = float(frame.attrs.get("dt_hours", 1.0 / 60.0))
    grid_import = frame["grid_kw"].clip(lower=0.0)
    return {
        "pv_kwh": float(frame["solar_pv_kw"].sum() * dt_hours),
        "load_kwh": float(frame["total_load_kw"].sum() * dt_hours),
        "grid_import_kwh": float(grid_import.sum() * dt_hours),
        "grid_export_kwh": float((-frame["grid_kw"].clip(upper=0.0)).sum() * dt_hours),
        "import_cost": float((grid_import * frame["price"]).sum() * dt_hours),
        "min_soc_percent": float(frame["battery_soc_percent"].min()),
        "max_soc_percent": float(frame["battery_soc_percent"].max()),
        "peak_stress_index": float(frame["stress_index"].max()),
        "redline_minutes": float(frame["redline"].sum() * dt_hours * 60.0),
    }


def plot_day(frame: pd.DataFrame, save_path: Path) -> Path:
    """Save a two-panel chart (power flows, battery SoC) of a replayed day."""
    times = pd.to_datetime(frame["time"])
    fig, (ax_power, ax_soc) = plt.subplots(2, 1, figsize=(10, 6), sharex=True)
    ax_power.plot(times, frame["solar_pv_kw"], label="PV", color="#f2b705")
    ax_power.plot(times, frame["total_load_kw"], label="Load", color="#d9534f")
    ax_power.plot(times, frame["grid_kw"], label="Grid", color="#5bc0de", alpha=0.8)
    ax_power.set_ylabel("Power [kW]")
    ax_power.grid(True, alpha=0.2)
    ax_power.legend()

    ax_soc.plot(times, frame["battery_soc_percent"], color="#5cb85c")
    ax_soc.set_ylabel("SoC [%]")
    ax_soc.set_ylim(0, 100)
    ax_soc.grid(True, alpha=0.2)

    fig.tight_layout()
    save_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(save_path, dpi=150)
    plt.close(fig)
    return save_path
