"""
Rule-based arbitration of simulated state and pricing strategy.

The arbiter turns one simulation snapshot and one strategy result into a
stress index, an ordered list of advisory dispatch actions and a
visualization force vector. Nothing here is ever applied to hardware:
every result is flagged ``ADVISORY``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .pricing import StrategyGoal, StrategyResult
from .process import SimulationSnapshot, SimulationState

DEFAULT_REDLINE_KW = 8.5
REDLINE_TRIGGER_RATIO = 0.9
PEAK_SHAVING_MAX_STRESS = 0.8
BREACH_PREDICTED_KW = 7.5
SOVEREIGNTY_ADVISORY = "ADVISORY"

REASON_REDLINE = "REDLINE_PROTECTION"
REASON_ECONOMIC_OPTIMIZATION = "ECONOMIC_OPTIMIZATION"
REASON_ECONOMIC_PREPARATION = "ECONOMIC_PREPARATION"


@dataclass(frozen=True)
class DispatchAction:
    """
    One recommended action.

    Attributes:
        target: Device addressed ("heat_pump", "battery").
        operation: "throttle", "max_discharge", "discharge" or "charge".
        value: Percentage of capacity.
        reason: Rule that produced the action.
    """
    target: str
    operation: str
    value: float
    reason: str


@dataclass(frozen=True)
class GovernanceResult:
    stress_index: float
    actions: Tuple[DispatchAction, ...]
    approved_goal: StrategyGoal
    sovereignty_mode: str = SOVEREIGNTY_ADVISORY

    def as_dict(self) -> Dict[str, Any]:
        return {
            "stress_index": round(self.stress_index, 2),
            "actions": [
                {"target": a.target, "op": a.operation, "value": a.value, "reason": a.reason}
                for a in self.actions
            ],
            "strategy_approved": self.approved_goal.value,
            "sovereignty": self.sovereignty_mode,
        }


@dataclass(frozen=True)
class ForceVector:
    """Ex (resilience), Sy (thermal pressure), Tz (strategy cadence)."""
    ex: float
    sy: float
    tz: float
    magnitude: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "magnitude", math.sqrt(self.ex ** 2 + self.sy ** 2 + self.tz ** 2))


@dataclass(frozen=True)
class AxialStress:
    """Visualization payload derived from the force vector and stress."""
    ex: float
    sy: float
    tz: float
    overall: float
    pulse_freq: float
    breach_predicted: bool
    breach_accepted: bool
    safety_status: str


Snapshotish = SimulationSnapshot | SimulationState


def _consumption(state: Snapshotish) -> float:
    return state.heat_pump_kw + state.base_load_kw + state.dhw_energy_kw + state.buh_kw


class GovernanceArbiter:
    """
    Stress scoring and advisory dispatch.

    Args:
        redline_kw: Net-load safety ceiling (kW).
    """

    def __init__(self, redline_kw: float = DEFAULT_REDLINE_KW) -> None:
        if redline_kw <= 0:
            raise ValueError("redline_kw must be > 0")
        self.redline_kw = redline_kw

    def net_load_kw(self, state: Snapshotish) -> float:
        total = state.total_load_kw or _consumption(state)
        return max(0.0, total - state.solar_pv_kw)

    def govern(self, state: Snapshotish, strategy: StrategyResult) -> GovernanceResult:
        """
        Score the current state and list recommended actions.

        Redline protection is evaluated first and independently; the
        economic rules are exclusive of each other.
        """
        net_load = self.net_load_kw(state)
        stress_index = min(1.0, net_load / self.redline_kw)

        actions: List[DispatchAction] = []
        if net_load > self.redline_kw * REDLINE_TRIGGER_RATIO:
            actions.append(DispatchAction("heat_pump", "throttle", 30, REASON_REDLINE))
            actions.append(DispatchAction("battery", "max_discharge", 100, REASON_REDLINE))

        if strategy.goal is StrategyGoal.PEAK_SHAVING and stress_index < PEAK_SHAVING_MAX_STRESS:
            actions.append(DispatchAction("battery", "discharge", 80, REASON_ECONOMIC_OPTIMIZATION))
        elif strategy.goal is StrategyGoal.PRE_CHARGE:
            actions.append(DispatchAction("battery", "charge", 100, REASON_ECONOMIC_PREPARATION))

        return GovernanceResult(
            stress_index=stress_index,
            actions=tuple(actions),
            approved_goal=strategy.goal,
        )

    @staticmethod
    def force_vector(
        state: Snapshotish,
        strategy: StrategyResult,
        outdoor_temp_c: float,
        indoor_target_c: float = 22.0,
    ) -> ForceVector:
        ex = (state.battery_soc_percent / 100.0) * 0.7 + (state.solar_pv_kw / 10.0) * 0.3 + 0.5
        gradient = abs(indoor_target_c - outdoor_temp_c)
        sy = max(0.2, 1.2 - gradient / 20.0)
        tz = 1.0 if strategy.goal is StrategyGoal.STABLE else 1.8
        return ForceVector(ex=ex, sy=sy, tz=tz)

    def axial_stress(
        self,
        state: Snapshotish,
        strategy: StrategyResult,
        governance: GovernanceResult,
        force: ForceVector,
    ) -> AxialStress:
        total_current = _consumption(state)
        return AxialStress(
            ex=force.ex,
            sy=force.sy,
            tz=force.tz,
            overall=governance.stress_index,
            pulse_freq=0.02 if strategy.goal is StrategyGoal.STABLE else 0.05,
            breach_predicted=total_current > BREACH_PREDICTED_KW,
            breach_accepted=total_current > self.redline_kw,
            safety_status="SAFE" if total_current < self.redline_kw else "ALERT",
        )
