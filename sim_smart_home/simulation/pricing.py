"""
Time-of-use tariff classification and short-horizon strategy selection.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Sequence, Tuple


class TariffPeriod(str, Enum):
    PEAK = "peak"
    SHOULDER = "shoulder"
    OFFPEAK = "offpeak"


class StrategyGoal(str, Enum):
    STABLE = "STABLE"
    PEAK_SHAVING = "PEAK_SHAVING"
    PRE_CHARGE = "PRE_CHARGE"
    RESERVE_MODE = "RESERVE_MODE"
    BALANCED_FLUX = "BALANCED_FLUX"


NEXT_CHANGE_IMMINENT = "Imminent"
NEXT_CHANGE_STABLE = "Stable"

RECOMMENDATIONS = {
    StrategyGoal.PRE_CHARGE: "Upcoming price surge. Accelerating battery buffering.",
    StrategyGoal.RESERVE_MODE: "Low tariff window. Optimizing thermal storage.",
    StrategyGoal.PEAK_SHAVING: "Critical high tariff. Inhibiting grid draw via SoC-Max.",
    StrategyGoal.BALANCED_FLUX: "Standard trading flux. Balancing PV with internal demand.",
    StrategyGoal.STABLE: "",
}


@dataclass(frozen=True)
class TariffWindow:
    """
    Half-open hour interval ``[start_hour, end_hour)`` billed at ``price``.

    A window with ``start_hour > end_hour`` wraps midnight
    (e.g. 21 -> 7 for the overnight offpeak).
    """
    period: TariffPeriod
    start_hour: int
    end_hour: int
    price: float

    def contains(self, hour: int) -> bool:
        if self.start_hour <= self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour


# Tasmanian residential ToU example (currency/kWh).
DEFAULT_TARIFF: Tuple[TariffWindow, ...] = (
    TariffWindow(TariffPeriod.PEAK, 7, 10, 0.38),
    TariffWindow(TariffPeriod.SHOULDER, 10, 16, 0.22),
    TariffWindow(TariffPeriod.PEAK, 16, 21, 0.38),
    TariffWindow(TariffPeriod.OFFPEAK, 21, 7, 0.15),
)


@dataclass(frozen=True)
class PriceQuote:
    period: TariffPeriod
    price: float


@dataclass(frozen=True)
class StrategyResult:
    """
    Outcome of one strategy evaluation.

    Attributes:
        period: Current tariff period.
        price: Current price (currency/kWh).
        goal: Discrete optimisation goal derived from current vs. future period.
        recommendation: Human-readable advice for the goal.
        next_change_hint: "Imminent" when the lookahead period differs, else "Stable".
        future_period: Period at the end of the lookahead window.
        future_price: Price at the end of the lookahead window.
        period_key: Text-table key for the period label.
        strategy_key: Text-table key for the strategy description.
    """
    period: TariffPeriod
    price: float
    goal: StrategyGoal
    recommendation: str
    next_change_hint: str
    future_period: TariffPeriod
    future_price: float
    period_key: str
    strategy_key: str


def _validate_tariff(windows: Sequence[TariffWindow]) -> None:
    for hour in range(24):
        matches = sum(1 for window in windows if window.contains(hour))
        if matches != 1:
            raise ValueError(f"Tariff windows must cover hour {hour} exactly once (found {matches})")


class PricingStrategist:
    """
    Stateless tariff classifier and 30-minute lookahead strategist.

    Example:
        ```python
        strategist = PricingStrategist()
        strategist.classify(datetime(2024, 6, 1, 8, 15)).period   # TariffPeriod.PEAK
        strategist.evaluate(datetime(2024, 6, 1, 6, 45)).goal     # StrategyGoal.PRE_CHARGE
        ```
    """

    def __init__(
        self,
        windows: Sequence[TariffWindow] = DEFAULT_TARIFF,
        lookahead: timedelta = timedelta(minutes=30),
    ) -> None:
        self.windows: Tuple[TariffWindow, ...] = tuple(windows)
        _validate_tariff(self.windows)
        self.lookahead = lookahead

    def with_prices(
        self,
        *,
        peak: float | None = None,
        shoulder: float | None = None,
        offpeak: float | None = None,
    ) -> "PricingStrategist":
        """Return a strategist with per-period price overrides applied."""
        overrides = {
            TariffPeriod.PEAK: peak,
            TariffPeriod.SHOULDER: shoulder,
            TariffPeriod.OFFPEAK: offpeak,
        }
        windows = [
            replace(window, price=overrides[window.period])
            if overrides[window.period] is not None
            else window
            for window in self.windows
        ]
        return PricingStrategist(windows, lookahead=self.lookahead)

    def classify(self, when: datetime) -> PriceQuote:
        hour = when.hour
        for window in self.windows:
            if window.contains(hour):
                return PriceQuote(window.period, window.price)
        # _validate_tariff guarantees a match
        raise AssertionError(f"No tariff window for hour {hour}")

    def evaluate(self, when: datetime) -> StrategyResult:
        current = self.classify(when)
        future = self.classify(when + self.lookahead)
        goal = self.goal_for(current.period, future.period)
        return StrategyResult(
            period=current.period,
            price=current.price,
            goal=goal,
            recommendation=RECOMMENDATIONS[goal],
            next_change_hint=(
                NEXT_CHANGE_IMMINENT if future.period != current.period else NEXT_CHANGE_STABLE
            ),
            future_period=future.period,
            future_price=future.price,
            period_key=f"period_{current.period.value}",
            strategy_key=f"{current.period.value}_strategy",
        )

    @staticmethod
    def goal_for(current: TariffPeriod, future: TariffPeriod) -> StrategyGoal:
        if current is TariffPeriod.OFFPEAK:
            if future in (TariffPeriod.PEAK, TariffPeriod.SHOULDER):
                return StrategyGoal.PRE_CHARGE
            return StrategyGoal.RESERVE_MODE
        if current is TariffPeriod.PEAK:
            return StrategyGoal.PEAK_SHAVING
        if current is TariffPeriod.SHOULDER:
            return StrategyGoal.BALANCED_FLUX
        return StrategyGoal.STABLE
