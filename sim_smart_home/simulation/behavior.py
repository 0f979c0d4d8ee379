"""
Hour-of-day habitation profile used by the autopilot base-load estimate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Sequence


@dataclass(frozen=True)
class BehaviorSlot:
    """
    One contiguous block of the day with a characteristic background load.

    Attributes:
        start_hour: First hour covered (inclusive).
        end_hour: Hour at which the slot ends (exclusive, 24 for midnight).
        background_flux_kw: Always-on household flux during the slot (kW).
        active_appliances: Keys of appliances typically running in the slot.
        label: Short description for display.
    """
    start_hour: int
    end_hour: int
    background_flux_kw: float
    active_appliances: FrozenSet[str] = frozenset()
    label: str = ""

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour < self.end_hour


@dataclass(frozen=True)
class ApplianceSpec:
    """
    Appliance rating used by :meth:`BehaviorProfile.autopilot_load`.

    Baseline appliances (fridge, router, ...) contribute at every hour;
    the others only during the slots that list their key.
    """
    key: str
    rated_power_kw: float
    is_baseline: bool = False


@dataclass(frozen=True)
class Behavior:
    background_flux_kw: float
    active_appliance_keys: FrozenSet[str]


@dataclass(frozen=True)
class AutopilotLoad:
    total_kw: float
    background_kw: float
    active_keys: FrozenSet[str]


DEFAULT_SLOTS: tuple[BehaviorSlot, ...] = (
    BehaviorSlot(0, 6, 0.12, frozenset(), "deep sleep"),
    BehaviorSlot(6, 7, 0.25, frozenset(), "wake up"),
    BehaviorSlot(7, 8, 0.45, frozenset({"kettle", "microwave"}), "breakfast"),
    BehaviorSlot(8, 9, 0.60, frozenset({"hair_dryer"}), "shower"),
    BehaviorSlot(9, 12, 0.80, frozenset({"tv"}), "working"),
    BehaviorSlot(12, 13, 1.10, frozenset({"microwave"}), "lunch"),
    BehaviorSlot(13, 17, 0.75, frozenset(), "focus work"),
    BehaviorSlot(17, 18, 0.40, frozenset(), "commute"),
    BehaviorSlot(18, 20, 1.30, frozenset({"kettle", "microwave", "tv"}), "dinner"),
    BehaviorSlot(20, 22, 0.90, frozenset({"dishwasher", "tv"}), "evening"),
    BehaviorSlot(22, 23, 0.35, frozenset(), "wind down"),
    BehaviorSlot(23, 24, 0.15, frozenset(), "pre-sleep"),
)

DEFAULT_APPLIANCES: tuple[ApplianceSpec, ...] = (
    ApplianceSpec("fridge", 0.15, True),
    ApplianceSpec("router", 0.02, True),
    ApplianceSpec("security_cam", 0.04, True),
    ApplianceSpec("nas_server", 0.06, True),
    ApplianceSpec("smart_hub", 0.01, True),
    ApplianceSpec("tv", 0.12),
    ApplianceSpec("washing_machine", 1.20),
    ApplianceSpec("dishwasher", 1.80),
    ApplianceSpec("microwave", 1.10),
    ApplianceSpec("kettle", 2.20),
    ApplianceSpec("hair_dryer", 1.50),
)


def _validate_slots(slots: Sequence[BehaviorSlot]) -> None:
    if not slots:
        raise ValueError("Behavior table must contain at least one slot")
    ordered = sorted(slots, key=lambda s: s.start_hour)
    expected_start = 0
    for slot in ordered:
        if slot.start_hour != expected_start or slot.end_hour <= slot.start_hour:
            raise ValueError(
                f"Behavior slots must be contiguous and disjoint; "
                f"gap or overlap at hour {expected_start}"
            )
        expected_start = slot.end_hour
    if expected_start != 24:
        raise ValueError("Behavior slots must cover the full day (0-24)")


class BehaviorProfile:
    """
    Ordered table of habitation slots covering the day exactly once.

    Example:
        ```python
        profile = BehaviorProfile()
        profile.behavior_for(19).active_appliance_keys
        # frozenset({'kettle', 'microwave', 'tv'})
        profile.autopilot_load(3).total_kw   # background + baseline only
        ```
    """

    def __init__(
        self,
        slots: Iterable[BehaviorSlot] = DEFAULT_SLOTS,
        appliances: Iterable[ApplianceSpec] = DEFAULT_APPLIANCES,
    ) -> None:
        self.slots: List[BehaviorSlot] = list(slots)
        _validate_slots(self.slots)
        self.appliances: List[ApplianceSpec] = list(appliances)

    def slot_for(self, hour: int) -> BehaviorSlot:
        for slot in self.slots:
            if slot.contains(hour):
                return slot
        # unreachable for a validated table and 0 <= hour < 24
        return self.slots[0]

    def behavior_for(self, hour: int) -> Behavior:
        slot = self.slot_for(hour)
        return Behavior(
            background_flux_kw=slot.background_flux_kw,
            active_appliance_keys=slot.active_appliances,
        )

    def autopilot_load(
        self,
        hour: int,
        appliances: Iterable[ApplianceSpec] | None = None,
    ) -> AutopilotLoad:
        """
        Estimate the base load for ``hour`` from background flux and appliances.

        Args:
            hour: Local hour of day (0-23).
            appliances: Appliance ratings; defaults to the profile's list.

        Returns:
            AutopilotLoad with the total, the background component and the
            keys active in the slot.
        """
        behavior = self.behavior_for(hour)
        total = behavior.background_flux_kw
        for appliance in self.appliances if appliances is None else appliances:
            if appliance.is_baseline or appliance.key in behavior.active_appliance_keys:
                total += appliance.rated_power_kw
        return AutopilotLoad(
            total_kw=total,
            background_kw=behavior.background_flux_kw,
            active_keys=behavior.active_appliance_keys,
        )
