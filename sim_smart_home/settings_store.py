"""
User settings service with section-level merge and change notification.

The store replaces the browser's shared key-value state: it is created once
and injected into the engine and the API, and the simulation core only ever
receives plain values extracted from it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ThermalType = Literal["WEATHERBOARD", "BRICK_VENEER", "MODERN", "AI_FINGERPRINT"]
SECTIONS = ("field", "space", "energy", "time")


class FieldSettings(BaseModel):
    """Household load settings."""
    model_config = ConfigDict(validate_assignment=True)

    base_load_kw: float = Field(0.85, ge=0.0, description="Base load fed to the simulator (kW)")
    background_flux: float = Field(0.75, ge=0.0, description="Background flux of the current slot (kW)")
    habit: str = Field("HOME_OFFICE", description="Habitation pattern label")
    autopilot: bool = Field(True, description="Derive base load from the behavior profile")


class SpaceSettings(BaseModel):
    """Indoor / outdoor climate settings."""
    model_config = ConfigDict(validate_assignment=True)

    outdoor_temp: float = Field(14.5, description="Outdoor temperature (°C)")
    indoor_target: float = Field(22.0, description="Indoor set point (°C)")
    override: bool = Field(False, description="Manual outdoor temperature overrides live weather")


class EnergySettings(BaseModel):
    """Hardware and thermal model settings."""
    model_config = ConfigDict(validate_assignment=True)

    tier_id: str = Field("standard", description="Hardware tier identifier")
    battery_modules: int = Field(3, ge=0, le=16, description="Number of 5.12 kWh modules")
    pv_efficiency: float = Field(0.18, gt=0.0, le=1.0, description="PV module efficiency")
    thermal_type: ThermalType = Field("BRICK_VENEER", description="Building thermal model")
    thermal_coefficient: float = Field(1.2, gt=0.0, description="Heat-loss multiplier")
    fingerprint_val: float = Field(0.82, gt=0.0, description="Learned thermal fingerprint")
    dhw_target: float = Field(55.0, gt=0.0, le=95.0, description="Hot water set point (°C)")
    dhw_tank_volume: float = Field(200.0, gt=0.0, description="Hot water tank volume (L)")


class TimeSettings(BaseModel):
    """Tariff price overrides."""
    model_config = ConfigDict(validate_assignment=True)

    peak_price: float = Field(0.38, ge=0.0, description="Peak price (currency/kWh)")
    offpeak_price: float = Field(0.15, ge=0.0, description="Offpeak price (currency/kWh)")


class HomeSettings(BaseModel):
    field: FieldSettings = Field(default_factory=FieldSettings)
    space: SpaceSettings = Field(default_factory=SpaceSettings)
    energy: EnergySettings = Field(default_factory=EnergySettings)
    time: TimeSettings = Field(default_factory=TimeSettings)

    @classmethod
    def from_partial(cls, data: Mapping[str, Any] | None) -> "HomeSettings":
        """
        Build settings from a possibly incomplete stored mapping.

        Missing sections and keys fall back to defaults; unknown sections are
        ignored. Older payloads storing the tier as ``midea_tier`` are accepted.
        """
        payload: Dict[str, Any] = {}
        for section in SECTIONS:
            values = dict((data or {}).get(section) or {})
            if section == "energy" and "midea_tier" in values and "tier_id" not in values:
                values["tier_id"] = values.pop("midea_tier")
            payload[section] = values
        return cls.model_validate(payload)


Subscriber = Callable[[HomeSettings], None]


class ConfigStore:
    """
    In-process settings service.

    ``update`` merges into one section (never a full overwrite), validates
    the result and notifies subscribers synchronously.

    Example:
        ```python
        store = ConfigStore()
        unsubscribe = store.subscribe(lambda s: print(s.space.indoor_target))
        store.update("space", {"indoor_target": 21.0})   # prints 21.0
        unsubscribe()
        ```
    """

    def __init__(self, initial: HomeSettings | Mapping[str, Any] | None = None) -> None:
        if isinstance(initial, HomeSettings):
            self._settings = initial.model_copy(deep=True)
        else:
            self._settings = HomeSettings.from_partial(initial)
        self._subscribers: List[Subscriber] = []

    def get(self) -> HomeSettings:
        return self._settings.model_copy(deep=True)

    def as_dict(self) -> Dict[str, Any]:
        return self._settings.model_dump()

    def update(self, section: str, values: Mapping[str, Any]) -> HomeSettings:
        """
        Merge ``values`` into ``section`` and notify subscribers.

        Raises:
            KeyError: Unknown section.
            pydantic.ValidationError: A value is invalid for its field.
        """
        if section not in SECTIONS:
            raise KeyError(section)
        current = getattr(self._settings, section)
        merged_section = type(current).model_validate({**current.model_dump(), **dict(values)})
        self._settings = self._settings.model_copy(update={section: merged_section})
        snapshot = self.get()
        self._notify(snapshot)
        return snapshot

    def replace(self, settings: HomeSettings | Mapping[str, Any]) -> HomeSettings:
        """Swap in a complete settings object (e.g. loaded from a snapshot)."""
        if isinstance(settings, HomeSettings):
            self._settings = settings.model_copy(deep=True)
        else:
            self._settings = HomeSettings.from_partial(settings)
        snapshot = self.get()
        self._notify(snapshot)
        return snapshot

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, settings: HomeSettings) -> None:
        for callback in list(self._subscribers):
            try:
                callback(settings)
            except Exception:
                logger.exception("Settings subscriber %r failed", callback)
