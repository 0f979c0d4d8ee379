from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from sim_smart_home.settings_store import ConfigStore, HomeSettings


def test_defaults() -> None:
    settings = ConfigStore().get()
    assert settings.field.autopilot is True
    assert settings.space.indoor_target == pytest.approx(22.0)
    assert settings.energy.tier_id == "standard"
    assert settings.energy.battery_modules == 3
    assert settings.time.peak_price == pytest.approx(0.38)


def test_update_merges_into_one_section() -> None:
    store = ConfigStore()
    settings = store.update("space", {"indoor_target": 21.0})
    assert settings.space.indoor_target == pytest.approx(21.0)
    assert settings.space.outdoor_temp == pytest.approx(14.5)
    assert settings.space.override is False
    assert settings.field == HomeSettings().field


def test_unknown_section_rejected() -> None:
    with pytest.raises(KeyError):
        ConfigStore().update("garage", {"door": "open"})


def test_invalid_value_leaves_settings_untouched() -> None:
    store = ConfigStore()
    with pytest.raises(ValidationError):
        store.update("energy", {"battery_modules": -2})
    assert store.get().energy.battery_modules == 3


def test_get_returns_a_copy() -> None:
    store = ConfigStore()
    settings = store.get()
    settings.space.indoor_target = 30.0
    assert store.get().space.indoor_target == pytest.approx(22.0)


def test_subscribers_notified_until_unsubscribed() -> None:
    store = ConfigStore()
    seen: list[float] = []
    unsubscribe = store.subscribe(lambda s: seen.append(s.space.indoor_target))

    store.update("space", {"indoor_target": 20.0})
    unsubscribe()
    store.update("space", {"indoor_target": 19.0})

    assert seen == [20.0]


def test_failing_subscriber_does_not_block_others(caplog) -> None:
    store = ConfigStore()
    seen: list[str] = []

    def broken(_settings: HomeSettings) -> None:
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(lambda s: seen.append(s.field.habit))

    with caplog.at_level(logging.ERROR, logger="sim_smart_home"):
        store.update("field", {"habit": "AWAY"})

    assert seen == ["AWAY"]
    assert "subscriber" in caplog.text


def test_from_partial_fills_defaults_and_accepts_legacy_tier_key() -> None:
    settings = HomeSettings.from_partial(
        {"energy": {"midea_tier": "ARCTIC_14", "battery_modules": 5}, "space": None}
    )
    assert settings.energy.tier_id == "ARCTIC_14"
    assert settings.energy.battery_modules == 5
    assert settings.space.indoor_target == pytest.approx(22.0)


def test_replace_swaps_everything() -> None:
    store = ConfigStore()
    replaced = store.replace({"time": {"peak_price": 0.5}})
    assert replaced.time.peak_price == pytest.approx(0.5)
    assert replaced.time.offpeak_price == pytest.approx(0.15)
