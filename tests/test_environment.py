from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
import requests

from sim_smart_home.environment import (
    FALLBACK_WEATHER,
    SOURCE_CACHED,
    SOURCE_LIVE,
    FixedClock,
    TimeProvider,
    WeatherProvider,
    irradiance_from_clouds,
)

CURRENT = {"main": {"temp": 9.5}, "clouds": {"all": 50}, "weather": [{"main": "Clouds"}]}
# 2024-07-01 00:00 UTC == 10:00 in Hobart.
FORECAST = {
    "list": [
        {"dt": 1719792000 + idx * 3 * 3600, "main": {"temp": 8.0}, "weather": [{"main": "Rain"}]}
        for idx in range(10)
    ]
}


def _provider(session) -> WeatherProvider:
    return WeatherProvider("0123456789abcdef", -42.88, 147.33, session=session)


def test_irradiance_from_clouds() -> None:
    assert irradiance_from_clouds(0) == 1000.0
    assert irradiance_from_clouds(100) == 200.0
    assert irradiance_from_clouds(150) == 100.0


def test_disabled_provider_returns_fallback_without_calls(fake_session_cls) -> None:
    session = fake_session_cls()
    provider = WeatherProvider(None, 0.0, 0.0, session=session)
    assert provider.current() is FALLBACK_WEATHER
    assert session.calls == []
    assert FALLBACK_WEATHER.irradiance_wm2 == 800.0
    assert FALLBACK_WEATHER.outdoor_temp_c == 14.5


def test_live_reading_and_forecast(fake_session_cls, fake_response_cls) -> None:
    session = fake_session_cls(
        {"/weather": fake_response_cls(CURRENT), "/forecast": fake_response_cls(FORECAST)}
    )
    reading = _provider(session).current()

    assert reading.source == SOURCE_LIVE
    assert reading.is_live
    assert reading.outdoor_temp_c == pytest.approx(9.5)
    assert reading.irradiance_wm2 == pytest.approx(600.0)
    assert reading.description == "Clouds"
    parts = reading.forecast.split("; ")
    assert len(parts) == 8
    assert parts[0] == "10h: Rain, 8.0°C"
    assert session.calls[0][2]["params"]["units"] == "metric"


def test_failure_after_success_returns_last_known(fake_session_cls, fake_response_cls) -> None:
    session = fake_session_cls(
        {
            "/weather": [fake_response_cls(CURRENT), requests.ConnectionError("offline")],
            "/forecast": fake_response_cls(FORECAST),
        }
    )
    provider = _provider(session)
    live = provider.current()
    cached = provider.current()

    assert cached.source == SOURCE_CACHED
    assert cached.is_live is False
    assert cached.outdoor_temp_c == live.outdoor_temp_c
    assert cached.forecast == live.forecast


def test_http_error_without_history_returns_fallback(fake_session_cls, fake_response_cls) -> None:
    session = fake_session_cls({"/weather": fake_response_cls({}, status_code=500)})
    assert _provider(session).current() is FALLBACK_WEATHER


def test_forecast_failure_keeps_current_reading(fake_session_cls, fake_response_cls) -> None:
    session = fake_session_cls(
        {"/weather": fake_response_cls(CURRENT), "/forecast": fake_response_cls({"list": None})}
    )
    reading = _provider(session).current()
    assert reading.is_live
    assert reading.forecast == "Clouds"


def test_time_provider_sync_sets_offset(fake_session_cls, fake_response_cls) -> None:
    session = fake_session_cls(
        {"worldtimeapi": fake_response_cls({"datetime": "2024-07-01T12:00:00+10:00"})}
    )
    provider = TimeProvider("Australia/Hobart", session=session, clock=lambda: 1000.0)

    assert provider.sync() is True
    assert provider.now() == datetime(2024, 7, 1, 12, 0, tzinfo=ZoneInfo("Australia/Hobart"))
    assert provider.now().tzinfo is not None
    assert provider.last_sync is not None


def test_time_provider_sync_failure_keeps_local_clock(fake_session_cls) -> None:
    provider = TimeProvider("Australia/Hobart", session=fake_session_cls(), clock=lambda: 1000.0)
    assert provider.sync() is False
    assert provider.offset_seconds == 0.0
    assert provider.now().timestamp() == pytest.approx(1000.0)


def test_fixed_clock_advances() -> None:
    clock = FixedClock(datetime(2024, 7, 1, 23, 59))
    assert clock.advance(timedelta(minutes=2)) == datetime(2024, 7, 2, 0, 1)
    assert clock.now() == datetime(2024, 7, 2, 0, 1)
    assert clock.sync() is True
