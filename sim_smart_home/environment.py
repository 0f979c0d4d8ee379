"""
Environmental inputs: live weather and a network-synchronized clock.

Both providers degrade gracefully. Failures are logged and the last known
(or a hard-coded) value is returned so an offline dashboard still simulates.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List
from zoneinfo import ZoneInfo

import requests

logger = logging.getLogger(__name__)

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"
WORLDTIME_URL = "https://worldtimeapi.org/api/timezone/{zone}"

FALLBACK_IRRADIANCE_WM2 = 800.0
FALLBACK_OUTDOOR_TEMP_C = 14.5
FALLBACK_DESCRIPTION = "clear"
MIN_IRRADIANCE_WM2 = 100.0
FORECAST_ENTRIES = 8  # 8 x 3h = 24h

SOURCE_DEFAULT = "DEFAULT_SIM"
SOURCE_LIVE = "LIVE_OPEN_WEATHER"
SOURCE_CACHED = "LAST_KNOWN"


@dataclass(frozen=True)
class WeatherReading:
    """
    Weather inputs for one evaluation cycle.

    Attributes:
        irradiance_wm2: Irradiance proxy derived from cloud cover (W/m²).
        outdoor_temp_c: Outdoor temperature (°C).
        description: Short condition label (e.g. "clear", "Rain").
        forecast: 24h textual summary ("6h: Clouds, 12.1°C; ...").
        source: DEFAULT_SIM, LIVE_OPEN_WEATHER or LAST_KNOWN.
    """
    irradiance_wm2: float = FALLBACK_IRRADIANCE_WM2
    outdoor_temp_c: float = FALLBACK_OUTDOOR_TEMP_C
    description: str = FALLBACK_DESCRIPTION
    forecast: str = FALLBACK_DESCRIPTION
    source: str = SOURCE_DEFAULT

    @property
    def is_live(self) -> bool:
        return self.source == SOURCE_LIVE


FALLBACK_WEATHER = WeatherReading()


def irradiance_from_clouds(cloud_percent: float) -> float:
    """Crude irradiance proxy: clear sky 1000 W/m², -8 W/m² per % cloud, floor 100."""
    return max(MIN_IRRADIANCE_WM2, 1000.0 - cloud_percent * 8.0)


class WeatherProvider:
    """
    OpenWeather client with fallback.

    Args:
        api_key: OpenWeather key; None disables network calls.
        latitude: Site latitude.
        longitude: Site longitude.
        timezone: Zone used to label forecast hours.
        session: requests-compatible session (injectable for tests).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str | None,
        latitude: float,
        longitude: float,
        timezone: str = "Australia/Hobart",
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.latitude = latitude
        self.longitude = longitude
        self.tz = ZoneInfo(timezone)
        self.timeout = timeout
        self._session = session or requests.Session()
        self._last_live: WeatherReading | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def current(self) -> WeatherReading:
        """Return the latest reading; never raises."""
        if not self.enabled:
            return FALLBACK_WEATHER
        try:
            reading = self._fetch_current()
        except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
            logger.warning("Weather fetch failed: %s", exc)
            if self._last_live is not None:
                return replace(self._last_live, source=SOURCE_CACHED)
            return FALLBACK_WEATHER

        try:
            forecast = self._fetch_forecast()
        except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
            logger.warning("Forecast fetch failed: %s", exc)
            forecast = self._last_live.forecast if self._last_live else reading.description
        reading = replace(reading, forecast=forecast)
        self._last_live = reading
        logger.info(
            "Weather sync: %.1f°C (%s), irradiance %.0f W/m²",
            reading.outdoor_temp_c,
            reading.description,
            reading.irradiance_wm2,
        )
        return reading

    def _get(self, endpoint: str) -> Dict[str, Any]:
        response = self._session.get(
            f"{OPENWEATHER_BASE_URL}/{endpoint}",
            params={
                "lat": self.latitude,
                "lon": self.longitude,
                "appid": self.api_key,
                "units": "metric",
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def _fetch_current(self) -> WeatherReading:
        payload = self._get("weather")
        main = payload["main"]
        clouds = (payload.get("clouds") or {}).get("all") or 0
        conditions = payload.get("weather") or [{}]
        description = conditions[0].get("main") or "Clear"
        return WeatherReading(
            irradiance_wm2=irradiance_from_clouds(float(clouds)),
            outdoor_temp_c=float(main["temp"]),
            description=description,
            forecast=description,
            source=SOURCE_LIVE,
        )

    def _fetch_forecast(self) -> str:
        payload = self._get("forecast")
        parts: List[str] = []
        for entry in payload["list"][:FORECAST_ENTRIES]:
            hour = datetime.fromtimestamp(entry["dt"], tz=self.tz).hour
            desc = entry["weather"][0]["main"]
            parts.append(f"{hour}h: {desc}, {entry['main']['temp']}°C")
        return "; ".join(parts)


class TimeProvider:
    """
    Local wall clock corrected by an offset to a network time source.

    ``sync`` is optional: until it succeeds the offset is zero and the host
    clock is used.
    """

    def __init__(
        self,
        timezone: str = "Australia/Hobart",
        session: requests.Session | None = None,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.timezone = timezone
        self.tz = ZoneInfo(timezone)
        self.timeout = timeout
        self._session = session or requests.Session()
        self._clock = clock
        self.offset_seconds = 0.0
        self.last_sync: datetime | None = None

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._clock() + self.offset_seconds, tz=self.tz)

    def sync(self) -> bool:
        """Refresh the offset; returns False (keeping the old offset) on failure."""
        start = self._clock()
        try:
            response = self._session.get(
                WORLDTIME_URL.format(zone=self.timezone),
                timeout=self.timeout,
            )
            response.raise_for_status()
            remote = datetime.fromisoformat(response.json()["datetime"])
        except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
            logger.warning("Time sync failed, using local clock: %s", exc)
            return False
        latency = self._clock() - start
        internet_time = remote.timestamp() + latency / 2.0
        self.offset_seconds = internet_time - self._clock()
        self.last_sync = self.now()
        logger.info("Time sync offset set: %.3fs", self.offset_seconds)
        return True


class FixedClock:
    """Clock returning a fixed (or manually advanced) time; used offline and in tests."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> datetime:
        self._now = self._now + delta
        return self._now

    def sync(self) -> bool:
        return True
