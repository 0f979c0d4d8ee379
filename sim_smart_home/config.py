from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict


def _load_dotenv(path: str = ".env") -> Dict[str, str]:
    """
    Basic .env loader to populate os.environ.
    Returns a mapping of parsed key/value pairs; existing variables win.
    """
    env_path = Path(path)
    if not env_path.exists():
        return {}

    parsed: Dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        os.environ.setdefault(key, value)
        parsed[key] = value
    return parsed


_load_dotenv()


def get_database_url() -> str:
    """
    Determine the SQLAlchemy database URL, preferring PostgreSQL if configured.

    Returns:
        Database connection string compatible with SQLAlchemy.
    """
    dsn = os.getenv("POSTGRES_DSN")
    if dsn:
        return dsn

    db_path = Path(os.getenv("SIM_HOME_DB_PATH", "sim_home.db")).expanduser()
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+pysqlite:///{db_path}"


def api_key_configured(value: str | None) -> bool:
    """True when ``value`` looks like a real key rather than a placeholder."""
    if not value:
        return False
    return len(value) > 10 and "YOUR_" not in value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Process-level settings read from the environment.

    Attributes:
        poll_seconds: Interval between evaluation cycles.
        time_sync_seconds: Interval between network clock refreshes.
        redline_kw: Net-load safety ceiling used by the arbiter.
        timezone: IANA zone of the simulated home.
        latitude: Site latitude for weather lookups.
        longitude: Site longitude for weather lookups.
        openweather_api_key: Key for the weather provider (None disables it).
        google_api_key: Key for the language-model advisor (None disables it).
    """
    poll_seconds: float = 60.0
    time_sync_seconds: float = 3600.0
    redline_kw: float = 8.5
    timezone: str = "Australia/Hobart"
    latitude: float = -42.8821
    longitude: float = 147.3272
    openweather_api_key: str | None = None
    google_api_key: str | None = None


def get_runtime_config() -> RuntimeConfig:
    """Build a :class:`RuntimeConfig` from environment variables."""
    weather_key = os.getenv("OPENWEATHER_API_KEY")
    google_key = os.getenv("GOOGLE_API_KEY")
    return RuntimeConfig(
        poll_seconds=_env_float("SIM_HOME_POLL_SECONDS", 60.0),
        time_sync_seconds=_env_float("SIM_HOME_TIME_SYNC_SECONDS", 3600.0),
        redline_kw=_env_float("SIM_HOME_REDLINE_KW", 8.5),
        timezone=os.getenv("SIM_HOME_TIMEZONE", "Australia/Hobart"),
        latitude=_env_float("SIM_HOME_LATITUDE", -42.8821),
        longitude=_env_float("SIM_HOME_LONGITUDE", 147.3272),
        openweather_api_key=weather_key if api_key_configured(weather_key) else None,
        google_api_key=google_key if api_key_configured(google_key) else None,
    )
