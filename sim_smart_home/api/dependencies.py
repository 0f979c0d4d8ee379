from __future__ import annotations

from functools import lru_cache

from ..advisor import NaturalLanguageAdvisor, default_gemini_chain
from ..config import RuntimeConfig, get_runtime_config
from ..db.session import init_db
from ..engine import DashboardEngine
from ..environment import TimeProvider, WeatherProvider
from ..persistence import PersistenceService
from ..settings_store import ConfigStore
from ..simulation import BehaviorProfile, GovernanceArbiter, HardwareCatalog, ProcessSimulator


@lru_cache()
def get_config() -> RuntimeConfig:
    return get_runtime_config()


@lru_cache()
def get_persistence_service() -> PersistenceService:
    """
    Provide a cached PersistenceService instance for API routes.
    """
    init_db()
    return PersistenceService()


@lru_cache()
def get_catalog() -> HardwareCatalog:
    return HardwareCatalog()


@lru_cache()
def get_behavior_profile() -> BehaviorProfile:
    return BehaviorProfile()


@lru_cache()
def get_engine() -> DashboardEngine:
    """
    Provide the process-wide DashboardEngine.

    The settings store is seeded from the latest saved settings; weather,
    clock and advisor are built from the environment configuration.
    """
    config = get_config()
    persistence = get_persistence_service()
    store = ConfigStore(persistence.load_latest_settings())
    generator = default_gemini_chain(config.google_api_key) if config.google_api_key else None
    return DashboardEngine(
        store=store,
        clock=TimeProvider(config.timezone),
        weather=WeatherProvider(
            config.openweather_api_key,
            config.latitude,
            config.longitude,
            timezone=config.timezone,
        ),
        simulator=ProcessSimulator(get_catalog()),
        arbiter=GovernanceArbiter(config.redline_kw),
        behavior=get_behavior_profile(),
        advisor=NaturalLanguageAdvisor(generator),
        persistence=persistence,
    )
