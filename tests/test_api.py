from __future__ import annotations

from datetime import datetime

import numpy as np
from fastapi.testclient import TestClient

from sim_smart_home.advisor import ADVISOR_DISABLED, NaturalLanguageAdvisor
from sim_smart_home.api import dependencies
from sim_smart_home.api.app import create_app
from sim_smart_home.engine import DashboardEngine
from sim_smart_home.environment import FixedClock
from sim_smart_home.persistence import PersistenceService
from sim_smart_home.settings_store import ConfigStore


def create_test_client(
    persistence: PersistenceService,
    generator=None,
) -> tuple[TestClient, DashboardEngine]:
    """Build a FastAPI test client with an offline engine and in-memory persistence."""
    app = create_app()
    engine = DashboardEngine(
        ConfigStore(),
        FixedClock(datetime(2024, 7, 1, 17, 0)),
        advisor=NaturalLanguageAdvisor(generator),
        persistence=persistence,
        rng=np.random.default_rng(0),
    )
    app.dependency_overrides[dependencies.get_engine] = lambda: engine
    app.dependency_overrides[dependencies.get_persistence_service] = lambda: persistence
    return TestClient(app), engine


def test_dashboard_runs_first_cycle_and_lists_it(persistence: PersistenceService):
    """Exercise /api/dashboard, /api/cycle and /api/cycles."""
    client, engine = create_test_client(persistence)

    resp = client.get("/api/dashboard")
    assert resp.status_code == 200
    data = resp.json()
    assert data["strategy"]["period"] == "peak"
    assert data["governance"]["sovereignty"] == "ADVISORY"
    assert 10.0 <= data["state"]["battery_soc_percent"] <= 100.0

    again = client.get("/api/dashboard")
    assert again.json()["local_time"] == data["local_time"]

    assert client.post("/api/cycle").status_code == 200

    cycles = client.get("/api/cycles").json()
    assert len(cycles) == 2
    assert cycles[0]["payload"] is None
    detailed = client.get("/api/cycles", params={"include_payload": True, "limit": 1}).json()
    assert len(detailed) == 1
    assert detailed[0]["payload"]["strategy"]["goal"] == "PEAK_SHAVING"


def test_settings_update_and_validation(persistence: PersistenceService):
    """PATCH merges one section, persists it, and rejects bad input."""
    client, engine = create_test_client(persistence)

    assert client.get("/api/settings").json()["space"]["indoor_target"] == 22.0

    resp = client.patch("/api/settings/space", json={"indoor_target": 20.5})
    assert resp.status_code == 200
    assert resp.json()["space"]["indoor_target"] == 20.5
    assert resp.json()["space"]["outdoor_temp"] == 14.5
    assert persistence.load_latest_settings()["space"]["indoor_target"] == 20.5
    assert engine.store.get().space.indoor_target == 20.5

    assert client.patch("/api/settings/garage", json={"door": 1}).status_code == 404
    assert client.patch("/api/settings/energy", json={"battery_modules": -1}).status_code == 422
    assert engine.store.get().energy.battery_modules == 3


def test_catalog_endpoints(persistence: PersistenceService):
    """Tiers, tariff and behavior reference data."""
    client, _ = create_test_client(persistence)

    tiers = client.get("/api/tiers").json()
    assert [tier["id"] for tier in tiers] == ["standard", "high_capacity"]
    assert tiers[0]["max_battery_power_kw"] == 7.5

    tariff = client.get("/api/tariff", params={"at": "2024-07-01T06:45:00"}).json()
    assert tariff["period"] == "offpeak"
    assert tariff["goal"] == "PRE_CHARGE"
    assert tariff["next_change_hint"] == "Imminent"

    client.patch("/api/settings/time", json={"peak_price": 0.5})
    assert client.get("/api/tariff", params={"at": "2024-07-01T08:00:00"}).json()["price"] == 0.5
    assert client.get("/api/tariff").json()["period"] == "peak"

    behavior = client.get("/api/behavior/19").json()
    assert behavior["label"] == "dinner"
    assert behavior["active_appliances"] == ["kettle", "microwave", "tv"]
    assert client.get("/api/behavior/24").status_code == 422


def test_advisor_endpoints_offline(persistence: PersistenceService):
    """Without a language model the advisor answers with a fixed message."""
    client, _ = create_test_client(persistence)

    insight = client.get("/api/advisor/insight").json()
    assert insight == {"insight": ADVISOR_DISABLED, "enabled": False}

    resp = client.post("/api/advisor/command", json={"command": "warmer please"})
    assert resp.status_code == 200
    assert resp.json()["delta"] is None
    assert resp.json()["feedback"] == ADVISOR_DISABLED

    assert client.post("/api/advisor/command", json={"command": ""}).status_code == 422


def test_advisor_command_applies_and_persists(persistence: PersistenceService, scripted_generator_cls):
    """A whitelisted delta from the model is applied and saved."""
    generator = scripted_generator_cls(
        '{"delta": {"space": {"indoor_target": 23}}, "feedback": "Raising the set point."}'
    )
    client, engine = create_test_client(persistence, generator=generator)

    resp = client.post("/api/advisor/command", json={"command": "make it warmer", "lang": "en"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["delta"] == {"space": {"indoor_target": 23}}
    assert body["settings"]["space"]["indoor_target"] == 23.0
    assert persistence.load_latest_settings()["space"]["indoor_target"] == 23.0


def test_logs_endpoint(persistence: PersistenceService):
    client, _ = create_test_client(persistence)
    client.patch("/api/settings/field", json={"habit": "AWAY"})
    logs = client.get("/api/logs", params={"limit": 50}).json()
    assert any("Settings section 'field' updated" in entry["message"] for entry in logs)
