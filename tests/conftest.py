from __future__ import annotations

import pytest
from datetime import datetime
from pathlib import Path
import sys
from typing import Any

import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sim_smart_home.db.session import Base  # noqa: E402
from sim_smart_home.persistence import PersistenceService  # noqa: E402


@pytest.fixture()
def sqlite_session_factory():
    """Provide a session factory bound to an in-memory SQLite database."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    yield Session
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def persistence(sqlite_session_factory):
    """Provide a PersistenceService bound to the temporary SQLite DB."""
    return PersistenceService(session_factory=sqlite_session_factory)


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, payload: Any = None, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        if not self.ok:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    """
    Records calls and replays queued responses.

    ``routes`` maps a URL substring to a response (or exception) or a list
    consumed in order.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str, dict]] = []

    def _dispatch(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        for fragment, response in self.routes.items():
            if fragment in url:
                if isinstance(response, list):
                    response = response.pop(0)
                if isinstance(response, Exception):
                    raise response
                return response
        raise requests.ConnectionError(f"No route for {url}")

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._dispatch("POST", url, **kwargs)


class ScriptedGenerator:
    """Text generator returning queued answers (or raising queued errors)."""

    def __init__(self, *answers: Any) -> None:
        self.answers = list(answers)
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture()
def fake_session_cls():
    return FakeSession


@pytest.fixture()
def fake_response_cls():
    return FakeResponse


@pytest.fixture()
def scripted_generator_cls():
    return ScriptedGenerator


@pytest.fixture()
def winter_evening() -> datetime:
    """A weekday 17:00 in the evening peak window."""
    return datetime(2024, 7, 1, 17, 0)
