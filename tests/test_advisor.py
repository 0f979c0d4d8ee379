from __future__ import annotations

import pytest

from sim_smart_home.advisor import (
    ADVISOR_DISABLED,
    AWAITING_INSIGHT,
    AuthError,
    FallbackGenerator,
    GeminiBackend,
    NaturalLanguageAdvisor,
    ServiceUnavailable,
    default_gemini_chain,
    extract_command_result,
    filter_delta,
)
from sim_smart_home.environment import FALLBACK_WEATHER
from sim_smart_home.settings_store import HomeSettings

TELEMETRY = {
    "solar_pv_kw": 3.2,
    "daily_pv_kwh": 14.0,
    "daily_load_kwh": 16.5,
    "battery_soc_percent": 71.0,
    "total_load_kw": 2.4,
}


class Ticker:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _insight(advisor: NaturalLanguageAdvisor) -> str:
    return advisor.insight(TELEMETRY, "peak", FALLBACK_WEATHER, "17:00")


def test_extract_json_wrapped_in_prose() -> None:
    result = extract_command_result(
        'Sure! ```json\n{"delta": {"space": {"indoor_target": 23}}, "feedback": "Warmer."}\n```'
    )
    assert result.delta == {"space": {"indoor_target": 23}}
    assert result.feedback == "Warmer."


def test_extract_malformed_json_uses_feedback_pattern() -> None:
    result = extract_command_result('{"delta": {bad}, "feedback": "Peak shaving engaged"}')
    assert result.delta is None
    assert result.feedback == "Peak shaving engaged"


def test_extract_plain_text() -> None:
    result = extract_command_result("  The battery is at 71%.  ")
    assert result.delta is None
    assert result.feedback == "The battery is at 71%."


def test_filter_delta_keeps_whitelisted_keys_only() -> None:
    delta = filter_delta(
        {
            "space": {"indoor_target": 21, "outdoor_temp": -40},
            "energy": {"tier_id": "high_capacity"},
            "time": {"peak_price": 0.3},
            "bogus": "value",
        }
    )
    assert delta == {"space": {"indoor_target": 21}, "time": {"peak_price": 0.3}}


def test_gemini_backend_parses_answer(fake_session_cls, fake_response_cls) -> None:
    payload = {"candidates": [{"content": {"parts": [{"text": "Hello"}]}}]}
    session = fake_session_cls({"generateContent": fake_response_cls(payload)})
    backend = GeminiBackend("key-123456789", "v1beta", "gemini-1.5-flash", session=session)

    assert backend.generate("prompt") == "Hello"
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert "v1beta/models/gemini-1.5-flash:generateContent" in url
    assert kwargs["params"] == {"key": "key-123456789"}
    assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "prompt"


@pytest.mark.parametrize(
    "status, payload, error",
    [
        (401, {}, AuthError),
        (403, {}, AuthError),
        (404, {}, ServiceUnavailable),
        (200, {"candidates": []}, ServiceUnavailable),
    ],
)
def test_gemini_backend_errors(fake_session_cls, fake_response_cls, status, payload, error) -> None:
    session = fake_session_cls({"generateContent": fake_response_cls(payload, status_code=status)})
    with pytest.raises(error):
        GeminiBackend("key-123456789", "v1", "gemini-pro", session=session).generate("prompt")


def test_fallback_tries_next_backend(scripted_generator_cls) -> None:
    first = scripted_generator_cls(ServiceUnavailable("404"))
    second = scripted_generator_cls("answer")
    assert FallbackGenerator([first, second]).generate("p") == "answer"
    assert len(first.prompts) == 1


def test_fallback_stops_on_auth_error(scripted_generator_cls) -> None:
    first = scripted_generator_cls(AuthError("401"))
    second = scripted_generator_cls("answer")
    with pytest.raises(AuthError):
        FallbackGenerator([first, second]).generate("p")
    assert second.prompts == []


def test_fallback_exhausted_raises_service_unavailable(scripted_generator_cls) -> None:
    with pytest.raises(ServiceUnavailable):
        FallbackGenerator([scripted_generator_cls(ServiceUnavailable("down"))]).generate("p")
    with pytest.raises(ServiceUnavailable):
        FallbackGenerator([]).generate("p")


def test_default_chain_has_five_candidates() -> None:
    chain = default_gemini_chain("key-123456789")
    assert len(chain.backends) == 5


def test_insight_is_cached_for_45_seconds(scripted_generator_cls) -> None:
    ticker = Ticker()
    generator = scripted_generator_cls("first", "second")
    advisor = NaturalLanguageAdvisor(generator, clock=ticker)

    assert _insight(advisor) == "first"
    ticker.now = 44.0
    assert _insight(advisor) == "first"
    ticker.now = 46.0
    assert _insight(advisor) == "second"
    assert len(generator.prompts) == 2
    assert "Battery: 71.0%" in generator.prompts[0]


def test_insight_failure_keeps_previous_text(scripted_generator_cls) -> None:
    ticker = Ticker()
    generator = scripted_generator_cls("stable insight", ServiceUnavailable("down"))
    advisor = NaturalLanguageAdvisor(generator, clock=ticker)

    assert _insight(advisor) == "stable insight"
    ticker.now = 100.0
    assert _insight(advisor) == "stable insight"


def test_insight_failure_without_history(scripted_generator_cls) -> None:
    advisor = NaturalLanguageAdvisor(scripted_generator_cls(AuthError("401")))
    assert _insight(advisor) == AWAITING_INSIGHT


def test_insight_in_flight_does_not_issue_second_request() -> None:
    nested: list[str] = []

    class ReentrantGenerator:
        def generate(self, prompt: str) -> str:
            nested.append(_insight(advisor))
            return "done"

    advisor = NaturalLanguageAdvisor(ReentrantGenerator())
    assert _insight(advisor) == "done"
    assert nested == [AWAITING_INSIGHT]


def test_disabled_advisor() -> None:
    advisor = NaturalLanguageAdvisor(None)
    assert advisor.enabled is False
    assert _insight(advisor) == ADVISOR_DISABLED
    result = advisor.interpret("warmer", HomeSettings(), TELEMETRY, "clear")
    assert result.delta is None
    assert result.feedback == ADVISOR_DISABLED


def test_interpret_filters_delta(scripted_generator_cls) -> None:
    generator = scripted_generator_cls(
        '{"delta": {"space": {"indoor_target": 23}, "energy": {"tier_id": "x"}}, "feedback": "Warmer."}'
    )
    result = NaturalLanguageAdvisor(generator).interpret(
        "make it warmer", HomeSettings(), TELEMETRY, "6h: Rain, 7.0°C", lang="zh"
    )
    assert result.delta == {"space": {"indoor_target": 23}}
    assert result.feedback == "Warmer."
    assert "Chinese" in generator.prompts[0]
    assert "make it warmer" in generator.prompts[0]


def test_interpret_failure_becomes_feedback(scripted_generator_cls) -> None:
    advisor = NaturalLanguageAdvisor(scripted_generator_cls(AuthError("Auth Error (401)")))
    result = advisor.interpret("status?", HomeSettings(), None, "clear")
    assert result.delta is None
    assert result.feedback.startswith("Neural link severance")
