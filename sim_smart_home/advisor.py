"""
Natural-language advisor.

The dashboard depends only on the :class:`TextGenerator` capability
(``generate(prompt) -> str``). Concrete backends are tried in priority order
by :class:`FallbackGenerator`; authentication failures stop the search,
unavailable backends fall through to the next candidate.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Protocol, Sequence

import requests

from .environment import WeatherReading
from .settings_store import HomeSettings

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/{version}/models/{model}:generateContent"
GEMINI_CANDIDATES = (
    ("v1beta", "gemini-1.5-flash-latest"),
    ("v1beta", "gemini-1.5-flash"),
    ("v1", "gemini-1.5-flash"),
    ("v1", "gemini-pro"),
    ("v1beta", "gemini-pro"),
)

INSIGHT_TTL_SECONDS = 45.0
AWAITING_INSIGHT = "Awaiting neural synchronization..."
ADVISOR_DISABLED = "Advisor offline: no language model configured."

# Settings a command may change, as (section, key).
COMMAND_KEYS = {
    ("field", "base_load_kw"),
    ("field", "habit"),
    ("field", "autopilot"),
    ("space", "indoor_target"),
    ("space", "override"),
    ("time", "peak_price"),
    ("time", "offpeak_price"),
}


class AdvisorError(Exception):
    """Base class for text generation failures."""


class ServiceUnavailable(AdvisorError):
    """Backend missing, unreachable or returned an unusable answer."""


class AuthError(AdvisorError):
    """Credentials rejected; retrying other models will not help."""


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str: ...


class GeminiBackend:
    """Single Gemini model/version endpoint."""

    def __init__(
        self,
        api_key: str,
        version: str,
        model: str,
        session: requests.Session | None = None,
        timeout: float = 20.0,
    ) -> None:
        self.api_key = api_key
        self.version = version
        self.model = model
        self.timeout = timeout
        self._session = session or requests.Session()

    def __repr__(self) -> str:
        return f"GeminiBackend({self.version}/{self.model})"

    def generate(self, prompt: str) -> str:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.7,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": 300,
            },
        }
        try:
            response = self._session.post(
                GEMINI_URL.format(version=self.version, model=self.model),
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ServiceUnavailable(f"{self.model}: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthError(f"Auth Error ({response.status_code}): check the API key")
        if not response.ok:
            raise ServiceUnavailable(f"HTTP {response.status_code} on {self.model}")
        try:
            return response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ServiceUnavailable(f"Malformed response from {self.model}") from exc


class FallbackGenerator:
    """Try ``backends`` in order until one answers."""

    def __init__(self, backends: Sequence[TextGenerator]) -> None:
        self.backends = list(backends)

    def generate(self, prompt: str) -> str:
        last_error: AdvisorError | None = None
        for backend in self.backends:
            try:
                return backend.generate(prompt)
            except AuthError:
                raise
            except ServiceUnavailable as exc:
                logger.warning("Advisor backend %r unavailable: %s", backend, exc)
                last_error = exc
        raise last_error or ServiceUnavailable("No compatible language model backend")


def default_gemini_chain(api_key: str, session: requests.Session | None = None) -> FallbackGenerator:
    session = session or requests.Session()
    return FallbackGenerator(
        [GeminiBackend(api_key, version, model, session=session) for version, model in GEMINI_CANDIDATES]
    )


@dataclass(frozen=True)
class CommandResult:
    delta: Dict[str, Dict[str, Any]] | None
    feedback: str


def extract_command_result(raw: str) -> CommandResult:
    """
    Best-effort parse of a model answer into a :class:`CommandResult`.

    Tries the outermost ``{...}`` as JSON, then a ``"feedback": "..."``
    pattern, then the first line of the raw text.
    """
    first, last = raw.find("{"), raw.rfind("}")
    if first == -1 or last == -1 or last < first:
        return CommandResult(delta=None, feedback=raw.strip())
    try:
        parsed = json.loads(raw[first:last + 1])
    except json.JSONDecodeError:
        match = re.search(r'"feedback":\s*"([^"]+)"', raw)
        feedback = match.group(1) if match else raw.strip().split("\n")[0].strip()
        return CommandResult(delta=None, feedback=feedback)
    if not isinstance(parsed, dict):
        return CommandResult(delta=None, feedback=raw.strip())
    delta = parsed.get("delta")
    return CommandResult(
        delta=delta if isinstance(delta, dict) else None,
        feedback=str(parsed.get("feedback") or "").strip(),
    )


def filter_delta(delta: Mapping[str, Any] | None) -> Dict[str, Dict[str, Any]]:
    """Keep only whitelisted ``section.key`` entries of a proposed change."""
    filtered: Dict[str, Dict[str, Any]] = {}
    for section, values in (delta or {}).items():
        if not isinstance(values, Mapping):
            continue
        for key, value in values.items():
            if (section, key) in COMMAND_KEYS:
                filtered.setdefault(section, {})[key] = value
    return filtered


def _telemetry_summary(telemetry: Mapping[str, Any] | None) -> Dict[str, Any]:
    telemetry = telemetry or {}
    return {
        "solar": telemetry.get("solar_pv_kw"),
        "pv_day": telemetry.get("daily_pv_kwh"),
        "load_day": telemetry.get("daily_load_kwh"),
        "batt": telemetry.get("battery_soc_percent"),
        "load": telemetry.get("total_load_kw"),
    }


class NaturalLanguageAdvisor:
    """
    Insight and command interface backed by a :class:`TextGenerator`.

    Insights are cached for 45 seconds; while a request is in flight the
    cached text is returned instead of issuing another one.
    """

    def __init__(
        self,
        generator: TextGenerator | None,
        clock: Callable[[], float] = time.monotonic,
        ttl_seconds: float = INSIGHT_TTL_SECONDS,
    ) -> None:
        self.generator = generator
        self._clock = clock
        self.ttl_seconds = ttl_seconds
        self.last_insight = ""
        self._next_update = 0.0
        self._thinking = False

    @property
    def enabled(self) -> bool:
        return self.generator is not None

    def insight(
        self,
        telemetry: Mapping[str, Any],
        period: str,
        weather: WeatherReading,
        local_time: str,
        lang: str = "en",
    ) -> str:
        if self.generator is None:
            return ADVISOR_DISABLED
        now = self._clock()
        if self._thinking:
            return self.last_insight or AWAITING_INSIGHT
        if self.last_insight and now < self._next_update:
            return self.last_insight

        summary = (
            f"Time: {local_time}\n"
            f"Solar: {telemetry.get('solar_pv_kw', 0.0):.2f} kW "
            f"(Today: {telemetry.get('daily_pv_kwh', 0.0):.1f} kWh)\n"
            f"Battery: {telemetry.get('battery_soc_percent', 0.0):.1f}%\n"
            f"Total Load: {telemetry.get('total_load_kw', 0.0):.2f} kW\n"
            f"Grid Tariff: {period}\n"
            f"Environment: {weather.forecast} (Temp: {weather.outdoor_temp_c:.1f}°C)"
        )
        language = "Chinese" if lang == "zh" else "English"
        prompt = (
            "You are AURA, an advanced governance AI. Analyze the telemetry and 24h "
            "forecast below to provide a 2-sentence Neural Insight in "
            f"{language}. Focus on predictive advice based on the forecast trends "
            f"(e.g. rain prep, thermal buffering). No greetings. Telemetry: {summary}"
        )

        self._thinking = True
        try:
            self.last_insight = self.generator.generate(prompt).strip()
            self._next_update = now + self.ttl_seconds
        except AdvisorError as exc:
            logger.warning("Insight generation failed: %s", exc)
            if not self.last_insight:
                self.last_insight = AWAITING_INSIGHT
        finally:
            self._thinking = False
        return self.last_insight

    def interpret(
        self,
        command: str,
        settings: HomeSettings,
        telemetry: Mapping[str, Any] | None,
        forecast: str,
        lang: str = "en",
    ) -> CommandResult:
        """
        Ask the model to turn ``command`` into a settings delta and feedback.

        Never raises: generator failures become a feedback message.
        """
        if self.generator is None:
            return CommandResult(delta=None, feedback=ADVISOR_DISABLED)

        allowed = ", ".join(sorted(f"{section}.{key}" for section, key in COMMAND_KEYS))
        language = "Chinese" if lang == "zh" else "English"
        prompt = (
            "You are AURA, the core energy controller.\n"
            f'USER INPUT: "{command}"\n\n'
            "CONTEXT:\n"
            f"- Persistent Config: {json.dumps(settings.model_dump())}\n"
            f"- Live Telemetry: {json.dumps(_telemetry_summary(telemetry))}\n"
            f"- 24h Forecast: {forecast}\n\n"
            "RULES:\n"
            "1. If asking about data, answer using thermal or economic terms "
            "(COP, Entropy, ToU, Peak Shaving) if relevant.\n"
            f"2. Valid keys: {allowed}.\n"
            "3. If the user wants to save money, suggest lowering time.peak_price and "
            'explain the "Peak Shaving" strategy.\n'
            "4. CRITICAL: Return ONLY a JSON object. No Markdown.\n\n"
            "SCHEMA:\n"
            '{"delta": {"category": {"key": "value"}} or null, '
            f'"feedback": "A single concise expert sentence in {language}."}}'
        )
        try:
            raw = self.generator.generate(prompt)
        except AdvisorError as exc:
            logger.error("Advisor command failed: %s", exc)
            return CommandResult(delta=None, feedback=f"Neural link severance: {exc}")
        logger.debug("Advisor raw response: %s", raw)
        result = extract_command_result(raw)
        delta = filter_delta(result.delta)
        return CommandResult(delta=delta or None, feedback=result.feedback)
