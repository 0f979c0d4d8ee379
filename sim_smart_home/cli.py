from __future__ import annotations

import argparse
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Sequence
from zoneinfo import ZoneInfo

import numpy as np
from pydantic import ValidationError

from .config import get_runtime_config
from .db.session import init_db
from .engine import DashboardEngine
from .environment import FixedClock, WeatherProvider
from .logging_setup import setup_logging
from .persistence import PersistenceService
from .reporting import plot_day, simulate_day, summarize_day
from .settings_store import SECTIONS, ConfigStore, HomeSettings
from .simulation import GovernanceArbiter, HardwareCatalog, PricingStrategist


def build_argument_parser() -> argparse.ArgumentParser:
    """
    Build the CLI argument parser used by entry points.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(description="Smart home energy dashboard CLI")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    sub = parser.add_subparsers(dest="command")

    step = sub.add_parser("step", help="Run evaluation cycles and print the last snapshot")
    step.add_argument("--steps", type=int, default=1, help="Number of cycles to run")
    step.add_argument("--at", type=str, default=None, help="ISO start time (default: now)")
    step.add_argument("--dt-minutes", type=float, default=1.0, help="Simulated minutes per cycle")
    step.add_argument("--settings-file", type=str, default=None, help="JSON settings file")
    step.add_argument("--offline", action="store_true", help="Skip live weather")
    step.add_argument("--seed", type=int, default=None, help="Seed for the fingerprint drift")

    day = sub.add_parser("day", help="Replay a full day offline and print totals")
    day.add_argument("--start", type=str, default=None, help="ISO start time (default: today 00:00)")
    day.add_argument("--dt-minutes", type=float, default=1.0, help="Simulated minutes per step")
    day.add_argument("--settings-file", type=str, default=None, help="JSON settings file")
    day.add_argument("--csv", type=str, default=None, help="Write the per-step table to CSV")
    day.add_argument("--plot", type=str, default=None, help="Save a PNG chart of the day")
    day.add_argument("--seed", type=int, default=0, help="Seed for the fingerprint drift")

    tariff = sub.add_parser("tariff", help="Classify a time and show the lookahead strategy")
    tariff.add_argument("--at", type=str, default=None, help="ISO time (default: now)")
    tariff.add_argument("--settings-file", type=str, default=None, help="JSON settings file (default: saved settings)")

    sub.add_parser("tiers", help="List hardware tiers")

    settings = sub.add_parser("settings", help="Show or change saved settings")
    settings_sub = settings.add_subparsers(dest="settings_command")
    settings_sub.add_parser("show", help="Print the latest saved settings")
    settings_set = settings_sub.add_parser("set", help="Update keys of one section")
    settings_set.add_argument("section", choices=SECTIONS)
    settings_set.add_argument("assignments", nargs="+", help="KEY=VALUE pairs (VALUE parsed as JSON)")

    serve = sub.add_parser("serve", help="Run the HTTP API with background polling")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def _load_json_file(path: str | Path) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise SystemExit(f"File not found: {file_path}")
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON file ({file_path}): {exc}") from exc


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def _parse_time(raw: str | None, timezone: str) -> datetime:
    if raw is None:
        return datetime.now(ZoneInfo(timezone))
    try:
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise SystemExit(f"Invalid ISO time: {raw}") from exc


def _parse_assignments(assignments: Sequence[str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for item in assignments:
        if "=" not in item:
            raise SystemExit(f"Expected KEY=VALUE, got '{item}'")
        key, raw = item.split("=", 1)
        try:
            values[key.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            values[key.strip()] = raw
    return values


def _persistence() -> PersistenceService:
    init_db()
    return PersistenceService()


def _initial_settings(settings_file: str | None) -> HomeSettings:
    if settings_file:
        data = _load_json_file(settings_file)
    else:
        data = _persistence().load_latest_settings()
    try:
        return HomeSettings.from_partial(data)
    except ValidationError as exc:
        raise SystemExit(f"Invalid settings: {exc}") from exc


def main(argv: Sequence[str] | None = None) -> None:
    """
    CLI entry point for offline cycles, day replays and settings management.

    Args:
        argv: Optional sequence of CLI args (defaults to sys.argv).
    """
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.log_level)
    config = get_runtime_config()

    if args.command == "step":
        if args.steps < 1:
            parser.error("--steps must be >= 1")
        if args.dt_minutes <= 0:
            parser.error("--dt-minutes must be > 0")
        start = _parse_time(args.at, config.timezone)
        clock = FixedClock(start)
        weather = None
        if not args.offline:
            weather = WeatherProvider(
                config.openweather_api_key,
                config.latitude,
                config.longitude,
                timezone=config.timezone,
            )
        engine = DashboardEngine(
            ConfigStore(_initial_settings(args.settings_file)),
            clock,
            weather=weather,
            arbiter=GovernanceArbiter(config.redline_kw),
            rng=np.random.default_rng(args.seed),
            dt_hours=args.dt_minutes / 60.0,
        )
        when = start
        snapshot = None
        for _ in range(args.steps):
            snapshot = engine.run_cycle(now=when)
            when = when + timedelta(minutes=args.dt_minutes)
        _print_json(snapshot.as_dict())
        return

    if args.command == "day":
        if args.start:
            start = _parse_time(args.start, config.timezone)
        else:
            start = _parse_time(None, config.timezone).replace(hour=0, minute=0, second=0, microsecond=0)
        try:
            frame = simulate_day(
                _initial_settings(args.settings_file),
                start,
                dt_minutes=args.dt_minutes,
                seed=args.seed,
            )
        except ValueError as exc:
            parser.error(str(exc))
        if args.csv:
            frame.to_csv(args.csv, index=False)
        if args.plot:
            plot_day(frame, Path(args.plot))
        _print_json(summarize_day(frame))
        return

    if args.command == "tariff":
        when = _parse_time(args.at, config.timezone)
        prices = _initial_settings(args.settings_file).time
        strategy = PricingStrategist().with_prices(
            peak=prices.peak_price,
            offpeak=prices.offpeak_price,
        ).evaluate(when)
        _print_json(
            {
                "at": when.isoformat(),
                "period": strategy.period.value,
                "price": strategy.price,
                "goal": strategy.goal.value,
                "recommendation": strategy.recommendation,
                "next_change_hint": strategy.next_change_hint,
                "future_period": strategy.future_period.value,
                "future_price": strategy.future_price,
            }
        )
        return

    if args.command == "tiers":
        _print_json(
            [
                {
                    "id": tier_id,
                    "name": tier.name,
                    "max_pv_kw": tier.max_pv_kw,
                    "max_inverter_kw": tier.max_inverter_kw,
                    "heat_pump_rated_kw": tier.heat_pump_rated_kw,
                    "backup_heater_kw": tier.backup_heater_kw,
                }
                for tier_id, tier in HardwareCatalog().tiers()
            ]
        )
        return

    if args.command == "settings":
        if not args.settings_command:
            parser.error("Specify a settings sub-command (show/set).")
        persistence = _persistence()
        store = ConfigStore(persistence.load_latest_settings())

        if args.settings_command == "show":
            _print_json(store.as_dict())
            return

        if args.settings_command == "set":
            try:
                settings = store.update(args.section, _parse_assignments(args.assignments))
            except ValidationError as exc:
                raise SystemExit(f"Invalid settings: {exc}") from exc
            persistence.save_settings(settings, label="cli")
            _print_json(settings.model_dump())
            return

        parser.error(f"Unknown settings sub-command: {args.settings_command}")

    if args.command == "serve":
        import uvicorn

        from .api.app import create_app

        uvicorn.run(create_app(background=True), host=args.host, port=args.port)
        return

    parser.error(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
