from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence, TextIO

from ..budgets.defaults import default_budgets
from ..budgets.units import format_value
from ..config.loader import build_engine, config_from_env, load_yaml, parse_config, validate_payload
from ..errors import ConfigError
from ..util.logging import setup_logging

LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="perfbudget", description="Performance budget tooling")
    parser.add_argument("--log-level", default="WARNING", help="logging level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    validate_parser = sub.add_parser("validate", help="validate a budget configuration file")
    validate_parser.add_argument("config", help="path to the YAML configuration")

    replay_parser = sub.add_parser("replay", help="replay recorded samples through an engine")
    replay_parser.add_argument("config", help="path to the YAML configuration")
    replay_parser.add_argument("samples", help='JSON lines file with {"budget", "value", "ts"?} entries')
    replay_parser.add_argument("--json", action="store_true", help="print the compliance report as JSON")

    sub.add_parser("defaults", help="list the default budget catalogue")
    return parser


class _ReplayClock:
    """Clock that follows the timestamps of the replayed samples."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _run_validate(args: argparse.Namespace, out: TextIO) -> int:
    try:
        payload = load_yaml(args.config)
    except ConfigError as exc:
        print(f"error: {exc}", file=out)
        return 1
    errors = validate_payload(payload)
    if errors:
        for error in errors:
            print(f"error: {error}", file=out)
        return 1
    print(f"{args.config}: ok", file=out)
    return 0


def _iter_samples(path: Path):
    with path.open("r", encoding="utf-8") as handle:
        for lineno, line in enumerate(handle, start=1):
            text = line.strip()
            if not text:
                continue
            try:
                entry = json.loads(text)
                budget = str(entry["budget"])
                value = float(entry["value"])
                ts = entry.get("ts")
                yield budget, value, None if ts is None else float(ts)
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                LOGGER.warning("skipping malformed sample line=%s error=%s", lineno, exc)


def _run_replay(args: argparse.Namespace, out: TextIO) -> int:
    try:
        config = config_from_env(parse_config(load_yaml(args.config)))
    except ConfigError as exc:
        print(f"error: {exc}", file=out)
        return 1
    clock = _ReplayClock()
    engine = build_engine(config, clock=clock)
    replayed = 0
    ignored = 0
    try:
        for budget, value, ts in _iter_samples(Path(args.samples)):
            if ts is not None:
                clock.now = max(clock.now, ts)
            else:
                clock.now += 1.0
            if engine.get_budget(budget) is None:
                ignored += 1
                continue
            engine.record(budget, value, timestamp=ts if ts is not None else clock.now)
            replayed += 1
    except OSError as exc:
        print(f"error: cannot read samples: {exc}", file=out)
        return 1

    if args.json:
        payload: dict[str, Any] = {
            "replayed": replayed,
            "ignored": ignored,
            "compliance": engine.get_compliance_report().as_dict(),
            "degradation": engine.get_degradation_state().as_dict(),
        }
        print(json.dumps(payload, indent=2, sort_keys=True), file=out)
        return 0
    print(engine.generate_report(), file=out)
    print(f"Replayed {replayed} samples ({ignored} for unknown budgets)", file=out)
    print(json.dumps(engine.get_degradation_state().as_dict(), sort_keys=True), file=out)
    return 0


def _run_defaults(out: TextIO) -> int:
    for definition in default_budgets():
        critical = (
            format_value(definition.critical_threshold, definition.unit)
            if definition.critical_threshold is not None
            else "-"
        )
        actions = ",".join(sorted(definition.degradation_actions)) or "-"
        print(
            f"{definition.name:<16} {definition.category.value:<8} "
            f"warn={format_value(definition.warning_threshold, definition.unit)} "
            f"error={format_value(definition.error_threshold, definition.unit)} "
            f"critical={critical} actions={actions}",
            file=out,
        )
    return 0


def main(argv: Sequence[str] | None = None, out: TextIO | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    stream = out or sys.stdout
    setup_logging(args.log_level)
    if args.command == "validate":
        return _run_validate(args, stream)
    if args.command == "replay":
        return _run_replay(args, stream)
    if args.command == "defaults":
        return _run_defaults(stream)
    parser.error("unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
