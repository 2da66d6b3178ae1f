#!/usr/bin/env python3
"""Command-line interface for the place visibility engine.

Commands:
  - placefilter describe : Taxonomy summary and data-quality diagnostics
  - placefilter resolve  : Expand a hide-list CSV into the hidden category set
  - placefilter check    : Decide whether a place would be shown

Typical usage:
  python -m placefilter.cli describe
  python -m placefilter.cli resolve --hide-list "auto, education"
  python -m placefilter.cli check --categories pizza,bars --distance 2.5
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from placefilter.configs.remote_config import DictRemoteConfig
from placefilter.configs.settings import get_settings
from placefilter.engine import PlaceVisibilityEngine
from placefilter.errors import MalformedRecord
from placefilter.filtering.visibility import VisibilityStrategy
from placefilter.monitoring.logging import LoggingOptions, setup_logging
from placefilter.normalization.hidden_set import parse_category_csv

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_BAD_TAXONOMY = 2


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="placefilter", description="Place visibility engine CLI")
    p.add_argument("--taxonomy", default=None, help="Path to a categories JSON (default: bundled)")
    p.add_argument(
        "--strategy",
        default=None,
        choices=[s.value for s in VisibilityStrategy],
        help="Visibility policy (default: settings)",
    )
    p.add_argument("--json-logs", action="store_true", help="Emit JSON logs")
    p.add_argument("--log-level", default=None, help="Override log level")
    sub = p.add_subparsers(dest="cmd")

    pd = sub.add_parser("describe", help="Summarize the taxonomy and its diagnostics")
    pd.add_argument("--verbose", "-v", action="store_true", help="Print every condition")

    pr = sub.add_parser("resolve", help="Expand a hide-list")
    pr.add_argument("--hide-list", required=True, help="Comma-separated category aliases")

    pc = sub.add_parser("check", help="Check a place")
    pc.add_argument("--categories", required=True, help="Comma-separated place categories")
    pc.add_argument("--distance", type=float, required=True, help="Distance to the place in km")
    pc.add_argument("--hide-list", default=None, help="Override the configured hide-list CSV")
    pc.add_argument("--max-restaurant-km", type=float, default=None, help="Override the restaurant gate")

    return p


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if not args.cmd:
        _build_parser().print_help()
        return EXIT_USAGE

    settings = get_settings()
    setup_logging(
        LoggingOptions(
            level=args.log_level or settings.LOG_LEVEL,
            json_logs=args.json_logs or settings.JSON_LOGS,
        )
    )

    overrides = {}
    if args.taxonomy:
        overrides["TAXONOMY_DATA_PATH"] = Path(args.taxonomy)
    if args.strategy:
        overrides["VISIBILITY_STRATEGY"] = VisibilityStrategy(args.strategy)
    if overrides:
        settings = settings.model_copy(update=overrides)

    remote = DictRemoteConfig()
    if args.cmd in ("resolve", "check") and args.hide_list is not None:
        remote.set("place_categories_to_hide_csv", args.hide_list)
    if args.cmd == "check" and args.max_restaurant_km is not None:
        remote.set("max_restaurant_km", args.max_restaurant_km)

    try:
        engine = PlaceVisibilityEngine.from_settings(settings, remote=remote)
    except (MalformedRecord, FileNotFoundError) as e:
        print(f"Taxonomy error: {e}", file=sys.stderr)
        return EXIT_BAD_TAXONOMY

    if args.cmd == "describe":
        report = engine.diagnostics()
        if not args.verbose:
            report["conditions"] = len(report["conditions"])
        print(json.dumps(report, indent=2, sort_keys=True))
    elif args.cmd == "resolve":
        print("\n".join(sorted(engine.hidden_categories)))
    elif args.cmd == "check":
        shown = engine.should_show(parse_category_csv(args.categories), args.distance)
        print("show" if shown else "hide")

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
