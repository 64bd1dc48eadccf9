"""Command line interface for the RAMS engine."""

from __future__ import annotations

import argparse
import json
import sys
import time
from typing import Sequence

from .api import build_engine
from .config import RamsEngineSettings
from .knowledge_base import KnowledgeBaseIntegrityError
from .service import aggregate_payload


def _load_settings(path: str | None) -> RamsEngineSettings:
    return RamsEngineSettings.from_toml(path) if path else RamsEngineSettings()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rams-engine", description="RAMS activity-to-risk aggregation engine")
    parser.add_argument("--config", help="Path to TOML configuration file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("validate", help="Load and validate the knowledge base")

    aggregate = sub.add_parser("aggregate", help="Aggregate hazards, controls, PPE and permits")
    aggregate.add_argument("activities", nargs="+", help="Activity codes, in selection order")

    activities = sub.add_parser("activities", help="List active activities")
    activities.add_argument("--category", help="Only list activities in this category")

    serve = sub.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", help="Override the configured host")
    serve.add_argument("--port", type=int, help="Override the configured port")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = _load_settings(args.config)
    if args.command == "serve":
        settings.service.enabled = True
        if args.host:
            settings.service.host = args.host
        if args.port is not None:
            settings.service.port = args.port

    try:
        runtime = build_engine(settings)
    except KnowledgeBaseIntegrityError as exc:
        for problem in exc.problems:
            print(problem, file=sys.stderr)
        return 1

    kb = runtime.knowledge_base
    if args.command == "validate":
        print(f"ok: {len(kb.hazards)} hazards, {len(kb.controls)} controls, {len(kb.activities)} activities")
    elif args.command == "aggregate":
        print(json.dumps(aggregate_payload(kb, args.activities), indent=2))
    elif args.command == "activities":
        listed = kb.activities_by_category(args.category) if args.category else kb.active_activities()
        for activity in listed:
            print(f"{activity.code}\t{activity.category}\t{activity.name}")
    elif args.command == "serve":
        try:
            while True:
                time.sleep(1.0)
        except KeyboardInterrupt:
            runtime.service.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
