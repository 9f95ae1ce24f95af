from __future__ import annotations

import argparse
import sys
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml

from codebench.app import build_ledger, build_store, build_wiring
from codebench.config.settings import CodebenchSettings, load_settings
from codebench.data.pattern import create_pattern
from codebench.data.pattern_file import dump_patterns
from codebench.data.pattern_store import PatternStore
from codebench.errors import CodebenchError, CommitNotConfirmed
from codebench.events import LoggingEventSink, MemoryEventSink
from codebench.logs import configure_logging


def _to_primitive(x: object) -> object:
    """Converts objects into YAML-safe primitives.

    The conversion rules are:
    - objects with to_dict() -> their dict (recursively converted)
    - dataclasses -> dict of field values (recursively converted)
    - Enum -> its .value
    - Path -> str(path)
    - Mapping -> dict with string keys and recursively converted values
    - Sequence (list/tuple) -> list of recursively converted items
    - everything else -> returned as-is
    """
    to_dict = getattr(x, "to_dict", None)
    if callable(to_dict) and not isinstance(x, type):
        return _to_primitive(to_dict())

    if is_dataclass(x) and not isinstance(x, type):
        return {f.name: _to_primitive(getattr(x, f.name)) for f in fields(x)}

    if isinstance(x, Enum):
        return x.value

    if isinstance(x, Path):
        return str(x)

    if isinstance(x, Mapping):
        return {str(k): _to_primitive(v) for k, v in x.items()}

    if isinstance(x, (list, tuple)):
        return [_to_primitive(v) for v in x]

    return x


def _print_yaml(title: str, payload: object) -> None:
    """Prints a human-readable YAML view of structured data."""
    print(f"\n=== {title} ===\n")
    print(yaml.safe_dump(_to_primitive(payload), sort_keys=False, allow_unicode=True))


def _settings_from_args(args: argparse.Namespace) -> CodebenchSettings:
    overrides: dict[str, object] = {
        "ledger_backend": getattr(args, "ledger", None),
        "ledger_path": getattr(args, "ledger_path", None),
    }
    return load_settings(config_path=args.config, overrides=overrides)


def _open_store(settings: CodebenchSettings, patterns: str | None) -> PatternStore:
    return build_store(settings, patterns_path=patterns)


# ----------------------------
# Commands
# ----------------------------

def cmd_run(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    configure_logging(settings.log_level)

    events = MemoryEventSink(forward=LoggingEventSink())
    wiring = build_wiring(settings, patterns_path=args.patterns, events=events)

    try:
        result = wiring.orchestrator.run_session(args.request)
    except CommitNotConfirmed as e:
        _print_yaml("COMMIT NOT CONFIRMED", {"error": str(e), "suggestion": (e.data or {}).get("suggestion")})
        return 1
    finally:
        wiring.ledger.close()

    _print_yaml("INITIAL SUGGESTION", result.initial_suggestion)
    _print_yaml("FINAL SUGGESTION", result.final_suggestion)
    _print_yaml("RECEIPT", result.receipt)
    if args.show_events:
        _print_yaml("EVENTS", [e.to_dict() for e in events.events])
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    configure_logging(settings.log_level)

    ledger = build_ledger(settings)
    try:
        proof = ledger.verify(args.query)
    finally:
        ledger.close()
    _print_yaml("PROOF", proof)
    return 0 if proof.found else 2


def cmd_patterns_list(args: argparse.Namespace) -> int:
    settings = load_settings(config_path=args.config)
    store = _open_store(settings, args.patterns)
    _print_yaml(
        "PATTERNS",
        {"count": store.count, "capacity": store.capacity, "patterns": list(store.snapshot())},
    )
    return 0


def cmd_patterns_add(args: argparse.Namespace) -> int:
    settings = load_settings(config_path=args.config)
    store = _open_store(settings, args.patterns)

    pattern = create_pattern(args.snippet, args.language, args.complexity)
    store.add(pattern)
    if args.analyze:
        store.analyze_complexity(pattern)

    dump_patterns(store, args.patterns)
    _print_yaml("ADDED", {"index": store.count - 1, "pattern": pattern})
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="codebench")
    p.add_argument("--config", default=None, help="YAML config file (default: ./codebench.yaml if present)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Run one workbench session for a request")
    p_run.add_argument("request", help="The coding request, e.g. 'Create a function to sort an array'")
    p_run.add_argument("--patterns", default=None, help="YAML pattern file to load into the store")
    p_run.add_argument("--ledger", choices=["memory", "sqlite"], default=None)
    p_run.add_argument("--ledger-path", default=None)
    p_run.add_argument("--show-events", action="store_true")
    p_run.set_defaults(fn=cmd_run)

    p_verify = sub.add_parser("verify", help="Verify a committed entry by id, content hash or content")
    p_verify.add_argument("query")
    p_verify.add_argument("--ledger", choices=["memory", "sqlite"], default="sqlite")
    p_verify.add_argument("--ledger-path", default=None)
    p_verify.set_defaults(fn=cmd_verify)

    p_patterns = sub.add_parser("patterns", help="Inspect or extend a YAML pattern file")
    patterns_sub = p_patterns.add_subparsers(dest="patterns_cmd", required=True)

    p_list = patterns_sub.add_parser("list", help="List the patterns in a file")
    p_list.add_argument("--patterns", required=True)
    p_list.set_defaults(fn=cmd_patterns_list)

    p_add = patterns_sub.add_parser("add", help="Add a pattern to a file")
    p_add.add_argument("--patterns", required=True)
    p_add.add_argument("--snippet", required=True)
    p_add.add_argument("--language", required=True)
    p_add.add_argument("--complexity", type=float, default=0.0)
    p_add.add_argument("--analyze", action="store_true", help="Run complexity analysis after adding")
    p_add.set_defaults(fn=cmd_patterns_add)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.fn(args))
    except CodebenchError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
