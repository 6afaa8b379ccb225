#!/usr/bin/env python

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from dappforge.config import configure_logging
from dappforge.errors import CompileError
from dappforge.models.blueprint import Blueprint
from dappforge.models.node_registry import get_default_registry
from dappforge.services.blueprint_compiler import compile_blueprint, validate_blueprint


def _print_json(data) -> None:
    print(json.dumps(data, indent=2))


def _load_blueprint(path: str) -> Blueprint:
    return Blueprint.model_validate_json(Path(path).read_text(encoding="utf-8"))


def _report_failure(exc: CompileError) -> int:
    print(f"Error: {exc.message}", file=sys.stderr)
    _print_json({
        "code": exc.code,
        "diagnostics": [d.model_dump(by_alias=True) for d in exc.diagnostics],
    })
    return 1


def cmd_plugins(args) -> int:
    for plugin in get_default_registry():
        meta = plugin.metadata
        print(f"{meta.id:<26} {meta.category:<10} {meta.name}")
    return 0


def cmd_validate(args) -> int:
    blueprint = _load_blueprint(args.blueprint)
    try:
        validated = validate_blueprint(blueprint)
    except CompileError as exc:
        return _report_failure(exc)
    _print_json({"valid": True, "layers": validated.plan.as_lists()})
    return 0


def cmd_compile(args) -> int:
    blueprint = _load_blueprint(args.blueprint)
    try:
        tree = asyncio.run(compile_blueprint(blueprint, max_workers=args.max_workers))
    except CompileError as exc:
        return _report_failure(exc)
    if args.manifest:
        _print_json(tree.manifest())
    else:
        _print_json(tree.model_dump(by_alias=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dappforge",
        description="Compile dApp blueprints into project source trees.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (defaults to DAPPFORGE_LOG_LEVEL)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    plugins_parser = subparsers.add_parser("plugins", help="List registered plugins")
    plugins_parser.set_defaults(func=cmd_plugins)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a blueprint and print its execution layers"
    )
    validate_parser.add_argument("blueprint", help="Path to a blueprint JSON file")
    validate_parser.set_defaults(func=cmd_validate)

    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile a blueprint and print the project tree"
    )
    compile_parser.add_argument("blueprint", help="Path to a blueprint JSON file")
    compile_parser.add_argument(
        "--manifest",
        action="store_true",
        help="Only print the path and size of every generated file"
    )
    compile_parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Concurrent plugin generations per layer (defaults to DAPPFORGE_MAX_WORKERS)"
    )
    compile_parser.set_defaults(func=cmd_compile)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    # Logs go to stderr so stdout stays valid JSON
    configure_logging(args.log_level)

    try:
        return args.func(args)
    except FileNotFoundError as e:
        print(f"Blueprint file not found: {e.filename}", file=sys.stderr)
        return 2
    except ValidationError as e:
        print(f"Invalid blueprint: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
