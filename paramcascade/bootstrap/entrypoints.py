"""
bootstrap/entrypoints.py - Logging setup and CLI

Provides the ``paramcascade`` command for inspecting cascade definitions:

    paramcascade order cascade.json
    paramcascade order cascade.json --strict --json
    paramcascade dependents cascade.json REGION
"""

from __future__ import annotations
from typing import List, Optional
import argparse
import json
import logging
import sys

from pydantic import ValidationError

from paramcascade.core.schema import CascadeDefinition
from paramcascade.dependencies.graph import GraphSorter, direct_dependents, tail_from
from paramcascade.errors.diagnostics import UnresolvedDependencyError
from paramcascade.events.channel import EventChannel
from .config import load_config

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    def format(self, record):
        return json.dumps({
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        })


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    fmt: str = DEFAULT_FORMAT,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
        fmt: Format string for plain-text logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JSONFormatter() if json_format else logging.Formatter(fmt)

    # Diagnostics go to stderr so command output stays parseable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect the refresh order of cascading parameters",
        prog="paramcascade",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (overrides configuration)",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    order = subparsers.add_parser("order", help="Print the refresh order")
    order.add_argument("file", help="JSON cascade definition")
    order.add_argument("--strict", action="store_true", help="Fail on unresolved dependencies")
    order.add_argument("--json", action="store_true", help="Output in JSON format")

    dependents = subparsers.add_parser("dependents", help="Print what a change re-sequences")
    dependents.add_argument("file", help="JSON cascade definition")
    dependents.add_argument("name", help="Trigger parameter name")
    dependents.add_argument("--json", action="store_true", help="Output in JSON format")

    return parser


def _cmd_order(parsed: argparse.Namespace, definition: CascadeDefinition) -> int:
    sorter = GraphSorter(EventChannel(name="cli"))
    try:
        result = sorter.resolve(definition.to_parameters(), strict=parsed.strict)
    except UnresolvedDependencyError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if parsed.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        for position, name in enumerate(result.names, start=1):
            print(f"{position:3d}. {name}")
        if result.unresolved:
            print(f"unresolved: {', '.join(result.unresolved)}")
    return 0


def _cmd_dependents(parsed: argparse.Namespace, definition: CascadeDefinition) -> int:
    order = GraphSorter(EventChannel(name="cli")).sort(definition.to_parameters())
    trigger = next((p for p in order if p.name == parsed.name), None)
    if trigger is None:
        print(f"error: unknown parameter {parsed.name!r}", file=sys.stderr)
        return 1

    tail = [p.name for p in tail_from(trigger, order)]
    direct = [p.name for p in direct_dependents(trigger, order)]

    if parsed.json:
        print(json.dumps({"parameter": trigger.name, "direct_dependents": direct, "sequence": tail}, indent=2))
    else:
        print(f"direct dependents: {', '.join(direct) or '-'}")
        print(f"sequence: {', '.join(tail) or '-'}")
    return 0


def cli_main(args: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parsed = _build_parser().parse_args(args)

    config = load_config(parsed.config)
    level = "DEBUG" if parsed.verbose else (parsed.log_level or config.logging.level)
    setup_logging(
        level=level,
        log_file=parsed.log_file or config.logging.log_file,
        json_format=config.logging.json_logs,
        fmt=config.logging.format,
    )

    try:
        definition = CascadeDefinition.from_file(parsed.file)
    except FileNotFoundError:
        print(f"error: file not found: {parsed.file}", file=sys.stderr)
        return 2
    except (json.JSONDecodeError, ValidationError) as e:
        print(f"error: invalid cascade definition: {e}", file=sys.stderr)
        return 2

    if parsed.command == "order":
        return _cmd_order(parsed, definition)
    return _cmd_dependents(parsed, definition)


if __name__ == "__main__":
    sys.exit(cli_main())
