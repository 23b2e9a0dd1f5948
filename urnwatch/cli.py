"""Command-line interface for the vault monitor."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .errors import UnknownCollateralClass
from .logging_setup import configure_logging
from .services import Monitor
from .state import ViewSelection


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="urnwatch",
        description="Rico vault monitor",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--ilk",
        action="append",
        default=[],
        help="Show parameters of this collateral class (repeatable)",
    )
    parser.add_argument(
        "--events",
        default=None,
        metavar="ACT",
        help="Show recent state changes of this kind, e.g. 'art'",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("check", help="Single refresh, print the snapshot")

    watch_parser = sub.add_parser("watch", help="Continuous refresh loop")
    watch_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Refresh interval in seconds (overrides config)",
    )

    return parser


def _selection(args: argparse.Namespace) -> ViewSelection:
    return ViewSelection(active_ilks=tuple(args.ilk), event_kind=args.events)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)
    config = load_config(args.config)
    try:
        monitor = Monitor(config, _selection(args))
    except UnknownCollateralClass as e:
        parser.error(str(e))

    if args.command == "check":
        snapshot = asyncio.run(monitor.check())
        sys.exit(0 if snapshot is not None else 1)
    elif args.command == "watch":
        monitor.watch(args.interval)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
