"""Innerbloom task generation – unified CLI dispatcher.

All subcommands live in ``innerbloom/commands/*.py`` and expose a
``register(subparsers)`` function that adds themselves to argparse.
"""
from __future__ import annotations

import argparse
import logging
import sys

from innerbloom.commands.registry import register_all
from shared.config import TASKGEN_DEBUG
from shared.runtime_settings import load_taskgen_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="innerbloom",
        description="Innerbloom task-generation pipeline CLI",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")
    register_all(sub)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    level = logging.DEBUG if args.verbose or TASKGEN_DEBUG else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    # Settings are resolved once here and handed to every command
    args.settings = load_taskgen_settings()
    rc = args.func(args)
    sys.exit(rc or 0)
