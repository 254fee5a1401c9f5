"""Subcommand modules of the innerbloom CLI, in help-listing order.

Each module named here exposes ``register(subparsers)`` and a ``run(args)`` handler.
"""
from __future__ import annotations

from importlib import import_module
from types import ModuleType
from typing import Iterable

COMMAND_MODULES: tuple[str, ...] = (
    "generate",
    "interactive",
    "snapshot",
    "init_db",
    "config",
)


def iter_command_modules() -> Iterable[ModuleType]:
    """Yield command modules in stable registration order."""
    for name in COMMAND_MODULES:
        yield import_module(f"innerbloom.commands.{name}")


def register_all(subparsers) -> None:
    """Register all known command modules on the provided argparse subparsers."""
    for module in iter_command_modules():
        module.register(subparsers)
