"""CLI configuration: option overrides and commit hook task lookup.

Extracted from depbump.py to keep the entrypoint slim. CLI overrides take
precedence over YAML configuration.
"""

from __future__ import annotations

import logging
import os
import shlex
from typing import Dict, List, Optional

from constants import Constants
from sources.import_map import parse_import_map_json

logger = logging.getLogger(__name__)

DEFAULT_TASKS: Dict[str, List[str]] = {
    "fmt": ["fmt"],
    "lint": ["lint"],
    "test": ["test"],
}


def apply_cli_overrides(args) -> None:
    """Apply CLI overrides for commit message prefixes."""
    if getattr(args, "PREFIX", None) is not None:
        Constants.COMMIT_PREFIX = args.PREFIX  # type: ignore[attr-defined]
    if getattr(args, "PREFIX_LOCK", None) is not None:
        Constants.COMMIT_PREFIX_LOCK = args.PREFIX_LOCK  # type: ignore[attr-defined]


def find_config_up(start: Optional[str] = None) -> Optional[str]:
    """Nearest deno.json(c) in start or one of its parents."""
    current = os.path.abspath(start or os.getcwd())
    while True:
        for name in Constants.CONFIG_FILES:
            candidate = os.path.join(current, name)
            if os.path.isfile(candidate):
                return candidate
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def get_tasks(start: Optional[str] = None) -> Dict[str, List[str]]:
    """Tasks available as commit hooks, as ``deno`` argument lists.

    The built-in fmt, lint and test tasks are always present; every entry of
    the ``tasks`` field of the nearest deno.json(c) runs as ``deno task -q``.
    """
    tasks = {name: list(args) for name, args in DEFAULT_TASKS.items()}
    config = find_config_up(start)
    if config is None:
        return tasks
    try:
        with open(config, "r", encoding="utf-8") as handle:
            data = parse_import_map_json(handle.read(), config)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring tasks in %s: %s", config, exc)
        return tasks
    declared = data.get("tasks")
    if isinstance(declared, dict):
        for name in declared:
            tasks[name] = ["task", "-q", name]
    return tasks


def hook_command(name: str, tasks: Dict[str, List[str]]) -> List[str]:
    """Command line for a --pre-commit/--post-commit value.

    Known task names run through deno; anything else is split as a shell
    command line.
    """
    if name in tasks:
        return ["deno", *tasks[name]]
    return shlex.split(name)
