"""External process helpers: git and commit hook commands."""
from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Iterable, List, Optional, Sequence, Union

from common.errors import CommandError
from common.logging_utils import extra_context, is_debug_enabled, Timer

logger = logging.getLogger(__name__)


def run_command(args: Sequence[str], cwd: Optional[str] = None) -> subprocess.CompletedProcess:
    """Run a command and raise CommandError on a non-zero exit.

    Args:
        args: Program and arguments.
        cwd: Working directory, defaults to the current one.

    Returns:
        The completed process with captured stdout/stderr.
    """
    with Timer() as t:
        try:
            result = subprocess.run(
                list(args),
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise CommandError(args, 127, str(exc)) from exc
    if is_debug_enabled(logger):
        logger.debug(
            "Command finished",
            extra=extra_context(
                event="command",
                component="process",
                action=args[0] if args else None,
                outcome="success" if result.returncode == 0 else "failure",
                returncode=result.returncode,
                duration_ms=t.duration_ms(),
            ),
        )
    if result.returncode != 0:
        raise CommandError(args, result.returncode, result.stderr or "")
    return result


def run_task(command: Union[str, Sequence[str]], cwd: Optional[str] = None) -> subprocess.CompletedProcess:
    """Run a hook command, given as a shell-like string or an argument list."""
    args = shlex.split(command) if isinstance(command, str) else list(command)
    if not args:
        raise ValueError("Empty hook command")
    logger.info("Running %s", " ".join(args))
    return run_command(args, cwd=cwd)


class Git:
    """Minimal git collaborator: stage paths and commit."""

    def __init__(self, cwd: Optional[str] = None, executable: str = "git"):
        self.cwd = cwd
        self.executable = executable

    def add(self, paths: Iterable[str]) -> None:
        """Stage the given paths."""
        files: List[str] = list(paths)
        if not files:
            return
        run_command([self.executable, "add", *files], cwd=self.cwd)

    def commit(self, message: str) -> None:
        """Commit whatever is staged with message."""
        run_command([self.executable, "commit", "-m", message], cwd=self.cwd)
