"""Typed errors raised by the resolution and bump engine."""
from __future__ import annotations

from typing import Optional, Sequence


class DepbumpError(Exception):
    """Base class for all errors raised by depbump."""


class ParseError(DepbumpError, ValueError):
    """A specifier does not have the ``name@constraint[/path]`` shape."""

    def __init__(self, specifier: str, reason: str = "Could not parse dependency"):
        super().__init__(f"{reason}: {specifier}")
        self.specifier = specifier


class HttpError(DepbumpError):
    """A registry or host answered with a non-OK status, or could not be reached."""

    def __init__(self, url: str, status: int, reason: Optional[str] = None):
        detail = f"{status} {reason}".strip() if status else (reason or "connection failed")
        super().__init__(f"{detail}: {url}")
        self.url = url
        self.status = status
        self.reason = reason


class UnsupportedConstraintFormat(DepbumpError, ValueError):
    """Constraint widening met a range shape it does not know how to widen."""

    def __init__(self, constraint: str):
        super().__init__(f"Unexpected format of constraint: {constraint}")
        self.constraint = constraint


class ConflictingBumpTargets(DepbumpError):
    """Requirements sharing one dependency name want different targets."""

    def __init__(self, name: str, field: str, targets: Sequence[str]):
        joined = ", ".join(targets)
        super().__init__(f"Conflicting {field} targets for {name}: {joined}")
        self.name = name
        self.field = field
        self.targets = list(targets)


class UnsupportedLockfileVersion(DepbumpError):
    """The lockfile declares a schema version other than the supported one."""

    def __init__(self, version: object, expected: str):
        super().__init__(f"Unsupported lockfile version: {version!r} (expected {expected!r})")
        self.version = version


class UnresolvableDependency(DepbumpError):
    """No registry version satisfies a transitive requirement."""

    def __init__(self, specifier: str):
        super().__init__(f"No version satisfies {specifier}")
        self.specifier = specifier


class SchemaError(DepbumpError, ValueError):
    """A JSON document failed schema validation."""

    def __init__(self, what: str, detail: str):
        super().__init__(f"Invalid {what}: {detail}")
        self.what = what
        self.detail = detail


class CommandError(DepbumpError):
    """An external command exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = ""):
        command = " ".join(args)
        message = f"Command failed ({returncode}): {command}"
        if stderr.strip():
            message = f"{message}\n{stderr.strip()}"
        super().__init__(message)
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
