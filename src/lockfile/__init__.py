"""Lockfile model and partial-lock synthesis."""

from .model import (
    VERSION,
    LockfileJson,
    check_version,
    empty,
    extract,
    format,
    merge,
    parse,
    prune,
    query,
    read,
    write,
)
from .synthesis import create

__all__ = [
    "VERSION",
    "LockfileJson",
    "check_version",
    "create",
    "empty",
    "extract",
    "format",
    "merge",
    "parse",
    "prune",
    "query",
    "read",
    "write",
]
