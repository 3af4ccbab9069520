"""Specifier parsing and formatting for jsr:, npm:, http: and https: imports."""

import re
import urllib.parse
from dataclasses import replace
from typing import Optional

from common.errors import ParseError
from .models import DependencyKind, DependencySpec

# Greedy name up to the last "@" that is followed by a slash-free constraint.
_BODY_PATTERN = re.compile(r"^(?P<name>.+)@(?P<constraint>[^/]+)(?P<path>/.*)?$")

COMPONENTS = ("kind", "name", "constraint", "path", "query")


def parse(specifier: str) -> DependencySpec:
    """Parse a specifier string into a DependencySpec.

    Args:
        specifier: e.g. ``jsr:@std/fs@^0.222.0/exists`` or
            ``https://deno.land/std@0.220.0/fs/mod.ts``.

    Returns:
        The parsed dependency.

    Raises:
        ParseError: On an unsupported protocol or a missing ``@version``.
    """
    try:
        parts = urllib.parse.urlsplit(specifier.strip())
    except ValueError as exc:
        raise ParseError(specifier) from exc
    try:
        kind = DependencyKind(parts.scheme)
    except ValueError as exc:
        raise ParseError(specifier, "Unsupported protocol") from exc
    body = parts.netloc + parts.path
    query = (f"?{parts.query}" if parts.query else "") + (f"#{parts.fragment}" if parts.fragment else "")
    match = _BODY_PATTERN.match(body)
    if not match:
        raise ParseError(specifier)
    return DependencySpec(
        kind=kind,
        name=match.group("name"),
        constraint=match.group("constraint"),
        path=match.group("path") or None,
        query=query or None,
    )


def try_parse(specifier: str) -> Optional[DependencySpec]:
    """Like parse, but return None for specifiers that are not dependencies."""
    try:
        return parse(specifier)
    except ParseError:
        return None


def stringify(spec: DependencySpec, *components: str) -> str:
    """Format selected components of spec back into a specifier.

    With no components all of kind, name, constraint, path and query are
    included. Omitting ``kind`` drops the protocol, omitting ``path`` drops the
    subpath and omitting ``query`` drops a URL's query string and fragment.
    """
    unknown = set(components) - set(COMPONENTS)
    if unknown:
        raise ValueError(f"Unknown specifier components: {sorted(unknown)}")
    include = components or COMPONENTS
    out = ""
    if "kind" in include:
        out += f"{spec.kind.value}:"
        if spec.is_remote:
            out += "//"
    if "name" in include:
        out += spec.name
    if "constraint" in include and spec.constraint:
        out += f"@{spec.constraint}"
    if "path" in include and spec.path:
        out += spec.path
    if "query" in include and spec.query:
        out += spec.query
    return out


def identify(spec: DependencySpec) -> str:
    """Requirement key: full specifier for remote kinds, ``kind:name@constraint`` otherwise."""
    if spec.is_remote:
        return stringify(spec)
    return stringify(spec, "kind", "name", "constraint")


def name_key(spec: DependencySpec) -> str:
    """Name-only grouping key, ``kind:name``."""
    return stringify(spec, "kind", "name")


def with_constraint(spec: DependencySpec, constraint: str) -> DependencySpec:
    """Return a copy of spec pinned to constraint."""
    return replace(spec, constraint=constraint)
