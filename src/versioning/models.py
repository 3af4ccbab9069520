"""Data models for dependency identities, resolution results and bumps."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DependencyKind(Enum):
    """Enum for supported specifier kinds."""
    JSR = "jsr"
    NPM = "npm"
    HTTP = "http"
    HTTPS = "https"

    @property
    def is_remote(self) -> bool:
        """True for URL-shaped kinds resolved through redirects."""
        return self in (DependencyKind.HTTP, DependencyKind.HTTPS)


@dataclass(frozen=True)
class DependencySpec:
    """Parsed specifier: kind, name, version constraint, optional subpath and URL suffix.

    query holds a URL's "?query" and "#fragment" text verbatim, separators included.
    """
    kind: DependencyKind
    name: str
    constraint: str
    path: Optional[str] = None
    query: Optional[str] = None

    @property
    def is_remote(self) -> bool:
        return self.kind.is_remote


@dataclass(frozen=True)
class DependencyState:
    """A requirement plus the version pinned for it in the lockfile, if any."""
    spec: DependencySpec
    locked: Optional[str] = None

    @property
    def constraint(self) -> str:
        return self.spec.constraint


@dataclass(frozen=True)
class DependencyUpdate:
    """Resolver output.

    constrainted: best version satisfying the current constraint.
    released: best non-prerelease version above the constraint.
    latest: best version above the constraint including pre-releases.
    """
    constrainted: Optional[str] = None
    released: Optional[str] = None
    latest: Optional[str] = None


@dataclass(frozen=True)
class DependencyBump:
    """Decided new constraint and/or lock for one requirement."""
    constraint: Optional[str] = None
    lock: Optional[str] = None


@dataclass(frozen=True)
class VersionBump:
    """A from/to pair shown to users and in commit messages."""
    from_: Optional[str]
    to: str
