"""Constraint widening: the smallest same-shaped range admitting a new version."""

import re

from common.errors import UnsupportedConstraintFormat
from . import semver

_EXACT = re.compile(r"^v?\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$")
_CARET = re.compile(r"^\^v?\d+(?:\.\d+(?:\.\d+(?:-[0-9A-Za-z.-]+)?)?)?$")
_TILDE = re.compile(r"^~v?\d+(?:\.\d+(?:\.\d+(?:-[0-9A-Za-z.-]+)?)?)?$")
_MAJOR_MINOR = re.compile(r"^\d+\.\d+$")
_MAJOR = re.compile(r"^\d+$")
_MINOR_WILDCARD = re.compile(r"^\d+\.\d+\.(?P<wildcard>[xX*])$")
_MAJOR_WILDCARD = re.compile(r"^\d+\.(?P<wildcard>[xX*])$")


def increase(constraint: str, version: str) -> str:
    """Widen constraint just enough to admit version.

    Args:
        constraint: Range as written in source, e.g. ``^1.2.0`` or ``1.x``.
        version: Target version.

    Returns:
        constraint itself when it already admits version, otherwise the
        widened range of the same shape.

    Raises:
        UnsupportedConstraintFormat: For shapes other than bare versions,
            caret, tilde, partial and wildcard ranges.
    """
    constraint = constraint.strip()
    target = semver.try_parse(version)
    if target is None:
        raise UnsupportedConstraintFormat(constraint)
    if constraint == "*":
        return constraint
    try:
        if semver.parse_range(constraint).match(target):
            return constraint
    except ValueError as exc:
        raise UnsupportedConstraintFormat(constraint) from exc

    major, minor, patch = target.major, target.minor, target.patch

    if _EXACT.match(constraint):
        return version
    if _CARET.match(constraint):
        if target.prerelease:
            return f"^{version}"
        if major:
            return f"^{major}.0.0"
        if minor:
            return f"^0.{minor}.0"
        return f"^0.0.{patch}"
    if _TILDE.match(constraint):
        if target.prerelease:
            return f"~{version}"
        if major:
            return f"~{major}.{minor}.0"
        return f"~0.{minor}.{patch}"
    if _MAJOR_MINOR.match(constraint):
        return f"{major}.{minor}"
    if _MAJOR.match(constraint):
        return f"{major}"
    match = _MINOR_WILDCARD.match(constraint)
    if match:
        return f"{major}.{minor}.{match.group('wildcard')}"
    match = _MAJOR_WILDCARD.match(constraint)
    if match:
        return f"{major}.{match.group('wildcard')}"
    raise UnsupportedConstraintFormat(constraint)
