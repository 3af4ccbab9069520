"""Semantic version helpers built on semantic_version's npm range grammar.

Version strings keep their original spelling (a leading ``v`` is tolerated
and preserved); only comparisons go through ``semantic_version.Version``.
"""

import re
from typing import Iterable, List, Optional, Tuple

import semantic_version
from semantic_version.base import AllOf, Always, AnyOf, Never, Range

_V_PREFIX = re.compile(r"(^|[\s^~<>=|])v(?=\d)")

# (version, inclusive)
Bound = Tuple[semantic_version.Version, bool]


def try_parse(text: Optional[str]) -> Optional[semantic_version.Version]:
    """Parse a full version, tolerating a leading ``v``; None when invalid."""
    if not text:
        return None
    candidate = text.strip()
    if candidate.startswith("v"):
        candidate = candidate[1:]
    try:
        return semantic_version.Version(candidate)
    except ValueError:
        return None


def parse_version(text: str) -> semantic_version.Version:
    """Parse a full version or raise ValueError."""
    version = try_parse(text)
    if version is None:
        raise ValueError(f"Invalid version: {text!r}")
    return version


def is_prerelease(text: Optional[str]) -> bool:
    """True when text is a version string with a pre-release tag."""
    version = try_parse(text)
    return bool(version is not None and version.prerelease)


def parse_range(constraint: str) -> semantic_version.NpmSpec:
    """Parse an npm-style range; raises ValueError on invalid syntax."""
    return semantic_version.NpmSpec(_V_PREFIX.sub(r"\1", constraint.strip()))


def satisfies(version: str, constraint: str) -> bool:
    """True when version is admitted by constraint; False for unparsable input."""
    parsed = try_parse(version)
    if parsed is None:
        return False
    try:
        spec = parse_range(constraint)
    except ValueError:
        return False
    return spec.match(parsed)


def sort_versions(versions: Iterable[str]) -> List[Tuple[semantic_version.Version, str]]:
    """Parse and sort version strings ascending, skipping invalid ones."""
    parsed = []
    for text in versions:
        version = try_parse(text)
        if version is not None:
            parsed.append((version, text))
    parsed.sort(key=lambda item: item[0])
    return parsed


def max_satisfying(versions: Iterable[str], constraint: str) -> Optional[str]:
    """Return the highest version admitted by constraint, or None."""
    spec = parse_range(constraint)
    best = None
    for version, text in sort_versions(versions):
        if spec.match(version):
            best = text
    return best


def _groups(clause) -> List[List[Range]]:
    """Flatten a clause into alternatives, each a conjunction of Ranges."""
    if isinstance(clause, Range):
        return [[clause]]
    if isinstance(clause, Always):
        return [[]]
    if isinstance(clause, Never):
        return []
    if isinstance(clause, AnyOf):
        out: List[List[Range]] = []
        for child in clause.clauses:
            out.extend(_groups(child))
        return out
    if isinstance(clause, AllOf):
        out = [[]]
        for child in clause.clauses:
            out = [left + right for left in out for right in _groups(child)]
        return out
    raise ValueError(f"Unsupported range clause: {clause!r}")


def _bounds(group: List[Range]) -> Tuple[Optional[Bound], Optional[Bound]]:
    lower: Optional[Bound] = None
    upper: Optional[Bound] = None
    for item in group:
        target, op = item.target, item.operator
        if op in (Range.OP_GT, Range.OP_GTE, Range.OP_EQ):
            bound = (target, op != Range.OP_GT)
            if lower is None or target > lower[0] or (target == lower[0] and not bound[1]):
                lower = bound
        if op in (Range.OP_LT, Range.OP_LTE, Range.OP_EQ):
            bound = (target, op != Range.OP_LT)
            if upper is None or target < upper[0] or (target == upper[0] and not bound[1]):
                upper = bound
    return lower, upper


def _above(version: semantic_version.Version, upper: Bound) -> bool:
    target, inclusive = upper
    if inclusive:
        return version > target
    if not target.prerelease:
        # "<2.0.0" also excludes every 2.0.0 pre-release.
        return version.truncate() >= target
    return version >= target


def greater_than_range(version: str, constraint: str) -> bool:
    """True when version lies above every alternative of constraint."""
    parsed = try_parse(version)
    if parsed is None:
        return False
    groups = _groups(parse_range(constraint).clause)
    if not groups:
        return False
    for group in groups:
        _, upper = _bounds(group)
        if upper is None or not _above(parsed, upper):
            return False
    return True


def intersects(left: str, right: str) -> bool:
    """True when some version could satisfy both ranges.

    Unparsable ranges are treated as disjoint from everything.
    """
    try:
        left_groups = _groups(parse_range(left).clause)
        right_groups = _groups(parse_range(right).clause)
    except ValueError:
        return False
    for lg in left_groups:
        for rg in right_groups:
            lower, upper = _bounds(lg + rg)
            if lower is None or upper is None:
                return True
            if lower[0] < upper[0]:
                return True
            if lower[0] == upper[0] and lower[1] and upper[1]:
                return True
    return False
