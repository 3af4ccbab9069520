"""Lockfile (version 3) reading, querying, merging and formatting.

Lockfiles are handled as validated plain dicts. Merges and prunes return new
dicts and never mutate their inputs.
"""
from __future__ import annotations

import copy
import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from constants import Constants
from common.errors import SchemaError, UnsupportedLockfileVersion
from common.schemas import LOCKFILE_SCHEMA, validate
from versioning import semver
from versioning.models import DependencySpec
from versioning.specs import identify, stringify, try_parse

logger = logging.getLogger(__name__)

VERSION = Constants.LOCKFILE_VERSION

LockfileJson = Dict[str, Any]

_PACKAGE_NAMESPACES = ("jsr", "npm")


def empty() -> LockfileJson:
    """A lockfile with no entries."""
    return {"version": VERSION, "remote": {}}


def check_version(lock: LockfileJson) -> None:
    """Raise UnsupportedLockfileVersion unless lock is a version 3 lockfile."""
    version = lock.get("version")
    if version != VERSION:
        raise UnsupportedLockfileVersion(version, VERSION)


def parse(content: str) -> LockfileJson:
    """Parse and validate lockfile content.

    Raises:
        SchemaError: When the content is not JSON or has the wrong shape.
        UnsupportedLockfileVersion: When the version is not supported.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise SchemaError("lockfile", f"not valid JSON ({exc})") from exc
    validate(data, LOCKFILE_SCHEMA, "lockfile")
    check_version(data)
    return data


def read(path: str) -> LockfileJson:
    """Read a lockfile from disk."""
    with open(path, "r", encoding="utf-8") as fh:
        return parse(fh.read())


def write(path: str, lock: LockfileJson) -> None:
    """Persist lock to path in canonical format."""
    content = format(lock)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(content)
    logger.debug("Wrote lockfile %s", os.path.basename(path))


def _sorted_map(mapping: Dict[str, Any]) -> Dict[str, Any]:
    return {key: mapping[key] for key in sorted(mapping)}


def _format_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    out = {"integrity": entry["integrity"]}
    deps = entry.get("dependencies")
    if isinstance(deps, dict):
        out["dependencies"] = _sorted_map(deps)
    elif deps:
        out["dependencies"] = list(deps)
    for key, value in entry.items():
        if key not in out and key != "dependencies":
            out[key] = value
    return out


def format(lock: LockfileJson) -> str:  # pylint: disable=redefined-builtin
    """Serialize lock with a stable key order and a trailing newline."""
    out: Dict[str, Any] = {"version": lock["version"]}
    packages = lock.get("packages")
    if packages is not None:
        formatted: Dict[str, Any] = {"specifiers": _sorted_map(packages.get("specifiers", {}))}
        for namespace in _PACKAGE_NAMESPACES:
            entries = packages.get(namespace)
            if entries:
                formatted[namespace] = {
                    key: _format_entry(entries[key]) for key in sorted(entries)
                }
        out["packages"] = formatted
    for key in ("redirects", "remote"):
        if key in lock:
            out[key] = _sorted_map(lock[key])
    if "workspace" in lock:
        workspace = dict(lock["workspace"])
        if "dependencies" in workspace:
            workspace["dependencies"] = sorted(workspace["dependencies"])
        out["workspace"] = workspace
    for key, value in lock.items():
        if key not in out:
            out[key] = value
    return json.dumps(out, indent=2, ensure_ascii=False) + "\n"


def query(lock: LockfileJson, spec: DependencySpec) -> Optional[str]:
    """Version locked for spec's requirement, if it still satisfies the constraint.

    Remote dependencies are pinned by their URL, so their constraint is
    returned as is.
    """
    if spec.is_remote:
        return spec.constraint
    resolved = lock.get("packages", {}).get("specifiers", {}).get(identify(spec))
    if not resolved:
        return None
    locked = try_parse(resolved)
    if locked is None:
        return None
    if semver.satisfies(locked.constraint, spec.constraint):
        return locked.constraint
    return None


def _package_key(resolved: str) -> Optional[Tuple[str, str]]:
    """Map ``jsr:@std/fs@1.0.0`` to ("jsr", "@std/fs@1.0.0")."""
    spec = try_parse(resolved)
    if spec is None or spec.is_remote:
        return None
    return spec.kind.value, stringify(spec, "name", "constraint")


def _closure(lock: LockfileJson, requirements: Iterable[str]) -> Set[Tuple[str, str]]:
    """Package entries reachable from the given requirement strings."""
    packages = lock.get("packages", {})
    specifiers = packages.get("specifiers", {})
    queue: List[Tuple[str, str]] = []
    for req in requirements:
        resolved = specifiers.get(req)
        key = _package_key(resolved) if resolved else None
        if key:
            queue.append(key)
    seen: Set[Tuple[str, str]] = set()
    while queue:
        key = queue.pop()
        if key in seen:
            continue
        seen.add(key)
        namespace, name = key
        entry = packages.get(namespace, {}).get(name)
        if not entry:
            continue
        deps = entry.get("dependencies") or []
        if namespace == "jsr":
            for req in deps:
                resolved = specifiers.get(req)
                dep_key = _package_key(resolved) if resolved else None
                if dep_key:
                    queue.append(dep_key)
        else:
            for value in deps.values():
                queue.append(("npm", value))
    return seen


def extract(lock: LockfileJson, spec: DependencySpec) -> Optional[LockfileJson]:
    """Partial lock holding only what spec's requirement pulls in.

    Returns:
        The partial lock, or None when the lockfile has nothing for spec.
    """
    check_version(lock)
    if spec.is_remote:
        prefix = stringify(spec, "kind", "name", "constraint") + "/"
        remote = {url: digest for url, digest in lock.get("remote", {}).items() if url.startswith(prefix)}
        if not remote:
            return None
        return {"version": VERSION, "remote": remote}

    req = identify(spec)
    packages = lock.get("packages", {})
    specifiers = packages.get("specifiers", {})
    keys = _closure(lock, [req])
    if not keys:
        return None
    out_packages: Dict[str, Any] = {"specifiers": {}}
    resolved_names = {f"{ns}:{name}" for ns, name in keys}
    for key, resolved in specifiers.items():
        if key == req or resolved in resolved_names:
            out_packages["specifiers"][key] = resolved
    for namespace, name in sorted(keys):
        entry = packages.get(namespace, {}).get(name)
        if entry is not None:
            out_packages.setdefault(namespace, {})[name] = copy.deepcopy(entry)
    return {
        "version": VERSION,
        "packages": out_packages,
        "remote": {},
        "workspace": {"dependencies": [stringify(spec, "kind", "name", "constraint")]},
    }


def merge(base: LockfileJson, *parts: LockfileJson) -> LockfileJson:
    """Union parts into base namespace by namespace; later parts win on conflict."""
    check_version(base)
    result = copy.deepcopy(base)
    for part in parts:
        check_version(part)
        packages = part.get("packages")
        if packages:
            target = result.setdefault("packages", {})
            target.setdefault("specifiers", {}).update(packages.get("specifiers", {}))
            for namespace in _PACKAGE_NAMESPACES:
                if packages.get(namespace):
                    target.setdefault(namespace, {}).update(copy.deepcopy(packages[namespace]))
        if "remote" in part:
            result.setdefault("remote", {}).update(part["remote"])
        workspace_deps = part.get("workspace", {}).get("dependencies")
        if workspace_deps:
            existing = result.setdefault("workspace", {}).setdefault("dependencies", [])
            for dep in workspace_deps:
                if dep not in existing:
                    existing.append(dep)
    return result


def prune(lock: LockfileJson, spec: DependencySpec) -> LockfileJson:
    """Remove the requirement spec and whatever only it kept alive.

    For packages this drops the specifier, the workspace entry and every
    package entry reachable from spec's requirement but from no other one.
    For remote modules it drops the files recorded under spec's versioned
    URL prefix.
    """
    check_version(lock)
    result = copy.deepcopy(lock)
    if spec.is_remote:
        prefix = stringify(spec, "kind", "name", "constraint") + "/"
        remote = result.get("remote", {})
        for url in [url for url in remote if url.startswith(prefix)]:
            del remote[url]
        return result

    req = identify(spec)
    packages = result.get("packages")
    if packages:
        specifiers = packages.get("specifiers", {})
        others = [key for key in specifiers if key != req]
        orphans = _closure(result, [req]) - _closure(result, others)
        for namespace, name in orphans:
            packages.get(namespace, {}).pop(name, None)
        specifiers.pop(req, None)
    workspace = result.get("workspace", {}).get("dependencies")
    if workspace and req in workspace:
        workspace.remove(req)
    return result
