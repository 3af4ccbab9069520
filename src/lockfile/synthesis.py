"""Build partial lockfiles for one dependency bumped to a new version."""
from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Set

from common.errors import UnresolvableDependency
from common.http_client import RegistryClient
from registry import jsr as jsr_registry
from registry import npm as npm_registry
from sources.graph import crawl_remote
from versioning.models import DependencyKind, DependencySpec, DependencyState
from versioning.service import VersionResolutionService
from versioning.specs import identify, stringify, try_parse
from .model import VERSION, LockfileJson, check_version

logger = logging.getLogger(__name__)


async def create(
    spec: DependencySpec,
    target: str,
    original: Optional[LockfileJson],
    service: VersionResolutionService,
) -> LockfileJson:
    """Create a partial lock for spec updated to target.

    Args:
        spec: The requirement being bumped.
        target: Version to lock it at.
        original: The project lockfile; remote locks are derived from the
            files it already records.
        service: Resolution service, reused to pick versions of transitive
            dependencies and to reach the registries.

    Raises:
        UnsupportedLockfileVersion: When original is not a version 3 lockfile.
    """
    if original is not None:
        check_version(original)
    if spec.is_remote:
        return await _create_remote_lock(spec, target, original or {}, service.client)
    return await _PackageLockBuilder(service).build(spec, target)


async def _create_remote_lock(
    spec: DependencySpec,
    target: str,
    original: LockfileJson,
    client: RegistryClient,
) -> LockfileJson:
    parts = [spec.kind.value, spec.name, spec.path or ""]
    outdated = [url for url in original.get("remote", {}) if all(part in url for part in parts)]
    roots: List[str] = []
    for url in outdated:
        parsed = try_parse(url)
        if parsed is None or parsed.name != spec.name:
            continue
        updated = stringify(replace(parsed, constraint=target))
        if updated not in roots:
            roots.append(updated)
    if not roots:
        roots.append(stringify(replace(spec, constraint=target)))

    remote: Dict[str, str] = {}
    for bodies in await asyncio.gather(*(crawl_remote(root, client) for root in roots)):
        for url, body in bodies.items():
            remote[url] = hashlib.sha256(body).hexdigest()
    return {"version": VERSION, "remote": remote}


class _PackageLockBuilder:
    """Accumulates the lock entries reachable from one jsr/npm package."""

    def __init__(self, service: VersionResolutionService):
        self.service = service
        self.client = service.client
        self.seen: Set[str] = set()
        self.specifiers: Dict[str, str] = {}
        self.jsr: Dict[str, dict] = {}
        self.npm: Dict[str, dict] = {}

    async def build(self, spec: DependencySpec, target: str) -> LockfileJson:
        required = replace(spec, path=None)
        await self.insert(required, target)
        packages: LockfileJson = {"specifiers": self.specifiers}
        if self.jsr:
            packages["jsr"] = self.jsr
        if self.npm:
            packages["npm"] = self.npm
        return {
            "version": VERSION,
            "packages": packages,
            "remote": {},
            "workspace": {"dependencies": [stringify(required)]},
        }

    async def insert(self, required: DependencySpec, target: str, insert_specifier: bool = True) -> None:
        req = identify(required)
        if req in self.seen:
            return
        self.seen.add(req)

        locked = replace(required, constraint=target)
        if insert_specifier:
            self.specifiers[req] = stringify(locked)
        key = stringify(locked, "name", "constraint")
        logger.debug("Locking %s at %s", req, target)
        if required.kind is DependencyKind.JSR:
            await self._insert_jsr(key, locked)
        else:
            await self._insert_npm(key, locked)

    async def _constrainted(self, dep: DependencySpec) -> str:
        update = await self.service.get(DependencyState(dep))
        if update is None or not update.constrainted:
            raise UnresolvableDependency(stringify(dep))
        return update.constrainted

    async def _insert_jsr(self, key: str, locked: DependencySpec) -> None:
        integrity, deps = await asyncio.gather(
            jsr_registry.fetch_integrity(self.client, locked.name, locked.constraint),
            jsr_registry.fetch_dependencies(self.client, locked.name, locked.constraint),
        )
        deps = [replace(dep, path=None) for dep in deps]
        entry: dict = {"integrity": integrity}
        requirements = []
        for dep in deps:
            requirement = stringify(dep, "kind", "name", "constraint")
            if requirement not in requirements:
                requirements.append(requirement)
        if requirements:
            entry["dependencies"] = requirements
        self.jsr[key] = entry

        async def insert_dep(dep: DependencySpec) -> None:
            await self.insert(dep, await self._constrainted(dep))

        await asyncio.gather(*(insert_dep(dep) for dep in deps))

    async def _insert_npm(self, key: str, locked: DependencySpec) -> None:
        info = await npm_registry.fetch_version_info(self.client, locked.name, locked.constraint)
        declared = info.get("dependencies") or {}
        deps = [
            DependencySpec(kind=DependencyKind.NPM, name=name, constraint=constraint)
            for name, constraint in declared.items()
        ]
        targets = await asyncio.gather(*(self._constrainted(dep) for dep in deps))
        self.npm[key] = {
            "integrity": info["dist"]["integrity"],
            "dependencies": {dep.name: f"{dep.name}@{version}" for dep, version in zip(deps, targets)},
        }
        await asyncio.gather(
            *(self.insert(dep, version, insert_specifier=False) for dep, version in zip(deps, targets))
        )
