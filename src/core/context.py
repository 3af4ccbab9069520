"""Aggregation of dependency references into one update per dependency.

A Context owns everything a single resolution run shares: the HTTP client,
the resolution cache, the loaded lockfile and the git collaborator. It is
not meant to be reused across runs.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

import lockfile
from constants import Constants
from common.errors import ConflictingBumpTargets, HttpError
from common.http_client import RegistryClient
from common.logging_utils import extra_context, is_debug_enabled
from common.process import Git
from sources.graph import GraphBuilder
from sources.import_map import read_import_map_json
from sources.refs import DependencyRef, from_import_map, from_module, rewrite
from versioning import bumps, semver
from versioning.cache import ResolutionCache
from versioning.models import DependencyBump, DependencyKind, DependencySpec, DependencyState, VersionBump
from versioning.service import VersionResolutionService
from versioning.specs import identify, name_key

logger = logging.getLogger(__name__)

Filter = Union[Callable[[DependencySpec], bool], Sequence[str], None]


def _distinct(values: Iterable[Optional[str]]) -> List[str]:
    out: List[str] = []
    for value in values:
        if value and value not in out:
            out.append(value)
    return out


def _as_predicate(value: Filter) -> Optional[Callable[[DependencySpec], bool]]:
    """Accept a predicate or a list of name fragments."""
    if value is None:
        return None
    if callable(value):
        return value
    fragments = list(value)
    return lambda spec: any(fragment in spec.name for fragment in fragments)


class Context:
    """State shared by one collect/check/write/commit run."""

    def __init__(
        self,
        client: Optional[RegistryClient] = None,
        *,
        lock: Optional[str] = None,
        git: Optional[Git] = None,
        graph: Optional[GraphBuilder] = None,
    ):
        """Initialize the context.

        Args:
            client: HTTP client; one is created and owned when omitted.
            lock: Path of the lockfile to read and update, if any.
            git: Git collaborator used by commits.
            graph: Module graph builder.
        """
        self._owns_client = client is None
        self.client = client if client is not None else RegistryClient()
        self.cache = ResolutionCache()
        self.service = VersionResolutionService(self.client, self.cache)
        self.lock_path = lock
        self.lock: Optional[lockfile.LockfileJson] = lockfile.read(lock) if lock else None
        self.git = git if git is not None else Git()
        self.graph = graph if graph is not None else GraphBuilder()
        self._lock_mutex = asyncio.Lock()

    async def __aenter__(self) -> "Context":
        if self._owns_client:
            await self.client.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._owns_client:
            await self.client.stop()

    def collect(
        self,
        source: Iterable[str] = (),
        config: Optional[str] = None,
        *,
        ignore: Filter = None,
        only: Filter = None,
        resolve_local: bool = True,
    ) -> List["Dependency"]:
        """Collect dependencies from modules and an import map.

        Args:
            source: ES module entrypoints.
            config: deno.json(c) or import map file.
            ignore: Dependencies to skip, as a predicate or name fragments.
            only: Dependencies to keep, as a predicate or name fragments.
            resolve_local: Follow relative imports of local modules.

        Returns:
            One Dependency per ``kind:name``, sorted by name.
        """
        import_map = read_import_map_json(config) if config else None
        refs: List[DependencyRef] = []
        entrypoints = list(source)
        if entrypoints:
            resolve = import_map.resolve if import_map else None
            for module in self.graph.build(entrypoints, resolve=resolve, resolve_local=resolve_local):
                refs.extend(from_module(module))
        if import_map:
            refs.extend(from_import_map(import_map))

        skip = _as_predicate(ignore)
        keep = _as_predicate(only)
        groups: Dict[str, List[DependencyRef]] = {}
        for ref in refs:
            if skip and skip(ref.dependency):
                continue
            if keep and not keep(ref.dependency):
                continue
            groups.setdefault(name_key(ref.dependency), []).append(ref)

        deps = [Dependency(self, group) for group in groups.values()]
        deps.sort(key=lambda dep: dep.name)
        logger.debug("Collected %d dependencies from %d references", len(deps), len(refs))
        return deps

    async def check(self, deps: Iterable["Dependency"]) -> List["Update"]:
        """Check all dependencies concurrently.

        A dependency whose registry could not be reached is logged and
        skipped; every other error aborts the whole batch.
        """
        deps = list(deps)
        results = await asyncio.gather(*(dep.check() for dep in deps), return_exceptions=True)
        updates: List[Update] = []
        for dep, result in zip(deps, results):
            if isinstance(result, HttpError):
                logger.warning("Could not check %s: %s", dep.name, result)
                continue
            if isinstance(result, BaseException):
                raise result
            if result is not None:
                updates.append(result)
        return updates

    def locked_version(self, spec: DependencySpec) -> Optional[str]:
        """Version pinned for spec in the loaded lockfile."""
        if self.lock is None:
            return None
        return lockfile.query(self.lock, spec)

    async def update_lock(self, state: DependencyState, constraint: str, target: str) -> bool:
        """Re-lock a requirement at target and persist the lockfile.

        Args:
            state: The requirement as it was before the bump.
            constraint: The requirement's constraint after the bump.
            target: Version to lock.

        Returns:
            True when the lockfile content changed.
        """
        if self.lock is None or self.lock_path is None:
            return False
        updated = replace(state.spec, constraint=constraint)
        part = await lockfile.create(updated, target, self.lock, self.service)
        async with self._lock_mutex:
            workspace = self.lock.get("workspace", {}).get("dependencies", [])
            if identify(state.spec) not in workspace and identify(updated) not in workspace:
                part.pop("workspace", None)
            merged = lockfile.merge(lockfile.prune(self.lock, state.spec), part)
            changed = lockfile.format(merged) != lockfile.format(self.lock)
            self.lock = merged
            if changed:
                lockfile.write(self.lock_path, merged)
        return changed


class Dependency:
    """All references sharing one ``kind:name``."""

    def __init__(self, context: Context, refs: List[DependencyRef]):
        if not refs:
            raise ValueError("A dependency needs at least one reference")
        self.context = context
        self._refs = list(refs)
        first = refs[0].dependency
        self.kind: DependencyKind = first.kind
        self.name: str = first.name
        self.specifier: str = name_key(first)
        self._requirements: Dict[str, DependencySpec] = {}
        for ref in refs:
            self._requirements.setdefault(identify(ref.dependency), ref.dependency)

    def __repr__(self) -> str:
        return f"Dependency({self.specifier!r}, refs={self.refs!r})"

    @property
    def refs(self) -> List[str]:
        """Distinct paths of the files referencing this dependency."""
        return _distinct(ref.source.path for ref in self._refs)

    @property
    def requirements(self) -> List[DependencySpec]:
        """Distinct requirements, one per ``identify`` key."""
        return list(self._requirements.values())

    def refs_for(self, req: str) -> List[DependencyRef]:
        """References carrying the requirement key req."""
        return [ref for ref in self._refs if identify(ref.dependency) == req]

    async def _bump(self, state: DependencyState) -> Optional[DependencyBump]:
        update = await self.context.service.get(state)
        if update is None:
            return None
        return bumps.get(state, update)

    async def check(self) -> Optional["Update"]:
        """Resolve every requirement and merge the bumps into one Update.

        Raises:
            ConflictingBumpTargets: When requirements want different targets.
        """
        states = {
            req: DependencyState(spec, self.context.locked_version(spec))
            for req, spec in self._requirements.items()
        }
        results = await asyncio.gather(*(self._bump(state) for state in states.values()))
        decided = {req: bump for req, bump in zip(states, results) if bump is not None}
        if not decided:
            return None

        constraint_targets = _distinct(bump.constraint for bump in decided.values())
        lock_targets = _distinct(bump.lock for bump in decided.values())
        if len(constraint_targets) > 1:
            raise ConflictingBumpTargets(self.name, "constraint", constraint_targets)
        if len(lock_targets) > 1:
            raise ConflictingBumpTargets(self.name, "lock", lock_targets)

        constraint = None
        if constraint_targets:
            to = constraint_targets[0]
            priors = _distinct(
                state.constraint for state in states.values()
                if not semver.intersects(state.constraint, to)
            )
            constraint = VersionBump(from_=", ".join(priors) or None, to=to)
        lock = None
        if lock_targets:
            to = lock_targets[0]
            priors = _distinct(
                state.locked for state in states.values() if state.locked != to
            )
            lock = VersionBump(from_=", ".join(priors) or None, to=to)

        if is_debug_enabled(logger):
            logger.debug(
                "Update found",
                extra=extra_context(
                    event="update",
                    component="context",
                    target=self.specifier,
                    constraint=constraint.to if constraint else None,
                    lock=lock.to if lock else None,
                ),
            )
        return Update(self, states, decided, constraint, lock)


class Update:
    """One bump decision for a dependency; immutable once computed."""

    def __init__(
        self,
        dep: Dependency,
        states: Dict[str, DependencyState],
        decided: Dict[str, DependencyBump],
        constraint: Optional[VersionBump],
        lock: Optional[VersionBump],
    ):
        self.dep = dep
        self.constraint = constraint
        self.lock = lock
        self._states = states
        self._bumps = decided

    def __repr__(self) -> str:
        return f"Update({self.dep.specifier!r}, constraint={self.constraint}, lock={self.lock})"

    @property
    def types(self) -> List[str]:
        """Which of "constraint" and "lock" this update changes."""
        return [name for name, bump in (("constraint", self.constraint), ("lock", self.lock)) if bump]

    async def write(self) -> None:
        """Rewrite every reference and, for lock bumps, the lockfile.

        Calling it again after a successful write changes nothing.
        """
        for req, bump in self._bumps.items():
            state = self._states[req]
            if bump.constraint and bump.constraint != state.constraint:
                for ref in self.dep.refs_for(req):
                    if rewrite(ref, bump.constraint):
                        logger.info("Updated %s in %s", self.dep.name, ref.source.path)
        for req, bump in self._bumps.items():
            if bump.lock:
                state = self._states[req]
                await self.dep.context.update_lock(state, bump.constraint or state.constraint, bump.lock)

    def files(self) -> List[str]:
        """Files a commit of this update covers."""
        files = list(self.dep.refs)
        lock_path = self.dep.context.lock_path
        if self.lock and lock_path and lock_path not in files:
            files.append(lock_path)
        return files

    def summary(self, prefix: str = "") -> str:
        """Commit subject for this update, kept within the subject length budget."""
        head = f"{prefix.rstrip()} " if prefix.strip() else ""
        bump = self.constraint
        if bump is None or semver.try_parse(bump.to) is None:
            bump = self.lock or self.constraint
        candidates = []
        if bump is not None:
            if bump.from_:
                candidates.append(f"{head}bump {self.dep.name} from {bump.from_} to {bump.to}")
            candidates.append(f"{head}bump {self.dep.name} to {bump.to}")
        candidates.append(f"{head}bump {self.dep.name}")
        for message in candidates:
            if len(message) <= Constants.COMMIT_SUBJECT_MAX:
                return message
        return candidates[-1]

    def commit(self, message: Optional[str] = None, prefix: str = "") -> str:
        """Stage the touched files and commit them.

        Returns:
            The commit message used.
        """
        message = message or self.summary(prefix)
        git = self.dep.context.git
        git.add(self.files())
        git.commit(message)
        return message
