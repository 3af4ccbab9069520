"""Group updates into commits and execute them in order."""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from common.errors import ConflictingBumpTargets
from versioning import semver
from versioning.models import VersionBump
from .context import Update

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitProps:
    """What a commit message template gets to work with."""
    group: str
    types: List[str]
    version: Optional[VersionBump]


@dataclass
class Commit:
    """A planned commit covering one group of updates."""
    group: str
    message: str
    updates: List[Update] = field(default_factory=list)

    @property
    def files(self) -> List[str]:
        out: List[str] = []
        for update in self.updates:
            for path in update.files():
                if path not in out:
                    out.append(path)
        return out


Hook = Callable[[Commit], Any]


@dataclass
class CommitSequence:
    """Ordered commits plus the hooks run around each of them."""
    commits: List[Commit]
    pre_commit: Optional[Hook] = None
    post_commit: Optional[Hook] = None


def _preferred_bump(update: Update) -> Optional[VersionBump]:
    if update.constraint and semver.try_parse(update.constraint.to) is not None:
        return update.constraint
    return update.lock or update.constraint


def get_version_change(updates: Sequence[Update]) -> Optional[VersionBump]:
    """Common version change of updates to one dependency.

    Returns:
        None when the updates concern several dependencies. Otherwise the
        shared target, with ``from_`` set only when every update started
        from the same version.

    Raises:
        ConflictingBumpTargets: When the updates target different versions.
    """
    names = {update.dep.name for update in updates}
    if len(names) != 1:
        return None
    bumps = [bump for bump in (_preferred_bump(update) for update in updates) if bump]
    if not bumps:
        return None
    targets = []
    for bump in bumps:
        if bump.to not in targets:
            targets.append(bump.to)
    if len(targets) > 1:
        raise ConflictingBumpTargets(names.pop(), "commit", targets)
    froms = {bump.from_ for bump in bumps}
    from_ = froms.pop() if len(froms) == 1 else None
    return VersionBump(from_=from_, to=targets[0])


def default_commit_message(props: CommitProps) -> str:
    """``bump {group} from {from} to {to}``, omitting the unknown parts."""
    message = f"bump {props.group}"
    if props.version and props.version.from_:
        message += f" from {props.version.from_}"
    if props.version:
        message += f" to {props.version.to}"
    return message


def create_commit_sequence(
    updates: Sequence[Update],
    group_by: Callable[[Update], str] = lambda update: update.dep.name,
    compose_commit_message: Callable[[CommitProps], str] = default_commit_message,
    pre_commit: Optional[Hook] = None,
    post_commit: Optional[Hook] = None,
) -> CommitSequence:
    """Plan one commit per group, in order of first appearance."""
    groups: Dict[str, List[Update]] = {}
    for update in updates:
        groups.setdefault(group_by(update), []).append(update)
    commits = []
    for group, members in groups.items():
        types: List[str] = []
        for update in members:
            for kind in update.types:
                if kind not in types:
                    types.append(kind)
        props = CommitProps(group=group, types=types, version=get_version_change(members))
        commits.append(Commit(group=group, message=compose_commit_message(props), updates=members))
    return CommitSequence(commits=commits, pre_commit=pre_commit, post_commit=post_commit)


async def _run_hook(hook: Optional[Hook], commit: Commit) -> None:
    if hook is None:
        return
    result = hook(commit)
    if inspect.isawaitable(result):
        await result


async def execute(sequence: CommitSequence) -> None:
    """Write, stage and commit each planned commit in turn.

    The first failing step raises; commits already made are kept.
    """
    for commit in sequence.commits:
        if not commit.updates:
            continue
        for update in commit.updates:
            await update.write()
        await _run_hook(sequence.pre_commit, commit)
        git = commit.updates[0].dep.context.git
        git.add(commit.files)
        git.commit(commit.message)
        logger.info("Committed: %s", commit.message)
        await _run_hook(sequence.post_commit, commit)
