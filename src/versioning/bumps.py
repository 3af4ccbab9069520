"""Decide the new constraint and lock for one requirement."""

from typing import Optional

from . import semver
from .constraints import increase
from .models import DependencyBump, DependencyState, DependencyUpdate


def get(state: DependencyState, update: DependencyUpdate) -> Optional[DependencyBump]:
    """Reconcile a requirement's state with its resolved update.

    Rules, first match wins:
      1. ``latest`` when the current constraint is itself a pre-release version.
      2. ``released``.
      3. ``constrainted``, which only moves the lock of a locked requirement.

    A chosen target widens the constraint; the lock follows the target when
    the requirement is locked.
    """
    target: Optional[str] = None
    if update.latest and semver.is_prerelease(state.constraint):
        target = update.latest
    elif update.released:
        target = update.released
    elif update.constrainted:
        if state.locked:
            return DependencyBump(lock=update.constrainted)
        return None
    if target is None:
        return None
    constraint = increase(state.constraint, target)
    if state.locked:
        return DependencyBump(constraint=constraint, lock=target)
    return DependencyBump(constraint=constraint)
