"""Shared version selection for registry packages (jsr and npm)."""

import logging
from typing import List, Optional

from common.errors import UnsupportedConstraintFormat
from common.logging_utils import extra_context, is_debug_enabled
from .. import semver
from ..models import DependencySpec, DependencyState, DependencyUpdate
from ..specs import name_key
from .base import VersionResolver

logger = logging.getLogger(__name__)


class PackageVersionResolver(VersionResolver):
    """Applies npm range semantics to a registry's full version list."""

    def cache_key(self, spec: DependencySpec) -> str:
        return name_key(spec)

    def pick(self, state: DependencyState, candidates: List[str]) -> Optional[DependencyUpdate]:
        """Compute constrainted, released and latest versions.

        Args:
            state: Requirement with its locked version, if any.
            candidates: Every published version.

        Returns:
            DependencyUpdate, or None when nothing newer exists on any axis.
        """
        constraint = state.constraint
        try:
            spec = semver.parse_range(constraint)
        except ValueError as exc:
            raise UnsupportedConstraintFormat(constraint) from exc
        floor = semver.try_parse(state.locked)

        constrainted: Optional[str] = None
        released: Optional[str] = None
        latest: Optional[str] = None
        for version, text in semver.sort_versions(candidates):
            if spec.match(version):
                if floor is None or version > floor:
                    constrainted = text
            elif semver.greater_than_range(text, constraint):
                latest = text
                if not version.prerelease:
                    released = text

        if latest == released:
            latest = None
        if is_debug_enabled(logger):
            logger.debug(
                "Picked versions",
                extra=extra_context(
                    event="resolve",
                    component="resolver",
                    target=state.spec.name,
                    constraint=constraint,
                    locked=state.locked,
                    constrainted=constrainted,
                    released=released,
                    latest=latest,
                ),
            )
        if not (constrainted or released or latest):
            return None
        return DependencyUpdate(constrainted=constrainted, released=released, latest=latest)
