"""Redirect-based resolver for versioned http(s) module URLs."""

import logging
from typing import List, Optional

from registry import remote as remote_registry
from .. import semver
from ..models import DependencyKind, DependencySpec, DependencyState, DependencyUpdate
from ..specs import try_parse
from .base import VersionResolver

logger = logging.getLogger(__name__)


class RemoteVersionResolver(VersionResolver):
    """Resolver for URL imports whose host redirects to the latest release."""

    @property
    def kinds(self) -> List[DependencyKind]:
        return [DependencyKind.HTTP, DependencyKind.HTTPS]

    def cache_key(self, spec: DependencySpec) -> str:
        return remote_registry.unversioned_url(spec)

    async def fetch_candidates(self, spec: DependencySpec) -> List[str]:
        """Return the version the unversioned URL redirects to, if any."""
        url = await remote_registry.fetch_latest_url(self.client, spec)
        if url is None:
            return []
        target = try_parse(url)
        if target is None:
            logger.debug("Redirect target of %s carries no version: %s", spec.name, url)
            return []
        return [target.constraint]

    def pick(self, state: DependencyState, candidates: List[str]) -> Optional[DependencyUpdate]:
        """Classify the redirect target as released or, for pre-releases, latest."""
        if not candidates:
            return None
        version = candidates[0]
        if version == state.constraint:
            return None
        target = semver.try_parse(version)
        if target is None:
            return None
        current = semver.try_parse(state.constraint)
        if current is not None and target <= current:
            return None
        if target.prerelease:
            return DependencyUpdate(latest=version)
        return DependencyUpdate(released=version)
