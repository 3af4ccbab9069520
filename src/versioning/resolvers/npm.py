"""npm version resolver."""

from typing import List

from registry import npm as npm_registry
from ..models import DependencyKind, DependencySpec
from .package import PackageVersionResolver


class NpmVersionResolver(PackageVersionResolver):
    """Resolver for npm: specifiers using the npm registry packument."""

    @property
    def kinds(self) -> List[DependencyKind]:
        return [DependencyKind.NPM]

    async def fetch_candidates(self, spec: DependencySpec) -> List[str]:
        """Fetch version candidates from the npm registry packument."""
        return await npm_registry.fetch_versions(self.client, spec.name)
