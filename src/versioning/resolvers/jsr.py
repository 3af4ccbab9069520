"""JSR version resolver."""

from typing import List

from registry import jsr as jsr_registry
from ..models import DependencyKind, DependencySpec
from .package import PackageVersionResolver


class JsrVersionResolver(PackageVersionResolver):
    """Resolver for jsr: specifiers using the package meta.json."""

    @property
    def kinds(self) -> List[DependencyKind]:
        return [DependencyKind.JSR]

    async def fetch_candidates(self, spec: DependencySpec) -> List[str]:
        """Fetch non-yanked versions from JSR."""
        return await jsr_registry.fetch_versions(self.client, spec.name)
