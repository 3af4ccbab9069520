"""Base class for version resolvers."""

from abc import ABC, abstractmethod
from typing import List, Optional

from common.http_client import RegistryClient
from ..cache import ResolutionCache
from ..models import DependencyKind, DependencySpec, DependencyState, DependencyUpdate


class VersionResolver(ABC):
    """Fetch candidate versions for a dependency and pick the interesting ones."""

    def __init__(self, client: RegistryClient, cache: Optional[ResolutionCache] = None):
        """Initialize with an HTTP client and a shared per-run cache."""
        self.client = client
        self.cache = cache if cache is not None else ResolutionCache()

    @property
    @abstractmethod
    def kinds(self) -> List[DependencyKind]:
        """Specifier kinds handled by this resolver."""

    @abstractmethod
    def cache_key(self, spec: DependencySpec) -> str:
        """Key under which candidates for spec are memoized."""

    @abstractmethod
    async def fetch_candidates(self, spec: DependencySpec) -> List[str]:
        """Fetch candidate version strings for spec."""

    @abstractmethod
    def pick(self, state: DependencyState, candidates: List[str]) -> Optional[DependencyUpdate]:
        """Select constrainted/released/latest versions among candidates."""

    async def candidates(self, spec: DependencySpec) -> List[str]:
        """Candidates for spec, fetched at most once per cache key."""
        return await self.cache.get_or_fetch(
            self.cache_key(spec), lambda: self.fetch_candidates(spec)
        )

    async def resolve(self, state: DependencyState) -> Optional[DependencyUpdate]:
        """Resolve the update for one requirement, or None when up to date."""
        return self.pick(state, await self.candidates(state.spec))
