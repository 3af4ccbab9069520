"""Dispatch version resolution to the resolver for each specifier kind."""

from typing import Dict, Optional

from common.http_client import RegistryClient
from .cache import ResolutionCache
from .models import DependencyKind, DependencyState, DependencyUpdate
from .resolvers import (
    JsrVersionResolver,
    NpmVersionResolver,
    RemoteVersionResolver,
    VersionResolver,
)


class VersionResolutionService:
    """Owns one resolver per kind, all sharing one resolution cache."""

    def __init__(self, client: RegistryClient, cache: Optional[ResolutionCache] = None):
        self.client = client
        self.cache = cache if cache is not None else ResolutionCache()
        self._resolvers: Dict[DependencyKind, VersionResolver] = {}
        for resolver in (
            JsrVersionResolver(client, self.cache),
            NpmVersionResolver(client, self.cache),
            RemoteVersionResolver(client, self.cache),
        ):
            for kind in resolver.kinds:
                self._resolvers[kind] = resolver

    def resolver_for(self, kind: DependencyKind) -> VersionResolver:
        """Return the resolver handling kind."""
        try:
            return self._resolvers[kind]
        except KeyError as exc:
            raise ValueError(f"No resolver for {kind.value}") from exc

    async def get(self, state: DependencyState) -> Optional[DependencyUpdate]:
        """Resolve the update for one requirement."""
        return await self.resolver_for(state.spec.kind).resolve(state)
