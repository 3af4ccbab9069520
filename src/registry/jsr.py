"""
  JSR registry adapter. Version lists come from the package meta.json,
  integrity hashes from the version manifest and dependency lists from
  the JSR management API.
"""
import hashlib
import logging
from typing import List

from constants import Constants
from common.http_client import RegistryClient
from common.logging_utils import extra_context, is_debug_enabled
from common.schemas import JSR_DEPENDENCIES_SCHEMA, JSR_META_SCHEMA, validate
from versioning.models import DependencyKind, DependencySpec

logger = logging.getLogger(__name__)


def _split_name(name: str):
    """Split ``@scope/pkg`` into (scope, pkg)."""
    if not name.startswith("@") or "/" not in name:
        raise ValueError(f"Invalid JSR package name: {name}")
    scope, pkg = name[1:].split("/", 1)
    return scope, pkg


async def fetch_versions(client: RegistryClient, name: str) -> List[str]:
    """Return the non-yanked versions of a JSR package."""
    url = f"{Constants.REGISTRY_URL_JSR}{name}/meta.json"
    data = validate(await client.get_json(url), JSR_META_SCHEMA, f"jsr meta for {name}")
    versions = [
        version
        for version, info in data["versions"].items()
        if not info.get("yanked", False)
    ]
    if is_debug_enabled(logger):
        logger.debug(
            "Fetched jsr versions",
            extra=extra_context(
                event="registry_versions",
                component="jsr",
                target=name,
                count=len(versions),
            ),
        )
    return versions


async def fetch_integrity(client: RegistryClient, name: str, version: str) -> str:
    """sha256 hex digest of the version manifest, as recorded in lockfiles."""
    body = await client.get_bytes(f"{Constants.REGISTRY_URL_JSR}{name}/{version}_meta.json")
    return hashlib.sha256(body).hexdigest()


async def fetch_dependencies(client: RegistryClient, name: str, version: str) -> List[DependencySpec]:
    """Return the declared dependencies of one JSR package version."""
    scope, pkg = _split_name(name)
    url = f"{Constants.API_URL_JSR}scopes/{scope}/packages/{pkg}/versions/{version}/dependencies"
    data = validate(
        await client.get_json(url, headers={"User-Agent": Constants.USER_AGENT}),
        JSR_DEPENDENCIES_SCHEMA,
        f"jsr dependencies of {name}@{version}",
    )
    deps = []
    for item in data:
        deps.append(
            DependencySpec(
                kind=DependencyKind(item["kind"]),
                name=item["name"],
                constraint=item["constraint"],
                path=item.get("path") or None,
            )
        )
    return deps
