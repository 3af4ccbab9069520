"""
  npm registry adapter. Fetches the published version list of a package
  and the integrity/dependency metadata of one version.
"""
import logging
from typing import Any, Dict, List

from constants import Constants
from common.http_client import RegistryClient
from common.logging_utils import extra_context, is_debug_enabled
from common.schemas import NPM_PACKUMENT_SCHEMA, NPM_VERSION_SCHEMA, validate

logger = logging.getLogger(__name__)


def package_url(name: str) -> str:
    """Packument URL for name."""
    return f"{Constants.REGISTRY_URL_NPM}{name}"


async def fetch_versions(client: RegistryClient, name: str) -> List[str]:
    """Return every published version of an npm package.

    Args:
        client: HTTP client.
        name: Package name, scoped names included.

    Returns:
        list: Version strings in registry order.
    """
    url = package_url(name)
    data = validate(await client.get_json(url), NPM_PACKUMENT_SCHEMA, f"npm packument for {name}")
    versions = list(data["versions"].keys())
    if is_debug_enabled(logger):
        logger.debug(
            "Fetched npm versions",
            extra=extra_context(
                event="registry_versions",
                component="npm",
                target=name,
                count=len(versions),
            ),
        )
    return versions


async def fetch_version_info(client: RegistryClient, name: str, version: str) -> Dict[str, Any]:
    """Return the version document: ``dist.integrity`` and ``dependencies``."""
    url = f"{package_url(name)}/{version}"
    return validate(
        await client.get_json(url),
        NPM_VERSION_SCHEMA,
        f"npm metadata for {name}@{version}",
    )
