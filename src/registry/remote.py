"""
  Remote module hosts (deno.land/x and friends). A host that serves
  versioned URLs redirects an unversioned URL to its latest release.
"""
import hashlib
from typing import Optional

from common.http_client import RegistryClient
from versioning.models import DependencySpec
from versioning.specs import stringify


def unversioned_url(spec: DependencySpec) -> str:
    """The dependency URL with its version removed."""
    return stringify(spec, "kind", "name", "path", "query")


async def fetch_latest_url(client: RegistryClient, spec: DependencySpec) -> Optional[str]:
    """URL the host redirects the unversioned URL to, or None."""
    return await client.resolve_redirect(unversioned_url(spec))


async def fetch_checksum(client: RegistryClient, url: str) -> str:
    """sha256 hex digest of a remote module body."""
    return hashlib.sha256(await client.get_bytes(url)).hexdigest()
