"""Version resolvers for different specifier kinds."""

from .base import VersionResolver
from .jsr import JsrVersionResolver
from .npm import NpmVersionResolver
from .package import PackageVersionResolver
from .remote import RemoteVersionResolver

__all__ = [
    "VersionResolver",
    "PackageVersionResolver",
    "JsrVersionResolver",
    "NpmVersionResolver",
    "RemoteVersionResolver",
]
