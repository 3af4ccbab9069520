"""ES module import scanning and module graph traversal.

The scanner is regex based: it finds string specifiers of static imports,
re-exports, ``import type`` and dynamic ``import("...")`` calls, and records
the span of each quoted literal (quotes included, end exclusive).
"""
from __future__ import annotations

import asyncio
import bisect
import logging
import os
import re
import urllib.parse
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from constants import Constants
from common.http_client import RegistryClient

logger = logging.getLogger(__name__)

_SPECIFIER = r"(?P<quote>['\"])(?P<specifier>[^'\"\r\n]+)(?P=quote)"

_PATTERNS = [
    # import "./side-effect.ts";
    re.compile(r"\bimport\s*" + _SPECIFIER),
    # import x from "..."; import { a, b } from "..."; export * from "...";
    re.compile(r"\b(?:import|export)\b[^'\";]*?\bfrom\s*" + _SPECIFIER),
    # import("...")
    re.compile(r"\bimport\s*\(\s*" + _SPECIFIER + r"\s*[,)]"),
]

_COMMENT_PREFIXES = ("//", "/*", "*")

Resolver = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class Position:
    """Zero-based line and character offset."""
    line: int
    character: int


@dataclass(frozen=True)
class Span:
    """Half-open range covering a quoted specifier literal."""
    start: Position
    end: Position


@dataclass(frozen=True)
class ModuleDependency:
    """One specifier found in a module."""
    specifier: str
    span: Span


@dataclass
class Module:
    """A scanned module: a local path or a remote URL plus its imports."""
    specifier: str
    dependencies: List[ModuleDependency] = field(default_factory=list)


def _line_starts(text: str) -> List[int]:
    starts = [0]
    for match in re.finditer(r"\r\n|\n|\r", text):
        starts.append(match.end())
    return starts


def _in_comment(text: str, line_start: int, offset: int) -> bool:
    prefix = text[line_start:offset].lstrip()
    return prefix.startswith(_COMMENT_PREFIXES)


def scan(text: str) -> List[ModuleDependency]:
    """Return the import specifiers of an ES module in source order."""
    starts = _line_starts(text)
    found: Dict[int, ModuleDependency] = {}
    for pattern in _PATTERNS:
        for match in pattern.finditer(text):
            quote_start = match.start("quote")
            if quote_start in found:
                continue
            line = bisect.bisect_right(starts, match.start()) - 1
            if _in_comment(text, starts[line], match.start()):
                continue
            quote_line = bisect.bisect_right(starts, quote_start) - 1
            character = quote_start - starts[quote_line]
            length = match.end("specifier") + 1 - quote_start
            found[quote_start] = ModuleDependency(
                specifier=match.group("specifier"),
                span=Span(
                    start=Position(quote_line, character),
                    end=Position(quote_line, character + length),
                ),
            )
    return [found[offset] for offset in sorted(found)]


def _strip_suffix(specifier: str) -> str:
    return specifier.split("?", 1)[0].split("#", 1)[0]


def _local_path(referrer: str, specifier: str) -> Optional[str]:
    """Filesystem path a specifier points at, or None for non-local ones."""
    if specifier.startswith("file://"):
        return os.path.relpath(urllib.parse.unquote(urllib.parse.urlsplit(specifier).path))
    specifier = _strip_suffix(specifier)
    if specifier.startswith(("./", "../")):
        return os.path.normpath(os.path.join(os.path.dirname(referrer), specifier))
    if os.path.isabs(specifier):
        return os.path.relpath(specifier)
    return None


class GraphBuilder:
    """Walks local ES modules starting from entrypoints."""

    def __init__(self, extensions: Optional[Iterable[str]] = None):
        self.extensions = tuple(extensions or Constants.MODULE_EXTENSIONS)

    def read(self, path: str) -> str:
        """Read module source."""
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()

    def build(
        self,
        entrypoints: Iterable[str],
        resolve: Optional[Resolver] = None,
        resolve_local: bool = True,
    ) -> List[Module]:
        """Scan entrypoints and, with resolve_local, the local modules they import.

        Args:
            entrypoints: Module paths.
            resolve: Optional hook mapping a bare specifier (e.g. through an
                import map) before deciding whether it is local.
            resolve_local: Follow relative imports of local files.

        Returns:
            Modules in discovery order.

        Raises:
            FileNotFoundError: When an entrypoint does not exist.
        """
        entries = [os.path.normpath(path) for path in entrypoints]
        queue = list(entries)
        seen = set()
        modules: List[Module] = []
        while queue:
            path = queue.pop(0)
            if path in seen:
                continue
            seen.add(path)
            try:
                text = self.read(path)
            except FileNotFoundError:
                if path in entries:
                    raise
                logger.warning("Skipping missing module %s", path)
                continue
            module = Module(specifier=path, dependencies=scan(text))
            modules.append(module)
            if not resolve_local:
                continue
            for dep in module.dependencies:
                specifier = dep.specifier
                if resolve is not None:
                    specifier = resolve(specifier) or specifier
                local = _local_path(path, specifier)
                if local and local.endswith(self.extensions) and local not in seen:
                    queue.append(local)
        return modules


def _remote_target(referrer: str, specifier: str) -> Optional[str]:
    scheme = urllib.parse.urlsplit(specifier).scheme
    if scheme in ("http", "https"):
        return specifier
    if scheme:
        return None
    if specifier.startswith(("./", "../", "/")):
        return urllib.parse.urljoin(referrer, specifier)
    return None


async def crawl_remote(root: str, client: RegistryClient) -> Dict[str, bytes]:
    """Fetch a remote module and everything it imports over http(s).

    Returns:
        dict: Module URL to body, root included.
    """
    bodies: Dict[str, bytes] = {}
    pending = [root]
    while pending:
        batch = pending
        pending = []
        results = await asyncio.gather(*(client.get_bytes(url) for url in batch))
        for url, body in zip(batch, results):
            bodies[url] = body
        for url, body in zip(batch, results):
            for dep in scan(body.decode("utf-8", errors="replace")):
                target = _remote_target(url, dep.specifier)
                if target and target not in bodies and target not in pending:
                    pending.append(target)
    return bodies
