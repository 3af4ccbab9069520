"""Dependency references found in source files and their in-place rewrite."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Union

from versioning.models import DependencySpec
from versioning.specs import stringify, try_parse
from .graph import GraphBuilder, Module, Span
from .import_map import ImportMap, detect_eol, read_import_map_json
from . import import_map as import_maps

logger = logging.getLogger(__name__)


class SourceKind(Enum):
    """Kind of artifact a reference lives in."""
    ESM = "esm"
    IMPORT_MAP = "import_map"


@dataclass(frozen=True)
class EsmLocator:
    """Span of the quoted specifier in an ES module."""
    span: Span


@dataclass(frozen=True)
class ImportMapLocator:
    """Entry of an import map, optionally inside a scope."""
    key: str
    scope: Optional[str] = None


Locator = Union[EsmLocator, ImportMapLocator]


@dataclass(frozen=True)
class DependencySource:
    kind: SourceKind
    path: str
    locator: Locator


@dataclass(frozen=True)
class DependencyRef:
    """One occurrence of a dependency specifier in one file."""
    dependency: DependencySpec
    source: DependencySource


def _sort(refs: List[DependencyRef]) -> List[DependencyRef]:
    return sorted(refs, key=lambda ref: ref.dependency.name)


def from_module(module: Module) -> List[DependencyRef]:
    """References to versioned dependencies imported by a scanned module."""
    refs = []
    for dep in module.dependencies:
        spec = try_parse(dep.specifier)
        if spec is None:
            continue
        refs.append(
            DependencyRef(
                dependency=spec,
                source=DependencySource(SourceKind.ESM, module.specifier, EsmLocator(dep.span)),
            )
        )
    return refs


def from_import_map(import_map: ImportMap) -> List[DependencyRef]:
    """References held in ``imports`` and ``scopes``; other values are skipped."""
    refs = []
    for key, value in import_map.imports.items():
        spec = try_parse(value)
        if spec is not None:
            refs.append(
                DependencyRef(
                    dependency=spec,
                    source=DependencySource(SourceKind.IMPORT_MAP, import_map.path, ImportMapLocator(key)),
                )
            )
    for scope, imports in import_map.scopes.items():
        for key, value in imports.items():
            spec = try_parse(value)
            if spec is not None:
                refs.append(
                    DependencyRef(
                        dependency=spec,
                        source=DependencySource(
                            SourceKind.IMPORT_MAP, import_map.path, ImportMapLocator(key, scope)
                        ),
                    )
                )
    return refs


def collect(path: str) -> List[DependencyRef]:
    """Collect references from one file, sorted by dependency name.

    ``.json``/``.jsonc`` files are read as import maps, anything else as an
    ES module (without following its local imports).
    """
    if os.path.splitext(path)[1] in (".json", ".jsonc"):
        return _sort(from_import_map(read_import_map_json(path)))
    modules = GraphBuilder().build([path], resolve_local=False)
    return _sort([ref for module in modules for ref in from_module(module)])


def _read(path: str) -> str:
    with open(path, "r", encoding="utf-8", newline="") as fh:
        return fh.read()


def _write(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(content)


def _rewrite_es_module(ref: DependencyRef, locator: EsmLocator, updated: DependencySpec, content: str) -> str:
    eol = detect_eol(content)
    lines = content.split(eol)
    span = locator.span
    index = span.start.line
    if index >= len(lines):
        return content
    line = lines[index]
    outdated = stringify(ref.dependency)
    replacement = stringify(updated)
    inner = line[span.start.character + 1:span.end.character - 1]
    if inner == outdated:
        lines[index] = line[:span.start.character + 1] + replacement + line[span.end.character - 1:]
    elif inner == replacement:
        return content
    else:
        # The span moved, e.g. an earlier specifier on the same line was rewritten.
        for quote in ('"', "'"):
            literal = f"{quote}{outdated}{quote}"
            if literal in line:
                lines[index] = line.replace(literal, f"{quote}{replacement}{quote}", 1)
                break
        else:
            logger.debug("%s no longer imports %s", ref.source.path, outdated)
            return content
    return eol.join(lines)


def _rewrite_import_map(ref: DependencyRef, locator: ImportMapLocator, updated: DependencySpec, content: str) -> str:
    return import_maps.rewrite(
        content,
        locator.key,
        stringify(ref.dependency),
        stringify(updated),
        scope=locator.scope,
    )


def rewrite(ref: DependencyRef, constraint: str) -> bool:
    """Rewrite the artifact holding ref so that it requires constraint.

    Returns:
        True when the file changed, False when it already held the target.
    """
    updated = replace(ref.dependency, constraint=constraint)
    content = _read(ref.source.path)
    locator = ref.source.locator
    if ref.source.kind is SourceKind.ESM and isinstance(locator, EsmLocator):
        result = _rewrite_es_module(ref, locator, updated, content)
    elif ref.source.kind is SourceKind.IMPORT_MAP and isinstance(locator, ImportMapLocator):
        result = _rewrite_import_map(ref, locator, updated, content)
    else:
        raise ValueError(f"Unsupported dependency source: {ref.source.kind}")
    if result == content:
        return False
    _write(ref.source.path, result)
    logger.debug("Rewrote %s in %s", stringify(updated), ref.source.path)
    return True
