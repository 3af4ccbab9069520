"""Import maps embedded in deno.json(c) or standalone JSON files.

Reading tolerates JSONC (comments and trailing commas). Writing edits the
matching line in place so that formatting and comments survive.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from common.errors import SchemaError
from common.schemas import IMPORT_MAP_SCHEMA, validate

logger = logging.getLogger(__name__)


def strip_jsonc_comments(content: str) -> str:
    """Strip comments from JSONC (JSON with comments) content.

    Removes:
    - Single-line comments (// ...)
    - Multi-line comments (/* ... */)
    - Trailing commas before closing brackets/braces

    String literals are left untouched, so URLs such as ``https://...``
    survive.

    Args:
        content: JSONC string content

    Returns:
        JSON string with comments removed
    """
    out = []
    i = 0
    n = len(content)
    in_string = False
    while i < n:
        ch = content[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(content[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif content.startswith("//", i):
            end = content.find("\n", i)
            i = n if end == -1 else end
        elif content.startswith("/*", i):
            end = content.find("*/", i + 2)
            i = n if end == -1 else end + 2
        elif ch == ",":
            j = i + 1
            while j < n and content[j] in " \t\r\n":
                j += 1
            if j < n and content[j] in "}]":
                i += 1
                continue
            out.append(ch)
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def parse_import_map_json(content: str, what: str = "import map") -> Dict:
    """Parse JSONC content holding ``imports`` and/or ``scopes``."""
    try:
        data = json.loads(strip_jsonc_comments(content))
    except json.JSONDecodeError as exc:
        raise SchemaError(what, f"not valid JSON ({exc})") from exc
    return validate(data, IMPORT_MAP_SCHEMA, what)


@dataclass
class ImportMap:
    """An import map and the file it was read from."""
    path: str
    imports: Dict[str, str] = field(default_factory=dict)
    scopes: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @property
    def base_dir(self) -> str:
        return os.path.dirname(self.path)

    def resolve(self, specifier: str) -> Optional[str]:
        """Map a specifier through ``imports``; None when no key matches.

        Exact keys win over prefix keys ending in ``/``; among prefix keys the
        longest wins. Relative targets are resolved against the map's directory.
        """
        value = self.imports.get(specifier)
        if value is None:
            prefixes = [key for key in self.imports if key.endswith("/") and specifier.startswith(key)]
            if not prefixes:
                return None
            key = max(prefixes, key=len)
            value = self.imports[key] + specifier[len(key):]
        if value.startswith(("./", "../")):
            return os.path.normpath(os.path.join(self.base_dir, value))
        return value


def read_import_map_json(path: str) -> ImportMap:
    """Read an import map, following a deno.json ``importMap`` reference.

    Raises:
        SchemaError: When the file does not hold a valid import map.
    """
    with open(path, "r", encoding="utf-8") as fh:
        data = parse_import_map_json(fh.read(), what=f"import map {path}")
    if "imports" not in data and "scopes" not in data and "importMap" in data:
        target = os.path.normpath(os.path.join(os.path.dirname(path), data["importMap"]))
        logger.debug("Following importMap reference from %s to %s", path, target)
        return read_import_map_json(target)
    return ImportMap(path=path, imports=data.get("imports", {}), scopes=data.get("scopes", {}))


def detect_eol(content: str) -> str:
    """Line ending used by content, defaulting to the platform's."""
    index = content.find("\n")
    if index == -1:
        return os.linesep
    return "\r\n" if index > 0 and content[index - 1] == "\r" else "\n"


def rewrite(content: str, key: str, outdated: str, updated: str, scope: Optional[str] = None) -> str:
    """Replace the value outdated of key (within scope) by updated.

    Returns:
        The new content, or content unchanged when the entry no longer holds
        outdated.
    """
    data = parse_import_map_json(content)
    table = data.get("scopes", {}).get(scope, {}) if scope else data.get("imports", {})
    if table.get(key) != outdated:
        return content

    eol = detect_eol(content)
    lines = content.split(eol)
    start = 0
    if scope:
        scope_literal = json.dumps(scope, ensure_ascii=False)
        start = next((i for i, line in enumerate(lines) if scope_literal in line), 0)
    key_literal = json.dumps(key, ensure_ascii=False)
    outdated_literal = json.dumps(outdated, ensure_ascii=False)
    candidates = [i for i in range(start, len(lines)) if outdated_literal in lines[i]]
    if not candidates:
        return content
    index = next((i for i in candidates if key_literal in lines[i]), candidates[0])
    lines[index] = lines[index].replace(outdated_literal, json.dumps(updated, ensure_ascii=False), 1)
    result = eol.join(lines)
    if not result.endswith(eol):
        result += eol
    return result
