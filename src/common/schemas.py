"""JSON Schema validation for lockfiles, import maps and registry payloads.

Wraps jsonschema Draft7 validation and raises SchemaError on the first
problem, so malformed documents abort the run instead of producing
half-resolved results.
"""

from __future__ import annotations

from typing import Any, Dict

from jsonschema import Draft7Validator

from .errors import SchemaError

_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}

LOCKFILE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["version"],
    "properties": {
        "version": {"type": "string"},
        "packages": {
            "type": "object",
            "properties": {
                "specifiers": _STRING_MAP,
                "jsr": {
                    "type": "object",
                    "additionalProperties": {
                        "type": "object",
                        "required": ["integrity"],
                        "properties": {
                            "integrity": {"type": "string"},
                            "dependencies": {"type": "array", "items": {"type": "string"}},
                        },
                    },
                },
                "npm": {
                    "type": "object",
                    "additionalProperties": {
                        "type": "object",
                        "required": ["integrity"],
                        "properties": {
                            "integrity": {"type": "string"},
                            "dependencies": _STRING_MAP,
                        },
                    },
                },
            },
        },
        "remote": _STRING_MAP,
        "workspace": {
            "type": "object",
            "properties": {
                "dependencies": {"type": "array", "items": {"type": "string"}},
            },
        },
    },
}

IMPORT_MAP_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "imports": _STRING_MAP,
        "scopes": {"type": "object", "additionalProperties": _STRING_MAP},
        "importMap": {"type": "string"},
    },
}

NPM_PACKUMENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["versions"],
    "properties": {
        "dist-tags": _STRING_MAP,
        "versions": {"type": "object"},
    },
}

NPM_VERSION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["dist"],
    "properties": {
        "dist": {
            "type": "object",
            "required": ["integrity"],
            "properties": {"integrity": {"type": "string"}},
        },
        "dependencies": _STRING_MAP,
    },
}

JSR_META_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["versions"],
    "properties": {
        "latest": {"type": ["string", "null"]},
        "versions": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {"yanked": {"type": "boolean"}},
            },
        },
    },
}

JSR_DEPENDENCIES_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["kind", "name", "constraint"],
        "properties": {
            "kind": {"type": "string", "enum": ["jsr", "npm"]},
            "name": {"type": "string"},
            "constraint": {"type": "string"},
            "path": {"type": "string"},
        },
    },
}


def validate(instance: Any, schema: Dict[str, Any], what: str) -> Any:
    """Validate instance strictly and raise on the first error.

    Args:
        instance: Decoded JSON document.
        schema: Draft-07 JSON Schema dict.
        what: Human readable document name used in the error.

    Returns:
        The instance, unchanged, for call chaining.
    """
    validator = Draft7Validator(schema)
    errs = sorted(
        validator.iter_errors(instance),
        key=lambda e: "/".join(str(p) for p in e.path),
    )
    if errs:
        first = errs[0]
        path = "/".join(str(p) for p in first.path)
        raise SchemaError(what, f"at '{path}': {first.message}")
    return instance
