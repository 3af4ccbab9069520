"""Shared fixtures: an in-memory registry client and registry payloads."""

import hashlib
import json
from typing import Dict, List, Optional

import pytest

from common.errors import HttpError


class FakeRegistryClient:
    """Stands in for RegistryClient; answers from URL-keyed tables."""

    def __init__(self, json_docs=None, bodies=None, redirects=None):
        self.json_docs: Dict[str, object] = dict(json_docs or {})
        self.bodies: Dict[str, bytes] = dict(bodies or {})
        self.redirects: Dict[str, str] = dict(redirects or {})
        self.calls: List[str] = []
        self.headers: Dict[str, Optional[dict]] = {}

    async def start(self):
        return None

    async def stop(self):
        return None

    async def get_json(self, url, *, headers=None):
        self.calls.append(url)
        self.headers[url] = headers
        if url in self.json_docs:
            return json.loads(json.dumps(self.json_docs[url]))
        if url in self.bodies:
            return json.loads(self.bodies[url].decode("utf-8"))
        raise HttpError(url, 404, "Not Found")

    async def get_bytes(self, url, *, headers=None):
        self.calls.append(url)
        if url in self.bodies:
            return self.bodies[url]
        if url in self.json_docs:
            return json.dumps(self.json_docs[url]).encode("utf-8")
        raise HttpError(url, 404, "Not Found")

    async def resolve_redirect(self, url):
        self.calls.append(url)
        return self.redirects.get(url)


def sha256(body: bytes) -> str:
    return hashlib.sha256(body).hexdigest()


LUCA_FLAG_META = {
    "scope": "luca",
    "name": "flag",
    "latest": "1.0.1",
    "versions": {"1.0.0": {}, "1.0.1": {}},
}

LUCA_FLAG_VERSION_META = b'{"manifest":{"/mod.ts":{"size":1024}}}'


@pytest.fixture
def registry():
    """Registry serving @luca/flag (jsr) and @conventional-commits/parser (npm)."""
    return FakeRegistryClient(
        json_docs={
            "https://jsr.io/@luca/flag/meta.json": LUCA_FLAG_META,
            "https://api.jsr.io/scopes/luca/packages/flag/versions/1.0.1/dependencies": [],
            "https://registry.npmjs.org/@conventional-commits/parser": {
                "name": "@conventional-commits/parser",
                "versions": {"0.3.0": {}, "0.4.0": {}, "0.4.1": {}},
            },
            "https://registry.npmjs.org/@conventional-commits/parser/0.4.1": {
                "dist": {"integrity": "sha512-parser"},
                "dependencies": {"unist-util-visit": "^2.0.0"},
            },
            "https://registry.npmjs.org/unist-util-visit": {
                "versions": {"2.0.2": {}, "2.0.3": {}, "3.0.0": {}},
            },
            "https://registry.npmjs.org/unist-util-visit/2.0.3": {
                "dist": {"integrity": "sha512-visit"},
            },
        },
        bodies={
            "https://jsr.io/@luca/flag/1.0.1_meta.json": LUCA_FLAG_VERSION_META,
        },
    )


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run a test from an empty temporary directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
