"""Tests for the lockfile model: parse, format, query, merge, extract, prune."""

import json

import pytest

import lockfile
from common.errors import SchemaError, UnsupportedLockfileVersion
from versioning.specs import parse


def make_lock():
    return {
        "version": "3",
        "packages": {
            "specifiers": {
                "jsr:@std/assert@^0.222.0": "jsr:@std/assert@0.222.1",
                "jsr:@std/fmt@^0.222.0": "jsr:@std/fmt@0.222.1",
                "npm:debug@^4.3.0": "npm:debug@4.3.4",
            },
            "jsr": {
                "@std/assert@0.222.1": {
                    "integrity": "aaa",
                    "dependencies": ["jsr:@std/fmt@^0.222.0"],
                },
                "@std/fmt@0.222.1": {"integrity": "bbb"},
            },
            "npm": {
                "debug@4.3.4": {"integrity": "ccc", "dependencies": {"ms": "ms@2.1.2"}},
                "ms@2.1.2": {"integrity": "ddd", "dependencies": {}},
            },
        },
        "remote": {
            "https://deno.land/std@0.220.0/fs/mod.ts": "111",
            "https://deno.land/std@0.220.0/path/mod.ts": "222",
            "https://deno.land/x/hono@v4.0.0/mod.ts": "333",
        },
        "workspace": {
            "dependencies": ["jsr:@std/assert@^0.222.0", "npm:debug@^4.3.0"],
        },
    }


class TestParse:
    """parse() validates shape and version."""

    def test_round_trip(self):
        """Formatting a parsed lockfile gives the same text."""
        lock = make_lock()
        assert lockfile.parse(lockfile.format(lock)) == lock

    def test_unsupported_version(self):
        """Lockfiles other than v3 are rejected."""
        with pytest.raises(UnsupportedLockfileVersion):
            lockfile.parse(json.dumps({"version": "2", "remote": {}}))

    def test_invalid_json(self):
        """Malformed JSON raises."""
        with pytest.raises(SchemaError):
            lockfile.parse("{not json")

    def test_invalid_shape(self):
        """A lockfile failing the schema raises SchemaError."""
        with pytest.raises(SchemaError):
            lockfile.parse(json.dumps({"version": "3", "remote": {"https://x": 1}}))

    def test_read_write(self, tmp_path):
        """write and read round-trip through disk."""
        path = tmp_path / "deno.lock"
        lockfile.write(str(path), make_lock())
        assert lockfile.read(str(path)) == make_lock()


class TestFormat:
    """format() produces a stable layout."""

    def test_key_order_and_trailing_newline(self):
        """Keys come out in lockfile order."""
        lock = make_lock()
        lock = {"workspace": lock["workspace"], "remote": lock["remote"], "packages": lock["packages"], "version": "3"}
        text = lockfile.format(lock)
        assert text.endswith("}\n")
        data = json.loads(text)
        assert list(data) == ["version", "packages", "remote", "workspace"]
        assert list(data["packages"]) == ["specifiers", "jsr", "npm"]
        assert list(data["remote"]) == sorted(data["remote"])

    def test_two_space_indent(self):
        """Output is indented by two spaces."""
        text = lockfile.format(lockfile.empty())
        assert text == '{\n  "version": "3",\n  "remote": {}\n}\n'


class TestQuery:
    """query() returns the locked version of a requirement."""

    def test_package(self):
        """The locked version of a package is found."""
        assert lockfile.query(make_lock(), parse("jsr:@std/assert@^0.222.0")) == "0.222.1"

    def test_package_with_path(self):
        """A subpath does not affect the lookup."""
        assert lockfile.query(make_lock(), parse("jsr:@std/assert@^0.222.0/equals")) == "0.222.1"

    def test_missing(self):
        """An unlocked requirement yields None."""
        assert lockfile.query(make_lock(), parse("jsr:@std/path@^0.222.0")) is None

    def test_locked_version_outside_constraint(self):
        """A locked version outside the range is ignored."""
        lock = make_lock()
        lock["packages"]["specifiers"]["jsr:@std/assert@^0.222.0"] = "jsr:@std/assert@0.221.0"
        assert lockfile.query(lock, parse("jsr:@std/assert@^0.222.0")) is None

    def test_remote(self):
        """A remote URL reports the version in its lock key."""
        assert lockfile.query(make_lock(), parse("https://deno.land/std@0.220.0/fs/mod.ts")) == "0.220.0"


class TestExtract:
    """extract() isolates what one requirement pulls in."""

    def test_jsr_closure(self):
        """A jsr package closure includes its dependencies."""
        part = lockfile.extract(make_lock(), parse("jsr:@std/assert@^0.222.0"))
        assert set(part["packages"]["jsr"]) == {"@std/assert@0.222.1", "@std/fmt@0.222.1"}
        assert "npm" not in part["packages"]
        assert part["workspace"] == {"dependencies": ["jsr:@std/assert@^0.222.0"]}

    def test_npm_closure(self):
        """An npm package closure includes its transitives."""
        part = lockfile.extract(make_lock(), parse("npm:debug@^4.3.0"))
        assert set(part["packages"]["npm"]) == {"debug@4.3.4", "ms@2.1.2"}

    def test_remote(self):
        """Remote files under the same versioned prefix are extracted."""
        part = lockfile.extract(make_lock(), parse("https://deno.land/std@0.220.0/fs/mod.ts"))
        assert part == {
            "version": "3",
            "remote": {
                "https://deno.land/std@0.220.0/fs/mod.ts": "111",
                "https://deno.land/std@0.220.0/path/mod.ts": "222",
            },
        }

    def test_nothing_locked(self):
        """An unlocked requirement extracts nothing."""
        assert lockfile.extract(make_lock(), parse("jsr:@std/path@^0.222.0")) is None


class TestMerge:
    """merge() unions namespaces without mutating its inputs."""

    def test_union_and_overwrite(self):
        """Parts are unioned and later entries win."""
        base = make_lock()
        part = {
            "version": "3",
            "packages": {
                "specifiers": {"jsr:@std/path@^1.0.0": "jsr:@std/path@1.0.0"},
                "jsr": {"@std/path@1.0.0": {"integrity": "eee"}},
            },
            "remote": {"https://deno.land/x/hono@v4.0.0/mod.ts": "999"},
            "workspace": {"dependencies": ["jsr:@std/path@^1.0.0", "npm:debug@^4.3.0"]},
        }
        merged = lockfile.merge(base, part)
        assert merged["packages"]["specifiers"]["jsr:@std/path@^1.0.0"] == "jsr:@std/path@1.0.0"
        assert "@std/assert@0.222.1" in merged["packages"]["jsr"]
        assert merged["remote"]["https://deno.land/x/hono@v4.0.0/mod.ts"] == "999"
        assert merged["workspace"]["dependencies"] == [
            "jsr:@std/assert@^0.222.0",
            "npm:debug@^4.3.0",
            "jsr:@std/path@^1.0.0",
        ]
        assert base == make_lock()

    def test_rejects_other_versions(self):
        """Merging another lockfile version is rejected."""
        with pytest.raises(UnsupportedLockfileVersion):
            lockfile.merge(make_lock(), {"version": "4"})


class TestPrune:
    """prune() drops a requirement and what only it kept alive."""

    def test_package(self):
        """The pruned package and its workspace entry are dropped."""
        pruned = lockfile.prune(make_lock(), parse("jsr:@std/assert@^0.222.0"))
        packages = pruned["packages"]
        assert "jsr:@std/assert@^0.222.0" not in packages["specifiers"]
        assert "@std/assert@0.222.1" not in packages["jsr"]
        # Still reachable through its own specifier.
        assert "@std/fmt@0.222.1" in packages["jsr"]
        assert pruned["workspace"]["dependencies"] == ["npm:debug@^4.3.0"]

    def test_npm_transitives(self):
        """Transitives only the pruned package needed are dropped."""
        pruned = lockfile.prune(make_lock(), parse("npm:debug@^4.3.0"))
        assert pruned["packages"]["npm"] == {}

    def test_remote(self):
        """Remote files of the pruned URL are dropped."""
        pruned = lockfile.prune(make_lock(), parse("https://deno.land/std@0.220.0/fs/mod.ts"))
        assert pruned["remote"] == {"https://deno.land/x/hono@v4.0.0/mod.ts": "333"}

    def test_input_is_untouched(self):
        """prune returns a copy."""
        lock = make_lock()
        lockfile.prune(lock, parse("npm:debug@^4.3.0"))
        assert lock == make_lock()
