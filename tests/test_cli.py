"""Tests for argument parsing, CLI configuration and the depbump entry point."""

import json
from unittest.mock import MagicMock, patch

import pytest

import depbump
from args import parse_args
from cli_config import apply_cli_overrides, find_config_up, get_tasks, hook_command
from constants import Constants, ExitCodes
from core.commits import CommitProps
from core.context import Context
from versioning.models import VersionBump


class TestArgParsing:
    """parse_args() options and their constraints."""

    def test_defaults(self):
        """Only modules given: report mode with defaults."""
        ns = parse_args(["mod.ts"])
        assert ns.modules == ["mod.ts"]
        assert ns.WRITE is False
        assert ns.COMMIT is False
        assert ns.LOCK is None
        assert ns.RESOLVE_LOCAL is True
        assert ns.PRE_COMMIT == []
        assert ns.LOG_LEVEL == "INFO"

    def test_write_and_commit_conflict(self):
        """--write and --commit are mutually exclusive."""
        with pytest.raises(SystemExit):
            parse_args(["--write", "--commit", "mod.ts"])

    def test_lock_flag_and_file(self):
        """--lock takes an optional lockfile path."""
        assert parse_args(["--lock", "--", "mod.ts"]).LOCK is True
        assert parse_args(["--lock=other.lock", "mod.ts"]).LOCK == "other.lock"

    def test_filters(self):
        """--ignore and --only accept repeated comma-separated lists."""
        ns = parse_args(["--ignore", "@std/fs,@std/path", "--ignore", "hono", "--only", "std", "deno.json"])
        assert ns.IGNORE == ["@std/fs", "@std/path", "hono"]
        assert ns.ONLY == ["std"]

    def test_commit_options(self):
        """Commit options are collected when --commit is given."""
        ns = parse_args([
            "-c", "--lock", "--prefix", "chore:", "--prefix-lock", "build(lock):",
            "--pre-commit", "fmt", "--pre-commit", "lint", "--post-commit", "test", "deno.json",
        ])
        assert ns.COMMIT is True
        assert ns.PREFIX == "chore:"
        assert ns.PREFIX_LOCK == "build(lock):"
        assert ns.PRE_COMMIT == ["fmt", "lint"]
        assert ns.POST_COMMIT == ["test"]

    def test_commit_only_options_require_commit(self):
        """Hook and prefix options are rejected without --commit."""
        with pytest.raises(SystemExit):
            parse_args(["--pre-commit", "fmt", "mod.ts"])
        with pytest.raises(SystemExit):
            parse_args(["--prefix", "chore:", "mod.ts"])
        with pytest.raises(SystemExit):
            parse_args(["--commit", "--prefix-lock", "chore:", "mod.ts"])

    def test_no_resolve_local(self):
        """--no-resolve-local turns off local import resolution."""
        assert parse_args(["--no-resolve-local", "mod.ts"]).RESOLVE_LOCAL is False


class TestCliConfig:
    """Overrides and task lookup."""

    def test_prefix_overrides(self, monkeypatch):
        """CLI prefixes override the configured ones."""
        monkeypatch.setattr(Constants, "COMMIT_PREFIX", "")
        monkeypatch.setattr(Constants, "COMMIT_PREFIX_LOCK", "")
        apply_cli_overrides(parse_args(["-c", "--lock", "--prefix", "chore:", "--prefix-lock", "lock:", "mod.ts"]))
        assert Constants.COMMIT_PREFIX == "chore:"
        assert Constants.COMMIT_PREFIX_LOCK == "lock:"

    def test_default_tasks(self, workdir):
        """Without a config file only the built-in tasks exist."""
        assert get_tasks(str(workdir)) == {"fmt": ["fmt"], "lint": ["lint"], "test": ["test"]}

    def test_tasks_from_parent_config(self, workdir):
        """Tasks come from the nearest config in a parent directory."""
        (workdir / "deno.jsonc").write_text('{\n  // tasks\n  "tasks": {"check": "deno check mod.ts", "test": "deno test -A"},\n}\n')
        (workdir / "sub").mkdir()
        assert find_config_up(str(workdir / "sub")) == str(workdir / "deno.jsonc")
        tasks = get_tasks(str(workdir / "sub"))
        assert tasks["check"] == ["task", "-q", "check"]
        assert tasks["test"] == ["task", "-q", "test"]
        assert tasks["fmt"] == ["fmt"]

    def test_invalid_config_keeps_defaults(self, workdir):
        """An unreadable config leaves the built-in tasks."""
        (workdir / "deno.json").write_text("{")
        assert get_tasks(str(workdir)) == {"fmt": ["fmt"], "lint": ["lint"], "test": ["test"]}

    def test_hook_command(self):
        """Known tasks run through deno, anything else as a command line."""
        tasks = {"fmt": ["fmt"], "check": ["task", "-q", "check"]}
        assert hook_command("fmt", tasks) == ["deno", "fmt"]
        assert hook_command("check", tasks) == ["deno", "task", "-q", "check"]
        assert hook_command("make lint", tasks) == ["make", "lint"]


class TestHelpers:
    """Entry point helpers."""

    def test_partition_modules(self):
        """Config files are split from modules."""
        assert depbump.partition_modules(["mod.ts", "deno.json"]) == (["mod.ts"], "deno.json")
        assert depbump.partition_modules(["mod.ts"], "import_map.json") == (["mod.ts"], "import_map.json")
        with pytest.raises(ValueError):
            depbump.partition_modules(["a.json", "b.jsonc"])

    def test_lock_path(self, workdir):
        """The lockfile defaults to deno.lock beside the config."""
        assert depbump.lock_path(None, "deno.json", []) is None
        assert depbump.lock_path("x.lock", "deno.json", []) == "x.lock"
        assert depbump.lock_path(True, "deno.json", []) == str(workdir / "deno.lock")

    def test_compose_commit_message(self, monkeypatch):
        """Lock-only commits use the lock prefix."""
        monkeypatch.setattr(Constants, "COMMIT_PREFIX", "chore: ")
        monkeypatch.setattr(Constants, "COMMIT_PREFIX_LOCK", "build(lock):")
        version = VersionBump("1.0.0", "1.0.1")
        assert depbump.compose_commit_message(CommitProps("@luca/flag", ["constraint"], version)) == (
            "chore: bump @luca/flag from 1.0.0 to 1.0.1"
        )
        assert depbump.compose_commit_message(CommitProps("@luca/flag", ["lock"], version)) == (
            "build(lock): bump @luca/flag from 1.0.0 to 1.0.1"
        )

    def test_format_update(self):
        """Report lines show prior and target versions."""
        update = MagicMock()
        update.dep.name = "@std/fs"
        update.constraint = VersionBump("0.220.0, 0.222.1", "0.223.0")
        assert depbump.format_update(update) == "@std/fs 0.220.0, 0.222.1 -> 0.223.0"
        update.constraint = VersionBump(None, "^0.223.0")
        assert depbump.format_update(update) == "@std/fs -> ^0.223.0"


class TestMain:
    """main() wiring and exit codes."""

    @pytest.fixture
    def env(self, workdir, monkeypatch, registry):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(workdir / "xdg"))
        monkeypatch.setenv(Constants.ENV_LOG_LEVEL, "INFO")
        monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
        monkeypatch.setattr(Constants, "COMMIT_PREFIX", "")
        monkeypatch.setattr(depbump, "configure_logging", lambda level=None, logfile=None: None)
        monkeypatch.setattr(Constants, "COMMIT_PREFIX_LOCK", "")
        git = MagicMock()
        monkeypatch.setattr(
            depbump, "Context", lambda lock=None: Context(registry, lock=lock, git=git)
        )
        return git

    def run_main(self, argv):
        with pytest.raises(SystemExit) as excinfo:
            depbump.main(argv)
        return excinfo.value.code

    def test_report_only(self, env, workdir, capsys):
        """Updates are printed and nothing is written."""
        (workdir / "mod.ts").write_text('import "jsr:@luca/flag@1.0.0";\n')
        assert self.run_main(["mod.ts"]) == ExitCodes.SUCCESS.value
        assert capsys.readouterr().out.splitlines() == ["@luca/flag 1.0.0 -> 1.0.1"]
        assert (workdir / "mod.ts").read_text() == 'import "jsr:@luca/flag@1.0.0";\n'

    def test_no_updates(self, env, workdir, capsys):
        """Up-to-date modules report that nothing was found."""
        (workdir / "mod.ts").write_text('import "jsr:@luca/flag@^1.0.0";\n')
        assert self.run_main(["mod.ts"]) == ExitCodes.SUCCESS.value
        assert "No updates found" in capsys.readouterr().out

    def test_write(self, env, workdir):
        """--write rewrites the module without committing."""
        (workdir / "mod.ts").write_text('import "jsr:@luca/flag@1.0.0";\n')
        assert self.run_main(["--write", "mod.ts"]) == ExitCodes.SUCCESS.value
        assert (workdir / "mod.ts").read_text() == 'import "jsr:@luca/flag@1.0.1";\n'
        env.commit.assert_not_called()

    def test_commit_with_hooks(self, env, workdir):
        """--commit runs hooks, stages and commits each update."""
        (workdir / "mod.ts").write_text('import "jsr:@luca/flag@1.0.0";\n')
        with patch("depbump.run_task") as mock_task:
            code = self.run_main(["--commit", "--prefix", "chore:", "--pre-commit", "fmt", "mod.ts"])
        assert code == ExitCodes.SUCCESS.value
        mock_task.assert_called_once_with(["deno", "fmt"])
        env.add.assert_called_once_with(["mod.ts"])
        env.commit.assert_called_once_with("chore: bump @luca/flag from 1.0.0 to 1.0.1")

    def test_commit_with_lock(self, env, workdir):
        """Lock-only updates commit the config and the lockfile."""
        (workdir / "deno.json").write_text('{"imports": {"@luca/flag": "jsr:@luca/flag@^1.0.0"}}\n')
        (workdir / "deno.lock").write_text(json.dumps({
            "version": "3",
            "packages": {
                "specifiers": {"jsr:@luca/flag@^1.0.0": "jsr:@luca/flag@1.0.0"},
                "jsr": {"@luca/flag@1.0.0": {"integrity": "old"}},
            },
            "remote": {},
        }))
        code = self.run_main(["--commit", "--lock", "--prefix-lock", "build(lock):", "deno.json"])
        assert code == ExitCodes.SUCCESS.value
        env.add.assert_called_once_with(["deno.json", str(workdir / "deno.lock")])
        env.commit.assert_called_once_with("build(lock): bump @luca/flag from 1.0.0 to 1.0.1")
        lock = json.loads((workdir / "deno.lock").read_text())
        assert lock["packages"]["specifiers"] == {"jsr:@luca/flag@^1.0.0": "jsr:@luca/flag@1.0.1"}

    def test_missing_file(self, env, workdir):
        """A missing module exits with FILE_ERROR."""
        assert self.run_main(["missing.ts"]) == ExitCodes.FILE_ERROR.value

    def test_conflict_is_a_resolution_error(self, env, workdir, registry):
        """Conflicting targets exit with RESOLUTION_ERROR."""
        registry.json_docs["https://jsr.io/@std/x/meta.json"] = {"versions": {"1.0.0": {}, "2.0.0": {}}}
        (workdir / "a.ts").write_text('import "jsr:@std/x@~1.0.0";\n')
        (workdir / "b.ts").write_text('import "jsr:@std/x@^1.0.0";\n')
        assert self.run_main(["a.ts", "b.ts"]) == ExitCodes.RESOLUTION_ERROR.value

    def test_invalid_yaml_config(self, env, workdir):
        """A non-mapping YAML config exits with FILE_ERROR."""
        (workdir / "mod.ts").write_text("")
        (workdir / "cfg.yml").write_text("- a\n- b\n")
        assert self.run_main(["--config", "cfg.yml", "mod.ts"]) == ExitCodes.FILE_ERROR.value
