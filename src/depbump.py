"""depbump - check and apply updates to dependencies of Deno modules.

    Entry point of the command line interface: collects the dependencies
    referenced by the given modules and configuration files, reports the
    available updates and optionally writes or commits them.
"""

import asyncio
import logging
import os
import sys
from typing import List, Optional, Tuple

from args import parse_args
from cli_config import apply_cli_overrides, get_tasks, hook_command
from constants import Constants, ExitCodes, load_config
from common.errors import CommandError, DepbumpError, HttpError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from common.process import run_task
from core.commits import CommitProps, create_commit_sequence, default_commit_message, execute
from core.context import Context, Update

logger = logging.getLogger(__name__)

CONFIG_SUFFIXES = (".json", ".jsonc")


def ensure_files(paths: List[str]) -> None:
    """Check that every path names an existing regular file.

    Raises:
        FileNotFoundError: For the first path that does not.
    """
    for path in paths:
        if not os.path.isfile(path):
            raise FileNotFoundError(f'Path does not exist or is not a file: "{path}"')


def partition_modules(modules: List[str], import_map: Optional[str] = None) -> Tuple[List[str], Optional[str]]:
    """Split the positional arguments into ES modules and one config file.

    Args:
        modules: Paths given on the command line.
        import_map: Explicit --import-map path; takes precedence over any
            .json/.jsonc positional argument.

    Returns:
        tuple: (entrypoints, config path or None).

    Raises:
        ValueError: If more than one configuration file is given.
    """
    configs = [path for path in modules if path.endswith(CONFIG_SUFFIXES)]
    source = [path for path in modules if not path.endswith(CONFIG_SUFFIXES)]
    if import_map:
        return source + configs, import_map
    if len(configs) > 1:
        raise ValueError(f"Only one configuration file is supported, got {', '.join(configs)}")
    return source, configs[0] if configs else None


def lock_path(lock, config: Optional[str], source: List[str]) -> Optional[str]:
    """Lockfile to update: an explicit path, or deno.lock beside the config."""
    if not lock:
        return None
    if isinstance(lock, str):
        return lock
    anchor = config or (source[0] if source else None)
    base = os.path.dirname(os.path.abspath(anchor)) if anchor else os.getcwd()
    return os.path.join(base, Constants.LOCKFILE_NAME)


def format_update(update: Update) -> str:
    """One report line: ``name from -> to``."""
    bump = update.constraint or update.lock
    if bump is None:
        return update.dep.name
    if bump.from_:
        return f"{update.dep.name} {bump.from_} -> {bump.to}"
    return f"{update.dep.name} -> {bump.to}"


def format_prefix(prefix: Optional[str]) -> str:
    """Commit message prefix followed by exactly one space, or nothing."""
    return prefix.rstrip() + " " if prefix and prefix.strip() else ""


def compose_commit_message(props: CommitProps) -> str:
    """Default message with the configured prefix; lock-only commits get their own."""
    prefix = Constants.COMMIT_PREFIX_LOCK if props.types == ["lock"] else Constants.COMMIT_PREFIX
    return format_prefix(prefix) + default_commit_message(props)


def make_hook(names: List[str], tasks):
    """Commit hook running the named tasks in order, or None."""
    if not names:
        return None

    def hook(commit):
        logger.info("Running hooks for: %s", commit.message)
        for name in names:
            run_task(hook_command(name, tasks))

    return hook


def print_updates(updates: List[Update], multiple_files: bool) -> None:
    """Print one line per update, with the referencing files when useful."""
    for update in updates:
        print(format_update(update))
        if multiple_files:
            for path in update.dep.refs:
                print(f"  {os.path.relpath(path)}")


async def run(args) -> int:
    """Collect, check and apply updates. Returns the process exit code."""
    ensure_files(list(args.modules) + ([args.IMPORT_MAP] if args.IMPORT_MAP else []))
    source, config = partition_modules(list(args.modules), args.IMPORT_MAP)
    lock = lock_path(args.LOCK, config, source)

    async with Context(lock=lock) as context:
        deps = context.collect(
            source,
            config,
            ignore=args.IGNORE,
            only=args.ONLY,
            resolve_local=args.RESOLVE_LOCAL,
        )
        if is_debug_enabled(logger):
            logger.debug(
                "Collected dependencies",
                extra=extra_context(
                    event="decision",
                    component="cli",
                    action="collect",
                    count=len(deps),
                    target=config,
                ),
            )
        updates = await context.check(deps)
        if not updates:
            print("No updates found")
            return ExitCodes.SUCCESS.value

        files = {path for update in updates for path in update.dep.refs}
        print_updates(updates, len(args.modules) > 1 or len(files) > 1)

        if args.WRITE:
            for update in updates:
                await update.write()
            for path in sorted({path for update in updates for path in update.files()}):
                print(f"Wrote {os.path.relpath(path)}")
        elif args.COMMIT:
            tasks = get_tasks(os.path.dirname(os.path.abspath(config)) if config else None)
            sequence = create_commit_sequence(
                updates,
                compose_commit_message=compose_commit_message,
                pre_commit=make_hook(args.PRE_COMMIT, tasks),
                post_commit=make_hook(args.POST_COMMIT, tasks),
            )
            await execute(sequence)
            for commit in sequence.commits:
                print(f"Committed: {commit.message}")
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    level = "DEBUG" if args.DEBUG else args.LOG_LEVEL
    if level:
        os.environ[Constants.ENV_LOG_LEVEL] = str(level).upper()
    configure_logging(level, args.LOG_FILE)

    try:
        load_config(args.CONFIG)
    except (OSError, ValueError) as exc:
        logger.error("Could not load configuration: %s", exc)
        sys.exit(ExitCodes.FILE_ERROR.value)
    apply_cli_overrides(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main"),
        )

    try:
        code = asyncio.run(run(args))
    except HttpError as exc:
        logger.error("%s", exc)
        code = ExitCodes.CONNECTION_ERROR.value
    except CommandError as exc:
        logger.error("%s", exc)
        code = ExitCodes.COMMAND_ERROR.value
    except (DepbumpError, ValueError) as exc:
        if args.DEBUG:
            raise
        logger.error("%s", exc)
        code = ExitCodes.RESOLUTION_ERROR.value
    except OSError as exc:
        if args.DEBUG:
            raise
        logger.error("%s", exc)
        code = ExitCodes.FILE_ERROR.value
    sys.exit(code)


if __name__ == "__main__":
    main()
