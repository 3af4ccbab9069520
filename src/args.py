"""Argument parsing functionality for depbump."""

import argparse

from constants import Constants


def _split_list(value):
    """Accept comma separated values, as in ``--only @std/fs,@std/path``."""
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="depbump",
        description=(
            "Check updates to dependencies in Deno modules and configuration files"
        ),
        add_help=True,
    )

    parser.add_argument("modules",
                        metavar="MODULE",
                        help="ES modules or deno.json(c)/import map files to check",
                        nargs="+",
                        type=str)

    action_group = parser.add_mutually_exclusive_group()
    action_group.add_argument("-w", "--write",
                              dest="WRITE",
                              help="Write changes to local files",
                              action="store_true")
    action_group.add_argument("-c", "--commit",
                              dest="COMMIT",
                              help="Commit changes to local git repository",
                              action="store_true")

    parser.add_argument("--import-map",
                        dest="IMPORT_MAP",
                        help="Specify import map file",
                        action="store",
                        type=str)
    parser.add_argument("--lock",
                        dest="LOCK",
                        help=f"Update a lock file too (default: {Constants.LOCKFILE_NAME} next to the config)",
                        nargs="?",
                        const=True,
                        default=None)
    parser.add_argument("--ignore",
                        dest="IGNORE",
                        help="Ignore dependencies whose name contains any of the given fragments",
                        action="extend",
                        type=_split_list,
                        default=None)
    parser.add_argument("--only",
                        dest="ONLY",
                        help="Check only dependencies whose name contains any of the given fragments",
                        action="extend",
                        type=_split_list,
                        default=None)
    parser.add_argument("--no-resolve-local",
                        dest="RESOLVE_LOCAL",
                        help="Do not follow relative imports of local modules",
                        action="store_false")
    parser.add_argument("--pre-commit",
                        dest="PRE_COMMIT",
                        help="Task or command to run before each commit",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--post-commit",
                        dest="POST_COMMIT",
                        help="Task or command to run after each commit",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--prefix",
                        dest="PREFIX",
                        help="Prefix for commit messages",
                        action="store",
                        type=str)
    parser.add_argument("--prefix-lock",
                        dest="PREFIX_LOCK",
                        help="Prefix for commit messages of lock file only updates",
                        action="store",
                        type=str)
    parser.add_argument("--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        default="INFO")
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--debug",
                        dest="DEBUG",
                        help="Print debug information and tracebacks",
                        action="store_true")
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.PRE_COMMIT and not args.COMMIT:
        parser.error("--pre-commit requires --commit")
    if args.POST_COMMIT and not args.COMMIT:
        parser.error("--post-commit requires --commit")
    if args.PREFIX is not None and not args.COMMIT:
        parser.error("--prefix requires --commit")
    if args.PREFIX_LOCK is not None and not (args.COMMIT and args.LOCK):
        parser.error("--prefix-lock requires --commit and --lock")
    return args
