"""CLI entry point for tms."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, Optional

from rich.console import Console
from rich.logging import RichHandler

from tms import __version__
from tms.config import DEFAULT_DEPTH, Config, expand_root, load_config
from tms.errors import TmsError
from tms.git import resolve_working_path
from tms.scanner import find_repos, sorted_names
from tms.theme import MUTED, render_error
from tms.tmux import Environment, SessionReconciler

Selector = Callable[[list[str]], Optional[str]]


def _configure_logging(verbose: bool, console: Console) -> None:
    handler = RichHandler(console=console, show_time=False, show_path=False)
    root = logging.getLogger("tms")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tms",
        description="Fuzzy-pick a git repository and open it in a tmux session.",
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: $TMS_CONFIG_FILE or ~/.config/tms/config.toml)",
    )
    parser.add_argument(
        "--path",
        action="append",
        metavar="PATH",
        help="Search this directory instead of the configured ones (repeatable)",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=DEFAULT_DEPTH,
        metavar="N",
        help=f"Search depth for --path directories (default: {DEFAULT_DEPTH})",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        dest="list_only",
        help="Print discovered repository names and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log discovery and tmux commands",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"tms {__version__}",
    )
    return parser


def _resolve_config(args: argparse.Namespace) -> Config:
    config = load_config(args.config)
    if args.path:
        config.search_dirs = [expand_root(p, args.depth) for p in args.path]
    return config


def run(
    args: argparse.Namespace,
    *,
    select: Selector,
    environment: Environment,
    out: Console,
) -> int:
    """Discover, select, resolve and open. Returns the exit code."""
    config = _resolve_config(args)
    search_dirs = config.require_search_dirs()

    repos = find_repos(search_dirs, config.excluded_dirs)
    names = sorted_names(repos)

    if args.list_only:
        # raw bytes, so names round-trip to scripts even when not UTF-8
        sys.stdout.flush()
        for name in names:
            sys.stdout.buffer.write(os.fsencode(name) + b"\n")
        sys.stdout.buffer.flush()
        return 0

    if not names:
        out.print(f"[{MUTED}]No git repositories found.[/{MUTED}]")
        return 0

    choice = select(names)
    if choice is None:
        return 0

    record = repos[choice]
    path = resolve_working_path(record.handle)
    SessionReconciler.from_environment(environment).open(record.short_name, path)
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the tms CLI."""
    args = _build_parser().parse_args(argv)
    err = Console(stderr=True)
    _configure_logging(args.verbose, err)

    from tms.picker import pick

    try:
        code = run(args, select=pick, environment=Environment.from_env(), out=err)
    except TmsError as e:
        err.print(render_error(e.message, e.suggestion))
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
