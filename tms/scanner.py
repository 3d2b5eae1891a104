"""Repo discovery — breadth-first search for git repositories under the search roots."""

from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass
from typing import Iterable

from tms.config import SearchDirectory
from tms.errors import DiscoveryIoError, NotARepository
from tms.git import RepositoryHandle, RepositoryKind, classify

logger = logging.getLogger(__name__)

BARE_DIR = ".bare"


@dataclass
class RepositoryRecord:
    short_name: str
    kind: RepositoryKind
    handle: RepositoryHandle
    origin_path: str


def short_name(path: str) -> str:
    """Last path component, e.g. /home/me/repos/tms -> tms."""
    return os.path.basename(os.path.normpath(path))


def _classify_bare(path: str) -> RepositoryHandle | None:
    """Classify `path/.bare`; bare repositories count here."""
    candidate = os.path.join(path, BARE_DIR)
    if not os.path.isdir(candidate):
        return None
    try:
        handle = classify(candidate)
    except NotARepository:
        return None
    if handle.kind is RepositoryKind.BARE or handle.usable:
        return handle
    return None


def _is_bare_layout(path: str, handle: RepositoryHandle) -> bool:
    """A `.git` file pointing at `path/.bare` opens as that bare repository."""
    if handle.kind is not RepositoryKind.BARE:
        return False
    return os.path.realpath(handle.git_dir) == os.path.realpath(os.path.join(path, BARE_DIR))


def _list_children(path: str, excluded: frozenset[str]) -> list[str] | None:
    """Immediate child directories of `path`, or None if permission was denied."""
    try:
        with os.scandir(path) as it:
            entries = list(it)
    except PermissionError:
        logger.warning("Permission denied reading %s, skipping", path)
        return None
    except NotADirectoryError:
        return []
    except OSError as e:
        raise DiscoveryIoError(path, e.strerror or str(e)) from e

    children: list[str] = []
    for entry in entries:
        if entry.name in excluded:
            continue
        try:
            if entry.is_dir():
                children.append(entry.path)
        except OSError:
            continue
    return children


def find_repos(
    search_dirs: Iterable[SearchDirectory],
    excluded_dirs: Iterable[str] = (),
) -> dict[str, RepositoryRecord]:
    """Find repositories under the search roots, keyed by short name.

    The walk is a FIFO queue, so all directories at one depth level are
    visited (across every root) before the next level. A later repository
    with the same short name replaces an earlier one.
    """
    excluded = frozenset(excluded_dirs)
    queue: deque[SearchDirectory] = deque(search_dirs)
    repos: dict[str, RepositoryRecord] = {}

    def _record(name: str, handle: RepositoryHandle, origin: str) -> None:
        if name in repos:
            logger.debug("%s at %s replaces %s", name, origin, repos[name].origin_path)
        repos[name] = RepositoryRecord(
            short_name=name, kind=handle.kind, handle=handle, origin_path=origin,
        )

    while queue:
        current = queue.popleft()

        if not os.access(current.path, os.R_OK | os.X_OK):
            logger.warning("Permission denied reading %s, skipping", current.path)
            continue

        try:
            handle = classify(current.path)
        except NotARepository:
            pass
        else:
            if handle.usable or _is_bare_layout(current.path, handle):
                _record(short_name(current.path), handle, current.path)
            # Never descend into a repository, usable or not
            continue

        bare = _classify_bare(current.path)
        if bare is not None:
            _record(short_name(current.path), bare, current.path)

        if current.depth <= 0:
            continue

        children = _list_children(current.path, excluded)
        if children is None:
            continue
        for child in children:
            queue.append(SearchDirectory(path=child, depth=current.depth - 1))

    return repos


def sorted_names(repos: dict[str, RepositoryRecord]) -> list[str]:
    """Names in the order the selector shows them."""
    return sorted(repos)
