"""Git repository classification and working-path resolution — subprocess-based."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tms.errors import NoDefaultWorktree, NotARepository

logger = logging.getLogger(__name__)

# `git hash-object -t tree /dev/null`
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
DEFAULT_WORKTREE_NAMES = ("main", "master")

# Inherited values would make git ignore the path we hand it.
_GIT_ENV_OVERRIDES = ("GIT_DIR", "GIT_WORK_TREE", "GIT_COMMON_DIR", "GIT_INDEX_FILE")


class RepositoryKind(Enum):
    PLAIN = "plain"
    BARE = "bare"
    LINKED_WORKTREE = "linked_worktree"
    SUBMODULE = "submodule"


@dataclass(frozen=True)
class RepositoryHandle:
    """What git told us about a repository opened at `path`."""

    path: str
    kind: RepositoryKind
    git_dir: str
    common_dir: str
    work_dir: Optional[str] = None
    is_linked: bool = False

    @property
    def usable(self) -> bool:
        """Plain repositories and primary (unlinked) worktrees are kept."""
        if self.kind is RepositoryKind.PLAIN:
            return True
        return self.kind is RepositoryKind.LINKED_WORKTREE and not self.is_linked


@dataclass
class Worktree:
    name: str
    path: str


def _run_git(
    repo_path: str,
    args: list[str],
    timeout: int = 10,
    env: Optional[dict[str, str]] = None,
) -> str:
    """Run a git command and return stdout, or "" if it failed."""
    try:
        result = subprocess.run(
            ["git", "-C", repo_path] + args,
            capture_output=True,
            text=True,
            timeout=timeout,
            errors="surrogateescape",
            env=env,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return ""
    if result.returncode != 0:
        return ""
    return result.stdout


def _git_env(path: str) -> dict[str, str]:
    """Environment that stops git from searching above `path`."""
    env = {k: v for k, v in os.environ.items() if k not in _GIT_ENV_OVERRIDES}
    env["GIT_CEILING_DIRECTORIES"] = os.path.dirname(path.rstrip(os.sep)) or os.sep
    return env


def _looks_like_repository(path: str) -> bool:
    """Cheap metadata probe so plain directories never spawn git."""
    if os.path.lexists(os.path.join(path, ".git")):
        return True
    return os.path.isfile(os.path.join(path, "HEAD")) and os.path.isdir(
        os.path.join(path, "objects")
    )


def _has_linked_worktrees(common_dir: str) -> bool:
    try:
        with os.scandir(os.path.join(common_dir, "worktrees")) as it:
            return any(entry.is_dir() for entry in it)
    except OSError:
        return False


def classify(path: str) -> RepositoryHandle:
    """Open `path` as a repository (no parent search) and determine its kind.

    Raises NotARepository when `path` is not itself a repository.
    """
    if not _looks_like_repository(path):
        raise NotARepository(path)

    output = _run_git(path, [
        "rev-parse",
        "--path-format=absolute",
        "--is-bare-repository",
        "--git-dir",
        "--git-common-dir",
        "--show-superproject-working-tree",
    ], env=_git_env(path))
    lines = output.splitlines()
    if len(lines) < 3:
        raise NotARepository(path)

    is_bare = lines[0].strip() == "true"
    git_dir = os.path.normpath(lines[1])
    common_dir = os.path.normpath(lines[2])
    superproject = lines[3].strip() if len(lines) > 3 else ""

    if is_bare:
        handle = RepositoryHandle(path, RepositoryKind.BARE, git_dir, common_dir)
    elif superproject or os.path.basename(os.path.dirname(common_dir)) == "modules":
        handle = RepositoryHandle(path, RepositoryKind.SUBMODULE, git_dir, common_dir, path)
    elif git_dir != common_dir:
        handle = RepositoryHandle(
            path, RepositoryKind.LINKED_WORKTREE, git_dir, common_dir, path, is_linked=True,
        )
    elif _has_linked_worktrees(common_dir):
        handle = RepositoryHandle(
            path, RepositoryKind.LINKED_WORKTREE, git_dir, common_dir, path, is_linked=False,
        )
    else:
        handle = RepositoryHandle(path, RepositoryKind.PLAIN, git_dir, common_dir, path)

    logger.debug("classified %s as %s (linked=%s)", path, handle.kind.value, handle.is_linked)
    return handle


def head_tree_is_empty(handle: RepositoryHandle) -> bool:
    """True when HEAD is unborn or points at the empty tree."""
    tree = _run_git(handle.git_dir, [
        "--git-dir", handle.git_dir, "rev-parse", "--verify", "--quiet", "HEAD^{tree}",
    ]).strip()
    return not tree or tree == EMPTY_TREE


def list_worktrees(handle: RepositoryHandle) -> list[Worktree]:
    """Linked worktrees registered in the repository's metadata, sorted by name."""
    admin = os.path.join(handle.common_dir, "worktrees")
    try:
        names = sorted(os.listdir(admin))
    except OSError:
        return []

    worktrees: list[Worktree] = []
    for name in names:
        # <admin>/<name>/gitdir holds the path of the worktree's .git file
        try:
            with open(os.path.join(admin, name, "gitdir"), encoding="utf-8",
                      errors="surrogateescape") as f:
                dotgit = f.read().strip()
        except OSError:
            continue
        if not dotgit:
            continue
        if not os.path.isabs(dotgit):
            dotgit = os.path.join(admin, name, dotgit)
        worktrees.append(Worktree(name=name, path=os.path.dirname(os.path.normpath(dotgit))))
    return worktrees


def resolve_working_path(handle: RepositoryHandle) -> str:
    """Directory a session for this repository should start in.

    Repositories with commits open at their work directory (a bare repository
    opens at the directory containing it). Repositories without commits open
    at their `main` or `master` worktree.
    """
    if not head_tree_is_empty(handle):
        if handle.work_dir:
            return handle.work_dir
        return os.path.dirname(handle.git_dir)

    for wt in list_worktrees(handle):
        if wt.name in DEFAULT_WORKTREE_NAMES or os.path.basename(wt.path) in DEFAULT_WORKTREE_NAMES:
            return wt.path

    raise NoDefaultWorktree(handle.path)
