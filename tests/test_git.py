"""Tests for repository classification and working-path resolution."""

import os
import subprocess
import tempfile

import pytest

from tms.errors import NoDefaultWorktree, NotARepository
from tms.git import (
    RepositoryKind,
    classify,
    head_tree_is_empty,
    list_worktrees,
    resolve_working_path,
)

GIT_ENV = {
    **os.environ,
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@test.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@test.com",
}


def _git(path: str, *args: str) -> None:
    subprocess.run(["git", "-C", path, *args], capture_output=True, check=True, env=GIT_ENV)


def _init_repo(path: str, commit: bool = True) -> str:
    """Create a real git repo, optionally with one commit."""
    os.makedirs(path, exist_ok=True)
    _git(path, "init", "-b", "main")
    if commit:
        with open(os.path.join(path, "README.md"), "w") as f:
            f.write("# Test\n")
        _git(path, "add", ".")
        _git(path, "commit", "-m", "Initial commit")
    return path


def _add_worktree_metadata(repo: str, name: str, base: str) -> None:
    """Register a worktree by writing the metadata git would write."""
    admin = os.path.join(repo, ".git", "worktrees", name)
    os.makedirs(admin)
    with open(os.path.join(admin, "gitdir"), "w") as f:
        f.write(os.path.join(base, ".git") + "\n")


def test_classify_plain():
    with tempfile.TemporaryDirectory() as tmp:
        repo = _init_repo(os.path.join(os.path.realpath(tmp), "plain"))
        handle = classify(repo)
        assert handle.kind is RepositoryKind.PLAIN
        assert handle.usable
        assert handle.work_dir == repo


def test_classify_bare():
    with tempfile.TemporaryDirectory() as tmp:
        repo = os.path.join(tmp, "bare.git")
        subprocess.run(["git", "init", "--bare", repo], capture_output=True, check=True)
        handle = classify(repo)
        assert handle.kind is RepositoryKind.BARE
        assert not handle.usable


def test_classify_not_a_repo():
    with tempfile.TemporaryDirectory() as tmp:
        with pytest.raises(NotARepository):
            classify(tmp)


def test_classify_does_not_search_parents():
    """A plain subdirectory of a repo is not itself a repository."""
    with tempfile.TemporaryDirectory() as tmp:
        repo = _init_repo(os.path.join(tmp, "outer"))
        sub = os.path.join(repo, "src")
        os.makedirs(sub)
        with pytest.raises(NotARepository):
            classify(sub)


def test_classify_linked_worktree():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = os.path.realpath(tmp)
        repo = _init_repo(os.path.join(tmp, "primary"))
        satellite = os.path.join(tmp, "satellite")
        _git(repo, "worktree", "add", "-b", "feature", satellite)

        linked = classify(satellite)
        assert linked.kind is RepositoryKind.LINKED_WORKTREE
        assert linked.is_linked
        assert not linked.usable

        primary = classify(repo)
        assert primary.kind is RepositoryKind.LINKED_WORKTREE
        assert not primary.is_linked
        assert primary.usable


def test_classify_submodule():
    with tempfile.TemporaryDirectory() as tmp:
        lib = _init_repo(os.path.join(tmp, "lib"))
        app = _init_repo(os.path.join(tmp, "app"))
        _git(app, "-c", "protocol.file.allow=always", "submodule", "add", lib, "lib")
        handle = classify(os.path.join(app, "lib"))
        assert handle.kind is RepositoryKind.SUBMODULE
        assert not handle.usable


def test_head_tree_is_empty():
    with tempfile.TemporaryDirectory() as tmp:
        empty = _init_repo(os.path.join(tmp, "empty"), commit=False)
        full = _init_repo(os.path.join(tmp, "full"))
        assert head_tree_is_empty(classify(empty)) is True
        assert head_tree_is_empty(classify(full)) is False


def test_list_worktrees():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = os.path.realpath(tmp)
        repo = _init_repo(os.path.join(tmp, "repo"))
        _git(repo, "worktree", "add", "-b", "feature", os.path.join(tmp, "feature"))
        worktrees = list_worktrees(classify(repo))
        assert [(wt.name, wt.path) for wt in worktrees] == [
            ("feature", os.path.join(tmp, "feature")),
        ]


def test_resolve_repo_with_commits():
    with tempfile.TemporaryDirectory() as tmp:
        repo = _init_repo(os.path.join(os.path.realpath(tmp), "repo"))
        assert resolve_working_path(classify(repo)) == repo


def test_resolve_empty_head_uses_main_worktree():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = os.path.realpath(tmp)
        repo = _init_repo(os.path.join(tmp, "repo"), commit=False)
        _add_worktree_metadata(repo, "feature", os.path.join(tmp, "wt-feature"))
        _add_worktree_metadata(repo, "main", os.path.join(tmp, "wt-main"))
        assert resolve_working_path(classify(repo)) == os.path.join(tmp, "wt-main")


def test_resolve_empty_head_matches_master_directory():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = os.path.realpath(tmp)
        repo = _init_repo(os.path.join(tmp, "repo"), commit=False)
        _add_worktree_metadata(repo, "wt1", os.path.join(tmp, "master"))
        assert resolve_working_path(classify(repo)) == os.path.join(tmp, "master")


def test_resolve_empty_head_without_default_worktree():
    with tempfile.TemporaryDirectory() as tmp:
        repo = _init_repo(os.path.join(tmp, "repo"), commit=False)
        _add_worktree_metadata(repo, "feature", os.path.join(tmp, "wt-feature"))
        with pytest.raises(NoDefaultWorktree) as exc:
            resolve_working_path(classify(repo))
        assert "repo" in str(exc.value)


def test_resolve_bare_layout_opens_parent():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = os.path.realpath(tmp)
        src = _init_repo(os.path.join(tmp, "src"))
        project = os.path.join(tmp, "project")
        subprocess.run(
            ["git", "clone", "--bare", src, os.path.join(project, ".bare")],
            capture_output=True, check=True,
        )
        handle = classify(os.path.join(project, ".bare"))
        assert handle.kind is RepositoryKind.BARE
        assert resolve_working_path(handle) == project
