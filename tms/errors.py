"""Error taxonomy for tms — every fatal failure is a TmsError."""

from __future__ import annotations

from typing import Optional


class TmsError(Exception):
    """Base class for errors reported to the user."""

    def __init__(self, message: str, *, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion


class ConfigurationError(TmsError):
    """No search roots, or a malformed config file / root entry."""


class DiscoveryIoError(TmsError):
    """A directory could not be listed for a reason other than permissions."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not read directory {path}: {reason}")
        self.path = path


class NoDefaultWorktree(TmsError):
    """The selected repository has no commits and no main/master worktree."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Repository at {path} has no commits and no 'main' or 'master' worktree",
            suggestion="Create a worktree named main, e.g. `git worktree add main`.",
        )
        self.path = path


class MultiplexerUnavailable(TmsError):
    """tmux could not be launched, or a session command failed."""

    def __init__(self, command: list[str], reason: str, *, session: Optional[str] = None) -> None:
        target = f" for session '{session}'" if session else ""
        super().__init__(f"tmux command `{' '.join(command)}` failed{target}: {reason}")
        self.command = command
        self.reason = reason
        self.session = session


class NotARepository(Exception):
    """Classifier signal: the path is not itself a repository. Never fatal."""

    def __init__(self, path: str) -> None:
        super().__init__(path)
        self.path = path
