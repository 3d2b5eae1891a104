"""tmux client and session reconciliation."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, NoReturn, Optional

from tms.errors import MultiplexerUnavailable
from tms.theme import display_name

logger = logging.getLogger(__name__)

SOCKET_ENV = "TMS_TMUX_SOCKET"
DEFAULT_SOCKET = "default"

# list-sessions exits non-zero with one of these when no server is running
_NO_SERVER_MARKERS = ("no server running", "error connecting to", "no sessions")


def session_name(repo_short_name: str) -> str:
    """tmux does not allow '.' in session names: my.repo -> my_repo.

    Undecodable path bytes become U+FFFD so the name tmux stores and
    echoes back from list-sessions is the one we compare against.
    """
    return display_name(repo_short_name).replace(".", "_")


@dataclass(frozen=True)
class Environment:
    """Ambient values the reconciler depends on, read once at startup."""

    socket_name: str = DEFAULT_SOCKET
    in_tmux: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Environment":
        env = os.environ if environ is None else environ
        socket_name = env.get(SOCKET_ENV) or DEFAULT_SOCKET
        in_tmux = bool(env.get("TMUX")) or env.get("TERM_PROGRAM") == "tmux"
        return cls(socket_name=socket_name, in_tmux=in_tmux)


class Tmux:
    """Thin command surface over the tmux binary, scoped to one socket."""

    def __init__(self, socket_name: str = DEFAULT_SOCKET, binary: str = "tmux") -> None:
        self.socket_name = socket_name
        self.binary = binary

    def _argv(self, args: list[str]) -> list[str]:
        return [self.binary, "-L", self.socket_name] + args

    def run(self, args: list[str]) -> subprocess.CompletedProcess:
        """Run a tmux command and capture its output."""
        argv = self._argv(args)
        logger.debug("running %s", " ".join(argv))
        try:
            return subprocess.run(argv, capture_output=True, text=True, errors="surrogateescape")
        except OSError as e:
            raise MultiplexerUnavailable(argv, e.strerror or str(e)) from e

    def exec(self, args: list[str], session: Optional[str] = None) -> NoReturn:
        """Replace the current process with tmux. Only returns by raising."""
        argv = self._argv(args)
        logger.debug("exec %s", " ".join(argv))
        try:
            os.execvp(argv[0], argv)
        except OSError as e:
            raise MultiplexerUnavailable(argv, e.strerror or str(e), session=session) from e
        # execvp only comes back on failure, which raises above
        raise MultiplexerUnavailable(argv, "exec returned unexpectedly", session=session)

    def list_sessions(self, fmt: str = "'#S'") -> str:
        result = self.run(["list-sessions", "-F", fmt])
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if any(marker in stderr for marker in _NO_SERVER_MARKERS):
                return ""
            raise MultiplexerUnavailable(
                self._argv(["list-sessions", "-F", fmt]), stderr or f"exit status {result.returncode}",
            )
        return result.stdout

    def session_exists(self, name: str) -> bool:
        # tmux returns the names wrapped in the quotes from the format string
        return any(
            line.strip().strip("'\"").strip() == name
            for line in self.list_sessions().splitlines()
        )

    def new_session(self, name: Optional[str] = None, path: Optional[str] = None) -> None:
        args = ["new-session", "-d"]
        if name is not None:
            args += ["-s", name]
        if path is not None:
            args += ["-c", path]
        result = self.run(args)
        if result.returncode != 0:
            raise MultiplexerUnavailable(
                self._argv(args),
                result.stderr.strip() or f"exit status {result.returncode}",
                session=name,
            )

    def switch_client(self, name: str) -> bool:
        """Switch the attached client to `name`; False if tmux refused."""
        return self.run(["switch-client", "-t", name]).returncode == 0

    def attach_session(self, name: Optional[str] = None, path: Optional[str] = None) -> NoReturn:
        args = ["attach-session"]
        if name is not None:
            args += ["-t", name]
        if path is not None:
            args += ["-c", path]
        self.exec(args, session=name)


class SessionState(Enum):
    NO_SESSION = "no_session"
    SESSION_EXISTS = "session_exists"


class SessionReconciler:
    """Make sure a session exists for a repository, then put the terminal on it."""

    def __init__(self, tmux: Tmux, in_tmux: bool) -> None:
        self.tmux = tmux
        self.in_tmux = in_tmux

    @classmethod
    def from_environment(cls, env: Environment) -> "SessionReconciler":
        return cls(Tmux(env.socket_name), in_tmux=env.in_tmux)

    def state(self, name: str) -> SessionState:
        try:
            exists = self.tmux.session_exists(name)
        except MultiplexerUnavailable as e:
            raise MultiplexerUnavailable(e.command, e.reason, session=name) from e
        if exists:
            return SessionState.SESSION_EXISTS
        return SessionState.NO_SESSION

    def ensure_session(self, name: str, path: str) -> None:
        if self.state(name) is SessionState.NO_SESSION:
            logger.debug("creating session %s at %s", name, path)
            self.tmux.new_session(name, path)

    def switch_to(self, name: str) -> None:
        """Switch inside tmux, falling back to attach; outside tmux, attach.

        Attaching replaces the process, so this returns only after a
        successful switch-client.
        """
        if self.in_tmux and self.tmux.switch_client(name):
            return
        if self.in_tmux:
            logger.debug("switch-client to %s failed, attaching instead", name)
        self.tmux.attach_session(name)

    def open(self, repo_short_name: str, path: str) -> None:
        name = session_name(repo_short_name)
        self.ensure_session(name, path)
        self.switch_to(name)
