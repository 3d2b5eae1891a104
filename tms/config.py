"""Configuration — search roots and excluded directory names."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tms.errors import ConfigurationError

DEFAULT_DEPTH = 10
CONFIG_ENV = "TMS_CONFIG_FILE"


@dataclass(frozen=True)
class SearchDirectory:
    """A unit of discovery work: an absolute path and its remaining depth."""

    path: str
    depth: int


@dataclass
class Config:
    search_dirs: list[SearchDirectory] = field(default_factory=list)
    excluded_dirs: frozenset[str] = frozenset()

    def require_search_dirs(self) -> list[SearchDirectory]:
        """Return the roots, raising if none are configured."""
        if not self.search_dirs:
            raise ConfigurationError(
                "No search directories configured",
                suggestion=(
                    "Add a [[search_dirs]] entry to "
                    f"{default_config_path()} or pass --path."
                ),
            )
        return list(self.search_dirs)


def default_config_path() -> Path:
    """Config file location: $TMS_CONFIG_FILE, else ~/.config/tms/config.toml."""
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(os.path.expanduser(env_path))
    return Path.home() / ".config" / "tms" / "config.toml"


def expand_root(raw: str, depth: int) -> SearchDirectory:
    """Expand ~ and $VARS in a root path and resolve it to an existing directory."""
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 0:
        raise ConfigurationError(
            f"Invalid depth {depth!r} for search directory {raw!r}: "
            "must be a non-negative integer"
        )
    expanded = os.path.expandvars(os.path.expanduser(raw))
    path = os.path.realpath(expanded)
    if not os.path.isdir(path):
        raise ConfigurationError(f"Search directory {raw!r} does not exist ({path})")
    return SearchDirectory(path=path, depth=depth)


def parse_config(data: dict, source: str = "<config>") -> Config:
    """Build a Config from a decoded TOML document."""
    raw_dirs = data.get("search_dirs", [])
    if not isinstance(raw_dirs, list):
        raise ConfigurationError(f"{source}: 'search_dirs' must be an array of tables")

    search_dirs: list[SearchDirectory] = []
    for idx, entry in enumerate(raw_dirs):
        if not isinstance(entry, dict) or not isinstance(entry.get("path"), str):
            raise ConfigurationError(
                f"{source}: search_dirs[{idx}] needs a string 'path'"
            )
        search_dirs.append(expand_root(entry["path"], entry.get("depth", DEFAULT_DEPTH)))

    excluded = data.get("excluded_dirs", [])
    if not isinstance(excluded, list) or not all(isinstance(e, str) for e in excluded):
        raise ConfigurationError(f"{source}: 'excluded_dirs' must be a list of names")

    return Config(search_dirs=search_dirs, excluded_dirs=frozenset(excluded))


def load_config(path: Optional[str] = None) -> Config:
    """Load the config file. A missing default file yields an empty Config."""
    explicit = path is not None or CONFIG_ENV in os.environ
    config_path = Path(os.path.expanduser(path)) if path else default_config_path()

    if not config_path.is_file():
        if explicit:
            raise ConfigurationError(f"Config file {config_path} does not exist")
        return Config()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Could not parse {config_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read {config_path}: {e.strerror}") from e

    return parse_config(data, source=str(config_path))
