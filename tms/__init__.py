"""tms — fuzzy-pick a git repository and open it in a tmux session."""

__version__ = "0.1.0"
