"""Shared visual constants and helpers for tms."""

from __future__ import annotations

from rich.style import Style
from rich.text import Text

# ── Color Palette (GitHub Dark + Neon Accents) ──────────────────────────

BG = "#0d1117"
SURFACE = "#161b22"
BORDER = "#30363d"
MUTED = "#8b949e"
FG = "#e6edf3"

CYAN = "#58a6ff"
GREEN = "#39d353"
YELLOW = "#e3b341"
RED = "#f85149"

MATCH_STYLE = Style(color=GREEN, bold=True)


def display_name(name: str) -> str:
    """Printable form of a name that may carry undecodable path bytes."""
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def highlight_match(name: str, positions: list[int]) -> Text:
    """Render a candidate with its fuzzy-matched characters highlighted."""
    text = Text(display_name(name), style=Style(color=FG))
    for pos in positions:
        text.stylize(MATCH_STYLE, pos, pos + 1)
    return text


def render_error(message: str, suggestion: str | None = None) -> Text:
    """Error line (plus optional suggestion) for stderr."""
    text = Text()
    text.append("error: ", style=Style(color=RED, bold=True))
    text.append(display_name(message))
    if suggestion:
        text.append("\n  suggestion: ", style=Style(color=YELLOW))
        text.append(suggestion, style=Style(color=MUTED, italic=True))
    return text
