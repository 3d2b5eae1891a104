"""Textual fuzzy finder — pick one repository name out of many."""

from __future__ import annotations

from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Input, OptionList
from textual.widgets.option_list import Option

from tms.theme import BG, BORDER, CYAN, SURFACE, display_name, highlight_match

SEPARATORS = "-_./ "


def fuzzy_match(query: str, candidate: str) -> Optional[tuple[int, list[int]]]:
    """Case-insensitive subsequence match.

    Returns (score, matched positions) or None. Consecutive characters, a
    match at the start, and matches right after a separator score higher.
    """
    if not query:
        return 0, []

    haystack = candidate.lower()
    score = 0
    positions: list[int] = []
    start = 0
    for ch in query.lower():
        idx = haystack.find(ch, start)
        if idx < 0:
            return None
        score += 1
        if positions and idx == positions[-1] + 1:
            score += 5
        if idx == 0:
            score += 10
        elif haystack[idx - 1] in SEPARATORS:
            score += 3
        positions.append(idx)
        start = idx + 1
    return score, positions


def filter_candidates(query: str, names: list[str]) -> list[tuple[int, list[int]]]:
    """Indices into `names` matching `query`, best first, with match positions.

    Ties keep the order of `names`.
    """
    scored = []
    for idx, name in enumerate(names):
        match = fuzzy_match(query, display_name(name))
        if match is None:
            continue
        score, positions = match
        scored.append((-score, idx, positions))
    scored.sort(key=lambda item: (item[0], item[1]))
    return [(idx, positions) for _, idx, positions in scored]


class PickerApp(App[Optional[str]]):
    """Fuzzy finder. Exits with the chosen name, or None if aborted."""

    CSS = f"""
    Screen {{
        background: {BG};
    }}

    #query {{
        dock: top;
        border: solid {CYAN};
    }}

    #results {{
        height: 1fr;
        background: {SURFACE};
        border: solid {BORDER};
    }}
    """

    TITLE = "tms"

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", priority=True),
        Binding("ctrl+c", "cancel", "Cancel", show=False, priority=True),
        Binding("down", "cursor_down", "Down", show=False, priority=True),
        Binding("up", "cursor_up", "Up", show=False, priority=True),
        Binding("ctrl+n", "cursor_down", show=False, priority=True),
        Binding("ctrl+p", "cursor_up", show=False, priority=True),
    ]

    def __init__(self, names: list[str]) -> None:
        super().__init__()
        self.names = names

    def compose(self) -> ComposeResult:
        yield Input(placeholder="Search repositories", id="query")
        yield OptionList(id="results")
        yield Footer()

    def on_mount(self) -> None:
        self._refresh_options("")
        self.query_one("#query", Input).focus()

    def _refresh_options(self, query: str) -> None:
        results = self.query_one("#results", OptionList)
        results.clear_options()
        results.add_options([
            Option(highlight_match(self.names[idx], positions), id=str(idx))
            for idx, positions in filter_candidates(query, self.names)
        ])
        if results.option_count:
            results.highlighted = 0

    def on_input_changed(self, event: Input.Changed) -> None:
        self._refresh_options(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.action_choose()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.exit(self.names[int(event.option.id)])

    def action_choose(self) -> None:
        results = self.query_one("#results", OptionList)
        if results.highlighted is None:
            return
        option = results.get_option_at_index(results.highlighted)
        self.exit(self.names[int(option.id)])

    def action_cancel(self) -> None:
        self.exit(None)

    def action_cursor_down(self) -> None:
        self.query_one("#results", OptionList).action_cursor_down()

    def action_cursor_up(self) -> None:
        self.query_one("#results", OptionList).action_cursor_up()


def pick(names: list[str]) -> Optional[str]:
    """Let the user choose one of `names`; None when aborted or empty."""
    if not names:
        return None
    return PickerApp(names).run()
