"""Tests for the fuzzy finder."""

import asyncio

from tms.picker import PickerApp, filter_candidates, fuzzy_match, pick


def _run(app: PickerApp, *keys: str):
    async def drive():
        async with app.run_test() as pilot:
            await pilot.pause()
            await pilot.press(*keys)
            await pilot.pause()
        return app.return_value

    return asyncio.run(drive())


def test_fuzzy_match_subsequence():
    assert fuzzy_match("tms", "tmux-sessionizer") is not None
    assert fuzzy_match("xyz", "tmux-sessionizer") is None


def test_fuzzy_match_case_insensitive():
    score, positions = fuzzy_match("TM", "tmux")
    assert positions == [0, 1]


def test_fuzzy_match_empty_query():
    assert fuzzy_match("", "anything") == (0, [])


def test_filter_candidates_prefers_contiguous():
    names = ["a-p-i", "api"]
    ranked = [names[idx] for idx, _ in filter_candidates("api", names)]
    assert ranked == ["api", "a-p-i"]


def test_filter_candidates_keeps_order_on_ties():
    names = ["alpha", "beta", "gamma"]
    assert [idx for idx, _ in filter_candidates("", names)] == [0, 1, 2]


def test_pick_empty_list():
    assert pick([]) is None


def test_picker_enter_returns_first_match():
    assert _run(PickerApp(["alpha", "beta", "gamma"]), "g", "m", "enter") == "gamma"


def test_picker_arrow_moves_selection():
    assert _run(PickerApp(["alpha", "beta", "gamma"]), "down", "enter") == "beta"


def test_picker_escape_returns_none():
    assert _run(PickerApp(["alpha", "beta"]), "escape") is None
