"""Tests for tui_markup.keys -- splitting and naming key sequences."""

from __future__ import annotations

import pytest

from tui_markup.keys import Key, KeyEvent, matches_key, parse_key, split_sequences


class TestParseKey:
    @pytest.mark.parametrize(
        "data, expected",
        [
            ("\t", Key.tab),
            ("\x1b[Z", Key.shift_tab),
            ("\r", Key.enter),
            ("\x1b", Key.escape),
            (" ", Key.space),
            ("\x7f", Key.backspace),
            ("\x1b[A", Key.up),
            ("\x1bOP", "f1"),
            ("\x03", "ctrl+c"),
            ("\x1bx", "alt+x"),
            ("q", "q"),
        ],
    )
    def test_named_keys(self, data: str, expected: str) -> None:
        assert parse_key(data) == expected

    def test_unknown_sequence(self) -> None:
        assert parse_key("\x1b[99~") is None
        assert parse_key("") is None

    def test_matches_key(self) -> None:
        assert matches_key("\t", Key.tab)
        assert not matches_key("\t", Key.enter)


class TestSplitSequences:
    def test_plain_characters(self) -> None:
        assert split_sequences("ab\t") == ["a", "b", "\t"]

    def test_escape_sequences_kept_whole(self) -> None:
        assert split_sequences("\x1b[A\x1b[Zq") == ["\x1b[A", "\x1b[Z", "q"]

    def test_ss3_and_lone_escape(self) -> None:
        assert split_sequences("\x1bOP\x1b") == ["\x1bOP", "\x1b"]


class TestKeyEvent:
    def test_from_data(self) -> None:
        event = KeyEvent.from_data("\r")
        assert event.data == "\r"
        assert event.key == Key.enter
        assert event.matches(Key.enter)
