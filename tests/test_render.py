"""Tests for tui_markup.widgets and tui_markup.render -- painting frames."""

from __future__ import annotations

from tui_markup.focus import FocusController
from tui_markup.layout import Rect
from tui_markup.markup import MarkupTree
from tui_markup.render import RenderPipeline, scope_focusables
from tui_markup.styles import Color, Modifier, StyleRule
from tui_markup.widgets import Buffer, Frame, PainterRegistry, paint_block

DIALOG = """
<layout>
  <p id="main" constraint="100%">Main</p>
  <dialog id="confirm" show="show_confirm" buttons="Yes|No" title="Sure?">
    <p id="question">Really?</p>
    <button id="extra" order="5">More</button>
  </dialog>
</layout>
"""


def _pipeline(markup: str) -> tuple[MarkupTree, FocusController, RenderPipeline]:
    tree = MarkupTree.from_string(markup)
    assert not tree.failed, tree.error
    focus = FocusController(tree.focusables())
    return tree, focus, RenderPipeline(tree, focus)


# ---------------------------------------------------------------------------
# Buffer
# ---------------------------------------------------------------------------


class TestBuffer:
    def test_set_string_returns_next_column(self) -> None:
        buf = Buffer(Rect(0, 0, 10, 1))
        assert buf.set_string(2, 0, "abc") == 5
        assert buf.lines() == ["  abc     "]

    def test_set_string_clips_to_area(self) -> None:
        buf = Buffer(Rect(0, 0, 4, 1))
        buf.set_string(2, 0, "abcdef")
        assert buf.lines() == ["  ab"]

    def test_wide_graphemes_take_two_cells(self) -> None:
        buf = Buffer(Rect(0, 0, 6, 1))
        assert buf.set_string(0, 0, "日本") == 4
        assert buf.get(1, 0).symbol == ""
        assert buf.lines() == ["日本  "]

    def test_ansi_lines_reset_at_end(self) -> None:
        buf = Buffer(Rect(0, 0, 2, 1))
        assert buf.ansi_lines() == ["\x1b[0m  \x1b[0m"]

    def test_ansi_lines_emit_style_changes(self) -> None:
        buf = Buffer(Rect(0, 0, 2, 1))
        buf.set_string(0, 0, "x", StyleRule(fg=Color.RED))
        assert buf.ansi_lines() == ["\x1b[0;31mx\x1b[0m \x1b[0m"]


# ---------------------------------------------------------------------------
# Painters
# ---------------------------------------------------------------------------


class TestPainters:
    def test_bordered_block_with_title(self) -> None:
        tree, _, pipeline = _pipeline(
            '<layout><block id="nav" border="all" title="Nav"></block></layout>'
        )
        frame = Frame(10, 3)
        pipeline.render(frame, {})
        assert frame.buffer.lines() == [
            "┌Nav─────┐",
            "│        │",
            "└────────┘",
        ]

    def test_paragraph_alignment(self) -> None:
        _, _, pipeline = _pipeline('<layout><p align="center">hi</p></layout>')
        frame = Frame(6, 1)
        pipeline.render(frame, {})
        assert frame.buffer.lines() == ["  hi  "]

    def test_button_label_centered_in_border(self) -> None:
        _, _, pipeline = _pipeline('<layout><button id="ok" order="0">OK</button></layout>')
        frame = Frame(10, 3)
        pipeline.render(frame, {})
        assert frame.buffer.lines()[1] == "│   OK   │"

    def test_focused_node_uses_focus_style(self) -> None:
        _, focus, pipeline = _pipeline('<layout><button id="ok" order="0">OK</button></layout>')
        frame = Frame(10, 3)
        pipeline.render(frame, {})
        assert Modifier.REVERSED not in frame.buffer.get(4, 1).modifiers

        focus.advance()
        frame = Frame(10, 3)
        pipeline.render(frame, {})
        assert Modifier.REVERSED in frame.buffer.get(4, 1).modifiers

    def test_stylesheet_colors_applied(self) -> None:
        _, _, pipeline = _pipeline(
            '<layout><styles>p { fg: green; }</styles><p id="x">x</p></layout>'
        )
        frame = Frame(4, 1)
        pipeline.render(frame, {})
        assert frame.buffer.get(0, 0).fg is Color.GREEN

    def test_painter_override(self) -> None:
        calls = []

        def paint_p(frame, area, node, style):
            calls.append((node.id, area))

        tree = MarkupTree.from_string('<layout><p id="x">x</p></layout>')
        pipeline = RenderPipeline(tree, FocusController(), painters={"p": paint_p})
        pipeline.render(Frame(5, 2), {})
        assert calls == [("x", Rect(0, 0, 5, 2))]

    def test_registry_falls_back_to_block(self) -> None:
        registry = PainterRegistry()
        assert registry.get("unknown-tag") is paint_block
        registry.add_painter("p", paint_block)
        assert registry.has_override("p")


# ---------------------------------------------------------------------------
# Dialogs
# ---------------------------------------------------------------------------


class TestDialogRendering:
    def test_dialog_painted_over_content(self) -> None:
        _, _, pipeline = _pipeline(DIALOG)
        frame = Frame(20, 12)
        painted = pipeline.render(frame, {"show_confirm": "true"})
        assert painted[0].node.id == "main"
        assert painted[1].node.id == "confirm"
        lines = frame.buffer.lines()
        assert lines[0].startswith("Main")
        assert lines[3][4:].startswith("┌Sure?")

    def test_hidden_dialog_not_painted(self) -> None:
        _, _, pipeline = _pipeline(DIALOG)
        painted = pipeline.render(Frame(20, 12), {})
        assert [d.node.id for d in painted] == ["main"]

    def test_scope_focusables_include_buttons(self) -> None:
        tree = MarkupTree.from_string(DIALOG)
        ids = [n.id for n in scope_focusables(tree, tree.find("confirm"))]
        assert ids == ["extra", "confirm_btn_Yes", "confirm_btn_No"]

    def test_render_enters_and_leaves_dialog_scope(self) -> None:
        _, focus, pipeline = _pipeline(DIALOG)
        pipeline.render(Frame(20, 12), {"show_confirm": "true"})
        assert focus.depth == 1
        assert focus.ids() == ["extra", "confirm_btn_Yes", "confirm_btn_No"]

        # A second frame with the dialog still open keeps one scope.
        pipeline.render(Frame(20, 12), {"show_confirm": "true"})
        assert focus.depth == 1

        pipeline.render(Frame(20, 12), {"show_confirm": "false"})
        assert focus.depth == 0
        assert focus.ids() == ["extra"]

    def test_hiding_stacked_dialogs_together_clears_every_scope(self) -> None:
        _, focus, pipeline = _pipeline(
            '<layout><button id="base" order="0">Base</button>'
            '<dialog id="a" show="sa" buttons="A"><p>a</p></dialog>'
            '<dialog id="b" show="sb" buttons="B"><p>b</p></dialog></layout>'
        )
        pipeline.render(Frame(30, 20), {"sa": "true", "sb": "true"})
        assert focus.depth == 2
        assert focus.ids() == ["b_btn_B"]

        pipeline.render(Frame(30, 20), {"sa": "false", "sb": "false"})
        assert focus.depth == 0
        assert focus.ids() == ["base"]

    def test_hiding_lower_dialog_keeps_upper_scope(self) -> None:
        _, focus, pipeline = _pipeline(
            '<layout><button id="base" order="0">Base</button>'
            '<dialog id="a" show="sa" buttons="A"><p>a</p></dialog>'
            '<dialog id="b" show="sb" buttons="B"><p>b</p></dialog></layout>'
        )
        pipeline.render(Frame(30, 20), {"sa": "true", "sb": "true"})
        pipeline.render(Frame(30, 20), {"sa": "false", "sb": "true"})
        assert focus.depth == 2
        assert focus.ids() == ["b_btn_B"]
