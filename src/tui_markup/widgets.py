"""Character-cell painting: the frame buffer and the built-in widget painters.

A painter is any callable ``(frame, area, node, style) -> None``.  The
render pipeline looks one up per tag, consulting caller-supplied overrides
before :data:`DEFAULT_PAINTERS`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from tui_markup.layout import Borders, Rect, get_border
from tui_markup.markup import (
    BLOCK_TAG,
    BUTTON_TAG,
    CONTAINER_TAG,
    DIALOG_TAG,
    PARAGRAPH_TAG,
    TAB_BORDERS_TAG,
    TAB_CONTENT_TAG,
    TAB_ITEM_TAG,
    TABS_TAG,
    MarkupNode,
)
from tui_markup.styles import Color, Modifier, StyleRule
from tui_markup.utils import align_offset, iter_graphemes, truncate_to_width, visible_width

# ---------------------------------------------------------------------------
# Border glyphs
# ---------------------------------------------------------------------------

HORIZONTAL = "─"
VERTICAL = "│"
TOP_LEFT = "┌"
TOP_RIGHT = "┐"
BOTTOM_LEFT = "└"
BOTTOM_RIGHT = "┘"

# ---------------------------------------------------------------------------
# Buffer
# ---------------------------------------------------------------------------


@dataclass
class Cell:
    symbol: str = " "
    fg: Color = Color.RESET
    bg: Color = Color.RESET
    modifiers: Modifier = Modifier.NONE

    def set_style(self, style: StyleRule) -> None:
        if style.fg is not None:
            self.fg = style.fg
        if style.bg is not None:
            self.bg = style.bg
        self.modifiers |= style.modifiers

    def style(self) -> StyleRule:
        return StyleRule(fg=self.fg, bg=self.bg, modifiers=self.modifiers)

    def reset(self) -> None:
        self.symbol = " "
        self.fg = Color.RESET
        self.bg = Color.RESET
        self.modifiers = Modifier.NONE


class Buffer:
    """A grid of :class:`Cell` covering ``area``.

    Wide graphemes occupy their first cell; the cells they cover to the
    right hold an empty symbol.
    """

    def __init__(self, area: Rect) -> None:
        self.area = area
        self.cells: list[Cell] = [Cell() for _ in range(area.width * area.height)]

    def _index(self, x: int, y: int) -> int:
        return (y - self.area.y) * self.area.width + (x - self.area.x)

    def contains(self, x: int, y: int) -> bool:
        return self.area.x <= x < self.area.right and self.area.y <= y < self.area.bottom

    def get(self, x: int, y: int) -> Cell:
        return self.cells[self._index(x, y)]

    def set_string(
        self, x: int, y: int, text: str, style: Optional[StyleRule] = None, max_width: int = -1
    ) -> int:
        """Write *text* starting at ``(x, y)``; returns the next free column."""
        if not self.contains(x, y):
            return x
        limit = self.area.right - x if max_width < 0 else min(max_width, self.area.right - x)
        end = x + limit
        for g, w in iter_graphemes(text):
            if w == 0:
                continue
            if x + w > end:
                break
            cell = self.get(x, y)
            cell.symbol = g
            if style is not None:
                cell.set_style(style)
            for pad in range(1, w):
                self.get(x + pad, y).symbol = ""
            x += w
        return x

    def set_style(self, area: Rect, style: StyleRule) -> None:
        area = area.intersection(self.area)
        for y in range(area.top, area.bottom):
            for x in range(area.left, area.right):
                self.get(x, y).set_style(style)

    def reset(self, area: Optional[Rect] = None) -> None:
        area = self.area if area is None else area.intersection(self.area)
        for y in range(area.top, area.bottom):
            for x in range(area.left, area.right):
                self.get(x, y).reset()

    def lines(self) -> list[str]:
        """Plain text of every row, without styling."""
        rows: list[str] = []
        for y in range(self.area.top, self.area.bottom):
            rows.append("".join(self.get(x, y).symbol for x in range(self.area.left, self.area.right)))
        return rows

    def ansi_lines(self) -> list[str]:
        """Every row with SGR escapes emitted wherever the style changes."""
        rows: list[str] = []
        for y in range(self.area.top, self.area.bottom):
            parts: list[str] = []
            current: Optional[StyleRule] = None
            for x in range(self.area.left, self.area.right):
                cell = self.get(x, y)
                style = cell.style()
                if style != current:
                    parts.append(style.sgr())
                    current = style
                parts.append(cell.symbol)
            parts.append("\x1b[0m")
            rows.append("".join(parts))
        return rows


class Frame:
    """The surface handed to painters for one render pass."""

    def __init__(self, width: int, height: int) -> None:
        self.buffer = Buffer(Rect(0, 0, max(0, width), max(0, height)))

    @property
    def area(self) -> Rect:
        return self.buffer.area


# ---------------------------------------------------------------------------
# Primitive painters
# ---------------------------------------------------------------------------

Painter = Callable[[Frame, Rect, MarkupNode, StyleRule], None]


def block_inner(area: Rect, borders: Borders, has_title: bool) -> Rect:
    """Area left inside a block once its borders (and title row) are drawn."""
    x, y, width, height = area.x, area.y, area.width, area.height
    if borders & Borders.LEFT:
        x += 1
        width = max(0, width - 1)
    if borders & Borders.TOP or has_title:
        y += 1
        height = max(0, height - 1)
    if borders & Borders.RIGHT:
        width = max(0, width - 1)
    if borders & Borders.BOTTOM:
        height = max(0, height - 1)
    return Rect(x, y, width, height)


def draw_block(
    frame: Frame, area: Rect, borders: Borders, title: str, style: StyleRule
) -> Rect:
    """Draw borders and title over *area*, returning the inner area."""
    buf = frame.buffer
    area = area.intersection(buf.area)
    if area.area == 0:
        return area
    buf.set_style(area, style)

    left, right = area.left, area.right - 1
    top, bottom = area.top, area.bottom - 1
    if borders & Borders.TOP:
        for x in range(left, right + 1):
            buf.get(x, top).symbol = HORIZONTAL
    if borders & Borders.BOTTOM:
        for x in range(left, right + 1):
            buf.get(x, bottom).symbol = HORIZONTAL
    if borders & Borders.LEFT:
        for y in range(top, bottom + 1):
            buf.get(left, y).symbol = VERTICAL
    if borders & Borders.RIGHT:
        for y in range(top, bottom + 1):
            buf.get(right, y).symbol = VERTICAL
    if borders & Borders.TOP and borders & Borders.LEFT:
        buf.get(left, top).symbol = TOP_LEFT
    if borders & Borders.TOP and borders & Borders.RIGHT:
        buf.get(right, top).symbol = TOP_RIGHT
    if borders & Borders.BOTTOM and borders & Borders.LEFT:
        buf.get(left, bottom).symbol = BOTTOM_LEFT
    if borders & Borders.BOTTOM and borders & Borders.RIGHT:
        buf.get(right, bottom).symbol = BOTTOM_RIGHT

    if title:
        title_x = left + 1 if borders & Borders.LEFT else left
        title_width = area.width
        if borders & Borders.LEFT:
            title_width -= 1
        if borders & Borders.RIGHT:
            title_width -= 1
        buf.set_string(title_x, top, title, max_width=max(0, title_width))

    return block_inner(area, borders, bool(title))


def draw_text(
    frame: Frame, area: Rect, text: str, style: StyleRule, alignment: str = "left"
) -> None:
    """Draw *text* line by line inside *area*, truncating what does not fit."""
    area = area.intersection(frame.buffer.area)
    if area.area == 0:
        return
    lines = [line.strip() for line in text.splitlines()] if text else []
    for row, line in enumerate(lines[: area.height]):
        line = truncate_to_width(line, area.width)
        offset = align_offset(visible_width(line), area.width, alignment)
        frame.buffer.set_string(area.x + offset, area.y + row, line, style)


# ---------------------------------------------------------------------------
# Built-in painters
# ---------------------------------------------------------------------------


def paint_block(frame: Frame, area: Rect, node: MarkupNode, style: StyleRule) -> None:
    draw_block(frame, area, get_border(node.attr("border")), node.attr("title"), style)


def paint_paragraph(frame: Frame, area: Rect, node: MarkupNode, style: StyleRule) -> None:
    inner = draw_block(
        frame, area, get_border(node.attr("border")), node.attr("title"), style
    )
    draw_text(frame, inner, node.text, style, node.attr("align", "left"))


def paint_button(frame: Frame, area: Rect, node: MarkupNode, style: StyleRule) -> None:
    border = node.attr("border", "all")
    inner = draw_block(frame, area, get_border(border), node.attr("title"), style)
    if inner.height == 0:
        return
    # Vertically centered single-line label.
    row = Rect(inner.x, inner.y + (inner.height - 1) // 2, inner.width, 1)
    draw_text(frame, row, node.text, style, node.attr("align", "center"))


def paint_tab_item(frame: Frame, area: Rect, node: MarkupNode, style: StyleRule) -> None:
    area = area.intersection(frame.buffer.area)
    if area.area == 0:
        return
    frame.buffer.set_style(area, style)
    label = truncate_to_width(f" {node.text} ", area.width - 1)
    end = frame.buffer.set_string(area.x, area.y, label, style)
    if end < area.right:
        frame.buffer.set_string(area.right - 1, area.y, VERTICAL)


def paint_dialog(frame: Frame, area: Rect, node: MarkupNode, style: StyleRule) -> None:
    frame.buffer.reset(area)
    border = node.attr("border", "all")
    draw_block(frame, area, get_border(border), node.attr("title"), style)


DEFAULT_PAINTERS: Mapping[str, Painter] = {
    BLOCK_TAG: paint_block,
    CONTAINER_TAG: paint_block,
    TABS_TAG: paint_block,
    TAB_CONTENT_TAG: paint_block,
    TAB_BORDERS_TAG: paint_block,
    PARAGRAPH_TAG: paint_paragraph,
    BUTTON_TAG: paint_button,
    TAB_ITEM_TAG: paint_tab_item,
    DIALOG_TAG: paint_dialog,
}


class PainterRegistry:
    """Tag → painter lookup; overrides win over the built-ins."""

    def __init__(self, overrides: Optional[Mapping[str, Painter]] = None) -> None:
        self._overrides: dict[str, Painter] = dict(overrides or {})

    def add_painter(self, tag: str, painter: Painter) -> PainterRegistry:
        self._overrides.setdefault(tag, painter)
        return self

    def has_override(self, tag: str) -> bool:
        return tag in self._overrides

    def get(self, tag: str) -> Painter:
        painter = self._overrides.get(tag)
        if painter is not None:
            return painter
        return DEFAULT_PAINTERS.get(tag, paint_block)
