"""Cell-width helpers for painting text onto a character grid.

Text is measured per grapheme cluster; each cluster occupies zero, one or
two terminal cells.
"""

from __future__ import annotations

import unicodedata
from typing import Iterator

import grapheme
import wcwidth as _wcwidth

# ---------------------------------------------------------------------------
# Width cache (capped)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------


def grapheme_width(g: str) -> int:
    """Return the number of cells a single grapheme cluster occupies."""
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        # VS16, ZWJ, skin tones and regional indicators render as emoji.
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = g[0]
    if ord(first) >= 0x1F000:
        return 2
    if unicodedata.category(first).startswith("M") or unicodedata.category(first) == "Cf":
        return 0
    return max(_wcwidth.wcwidth(first), 0)


def iter_graphemes(text: str) -> Iterator[tuple[str, int]]:
    """Yield ``(cluster, cell_width)`` pairs; tabs become three spaces."""
    for g in grapheme.graphemes(text.replace("\t", "   ")):
        yield g, grapheme_width(g)


def visible_width(text: str) -> int:
    """Number of terminal cells *text* occupies."""
    if not text:
        return 0
    text = text.replace("\t", "   ")
    if text.isascii() and text.isprintable():
        return len(text)

    cached = _width_cache.get(text)
    if cached is not None:
        return cached
    return _cache_width(text, sum(w for _, w in iter_graphemes(text)))


def truncate_to_width(text: str, max_width: int) -> str:
    """Longest prefix of *text* that fits in *max_width* cells."""
    if max_width <= 0:
        return ""
    if visible_width(text) <= max_width:
        return text
    result: list[str] = []
    cols = 0
    for g, w in iter_graphemes(text):
        if cols + w > max_width:
            break
        result.append(g)
        cols += w
    return "".join(result)


def align_offset(text_width: int, available: int, alignment: str) -> int:
    """Column offset of a line of *text_width* cells within *available*."""
    free = max(0, available - text_width)
    if alignment == "center":
        return free // 2
    if alignment == "right":
        return free
    return 0
