"""Layout engine: turns the markup tree into positioned drawables.

The engine is a pure function of the tree, the application state and the
frame rectangle.  It walks the tree depth-first, splits rectangles with
:func:`split`, and returns an ordered list of :class:`Drawable` records.
Dialog buttons, tab headers and the tab strip border do not exist in the
tree; they are synthesized here on every pass.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from tui_markup.markup import (
    BLOCK_TAG,
    BUTTON_TAG,
    CONTAINER_TAG,
    DIALOG_TAG,
    LAYOUT_TAG,
    PARAGRAPH_TAG,
    STYLES_TAG,
    TAB_BORDERS_TAG,
    TAB_CONTENT_TAG,
    TAB_ITEM_TAG,
    TABS_BODY_TAG,
    TABS_HEADER_TAG,
    TABS_TAG,
    MarkupNode,
    MarkupTree,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def left(self) -> int:
        return self.x

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def top(self) -> int:
        return self.y

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def inner(self, margin: int) -> Rect:
        """Shrink by *margin* cells on every side (zero-sized if too small)."""
        if margin <= 0:
            return self
        if self.width < 2 * margin or self.height < 2 * margin:
            return Rect(self.x, self.y, 0, 0)
        return Rect(
            self.x + margin,
            self.y + margin,
            self.width - 2 * margin,
            self.height - 2 * margin,
        )

    def intersection(self, other: Rect) -> Rect:
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.right, other.right)
        y2 = min(self.bottom, other.bottom)
        return Rect(x1, y1, max(0, x2 - x1), max(0, y2 - y1))


class Direction(enum.Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


def get_direction(node: MarkupNode) -> Direction:
    """Direction of a nested ``layout``: horizontal unless asked otherwise."""
    if node.attr("direction") == "vertical":
        return Direction.VERTICAL
    return Direction.HORIZONTAL


def get_root_direction(node: MarkupNode) -> Direction:
    """Direction of the top-level node: vertical unless asked otherwise."""
    if node.attr("direction") == "horizontal":
        return Direction.HORIZONTAL
    return Direction.VERTICAL


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Length:
    value: int


@dataclass(frozen=True)
class Percentage:
    value: int


@dataclass(frozen=True)
class Min:
    value: int


@dataclass(frozen=True)
class Max:
    value: int


@dataclass(frozen=True)
class Ratio:
    numerator: int
    denominator: int


Constraint = Union[Length, Percentage, Min, Max, Ratio]

_NUMBER_RE = re.compile(r"^\d+$")


def _number(text: str) -> int:
    return int(text) if _NUMBER_RE.match(text) else 1


def parse_constraint(text: str) -> Constraint:
    """Parse a ``constraint`` attribute.

    ``"20%"`` → percentage, ``"10min"`` / ``"5max"`` → minimum / maximum
    length, ``"1:2"`` → ratio, ``"7"`` → fixed length.  Anything that does
    not parse as a number becomes ``1``.
    """
    if text.endswith("%"):
        return Percentage(_number(text[:-1]))
    if text.endswith("min"):
        return Min(_number(text[:-3]))
    if text.endswith("max"):
        return Max(_number(text[:-3]))
    if ":" in text:
        parts = text.split(":")
        return Ratio(_number(parts[0]), _number(parts[1]))
    return Length(_number(text))


def _preferred_size(constraint: Constraint, total: int) -> int:
    if isinstance(constraint, Percentage):
        return total * constraint.value // 100
    if isinstance(constraint, Ratio):
        if constraint.denominator == 0:
            return 0
        return total * constraint.numerator // constraint.denominator
    return constraint.value


def split(
    area: Rect,
    direction: Direction,
    constraints: list[Constraint],
    margin: int = 0,
) -> list[Rect]:
    """Split *area* into one chunk per constraint along *direction*.

    Chunks are allocated in order, each clamped to what is left.  Space
    that remains afterwards goes to the ``Min`` chunks (evenly, remainder to
    the last of them) or, when there are none, to the last chunk.
    """
    inner = area.inner(margin)
    if not constraints:
        return []

    total = inner.width if direction is Direction.HORIZONTAL else inner.height
    sizes: list[int] = []
    remaining = total
    for constraint in constraints:
        size = min(max(0, _preferred_size(constraint, total)), remaining)
        sizes.append(size)
        remaining -= size

    if remaining > 0:
        flexible = [i for i, c in enumerate(constraints) if isinstance(c, Min)]
        if flexible:
            share, extra = divmod(remaining, len(flexible))
            for i in flexible:
                sizes[i] += share
            sizes[flexible[-1]] += extra
        else:
            sizes[-1] += remaining

    chunks: list[Rect] = []
    offset = 0
    for size in sizes:
        if direction is Direction.HORIZONTAL:
            chunks.append(Rect(inner.x + offset, inner.y, size, inner.height))
        else:
            chunks.append(Rect(inner.x, inner.y + offset, inner.width, size))
        offset += size
    return chunks


# ---------------------------------------------------------------------------
# Borders
# ---------------------------------------------------------------------------


class Borders(enum.Flag):
    NONE = 0
    TOP = enum.auto()
    RIGHT = enum.auto()
    BOTTOM = enum.auto()
    LEFT = enum.auto()
    ALL = TOP | RIGHT | BOTTOM | LEFT


_BORDER_NAMES = {
    "all": Borders.ALL,
    "top": Borders.TOP,
    "bottom": Borders.BOTTOM,
    "left": Borders.LEFT,
    "right": Borders.RIGHT,
}


def get_border(value: str) -> Borders:
    """Parse a ``border`` attribute such as ``"top|bottom"``."""
    borders = Borders.NONE
    for part in value.split("|"):
        borders |= _BORDER_NAMES.get(part.strip().lower(), Borders.NONE)
    return borders


def get_margin(node: MarkupNode) -> int:
    """Inner margin of a block-like node: one cell when it has a border."""
    return 1 if get_border(node.attr("border")) else 0


# ---------------------------------------------------------------------------
# Drawables
# ---------------------------------------------------------------------------


@dataclass
class Drawable:
    """A node placed on the frame.

    ``dependencies`` lists ids that gate drawing: the drawable is eligible
    when the list is empty or when any of the ids was drawn earlier in the
    same frame.
    """

    rect: Rect
    node: MarkupNode
    dependencies: list[str] = field(default_factory=list)

    def depends_on(self, node_id: Optional[str]) -> Drawable:
        if node_id and node_id not in self.dependencies:
            self.dependencies.append(node_id)
        return self

    def is_eligible(self, drawn: set[str]) -> bool:
        if not self.dependencies:
            return True
        return any(dep in drawn for dep in self.dependencies)


def eligible(drawables: list[Drawable]) -> list[Drawable]:
    """Filter *drawables* in emission order using the dependency rule."""
    drawn: set[str] = set()
    result: list[Drawable] = []
    for drawable in drawables:
        if drawable.is_eligible(drawn):
            drawn.add(drawable.node.id)
            result.append(drawable)
    return result


# ---------------------------------------------------------------------------
# Tag classification
# ---------------------------------------------------------------------------

WIDGET_TAGS = frozenset({PARAGRAPH_TAG, BUTTON_TAG, TAB_ITEM_TAG})
CONTAINER_TAGS = frozenset({CONTAINER_TAG, BLOCK_TAG})
PASS_THROUGH_TAGS = frozenset({TABS_HEADER_TAG, TABS_BODY_TAG})

# Dialogs overlay the frame and styles carry no geometry, so neither takes a
# slot when a parent splits its rectangle.
OUT_OF_FLOW_TAGS = frozenset({DIALOG_TAG, STYLES_TAG})

# Dialog geometry, as percentages of the whole frame.
DIALOG_VERTICAL_SPLIT = (25, 50, 25)
DIALOG_HORIZONTAL_SPLIT = (20, 60, 20)
DIALOG_BUTTON_ROW_HEIGHT = 3

TAB_HEADER_HEIGHT = 3
DEFAULT_TAB_WIDTH = 12
TAB_CONTENT_GUTTER_PERCENT = 10

TRUE = "true"


def is_widget(node: MarkupNode) -> bool:
    """Leaf widgets are placed directly; ``block`` counts when it is empty."""
    if node.tag in WIDGET_TAGS:
        return True
    return node.tag == BLOCK_TAG and not node.children


def dialog_visible(node: MarkupNode, state: Mapping[str, str]) -> bool:
    key = node.attr("show")
    return bool(key) and state.get(key) == TRUE


def dialog_action(dialog: MarkupNode, label: str) -> str:
    """Action fired by a dialog button: explicit, or ``on_<id>_btn_<label>``."""
    return dialog.attr("action") or f"on_{dialog.id}_btn_{label}"


def dialog_buttons(dialog: MarkupNode) -> list[MarkupNode]:
    """Synthesize the ephemeral buttons listed in a dialog's ``buttons``."""
    labels = [label.strip() for label in dialog.attr("buttons").split("|")]
    buttons: list[MarkupNode] = []
    for position, label in enumerate(label for label in labels if label):
        buttons.append(
            MarkupNode(
                id=f"{dialog.id}_btn_{label}",
                tag=BUTTON_TAG,
                depth=dialog.depth + 1,
                order=position,
                text=label,
                attributes={
                    "action": dialog_action(dialog, label),
                    "border": "all",
                    "align": "center",
                },
                parent=dialog.index,
            )
        )
    return buttons


def tab_items(tree: MarkupTree, tabs: MarkupNode) -> list[MarkupNode]:
    return [
        node
        for node in tree.descendants(tabs)
        if node.tag == TAB_ITEM_TAG and node.attr("tabs-id") == tabs.id
    ]


def tab_contents(tree: MarkupTree, tabs: MarkupNode) -> list[MarkupNode]:
    return [
        node
        for node in tree.descendants(tabs)
        if node.tag == TAB_CONTENT_TAG and node.attr("tabs-id") == tabs.id
    ]


def selected_tab(
    tree: MarkupTree, tabs: MarkupNode, state: Mapping[str, str]
) -> Optional[str]:
    """Id of the selected tab item: from state, else the first tab."""
    selected = state.get(f"{tabs.id}:index")
    if selected:
        return selected
    items = tab_items(tree, tabs)
    return items[0].id if items else None


def selected_tabs(tree: MarkupTree, state: Mapping[str, str]) -> dict[str, Optional[str]]:
    """Selected tab item id of every tab strip, keyed by the ``tabs`` id."""
    return {tabs.id: selected_tab(tree, tabs, state) for tabs in tree.find_all(TABS_TAG)}


def is_active(node: MarkupNode, selected: Mapping[str, Optional[str]]) -> bool:
    """Whether a tab item is the selected one of its strip."""
    if node.tag != TAB_ITEM_TAG:
        return False
    return selected.get(node.attr("tabs-id")) == node.id


def nested_margin(parent: MarkupNode, child: MarkupNode) -> int:
    """Margin handed to a nested ``layout``: 1 unless the parent has ``border="none"``."""
    if child.tag != LAYOUT_TAG:
        return 0
    return 0 if parent.attr("border") == "none" else 1



# ---------------------------------------------------------------------------
# LayoutEngine
# ---------------------------------------------------------------------------


class LayoutEngine:
    """Computes the drawables for one frame.

    Parameters
    ----------
    tree:
        The parsed markup.
    tab_width:
        Column width of each synthesized tab header.
    """

    def __init__(self, tree: MarkupTree, tab_width: int = DEFAULT_TAB_WIDTH) -> None:
        self.tree = tree
        self.tab_width = tab_width

    def layout(self, frame: Rect, state: Mapping[str, str]) -> list[Drawable]:
        """Lay out the whole tree inside *frame*.

        Flow content comes first in the result; dialog overlays are appended
        at the end so they are painted on top.
        """
        root = self.tree.root
        if root is None:
            return []
        pass_ = _LayoutPass(self, frame, state)
        if root.tag == LAYOUT_TAG:
            result = pass_.process_layout(root, frame, 0, None, get_root_direction(root))
        else:
            result = pass_.process_node(root, frame, 0, None)
        return result + pass_.overlays


class _LayoutPass:
    """State for a single :meth:`LayoutEngine.layout` call."""

    def __init__(
        self, engine: LayoutEngine, frame: Rect, state: Mapping[str, str]
    ) -> None:
        self.tree = engine.tree
        self.tab_width = engine.tab_width
        self.frame = frame
        self.state = state
        self.overlays: list[Drawable] = []
        self.selected = selected_tabs(self.tree, state)

    # -- dispatch -----------------------------------------------------------

    def process_node(
        self,
        node: MarkupNode,
        place: Rect,
        margin: int,
        dependency: Optional[str],
    ) -> list[Drawable]:
        tag = node.tag
        if tag == LAYOUT_TAG:
            return self.process_layout(node, place, margin, dependency, get_direction(node))
        if tag in CONTAINER_TAGS:
            return self.process_container(node, place, dependency)
        if tag == DIALOG_TAG:
            self.overlays.extend(self.process_dialog(node, dependency))
            return []
        if tag == TABS_TAG:
            return self.process_tabs(node, place, dependency)
        if tag == TAB_CONTENT_TAG:
            return self.process_tab_content(node, place, dependency)
        if tag == STYLES_TAG:
            return []
        if is_widget(node):
            return [Drawable(place, node).depends_on(dependency)]
        if tag not in PASS_THROUGH_TAGS:
            logger.warning("Unsupported tag <%s> (id=%s) in layout", tag, node.id)
        return self.process_children(node, place, dependency)

    # -- flow ---------------------------------------------------------------

    def _flow_children(self, node: MarkupNode) -> list[MarkupNode]:
        return [c for c in self.tree.children(node) if c.tag not in OUT_OF_FLOW_TAGS]

    def _out_of_flow(self, node: MarkupNode, dependency: Optional[str]) -> None:
        for child in self.tree.children(node):
            if child.tag == DIALOG_TAG:
                self.overlays.extend(self.process_dialog(child, dependency))

    def _split_children(
        self,
        parent: MarkupNode,
        place: Rect,
        margin: int,
        direction: Direction,
        dependency: Optional[str],
    ) -> list[Drawable]:
        """Split *place* among *parent*'s flow children; structural results precede widgets."""
        children = self._flow_children(parent)
        constraints = [parse_constraint(c.attr("constraint")) for c in children]
        chunks = split(place, direction, constraints, margin)
        structural: list[Drawable] = []
        widgets: list[Drawable] = []
        for child, chunk in zip(children, chunks):
            if is_widget(child):
                widgets.append(Drawable(chunk, child).depends_on(dependency))
            else:
                structural.extend(
                    self.process_node(child, chunk, nested_margin(parent, child), dependency)
                )
        return structural + widgets

    def process_layout(
        self,
        node: MarkupNode,
        place: Rect,
        margin: int,
        dependency: Optional[str],
        direction: Direction,
    ) -> list[Drawable]:
        result = self._split_children(node, place, margin, direction, dependency)
        self._out_of_flow(node, dependency)
        return result

    def process_container(
        self, node: MarkupNode, place: Rect, dependency: Optional[str]
    ) -> list[Drawable]:
        result = [Drawable(place, node).depends_on(dependency)]
        result.extend(
            self._split_children(
                node,
                place,
                get_margin(node),
                Direction.HORIZONTAL,
                dependency,
            )
        )
        self._out_of_flow(node, dependency)
        return result

    def process_children(
        self, node: MarkupNode, place: Rect, dependency: Optional[str]
    ) -> list[Drawable]:
        """Default rule: every child receives the whole rectangle."""
        result: list[Drawable] = []
        for child in self.tree.children(node):
            result.extend(
                self.process_node(child, place, nested_margin(node, child), dependency)
            )
        return result

    # -- dialog -------------------------------------------------------------

    def dialog_rect(self) -> Rect:
        v = split(self.frame, Direction.VERTICAL, [Percentage(p) for p in DIALOG_VERTICAL_SPLIT])
        h = split(v[1], Direction.HORIZONTAL, [Percentage(p) for p in DIALOG_HORIZONTAL_SPLIT])
        return h[1]

    def process_dialog(
        self, node: MarkupNode, dependency: Optional[str]
    ) -> list[Drawable]:
        if not dialog_visible(node, self.state):
            return []

        rect = self.dialog_rect()
        result = [Drawable(rect, node).depends_on(dependency)]
        body, button_row = split(
            rect, Direction.VERTICAL, [Min(0), Length(DIALOG_BUTTON_ROW_HEIGHT)], 1
        )

        content = self._split_children(node, body, 0, Direction.HORIZONTAL, node.id)
        result.extend(d.depends_on(node.id) for d in content)
        self._out_of_flow(node, node.id)

        buttons = dialog_buttons(node)
        if buttons:
            count = len(buttons)
            chunks = split(button_row, Direction.HORIZONTAL, [Ratio(1, count)] * count)
            for button, chunk in zip(buttons, chunks):
                result.append(Drawable(chunk, button).depends_on(node.id))
        return result

    # -- tabs ---------------------------------------------------------------

    def process_tabs(
        self, node: MarkupNode, place: Rect, dependency: Optional[str]
    ) -> list[Drawable]:
        result = [Drawable(place, node).depends_on(dependency)]
        header, body = split(
            place, Direction.VERTICAL, [Length(TAB_HEADER_HEIGHT), Min(0)], get_margin(node)
        )

        for content in tab_contents(self.tree, node):
            result.extend(self.process_tab_content(content, body, dependency))

        header_node = next(
            (c for c in self.tree.children(node) if c.tag == TABS_HEADER_TAG), None
        )
        borders = MarkupNode(
            id=f"{node.id}:borders",
            tag=TAB_BORDERS_TAG,
            depth=node.depth + 1,
            attributes={
                "border": "all",
                "title": header_node.attr("title") if header_node else "",
            },
            parent=node.index,
        )
        result.append(Drawable(header, borders).depends_on(dependency))

        inner = header.inner(1)
        for position, item in enumerate(tab_items(self.tree, node)):
            x = inner.x + position * self.tab_width
            column = Rect(x, inner.y, self.tab_width, min(1, inner.height))
            column = column.intersection(inner)
            ephemeral = MarkupNode(
                id=item.id,
                tag=TAB_ITEM_TAG,
                depth=item.depth,
                order=item.order,
                text=item.text,
                attributes=dict(item.attributes),
                parent=item.parent,
            )
            result.append(Drawable(column, ephemeral).depends_on(dependency))
        return result

    def process_tab_content(
        self, node: MarkupNode, place: Rect, dependency: Optional[str]
    ) -> list[Drawable]:
        """Lay out a tab page; only the selected page itself is emitted.

        Descendants of every page are produced, but they depend on their
        page id, so the pages that were not emitted gate them out.
        """
        result: list[Drawable] = []
        selected = self.selected.get(node.attr("tabs-id"))
        if selected is not None and node.attr("for") == selected:
            result.append(Drawable(place, node).depends_on(dependency))

        _, body = split(
            place,
            Direction.VERTICAL,
            [Percentage(TAB_CONTENT_GUTTER_PERCENT), Min(0)],
        )
        content = self._split_children(node, body, 0, Direction.HORIZONTAL, node.id)
        result.extend(content)
        self._out_of_flow(node, node.id)
        return result
