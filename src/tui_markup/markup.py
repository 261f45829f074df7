"""The markup element tree.

The tree is an arena: every :class:`MarkupNode` lives in
``MarkupTree.nodes`` and refers to its parent and children by arena index.
It is built once from the tokenizer's start/end events and never changes
afterwards; layout passes produce separate records instead of annotating
the nodes.
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass, field
from typing import IO, Iterator, Optional, Union

from lxml import etree

from tui_markup.errors import ParseError
from tui_markup.styles import StyleSheet

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tag names
# ---------------------------------------------------------------------------

LAYOUT_TAG = "layout"
CONTAINER_TAG = "container"
BLOCK_TAG = "block"
STYLES_TAG = "styles"
PARAGRAPH_TAG = "p"
BUTTON_TAG = "button"
DIALOG_TAG = "dialog"
TABS_TAG = "tabs"
TABS_HEADER_TAG = "tabs-header"
TABS_BODY_TAG = "tabs-body"
TAB_ITEM_TAG = "tab-item"
TAB_CONTENT_TAG = "tab-content"

# Tag of the ephemeral node drawn around a tab strip's header band.
TAB_BORDERS_TAG = "tab-borders"

# Reserved action bound to every tab item that does not declare its own.
TAB_SELECT_ACTION = "__tab_select__"

UNKNOWN_ID_PREFIX = "unknown_elm_"

MarkupSource = Union[str, "os.PathLike[str]", IO[bytes]]


# ---------------------------------------------------------------------------
# MarkupNode
# ---------------------------------------------------------------------------


@dataclass
class MarkupNode:
    """One markup element.

    ``parent`` and ``children`` hold arena indices into the owning
    :class:`MarkupTree`.  Nodes synthesized during layout (dialog buttons,
    tab headers) are *ephemeral*: their ``index`` is ``-1`` and no parent
    lists them as a child, but their ``parent`` still points into the tree
    so ancestor lookups work.
    """

    id: str
    tag: str
    depth: int = 0
    order: int = -1
    text: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    children: list[int] = field(default_factory=list)
    parent: Optional[int] = None
    index: int = -1

    def attr(self, name: str, default: str = "") -> str:
        return self.attributes.get(name, default)

    @property
    def is_focusable(self) -> bool:
        return self.order >= 0

    @property
    def is_ephemeral(self) -> bool:
        return self.index < 0

    def __str__(self) -> str:
        attrs = "".join(f' {k}="{v}"' for k, v in self.attributes.items())
        return f"<{self.tag} id={self.id!r}{attrs}>"


def parse_order(attributes: dict[str, str]) -> int:
    """Resolve a node's focus order from ``order``, else ``index``.

    Missing or unparsable values mean "not focusable" (``-1``).
    """
    raw = attributes.get("order", attributes.get("index", ""))
    try:
        return int(raw.strip())
    except ValueError:
        return -1


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname.lower()


class _TreeBuilder:
    """Turns the tokenizer's start/end events into arena nodes."""

    def __init__(self) -> None:
        self.nodes: list[MarkupNode] = []
        self.stylesheet = StyleSheet()
        self._stack: list[int] = []
        # Running tab-item counter per parent arena index.
        self._tab_counters: dict[int, int] = {}

    def build(self, source: MarkupSource) -> None:
        try:
            events = etree.iterparse(
                source,
                events=("start", "end"),
                remove_comments=True,
                remove_pis=True,
                resolve_entities=False,
            )
            for event, element in events:
                if not isinstance(element.tag, str):
                    continue
                if event == "start":
                    self._start(element)
                else:
                    self._end(element)
        except etree.XMLSyntaxError as exc:
            raise ParseError(exc.msg or str(exc)) from exc
        except OSError as exc:
            raise ParseError(str(exc)) from exc

        if not self.nodes:
            raise ParseError("Markup source contains no elements")

    def _start(self, element: etree._Element) -> None:
        parent_index = self._stack[-1] if self._stack else None
        parent = self.nodes[parent_index] if parent_index is not None else None
        index = len(self.nodes)
        tag = _local_name(element)
        attributes = {
            etree.QName(name).localname: value
            for name, value in element.attrib.items()
        }

        if tag in (TAB_ITEM_TAG, TAB_CONTENT_TAG) and "tabs-id" not in attributes:
            tabs = self._nearest_open(TABS_TAG)
            if tabs is not None:
                attributes["tabs-id"] = tabs.id
        if tag == TAB_ITEM_TAG:
            attributes.setdefault("action", TAB_SELECT_ACTION)
            key = parent_index if parent_index is not None else -1
            counter = self._tab_counters.get(key, 0)
            self._tab_counters[key] = counter + 1
            attributes.setdefault("index", str(counter))

        node = MarkupNode(
            id=attributes.get("id") or f"{UNKNOWN_ID_PREFIX}{index}",
            tag=tag,
            depth=parent.depth + 1 if parent is not None else 0,
            order=parse_order(attributes),
            attributes=attributes,
            parent=parent_index,
            index=index,
        )
        self.nodes.append(node)
        if parent is not None:
            parent.children.append(index)
        self._stack.append(index)

    def _end(self, element: etree._Element) -> None:
        index = self._stack.pop()
        node = self.nodes[index]
        node.text = (element.text or "").strip()
        if node.tag == STYLES_TAG:
            self.stylesheet.merge(StyleSheet.parse(node.text))

    def _nearest_open(self, tag: str) -> Optional[MarkupNode]:
        for index in reversed(self._stack):
            if self.nodes[index].tag == tag:
                return self.nodes[index]
        return None


# ---------------------------------------------------------------------------
# MarkupTree
# ---------------------------------------------------------------------------


class MarkupTree:
    """Parsed markup plus the stylesheet and focus order derived from it.

    Construction never raises on bad markup: ``failed`` and ``error`` are
    set instead and the tree stays empty, so callers can report the problem
    before touching the terminal.
    """

    def __init__(self, source: MarkupSource, path: Optional[str] = None) -> None:
        self.path: str = path if path is not None else _describe(source)
        self.failed: bool = False
        self.error: Optional[str] = None
        self.nodes: list[MarkupNode] = []
        self.stylesheet: StyleSheet = StyleSheet()
        self.order_index: list[int] = []

        builder = _TreeBuilder()
        try:
            builder.build(source)
        except ParseError as exc:
            logger.warning("Failed to parse markup %s: %s", self.path, exc.message)
            self.failed = True
            self.error = exc.message
            return

        self.nodes = builder.nodes
        self.stylesheet = builder.stylesheet
        focusable = [node for node in self.nodes if node.is_focusable]
        focusable.sort(key=lambda node: node.order)
        self.order_index = [node.index for node in focusable]

    @classmethod
    def from_file(cls, path: Union[str, "os.PathLike[str]"]) -> MarkupTree:
        return cls(os.fspath(path))

    @classmethod
    def from_string(cls, markup: str, path: str = "<string>") -> MarkupTree:
        return cls(io.BytesIO(markup.encode("utf-8")), path=path)

    # -- lookups ------------------------------------------------------------

    @property
    def root(self) -> Optional[MarkupNode]:
        return self.nodes[0] if self.nodes else None

    def find(self, node_id: str) -> Optional[MarkupNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def find_all(self, tag: str) -> list[MarkupNode]:
        return [node for node in self.nodes if node.tag == tag]

    def parent(self, node: MarkupNode) -> Optional[MarkupNode]:
        if node.parent is None:
            return None
        return self.nodes[node.parent]

    def children(self, node: MarkupNode) -> list[MarkupNode]:
        return [self.nodes[i] for i in node.children]

    def ancestors(self, node: MarkupNode) -> list[MarkupNode]:
        """Ancestors of *node*, root first, excluding the node itself."""
        chain: list[MarkupNode] = []
        parent = self.parent(node)
        while parent is not None:
            chain.append(parent)
            parent = self.parent(parent)
        chain.reverse()
        return chain

    def nearest_ancestor(self, node: MarkupNode, tag: str) -> Optional[MarkupNode]:
        parent = self.parent(node)
        while parent is not None:
            if parent.tag == tag:
                return parent
            parent = self.parent(parent)
        return None

    def descendants(self, node: MarkupNode) -> Iterator[MarkupNode]:
        """Depth-first, document-order walk below *node*."""
        for child in self.children(node):
            yield child
            yield from self.descendants(child)

    def focusables(self) -> list[MarkupNode]:
        """Every focusable node, sorted by ``order`` then parse order."""
        return [self.nodes[i] for i in self.order_index]

    def __iter__(self) -> Iterator[MarkupNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def dump(self, node: Optional[MarkupNode] = None) -> str:
        """Indented tag outline, mostly useful when debugging layouts."""
        node = node if node is not None else self.root
        if node is None:
            return ""
        lines = [f"{'  ' * node.depth}{node}"]
        for child in self.children(node):
            lines.append(self.dump(child))
        return "\n".join(lines)


def _describe(source: MarkupSource) -> str:
    if isinstance(source, (str, os.PathLike)):
        return os.fspath(source)
    return getattr(source, "name", "<stream>")
