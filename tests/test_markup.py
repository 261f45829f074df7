"""Tests for tui_markup.markup -- building the element tree."""

from __future__ import annotations

from tui_markup.markup import (
    TAB_SELECT_ACTION,
    UNKNOWN_ID_PREFIX,
    MarkupTree,
    parse_order,
)
from tui_markup.styles import Color

NESTED = """
<layout id="root">
  <container id="outer">
    <p id="greeting">Hello</p>
    <block>
      <button id="ok" order="2">OK</button>
      <button id="cancel" order="0">Cancel</button>
    </block>
  </container>
  <p id="footer" index="1">Footer</p>
</layout>
"""

TABS = """
<layout>
  <tabs id="main">
    <tabs-header title="Sections">
      <tab-item id="t1">One</tab-item>
      <tab-item id="t2">Two</tab-item>
    </tabs-header>
    <tabs-body>
      <tab-content id="c1" for="t1"><p>First</p></tab-content>
      <tab-content id="c2" for="t2"><p>Second</p></tab-content>
    </tabs-body>
  </tabs>
</layout>
"""


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


class TestTreeStructure:
    def test_root_has_depth_zero(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        assert not tree.failed
        assert tree.root is not None
        assert tree.root.id == "root"
        assert tree.root.depth == 0
        assert tree.root.parent is None

    def test_child_depth_is_parent_depth_plus_one(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        for node in tree:
            parent = tree.parent(node)
            if parent is not None:
                assert node.depth == parent.depth + 1
                assert node.index in parent.children

    def test_children_in_document_order(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        outer = tree.find("outer")
        assert outer is not None
        assert [c.tag for c in tree.children(outer)] == ["p", "block"]

    def test_text_is_stripped(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        assert tree.find("greeting").text == "Hello"

    def test_missing_id_is_synthesized_from_index(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        block = tree.find_all("block")[0]
        assert block.id == f"{UNKNOWN_ID_PREFIX}{block.index}"

    def test_ancestors_root_first(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        ok = tree.find("ok")
        assert [a.tag for a in tree.ancestors(ok)] == ["layout", "container", "block"]

    def test_nearest_ancestor(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        ok = tree.find("ok")
        assert tree.nearest_ancestor(ok, "container").id == "outer"
        assert tree.nearest_ancestor(ok, "tabs") is None

    def test_descendants_depth_first(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        outer = tree.find("outer")
        ids = [n.id for n in tree.descendants(outer)]
        assert ids[0] == "greeting"
        assert ids[-2:] == ["ok", "cancel"]

    def test_dump_indents_by_depth(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        lines = tree.dump().splitlines()
        assert lines[0].startswith("<layout")
        assert lines[1].startswith("  <container")


# ---------------------------------------------------------------------------
# Focus order
# ---------------------------------------------------------------------------


class TestFocusOrder:
    def test_focusables_sorted_by_order(self) -> None:
        tree = MarkupTree.from_string(NESTED)
        assert [n.id for n in tree.focusables()] == ["cancel", "footer", "ok"]

    def test_index_used_when_order_missing(self) -> None:
        assert parse_order({"index": "3"}) == 3

    def test_order_wins_over_index(self) -> None:
        assert parse_order({"order": "1", "index": "5"}) == 1

    def test_unparsable_order_is_not_focusable(self) -> None:
        assert parse_order({"order": "first"}) == -1
        assert parse_order({}) == -1


# ---------------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------------


class TestTabAttributes:
    def test_tab_items_get_tabs_id_action_and_index(self) -> None:
        tree = MarkupTree.from_string(TABS)
        t1, t2 = tree.find("t1"), tree.find("t2")
        assert t1.attr("tabs-id") == "main"
        assert t1.attr("action") == TAB_SELECT_ACTION
        assert t1.attr("index") == "0"
        assert t2.attr("index") == "1"

    def test_tab_content_gets_tabs_id(self) -> None:
        tree = MarkupTree.from_string(TABS)
        assert tree.find("c1").attr("tabs-id") == "main"
        assert tree.find("c2").attr("tabs-id") == "main"

    def test_explicit_action_is_kept(self) -> None:
        tree = MarkupTree.from_string(
            '<tabs id="x"><tab-item id="a" action="custom">A</tab-item></tabs>'
        )
        assert tree.find("a").attr("action") == "custom"


# ---------------------------------------------------------------------------
# Stylesheet and failures
# ---------------------------------------------------------------------------


class TestStylesElement:
    def test_styles_element_feeds_stylesheet(self) -> None:
        tree = MarkupTree.from_string(
            "<layout><styles>p { fg: white; } #x { bg: red; }</styles>"
            '<p id="x">x</p></layout>'
        )
        assert tree.stylesheet.get_rule("p").fg is Color.WHITE
        assert tree.stylesheet.get_rule("#x").bg is Color.RED


class TestParseFailure:
    def test_malformed_markup_sets_failed(self) -> None:
        tree = MarkupTree.from_string("<layout><p>unclosed</layout>")
        assert tree.failed
        assert tree.error
        assert tree.root is None
        assert len(tree) == 0

    def test_missing_file_sets_failed(self, tmp_path) -> None:
        tree = MarkupTree.from_file(tmp_path / "missing.xml")
        assert tree.failed
        assert tree.error

    def test_from_file(self, tmp_path) -> None:
        path = tmp_path / "layout.xml"
        path.write_text(NESTED)
        tree = MarkupTree.from_file(path)
        assert not tree.failed
        assert tree.path == str(path)
        assert tree.find("footer").text == "Footer"
