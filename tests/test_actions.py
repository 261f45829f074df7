"""Tests for tui_markup.actions -- the registry and built-in tab action."""

from __future__ import annotations

from tui_markup.actions import ActionRegistry, EventResponse, ResponseKind
from tui_markup.markup import TAB_SELECT_ACTION, MarkupTree


class TestActionRegistry:
    def test_builtin_tab_action_registered(self) -> None:
        registry = ActionRegistry()
        assert registry.has_action(TAB_SELECT_ACTION)
        assert len(registry) == 1

    def test_first_registration_wins(self) -> None:
        registry = ActionRegistry()
        registry.add_action("save", lambda state, node: EventResponse.quit())
        registry.add_action("save", lambda state, node: EventResponse.noop())
        response = registry.dispatch("save", {})
        assert response.kind is ResponseKind.QUIT

    def test_add_action_is_chainable(self) -> None:
        registry = ActionRegistry()
        result = registry.add_action("a", lambda s, n: EventResponse.noop()).add_action(
            "b", lambda s, n: EventResponse.noop()
        )
        assert result is registry
        assert "a" in registry and "b" in registry

    def test_unknown_action_returns_none(self) -> None:
        assert ActionRegistry().dispatch("missing", {"k": "v"}) is None

    def test_callback_receives_copy_of_state(self) -> None:
        seen = {}

        def mutate(state, node):
            state["k"] = "changed"
            seen.update(state)
            return EventResponse.replace_state(state)

        registry = ActionRegistry().add_action("mutate", mutate)
        original = {"k": "v"}
        response = registry.dispatch("mutate", original)
        assert original == {"k": "v"}
        assert seen == {"k": "changed"}
        assert response.kind is ResponseKind.STATE
        assert response.state == {"k": "changed"}


class TestSelectTab:
    def test_selects_tab_and_resets_focus(self) -> None:
        tree = MarkupTree.from_string(
            '<tabs id="main"><tab-item id="t1">A</tab-item><tab-item id="t2">B</tab-item></tabs>'
        )
        response = ActionRegistry().dispatch(TAB_SELECT_ACTION, {"x": "1"}, tree.find("t2"))
        assert response.kind is ResponseKind.RESET_FOCUS
        assert response.state == {"x": "1", "main:index": "t2"}

    def test_without_node_is_noop(self) -> None:
        response = ActionRegistry().dispatch(TAB_SELECT_ACTION, {})
        assert response.kind is ResponseKind.NOOP
