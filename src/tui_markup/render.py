"""One full frame: sync focus scopes, lay out, resolve styles, paint."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from tui_markup.focus import FocusController
from tui_markup.layout import (
    DEFAULT_TAB_WIDTH,
    Drawable,
    LayoutEngine,
    dialog_buttons,
    dialog_visible,
    is_active,
    selected_tabs,
)
from tui_markup.markup import DIALOG_TAG, MarkupNode, MarkupTree
from tui_markup.widgets import Frame, Painter, PainterRegistry

logger = logging.getLogger(__name__)


def scope_focusables(tree: MarkupTree, dialog: MarkupNode) -> list[MarkupNode]:
    """Focusable nodes inside a dialog scope, then its synthesized buttons."""
    inside = [node for node in tree.descendants(dialog) if node.is_focusable]
    inside.sort(key=lambda node: node.order)
    return inside + dialog_buttons(dialog)


def sync_scopes(
    tree: MarkupTree, state: Mapping[str, str], focus: FocusController
) -> None:
    """Leave the scopes of hidden dialogs, then enter every newly visible one.

    Scopes are popped from the top until the top belongs to a visible
    dialog, so several dialogs closed by one state change all unwind.
    """
    while focus.top is not None:
        owner = tree.find(focus.top.owner_id)
        if owner is not None and dialog_visible(owner, state):
            break
        focus.pop_scope()
    for dialog in tree.find_all(DIALOG_TAG):
        if dialog_visible(dialog, state) and not focus.in_scope(dialog.id):
            focus.enter_scope(dialog, scope_focusables(tree, dialog))


class RenderPipeline:
    """Composes layout, the stylesheet and focus markers into painter calls."""

    def __init__(
        self,
        tree: MarkupTree,
        focus: FocusController,
        painters: Optional[Mapping[str, Painter]] = None,
        tab_width: int = DEFAULT_TAB_WIDTH,
    ) -> None:
        self.tree = tree
        self.focus = focus
        self.painters = PainterRegistry(painters)
        self.engine = LayoutEngine(tree, tab_width=tab_width)

    def render(self, frame: Frame, state: Mapping[str, str]) -> list[Drawable]:
        """Paint one frame and return the drawables that were painted."""
        sync_scopes(self.tree, state, self.focus)
        drawables = self.engine.layout(frame.area, state)
        selected = selected_tabs(self.tree, state)

        drawn: set[str] = set()
        painted: list[Drawable] = []
        for drawable in drawables:
            if not drawable.is_eligible(drawn):
                continue
            drawn.add(drawable.node.id)
            node = drawable.node
            style = self.tree.stylesheet.resolve(
                self.tree,
                node,
                focused=self.focus.is_focused(node),
                active=is_active(node, selected),
            )
            self.painters.get(node.tag)(frame, drawable.rect, node, style)
            painted.append(drawable)

        logger.debug("Painted %d of %d drawables", len(painted), len(drawables))
        return painted
