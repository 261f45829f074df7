"""Keyboard focus: the Tab-order list, the current index, and modal scopes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from tui_markup.markup import MarkupNode

logger = logging.getLogger(__name__)


@dataclass
class FocusScope:
    """A saved focus list, restored when its owner's scope is left."""

    owner_id: str
    saved: list[MarkupNode]


class FocusController:
    """Owns the focusable list, the ``current`` index and the scope stack.

    ``current == -1`` means nothing is focused.  While a scope is on the
    stack the focusable list is narrowed to that scope's nodes.
    """

    def __init__(self, focusables: Optional[list[MarkupNode]] = None) -> None:
        self.focusables: list[MarkupNode] = list(focusables or [])
        self.current: int = -1
        self._stack: list[FocusScope] = []

    # -- navigation ---------------------------------------------------------

    def advance(self) -> int:
        # Bound is len - 2: the index reaches len - 1, then wraps to -1.
        if self.current > len(self.focusables) - 2:
            self.current = -1
        else:
            self.current += 1
        return self.current

    def retreat(self) -> int:
        if self.current < 0:
            self.current = len(self.focusables) - 1
        else:
            self.current -= 1
        return self.current

    def reset(self) -> None:
        self.current = -1

    @property
    def focused(self) -> Optional[MarkupNode]:
        if 0 <= self.current < len(self.focusables):
            return self.focusables[self.current]
        return None

    def is_focused(self, node: MarkupNode) -> bool:
        focused = self.focused
        return focused is not None and focused.id == node.id

    # -- scopes -------------------------------------------------------------

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def top(self) -> Optional[FocusScope]:
        return self._stack[-1] if self._stack else None

    def in_scope(self, node_id: str) -> bool:
        return any(scope.owner_id == node_id for scope in self._stack)

    def enter_scope(self, node: MarkupNode, focusables: list[MarkupNode]) -> bool:
        """Push a scope for *node* unless it is already the top one."""
        top = self.top
        if top is not None and top.owner_id == node.id:
            return False
        self._stack.append(FocusScope(node.id, self.focusables))
        self.focusables = list(focusables)
        self.current = -1
        logger.debug("Entered focus scope %s (depth %d)", node.id, self.depth)
        return True

    def pop_scope(self) -> Optional[FocusScope]:
        """Pop the top scope, restoring the focus list it saved."""
        if not self._stack:
            return None
        scope = self._stack.pop()
        self.focusables = scope.saved
        self.current = -1
        logger.debug("Left focus scope %s (depth %d)", scope.owner_id, self.depth)
        return scope

    def leave_scope(self, node: MarkupNode) -> bool:
        """Pop *node*'s scope if it is the top one."""
        top = self.top
        if top is None or top.owner_id != node.id:
            return False
        self.pop_scope()
        return True

    def ids(self) -> list[str]:
        return [node.id for node in self.focusables]
