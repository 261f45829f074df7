"""Named actions and the responses they return to the event loop."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from tui_markup.markup import TAB_SELECT_ACTION, MarkupNode

logger = logging.getLogger(__name__)

State = dict[str, str]


class ResponseKind(enum.Enum):
    NOOP = "noop"
    QUIT = "quit"
    STATE = "state"
    RESET_FOCUS = "reset_focus"


@dataclass(frozen=True)
class EventResponse:
    """What an action or key handler asks the event loop to do.

    ``STATE`` replaces the application state; ``RESET_FOCUS`` does the same
    and also clears the focus index.
    """

    kind: ResponseKind
    state: Optional[State] = None

    @classmethod
    def noop(cls) -> EventResponse:
        return NOOP

    @classmethod
    def quit(cls) -> EventResponse:
        return QUIT

    @classmethod
    def replace_state(cls, state: Mapping[str, str]) -> EventResponse:
        return cls(ResponseKind.STATE, dict(state))

    @classmethod
    def reset_focus(cls, state: Mapping[str, str]) -> EventResponse:
        return cls(ResponseKind.RESET_FOCUS, dict(state))


NOOP = EventResponse(ResponseKind.NOOP)
QUIT = EventResponse(ResponseKind.QUIT)

ActionCallback = Callable[[State, Optional[MarkupNode]], EventResponse]


def select_tab(state: State, node: Optional[MarkupNode]) -> EventResponse:
    """Built-in action bound to tab items: remember the selected tab."""
    if node is None:
        return NOOP
    new_state = dict(state)
    new_state[f"{node.attr('tabs-id')}:index"] = node.id
    return EventResponse.reset_focus(new_state)


class ActionRegistry:
    """Name → callback table.  The first registration of a name wins."""

    def __init__(self) -> None:
        self._actions: dict[str, ActionCallback] = {}
        self.add_action(TAB_SELECT_ACTION, select_tab)

    def add_action(self, name: str, callback: ActionCallback) -> ActionRegistry:
        if name in self._actions:
            logger.debug("Action %r already registered; keeping the first", name)
        else:
            self._actions[name] = callback
        return self

    def has_action(self, name: str) -> bool:
        return name in self._actions

    def dispatch(
        self,
        name: str,
        state: Mapping[str, str],
        node: Optional[MarkupNode] = None,
    ) -> Optional[EventResponse]:
        callback = self._actions.get(name)
        if callback is None:
            logger.debug("No action registered for %r", name)
            return None
        logger.debug("Dispatching action %r", name)
        return callback(dict(state), node)

    def __len__(self) -> int:
        return len(self._actions)

    def __contains__(self, name: object) -> bool:
        return name in self._actions
