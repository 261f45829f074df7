"""The application object and its event loop.

Two asyncio tasks cooperate: an input task that waits for terminal input
for at most one tick and posts :class:`KeyInput` / :class:`Tick` messages
on a queue, or :class:`InputClosed` once the terminal reports end of
input, and the main loop, which reacts to each message and repaints
only when the state fingerprint changed.  Nothing but messages crosses
between the two.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Union

from tui_markup.actions import ActionCallback, ActionRegistry, EventResponse, ResponseKind, State
from tui_markup.config import Config
from tui_markup.errors import EventLoopError, MarkupError, ParseError
from tui_markup.focus import FocusController
from tui_markup.keys import Key, KeyEvent, split_sequences
from tui_markup.layout import Drawable
from tui_markup.markup import MarkupTree
from tui_markup.render import RenderPipeline
from tui_markup.terminal import ProcessTerminal, Terminal, draw_lines
from tui_markup.widgets import Frame, Painter

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyInput:
    event: KeyEvent


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class Resize:
    pass


@dataclass(frozen=True)
class InputClosed:
    error: Optional[BaseException] = None


Message = Union[KeyInput, Tick, Resize, InputClosed]

KeyHandler = Callable[[KeyEvent, State], Optional[EventResponse]]


def fingerprint(focus: FocusController, state: Mapping[str, str]) -> str:
    """Coarse signature of everything a frame depends on besides the tree.

    State pairs are sorted so equal states always produce equal strings.
    """
    pairs = ";".join(f"{key}={value}" for key, value in sorted(state.items()))
    return f"{focus.current}|{focus.depth}|{','.join(focus.ids())}|{pairs}"


# ---------------------------------------------------------------------------
# MarkupApp
# ---------------------------------------------------------------------------


class MarkupApp:
    """A markup file bound to state, actions and a terminal.

    Parameters
    ----------
    source:
        Path to the markup file, or an already built :class:`MarkupTree`.
    widgets:
        Optional tag → painter overrides, consulted before the built-ins.
    state:
        Initial application state.
    config:
        Loop configuration; defaults to :meth:`Config.from_env`.
    """

    def __init__(
        self,
        source: Union[str, "os.PathLike[str]", MarkupTree],
        widgets: Optional[Mapping[str, Painter]] = None,
        state: Optional[Mapping[str, str]] = None,
        config: Optional[Config] = None,
    ) -> None:
        if isinstance(source, MarkupTree):
            self.tree = source
        else:
            self.tree = MarkupTree.from_file(source)
        self.config = config if config is not None else Config.from_env()
        self.state: State = dict(state or {})
        self.actions = ActionRegistry()
        self.focus = FocusController(self.tree.focusables())
        self.pipeline = RenderPipeline(
            self.tree, self.focus, widgets, tab_width=self.config.tab_width
        )
        self._last_fingerprint: Optional[str] = None

    # -- setup --------------------------------------------------------------

    @property
    def failed(self) -> bool:
        return self.tree.failed

    @property
    def error(self) -> Optional[str]:
        return self.tree.error

    def add_action(self, name: str, callback: ActionCallback) -> MarkupApp:
        self.actions.add_action(name, callback)
        return self

    def check(self) -> None:
        """Raise if the markup cannot be rendered at all."""
        if self.tree.failed:
            raise ParseError(self.tree.error or "Markup could not be parsed")
        if self.tree.root is None:
            raise MarkupError(f"Markup {self.tree.path} has no root element")

    # -- rendering ------------------------------------------------------------

    def fingerprint(self) -> str:
        return fingerprint(self.focus, self.state)

    def render_frame(self, width: int, height: int) -> tuple[Frame, list[Drawable]]:
        """Render into a fresh off-screen frame."""
        frame = Frame(width, height)
        painted = self.pipeline.render(frame, self.state)
        return frame, painted

    def render(self, terminal: Terminal) -> bool:
        """Repaint *terminal* if the fingerprint changed since the last frame."""
        if self.fingerprint() == self._last_fingerprint:
            return False
        frame, _ = self.render_frame(terminal.columns, terminal.rows)
        draw_lines(terminal, frame.buffer.ansi_lines())
        # Taken after the pass: painting may enter or leave focus scopes.
        self._last_fingerprint = self.fingerprint()
        logger.debug("Rendered frame %s", self._last_fingerprint)
        return True

    def invalidate(self) -> None:
        self._last_fingerprint = None

    # -- input ----------------------------------------------------------------

    def apply(self, response: EventResponse) -> bool:
        """Apply *response*; returns ``False`` when the loop should stop."""
        if response.kind is ResponseKind.QUIT:
            return False
        if response.kind is ResponseKind.STATE:
            self.state = dict(response.state or {})
        elif response.kind is ResponseKind.RESET_FOCUS:
            self.state = dict(response.state or {})
            self.focus.reset()
        return True

    def handle_key(self, event: KeyEvent, handler: Optional[KeyHandler] = None) -> bool:
        """Route one key: focus keys, then the focused action, then *handler*."""
        if event.key == Key.tab:
            self.focus.advance()
        elif event.key == Key.shift_tab:
            self.focus.retreat()
        elif event.key == Key.enter:
            node = self.focus.focused
            action = node.attr("action") if node is not None else ""
            if action:
                response = self.actions.dispatch(action, self.state, node)
                if response is not None and not self.apply(response):
                    return False

        if handler is not None:
            response = handler(event, dict(self.state))
            if response is not None and not self.apply(response):
                return False
        return True

    # -- loop -----------------------------------------------------------------

    async def _poll_input(
        self, raw: asyncio.Queue[Union[str, InputClosed]], channel: asyncio.Queue[Message]
    ) -> None:
        loop = asyncio.get_running_loop()
        tick = self.config.tick_seconds
        last_tick = loop.time()
        try:
            while True:
                timeout = max(0.0, tick - (loop.time() - last_tick))
                try:
                    data: Union[str, InputClosed, None] = await asyncio.wait_for(
                        raw.get(), timeout
                    )
                except asyncio.TimeoutError:
                    data = None
                if isinstance(data, InputClosed):
                    channel.put_nowait(data)
                    return
                if data:
                    for sequence in split_sequences(data):
                        channel.put_nowait(KeyInput(KeyEvent.from_data(sequence)))
                if loop.time() - last_tick >= tick:
                    channel.put_nowait(Tick())
                    last_tick = loop.time()
        except Exception as exc:
            logger.error("Input task stopped: %s", exc)
            channel.put_nowait(InputClosed(exc))

    async def run_async(
        self, terminal: Terminal, handler: Optional[KeyHandler] = None
    ) -> None:
        """Run until a ``QUIT`` response; the terminal is always restored."""
        self.check()

        raw: asyncio.Queue[Union[str, InputClosed]] = asyncio.Queue()
        channel: asyncio.Queue[Message] = asyncio.Queue()
        terminal.start(
            raw.put_nowait,
            lambda: channel.put_nowait(Resize()),
            lambda error: raw.put_nowait(InputClosed(error)),
        )
        poller = asyncio.create_task(self._poll_input(raw, channel))
        try:
            self.invalidate()
            self.render(terminal)
            while True:
                message = await channel.get()
                if isinstance(message, InputClosed):
                    raise EventLoopError("Input channel closed") from message.error
                if isinstance(message, Resize):
                    self.invalidate()
                elif isinstance(message, KeyInput):
                    if not self.handle_key(message.event, handler):
                        break
                self.render(terminal)
        finally:
            poller.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await poller
            terminal.stop()

    def run(
        self,
        terminal: Optional[Terminal] = None,
        handler: Optional[KeyHandler] = None,
    ) -> None:
        """Blocking entry point; parse errors are raised before raw mode."""
        self.check()
        if terminal is None:
            terminal = ProcessTerminal(
                alternate_screen=self.config.alternate_screen,
                write_log=self.config.write_log,
            )
        asyncio.run(self.run_async(terminal, handler))
