"""Terminal back-ends for the event loop.

:class:`Terminal` is what :class:`~tui_markup.app.MarkupApp` talks to.
:class:`ProcessTerminal` drives the controlling TTY: raw mode, the
alternate screen, a hidden cursor and SIGWINCH resize notifications, with
stdin read through the running asyncio loop's ``add_reader``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import termios
import tty
from typing import IO, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

ALT_SCREEN_ON = "\x1b[?1049h"
ALT_SCREEN_OFF = "\x1b[?1049l"
CURSOR_HIDE = "\x1b[?25l"
CURSOR_SHOW = "\x1b[?25h"
CURSOR_HOME = "\x1b[H"
SCREEN_CLEAR = "\x1b[2J\x1b[H"

FALLBACK_SIZE = os.terminal_size((80, 24))

InputCallback = Callable[[str], None]
ResizeCallback = Callable[[], None]
# Called once when input ends: with the error, or None at end of file.
CloseCallback = Callable[[Optional[BaseException]], None]


class Terminal(Protocol):
    """Screen and keyboard as seen by the event loop."""

    def start(
        self,
        on_input: InputCallback,
        on_resize: ResizeCallback,
        on_close: Optional[CloseCallback] = None,
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...

    def clear_screen(self) -> None: ...


def draw_lines(terminal: Terminal, lines: list[str]) -> None:
    """Overwrite the screen with *lines*, one write per frame."""
    terminal.write(CURSOR_HOME + "\r\n".join(lines))


class ProcessTerminal:
    """The process's own TTY.

    Parameters
    ----------
    alternate_screen:
        Draw on the alternate screen buffer and restore the original
        screen on :meth:`stop`.
    write_log:
        When set, every frame written is also appended to this file.
    """

    def __init__(self, alternate_screen: bool = True, write_log: str = "") -> None:
        self.alternate_screen = alternate_screen
        self.write_log = write_log
        self._on_input: Optional[InputCallback] = None
        self._on_resize: Optional[ResizeCallback] = None
        self._on_close: Optional[CloseCallback] = None
        self._saved_mode: Optional[list] = None
        self._saved_sigwinch: Optional[signal.Handlers] = None
        self._log: Optional[IO[str]] = None
        self._reading = False

    def _size(self) -> os.terminal_size:
        try:
            return os.get_terminal_size(sys.stdout.fileno())
        except (ValueError, OSError):
            return FALLBACK_SIZE

    @property
    def columns(self) -> int:
        return self._size().columns

    @property
    def rows(self) -> int:
        return self._size().lines

    # -- session ------------------------------------------------------------

    def start(
        self,
        on_input: InputCallback,
        on_resize: ResizeCallback,
        on_close: Optional[CloseCallback] = None,
    ) -> None:
        """Enter raw mode and begin delivering input and resize events."""
        self._on_input = on_input
        self._on_resize = on_resize
        self._on_close = on_close

        stdin = sys.stdin.fileno()
        self._saved_mode = termios.tcgetattr(stdin)
        tty.setraw(stdin)

        if self.write_log:
            try:
                self._log = open(self.write_log, "a", encoding="utf-8")
            except OSError as exc:
                logger.warning("Cannot open write log %s: %s", self.write_log, exc)

        self._emit(ALT_SCREEN_ON if self.alternate_screen else "")
        self.hide_cursor()
        self.clear_screen()

        self._saved_sigwinch = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._handle_sigwinch)

        asyncio.get_running_loop().add_reader(stdin, self._read_stdin)
        self._reading = True
        logger.debug("Terminal started (%dx%d)", self.columns, self.rows)

    def stop(self) -> None:
        """Undo everything :meth:`start` did; safe to call more than once."""
        self._detach_reader()

        if self._saved_sigwinch is not None:
            signal.signal(signal.SIGWINCH, self._saved_sigwinch)
            self._saved_sigwinch = None

        if self._saved_mode is not None:
            self.clear_screen()
            self.show_cursor()
            self._emit(ALT_SCREEN_OFF if self.alternate_screen else "")
            termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, self._saved_mode)
            self._saved_mode = None

        if self._log is not None:
            self._log.close()
            self._log = None

        self._on_input = None
        self._on_resize = None
        self._on_close = None

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        self._emit(data)
        if self._log is not None:
            self._log.write(data)
            self._log.flush()

    def hide_cursor(self) -> None:
        self._emit(CURSOR_HIDE)

    def show_cursor(self) -> None:
        self._emit(CURSOR_SHOW)

    def clear_screen(self) -> None:
        self._emit(SCREEN_CLEAR)

    def _emit(self, data: str) -> None:
        if not data:
            return
        try:
            sys.stdout.write(data)
            sys.stdout.flush()
        except OSError as exc:
            logger.debug("stdout write failed: %s", exc)

    # -- callbacks ----------------------------------------------------------

    def _detach_reader(self) -> None:
        if not self._reading:
            return
        try:
            asyncio.get_running_loop().remove_reader(sys.stdin.fileno())
        except RuntimeError:
            logger.debug("Event loop already closed; stdin reader dropped with it")
        self._reading = False

    def _read_stdin(self) -> None:
        try:
            chunk = os.read(sys.stdin.fileno(), 4096)
        except OSError as exc:
            logger.warning("stdin read failed: %s", exc)
            self._close_input(exc)
            return
        if not chunk:
            logger.info("stdin reached end of file")
            self._close_input(None)
            return
        if self._on_input is not None:
            self._on_input(chunk.decode("utf-8", errors="replace"))

    def _close_input(self, error: Optional[BaseException]) -> None:
        self._detach_reader()
        if self._on_close is not None:
            self._on_close(error)

    def _handle_sigwinch(self, signum: int, frame: object) -> None:
        if self._on_resize is not None:
            self._on_resize()
