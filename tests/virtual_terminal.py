"""In-memory ``Terminal`` for driving ``MarkupApp`` in tests.

Every write is recorded.  Writes that start at the home position are full
frames (see ``tui_markup.terminal.draw_lines``) and are also kept in
``frames`` so tests can read back what was painted.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from tui_markup.terminal import CURSOR_HOME

_SGR_RE = re.compile(r"\x1b\[[0-9;]*m")


class VirtualTerminal:
    """Fake screen of ``columns`` x ``rows`` cells.

    Input, resizes and end of input are injected with :meth:`simulate_input`,
    :meth:`simulate_resize` and :meth:`simulate_eof` once the app has called
    :meth:`start`.
    """

    def __init__(self, rows: int = 24, columns: int = 80) -> None:
        self._rows = rows
        self._columns = columns
        self.writes: list[str] = []
        self.frames: list[str] = []
        self.started = False
        self.stopped = False
        self.cursor_visible = True
        self._on_input: Callable[[str], None] | None = None
        self._on_resize: Callable[[], None] | None = None
        self._on_close: Callable[[Optional[BaseException]], None] | None = None

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def columns(self) -> int:
        return self._columns

    # -- Terminal protocol --------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
        on_close: Callable[[Optional[BaseException]], None] | None = None,
    ) -> None:
        self._on_input = on_input
        self._on_resize = on_resize
        self._on_close = on_close
        self.started = True

    def stop(self) -> None:
        self.started = False
        self.stopped = True
        self._on_input = None
        self._on_resize = None
        self._on_close = None

    def write(self, data: str) -> None:
        self.writes.append(data)
        if data.startswith(CURSOR_HOME):
            self.frames.append(data[len(CURSOR_HOME):])

    def hide_cursor(self) -> None:
        self.cursor_visible = False

    def show_cursor(self) -> None:
        self.cursor_visible = True

    def clear_screen(self) -> None:
        self.write("\x1b[2J")

    # -- Test helpers -------------------------------------------------------

    @property
    def output(self) -> str:
        return "".join(self.writes)

    @property
    def write_count(self) -> int:
        return len(self.writes)

    def screen(self) -> list[str]:
        """Plain-text rows of the most recent frame."""
        if not self.frames:
            return []
        return _SGR_RE.sub("", self.frames[-1]).split("\r\n")

    def simulate_input(self, data: str) -> None:
        if self._on_input is None:
            raise RuntimeError("Terminal not started")
        self._on_input(data)

    def simulate_resize(self, rows: int | None = None, columns: int | None = None) -> None:
        if rows is not None:
            self._rows = rows
        if columns is not None:
            self._columns = columns
        if self._on_resize is not None:
            self._on_resize()

    def simulate_eof(self, error: Optional[BaseException] = None) -> None:
        """Report end of input, as a closed or failing stdin would."""
        self._on_input = None
        if self._on_close is not None:
            self._on_close(error)
