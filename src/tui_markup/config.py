"""Runtime configuration for the event loop and terminal back-end."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from tui_markup.layout import DEFAULT_TAB_WIDTH


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


@dataclass
class Config:
    """Event loop configuration.

    ``tick_ms`` is the longest the input task waits before sending a tick.
    """

    tick_ms: int = 200
    tab_width: int = DEFAULT_TAB_WIDTH
    alternate_screen: bool = True
    write_log: str = field(default_factory=lambda: os.environ.get("TUI_MARKUP_WRITE_LOG", ""))

    @property
    def tick_seconds(self) -> float:
        return self.tick_ms / 1000.0

    @classmethod
    def from_env(cls) -> Config:
        return cls(
            tick_ms=max(1, _env_int("TUI_MARKUP_TICK_MS", 200)),
            tab_width=max(1, _env_int("TUI_MARKUP_TAB_WIDTH", DEFAULT_TAB_WIDTH)),
            alternate_screen=os.environ.get("TUI_MARKUP_ALT_SCREEN", "1") != "0",
        )
