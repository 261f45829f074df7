"""tui-markup: declarative markup-driven terminal user interfaces."""

from tui_markup.actions import (
    ActionCallback,
    ActionRegistry,
    EventResponse,
    ResponseKind,
    State,
)
from tui_markup.app import KeyHandler, MarkupApp, fingerprint
from tui_markup.config import Config
from tui_markup.errors import EventLoopError, MarkupError, ParseError
from tui_markup.focus import FocusController
from tui_markup.keys import Key, KeyEvent, parse_key
from tui_markup.layout import (
    Direction,
    Drawable,
    LayoutEngine,
    Length,
    Max,
    Min,
    Percentage,
    Ratio,
    Rect,
    parse_constraint,
    split,
)
from tui_markup.markup import MarkupNode, MarkupTree
from tui_markup.render import RenderPipeline
from tui_markup.styles import Color, Modifier, StyleRule, StyleSheet
from tui_markup.terminal import ProcessTerminal, Terminal
from tui_markup.widgets import Buffer, Frame, Painter, PainterRegistry

__all__ = [
    "ActionCallback",
    "ActionRegistry",
    "Buffer",
    "Color",
    "Config",
    "Direction",
    "Drawable",
    "EventLoopError",
    "EventResponse",
    "FocusController",
    "Frame",
    "Key",
    "KeyEvent",
    "KeyHandler",
    "LayoutEngine",
    "Length",
    "MarkupApp",
    "MarkupError",
    "MarkupNode",
    "MarkupTree",
    "Max",
    "Min",
    "Modifier",
    "Painter",
    "PainterRegistry",
    "ParseError",
    "Percentage",
    "ProcessTerminal",
    "Ratio",
    "Rect",
    "RenderPipeline",
    "ResponseKind",
    "State",
    "StyleRule",
    "StyleSheet",
    "Terminal",
    "fingerprint",
    "parse_constraint",
    "parse_key",
    "split",
]
