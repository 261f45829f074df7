"""Entry point for the tui-markup preview CLI."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from tui_markup.actions import EventResponse, State
from tui_markup.app import MarkupApp
from tui_markup.errors import MarkupError
from tui_markup.keys import Key, KeyEvent
from tui_markup.markup import DIALOG_TAG

logger = logging.getLogger(__name__)


def parse_state(pairs: list[str]) -> State:
    """Turn ``key=value`` arguments into an initial state mapping."""
    state: State = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {pair!r}")
        state[key] = value
    return state


def preview_handler(app: MarkupApp):
    """Key handler for previews: ``q`` quits, Escape closes every dialog."""
    flags = [d.attr("show") for d in app.tree.find_all(DIALOG_TAG) if d.attr("show")]

    def handle(event: KeyEvent, state: State) -> Optional[EventResponse]:
        if event.key == "q":
            return EventResponse.quit()
        if event.key == Key.escape and flags:
            new_state = dict(state)
            for flag in flags:
                new_state[flag] = "false"
            return EventResponse.replace_state(new_state)
        return None

    return handle


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="tui-markup: preview a markup layout in the terminal")
    parser.add_argument("path", help="Markup file to render")
    parser.add_argument(
        "--state",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Seed the application state (repeatable)",
    )
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    parser.add_argument("--log-file", default=None, help="Write logs to this file (default: discard)")
    args = parser.parse_args(argv)

    handlers: list[logging.Handler] = (
        [logging.FileHandler(args.log_file)] if args.log_file else [logging.NullHandler()]
    )
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )

    try:
        state = parse_state(args.state)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))

    app = MarkupApp(args.path, state=state)
    try:
        app.run(handler=preview_handler(app))
    except MarkupError as exc:
        logger.error("Preview of %s failed: %s", args.path, exc)
        sys.exit(f"tui-markup: {exc}")


if __name__ == "__main__":
    main()
