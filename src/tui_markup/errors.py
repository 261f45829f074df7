"""Exception types raised by tui-markup."""

from __future__ import annotations


class MarkupError(Exception):
    """Base class for every error raised by this package."""


class ParseError(MarkupError):
    """The markup source could not be read or is malformed.

    ``message`` carries the tokenizer's own description of the problem.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EventLoopError(MarkupError):
    """The input channel closed while the event loop was still running."""
