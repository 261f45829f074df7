"""Style rules, the stylesheet parser, and cascade resolution.

Rules are written in a small block syntax::

    p { fg: white; }
    button:focus { bg: gray; weight: bold; }
    #title { font-decoration: underlined|italic; }

Only four selector kinds exist: a tag name, ``<tag>:focus``,
``<tag>:active`` and ``#<id>``.  Inline ``styles``, ``focus_styles`` and
``active_styles`` attributes use the same property grammar without the
braces.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional

if TYPE_CHECKING:
    from tui_markup.markup import MarkupNode, MarkupTree

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Colors and modifiers
# ---------------------------------------------------------------------------


class Color(enum.Enum):
    """Named terminal colors.  The value is the SGR foreground code."""

    RESET = 39
    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    MAGENTA = 35
    CYAN = 36
    GRAY = 37
    DARK_GRAY = 90
    LIGHT_RED = 91
    LIGHT_GREEN = 92
    LIGHT_YELLOW = 93
    LIGHT_BLUE = 94
    LIGHT_MAGENTA = 95
    LIGHT_CYAN = 96
    WHITE = 97

    @property
    def fg_code(self) -> int:
        return self.value

    @property
    def bg_code(self) -> int:
        return self.value + 10

    @classmethod
    def from_name(cls, name: str) -> Color:
        """Look up a color by name, ignoring case, ``-`` and ``_``.

        Unknown names fall back to ``Color.RESET`` (the terminal default).
        """
        key = name.strip().lower().replace("-", "").replace("_", "")
        return _COLOR_NAMES.get(key, cls.RESET)


_COLOR_NAMES: dict[str, Color] = {
    color.name.lower().replace("_", ""): color for color in Color
}
_COLOR_NAMES["grey"] = Color.GRAY
_COLOR_NAMES["darkgrey"] = Color.DARK_GRAY


class Modifier(enum.Flag):
    """Text modifiers; each member's value is derived from its SGR code."""

    NONE = 0
    BOLD = 1 << 1
    DIM = 1 << 2
    ITALIC = 1 << 3
    UNDERLINED = 1 << 4
    SLOW_BLINK = 1 << 5
    RAPID_BLINK = 1 << 6
    REVERSED = 1 << 7
    HIDDEN = 1 << 8
    CROSSED_OUT = 1 << 9

    @classmethod
    def from_name(cls, name: str) -> Modifier:
        key = name.strip().lower().replace("-", "_")
        return _MODIFIER_NAMES.get(key, cls.NONE)

    def sgr_codes(self) -> list[int]:
        """SGR parameters for every member set on this flag, ascending."""
        return [code for code in range(1, 10) if self & Modifier(1 << code)]


_MODIFIER_NAMES: dict[str, Modifier] = {
    m.name.lower(): m for m in Modifier if m is not Modifier.NONE
}
_MODIFIER_NAMES.update(
    {
        "underline": Modifier.UNDERLINED,
        "blink": Modifier.SLOW_BLINK,
        "reverse": Modifier.REVERSED,
        "strikethrough": Modifier.CROSSED_OUT,
    }
)


# ---------------------------------------------------------------------------
# StyleRule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StyleRule:
    """A sparse set of visual properties.

    ``None`` for ``fg``/``bg`` means "not set by this rule", which is what
    lets :meth:`patch` layer rules on top of each other.
    """

    fg: Optional[Color] = None
    bg: Optional[Color] = None
    modifiers: Modifier = Modifier.NONE

    def patch(self, other: Optional[StyleRule]) -> StyleRule:
        """Return this rule with every property set on *other* applied."""
        if other is None:
            return self
        return StyleRule(
            fg=other.fg if other.fg is not None else self.fg,
            bg=other.bg if other.bg is not None else self.bg,
            modifiers=self.modifiers | other.modifiers,
        )

    def sgr(self) -> str:
        """Encode the rule as a single SGR escape (always starts from reset)."""
        params = ["0"]
        params.extend(str(code) for code in self.modifiers.sgr_codes())
        if self.fg is not None and self.fg is not Color.RESET:
            params.append(str(self.fg.fg_code))
        if self.bg is not None and self.bg is not Color.RESET:
            params.append(str(self.bg.bg_code))
        return f"\x1b[{';'.join(params)}m"


EMPTY_RULE = StyleRule()

# Applied to focused / active nodes that have no focus or active rule of
# their own, so the markers stay visible with an empty stylesheet.
DEFAULT_FOCUS_RULE = StyleRule(modifiers=Modifier.REVERSED)
DEFAULT_ACTIVE_RULE = StyleRule(modifiers=Modifier.BOLD | Modifier.UNDERLINED)


def parse_rule_body(text: str) -> StyleRule:
    """Parse ``prop: value; prop: value`` declarations into a rule.

    Declarations without a ``:`` and unknown properties are skipped.
    """
    fg: Optional[Color] = None
    bg: Optional[Color] = None
    modifiers = Modifier.NONE

    for declaration in text.split(";"):
        if ":" not in declaration:
            continue
        prop, _, value = declaration.partition(":")
        prop = prop.strip().lower()
        value = value.strip()
        if prop == "fg":
            fg = Color.from_name(value)
        elif prop == "bg":
            bg = Color.from_name(value)
        elif prop == "weight":
            modifiers |= Modifier.from_name(value)
        elif prop == "font-decoration":
            for name in value.split("|"):
                modifiers |= Modifier.from_name(name)
        else:
            logger.debug("Ignoring unknown style property %r", prop)

    return StyleRule(fg=fg, bg=bg, modifiers=modifiers)


# ---------------------------------------------------------------------------
# StyleSheet
# ---------------------------------------------------------------------------

_WHITESPACE_RE = re.compile(r"\s+")
_BLOCK_RE = re.compile(r"([^{}]+)\{([^{}]*)\}")


class StyleSheet:
    """Mapping of rule name to :class:`StyleRule`.

    When the same rule name is declared more than once the first
    declaration is kept, both within one source and across :meth:`merge`.
    """

    def __init__(self) -> None:
        self._rules: dict[str, StyleRule] = {}

    @classmethod
    def parse(cls, text: str) -> StyleSheet:
        sheet = cls()
        compact = _WHITESPACE_RE.sub("", text or "")
        for match in _BLOCK_RE.finditer(compact):
            name, body = match.group(1), match.group(2)
            sheet.add_rule(name, parse_rule_body(body))
        return sheet

    def add_rule(self, name: str, rule: StyleRule) -> StyleSheet:
        if name in self._rules:
            logger.debug("Duplicate style rule %r ignored (first wins)", name)
        else:
            self._rules[name] = rule
        return self

    def merge(self, other: StyleSheet) -> StyleSheet:
        for name, rule in other._rules.items():
            self.add_rule(name, rule)
        return self

    def has_rule(self, name: str) -> bool:
        return name in self._rules

    def get_rule(self, name: str) -> Optional[StyleRule]:
        return self._rules.get(name)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"StyleSheet(rules={list(self._rules)!r})"

    # -- cascade ----------------------------------------------------------

    def resolve(
        self,
        tree: MarkupTree,
        node: MarkupNode,
        focused: bool = False,
        active: bool = False,
    ) -> StyleRule:
        """Compute the effective style of *node*.

        Patches are applied root first: each ancestor's tag rule, id rule
        and inline ``styles``; then the node's tag rule, its ``:focus`` /
        ``:active`` rule, its id rule, its inline ``styles`` and finally the
        inline ``focus_styles`` / ``active_styles``.  Later patches win
        field by field.
        """
        style = EMPTY_RULE
        for ancestor in tree.ancestors(node):
            style = style.patch(self.get_rule(ancestor.tag))
            style = style.patch(self.get_rule(f"#{ancestor.id}"))
            style = style.patch(_inline(ancestor, "styles"))

        style = style.patch(self.get_rule(node.tag))

        if focused:
            focus_rule = self.get_rule(f"{node.tag}:focus")
            if focus_rule is None and "focus_styles" not in node.attributes:
                focus_rule = DEFAULT_FOCUS_RULE
            style = style.patch(focus_rule)
        if active:
            active_rule = self.get_rule(f"{node.tag}:active")
            if active_rule is None and "active_styles" not in node.attributes:
                active_rule = DEFAULT_ACTIVE_RULE
            style = style.patch(active_rule)

        style = style.patch(self.get_rule(f"#{node.id}"))
        style = style.patch(_inline(node, "styles"))
        if focused:
            style = style.patch(_inline(node, "focus_styles"))
        if active:
            style = style.patch(_inline(node, "active_styles"))
        return style


def _inline(node: MarkupNode, attribute: str) -> Optional[StyleRule]:
    text = node.attributes.get(attribute)
    if not text:
        return None
    return parse_rule_body(text)
