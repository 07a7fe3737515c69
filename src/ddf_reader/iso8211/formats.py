"""
ISO 8211 Format Control Expansion
=================================

Every non-elementary field definition in the DDR carries a format control
string describing how its subfields are laid out, for example:

    (A(2),I(10),3(B(16)),2(R,A))

This module flattens such strings into one format item per subfield:

    A(2), I(10), B(16), B(16), B(16), R, A, R, A

Grammar
-------
    controls   := '(' item_list ')'
    item_list  := clause (',' clause)*
    clause     := group | count group | token
    group      := '(' item_list ')'
    count      := digit+
    token      := any run of characters up to the next top-level ','
                  or ')' (brackets and quotes inside a token are kept)

A count in front of a bracketed group repeats the group's expansion. A
count in front of a bare token ("2A") is left attached to the token;
FieldDefinition.apply_formats decides how to interpret it.

Reference: ISO/IEC 8211:1994, 6.4.3.3 (format controls)
"""

import logging
import re

from ddf_reader.errors import SchemaError

logger = logging.getLogger(__name__)


# Characters that open a quoted literal inside a format item
QUOTE_CHARS = "'\""

_REPEAT_PREFIX = re.compile(r"(\d*)(.*)", re.DOTALL)


# =============================================================================
# Recursive Descent Expander
# =============================================================================

class _FormatExpander:
    """
    Single-use recursive descent parser over a format control string.

    The parser keeps an explicit index into the text; every method leaves
    the index just past what it consumed.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def parse(self) -> list[str]:
        items = self._item_list(closing=False)
        return items

    def _item_list(self, closing: bool) -> list[str]:
        items: list[str] = []
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch == ")":
                if closing:
                    return items
                raise SchemaError(
                    f"unbalanced ')' at position {self.pos} in format controls",
                    format_controls=self.text,
                )
            if ch == "," or ch.isspace():
                self.pos += 1
                continue
            items.extend(self._clause())

        if closing:
            raise SchemaError(
                "missing ')' in format controls", format_controls=self.text
            )
        return items

    def _clause(self) -> list[str]:
        if self._peek() == "(":
            return self._group()

        if self._peek().isdigit():
            start = self.pos
            while self._peek().isdigit():
                self.pos += 1
            if self._peek() == "(":
                count = int(self.text[start:self.pos])
                return self._group() * count
            # A counted bare token keeps its prefix
            self.pos = start

        return [self._token()]

    def _group(self) -> list[str]:
        self.pos += 1  # '('
        items = self._item_list(closing=True)
        self.pos += 1  # ')'
        return items

    def _token(self) -> str:
        start = self.pos
        depth = 0
        quote = ""

        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if quote:
                if ch == quote:
                    quote = ""
            elif ch in QUOTE_CHARS:
                quote = ch
            elif ch == "(":
                depth += 1
            elif ch == ")":
                if depth == 0:
                    break
                depth -= 1
            elif ch == "," and depth == 0:
                break
            self.pos += 1

        if quote:
            raise SchemaError(
                f"unterminated quote in format item {self.text[start:]!r}",
                format_controls=self.text,
            )
        return self.text[start:self.pos].strip()


# =============================================================================
# Public API
# =============================================================================

def expand_format_items(format_controls: str) -> list[str]:
    """
    Expand a format control string into its flat list of format items.

    Bracketed groups are spliced in, counted groups are repeated, and
    everything else is passed through unchanged.

    Args:
        format_controls: Format control text, with or without its outer
            brackets

    Returns:
        Format items in subfield order

    Raises:
        SchemaError: If brackets are unbalanced or a quote is unterminated

    Example:
        >>> expand_format_items("(A(2),2(I,R))")
        ['A(2)', 'I', 'R', 'I', 'R']
    """
    items = _FormatExpander(format_controls).parse()
    logger.debug("Expanded %r to %d format items", format_controls, len(items))
    return items


def expand_format(format_controls: str) -> str:
    """
    Expand a format control string into comma-joined format items.

    Example:
        >>> expand_format("(3(A,B))")
        'A,B,A,B,A,B'
    """
    return ",".join(expand_format_items(format_controls))


def require_outer_brackets(format_controls: str) -> str:
    """
    Check that format controls are wrapped in exactly one outer bracket pair.

    Returns:
        The text between the outer brackets

    Raises:
        SchemaError: If the text does not start with '(' whose matching ')'
            is the final character
    """
    text = format_controls.strip()
    if len(text) < 2 or text[0] != "(" or text[-1] != ")":
        raise SchemaError(
            f"format controls {format_controls!r} are not bracketed",
            format_controls=format_controls,
        )

    depth = 0
    quote = ""
    for index, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = ""
            continue
        if ch in QUOTE_CHARS:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0 and index != len(text) - 1:
                raise SchemaError(
                    f"format controls {format_controls!r} have more than one "
                    "outer bracket pair",
                    format_controls=format_controls,
                )
            if depth < 0:
                break

    if depth != 0:
        raise SchemaError(
            f"unbalanced brackets in format controls {format_controls!r}",
            format_controls=format_controls,
        )
    return text[1:-1]


def split_repeat_prefix(item: str) -> tuple[int, str]:
    """
    Split a leading decimal repeat count off a format item.

    Returns:
        (count, body); count is 1 when the item has no prefix

    Example:
        >>> split_repeat_prefix("3A(2)")
        (3, 'A(2)')
    """
    match = _REPEAT_PREFIX.match(item)
    digits, body = match.group(1), match.group(2)
    if not digits or not body:
        return 1, item
    return int(digits), body


def strip_repeat_prefix(item: str) -> str:
    """Drop a leading repeat count from a format item."""
    return split_repeat_prefix(item)[1]


def expand_bare_repeats(items: list[str]) -> list[str]:
    """
    Repeat counted bare items ("3A" becomes A, A, A).

    Example:
        >>> expand_bare_repeats(["2A", "R"])
        ['A', 'A', 'R']
    """
    expanded: list[str] = []
    for item in items:
        count, body = split_repeat_prefix(item)
        expanded.extend([body] * count)
    return expanded
