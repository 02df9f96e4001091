"""Tokenizer - splits template text into literal pieces and parsed tokens.

Token grammar:

    <% path | filter | filter,arg,arg | filter(arg, arg) %>
    <%! path | ... %>        raw token, resolved without string coercion

Whitespace around the path, filter names and unquoted arguments is ignored.
Single or double quotes keep their content verbatim, including whitespace,
`|`, `,` and `%>`. A quoted path is a literal value instead of a session
lookup: `<% '3-7' | random %>`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from interpo.errors import ParseError

OPEN = "<%"
CLOSE = "%>"
RAW_MARKER = "!"
QUOTES = ("'", '"')

_FILTER_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")


@dataclass(frozen=True)
class FilterCall:
    """A filter reference inside a token."""

    name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class Token:
    """A parsed `<% ... %>` expression."""

    path: str
    raw: bool = False
    filters: tuple[FilterCall, ...] = ()
    literal: str | None = None
    offset: int = 0
    source: str = ""

    @property
    def is_literal(self) -> bool:
        return self.literal is not None


Segment = Union[str, Token]


def has_tokens(text: str) -> bool:
    """Cheap check used to skip tokenizing plain strings."""
    return OPEN in text


def tokenize(text: str) -> list[Segment]:
    """Split `text` into literal strings and `Token`s, in order.

    Joining the literal pieces with each token's `source` gives back `text`.

    Raises:
        ParseError: If a token is unterminated or malformed.
    """
    segments: list[Segment] = []
    pos = 0

    while True:
        start = text.find(OPEN, pos)
        if start == -1:
            break
        if start > pos:
            segments.append(text[pos:start])

        body_start = start + len(OPEN)
        raw = text.startswith(RAW_MARKER, body_start)
        if raw:
            body_start += len(RAW_MARKER)

        end = _find_close(text, body_start, start)
        segments.append(
            parse_token(
                text[body_start:end],
                raw=raw,
                offset=start,
                source=text[start : end + len(CLOSE)],
            )
        )
        pos = end + len(CLOSE)

    if pos < len(text):
        segments.append(text[pos:])
    return segments


def parse_token(body: str, raw: bool = False, offset: int = 0, source: str = "") -> Token:
    """Parse the text between the token markers into a `Token`."""
    parts = _split_unquoted(body, "|", offset)
    head = parts[0].strip()
    if not head:
        raise ParseError("Empty path in token", offset)

    literal = None
    if head[0] in QUOTES:
        if len(head) < 2 or head[-1] != head[0]:
            raise ParseError("Unterminated quoted literal in token", offset)
        literal = head[1:-1]

    filters = tuple(_parse_filter(part, offset) for part in parts[1:])
    return Token(
        path=head,
        raw=raw,
        filters=filters,
        literal=literal,
        offset=offset,
        source=source,
    )


def _find_close(text: str, pos: int, start: int) -> int:
    quote: str | None = None
    i = pos
    while i < len(text):
        ch = text[i]
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in QUOTES:
            quote = ch
        elif text.startswith(CLOSE, i):
            return i
        i += 1

    if quote is not None:
        raise ParseError("Unterminated quote in token", start)
    raise ParseError("Unterminated token", start)


def _split_unquoted(text: str, sep: str, offset: int) -> list[str]:
    """Split on `sep` wherever it is not inside quotes."""
    parts: list[str] = []
    quote: str | None = None
    current: list[str] = []

    for ch in text:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in QUOTES:
            quote = ch
        elif ch == sep:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)

    if quote is not None:
        raise ParseError("Unterminated quote in token", offset)
    parts.append("".join(current))
    return parts


def _parse_filter(spec: str, offset: int) -> FilterCall:
    spec = spec.strip()
    paren = spec.find("(")
    comma = spec.find(",")

    arg_text: str | None
    if paren != -1 and (comma == -1 or paren < comma):
        if not spec.endswith(")"):
            raise ParseError(f"Unbalanced parenthesis in filter '{spec}'", offset)
        name = spec[:paren].strip()
        arg_text = spec[paren + 1 : -1]
    elif comma != -1:
        name = spec[:comma].strip()
        arg_text = spec[comma + 1 :]
    else:
        name = spec
        arg_text = None

    if not name:
        raise ParseError("Empty filter name in token", offset)
    if not _FILTER_NAME.fullmatch(name):
        raise ParseError(f"Invalid filter name '{name}'", offset)

    if arg_text is None or not arg_text.strip():
        return FilterCall(name=name)

    args = tuple(_unquote(arg) for arg in _split_unquoted(arg_text, ",", offset))
    return FilterCall(name=name, args=args)


def _unquote(arg: str) -> str:
    arg = arg.strip()
    if len(arg) >= 2 and arg[0] in QUOTES and arg[-1] == arg[0]:
        return arg[1:-1]
    return arg
