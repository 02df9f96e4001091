"""Regex helper - pattern descriptors to and from literal text, and compilation.

Patterns are written as `/source/flags` literals (`/ab+c/i`) or as plain text.
The source may contain tokens, resolved against the session when compiled:

    descriptor = extract_pattern("/^<% prefix %>-\\d+$/i")
    compiled = compile_pattern(descriptor, {"prefix": "INV"})
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from interpo.engine import Engine, default_engine
from interpo.errors import PatternCompileError
from interpo.values import PatternDescriptor, to_text

__all__ = ["PatternDescriptor", "extract_pattern", "compile_pattern", "to_re_flags"]

_LITERAL = re.compile(r"^/(.*)/([A-Za-z]*)$", re.DOTALL)

_FLAGS: dict[str, re.RegexFlag | int] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    # python patterns are unicode and always return every match
    "u": 0,
    "g": 0,
}

_PY_FLAGS = (
    (re.IGNORECASE, "i"),
    (re.MULTILINE, "m"),
    (re.DOTALL, "s"),
    (re.VERBOSE, "x"),
)


def extract_pattern(value: Any) -> PatternDescriptor:
    """Build a descriptor from a literal, plain text, or a compiled pattern."""
    if isinstance(value, PatternDescriptor):
        return value
    if isinstance(value, re.Pattern):
        flags = "".join(letter for flag, letter in _PY_FLAGS if value.flags & flag)
        return PatternDescriptor(source=value.pattern, flags=flags)

    text = to_text(value)
    match = _LITERAL.match(text)
    if match:
        return PatternDescriptor(source=match.group(1), flags=match.group(2))
    return PatternDescriptor(source=text)


def to_re_flags(flags: str, source: str = "") -> int:
    """Translate literal flag letters into `re` flags."""
    result = 0
    for letter in flags:
        if letter not in _FLAGS:
            raise PatternCompileError(source, flags, f"unsupported flag '{letter}'")
        result |= _FLAGS[letter]
    return result


def compile_pattern(
    descriptor: PatternDescriptor,
    session: Mapping[str, Any] | None = None,
    engine: Engine | None = None,
) -> re.Pattern[str]:
    """Resolve the descriptor's tokens and compile it.

    Raises:
        PatternCompileError: If the flags are unknown or the resolved source
            is not a valid expression.
    """
    if engine is None:
        engine = default_engine()

    source = to_text(engine.interpolate_raw(descriptor.source, session))
    flags = to_re_flags(descriptor.flags, source)
    try:
        return re.compile(source, flags)
    except re.error as e:
        raise PatternCompileError(source, descriptor.flags, str(e)) from e
