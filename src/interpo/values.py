"""Value kinds shared by the resolver, the filters and text assembly.

Every value flowing through the engine is classified once with `kind_of` and
handlers dispatch on the resulting `ValueKind` instead of probing types ad hoc.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any


class _Undefined:
    """Sentinel for a path that resolved to nothing."""

    _instance: "_Undefined | None" = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED: Any = _Undefined()


@dataclass(frozen=True)
class PatternDescriptor:
    """A regular expression kept as text until it is compiled.

    `source` may contain `<% ... %>` tokens which are resolved against the
    session at compile time.
    """

    source: str
    flags: str = ""

    def to_literal(self) -> str:
        return f"/{self.source}/{self.flags}"

    def __str__(self) -> str:
        return self.to_literal()


class ValueKind(str, Enum):
    UNDEFINED = "undefined"
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"
    DATE = "date"
    PATTERN = "pattern"
    OTHER = "other"


def kind_of(value: Any) -> ValueKind:
    """Classify a value into its `ValueKind`."""
    if value is UNDEFINED:
        return ValueKind.UNDEFINED
    if value is None:
        return ValueKind.NULL
    # bool is an int subclass, check it first
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, Mapping):
        return ValueKind.OBJECT
    if isinstance(value, (datetime, date)):
        return ValueKind.DATE
    if isinstance(value, (re.Pattern, PatternDescriptor)):
        return ValueKind.PATTERN
    return ValueKind.OTHER


def to_text(value: Any) -> str:
    """Coerce a resolved value into the text placed inside a template."""
    kind = kind_of(value)
    if kind is ValueKind.STRING:
        return value
    if kind in (ValueKind.UNDEFINED, ValueKind.NULL):
        return ""
    if kind is ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind is ValueKind.NUMBER:
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if kind is ValueKind.ARRAY:
        return ",".join(to_text(item) for item in value)
    if kind is ValueKind.OBJECT:
        return json.dumps(dict(value), default=str)
    if kind is ValueKind.DATE:
        return value.isoformat()
    if kind is ValueKind.PATTERN:
        # Both re.Pattern and PatternDescriptor expose the raw source text
        return value.pattern if isinstance(value, re.Pattern) else value.source
    return str(value)
