"""Filter registry and built-in filters.

A filter is a function `(value, args, ctx) -> value`. Filters are collected
into a `FilterRegistry` once, at engine construction; the registry is a
read-only mapping and `extend` returns a new registry instead of mutating.

Built-in filters:
- urlencode / urldecode: percent-encoding of text
- optional[,default]: default for an undefined value
- date_format,<pattern>: calendar-pattern date formatting
- random: random integer from a range, or a random array element
- join[,delimiter]: array to text
- current: element under an array's cursor, without advancing it
- upcase / downcase / trim / json / length: small text helpers
"""

from __future__ import annotations

import json
import random as _random
import re
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any
from urllib.parse import quote, unquote

from interpo.cursors import CursorTable, IterationPass
from interpo.dates import ISO_PATTERN, format_date, to_datetime
from interpo.errors import FilterNotFoundError, FilterTypeError
from interpo.resolver import pinned_index
from interpo.values import UNDEFINED, ValueKind, kind_of, to_text

# Characters encodeURIComponent leaves alone
URL_SAFE = "-_.!~*'()"

_RANGE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")
_INTEGER = re.compile(r"^\s*(\d+)\s*$")


@dataclass(frozen=True)
class FilterContext:
    """What a filter may know about the token it is applied to."""

    path: str
    name: str
    session: Mapping[str, Any]
    cursors: CursorTable
    iteration: IterationPass | None = None

    def fail(self, reason: str) -> FilterTypeError:
        return FilterTypeError(self.path, self.name, reason)


FilterFn = Callable[[Any, Sequence[str], FilterContext], Any]


@dataclass(frozen=True)
class FilterSpec:
    """A registered filter.

    `consumes_array` filters receive a whole array even inside an iteration
    pass; `accepts_undefined` filters are called for undefined values, which
    other filters pass through untouched.
    """

    name: str
    fn: FilterFn
    consumes_array: bool = False
    accepts_undefined: bool = False


class FilterRegistry(Mapping[str, FilterSpec]):
    """Immutable name -> FilterSpec mapping."""

    def __init__(self, specs: Sequence[FilterSpec] = ()) -> None:
        self._specs = MappingProxyType({spec.name: spec for spec in specs})

    def __getitem__(self, name: str) -> FilterSpec:
        return self._specs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def extend(self, specs: Sequence[FilterSpec]) -> "FilterRegistry":
        """New registry with `specs` added (replacing same-named filters)."""
        merged = {**self._specs, **{spec.name: spec for spec in specs}}
        return FilterRegistry(list(merged.values()))

    def consumes_array(self, name: str) -> bool:
        spec = self._specs.get(name)
        return spec is not None and spec.consumes_array

    def apply(self, name: str, value: Any, args: Sequence[str], ctx: FilterContext) -> Any:
        spec = self._specs.get(name)
        if spec is None:
            raise FilterNotFoundError(ctx.path, name)
        if value is UNDEFINED and not spec.accepts_undefined:
            return value
        return spec.fn(value, args, ctx)


def _text_input(value: Any, ctx: FilterContext) -> str:
    kind = kind_of(value)
    if kind in (ValueKind.STRING, ValueKind.NUMBER, ValueKind.BOOLEAN):
        return to_text(value)
    raise ctx.fail(f"expected text, got {kind.value}")


def urlencode(value: Any, args: Sequence[str], ctx: FilterContext) -> str:
    try:
        return quote(_text_input(value, ctx), safe=URL_SAFE)
    except UnicodeEncodeError as e:
        raise ctx.fail(f"cannot encode text: {e.reason}") from e


def urldecode(value: Any, args: Sequence[str], ctx: FilterContext) -> str:
    return unquote(_text_input(value, ctx))


def optional(value: Any, args: Sequence[str], ctx: FilterContext) -> Any:
    if value is UNDEFINED:
        return args[0] if args else ""
    return value


def date_format(value: Any, args: Sequence[str], ctx: FilterContext) -> str:
    moment = to_datetime(value)
    if moment is None:
        raise ctx.fail(f"expected a date, got {kind_of(value).value}")
    return format_date(moment, args[0] if args else ISO_PATTERN)


def random(value: Any, args: Sequence[str], ctx: FilterContext) -> Any:
    """Random pick: "A-B" range, N -> [0, N-1], or one array element."""
    kind = kind_of(value)

    if kind is ValueKind.ARRAY:
        if not value:
            raise ctx.fail("cannot pick from an empty array")
        return _random.choice(list(value))

    if kind is ValueKind.STRING:
        match = _RANGE.match(value)
        if match:
            low, high = sorted(int(group) for group in match.groups())
            return _random.randint(low, high)
        match = _INTEGER.match(value)
        if match:
            value = int(match.group(1))
            kind = ValueKind.NUMBER

    if kind is ValueKind.NUMBER and float(value).is_integer():
        upper = int(value)
        if upper <= 0:
            raise ctx.fail(f"upper bound must be positive, got {upper}")
        return _random.randrange(upper)

    return value


def join(value: Any, args: Sequence[str], ctx: FilterContext) -> Any:
    if kind_of(value) is not ValueKind.ARRAY:
        return value
    delimiter = args[0] if args else ","
    return delimiter.join(to_text(item) for item in value)


def current(value: Any, args: Sequence[str], ctx: FilterContext) -> Any:
    if kind_of(value) is not ValueKind.ARRAY:
        return value
    # an array already read in this pass shows the element that pass read
    if ctx.iteration is not None and ctx.iteration.has_read(value):
        return ctx.iteration.read(value)
    index = ctx.cursors.position(value)
    if index is None:
        index = pinned_index(ctx.session, ctx.path) or 0
    if index >= len(value):
        raise ctx.fail(f"index {index} out of range (length {len(value)})")
    return value[index]


def upcase(value: Any, args: Sequence[str], ctx: FilterContext) -> str:
    return _text_input(value, ctx).upper()


def downcase(value: Any, args: Sequence[str], ctx: FilterContext) -> str:
    return _text_input(value, ctx).lower()


def trim(value: Any, args: Sequence[str], ctx: FilterContext) -> str:
    return _text_input(value, ctx).strip()


def to_json(value: Any, args: Sequence[str], ctx: FilterContext) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        raise ctx.fail(str(e)) from e


def length(value: Any, args: Sequence[str], ctx: FilterContext) -> int:
    kind = kind_of(value)
    if kind in (ValueKind.STRING, ValueKind.ARRAY, ValueKind.OBJECT):
        return len(value)
    raise ctx.fail(f"{kind.value} has no length")


BUILTIN_FILTERS: tuple[FilterSpec, ...] = (
    FilterSpec("urlencode", urlencode),
    FilterSpec("urldecode", urldecode),
    FilterSpec("optional", optional, accepts_undefined=True),
    FilterSpec("date_format", date_format),
    FilterSpec("random", random, consumes_array=True),
    FilterSpec("join", join, consumes_array=True),
    FilterSpec("current", current, consumes_array=True),
    FilterSpec("upcase", upcase),
    FilterSpec("downcase", downcase),
    FilterSpec("trim", trim),
    FilterSpec("json", to_json, consumes_array=True),
    FilterSpec("length", length, consumes_array=True),
)


def default_registry() -> FilterRegistry:
    """Registry holding the built-in filters."""
    return FilterRegistry(BUILTIN_FILTERS)
