"""Path resolution against a session.

Paths are dotted (`address.city`), may index lists (`rows.2.name` or
`rows[2].name`) and may match session keys that contain dots themselves
(`{"address.city": ...}`); at each level the longest matching key wins.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from interpo.cursors import IterationPass
from interpo.errors import PathIndexError
from interpo.values import UNDEFINED, ValueKind, kind_of

PIN_SUFFIX = ".index"

_BRACKET_INDEX = re.compile(r"\[\s*(\d+)\s*\]", re.ASCII)
_INDEX = re.compile(r"\d+", re.ASCII)


def split_path(path: str) -> list[str]:
    """Split a path into segments, normalizing `a[0]` to `a.0`."""
    normalized = _BRACKET_INDEX.sub(r".\1", path.strip())
    return [segment.strip() for segment in normalized.split(".")]


def resolve(
    path: str,
    session: Mapping[str, Any],
    iteration: IterationPass | None = None,
) -> Any:
    """Resolve `path` against `session`.

    Without `iteration` the value is returned as stored. With an iteration
    pass, a list found at the end of the path (or in the middle of it without
    an index) is read through the pass, which moves that list's cursor.

    Returns:
        The resolved value, or UNDEFINED when the path does not exist.

    Raises:
        PathIndexError: If an explicit numeric index is out of range.
    """
    segments = split_path(path)
    current: Any = session
    pos = 0

    while pos < len(segments):
        kind = kind_of(current)
        if kind is ValueKind.OBJECT:
            key, pos = _match_key(current, segments, pos)
            if key is None:
                return UNDEFINED
            current = current[key]
        elif kind is ValueKind.ARRAY:
            segment = segments[pos]
            if _is_index(segment):
                current = _pinned(current, int(segment), path)
                pos += 1
            elif iteration is not None:
                current = iteration.read(current)
            else:
                return UNDEFINED
        else:
            return UNDEFINED

    if (
        iteration is not None
        and kind_of(current) is ValueKind.ARRAY
        and not _is_index(segments[-1])
    ):
        pin = pinned_index(session, path)
        if pin is not None:
            return _pinned(current, pin, path)
        return iteration.read(current)

    return current


def lookup(session: Mapping[str, Any], path: str) -> Any:
    """Cursor-free resolution, for callers that only inspect the session."""
    return resolve(path, session)


def pinned_index(session: Mapping[str, Any], path: str) -> int | None:
    """Index pinned for `path` through a `"<path>.index"` session key."""
    if not isinstance(session, Mapping):
        return None
    pin = session.get(path + PIN_SUFFIX)
    if isinstance(pin, bool):
        return None
    if isinstance(pin, int):
        return pin
    if isinstance(pin, str) and _is_index(pin.strip()):
        return int(pin)
    return None


def _match_key(
    mapping: Mapping[str, Any], segments: list[str], pos: int
) -> tuple[str | None, int]:
    for end in range(len(segments), pos, -1):
        key = ".".join(segments[pos:end])
        if key in mapping:
            return key, end
    return None, pos


def _pinned(array: Sequence[Any], index: int, path: str) -> Any:
    if index >= len(array):
        raise PathIndexError(path, index, len(array))
    return array[index]


def _is_index(segment: str) -> bool:
    return _INDEX.fullmatch(segment) is not None
