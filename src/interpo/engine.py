"""Interpolation engine.

Supports `<% path | filter %>` tokens:
  - <% name %>                 session lookup
  - <% address.city %>         nested lookup
  - <% rows.2 %>               pinned list index
  - <% name | upcase %>        filter chain, applied left to right
  - <%! rows %>                raw: native value, no cursor, no re-expansion

A template made of exactly one token returns the resolved value unchanged
(a list stays a list); any other template yields a string.

Example:
    >>> interpolate("Hello <% user.name %>", {"user": {"name": "world"}})
    'Hello world'
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from interpo.cursors import CoIteration, CursorTable, IterationPass
from interpo.errors import CyclicResolutionError, PathResolutionError
from interpo.filters import FilterContext, FilterRegistry, default_registry
from interpo.resolver import lookup, resolve
from interpo.tokenizer import Token, has_tokens, tokenize
from interpo.values import UNDEFINED, ValueKind, kind_of, to_text

log = logging.getLogger(__name__)


@dataclass
class _Scope:
    """State for one top-level interpolation call."""

    raw: bool = False
    iteration: IterationPass | None = None
    active: list[str] = field(default_factory=list)


class Engine:
    """Resolves templates against a session.

    Each engine owns the cursor table used by iteration passes, so arrays are
    iterated independently per engine.
    """

    def __init__(
        self,
        registry: FilterRegistry | None = None,
        cursors: CursorTable | None = None,
    ):
        self.registry = registry if registry is not None else default_registry()
        self.cursors = cursors if cursors is not None else CursorTable()

    def interpolate(
        self,
        template: Any,
        session: Mapping[str, Any] | None = None,
        *,
        iteration: IterationPass | None = None,
    ) -> Any:
        """Interpolate a string, or every string leaf of a list/mapping.

        Args:
            template: String, list or mapping. Other values pass through.
            session: Values to resolve paths against.
            iteration: Pass used to read lists element by element.

        Raises:
            InterpoError: Any parse, resolution or filter failure.
        """
        if session is None:
            session = {}
        return self._interpolate(template, session, _Scope(iteration=iteration))

    def interpolate_raw(
        self, template: Any, session: Mapping[str, Any] | None = None
    ) -> Any:
        """Interpolate with every token treated as raw."""
        if session is None:
            session = {}
        return self._interpolate(template, session, _Scope(raw=True))

    def co_iterate(self) -> CoIteration:
        return self.cursors.co_iterate()

    def lookup(self, session: Mapping[str, Any], path: str) -> Any:
        return lookup(session, path)

    def _interpolate(self, template: Any, session: Mapping[str, Any], scope: _Scope) -> Any:
        kind = kind_of(template)
        if kind is ValueKind.STRING:
            return self._render(template, session, scope)
        if kind is ValueKind.ARRAY:
            return [self._interpolate(item, session, scope) for item in template]
        if kind is ValueKind.OBJECT:
            return {
                key: self._interpolate(value, session, scope)
                for key, value in template.items()
            }
        return template

    def _render(self, text: str, session: Mapping[str, Any], scope: _Scope) -> Any:
        if not has_tokens(text):
            return text

        segments = tokenize(text)
        if len(segments) == 1 and isinstance(segments[0], Token):
            return self._evaluate(segments[0], session, scope)

        parts = []
        for segment in segments:
            if isinstance(segment, Token):
                parts.append(to_text(self._evaluate(segment, session, scope)))
            else:
                parts.append(segment)
        return "".join(parts)

    def _evaluate(self, token: Token, session: Mapping[str, Any], scope: _Scope) -> Any:
        raw = token.raw or scope.raw

        if token.is_literal:
            value: Any = token.literal
        else:
            value = resolve(token.path, session, self._iteration_for(token, raw, scope))
            if not raw and isinstance(value, str) and has_tokens(value):
                value = self._expand(token.path, value, session, scope)

        for call in token.filters:
            ctx = FilterContext(
                path=token.path,
                name=call.name,
                session=session,
                cursors=self.cursors,
                iteration=None if raw else scope.iteration,
            )
            value = self.registry.apply(call.name, value, call.args, ctx)

        if value is UNDEFINED:
            raise PathResolutionError(token.path)
        return value

    def _iteration_for(self, token: Token, raw: bool, scope: _Scope) -> IterationPass | None:
        if raw or scope.iteration is None:
            return None
        # array-consuming filters such as join need the whole list
        if token.filters and self.registry.consumes_array(token.filters[0].name):
            return None
        return scope.iteration

    def _expand(self, path: str, value: str, session: Mapping[str, Any], scope: _Scope) -> Any:
        if path in scope.active:
            raise CyclicResolutionError(path, scope.active)
        log.debug(f"Expanding template value of '{path}'")
        scope.active.append(path)
        try:
            return self._render(value, session, scope)
        finally:
            scope.active.pop()


_default_engine = Engine()


def default_engine() -> Engine:
    return _default_engine


def interpolate(
    template: Any,
    session: Mapping[str, Any] | None = None,
    *,
    iteration: IterationPass | None = None,
) -> Any:
    """Interpolate `template` with the shared default engine."""
    return _default_engine.interpolate(template, session, iteration=iteration)


def interpolate_raw(template: Any, session: Mapping[str, Any] | None = None) -> Any:
    """Raw interpolation with the shared default engine."""
    return _default_engine.interpolate_raw(template, session)
