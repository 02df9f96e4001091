"""csv - delimited-text rows from session arrays.

Walks every array-valued field in lock-step, one row per pass, until the
shortest array is exhausted. Fields holding plain values repeat on every row.
An optional header row holds the field names; `header: only` writes nothing
else.

    - csv: [name, address.city, amount]

    - csv:
        fields: field_names          # session array holding the names
        header: true
        mapping:
          name: <% name | upcase %>  # evaluated again for every row
"""

from __future__ import annotations

import logging
from typing import Any

from interpo.actions.base import Action, ActionContext
from interpo.config import CsvConfig
from interpo.cursors import IterationPass
from interpo.errors import ConfigurationError, PathResolutionError
from interpo.resolver import lookup
from interpo.values import ValueKind, kind_of, to_text

log = logging.getLogger(__name__)


def csv_safe(value: Any, delimiter: str = ",") -> str:
    """Escape quotes and quote values that contain the delimiter."""
    text = to_text(value).replace('"', '\\"')
    if delimiter in text:
        text = f'"{text}"'
    return text


def header_mode(value: Any) -> str:
    """'off', 'on' or 'only' for an interpolated header setting."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "only":
            return "only"
        return "on" if text in ("true", "yes", "on", "1") else "off"
    return "on" if value else "off"


class CsvAction(Action):
    """csv - emit one delimited line per iteration pass."""

    # mapping templates must stay unresolved until each row is built
    manual_interpolation = True

    @property
    def name(self) -> str:
        return "csv"

    def normalize(self, spec: Any) -> CsvConfig:
        if isinstance(spec, CsvConfig):
            return spec
        if isinstance(spec, (list, str)):
            spec = {"fields": spec}
        if not isinstance(spec, dict):
            raise ConfigurationError("csv expects a field list, an array name or a mapping")
        return CsvConfig(**spec)

    def process(self, config: CsvConfig, context: ActionContext) -> None:
        engine = context.engine
        session = context.session

        names = self.field_names(engine.interpolate(config.fields, session), session)
        mode = header_mode(engine.interpolate(config.header, session))
        delimiter = config.delimiter

        if mode != "off":
            line = delimiter.join(csv_safe(name, delimiter) for name in names)
            context.emit_line(line, config.channel)
            if mode == "only":
                return

        with engine.co_iterate() as loop:
            for iteration in loop:
                row = self._row(names, config, context, iteration)
                if row is None:
                    break
                line = delimiter.join(csv_safe(value, delimiter) for value in row)
                context.emit_line(line, config.channel)
            log.debug(f"csv wrote {loop.passes} row(s)")

    def field_names(self, fields: Any, session: dict[str, Any]) -> list[str]:
        """Resolve the `fields` setting to the list of field names."""
        kind = kind_of(fields)
        if kind is ValueKind.STRING:
            names = lookup(session, fields)
            if kind_of(names) is not ValueKind.ARRAY:
                raise ConfigurationError(
                    f"csv fields '{fields}' does not refer to an array of field names"
                )
            return [to_text(name) for name in names]
        if kind is ValueKind.ARRAY:
            return [to_text(name) for name in fields]
        raise ConfigurationError("csv fields is not an array name or array reference")

    def _row(
        self,
        names: list[str],
        config: CsvConfig,
        context: ActionContext,
        iteration: IterationPass,
    ) -> list[Any] | None:
        """Values for one row, or None when the pass read an empty array."""
        try:
            row = [self._field_value(name, config, context, iteration) for name in names]
        except PathResolutionError:
            if iteration.empty:
                return None
            raise
        if iteration.empty:
            log.debug("csv stopped on an empty array")
            return None
        return row

    def _field_value(
        self,
        name: str,
        config: CsvConfig,
        context: ActionContext,
        iteration: IterationPass,
    ) -> Any:
        engine = context.engine
        if name in config.mapping:
            value = engine.interpolate(
                config.mapping[name], context.session, iteration=iteration
            )
        else:
            value = engine.interpolate_raw(f"<% {name} %>", context.session)

        if kind_of(value) is ValueKind.ARRAY:
            return iteration.read(value)
        return value
