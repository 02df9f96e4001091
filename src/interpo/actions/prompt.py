"""prompt - ask the user for values and store them in the session.

    - prompt:
        username: Your user name            # description only
        invoice:
          description: Invoice number
          pattern: /^<% prefix %>-\\d+$/i   # tokens resolve when compiled
          required: true                    # ask even if already set

Entries whose session key already holds a value are skipped unless
`required` is set.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from rich.prompt import Prompt

from interpo.actions.base import Action, ActionContext, AskFn
from interpo.config import PromptEntry
from interpo.errors import ConfigurationError, InvalidAnswerError
from interpo.regex import compile_pattern
from interpo.values import UNDEFINED, to_text

log = logging.getLogger(__name__)


def ask_with_rich(prompt: str, default: str | None) -> str:
    """Terminal prompt used when no `ask` callable is supplied."""
    if default is None:
        return Prompt.ask(prompt)
    return Prompt.ask(prompt, default=default)


class PromptAction(Action):
    """prompt - collect answers into the session."""

    manual_interpolation = True

    @property
    def name(self) -> str:
        return "prompt"

    def normalize(self, spec: Any) -> list[PromptEntry]:
        if isinstance(spec, list):
            return [
                self._entry(item.get("name") if isinstance(item, dict) else None, item)
                for item in spec
            ]
        if not isinstance(spec, dict):
            raise ConfigurationError("prompt expects a mapping of names to descriptions")
        return [self._entry(name, item) for name, item in spec.items()]

    def _entry(self, name: Any, item: Any) -> PromptEntry:
        if isinstance(item, PromptEntry):
            return item
        if isinstance(item, str):
            item = {"description": item}
        if not isinstance(item, dict) or not name:
            raise ConfigurationError(f"Invalid prompt entry: {item!r}")
        return PromptEntry(**{**item, "name": str(name)})

    def process(self, config: list[PromptEntry], context: ActionContext) -> None:
        session = context.session
        engine = context.engine

        # compile every pattern up front so a bad one fails before any question
        patterns = {
            entry.name: compile_pattern(entry.pattern, session, engine)
            for entry in config
            if entry.pattern is not None
        }

        pending = [
            entry
            for entry in config
            if entry.required or engine.lookup(session, entry.name) is UNDEFINED
        ]
        log.debug(f"Prompting for {len(pending)} of {len(config)} value(s)")

        ask = context.ask or ask_with_rich
        for entry in pending:
            text = to_text(engine.interpolate(entry.description or entry.name, session))
            session[entry.name] = self._ask_until_valid(
                ask, entry, text, patterns.get(entry.name)
            )

    def _ask_until_valid(
        self,
        ask: AskFn,
        entry: PromptEntry,
        text: str,
        pattern: re.Pattern[str] | None,
    ) -> str:
        for attempt in range(1, entry.attempts + 1):
            answer = ask(text, entry.default)
            if not answer and entry.default is not None:
                answer = entry.default
            if pattern is None or pattern.search(answer):
                return answer
            log.warning(
                entry.message
                or f"Answer for '{entry.name}' does not match {pattern.pattern} "
                f"(attempt {attempt}/{entry.attempts})"
            )
        raise InvalidAnswerError(entry.name, entry.attempts)
