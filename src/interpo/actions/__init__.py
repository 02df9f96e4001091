"""Actions that consume the interpolation engine.

Actions are referenced by name in scripts:
- prompt: ask for values and store them in the session
- csv: delimited rows from session arrays, walked in lock-step
- emit: write an interpolated line

Each script item is a one-key mapping naming the action, optionally with a
`channel` for its output:

    - emit: "Hello <% name %>"
      channel: stdout
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from interpo.actions.base import Action, ActionContext, AskFn, EmitFn
from interpo.actions.csv import CsvAction
from interpo.actions.emit import EmitAction
from interpo.actions.prompt import PromptAction
from interpo.errors import ConfigurationError, UnknownActionError

log = logging.getLogger(__name__)

__all__ = [
    "Action",
    "ActionContext",
    "AskFn",
    "EmitFn",
    "CsvAction",
    "EmitAction",
    "PromptAction",
    "get_action",
    "list_builtin_actions",
    "run_action",
    "run_actions",
]

# Action registry
_BUILTIN_ACTIONS: dict[str, Action] = {
    "prompt": PromptAction(),
    "csv": CsvAction(),
    "emit": EmitAction(),
}


def get_action(name: str) -> Action:
    """Get an action by name (e.g., 'csv')."""
    if name in _BUILTIN_ACTIONS:
        return _BUILTIN_ACTIONS[name]
    raise UnknownActionError(name)


def list_builtin_actions() -> list[str]:
    """List all built-in action names."""
    return list(_BUILTIN_ACTIONS.keys())


def run_action(name: str, spec: Any, context: ActionContext) -> None:
    """Normalize and run a single action."""
    action = get_action(name)
    if not action.manual_interpolation:
        spec = context.engine.interpolate(spec, context.session)
    action.process(action.normalize(spec), context)


def run_actions(actions: list[dict[str, Any]], context: ActionContext) -> None:
    """Run script items in order against a shared context."""
    for index, item in enumerate(actions):
        if not isinstance(item, dict):
            raise ConfigurationError(f"Action #{index} must be a mapping, got {item!r}")

        names = [key for key in item if key != "channel"]
        if len(names) != 1:
            raise ConfigurationError(
                f"Action #{index} must name exactly one action, got {names}"
            )

        name = names[0]
        log.info(f"Running action #{index}: {name}")
        step_context = replace(context, channel=item.get("channel", context.channel))
        run_action(name, item[name], step_context)
