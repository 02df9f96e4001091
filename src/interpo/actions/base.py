"""Base class and runtime context for actions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from interpo.engine import Engine, default_engine

# (line, channel) -> None
EmitFn = Callable[[str, "str | None"], None]
# (prompt text, default) -> answer
AskFn = Callable[[str, "str | None"], str]


@dataclass
class ActionContext:
    """What an action can reach while it runs."""

    session: dict[str, Any]
    engine: Engine = field(default_factory=default_engine)
    emit: EmitFn | None = None
    ask: AskFn | None = None
    channel: str | None = None

    def emit_line(self, line: str, channel: str | None = None) -> None:
        if self.emit is not None:
            self.emit(line, channel if channel is not None else self.channel)


class Action(ABC):
    """Base class for actions.

    `manual_interpolation` actions receive their settings untouched and interpolate
    the parts they need themselves; other actions get the settings already
    interpolated against the session.
    """

    manual_interpolation: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Action name as written in scripts (e.g., 'csv')."""
        ...

    @abstractmethod
    def normalize(self, spec: Any) -> Any:
        """Turn the user-authored settings into the action's config model."""
        ...

    @abstractmethod
    def process(self, config: Any, context: ActionContext) -> None:
        """Run the action."""
        ...
