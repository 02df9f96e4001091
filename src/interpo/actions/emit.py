"""emit - send an interpolated line to the output sink."""

from __future__ import annotations

from typing import Any

from interpo.actions.base import Action, ActionContext
from interpo.config import EmitConfig
from interpo.values import to_text


class EmitAction(Action):
    """emit - write one line of text."""

    @property
    def name(self) -> str:
        return "emit"

    def normalize(self, spec: Any) -> EmitConfig:
        if isinstance(spec, dict):
            return EmitConfig(**spec)
        return EmitConfig(message=spec)

    def process(self, config: EmitConfig, context: ActionContext) -> None:
        context.emit_line(to_text(config.message), config.channel)
