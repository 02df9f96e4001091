"""Configuration models and loaders for interpo scripts.

A script is a YAML document:

    name: export
    session:
      name: [Al, Bo]
      amount: ["10", "20"]
    actions:
      - prompt:
          region: Sales region
      - csv:
          fields: [name, amount]
          header: true
          mapping:
            name: <% name | upcase %>

A bare list at the top level is read as the `actions` list.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from interpo.errors import ConfigurationError
from interpo.regex import PatternDescriptor, extract_pattern


class PromptEntry(BaseModel):
    """A single value to ask the user for."""

    name: str = Field(description="Session key the answer is stored under")
    description: str | None = Field(default=None, description="Prompt text")
    pattern: PatternDescriptor | None = Field(
        default=None, description="Answers must match this pattern"
    )
    required: bool = Field(
        default=False, description="Ask even when the session already has a value"
    )
    default: str | None = Field(default=None, description="Answer used on empty input")
    message: str | None = Field(
        default=None, description="Shown when an answer does not match the pattern"
    )
    attempts: int = Field(default=3, ge=1, description="Answers allowed before failing")

    @field_validator("pattern", mode="before")
    @classmethod
    def extract_pattern_text(cls, value: Any) -> Any:
        """Accept `/source/flags` literals and compiled patterns."""
        if value is None or isinstance(value, PatternDescriptor):
            return value
        return extract_pattern(value)


class CsvConfig(BaseModel):
    """Delimited-text output of session arrays, one row per pass."""

    fields: list[str] | str = Field(
        description="Field names, or the name of a session array of field names"
    )
    header: bool | str = Field(default=False, description="true, false or 'only'")
    mapping: dict[str, str] = Field(
        default_factory=dict, description="Per-field templates evaluated every row"
    )
    delimiter: str = Field(default=",", min_length=1)
    channel: str | None = Field(default=None, description="Output channel")


class EmitConfig(BaseModel):
    """A line of text sent to the output sink."""

    message: Any = Field(default="", description="Text to emit")
    channel: str | None = None


class ScriptConfig(BaseModel):
    """Top-level script document."""

    name: str | None = Field(default=None, description="Script name")
    session: dict[str, Any] = Field(
        default_factory=dict, description="Initial session values"
    )
    actions: list[dict[str, Any]] = Field(
        default_factory=list, description="Actions to run in order"
    )


def load_script(path: Path) -> ScriptConfig:
    """Load a script YAML file."""
    if not path.exists():
        raise FileNotFoundError(f"Script file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return ScriptConfig()
    if isinstance(data, list):
        return ScriptConfig(actions=data)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Script must be a mapping or a list: {path}")
    return ScriptConfig(**data)


def load_session(path: Path) -> dict[str, Any]:
    """Load session values from a YAML (or JSON) file."""
    if not path.exists():
        raise FileNotFoundError(f"Session file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Session file must hold a mapping: {path}")
    return data


def parse_assignments(items: list[str]) -> dict[str, Any]:
    """Parse `key=value` overrides; values are read as YAML scalars or lists."""
    result: dict[str, Any] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(f"Expected key=value, got '{item}'")
        try:
            result[key] = yaml.safe_load(raw) if raw.strip() else ""
        except yaml.YAMLError:
            result[key] = raw
    return result
