"""Interpo exceptions.

Every failure raised by the engine or its actions derives from `InterpoError`
and carries the path, filter or token that caused it.
"""

from __future__ import annotations


class InterpoError(Exception):
    """Base exception for all interpo errors."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        self.message = message
        self.exit_code = exit_code
        super().__init__(message)


class ParseError(InterpoError):
    """Raised when a template token cannot be parsed."""

    def __init__(self, message: str, offset: int):
        self.offset = offset
        super().__init__(f"{message} (at offset {offset})")


class PathResolutionError(InterpoError):
    """Raised when a required path is missing from the session."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path not found in session: {path}")


class PathIndexError(InterpoError, IndexError):
    """Raised when an explicit numeric index is out of range."""

    def __init__(self, path: str, index: int, length: int):
        self.path = path
        self.index = index
        self.length = length
        super().__init__(
            f"Index {index} out of range for '{path}' (length {length})"
        )


class FilterNotFoundError(InterpoError):
    """Raised when a token names a filter that is not registered."""

    def __init__(self, path: str, filter_name: str):
        self.path = path
        self.filter_name = filter_name
        super().__init__(f"Unknown filter '{filter_name}' applied to '{path}'")


class FilterTypeError(InterpoError):
    """Raised when a filter receives a value it cannot handle."""

    def __init__(self, path: str, filter_name: str, reason: str):
        self.path = path
        self.filter_name = filter_name
        self.reason = reason
        super().__init__(f"Filter '{filter_name}' failed on '{path}': {reason}")


class PatternCompileError(InterpoError):
    """Raised when a resolved pattern source does not compile."""

    def __init__(self, source: str, flags: str, reason: str):
        self.source = source
        self.flags = flags
        self.reason = reason
        super().__init__(f"Invalid pattern /{source}/{flags}: {reason}")


class CyclicResolutionError(InterpoError):
    """Raised when resolving a path re-enters itself."""

    def __init__(self, path: str, chain: list[str]):
        self.path = path
        self.chain = list(chain)
        cycle = " -> ".join([*chain, path])
        super().__init__(f"Cyclic resolution: {cycle}")


class ConfigurationError(InterpoError):
    """Raised when an action is configured with unusable values."""

    pass


class UnknownActionError(InterpoError):
    """Raised when a script references an action that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown action: {name}")


class InvalidAnswerError(InterpoError):
    """Raised when every answer to a prompt failed validation."""

    def __init__(self, name: str, attempts: int):
        self.name = name
        self.attempts = attempts
        super().__init__(f"No valid answer for '{name}' after {attempts} attempt(s)")
