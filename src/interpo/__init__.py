"""interpo - string interpolation with filter chains and lock-step array iteration."""

from interpo._version import __version__
from interpo.cursors import CoIteration, CursorTable, IterationPass
from interpo.engine import Engine, default_engine, interpolate, interpolate_raw
from interpo.errors import (
    ConfigurationError,
    CyclicResolutionError,
    FilterNotFoundError,
    FilterTypeError,
    InterpoError,
    ParseError,
    PathIndexError,
    PathResolutionError,
    PatternCompileError,
)
from interpo.filters import FilterRegistry, FilterSpec, default_registry
from interpo.regex import PatternDescriptor, compile_pattern, extract_pattern
from interpo.values import UNDEFINED

__all__ = [
    "__version__",
    "CoIteration",
    "CursorTable",
    "IterationPass",
    "Engine",
    "default_engine",
    "interpolate",
    "interpolate_raw",
    "ConfigurationError",
    "CyclicResolutionError",
    "FilterNotFoundError",
    "FilterTypeError",
    "InterpoError",
    "ParseError",
    "PathIndexError",
    "PathResolutionError",
    "PatternCompileError",
    "FilterRegistry",
    "FilterSpec",
    "default_registry",
    "PatternDescriptor",
    "compile_pattern",
    "extract_pattern",
    "UNDEFINED",
]
