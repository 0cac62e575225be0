"""
idlmeta - reflective model of Thrift-like IDL programs.

Parses IDL files into an immutable model, validates its structural
invariants and resolves include graphs into shared, cycle-free
ProgramMeta graphs.
"""

from ._version import __version__
from .core import ir
from .core.errors import (
    IdlError,
    LoaderFailure,
    ModelError,
    ParseError,
    ResolutionError,
    ValidationFailed,
)
from .core.parser import parse_program
from .core.printer import format_program
from .core.resolver import Loader, resolve, resolve_file
from .core.resolver_impl import LoadedProgram
from .core.validator import ValidationIssue, ensure_valid, validate

__all__ = [
    "__version__",
    "ir",
    "IdlError",
    "LoadedProgram",
    "Loader",
    "LoaderFailure",
    "ModelError",
    "ParseError",
    "ResolutionError",
    "ValidationFailed",
    "ValidationIssue",
    "ensure_valid",
    "format_program",
    "parse_program",
    "resolve",
    "resolve_file",
    "validate",
]
