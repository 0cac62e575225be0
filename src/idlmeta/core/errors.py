"""
Error types for idlmeta parsing, model construction, validation and
include resolution.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validator import ValidationIssue


class ErrorKind(str, Enum):
    """Machine-readable error kinds shared by exceptions and validation issues."""

    PARSE = "ParseError"
    DUPLICATE_FIELD_ID = "DuplicateFieldId"
    INVALID_FIELD_ID = "InvalidFieldId"
    MISSING_FIELD_ID = "MissingFieldId"
    FIELD_ID_ALLOCATION_EXHAUSTED = "FieldIdAllocationExhausted"
    INTERFACE_FIELD_HAS_ID = "InterfaceFieldHasId"
    INTERFACE_FIELD_MISMATCH = "InterfaceFieldMismatch"
    UNKNOWN_INTERFACE = "UnknownInterface"
    MALFORMED_UNION = "MalformedUnion"
    INVALID_DECLARATION = "InvalidDeclaration"
    DUPLICATE_NAME = "DuplicateName"
    EMPTY_NAME = "EmptyName"
    DUPLICATE_ENUM_VALUE_ID = "DuplicateEnumValueId"
    CIRCULAR_INCLUDE = "CircularInclude"
    DUPLICATE_PROGRAM_NAME_CONFLICT = "DuplicateProgramNameConflict"
    PROGRAM_NAME_MISMATCH = "ProgramNameMismatch"
    LOADER_FAILURE = "LoaderFailure"
    VALIDATION_FAILED = "ValidationFailed"


class IdlError(Exception):
    """Base exception for all idlmeta errors."""

    kind: ErrorKind = ErrorKind.PARSE

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        names: Sequence[str] = (),
    ):
        self.message = message
        self.context = context
        self.names = tuple(names)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ParseError(IdlError):
    """
    Raised when IDL text cannot be parsed.

    Examples:
    - Unexpected tokens
    - Unterminated string or block comment
    - Missing braces or parentheses
    """

    kind = ErrorKind.PARSE


class ModelError(IdlError):
    """
    Raised when a model cannot be constructed.

    Examples:
    - Two fields claiming the same id
    - A declaration union with zero or several variants set
    """


class DuplicateFieldIdError(ModelError):
    kind = ErrorKind.DUPLICATE_FIELD_ID


class InvalidFieldIdError(ModelError):
    kind = ErrorKind.INVALID_FIELD_ID


class FieldIdAllocationExhaustedError(ModelError):
    kind = ErrorKind.FIELD_ID_ALLOCATION_EXHAUSTED


class MalformedUnionError(ModelError):
    kind = ErrorKind.MALFORMED_UNION


class ResolutionError(IdlError):
    """
    Raised when an include graph cannot be resolved.

    Carries the include chain (sequence of program names) that led to the
    failure.
    """

    def __init__(
        self,
        message: str,
        chain: Sequence[str] = (),
        context: ErrorContext | None = None,
        names: Sequence[str] = (),
    ):
        self.chain = tuple(chain)
        super().__init__(message, context, names or self.chain[-1:])

    def _format_message(self) -> str:
        message = super()._format_message()
        if self.chain:
            return f"{message} (include chain: {format_chain(self.chain)})"
        return message


class CircularIncludeError(ResolutionError):
    kind = ErrorKind.CIRCULAR_INCLUDE


class DuplicateProgramNameConflictError(ResolutionError):
    kind = ErrorKind.DUPLICATE_PROGRAM_NAME_CONFLICT


class ProgramNameMismatchError(ResolutionError):
    kind = ErrorKind.PROGRAM_NAME_MISMATCH


class LoaderFailure(ResolutionError):
    """Raised when the loader cannot produce a program for an include reference."""

    kind = ErrorKind.LOADER_FAILURE

    def __init__(self, message: str, reference: str = "", chain: Sequence[str] = ()):
        self.reference = reference
        super().__init__(message, chain)


class ValidationFailed(IdlError):
    """Raised by ensure_valid when a program has structural violations."""

    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, issues: Sequence[ValidationIssue], program: str = ""):
        self.issues = list(issues)
        header = f"Program '{program}'" if program else "Program"
        lines = [f"{header} failed validation with {len(self.issues)} issue(s):"]
        lines.extend(f"  - [{i.kind.value}] {i.message}" for i in self.issues)
        names = [n for i in self.issues for n in i.names]
        super().__init__("\n".join(lines), names=names)


def format_chain(chain: Sequence[str]) -> str:
    return " -> ".join(chain)


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path to the source file where error occurred
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional source line showing the error location
        program: Optional program name where error occurred
    """

    file: Path
    line: int
    column: int
    snippet: str | None = None
    program: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "shared.thrift:10:5 in program shared"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.program:
            location += f" in program {self.program}"

        if self.snippet is not None:
            marker = " " * (self.column - 1) + "^^^"
            return f"{location}\n{self.line:4d} | {self.snippet}\n       {marker}"
        return location


def make_parse_error(
    message: str,
    file: Path,
    line: int,
    column: int,
    snippet: str | None = None,
) -> ParseError:
    """
    Helper to create a ParseError with context.

    Args:
        message: Error description
        file: Source file path
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional source line

    Returns:
        ParseError with context attached
    """
    context = ErrorContext(file=file, line=line, column=column, snippet=snippet)
    return ParseError(message, context)
