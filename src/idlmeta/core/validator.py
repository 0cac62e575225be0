"""
Structural validator for idlmeta programs.

Checks the self-consistency of a single program and reports every
violation found rather than stopping at the first one:

- Names are non-empty and unique within their scope
- Field ids are present, in range and unique within each field list
- Enum value ids are unique within their enum
- Declaration unions carry exactly one variant
- Interfaces carry no explicit field ids
- Messages implementing an interface reference a real interface and carry
  all of its fields with matching types

Field `type` strings are not resolved against any type catalog.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from .errors import ErrorKind, MalformedUnionError, ValidationFailed
from .field_ids import MAX_FIELD_ID, MIN_FIELD_ID
from .ir import (
    Declaration,
    DeclarationKind,
    EnumType,
    FieldType,
    MessageType,
    MessageVariant,
    ProgramType,
    ServiceType,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationIssue:
    """A single structural violation."""

    kind: ErrorKind
    message: str
    names: tuple[str, ...] = ()
    path: str = ""  # Location in the program (e.g. "declarations[2].fields[0]")

    def __str__(self) -> str:
        location = f" at {self.path}" if self.path else ""
        return f"[{self.kind.value}]{location}: {self.message}"


class _Issues:
    """Collector threaded through the individual checks."""

    def __init__(self) -> None:
        self.items: list[ValidationIssue] = []

    def add(self, kind: ErrorKind, message: str, names: Sequence[str] = (), path: str = "") -> None:
        self.items.append(ValidationIssue(kind, message, tuple(names), path))


def validate(program: ProgramType | Mapping[str, Any]) -> list[ValidationIssue]:
    """
    Run every structural check on a program.

    Args:
        program: A ProgramType, or its wire mapping (as produced by
            model_dump). Wire declarations that are not well-formed unions
            are reported as MalformedUnion, and declarations whose entity
            fails model validation as EmptyName (missing name) or
            InvalidDeclaration. Either way they are skipped by the other
            checks.

    Returns:
        All issues found, in program order. Empty when the program is valid.
    """
    issues = _Issues()

    if isinstance(program, Mapping):
        program = _decode_program(program, issues)

    _check_program_name(program, issues)
    _check_declaration_names(program, issues)

    for index, declaration in enumerate(program.declarations):
        path = f"declarations[{index}]"
        _DECLARATION_CHECKS[declaration.kind](declaration, path, issues)

    _check_implementations(program, issues)

    logger.debug(
        "Validated program '%s': %d issue(s)", program.program_name, len(issues.items)
    )
    return issues.items


def ensure_valid(program: ProgramType) -> ProgramType:
    """
    Validate a program and return it unchanged.

    Raises:
        ValidationFailed: If any issue is found
    """
    issues = validate(program)
    if issues:
        raise ValidationFailed(issues, program.program_name)
    return program


def _decode_program(data: Mapping[str, Any], issues: _Issues) -> ProgramType:
    declarations: list[Declaration] = []
    for index, raw in enumerate(data.get("declarations") or []):
        path = f"declarations[{index}]"
        try:
            declarations.append(Declaration.model_validate(raw))
        except MalformedUnionError as e:
            issues.add(ErrorKind.MALFORMED_UNION, e.message, e.names, path)
        except ValidationError as e:
            _add_model_errors(e, path, issues)

    fields = {k: v for k, v in data.items() if k != "declarations"}
    if not isinstance(fields.get("program_name"), str):
        fields["program_name"] = ""
    try:
        return ProgramType.model_validate({**fields, "declarations": declarations})
    except ValidationError as e:
        _add_model_errors(e, "", issues)
        return ProgramType(program_name=fields["program_name"], declarations=declarations)


def _error_path(base: str, loc: Sequence[int | str]) -> str:
    path = base
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path


def _add_model_errors(error: ValidationError, base: str, issues: _Issues) -> None:
    """Report each pydantic error of a wire entry as an issue."""
    for detail in error.errors():
        loc = detail["loc"]
        path = _error_path(base, loc)
        if detail["type"] == "missing" and loc and loc[-1] == "name":
            issues.add(ErrorKind.EMPTY_NAME, "Missing name", path=path)
        else:
            issues.add(ErrorKind.INVALID_DECLARATION, detail["msg"], path=path)


# =============================================================================
# Names
# =============================================================================


def _check_program_name(program: ProgramType, issues: _Issues) -> None:
    if not program.program_name.strip():
        issues.add(ErrorKind.EMPTY_NAME, "Program name must not be empty", path="program_name")


def _check_names(names: Sequence[str], scope: str, path: str, issues: _Issues) -> None:
    """Report empty names and names repeated within one scope."""
    for index, name in enumerate(names):
        if not name.strip():
            issues.add(ErrorKind.EMPTY_NAME, f"Unnamed entry in {scope}", path=f"{path}[{index}]")

    for name, count in Counter(n for n in names if n.strip()).items():
        if count > 1:
            issues.add(
                ErrorKind.DUPLICATE_NAME,
                f"'{name}' is declared {count} times in {scope}",
                [name],
                path,
            )


def _check_declaration_names(program: ProgramType, issues: _Issues) -> None:
    _check_names(
        [d.name for d in program.declarations],
        f"program '{program.program_name}'",
        "declarations",
        issues,
    )


# =============================================================================
# Field lists
# =============================================================================


def check_field_list(
    fields: Sequence[FieldType], owner: str, path: str, issues: _Issues
) -> None:
    """Check names and ids of one independently allocated field list."""
    _check_names([f.name for f in fields], f"'{owner}'", path, issues)

    effective: list[tuple[int, str]] = []
    for index, field in enumerate(fields):
        field_id = field.id if field.id is not None else field.declared_id
        if field_id is None:
            issues.add(
                ErrorKind.MISSING_FIELD_ID,
                f"Field '{field.name}' in '{owner}' has no id assigned",
                [field.name],
                f"{path}[{index}]",
            )
            continue
        if not MIN_FIELD_ID <= field_id <= MAX_FIELD_ID:
            issues.add(
                ErrorKind.INVALID_FIELD_ID,
                f"Field '{field.name}' in '{owner}' has id {field_id}; "
                f"ids must be between {MIN_FIELD_ID} and {MAX_FIELD_ID}",
                [field.name],
                f"{path}[{index}]",
            )
            continue
        effective.append((field_id, field.name))

    for field_id, count in Counter(i for i, _ in effective).items():
        if count > 1:
            names = [name for i, name in effective if i == field_id]
            issues.add(
                ErrorKind.DUPLICATE_FIELD_ID,
                f"Field id {field_id} is used by {', '.join(repr(n) for n in names)} in '{owner}'",
                names,
                path,
            )


# =============================================================================
# Declarations
# =============================================================================


def _check_enum(declaration: Declaration, path: str, issues: _Issues) -> None:
    enum: EnumType = declaration.value
    _check_names([v.name for v in enum.values], f"enum '{enum.name}'", f"{path}.values", issues)

    ids = [(v.id, v.name) for v in enum.values if v.id is not None]
    for value_id, count in Counter(i for i, _ in ids).items():
        if count > 1:
            names = [name for i, name in ids if i == value_id]
            issues.add(
                ErrorKind.DUPLICATE_ENUM_VALUE_ID,
                f"Enum '{enum.name}' assigns {value_id} to {', '.join(names)}",
                names,
                f"{path}.values",
            )


def _check_nothing(declaration: Declaration, path: str, issues: _Issues) -> None:
    """Typedefs and consts have no rules beyond their name."""


def _check_message(declaration: Declaration, path: str, issues: _Issues) -> None:
    message: MessageType = declaration.value
    check_field_list(message.fields, message.name, f"{path}.fields", issues)
    _VARIANT_RULES[message.variant](message, path, issues)


def _check_service(declaration: Declaration, path: str, issues: _Issues) -> None:
    service: ServiceType = declaration.value
    _check_names(
        [f.name for f in service.functions], f"service '{service.name}'", f"{path}.functions", issues
    )
    for index, function in enumerate(service.functions):
        function_path = f"{path}.functions[{index}]"
        owner = f"{service.name}.{function.name}"
        check_field_list(function.params, owner, f"{function_path}.params", issues)
        check_field_list(function.exceptions, owner, f"{function_path}.exceptions", issues)


_DECLARATION_CHECKS: dict[DeclarationKind, Callable[[Declaration, str, _Issues], None]] = {
    DeclarationKind.ENUM: _check_enum,
    DeclarationKind.TYPEDEF: _check_nothing,
    DeclarationKind.MESSAGE: _check_message,
    DeclarationKind.SERVICE: _check_service,
    DeclarationKind.CONST: _check_nothing,
}


# =============================================================================
# Message variants
# =============================================================================


def _no_variant_rules(message: MessageType, path: str, issues: _Issues) -> None:
    """Structs, exceptions and unions only carry the shared field rules."""


def _check_interface(message: MessageType, path: str, issues: _Issues) -> None:
    for index, field in enumerate(message.fields):
        if field.has_explicit_id:
            issues.add(
                ErrorKind.INTERFACE_FIELD_HAS_ID,
                f"Interface '{message.name}' field '{field.name}' declares id "
                f"{field.declared_id}; interface fields must not carry ids",
                [field.name],
                f"{path}.fields[{index}]",
            )


_VARIANT_RULES: dict[MessageVariant, Callable[[MessageType, str, _Issues], None]] = {
    MessageVariant.STRUCT: _no_variant_rules,
    # "At most one field set" is a property of union values, not of the type.
    MessageVariant.UNION: _no_variant_rules,
    MessageVariant.EXCEPTION: _no_variant_rules,
    MessageVariant.INTERFACE: _check_interface,
}


def _check_implementations(program: ProgramType, issues: _Issues) -> None:
    """Check every `implements` clause against the program's interfaces."""
    messages = {m.name: m for m in program.messages}

    for index, declaration in enumerate(program.declarations):
        message = declaration.message
        if message is None or not message.implementing:
            continue
        path = f"declarations[{index}].implementing"

        interface = messages.get(message.implementing)
        if interface is None or not interface.is_interface:
            reason = "is not declared" if interface is None else "is not an interface"
            issues.add(
                ErrorKind.UNKNOWN_INTERFACE,
                f"'{message.name}' implements '{message.implementing}', which {reason}",
                [message.name, message.implementing],
                path,
            )
            continue

        missing: list[str] = []
        mismatched: list[str] = []
        for required in interface.fields:
            own = message.field(required.name)
            if own is None:
                missing.append(required.name)
            elif own.type != required.type:
                mismatched.append(required.name)

        if missing or mismatched:
            details = []
            if missing:
                details.append(f"missing {', '.join(missing)}")
            if mismatched:
                details.append(f"mismatched type for {', '.join(mismatched)}")
            issues.add(
                ErrorKind.INTERFACE_FIELD_MISMATCH,
                f"'{message.name}' does not conform to interface '{interface.name}': "
                + "; ".join(details),
                missing + mismatched,
                path,
            )
