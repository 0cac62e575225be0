"""
Canonical text output for idlmeta programs.

format_program renders a ProgramType back to IDL text that parse_program
reads into an equal ProgramType. Only declared field ids are written;
allocated ids are inferred again on re-parse.
"""

from __future__ import annotations

from collections.abc import Sequence

from . import ir
from .parser import quote_string

INDENT = "  "


def format_doc(doc: str | None, indent: str = "") -> list[str]:
    if doc is None:
        return []
    lines = [f"{indent}/**"]
    for line in doc.replace("*/", "* /").split("\n"):
        lines.append(f"{indent} * {line}".rstrip())
    lines.append(f"{indent} */")
    return lines


def format_annotations(annotations: ir.Annotations) -> str:
    if not annotations:
        return ""
    pairs = ", ".join(f"{key} = {quote_string(value)}" for key, value in annotations.items())
    return f" ({pairs})"


def format_field(field: ir.FieldType) -> str:
    parts = []
    if field.declared_id is not None:
        parts.append(f"{field.declared_id}:")
    if field.requirement != ir.Requirement.DEFAULT:
        parts.append(field.requirement.value)
    parts.extend([field.type, field.name])
    if field.default is not None:
        parts.extend(["=", field.default])
    return " ".join(parts) + format_annotations(field.annotations)


def _format_params(fields: Sequence[ir.FieldType], indent: str) -> str:
    if not any(f.documentation for f in fields):
        return "(" + ", ".join(format_field(f) for f in fields) + ")"

    lines = ["("]
    for field in fields:
        lines.extend(format_doc(field.documentation, indent + INDENT))
        lines.append(f"{indent}{INDENT}{format_field(field)},")
    lines.append(f"{indent})")
    return "\n".join(lines)


def _format_enum(enum: ir.EnumType) -> list[str]:
    lines = [f"enum {enum.name} {{"]
    for value in enum.values:
        lines.extend(format_doc(value.documentation, INDENT))
        text = value.name if value.id is None else f"{value.name} = {value.id}"
        lines.append(f"{INDENT}{text}{format_annotations(value.annotations)},")
    lines.append("}" + format_annotations(enum.annotations))
    return lines


def _format_typedef(typedef: ir.TypedefType) -> list[str]:
    return [f"typedef {typedef.type} {typedef.name}"]


def _format_message(message: ir.MessageType) -> list[str]:
    header = f"{message.variant.value} {message.name}"
    if message.implementing:
        header += f" implements {message.implementing}"
    lines = [header + " {"]
    for field in message.fields:
        lines.extend(format_doc(field.documentation, INDENT))
        lines.append(f"{INDENT}{format_field(field)},")
    lines.append("}" + format_annotations(message.annotations))
    return lines


def _format_function(function: ir.FunctionType) -> list[str]:
    lines = format_doc(function.documentation, INDENT)
    text = INDENT
    if function.one_way:
        text += "oneway "
    text += f"{function.return_type or 'void'} {function.name}"
    text += _format_params(function.params, INDENT)
    if function.exceptions:
        text += " throws " + _format_params(function.exceptions, INDENT)
    text += format_annotations(function.annotations)
    lines.extend(text.split("\n"))
    return lines


def _format_service(service: ir.ServiceType) -> list[str]:
    header = f"service {service.name}"
    if service.extend:
        header += f" extends {service.extend}"
    lines = [header + " {"]
    for function in service.functions:
        lines.extend(_format_function(function))
    lines.append("}" + format_annotations(service.annotations))
    return lines


def _format_const(const: ir.ConstType) -> list[str]:
    return [
        f"const {const.type} {const.name} = {const.value}{format_annotations(const.annotations)}"
    ]


_FORMATTERS = {
    ir.DeclarationKind.ENUM: _format_enum,
    ir.DeclarationKind.TYPEDEF: _format_typedef,
    ir.DeclarationKind.MESSAGE: _format_message,
    ir.DeclarationKind.SERVICE: _format_service,
    ir.DeclarationKind.CONST: _format_const,
}


def format_program(program: ir.ProgramType) -> str:
    """
    Render a program as IDL text.

    Args:
        program: Program to render

    Returns:
        IDL source text ending with a newline
    """
    sections: list[list[str]] = []

    if program.documentation is not None:
        sections.append(format_doc(program.documentation))
    if program.namespaces:
        sections.append(
            [f"namespace {lang} {name}" for lang, name in program.namespaces.items()]
        )
    if program.includes:
        sections.append([f"include {quote_string(ref)}" for ref in program.includes.values()])

    for declaration in program.declarations:
        kind, value = declaration.variant
        sections.append(format_doc(value.documentation) + _FORMATTERS[kind](value))

    return "\n\n".join("\n".join(section) for section in sections) + "\n"
