"""
Recursive descent parser for the idlmeta IDL.

Builds a ProgramType from IDL text:

    namespace py example.users
    include "shared.thrift"

    /** A registered user. */
    struct User implements shared.Named {
      1: required string name,
      2: optional i32 age = 0 (min = "0")
    }

The program name is the file stem; each include is keyed by the stem of
its reference. Field lists run through the field id allocator as they are
parsed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from . import ir
from .errors import ErrorContext, ModelError, make_parse_error
from .field_ids import allocate_field_ids
from .lexer import Lexer, Token, TokenType

logger = logging.getLogger(__name__)

MESSAGE_VARIANTS = {
    TokenType.STRUCT: ir.MessageVariant.STRUCT,
    TokenType.UNION: ir.MessageVariant.UNION,
    TokenType.EXCEPTION: ir.MessageVariant.EXCEPTION,
    TokenType.INTERFACE: ir.MessageVariant.INTERFACE,
}

SEPARATORS = (TokenType.COMMA, TokenType.SEMICOLON)


def quote_string(value: str) -> str:
    """Render a string value as a double-quoted literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    escaped = escaped.replace("\t", "\\t")
    return f'"{escaped}"'


class BaseParser:
    """
    Base parser class with token manipulation utilities.

    Provides token navigation, matching and error generation for the
    recursive descent parser.
    """

    def __init__(self, tokens: list[Token], file: Path, source: str = ""):
        """
        Initialize parser.

        Args:
            tokens: List of tokens from lexer
            file: Source file path (for error reporting)
            source: Source text (for error snippets)
        """
        self.tokens = tokens
        self.file = file
        self.lines = source.split("\n")
        self.pos = 0

    def current_token(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # Return EOF
        return self.tokens[self.pos]

    def peek_token(self, offset: int = 1) -> Token:
        """Peek ahead at token."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]  # Return EOF
        return self.tokens[pos]

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current_token()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def match(self, *token_types: TokenType) -> bool:
        """Check if current token matches any of the given types."""
        return self.current_token().type in token_types

    def accept(self, *token_types: TokenType) -> Token | None:
        """Consume the current token if it matches, else return None."""
        if self.match(*token_types):
            return self.advance()
        return None

    def expect(self, token_type: TokenType, what: str | None = None) -> Token:
        """
        Expect a specific token type and consume it.

        Raises:
            ParseError: If token doesn't match
        """
        token = self.current_token()
        if token.type != token_type:
            expected = what or repr(token_type.value)
            found = "end of file" if token.type == TokenType.EOF else repr(token.value)
            raise self.error(f"Expected {expected}, got {found}", token)
        return self.advance()

    def expect_name(self, what: str = "identifier") -> Token:
        """Expect an identifier; keywords are rejected with a clear message."""
        token = self.current_token()
        if token.type != TokenType.IDENTIFIER and token.value.isidentifier():
            if token.type != TokenType.EOF:
                raise self.error(
                    f"'{token.value}' is a reserved keyword and cannot be used as {what}", token
                )
        return self.expect(TokenType.IDENTIFIER, what)

    def skip_separator(self) -> None:
        self.accept(*SEPARATORS)

    def context(self, token: Token) -> ErrorContext:
        snippet = self.lines[token.line - 1] if 0 < token.line <= len(self.lines) else None
        return ErrorContext(file=self.file, line=token.line, column=token.column, snippet=snippet)

    def error(self, message: str, token: Token) -> Exception:
        context = self.context(token)
        return make_parse_error(message, self.file, token.line, token.column, context.snippet)


class Parser(BaseParser):
    """Parser producing a ProgramType."""

    # -------------------------------------------------------------------------
    # Shared pieces
    # -------------------------------------------------------------------------

    def parse_type(self) -> str:
        """
        Parse a type reference.

        Returns:
            Normalised type text, e.g. "map<string, list<i32>>"
        """
        name = self.expect_name("type name").value
        if not self.accept(TokenType.LESS_THAN):
            return name

        args = [self.parse_type()]
        while self.accept(TokenType.COMMA):
            args.append(self.parse_type())
        self.expect(TokenType.GREATER_THAN)
        return f"{name}<{', '.join(args)}>"

    def parse_value(self) -> str:
        """
        Parse a const or default value.

        Returns:
            Normalised literal text (strings keep their quotes)
        """
        token = self.current_token()
        if token.type == TokenType.STRING:
            self.advance()
            return quote_string(token.value)
        if token.type in (TokenType.NUMBER, TokenType.IDENTIFIER):
            self.advance()
            return token.value

        if self.accept(TokenType.LBRACKET):
            items = []
            while not self.accept(TokenType.RBRACKET):
                items.append(self.parse_value())
                self.skip_separator()
            return f"[{', '.join(items)}]"

        if self.accept(TokenType.LBRACE):
            entries = []
            while not self.accept(TokenType.RBRACE):
                key = self.parse_value()
                self.expect(TokenType.COLON)
                entries.append(f"{key}: {self.parse_value()}")
                self.skip_separator()
            return "{" + ", ".join(entries) + "}"

        raise self.error(f"Expected a value, got {token.value or 'end of file'!r}", token)

    def parse_annotations(self) -> ir.Annotations:
        """Parse an optional `(key = "value", ...)` suffix."""
        if not self.accept(TokenType.LPAREN):
            return ir.Annotations()

        pairs: list[tuple[str, str]] = []
        while not self.accept(TokenType.RPAREN):
            key = self.current_token()
            if key.type == TokenType.EOF or key.type in (TokenType.STRING, TokenType.NUMBER):
                raise self.error("Expected annotation key", key)
            if not key.value.replace(".", "_").isidentifier():
                raise self.error(f"Invalid annotation key {key.value!r}", key)
            self.advance()
            self.expect(TokenType.EQUALS)
            value = self.expect(TokenType.STRING, "annotation value string")
            pairs.append((key.value, value.value))
            self.skip_separator()
        return ir.Annotations.from_pairs(pairs)

    def parse_id(self) -> int:
        token = self.expect(TokenType.NUMBER, "numeric id")
        try:
            if token.value.lower().lstrip("+-").startswith("0x"):
                return int(token.value, 16)
            return int(token.value)
        except ValueError:
            raise self.error(f"Invalid numeric id {token.value!r}", token) from None

    def parse_field(self) -> ir.FieldType:
        doc = self.current_token().doc

        declared_id = None
        if self.match(TokenType.NUMBER) and self.peek_token().type == TokenType.COLON:
            declared_id = self.parse_id()
            self.expect(TokenType.COLON)

        requirement = ir.Requirement.DEFAULT
        if self.accept(TokenType.REQUIRED):
            requirement = ir.Requirement.REQUIRED
        elif self.accept(TokenType.OPTIONAL):
            requirement = ir.Requirement.OPTIONAL

        field_type = self.parse_type()
        name = self.expect_name("field name").value
        default = self.parse_value() if self.accept(TokenType.EQUALS) else None
        annotations = self.parse_annotations()
        self.skip_separator()

        return ir.FieldType(
            name=name,
            type=field_type,
            declared_id=declared_id,
            requirement=requirement,
            default=default,
            annotations=annotations,
            documentation=doc,
        )

    def parse_field_list(self, closing: TokenType, owner: str, start: Token) -> list[ir.FieldType]:
        fields = []
        while not self.accept(closing):
            if self.match(TokenType.EOF):
                raise self.error(f"Unterminated field list in '{owner}'", start)
            fields.append(self.parse_field())
        return self.allocate(fields, owner, start)

    def allocate(self, fields: list[ir.FieldType], owner: str, token: Token) -> list[ir.FieldType]:
        """Allocate ids, attaching the source location to allocation errors."""
        try:
            return allocate_field_ids(fields, owner)
        except ModelError as e:
            raise type(e)(e.message, self.context(token), e.names) from None

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def parse_typedef(self) -> ir.TypedefType:
        doc = self.expect(TokenType.TYPEDEF).doc
        target = self.parse_type()
        name = self.expect_name("typedef name").value
        self.skip_separator()
        return ir.TypedefType(name=name, type=target, documentation=doc)

    def parse_enum(self) -> ir.EnumType:
        doc = self.expect(TokenType.ENUM).doc
        name = self.expect_name("enum name").value
        start = self.expect(TokenType.LBRACE)

        values = []
        while not self.accept(TokenType.RBRACE):
            if self.match(TokenType.EOF):
                raise self.error(f"Unterminated enum '{name}'", start)
            token = self.expect_name("enum value name")
            value_id = self.parse_id() if self.accept(TokenType.EQUALS) else None
            values.append(
                ir.EnumValue(
                    name=token.value,
                    id=value_id,
                    annotations=self.parse_annotations(),
                    documentation=token.doc,
                )
            )
            self.skip_separator()

        return ir.EnumType(
            name=name, values=values, annotations=self.parse_annotations(), documentation=doc
        )

    def parse_message(self) -> ir.MessageType:
        keyword = self.advance()
        variant = MESSAGE_VARIANTS[keyword.type]
        name = self.expect_name(f"{variant.value} name").value
        implementing = None
        if self.accept(TokenType.IMPLEMENTS):
            implementing = self.expect_name("interface name").value

        start = self.expect(TokenType.LBRACE)
        fields = self.parse_field_list(TokenType.RBRACE, name, start)
        return ir.MessageType(
            name=name,
            variant=variant,
            fields=fields,
            implementing=implementing,
            annotations=self.parse_annotations(),
            documentation=keyword.doc,
        )

    def parse_function(self, service: str) -> ir.FunctionType:
        doc = self.current_token().doc
        one_way = self.accept(TokenType.ONEWAY) is not None
        return_type = None if self.accept(TokenType.VOID) else self.parse_type()
        name = self.expect_name("function name").value
        owner = f"{service}.{name}"

        start = self.expect(TokenType.LPAREN)
        params = self.parse_field_list(TokenType.RPAREN, owner, start)
        exceptions: list[ir.FieldType] = []
        if self.accept(TokenType.THROWS):
            start = self.expect(TokenType.LPAREN)
            exceptions = self.parse_field_list(TokenType.RPAREN, owner, start)

        annotations = self.parse_annotations()
        self.skip_separator()
        return ir.FunctionType(
            name=name,
            one_way=one_way,
            return_type=return_type,
            params=params,
            exceptions=exceptions,
            annotations=annotations,
            documentation=doc,
        )

    def parse_service(self) -> ir.ServiceType:
        doc = self.expect(TokenType.SERVICE).doc
        name = self.expect_name("service name").value
        extend = None
        if self.accept(TokenType.EXTENDS):
            extend = self.expect_name("base service name").value

        start = self.expect(TokenType.LBRACE)
        functions = []
        while not self.accept(TokenType.RBRACE):
            if self.match(TokenType.EOF):
                raise self.error(f"Unterminated service '{name}'", start)
            functions.append(self.parse_function(name))

        return ir.ServiceType(
            name=name,
            extend=extend,
            functions=functions,
            annotations=self.parse_annotations(),
            documentation=doc,
        )

    def parse_const(self) -> ir.ConstType:
        doc = self.expect(TokenType.CONST).doc
        const_type = self.parse_type()
        name = self.expect_name("const name").value
        self.expect(TokenType.EQUALS)
        value = self.parse_value()
        annotations = self.parse_annotations()
        self.skip_separator()
        return ir.ConstType(
            name=name, type=const_type, value=value, annotations=annotations, documentation=doc
        )

    # -------------------------------------------------------------------------
    # Program
    # -------------------------------------------------------------------------

    def parse_program(self, program_doc: str | None = None) -> ir.ProgramType:
        includes: dict[str, str] = {}
        namespaces: dict[str, str] = {}
        declarations: list[ir.Declaration] = []

        handlers: dict[TokenType, Callable[[], ir.DeclarationValue]] = {
            TokenType.TYPEDEF: self.parse_typedef,
            TokenType.ENUM: self.parse_enum,
            TokenType.SERVICE: self.parse_service,
            TokenType.CONST: self.parse_const,
            **{variant: self.parse_message for variant in MESSAGE_VARIANTS},
        }

        while not self.match(TokenType.EOF):
            token = self.current_token()

            if self.accept(TokenType.INCLUDE):
                reference = self.expect(TokenType.STRING, "include path string").value
                include_name = Path(reference).stem
                if includes.get(include_name, reference) != reference:
                    raise self.error(
                        f"Include '{reference}' collides with '{includes[include_name]}' "
                        f"(both are named '{include_name}')",
                        token,
                    )
                includes[include_name] = reference
                self.skip_separator()

            elif self.accept(TokenType.NAMESPACE):
                language = self.accept(TokenType.STAR) or self.expect_name("namespace language")
                namespaces[language.value] = self.expect_name("namespace identifier").value
                self.skip_separator()

            elif token.type in handlers:
                declarations.append(ir.Declaration.of(handlers[token.type]()))

            else:
                raise self.error(f"Unexpected {token.value!r} at top level", token)

        return ir.ProgramType(
            program_name=Path(self.file).stem,
            documentation=program_doc,
            includes=includes,
            namespaces=namespaces,
            declarations=declarations,
        )


def parse_program(text: str, file: Path | str) -> ir.ProgramType:
    """
    Parse IDL text into a ProgramType.

    Args:
        text: Source text
        file: Source file path; its stem is the program name

    Returns:
        Parsed program with field ids allocated

    Raises:
        ParseError: On syntax errors
        ModelError: On field id allocation errors
    """
    path = Path(file)
    lexer = Lexer(text, path)
    tokens = lexer.tokenize()
    program = Parser(tokens, path, text).parse_program(lexer.program_doc)
    logger.debug(
        "Parsed program '%s': %d declaration(s), %d include(s)",
        program.program_name,
        len(program.declarations),
        len(program.includes),
    )
    return program
