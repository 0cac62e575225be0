"""
Lexer/Tokenizer for the idlmeta IDL.

Converts raw IDL text into a stream of tokens with source location tracking.
Comments are not tokens: the lexer collects them and attaches the
documentation they carry to the first token of the following statement.

Documentation rules:
- Consecutive line comments (`//` or `#`) directly above a token are joined
  with newlines, each line trimmed.
- A block comment (`/* ... */`) directly above a token replaces any
  collected line comments; the leading `*` of each line and one space
  after it are stripped.
- A blank line detaches collected comments. The first detached comment
  before any token becomes the program documentation.
- A line comment on the same line as the previous token is a trailing
  comment and is dropped.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import make_parse_error


class TokenType(Enum):
    """Token types in the IDL."""

    # Literals
    IDENTIFIER = "IDENTIFIER"
    STRING = "STRING"
    NUMBER = "NUMBER"

    # Keywords
    NAMESPACE = "namespace"
    INCLUDE = "include"
    TYPEDEF = "typedef"
    ENUM = "enum"
    STRUCT = "struct"
    UNION = "union"
    EXCEPTION = "exception"
    INTERFACE = "interface"
    IMPLEMENTS = "implements"
    SERVICE = "service"
    EXTENDS = "extends"
    ONEWAY = "oneway"
    VOID = "void"
    THROWS = "throws"
    CONST = "const"
    REQUIRED = "required"
    OPTIONAL = "optional"

    # Punctuation
    LBRACE = "{"
    RBRACE = "}"
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    LESS_THAN = "<"
    GREATER_THAN = ">"
    COMMA = ","
    SEMICOLON = ";"
    COLON = ":"
    EQUALS = "="
    STAR = "*"

    EOF = "EOF"


KEYWORDS = {
    "namespace",
    "include",
    "typedef",
    "enum",
    "struct",
    "union",
    "exception",
    "interface",
    "implements",
    "service",
    "extends",
    "oneway",
    "void",
    "throws",
    "const",
    "required",
    "optional",
}

PUNCTUATION = {
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "<": TokenType.LESS_THAN,
    ">": TokenType.GREATER_THAN,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
    ":": TokenType.COLON,
    "=": TokenType.EQUALS,
    "*": TokenType.STAR,
}


@dataclass
class Token:
    """
    A single token in the IDL.

    Attributes:
        type: Type of token
        value: String value of the token (unescaped for strings)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        doc: Documentation from the comments directly above, if any
    """

    type: TokenType
    value: str
    line: int
    column: int
    doc: str | None = None

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.value!r}, {self.line}:{self.column})"


def clean_block_comment(raw: str) -> str:
    """
    Extract documentation text from a block comment.

    Args:
        raw: Comment text including the `/*` and `*/` delimiters

    Returns:
        Comment body with each line's leading `*` (and one space) removed
    """
    body = raw[2:-2]
    if body.startswith("*"):
        body = body[1:]

    lines = []
    for line in body.split("\n"):
        text = line.strip()
        if text.startswith("*"):
            text = text[1:]
            if text.startswith(" "):
                text = text[1:]
        lines.append(text.rstrip())

    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


class Lexer:
    """
    Lexer for the idlmeta IDL.

    Converts source text into a stream of tokens carrying documentation.
    """

    def __init__(self, text: str, file: Path):
        """
        Initialize lexer.

        Args:
            text: Source text to tokenize
            file: Source file path (for error reporting)
        """
        self.text = text
        self.file = file
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []
        self.program_doc: str | None = None

        self._pending: list[str] = []
        self._pending_is_block = False
        self._newlines = 0  # Newlines since the last token or comment

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self) -> None:
        """Move to next character, updating line/column."""
        if self.pos < len(self.text):
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def snippet(self, line: int) -> str:
        lines = self.text.split("\n")
        return lines[line - 1] if 0 < line <= len(lines) else ""

    def error(self, message: str, line: int, column: int) -> Exception:
        return make_parse_error(message, self.file, line, column, self.snippet(line))

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------

    def _detach_if_separated(self) -> None:
        """Drop collected comments when a blank line follows them."""
        if self._newlines < 2 or not self._pending:
            return
        if not self.tokens and self.program_doc is None:
            self.program_doc = "\n".join(self._pending)
        self._pending = []
        self._pending_is_block = False

    def _take_doc(self) -> str | None:
        doc = "\n".join(self._pending) if self._pending else None
        self._pending = []
        self._pending_is_block = False
        return doc

    def read_line_comment(self, marker_length: int) -> None:
        start_line = self.line
        for _ in range(marker_length):
            self.advance()
        chars = []
        while self.current_char() is not None and self.current_char() != "\n":
            chars.append(self.current_char())
            self.advance()

        if self.tokens and self.tokens[-1].line == start_line:
            return  # trailing comment

        self._detach_if_separated()
        if self._pending_is_block:
            self._pending = []
            self._pending_is_block = False
        self._pending.append("".join(chars).lstrip("/").strip())
        self._newlines = 0

    def read_block_comment(self) -> None:
        start_line = self.line
        start_col = self.column
        start = self.pos
        self.advance()
        self.advance()
        while not (self.current_char() == "*" and self.peek_char() == "/"):
            if self.current_char() is None:
                raise self.error("Unterminated block comment", start_line, start_col)
            self.advance()
        self.advance()
        self.advance()

        self._detach_if_separated()
        text = clean_block_comment(self.text[start : self.pos])
        self._pending = [text] if text else []
        self._pending_is_block = True
        self._newlines = 0

    # -------------------------------------------------------------------------
    # Literals
    # -------------------------------------------------------------------------

    def read_string(self) -> str:
        """Read a quoted string."""
        start_line = self.line
        start_col = self.column
        quote = self.current_char()  # " or '
        self.advance()  # skip opening quote

        chars = []
        while True:
            current = self.current_char()
            if not current or current == quote or current == "\n":
                break

            if current == "\\":
                self.advance()
                escape_char = self.current_char()
                if escape_char == "n":
                    chars.append("\n")
                elif escape_char == "t":
                    chars.append("\t")
                elif escape_char:
                    chars.append(escape_char)
                self.advance()
            else:
                chars.append(current)
                self.advance()

        if self.current_char() != quote:
            raise self.error("Unterminated string literal", start_line, start_col)

        self.advance()  # skip closing quote
        return "".join(chars)

    def read_number(self) -> str:
        """Read an integer, hex integer or decimal, with an optional sign."""
        chars = []
        if self.current_char() in ("-", "+"):
            chars.append(self.current_char())
            self.advance()

        if self.current_char() == "0" and self.peek_char() in ("x", "X"):
            chars.extend(["0", "x"])
            self.advance()
            self.advance()
            while (c := self.current_char()) and c in "0123456789abcdefABCDEF":
                chars.append(c)
                self.advance()
            return "".join(chars)

        while (c := self.current_char()) and (c.isdigit() or c == "."):
            chars.append(c)
            self.advance()
        if self.current_char() in ("e", "E"):
            chars.append(self.current_char())
            self.advance()
            if self.current_char() in ("-", "+"):
                chars.append(self.current_char())
                self.advance()
            while (c := self.current_char()) and c.isdigit():
                chars.append(c)
                self.advance()
        return "".join(chars)

    def read_identifier(self) -> str:
        """Read an identifier or keyword; dots join qualified names."""
        chars = []
        current = self.current_char()
        while current and (current.isalnum() or current in "_."):
            chars.append(current)
            self.advance()
            current = self.current_char()
        return "".join(chars)

    def _emit(self, token_type: TokenType, value: str, line: int, column: int) -> None:
        self._detach_if_separated()
        self.tokens.append(Token(token_type, value, line, column, self._take_doc()))
        self._newlines = 0

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source text.

        Returns:
            List of tokens ending with EOF

        Raises:
            ParseError: If syntax error encountered
        """
        while self.pos < len(self.text):
            ch = self.current_char()
            token_line = self.line
            token_col = self.column

            if ch == "\n":
                self._newlines += 1
                self.advance()

            elif ch in (" ", "\t", "\r"):
                self.advance()

            elif ch == "/" and self.peek_char() == "/":
                self.read_line_comment(2)

            elif ch == "#":
                self.read_line_comment(1)

            elif ch == "/" and self.peek_char() == "*":
                self.read_block_comment()

            elif ch in ('"', "'"):
                value = self.read_string()
                self._emit(TokenType.STRING, value, token_line, token_col)

            elif ch.isdigit() or (ch in ("-", "+") and (self.peek_char() or "").isdigit()):
                self._emit(TokenType.NUMBER, self.read_number(), token_line, token_col)

            elif ch.isalpha() or ch == "_":
                value = self.read_identifier()
                token_type = TokenType(value) if value in KEYWORDS else TokenType.IDENTIFIER
                self._emit(token_type, value, token_line, token_col)

            elif ch in PUNCTUATION:
                self.advance()
                self._emit(PUNCTUATION[ch], ch, token_line, token_col)

            else:
                raise self.error(f"Unexpected character: {ch!r}", token_line, token_col)

        # Comments after the last statement may still form the program doc
        self._newlines = max(self._newlines, 2)
        self._detach_if_separated()

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))
        return self.tokens


def tokenize(text: str, file: Path) -> list[Token]:
    """
    Convenience function to tokenize IDL text.

    Args:
        text: Source text
        file: Source file path

    Returns:
        List of tokens
    """
    lexer = Lexer(text, file)
    return lexer.tokenize()
