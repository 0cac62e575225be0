"""Tests for the IDL lexer and its documentation rules."""

from __future__ import annotations

from pathlib import Path

import pytest

from idlmeta.core.errors import ParseError
from idlmeta.core.lexer import Lexer, TokenType, clean_block_comment, tokenize


def _lex(text: str) -> Lexer:
    lexer = Lexer(text, Path("test.thrift"))
    lexer.tokenize()
    return lexer


def _doc_of(text: str, value: str) -> str | None:
    for token in _lex(text).tokens:
        if token.value == value:
            return token.doc
    raise AssertionError(f"token {value!r} not found")


class TestTokens:
    def test_keywords_and_identifiers(self):
        tokens = tokenize("struct User implements shared.Named {}", Path("t.thrift"))
        assert [t.type for t in tokens] == [
            TokenType.STRUCT,
            TokenType.IDENTIFIER,
            TokenType.IMPLEMENTS,
            TokenType.IDENTIFIER,
            TokenType.LBRACE,
            TokenType.RBRACE,
            TokenType.EOF,
        ]
        assert tokens[3].value == "shared.Named"

    @pytest.mark.parametrize("text", ["42", "-7", "0x1F", "3.14", "1e10", "2.5E-3", "+1"])
    def test_numbers(self, text):
        tokens = tokenize(text, Path("t.thrift"))
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == text.replace("X", "x")

    def test_strings_are_unescaped(self):
        tokens = tokenize(r'"a \"quoted\" \\ value\n" ' + "'single'", Path("t.thrift"))
        assert tokens[0].value == 'a "quoted" \\ value\n'
        assert tokens[1].value == "single"

    def test_locations(self):
        tokens = tokenize("enum A {\n  X\n}", Path("t.thrift"))
        x = tokens[3]
        assert (x.value, x.line, x.column) == ("X", 2, 3)


class TestLineComments:
    def test_consecutive_lines_are_joined_and_trimmed(self):
        text = "//   First line  \n// Second line\nstruct A {}"
        assert _doc_of(text, "struct") == "First line\nSecond line"

    def test_hash_comments(self):
        assert _doc_of("# Hash doc\ntypedef i32 Id", "typedef") == "Hash doc"

    def test_doc_attaches_to_nested_tokens(self):
        text = "struct A {\n  // The x field\n  1: i32 x\n}"
        assert _doc_of(text, "1") == "The x field"

    def test_trailing_comment_is_dropped(self):
        text = "struct A {\n  1: i32 x, // about x\n  2: i32 y\n}"
        assert _doc_of(text, "2") is None

    def test_doc_is_consumed_once(self):
        text = "// Doc\nstruct A {}"
        assert _doc_of(text, "A") is None


class TestBlockComments:
    def test_leading_stars_are_stripped(self):
        text = "/**\n * Summary.\n *\n *   indented\n */\nstruct A {}"
        assert _doc_of(text, "struct") == "Summary.\n\n  indented"

    def test_block_replaces_line_comments(self):
        text = "// dropped\n/* kept */\nstruct A {}"
        assert _doc_of(text, "struct") == "kept"

    def test_line_comment_after_block_starts_over(self):
        text = "/* dropped */\n// kept\nstruct A {}"
        assert _doc_of(text, "struct") == "kept"

    def test_clean_block_comment(self):
        assert clean_block_comment("/** one */") == "one"
        assert clean_block_comment("/*\n * a\n * b\n */") == "a\nb"


class TestDetachedComments:
    def test_blank_line_detaches(self):
        text = "struct A {}\n\n// detached\n\nstruct B {}"
        lexer = _lex(text)
        assert [t.doc for t in lexer.tokens if t.type == TokenType.STRUCT] == [None, None]
        assert lexer.program_doc is None

    def test_first_detached_block_is_program_doc(self):
        text = "// Program doc\n// continues\n\n// also detached\n\nstruct A {}"
        lexer = _lex(text)
        assert lexer.program_doc == "Program doc\ncontinues"
        assert lexer.tokens[0].doc is None

    def test_attached_first_comment_is_not_program_doc(self):
        lexer = _lex("/** Struct doc */\nstruct A {}")
        assert lexer.program_doc is None
        assert lexer.tokens[0].doc == "Struct doc"

    def test_comment_only_file(self):
        assert _lex("/** Only a doc */\n").program_doc == "Only a doc"


class TestErrors:
    def test_unterminated_string(self):
        with pytest.raises(ParseError, match="Unterminated string literal") as exc_info:
            tokenize('const string A = "abc', Path("t.thrift"))
        assert exc_info.value.context.line == 1
        assert exc_info.value.context.column == 18

    def test_unterminated_block_comment(self):
        with pytest.raises(ParseError, match="Unterminated block comment"):
            tokenize("struct A {}\n/* never closed", Path("t.thrift"))

    def test_unexpected_character(self):
        with pytest.raises(ParseError, match="Unexpected character: '@'"):
            tokenize("struct @", Path("t.thrift"))
