# =============================================================================
# test_preprocessor.py - Sketch Preprocessor Tests
# =============================================================================
# Tests for #define / #undef handling, ignored directives, rejected
# directives, and token-level constant expansion.
# =============================================================================

import pytest
from arduino_sim.dialect.lexer import SketchLexer, TokenType
from arduino_sim.dialect.preprocessor import Preprocessor, preprocess
from arduino_sim.errors import PreprocessorError


# =============================================================================
# Helper Function
# =============================================================================

def expanded_values(source: str) -> list:
    """Preprocess, lex and expand; return token values without EOF."""
    text, pp = preprocess(source, "<test>")
    tokens = pp.expand(list(SketchLexer(text, "<test>").tokenize()))
    return [t.value for t in tokens if t.type != TokenType.EOF]


# =============================================================================
# Directive Processing Tests
# =============================================================================

class TestDirectives:
    """Test directive collection and line blanking."""

    def test_define_collected(self):
        pp = Preprocessor("#define LED 13\nint x;")
        pp.process()
        assert "LED" in pp.macros
        assert pp.macros["LED"].body == "13"

    def test_directive_lines_blanked(self):
        """Line numbers survive preprocessing."""
        source = "#define LED 13\n#include <Servo.h>\nint x;"
        text, _ = preprocess(source)
        assert text.split("\n") == ["", "", "int x;"]

    def test_define_without_body(self):
        pp = Preprocessor("#define DEBUG")
        pp.process()
        assert pp.macros["DEBUG"].tokens == []

    def test_trailing_comment_stripped(self):
        pp = Preprocessor("#define LED 13 // the built-in LED")
        pp.process()
        assert pp.macros["LED"].body == "13"

    def test_undef(self):
        pp = Preprocessor("#define LED 13\n#undef LED")
        pp.process()
        assert "LED" not in pp.macros

    def test_include_and_pragma_ignored(self):
        text, pp = preprocess('#include "Wire.h"\n#pragma once\n')
        assert pp.macros == {}
        assert text.strip() == ""

    def test_hash_inside_block_comment_untouched(self):
        source = "/*\n#define X 1\n*/\nint y;"
        text, pp = preprocess(source)
        assert pp.macros == {}
        assert text == source

    def test_parenthesized_body_is_object_like(self):
        pp = Preprocessor("#define TWICE (2 * 3)")
        pp.process()
        assert pp.macros["TWICE"].body == "(2 * 3)"


# =============================================================================
# Rejected Directive Tests
# =============================================================================

class TestRejectedDirectives:
    """Unsupported directives raise PreprocessorError."""

    def test_function_like_macro(self):
        with pytest.raises(PreprocessorError, match="function-like macro"):
            preprocess("#define SQUARE(x) ((x) * (x))")

    @pytest.mark.parametrize("directive", ["#ifdef DEBUG", "#ifndef X", "#if 1", "#endif"])
    def test_conditionals(self, directive):
        with pytest.raises(PreprocessorError, match="conditional compilation"):
            preprocess(directive)

    def test_unknown_directive(self):
        with pytest.raises(PreprocessorError, match="unknown preprocessor directive"):
            preprocess("#warning careful")

    def test_error_location(self):
        with pytest.raises(PreprocessorError) as exc_info:
            preprocess("int x;\n#ifdef X", "blink.ino")
        assert exc_info.value.location.line == 2


# =============================================================================
# Expansion Tests
# =============================================================================

class TestExpansion:
    """Constant expansion on the token stream."""

    def test_simple_expansion(self):
        assert expanded_values("#define LED 13\npinMode(LED, OUTPUT);") == [
            "pinMode", "(", 13, ",", "OUTPUT", ")", ";",
        ]

    def test_nested_expansion(self):
        source = "#define BASE 2\n#define DOUBLE (BASE * 2)\nx = DOUBLE;"
        assert expanded_values(source) == ["x", "=", "(", 2, "*", 2, ")", ";"]

    def test_strings_not_expanded(self):
        assert expanded_values('#define LED 13\nprint("LED");') == ["print", "(", "LED", ")", ";"]

    def test_longer_identifiers_not_expanded(self):
        assert expanded_values("#define LED 13\nLED_PIN;") == ["LED_PIN", ";"]

    def test_self_reference_stops(self):
        assert expanded_values("#define X X\nX;") == ["X", ";"]

    def test_expanded_tokens_take_use_location(self):
        text, pp = preprocess("#define LED 13\n\n  x = LED;")
        tokens = pp.expand(list(SketchLexer(text).tokenize()))
        number = next(t for t in tokens if t.type == TokenType.NUMBER)
        assert (number.line, number.column) == (3, 7)

    def test_no_macros_returns_tokens_unchanged(self):
        text, pp = preprocess("int x;")
        tokens = list(SketchLexer(text).tokenize())
        assert pp.expand(tokens) is tokens
