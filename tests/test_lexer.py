# =============================================================================
# test_lexer.py - Sketch Lexer Unit Tests
# =============================================================================
# Tests for the sketch dialect tokenizer.
#
# Test coverage includes:
#   - Keywords, type keywords and qualifiers
#   - Number formats: decimal, hex (0x), binary (0b), octal, float, suffixes
#   - String and character literals with escape sequences
#   - Comment removal (line and block)
#   - Operators (longest match) and member access dots
#   - Source positions and error conditions
# =============================================================================

import pytest
from arduino_sim.dialect.lexer import SketchLexer, TokenType
from arduino_sim.errors import (
    SketchSyntaxError,
    UnterminatedStringError,
    InvalidCharacterError,
)


# =============================================================================
# Helper Function
# =============================================================================

def tokenize(source: str) -> list:
    """Tokenize and drop the trailing EOF token."""
    tokens = list(SketchLexer(source, "<test>").tokenize())
    return [t for t in tokens if t.type != TokenType.EOF]


def types(source: str) -> list:
    return [t.type for t in tokenize(source)]


# =============================================================================
# Basic Token Recognition Tests
# =============================================================================

class TestBasicTokens:
    """Test basic token recognition."""

    def test_empty_source(self):
        """Empty source produces only EOF."""
        tokens = list(SketchLexer("").tokenize())
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_identifier(self):
        tokens = tokenize("ledPin")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "ledPin"

    def test_board_constants_are_identifiers(self):
        """HIGH, OUTPUT and friends are names; the emitter maps them."""
        assert types("HIGH OUTPUT LED_BUILTIN A0") == [TokenType.IDENTIFIER] * 4

    def test_type_keywords(self):
        tokens = tokenize("int float unsigned long String boolean byte void")
        assert all(t.type == TokenType.TYPE_KEYWORD for t in tokens)
        assert [t.value for t in tokens] == [
            "int", "float", "unsigned", "long", "String", "boolean", "byte", "void",
        ]

    def test_qualifiers(self):
        assert types("const static volatile") == [TokenType.QUALIFIER] * 3

    def test_control_keywords(self):
        assert types("if else while for do switch case default break continue return") == [
            TokenType.IF, TokenType.ELSE, TokenType.WHILE, TokenType.FOR, TokenType.DO,
            TokenType.SWITCH, TokenType.CASE, TokenType.DEFAULT, TokenType.BREAK,
            TokenType.CONTINUE, TokenType.RETURN,
        ]


# =============================================================================
# Number Format Tests
# =============================================================================

class TestNumberFormats:
    """Test numeric literal recognition."""

    @pytest.mark.parametrize("source,value", [
        ("123", 123),
        ("0", 0),
        ("0x1F", 31),
        ("0XFF", 255),
        ("0b101", 5),
        ("017", 15),
        ("10UL", 10),
        ("42L", 42),
    ])
    def test_integers(self, source, value):
        tokens = tokenize(source)
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == value
        assert isinstance(tokens[0].value, int)

    @pytest.mark.parametrize("source,value", [
        ("1.5", 1.5),
        (".5", 0.5),
        ("2e3", 2000.0),
        ("1.5e-2", 0.015),
        ("2.5f", 2.5),
    ])
    def test_floats(self, source, value):
        tokens = tokenize(source)
        assert len(tokens) == 1
        assert tokens[0].value == pytest.approx(value)
        assert isinstance(tokens[0].value, float)

    def test_invalid_octal(self):
        with pytest.raises(SketchSyntaxError, match="invalid octal"):
            tokenize("09")

    def test_hex_without_digits(self):
        with pytest.raises(SketchSyntaxError, match="expected digits"):
            tokenize("0x;")

    def test_arduino_binary_constant_is_identifier(self):
        """B1010 is resolved later, not by the lexer."""
        tokens = tokenize("B1010")
        assert tokens[0].type == TokenType.IDENTIFIER


# =============================================================================
# String and Character Literal Tests
# =============================================================================

class TestLiterals:
    """Test string and character literals."""

    def test_string(self):
        tokens = tokenize('"hello"')
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == "hello"

    def test_string_escapes(self):
        tokens = tokenize(r'"a\tb\n\"q\"\x41"')
        assert tokens[0].value == 'a\tb\n"q"A'

    def test_comment_markers_inside_string(self):
        tokens = tokenize('"http://example" /* gone */')
        assert len(tokens) == 1
        assert tokens[0].value == "http://example"

    def test_char_literal_is_code(self):
        tokens = tokenize("'A'")
        assert tokens[0].type == TokenType.CHAR_LITERAL
        assert tokens[0].value == 65

    def test_char_escape(self):
        assert tokenize(r"'\n'")[0].value == 10

    def test_unterminated_string(self):
        with pytest.raises(UnterminatedStringError):
            tokenize('"oops\n";')

    def test_char_literal_too_long(self):
        with pytest.raises(SketchSyntaxError):
            tokenize("'ab'")


# =============================================================================
# Comment Tests
# =============================================================================

class TestComments:
    """Comments never reach the parser."""

    def test_line_comment(self):
        assert types("x // comment\ny") == [TokenType.IDENTIFIER, TokenType.IDENTIFIER]

    def test_block_comment(self):
        assert types("x /* multi\nline */ y") == [TokenType.IDENTIFIER, TokenType.IDENTIFIER]

    def test_unterminated_block_comment(self):
        with pytest.raises(SketchSyntaxError, match="unterminated block comment"):
            tokenize("x /* never closed")


# =============================================================================
# Operator Tests
# =============================================================================

class TestOperators:
    """Test operator recognition (longest match wins)."""

    def test_shift_assign(self):
        assert types("a <<= 2") == [TokenType.IDENTIFIER, TokenType.LSHIFT_ASSIGN, TokenType.NUMBER]

    def test_increment_vs_plus(self):
        assert types("i++ + 1") == [
            TokenType.IDENTIFIER, TokenType.INCREMENT, TokenType.PLUS, TokenType.NUMBER,
        ]

    def test_logical_and_bitwise(self):
        assert types("&& & || |") == [
            TokenType.AND, TokenType.AMPERSAND, TokenType.OR, TokenType.PIPE,
        ]

    def test_member_call(self):
        assert types("Serial.println") == [TokenType.IDENTIFIER, TokenType.DOT, TokenType.IDENTIFIER]

    def test_invalid_character(self):
        with pytest.raises(InvalidCharacterError) as exc_info:
            tokenize("int x = 1 @ 2;")
        assert exc_info.value.char == "@"


# =============================================================================
# Position Tracking Tests
# =============================================================================

class TestPositions:
    """Tokens carry 1-based line and column numbers."""

    def test_line_and_column(self):
        tokens = tokenize("int x;\n  delay(5);")
        delay = tokens[3]
        assert delay.value == "delay"
        assert (delay.line, delay.column) == (2, 3)

    def test_location_in_error_message(self):
        with pytest.raises(InvalidCharacterError) as exc_info:
            tokenize("void setup() {\n  $\n}")
        message = str(exc_info.value)
        assert "<test>:2:3" in message
        assert "^" in message
