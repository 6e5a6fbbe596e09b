"""
Sketch Lexer (Tokenizer)
========================

This module implements the lexer for the Arduino-flavored C dialect.
It converts sketch source text into a stream of tokens for the parser.

Comments are discarded here, which is the first rewriting rule of the
transformer: nothing downstream ever sees ``//`` or ``/* */`` text, and
comment markers inside string literals are left alone.

Token Categories
----------------
- Type keywords: int, float, long, double, boolean, bool, byte, char,
  String, short, word, unsigned, signed, void
- Qualifiers: const, static, volatile
- Control keywords: if, else, while, for, do, switch, case, default,
  break, continue, return
- Identifiers: variable, function and constant names (HIGH, OUTPUT, ...)
- Numbers: decimal, hexadecimal (0x), octal (0), binary (0b), floating
  point (1.5, .5, 2e3); integer suffixes (U, L, UL) are accepted
- Strings: "double quoted"
- Characters: 'c' (value is the character code)
- Operators and delimiters, including '.' for ``Serial.println``

Example Usage
-------------
>>> from arduino_sim.dialect.lexer import SketchLexer
>>> for token in SketchLexer("int x = 0x1F;").tokenize():
...     print(token)
Token(TYPE_KEYWORD, 'int', 1:1)
Token(IDENTIFIER, 'x', 1:5)
Token(ASSIGN, '=', 1:7)
Token(NUMBER, 31, 1:9)
Token(SEMICOLON, ';', 1:13)
Token(EOF, 1:14)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string

from arduino_sim.errors import (
    SourceLocation,
    SketchSyntaxError,
    UnterminatedStringError,
    InvalidCharacterError,
)


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for the sketch dialect."""

    # === Structural Tokens ===
    EOF = auto()

    # === Identifiers and Literals ===
    IDENTIFIER = auto()
    NUMBER = auto()         # int or float value
    STRING = auto()
    CHAR_LITERAL = auto()   # value is the character code

    # === Keywords ===
    TYPE_KEYWORD = auto()   # int, unsigned, String, ... (value holds the word)
    QUALIFIER = auto()      # const, static, volatile

    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    DO = auto()
    SWITCH = auto()
    CASE = auto()
    DEFAULT = auto()
    BREAK = auto()
    CONTINUE = auto()
    RETURN = auto()

    # === Arithmetic Operators ===
    PLUS = auto()           # +
    MINUS = auto()          # -
    STAR = auto()           # *
    SLASH = auto()          # /
    PERCENT = auto()        # %
    INCREMENT = auto()      # ++
    DECREMENT = auto()      # --

    # === Comparison Operators ===
    EQ = auto()             # ==
    NE = auto()             # !=
    LT = auto()             # <
    GT = auto()             # >
    LE = auto()             # <=
    GE = auto()             # >=

    # === Logical Operators ===
    AND = auto()            # &&
    OR = auto()             # ||
    NOT = auto()            # !

    # === Bitwise Operators ===
    AMPERSAND = auto()      # &
    PIPE = auto()           # |
    CARET = auto()          # ^
    TILDE = auto()          # ~
    LSHIFT = auto()         # <<
    RSHIFT = auto()         # >>

    # === Assignment Operators ===
    ASSIGN = auto()         # =
    PLUS_ASSIGN = auto()    # +=
    MINUS_ASSIGN = auto()   # -=
    STAR_ASSIGN = auto()    # *=
    SLASH_ASSIGN = auto()   # /=
    PERCENT_ASSIGN = auto() # %=
    AND_ASSIGN = auto()     # &=
    OR_ASSIGN = auto()      # |=
    XOR_ASSIGN = auto()     # ^=
    LSHIFT_ASSIGN = auto()  # <<=
    RSHIFT_ASSIGN = auto()  # >>=

    # === Delimiters ===
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    SEMICOLON = auto()
    COMMA = auto()
    COLON = auto()
    QUESTION = auto()
    DOT = auto()


# =============================================================================
# Keyword Mapping
# =============================================================================

# Primitive type words of the dialect. Multi-word types (unsigned long)
# are assembled by the parser from consecutive TYPE_KEYWORD tokens.
TYPE_KEYWORDS: frozenset[str] = frozenset({
    "void", "int", "float", "long", "double", "boolean", "bool", "byte",
    "char", "String", "short", "word", "unsigned", "signed",
})

QUALIFIERS: frozenset[str] = frozenset({"const", "static", "volatile"})

KEYWORDS: dict[str, TokenType] = {
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "do": TokenType.DO,
    "switch": TokenType.SWITCH,
    "case": TokenType.CASE,
    "default": TokenType.DEFAULT,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "return": TokenType.RETURN,
}


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token from sketch source.

    Attributes:
        type: The TokenType classification
        value: Token value (str for names and operators, int/float for numbers)
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the sketch
    """
    type: TokenType
    value: str | int | float | None
    line: int
    column: int
    filename: str

    def __repr__(self) -> str:
        if self.value is None:
            return f"Token({self.type.name}, {self.line}:{self.column})"
        if isinstance(self.value, (int, float)):
            return f"Token({self.type.name}, {self.value}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)


# Operator spellings, longest first so that '<<=' wins over '<<' and '<'.
OPERATORS: list[tuple[str, TokenType]] = [
    ("<<=", TokenType.LSHIFT_ASSIGN),
    (">>=", TokenType.RSHIFT_ASSIGN),
    ("++", TokenType.INCREMENT),
    ("--", TokenType.DECREMENT),
    ("+=", TokenType.PLUS_ASSIGN),
    ("-=", TokenType.MINUS_ASSIGN),
    ("*=", TokenType.STAR_ASSIGN),
    ("/=", TokenType.SLASH_ASSIGN),
    ("%=", TokenType.PERCENT_ASSIGN),
    ("&=", TokenType.AND_ASSIGN),
    ("|=", TokenType.OR_ASSIGN),
    ("^=", TokenType.XOR_ASSIGN),
    ("==", TokenType.EQ),
    ("!=", TokenType.NE),
    ("<=", TokenType.LE),
    (">=", TokenType.GE),
    ("&&", TokenType.AND),
    ("||", TokenType.OR),
    ("<<", TokenType.LSHIFT),
    (">>", TokenType.RSHIFT),
    ("+", TokenType.PLUS),
    ("-", TokenType.MINUS),
    ("*", TokenType.STAR),
    ("/", TokenType.SLASH),
    ("%", TokenType.PERCENT),
    ("<", TokenType.LT),
    (">", TokenType.GT),
    ("!", TokenType.NOT),
    ("&", TokenType.AMPERSAND),
    ("|", TokenType.PIPE),
    ("^", TokenType.CARET),
    ("~", TokenType.TILDE),
    ("=", TokenType.ASSIGN),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    ("{", TokenType.LBRACE),
    ("}", TokenType.RBRACE),
    ("[", TokenType.LBRACKET),
    ("]", TokenType.RBRACKET),
    (";", TokenType.SEMICOLON),
    (",", TokenType.COMMA),
    (":", TokenType.COLON),
    ("?", TokenType.QUESTION),
    (".", TokenType.DOT),
]


# =============================================================================
# Lexer Implementation
# =============================================================================

class SketchLexer:
    """
    Tokenizes sketch source code.

    Usage:
        lexer = SketchLexer(source_text, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source code being tokenized
        filename: Name of the sketch (for error reporting)
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    ESCAPE_SEQUENCES = {
        "n": "\n",
        "r": "\r",
        "t": "\t",
        "b": "\b",
        "f": "\f",
        "v": "\v",
        "\\": "\\",
        "'": "'",
        '"': '"',
        "0": "\0",
        "a": "\a",
    }

    def __init__(
        self,
        source: str,
        filename: str = "<input>",
        line_number: int = 1,
    ):
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = line_number
        self._column = 1
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects, always terminated by an EOF token

        Raises:
            SketchSyntaxError: If invalid syntax is encountered
        """
        while True:
            self._skip_whitespace_and_comments()
            if self._at_end():
                break
            yield self._scan_token()

        yield self._make_token(TokenType.EOF, None)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look at a character without advancing; '' past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume and return the current character, tracking line/column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: str | int | float | None,
        start_line: Optional[int] = None,
        start_column: Optional[int] = None,
    ) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=start_line or self._line,
            column=start_column or self._column,
            filename=self.filename,
        )

    def _error(self, message: str, hint: Optional[str] = None) -> SketchSyntaxError:
        """Create a syntax error at the current position."""
        location = SourceLocation(self.filename, self._line, self._column)
        return SketchSyntaxError(message, location, hint=hint, source_line=self._get_current_line())

    def _get_current_line(self) -> str:
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace_and_comments(self) -> None:
        while not self._at_end():
            char = self._peek()

            if char in " \t\n\r\f\v":
                self._advance()
                continue

            if char == "/" and self._peek(1) == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
                continue

            if char == "/" and self._peek(1) == "*":
                self._skip_block_comment()
                continue

            break

    def _skip_block_comment(self) -> None:
        """
        Skip a block comment (/* ... */).

        Raises:
            SketchSyntaxError: If the comment is not terminated
        """
        start = SourceLocation(self.filename, self._line, self._column)
        self._advance()
        self._advance()

        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

        raise SketchSyntaxError(
            "unterminated block comment",
            start,
            hint="add closing */ to terminate the comment",
        )

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        start_line = self._line
        start_column = self._column
        char = self._peek()

        if char in self.IDENT_START:
            return self._scan_identifier(start_line, start_column)

        if char.isdigit() or (char == "." and self._peek(1).isdigit()):
            return self._scan_number(start_line, start_column)

        if char == '"':
            return self._scan_string(start_line, start_column)

        if char == "'":
            return self._scan_char(start_line, start_column)

        return self._scan_operator(start_line, start_column)

    def _scan_identifier(self, start_line: int, start_column: int) -> Token:
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())
        name = "".join(chars)

        if name in KEYWORDS:
            return self._make_token(KEYWORDS[name], name, start_line, start_column)
        if name in TYPE_KEYWORDS:
            return self._make_token(TokenType.TYPE_KEYWORD, name, start_line, start_column)
        if name in QUALIFIERS:
            return self._make_token(TokenType.QUALIFIER, name, start_line, start_column)
        return self._make_token(TokenType.IDENTIFIER, name, start_line, start_column)

    def _scan_number(self, start_line: int, start_column: int) -> Token:
        """
        Scan a numeric literal.

        Handles:
        - Decimal: 123, 123UL
        - Hexadecimal: 0x7F
        - Binary: 0b1010 (and the Arduino B1010 form is left to the parser
          as an identifier)
        - Octal: 0177
        - Floating point: 1.5, .5, 1e3, 2.5f
        """
        if self._peek() == "0" and self._peek(1).lower() in ("x", "b"):
            base = 16 if self._peek(1).lower() == "x" else 2
            self._advance()
            self._advance()
            digits = string.hexdigits if base == 16 else "01"
            chars = []
            while self._peek() and self._peek() in digits:
                chars.append(self._advance())
            if not chars:
                prefix = "0x" if base == 16 else "0b"
                raise self._error(f"expected digits after '{prefix}'")
            self._skip_integer_suffix()
            return self._make_token(TokenType.NUMBER, int("".join(chars), base), start_line, start_column)

        chars = []
        while self._peek().isdigit():
            chars.append(self._advance())

        is_float = False
        if self._peek() == "." and self._peek(1).isdigit() or (self._peek() == "." and chars):
            is_float = True
            chars.append(self._advance())
            while self._peek().isdigit():
                chars.append(self._advance())

        if self._peek() in ("e", "E") and (
            self._peek(1).isdigit() or (self._peek(1) in "+-" and self._peek(2).isdigit())
        ):
            is_float = True
            chars.append(self._advance())
            if self._peek() in "+-":
                chars.append(self._advance())
            while self._peek().isdigit():
                chars.append(self._advance())

        text = "".join(chars)
        if is_float:
            if self._peek() in ("f", "F"):
                self._advance()
            return self._make_token(TokenType.NUMBER, float(text), start_line, start_column)

        self._skip_integer_suffix()
        if len(text) > 1 and text.startswith("0"):
            if any(c not in "01234567" for c in text):
                raise SketchSyntaxError(
                    f"invalid octal literal '{text}'",
                    SourceLocation(self.filename, start_line, start_column),
                )
            return self._make_token(TokenType.NUMBER, int(text, 8), start_line, start_column)
        return self._make_token(TokenType.NUMBER, int(text), start_line, start_column)

    def _skip_integer_suffix(self) -> None:
        while self._peek() in ("u", "U", "l", "L"):
            self._advance()

    def _scan_string(self, start_line: int, start_column: int) -> Token:
        """Scan a double-quoted string literal with escape sequences."""
        self._advance()

        chars = []
        while not self._at_end():
            char = self._peek()

            if char == '"':
                self._advance()
                return self._make_token(TokenType.STRING, "".join(chars), start_line, start_column)

            if char == "\n":
                raise UnterminatedStringError(
                    SourceLocation(self.filename, start_line, start_column),
                    self._get_current_line(),
                )

            if char == "\\":
                self._advance()
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        raise UnterminatedStringError(SourceLocation(self.filename, start_line, start_column))

    def _scan_char(self, start_line: int, start_column: int) -> Token:
        """Scan a character literal; the token value is its character code."""
        self._advance()

        if self._at_end() or self._peek() == "\n":
            raise SketchSyntaxError(
                "unterminated character literal",
                SourceLocation(self.filename, start_line, start_column),
                hint="add closing ' to complete the character literal",
            )

        if self._peek() == "\\":
            self._advance()
            char = self._scan_escape_sequence()
        else:
            char = self._advance()

        if self._peek() != "'":
            raise SketchSyntaxError(
                "character literal too long or missing closing quote",
                SourceLocation(self.filename, self._line, self._column),
                hint="character literals can only contain a single character",
            )
        self._advance()

        return self._make_token(TokenType.CHAR_LITERAL, ord(char), start_line, start_column)

    def _scan_escape_sequence(self) -> str:
        if self._at_end():
            raise self._error("unexpected end of input in escape sequence")

        char = self._advance()

        if char in self.ESCAPE_SEQUENCES:
            return self.ESCAPE_SEQUENCES[char]

        if char == "x":
            hex_chars = []
            for _ in range(2):
                if self._peek() and self._peek() in string.hexdigits:
                    hex_chars.append(self._advance())
                else:
                    break
            if not hex_chars:
                raise self._error("expected hexadecimal digits after '\\x'")
            return chr(int("".join(hex_chars), 16))

        # Unknown escape: keep the character as-is
        return char

    def _scan_operator(self, start_line: int, start_column: int) -> Token:
        for spelling, token_type in OPERATORS:
            if self.source.startswith(spelling, self._pos):
                for _ in spelling:
                    self._advance()
                return self._make_token(token_type, spelling, start_line, start_column)

        char = self._peek()
        raise InvalidCharacterError(
            char,
            SourceLocation(self.filename, start_line, start_column),
            self._get_current_line(),
        )


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Tokenize ``source`` into a list ending with an EOF token."""
    return list(SketchLexer(source, filename).tokenize())
