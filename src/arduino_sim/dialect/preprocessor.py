"""
Sketch Preprocessor
===================

This module implements the small preprocessor of the sketch dialect.
It handles:
- #define NAME value (object-like constants)
- #undef NAME
- #include and #pragma, which are accepted and ignored

Directives are processed line by line before lexing. Each directive line
is replaced with an empty line so that token locations still match the
sketch. Macro expansion is done afterwards on the token stream, so names
inside string literals and longer identifiers are never touched.

Supported Directives
--------------------
#define NAME value          - Object-like constant
#define NAME                - Defined with an empty body
#undef NAME                 - Remove a constant
#include <file> / "file"    - Ignored (libraries are not simulated)
#pragma ...                 - Ignored

Function-like macros and conditional compilation are rejected with a
PreprocessorError.

Example
-------
>>> from arduino_sim.dialect.preprocessor import Preprocessor
>>> pp = Preprocessor("#define LED 13\\nvoid setup() { pinMode(LED, OUTPUT); }")
>>> text = pp.process()
>>> sorted(pp.macros)
['LED']
"""

from dataclasses import dataclass, field
from typing import Optional
import logging
import re

from arduino_sim.errors import SourceLocation, PreprocessorError
from arduino_sim.dialect.lexer import SketchLexer, Token, TokenType

logger = logging.getLogger(__name__)


@dataclass
class Macro:
    """
    An object-like preprocessor constant.

    Attributes:
        name: Macro name
        body: Replacement text
        location: Where the macro was defined
        tokens: Lexed body (EOF excluded)
    """
    name: str
    body: str
    location: Optional[SourceLocation] = None
    tokens: list[Token] = field(default_factory=list)


class Preprocessor:
    """
    Preprocessor for sketch source.

    Usage:
        pp = Preprocessor(source, filename)
        text = pp.process()
        tokens = pp.expand(list(SketchLexer(text, filename).tokenize()))

    Attributes:
        source: Original source code
        filename: Sketch name for error reporting
        macros: Constants defined by the sketch, after process()
    """

    DIRECTIVE_PATTERN = re.compile(r'^\s*#\s*(\w*)')

    DEFINE_PATTERN = re.compile(r'^\s*#\s*define\s+([A-Za-z_]\w*)(\()?\s*(.*?)\s*$')

    UNDEF_PATTERN = re.compile(r'^\s*#\s*undef\s+([A-Za-z_]\w*)\s*$')

    CONDITIONALS = frozenset({"if", "ifdef", "ifndef", "elif", "else", "endif"})

    IGNORED = frozenset({"include", "pragma"})

    # Nested expansion beyond this depth means a self-referential chain
    MAX_EXPANSION_DEPTH = 32

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename
        self.macros: dict[str, Macro] = {}
        self._current_line = 0
        self._in_block_comment = False

    def process(self) -> str:
        """
        Collect directives and return the source with directive lines blanked.

        Raises:
            PreprocessorError: On malformed or unsupported directives
        """
        output = []
        for i, line in enumerate(self.source.split("\n")):
            self._current_line = i + 1
            output.append(self._process_line(line))
        return "\n".join(output)

    def _process_line(self, line: str) -> str:
        if self._in_block_comment:
            self._track_block_comment(line)
            return line

        match = self.DIRECTIVE_PATTERN.match(line)
        if not match:
            self._track_block_comment(line)
            return line

        self._process_directive(match.group(1), line)
        return ""

    def _track_block_comment(self, line: str) -> None:
        """Follow /* */ state so '#' lines inside comments are left alone."""
        pos = 0
        while True:
            if self._in_block_comment:
                end = line.find("*/", pos)
                if end == -1:
                    return
                self._in_block_comment = False
                pos = end + 2
            else:
                start = line.find("/*", pos)
                line_comment = line.find("//", pos)
                if start == -1 or (line_comment != -1 and line_comment < start):
                    return
                self._in_block_comment = True
                pos = start + 2

    def _location(self) -> SourceLocation:
        return SourceLocation(self.filename, self._current_line, 1)

    def _process_directive(self, directive: str, line: str) -> None:
        if directive == "define":
            self._process_define(line)
        elif directive == "undef":
            self._process_undef(line)
        elif directive in self.IGNORED:
            logger.debug("ignoring #%s at line %d", directive, self._current_line)
        elif directive in self.CONDITIONALS:
            raise PreprocessorError(
                f"conditional compilation (#{directive}) is not supported",
                self._location(),
                source_line=line,
            )
        else:
            raise PreprocessorError(
                f"unknown preprocessor directive '#{directive}'",
                self._location(),
                source_line=line,
            )

    def _process_define(self, line: str) -> None:
        match = self.DEFINE_PATTERN.match(line)
        if not match:
            raise PreprocessorError("invalid #define syntax", self._location(), source_line=line)

        name, paren, body = match.groups()
        if paren:
            raise PreprocessorError(
                f"function-like macro '{name}' is not supported",
                self._location(),
                hint="use a function or a const variable instead",
                source_line=line,
            )

        body = _strip_trailing_comment(body)
        lexer = SketchLexer(body, self.filename, self._current_line)
        tokens = [t for t in lexer.tokenize() if t.type != TokenType.EOF]

        self.macros[name] = Macro(name=name, body=body, location=self._location(), tokens=tokens)
        logger.debug("defined %s = %r", name, body)

    def _process_undef(self, line: str) -> None:
        match = self.UNDEF_PATTERN.match(line)
        if not match:
            raise PreprocessorError("invalid #undef syntax", self._location(), source_line=line)
        self.macros.pop(match.group(1), None)

    # =========================================================================
    # Token-level Expansion
    # =========================================================================

    def expand(self, tokens: list[Token]) -> list[Token]:
        """
        Replace identifier tokens naming a macro with the macro's tokens.

        Expansion is recursive; a macro is never expanded inside its own
        expansion. Replacement tokens take the location of the name they
        replace.

        Raises:
            PreprocessorError: If expansion nests too deeply
        """
        if not self.macros:
            return tokens
        result: list[Token] = []
        for token in tokens:
            result.extend(self._expand_token(token, frozenset(), 0))
        return result

    def _expand_token(self, token: Token, active: frozenset[str], depth: int) -> list[Token]:
        if token.type != TokenType.IDENTIFIER or token.value not in self.macros or token.value in active:
            return [token]
        if depth >= self.MAX_EXPANSION_DEPTH:
            raise PreprocessorError(
                f"macro '{token.value}' expands too deeply",
                token.location,
            )

        macro = self.macros[token.value]
        expanded = []
        for body_token in macro.tokens:
            relocated = Token(body_token.type, body_token.value, token.line, token.column, token.filename)
            expanded.extend(self._expand_token(relocated, active | {macro.name}, depth + 1))
        return expanded


def _strip_trailing_comment(body: str) -> str:
    """Drop a '//' or '/* */' comment trailing a #define body."""
    in_string = False
    quote = ""
    i = 0
    while i < len(body):
        char = body[i]
        if in_string:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                in_string = False
        elif char in ("'", '"'):
            in_string = True
            quote = char
        elif body.startswith("//", i) or body.startswith("/*", i):
            return body[:i].rstrip()
        i += 1
    return body


def preprocess(source: str, filename: str = "<input>") -> tuple[str, Preprocessor]:
    """
    Run the directive pass over ``source``.

    Returns:
        Tuple of (blanked source text, preprocessor holding the macros)
    """
    pp = Preprocessor(source, filename)
    return pp.process(), pp
