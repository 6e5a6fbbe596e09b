"""
Arduino Simulator Error Hierarchy
=================================

This module defines the exception hierarchy for the whole simulator.
All exceptions inherit from SimulatorError, allowing callers to catch
every simulator-related error with a single except clause if desired.

Exception Hierarchy
-------------------
SimulatorError (base)
├── MalformedSourceError - the sketch could not be turned into a runnable unit
│   ├── SketchSyntaxError - lexer and parser errors
│   │   ├── UnterminatedStringError - missing closing quote
│   │   ├── InvalidCharacterError - unexpected character
│   │   ├── UnexpectedTokenError - token does not fit the grammar
│   │   └── MissingTokenError - required token not found
│   └── PreprocessorError - invalid or unsupported directive
├── RuntimeExecutionError - error raised while setup() or loop() ran
├── InvalidPinAccess - primitive called with an unknown pin label
└── MissingEntryPoint - no loop() routine in the sketch

Error Message Format
--------------------
Located errors follow the familiar compiler layout:

    sketch.ino:5:12: error: unexpected token '}'
        digitalWrite(13, HIGH}
                           ^
    hint: expected ')'

The scheduler never lets these escape to its caller: they are converted
to log entries of kind ``error`` (see arduino_sim.runtime.simulator).
"""

from dataclasses import dataclass
from typing import Optional, Union


# =============================================================================
# Base Exception Class
# =============================================================================

class SimulatorError(Exception):
    """
    Base exception for all simulator errors.

    All exceptions in the package inherit from this class, allowing callers
    to catch every simulator-related error with a single except clause:

        try:
            translate(source)
        except SimulatorError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in sketch source for error reporting.

    Attributes:
        filename: Name of the sketch (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Transformation Errors
# =============================================================================

class MalformedSourceError(SimulatorError):
    """
    The transformer failed to produce a runnable unit.

    Raised for lexical and syntax errors, unsupported preprocessor
    directives, and any exception the Python compiler or the module body
    raises while the executable unit is being constructed. In the latter
    case the original exception is chained as ``__cause__``.

    Attributes:
        message: The error description
        location: Where in the sketch the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The sketch text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            blink.ino:4:3: error: expected ';'
                digitalWrite(13, HIGH)
                                      ^
            hint: statements end with ';'
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        # Source context with caret pointer
        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)

    @classmethod
    def from_exception(cls, error: BaseException, filename: str = "<input>") -> "MalformedSourceError":
        """
        Wrap an exception raised while building the executable unit.

        Python SyntaxErrors carry a line number into the generated code,
        which is reported as-is because it rarely maps 1:1 to the sketch.
        """
        location = None
        if isinstance(error, SyntaxError) and error.lineno:
            location = SourceLocation(filename, error.lineno, error.offset or 0)
            message = f"{type(error).__name__}: {error.msg}"
        else:
            message = f"{type(error).__name__}: {error}"
        wrapped = cls(message, location)
        wrapped.__cause__ = error
        return wrapped


class SketchSyntaxError(MalformedSourceError):
    """
    Syntax error in sketch source.

    Raised when the lexer or parser encounters input that cannot be
    tokenized or parsed according to the dialect grammar.

    Examples:
        - Unterminated string literal
        - Missing semicolon
        - Mismatched braces
    """
    pass


class UnterminatedStringError(SketchSyntaxError):
    """Unterminated string literal."""

    def __init__(
        self,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(
            "unterminated string literal",
            location=location,
            hint="add closing '\"' to complete the string",
            source_line=source_line,
        )


class InvalidCharacterError(SketchSyntaxError):
    """Character that is not valid anywhere in the dialect."""

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.char = char
        super().__init__(
            f"invalid character '{char}' (0x{ord(char):02X})",
            location=location,
            source_line=source_line,
        )


class UnexpectedTokenError(SketchSyntaxError):
    """Token that does not fit the grammar rule being parsed."""

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected
        super().__init__(
            f"unexpected token '{found}'",
            location=location,
            hint=f"expected {expected}" if expected else None,
            source_line=source_line,
        )


class MissingTokenError(SketchSyntaxError):
    """Required token (like ';' or ')') not found where expected."""

    def __init__(
        self,
        expected: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        super().__init__(
            f"expected {expected}",
            location=location,
            source_line=source_line,
        )


class PreprocessorError(MalformedSourceError):
    """
    Invalid or unsupported preprocessor directive.

    Only object-like ``#define NAME value`` constants are expanded;
    function-like macros and conditional compilation are rejected.
    """
    pass


# =============================================================================
# Execution Errors
# =============================================================================

class RuntimeExecutionError(SimulatorError):
    """
    Error raised by sketch code while setup() or loop() was running.

    Wraps the underlying Python exception (NameError for an unknown
    identifier, ZeroDivisionError, IndexError, ...) which is available
    as ``__cause__`` and ``original``.
    """

    def __init__(self, routine: str, original: BaseException):
        self.routine = routine
        self.original = original
        super().__init__(f"{type(original).__name__} in {routine}(): {original}")


class InvalidPinAccess(SimulatorError):
    """
    A primitive was called with an unrecognized pin label.

    The primitive library never raises this: it formats the message into
    an ``error`` log entry and carries on, like real hardware would.
    """

    def __init__(self, pin: Union[int, str, object]):
        self.pin = pin
        super().__init__(f"Error: Invalid pin {pin}")


class MissingEntryPoint(SimulatorError):
    """The sketch defines no ``loop()`` routine."""

    def __init__(self, routine: str = "loop"):
        self.routine = routine
        super().__init__(f"No {routine}() function found.")


class ExecutionHalted(Exception):
    """
    Internal signal used to unwind a run after stop().

    Raised by primitives and loop checkpoints when the run that called them
    has been stopped. The scheduler catches it; it is never logged and never
    reaches a caller. Not a SimulatorError subclass.
    """
    pass
