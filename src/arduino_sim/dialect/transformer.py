"""
Sketch Transformer
==================

Orchestrates the translation of a sketch into an executable unit:

1. Preprocessing (``#define`` collection, directive lines blanked)
2. Lexical analysis and macro expansion
3. Parsing into an AST
4. Python code emission
5. Compilation of the generated module

The result of translation is a `Translation`, which is independent of any
simulator session. Loading it against a PrimitiveLibrary executes the
module body and yields an `ExecutableUnit` whose coroutine functions the
scheduler awaits.

Every failure along the way, including exceptions raised by the module
body while loading, surfaces as MalformedSourceError.

Example:
    >>> translation = translate(BLINK, "blink.ino")
    >>> unit = translation.load(simulator.primitives)
    >>> await unit.setup()
"""

from dataclasses import dataclass, field
from types import CodeType
from typing import Any, Callable, Optional
import inspect
import logging

from arduino_sim.errors import MalformedSourceError
from arduino_sim.dialect.lexer import SketchLexer
from arduino_sim.dialect.parser import SketchParser
from arduino_sim.dialect.preprocessor import preprocess
from arduino_sim.dialect.emitter import RUNTIME, PythonEmitter, python_name

logger = logging.getLogger(__name__)

Routine = Callable[..., Any]


@dataclass
class ExecutableUnit:
    """
    A loaded sketch.

    Attributes:
        setup: The sketch's setup() coroutine function, if defined
        loop: The sketch's loop() coroutine function, if defined
        routines: User routines by sketch name
        translation: The translation this unit was loaded from
    """
    setup: Optional[Routine]
    loop: Optional[Routine]
    routines: dict[str, Routine] = field(default_factory=dict)
    translation: Optional["Translation"] = None


@dataclass(frozen=True)
class Translation:
    """
    A sketch translated and compiled to Python.

    Attributes:
        python_source: The generated module source
        code: The compiled module
        routines: User routine names mapped to their Python names
        filename: Sketch name used in messages
    """
    python_source: str
    code: CodeType
    routines: dict[str, str]
    filename: str = "<input>"

    def load(self, runtime: Any) -> ExecutableUnit:
        """
        Execute the module body with ``_rt`` bound to ``runtime``.

        Args:
            runtime: The PrimitiveLibrary the sketch will call

        Returns:
            ExecutableUnit with setup, loop and the user routines

        Raises:
            MalformedSourceError: If the module body raises
        """
        namespace: dict[str, Any] = {"__name__": "sketch", RUNTIME: runtime}
        try:
            exec(self.code, namespace)
        except Exception as e:
            raise MalformedSourceError.from_exception(e, self.filename) from e

        def entry(name: str) -> Optional[Routine]:
            routine = namespace.get(name)
            return routine if inspect.iscoroutinefunction(routine) else None

        routines = {
            name: namespace[py_name]
            for name, py_name in self.routines.items()
            if inspect.iscoroutinefunction(namespace.get(py_name))
        }
        return ExecutableUnit(entry("setup"), entry("loop"), routines, self)


def translate(source: str, filename: str = "<input>") -> Translation:
    """
    Translate sketch source to a compiled Python module.

    Args:
        source: Sketch source text
        filename: Sketch name for error messages

    Returns:
        Translation ready to be loaded

    Raises:
        MalformedSourceError: On any lexical, syntax, preprocessor or
            compilation error
    """
    try:
        text, pp = preprocess(source, filename)
        tokens = pp.expand(list(SketchLexer(text, filename).tokenize()))
        program = SketchParser(tokens, filename, text.splitlines()).parse()
        emitter = PythonEmitter(program, filename)
        python_source = emitter.emit()
    except MalformedSourceError:
        raise
    except Exception as e:
        raise MalformedSourceError.from_exception(e, filename) from e

    logger.debug("generated Python for %s:\n%s", filename, python_source)

    try:
        code = compile(python_source, f"<{filename}>", "exec")
    except SyntaxError as e:
        raise MalformedSourceError.from_exception(e, filename) from e

    routines = {name: python_name(name) for name in emitter.routines}
    return Translation(python_source, code, routines, filename)


def transform(source: str, runtime: Any, filename: str = "<input>") -> ExecutableUnit:
    """Translate ``source`` and load it against ``runtime`` in one step."""
    return translate(source, filename).load(runtime)
