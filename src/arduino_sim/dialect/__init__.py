"""
Sketch Dialect Transformer
==========================

Translates the Arduino C dialect into a Python module of coroutines.

Pipeline
--------
    Sketch → Preprocessor → Lexer → Parser → AST → Python Emitter → compile()

Usage
-----
>>> from arduino_sim.dialect import translate
>>> translation = translate('void loop() { delay(100); }')
>>> print(translation.python_source)
"""

from arduino_sim.dialect.lexer import SketchLexer, Token, TokenType, tokenize
from arduino_sim.dialect.preprocessor import Preprocessor, preprocess
from arduino_sim.dialect.parser import SketchParser, parse_source
from arduino_sim.dialect.emitter import PythonEmitter, discover_routines
from arduino_sim.dialect.transformer import (
    ExecutableUnit,
    Translation,
    translate,
    transform,
)

__all__ = [
    "SketchLexer",
    "Token",
    "TokenType",
    "tokenize",
    "Preprocessor",
    "preprocess",
    "SketchParser",
    "parse_source",
    "PythonEmitter",
    "discover_routines",
    "ExecutableUnit",
    "Translation",
    "translate",
    "transform",
]
