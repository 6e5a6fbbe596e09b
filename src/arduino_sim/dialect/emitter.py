"""
Python Code Emitter for Sketches
================================

This module generates Python source from the sketch AST. The generated
module defines one ``async def`` per sketch function and reaches the
simulated board only through the ``_rt`` name (a PrimitiveLibrary).

Translation Rules
-----------------
1. Comments never reach the emitter (the lexer drops them).
2. Declarators, including '[]', '[N]' and '[N][M]' suffixes and
   multi-word types, are read by the parser before types are dropped.
3. Declarations become untyped bindings; a declaration without an
   initializer gets the zero value of its type.
4. Brace initializer lists become Python lists; a sized array with a
   shorter list is padded with zero values.
5. User routines (every function except setup/loop, of any return type)
   are discovered before any code is emitted.
6. Every function becomes ``async def``.
7. ``delay(ms)`` becomes ``await _rt.delay(ms)``.
8. Calls to user routines become ``(await name(...))``.
9. Built-ins map to ``_rt`` methods (pinMode -> _rt.pin_mode, ...).
10. Board constants become Python values (HIGH -> 1, OUTPUT -> 'OUTPUT',
    A0 -> 'A0', LED_BUILTIN -> 13, true -> True).

C Semantics
-----------
- File-scope variables are module globals; every function declares
  ``global`` for each global that is not one of its parameters.
- Locals are block scoped: a declaration that shadows a visible binding
  gets a fresh Python name (``i`` -> ``i_2``) for the rest of its block.
- ``static`` locals are hoisted to module globals named
  ``_static_<function>_<name>``.
- '/' and '%' go through ``_rt.div`` / ``_rt.mod`` (truncation toward
  zero); values assigned to integer variables pass through ``_rt.to_int``
  unless they are statically known to be integers.
- ``++``/``--`` and assignments used inside expressions become ``:=`` for
  names and ``_rt.store`` for array elements.
- ``switch`` becomes a ``while True`` block entered at the matching case
  index, which gives C fallthrough; ``continue`` inside a switch is carried
  out of the block through a flag.
- Every loop body starts with ``await _rt.checkpoint()``.

Example
-------
>>> from arduino_sim.dialect.parser import parse_source
>>> print(PythonEmitter(parse_source('void loop() { delay(500); }')).emit().strip())
# Generated from <input>
<BLANKLINE>
async def loop():
    await _rt.delay(500)
"""

from dataclasses import dataclass
from typing import Callable, Optional
import keyword
import math
import re

from arduino_sim.errors import MalformedSourceError
from arduino_sim.dialect.ast import (
    TypeSpec,
    ProgramNode,
    FunctionNode,
    VariableDeclaration,
    Statement,
    BlockStatement,
    DeclarationStatement,
    ExpressionStatement,
    EmptyStatement,
    IfStatement,
    WhileStatement,
    ForStatement,
    DoWhileStatement,
    SwitchStatement,
    ReturnStatement,
    BreakStatement,
    ContinueStatement,
    Expression,
    BinaryExpression,
    BinaryOperator,
    UnaryExpression,
    UnaryOperator,
    AssignmentExpression,
    TernaryExpression,
    CallExpression,
    ArraySubscript,
    IdentifierExpression,
    NumberLiteral,
    StringLiteral,
    CharLiteral,
    InitializerList,
    CastExpression,
)


RUNTIME = "_rt"
ENTRY_POINTS = ("setup", "loop")
INDENT = "    "

# Names the generated code relies on; user identifiers that collide get a
# trailing underscore.
RESERVED_NAMES = frozenset(keyword.kwlist) | {RUNTIME, "int", "float", "str", "bool", "range"}

# Board constants: dialect name -> (Python text, static kind)
CONSTANTS: dict[str, tuple[str, str]] = {
    "HIGH": ("1", "int"),
    "LOW": ("0", "int"),
    "INPUT": ("'INPUT'", "str"),
    "OUTPUT": ("'OUTPUT'", "str"),
    "INPUT_PULLUP": ("'INPUT_PULLUP'", "str"),
    "true": ("True", "bool"),
    "false": ("False", "bool"),
    "LED_BUILTIN": ("13", "int"),
    "DEC": ("10", "int"),
    "HEX": ("16", "int"),
    "OCT": ("8", "int"),
    "BIN": ("2", "int"),
    "PI": (repr(math.pi), "float"),
    "HALF_PI": (repr(math.pi / 2), "float"),
    "TWO_PI": (repr(math.pi * 2), "float"),
    "NULL": ("0", "int"),
    **{f"A{i}": (f"'A{i}'", "str") for i in range(6)},
}

# Arduino binary constants: B101, B11110000
BINARY_CONSTANT = re.compile(r"B[01]{1,8}")

# Built-ins: dialect name -> (_rt method, awaited)
BUILTINS: dict[str, tuple[str, bool]] = {
    "pinMode": ("pin_mode", False),
    "digitalWrite": ("digital_write", False),
    "analogWrite": ("analog_write", False),
    "digitalRead": ("digital_read", False),
    "analogRead": ("analog_read", False),
    "delay": ("delay", True),
    "delayMicroseconds": ("delay_microseconds", True),
    "millis": ("millis", False),
    "micros": ("micros", False),
    "random": ("random", False),
    "randomSeed": ("random_seed", False),
    "map": ("map_range", False),
    "constrain": ("constrain", False),
    "min": ("min", False),
    "max": ("max", False),
    "abs": ("abs", False),
    "sqrt": ("sqrt", False),
    "pow": ("pow", False),
    "sin": ("sin", False),
    "cos": ("cos", False),
    "tan": ("tan", False),
    "String": ("format_value", False),
    "Serial.begin": ("serial_begin", False),
    "Serial.print": ("serial_print", False),
    "Serial.println": ("serial_println", False),
}

BUILTIN_KINDS: dict[str, str] = {
    "digitalRead": "int",
    "analogRead": "int",
    "millis": "int",
    "micros": "int",
    "random": "int",
    "sqrt": "float",
    "pow": "float",
    "sin": "float",
    "cos": "float",
    "tan": "float",
    "String": "str",
}

BINARY_SYMBOLS: dict[BinaryOperator, str] = {
    BinaryOperator.ADD: "+",
    BinaryOperator.SUBTRACT: "-",
    BinaryOperator.MULTIPLY: "*",
    BinaryOperator.EQUAL: "==",
    BinaryOperator.NOT_EQUAL: "!=",
    BinaryOperator.LESS: "<",
    BinaryOperator.GREATER: ">",
    BinaryOperator.LESS_EQ: "<=",
    BinaryOperator.GREATER_EQ: ">=",
    BinaryOperator.BITWISE_AND: "&",
    BinaryOperator.BITWISE_OR: "|",
    BinaryOperator.BITWISE_XOR: "^",
    BinaryOperator.LEFT_SHIFT: "<<",
    BinaryOperator.RIGHT_SHIFT: ">>",
}

COMPARISONS = frozenset({
    BinaryOperator.EQUAL, BinaryOperator.NOT_EQUAL, BinaryOperator.LESS,
    BinaryOperator.GREATER, BinaryOperator.LESS_EQ, BinaryOperator.GREATER_EQ,
})
BITWISE = frozenset({
    BinaryOperator.BITWISE_AND, BinaryOperator.BITWISE_OR, BinaryOperator.BITWISE_XOR,
    BinaryOperator.LEFT_SHIFT, BinaryOperator.RIGHT_SHIFT,
})
INCREMENTS = frozenset({
    UnaryOperator.PRE_INCREMENT, UnaryOperator.PRE_DECREMENT,
    UnaryOperator.POST_INCREMENT, UnaryOperator.POST_DECREMENT,
})


def python_name(name: str) -> str:
    """Return the Python identifier used for a sketch identifier."""
    return f"{name}_" if name in RESERVED_NAMES else name


def discover_routines(program: ProgramNode) -> dict[str, FunctionNode]:
    """
    Find every user routine: all functions other than setup() and loop().

    Definitions win over prototypes of the same name.
    """
    routines: dict[str, FunctionNode] = {}
    for decl in program.declarations:
        if isinstance(decl, FunctionNode) and decl.name not in ENTRY_POINTS:
            if decl.name not in routines or not decl.is_forward_decl:
                routines[decl.name] = decl
    return routines


def default_value(var_type: TypeSpec) -> str:
    """Python text of the zero value of a type."""
    kind = var_type.kind
    if kind == "float":
        return "0.0"
    if kind == "bool":
        return "False"
    if kind == "str":
        return "''"
    return "0"


@dataclass
class Symbol:
    """A variable visible to the emitter."""
    py_name: str
    var_type: TypeSpec
    is_array: bool = False


@dataclass
class FlowContext:
    """
    An enclosing loop or switch, for break/continue.

    Attributes:
        kind: "loop" or "switch"
        on_continue: Emits what must run before 'continue' (for-update,
                     do-while condition)
        flag: Continue flag name of a switch
        uses_continue: Set when a continue left the switch through the flag
    """
    kind: str
    on_continue: Optional[Callable[[], None]] = None
    flag: str = ""
    uses_continue: bool = False


class PythonEmitter:
    """
    Emits a Python module from a sketch AST.

    Usage:
        source = PythonEmitter(program, "blink.ino").emit()
    """

    def __init__(self, program: ProgramNode, filename: str = "<input>"):
        self.program = program
        self.filename = filename
        self.routines = discover_routines(program)

        self._lines: list[str] = []
        self._indent = 0
        self._counter = 0
        self._globals: dict[str, Symbol] = {}
        self._scopes: list[dict[str, Symbol]] = []
        self._statics: dict[int, Symbol] = {}
        self._function: Optional[FunctionNode] = None
        self._flow: list[FlowContext] = []

    def emit(self) -> str:
        """Generate the Python module source."""
        self._lines = [f"# Generated from {self.filename}"]
        self._globals = {
            decl.name: Symbol(python_name(decl.name), decl.var_type, decl.is_array)
            for decl in self.program.declarations
            if isinstance(decl, VariableDeclaration)
        }

        for decl in self.program.declarations:
            if isinstance(decl, VariableDeclaration):
                self._emit_declaration(decl, self._globals[decl.name].py_name)
            elif isinstance(decl, FunctionNode) and not decl.is_forward_decl:
                self._emit_function(decl)

        return "\n".join(self._lines) + "\n"

    # =========================================================================
    # Output Helpers
    # =========================================================================

    def _emit(self, line: str) -> None:
        self._lines.append(f"{INDENT * self._indent}{line}")

    def _emit_suite(self, body: Callable[[], None]) -> None:
        """Emit an indented block; an empty block gets 'pass'."""
        self._indent += 1
        start = len(self._lines)
        body()
        if len(self._lines) == start:
            self._emit("pass")
        self._indent -= 1

    def _next_id(self) -> int:
        self._counter += 1
        return self._counter

    def _error(self, message: str, node) -> MalformedSourceError:
        return MalformedSourceError(message, node.location)

    # =========================================================================
    # Symbols
    # =========================================================================

    def _lookup(self, name: str) -> Optional[Symbol]:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return self._globals.get(name)

    def _taken_names(self) -> set[str]:
        """Python names of every binding visible at this point."""
        taken = {symbol.py_name for scope in self._scopes for symbol in scope.values()}
        taken.update(symbol.py_name for symbol in self._globals.values())
        taken.update(python_name(name) for name in self.routines)
        return taken

    def _declare(self, decl: VariableDeclaration) -> Symbol:
        """
        Bind a local declaration in the innermost scope.

        A local that shadows a visible binding is renamed with a numeric
        suffix, so the outer binding keeps its own Python name.
        """
        if decl.is_static:
            symbol = self._statics[id(decl)]
        else:
            py_name = python_name(decl.name)
            taken = self._taken_names()
            if self._lookup(decl.name) is not None or py_name in taken:
                suffix = 2
                while f"{py_name}_{suffix}" in taken:
                    suffix += 1
                py_name = f"{py_name}_{suffix}"
            symbol = Symbol(py_name, decl.var_type, decl.is_array)
        self._scopes[-1][decl.name] = symbol
        return symbol

    def _scoped(self, body: Callable[[], None]) -> None:
        """Run ``body`` inside a new block scope."""
        self._scopes.append({})
        try:
            body()
        finally:
            self._scopes.pop()

    def _collect_locals(self, statement: Optional[Statement], found: list[VariableDeclaration]) -> None:
        """Gather every declaration in a function body, in source order."""
        if statement is None:
            return
        if isinstance(statement, BlockStatement):
            for child in statement.statements:
                self._collect_locals(child, found)
        elif isinstance(statement, DeclarationStatement):
            found.extend(statement.declarations)
        elif isinstance(statement, IfStatement):
            self._collect_locals(statement.then_branch, found)
            self._collect_locals(statement.else_branch, found)
        elif isinstance(statement, (WhileStatement, DoWhileStatement)):
            self._collect_locals(statement.body, found)
        elif isinstance(statement, ForStatement):
            found.extend(d for d in statement.initializer if isinstance(d, VariableDeclaration))
            self._collect_locals(statement.body, found)
        elif isinstance(statement, SwitchStatement):
            for case in statement.cases:
                for child in case.statements:
                    self._collect_locals(child, found)

    # =========================================================================
    # Functions
    # =========================================================================

    def _emit_function(self, func: FunctionNode) -> None:
        self._function = func
        self._scopes = []
        self._statics = {}
        self._flow = []

        local_decls: list[VariableDeclaration] = []
        self._collect_locals(func.body, local_decls)

        # Static initializers run once, at module level
        static_names: list[str] = []
        for decl in local_decls:
            if decl.is_static:
                py_name = f"_static_{func.name}_{decl.name}"
                if py_name in static_names:
                    py_name = f"{py_name}_{len(static_names) + 1}"
                static_names.append(py_name)
                self._statics[id(decl)] = Symbol(py_name, decl.var_type, decl.is_array)
                self._emit_declaration(decl, py_name)

        parameters: dict[str, Symbol] = {}
        for index, param in enumerate(func.parameters):
            py_name = python_name(param.name) if param.name else f"_arg{index}"
            parameters[param.name or py_name] = Symbol(py_name, param.param_type, param.is_array)
        self._scopes = [parameters]

        self._lines.append("")
        signature = ", ".join(symbol.py_name for symbol in parameters.values())
        self._emit(f"async def {python_name(func.name)}({signature}):")

        declared = [s.py_name for name, s in self._globals.items() if name not in parameters]
        declared.extend(static_names)

        def body():
            if declared:
                self._emit(f"global {', '.join(declared)}")
            for statement in func.body.statements:
                self._statement(statement)

        self._emit_suite(body)
        self._lines.append("")
        self._function = None
        self._scopes = []

    # =========================================================================
    # Declarations
    # =========================================================================

    def _emit_declaration(self, decl: VariableDeclaration, py_name: str) -> None:
        self._emit(f"{py_name} = {self._initial_value(decl)}")

    def _initial_value(self, decl: VariableDeclaration) -> str:
        if decl.is_array:
            return self._array_value(decl.initializer, decl.dimensions, decl.var_type)
        if decl.initializer is None:
            return default_value(decl.var_type)
        if isinstance(decl.initializer, InitializerList):
            # int x = {5};
            if not decl.initializer.elements:
                return default_value(decl.var_type)
            return self._coerce(decl.initializer.elements[0], decl.var_type)
        return self._coerce(decl.initializer, decl.var_type)

    def _array_value(
        self,
        init: Optional[Expression],
        dimensions: list[Optional[Expression]],
        element_type: TypeSpec,
    ) -> str:
        if init is None:
            return self._array_default(dimensions, default_value(element_type))
        if isinstance(init, StringLiteral) and len(dimensions) == 1:
            # char message[] = "hello";
            return repr(init.value)
        if not isinstance(init, InitializerList):
            return self._expr(init)

        inner = dimensions[1:]
        if inner:
            items = [self._array_value(e, inner, element_type) for e in init.elements]
        else:
            items = [self._coerce(e, element_type) for e in init.elements]
        text = f"[{', '.join(items)}]"

        size = dimensions[0]
        if size is None:
            return text

        if isinstance(size, NumberLiteral):
            missing = int(size.value) - len(items)
            if missing <= 0:
                return text
            count = str(missing)
        else:
            count = f"{self._expr(size)} - {len(items)}"

        if inner:
            fill = self._array_default(inner, default_value(element_type))
            return f"({text} + [{fill} for _ in range({count})])"
        return f"({text} + [{default_value(element_type)}] * ({count}))"

    def _array_default(self, dimensions: list[Optional[Expression]], default: str) -> str:
        if not dimensions:
            return default
        size = "0" if dimensions[0] is None else self._expr(dimensions[0])
        if len(dimensions) == 1:
            return f"[{default}] * {size}"
        inner = self._array_default(dimensions[1:], default)
        return f"[{inner} for _ in range({size})]"

    # =========================================================================
    # Statements
    # =========================================================================

    def _statement(self, statement: Statement) -> None:
        if isinstance(statement, BlockStatement):
            self._scoped(lambda: [self._statement(child) for child in statement.statements])
        elif isinstance(statement, DeclarationStatement):
            for decl in statement.declarations:
                self._declaration_statement(decl)
        elif isinstance(statement, ExpressionStatement):
            self._expression_statement(statement.expression)
        elif isinstance(statement, EmptyStatement):
            pass
        elif isinstance(statement, IfStatement):
            self._if(statement)
        elif isinstance(statement, WhileStatement):
            self._while(statement)
        elif isinstance(statement, ForStatement):
            self._for(statement)
        elif isinstance(statement, DoWhileStatement):
            self._do_while(statement)
        elif isinstance(statement, SwitchStatement):
            self._switch(statement)
        elif isinstance(statement, ReturnStatement):
            self._return(statement)
        elif isinstance(statement, BreakStatement):
            if not self._flow:
                raise self._error("'break' outside of a loop or switch", statement)
            self._emit("break")
        elif isinstance(statement, ContinueStatement):
            if not any(context.kind == "loop" for context in self._flow):
                raise self._error("'continue' outside of a loop", statement)
            self._continue()
        else:
            raise self._error(f"unsupported statement {type(statement).__name__}", statement)

    def _declaration_statement(self, decl: VariableDeclaration) -> None:
        # The initializer is read before the new name is visible: int x = x + 1;
        value = None if decl.is_static else self._initial_value(decl)
        symbol = self._declare(decl)
        if value is not None:
            self._emit(f"{symbol.py_name} = {value}")

    def _expression_statement(self, expr: Expression) -> None:
        if isinstance(expr, AssignmentExpression):
            self._assignment_statement(expr)
        elif isinstance(expr, UnaryExpression) and expr.operator in INCREMENTS:
            is_increment = expr.operator in (UnaryOperator.PRE_INCREMENT, UnaryOperator.POST_INCREMENT)
            self._emit(f"{self._lvalue(expr.operand)} {'+' if is_increment else '-'}= 1")
        elif isinstance(expr, CallExpression):
            self._emit(self._call(expr, statement=True))
        else:
            self._emit(self._expr(expr))

    def _checkpoint(self) -> None:
        self._emit(f"await {RUNTIME}.checkpoint()")

    def _loop_body(self, body: Statement, context: FlowContext, after: Optional[Callable[[], None]] = None) -> None:
        def suite():
            self._checkpoint()
            self._flow.append(context)
            self._statement(body)
            self._flow.pop()
            if after:
                after()

        self._emit_suite(suite)

    def _if(self, statement: IfStatement, keyword_: str = "if") -> None:
        self._emit(f"{keyword_} {self._expr(statement.condition, cond=True)}:")
        self._emit_suite(lambda: self._statement(statement.then_branch))

        if isinstance(statement.else_branch, IfStatement):
            self._if(statement.else_branch, "elif")
        elif statement.else_branch is not None:
            self._emit("else:")
            self._emit_suite(lambda: self._statement(statement.else_branch))

    def _while(self, statement: WhileStatement) -> None:
        self._emit(f"while {self._expr(statement.condition, cond=True)}:")
        self._loop_body(statement.body, FlowContext("loop"))

    def _for(self, statement: ForStatement) -> None:
        self._scoped(lambda: self._for_scoped(statement))

    def _for_scoped(self, statement: ForStatement) -> None:
        for item in statement.initializer:
            if isinstance(item, VariableDeclaration):
                self._declaration_statement(item)
            else:
                self._expression_statement(item)

        def update():
            for expr in statement.update:
                self._expression_statement(expr)

        condition = "True" if statement.condition is None else self._expr(statement.condition, cond=True)
        self._emit(f"while {condition}:")
        self._loop_body(statement.body, FlowContext("loop", on_continue=update), after=update)

    def _do_while(self, statement: DoWhileStatement) -> None:
        def check():
            self._emit(f"if not {self._expr(statement.condition, cond=True)}:")
            self._emit_suite(lambda: self._emit("break"))

        self._emit("while True:")
        self._loop_body(statement.body, FlowContext("loop", on_continue=check), after=check)

    def _switch(self, statement: SwitchStatement) -> None:
        n = self._next_id()
        value, case, flag = f"_sw{n}", f"_case{n}", f"_cont{n}"

        self._emit(f"{value} = {self._expr(statement.expression)}")
        entries = ", ".join(
            f"{self._expr(clause.value)}: {index}"
            for index, clause in enumerate(statement.cases)
            if not clause.is_default
        )
        default_index = next(
            (index for index, clause in enumerate(statement.cases) if clause.is_default),
            len(statement.cases),
        )
        self._emit(f"{case} = {{{entries}}}.get({value}, {default_index})")
        flag_position = len(self._lines)

        context = FlowContext("switch", flag=flag)

        def suite():
            self._flow.append(context)
            for index, clause in enumerate(statement.cases):
                if not clause.statements:
                    continue
                self._emit(f"if {case} <= {index}:")
                self._emit_suite(lambda: [self._statement(s) for s in clause.statements])
            self._flow.pop()
            self._emit("break")

        self._emit("while True:")
        self._scoped(lambda: self._emit_suite(suite))

        if context.uses_continue:
            self._lines.insert(flag_position, f"{INDENT * self._indent}{flag} = False")
            self._emit(f"if {flag}:")
            self._emit_suite(self._continue)

    def _continue(self) -> None:
        context = self._flow[-1]
        if context.kind == "switch":
            context.uses_continue = True
            self._emit(f"{context.flag} = True")
            self._emit("break")
            return
        if context.on_continue:
            context.on_continue()
        self._emit("continue")

    def _return(self, statement: ReturnStatement) -> None:
        if statement.value is None:
            self._emit("return")
            return
        self._emit(f"return {self._coerce(statement.value, self._function.return_type)}")

    # =========================================================================
    # Assignment
    # =========================================================================

    def _target_type(self, target: Expression) -> Optional[TypeSpec]:
        if isinstance(target, IdentifierExpression):
            symbol = self._lookup(target.name)
            if symbol and not symbol.is_array:
                return symbol.var_type
            return None
        root = target
        while isinstance(root, ArraySubscript):
            root = root.array
        if isinstance(root, IdentifierExpression):
            symbol = self._lookup(root.name)
            if symbol and symbol.is_array:
                return symbol.var_type
        return None

    def _lvalue(self, target: Expression) -> str:
        if isinstance(target, IdentifierExpression):
            return self._identifier(target.name)
        if isinstance(target, ArraySubscript):
            return f"{self._expr(target.array)}[{self._expr(target.index)}]"
        raise self._error("expression is not assignable", target)

    def _assigned_value(self, expr: AssignmentExpression) -> str:
        """Python text of the value stored by an assignment, coerced to the target type."""
        operator = expr.operator.binary_operator
        if operator is None:
            value: Expression = expr.value
        else:
            value = BinaryExpression(
                location=expr.location,
                operator=operator,
                left=expr.target,
                right=expr.value,
            )
        return self._coerce(value, self._target_type(expr.target))

    def _assignment_statement(self, expr: AssignmentExpression) -> None:
        target = self._lvalue(expr.target)
        operator = expr.operator.binary_operator
        target_type = self._target_type(expr.target)

        if operator is None or not self._augmentable(operator, target_type, expr.value):
            self._emit(f"{target} = {self._assigned_value(expr)}")
        else:
            self._emit(f"{target} {BINARY_SYMBOLS[operator]}= {self._expr(expr.value)}")

    def _augmentable(self, operator: BinaryOperator, target_type: Optional[TypeSpec], value: Expression) -> bool:
        """True if 'target op= value' keeps C semantics in Python."""
        if operator in (BinaryOperator.DIVIDE, BinaryOperator.MODULO):
            return False
        target_kind = target_type.kind if target_type else None
        value_kind = self._kind(value)
        if target_kind == "int":
            return value_kind in ("int", "bool")
        if target_kind == "str":
            return value_kind == "str"
        return target_kind != "bool"

    # =========================================================================
    # Static Kinds
    # =========================================================================

    def _kind(self, expr: Expression) -> Optional[str]:
        """
        Statically known value kind: "int", "float", "bool", "str" or None.

        Used to skip coercions that cannot change a value.
        """
        if isinstance(expr, NumberLiteral):
            return "float" if isinstance(expr.value, float) else "int"
        if isinstance(expr, CharLiteral):
            return "int"
        if isinstance(expr, StringLiteral):
            return "str"
        if isinstance(expr, IdentifierExpression):
            symbol = self._lookup(expr.name)
            if symbol:
                return None if symbol.is_array else symbol.var_type.kind
            if expr.name in CONSTANTS:
                return CONSTANTS[expr.name][1]
            if BINARY_CONSTANT.fullmatch(expr.name):
                return "int"
            return None
        if isinstance(expr, ArraySubscript):
            var_type = self._target_type(expr)
            if var_type is None or var_type.name.endswith("char"):
                return None
            return var_type.kind
        if isinstance(expr, BinaryExpression):
            if expr.operator in COMPARISONS or expr.operator in (BinaryOperator.LOGICAL_AND, BinaryOperator.LOGICAL_OR):
                return "bool"
            left, right = self._kind(expr.left), self._kind(expr.right)
            if expr.operator in BITWISE:
                return "int"
            if expr.operator is BinaryOperator.ADD and "str" in (left, right):
                return "str"
            numeric = {"int", "bool"}
            if left in numeric and right in numeric:
                return "int"
            if {left, right} <= {"int", "bool", "float"}:
                return "float"
            return None
        if isinstance(expr, UnaryExpression):
            if expr.operator is UnaryOperator.LOGICAL_NOT:
                return "bool"
            if expr.operator is UnaryOperator.BITWISE_NOT:
                return "int"
            kind = self._kind(expr.operand)
            return "int" if kind == "bool" else kind
        if isinstance(expr, AssignmentExpression):
            target_type = self._target_type(expr.target)
            return target_type.kind if target_type else None
        if isinstance(expr, TernaryExpression):
            left, right = self._kind(expr.true_expr), self._kind(expr.false_expr)
            return left if left == right else None
        if isinstance(expr, CastExpression):
            return expr.target_type.kind
        if isinstance(expr, CallExpression):
            if expr.function in self.routines:
                return self.routines[expr.function].return_type.kind
            return BUILTIN_KINDS.get(expr.function)
        return None

    def _is_char(self, expr: Expression) -> bool:
        """True if ``expr`` is a scalar of type char (held as its character code)."""
        if isinstance(expr, IdentifierExpression):
            symbol = self._lookup(expr.name)
            return bool(symbol) and not symbol.is_array and symbol.var_type.name == "char"
        if isinstance(expr, CastExpression):
            return expr.target_type.name == "char"
        if isinstance(expr, CallExpression) and expr.function in self.routines:
            return self.routines[expr.function].return_type.name == "char"
        return False

    def _coerce(self, expr: Expression, target_type: Optional[TypeSpec]) -> str:
        """Python text of ``expr`` converted the way C converts on assignment."""
        text = self._expr(expr)
        kind = target_type.kind if target_type else None
        if kind is None:
            return text

        value_kind = self._kind(expr)
        if kind == value_kind:
            return text
        if kind == "int":
            if isinstance(expr, NumberLiteral):
                return str(int(expr.value))
            return f"{RUNTIME}.to_int({text})"
        if kind == "float":
            if isinstance(expr, NumberLiteral):
                return repr(float(expr.value))
            return f"float({text})"
        if kind == "bool":
            return f"bool({text})"
        return f"{RUNTIME}.format_value({text})"

    # =========================================================================
    # Expressions
    # =========================================================================

    def _expr(self, expr: Expression, cond: bool = False) -> str:
        """
        Python text of an expression; compound results are parenthesized.

        Args:
            expr: Expression node
            cond: True when only the truth value matters (if/while/ternary
                  conditions, operands of && || !)
        """
        if isinstance(expr, NumberLiteral):
            return repr(expr.value)
        if isinstance(expr, CharLiteral):
            return str(expr.value)
        if isinstance(expr, StringLiteral):
            return repr(expr.value)
        if isinstance(expr, IdentifierExpression):
            return self._identifier(expr.name)
        if isinstance(expr, BinaryExpression):
            return self._binary(expr, cond)
        if isinstance(expr, UnaryExpression):
            return self._unary(expr)
        if isinstance(expr, AssignmentExpression):
            return self._assignment_expr(expr)
        if isinstance(expr, TernaryExpression):
            condition = self._expr(expr.condition, cond=True)
            return f"({self._expr(expr.true_expr)} if {condition} else {self._expr(expr.false_expr)})"
        if isinstance(expr, CallExpression):
            return self._call(expr)
        if isinstance(expr, ArraySubscript):
            return f"{self._expr(expr.array)}[{self._expr(expr.index)}]"
        if isinstance(expr, CastExpression):
            return self._cast(expr)
        if isinstance(expr, InitializerList):
            return f"[{', '.join(self._expr(e) for e in expr.elements)}]"
        raise self._error(f"unsupported expression {type(expr).__name__}", expr)

    def _identifier(self, name: str) -> str:
        symbol = self._lookup(name)
        if symbol:
            return symbol.py_name
        if name in CONSTANTS:
            return CONSTANTS[name][0]
        if BINARY_CONSTANT.fullmatch(name):
            return str(int(name[1:], 2))
        return python_name(name)

    def _binary(self, expr: BinaryExpression, cond: bool) -> str:
        operator = expr.operator

        if operator in (BinaryOperator.LOGICAL_AND, BinaryOperator.LOGICAL_OR):
            word = "and" if operator is BinaryOperator.LOGICAL_AND else "or"
            text = f"({self._expr(expr.left, cond=True)} {word} {self._expr(expr.right, cond=True)})"
            # C yields 0/1, Python yields an operand
            return text if cond else f"bool{text}"

        left = self._expr(expr.left)
        right = self._expr(expr.right)

        if operator is BinaryOperator.DIVIDE:
            return f"{RUNTIME}.div({left}, {right})"
        if operator is BinaryOperator.MODULO:
            return f"{RUNTIME}.mod({left}, {right})"
        if operator is BinaryOperator.ADD and "str" in (self._kind(expr.left), self._kind(expr.right)):
            return f"{RUNTIME}.concat({left}, {right})"
        return f"({left} {BINARY_SYMBOLS[operator]} {right})"

    def _unary(self, expr: UnaryExpression) -> str:
        operator = expr.operator
        if operator in INCREMENTS:
            return self._increment_expr(expr)
        if operator is UnaryOperator.LOGICAL_NOT:
            return f"(not {self._expr(expr.operand, cond=True)})"
        operand = self._expr(expr.operand)
        if operator is UnaryOperator.NEGATE:
            return f"(-{operand})"
        if operator is UnaryOperator.POSITIVE:
            return f"(+{operand})"
        return f"(~{operand})"

    def _increment_expr(self, expr: UnaryExpression) -> str:
        is_increment = expr.operator in (UnaryOperator.PRE_INCREMENT, UnaryOperator.POST_INCREMENT)
        is_post = expr.operator in (UnaryOperator.POST_INCREMENT, UnaryOperator.POST_DECREMENT)
        step, undo = ("+", "-") if is_increment else ("-", "+")
        target = expr.operand

        if isinstance(target, IdentifierExpression):
            name = self._identifier(target.name)
            updated = f"({name} := {name} {step} 1)"
        else:
            array = self._expr(target.array)
            index = self._expr(target.index)
            updated = f"{RUNTIME}.store({array}, {index}, {array}[{index}] {step} 1)"

        return f"({updated} {undo} 1)" if is_post else updated

    def _assignment_expr(self, expr: AssignmentExpression) -> str:
        value = self._assigned_value(expr)
        if isinstance(expr.target, IdentifierExpression):
            return f"({self._identifier(expr.target.name)} := {value})"
        target = expr.target
        return f"{RUNTIME}.store({self._expr(target.array)}, {self._expr(target.index)}, {value})"

    def _call(self, expr: CallExpression, statement: bool = False) -> str:
        name = expr.function
        arguments = [self._expr(a) for a in expr.arguments]

        if name in ("Serial.print", "Serial.println") and expr.arguments:
            first = expr.arguments[0]
            if isinstance(first, CharLiteral):
                arguments[0] = repr(chr(first.value))
            elif len(expr.arguments) == 1 and self._is_char(first):
                # print(char) writes the character, not its code
                arguments[0] = f"chr({arguments[0]} & 255)"

        if name in BUILTINS:
            method, awaited = BUILTINS[name]
            text = f"{RUNTIME}.{method}({', '.join(arguments)})"
        elif name in self.routines or name in ENTRY_POINTS:
            routine = self.routines.get(name)
            if routine and len(routine.parameters) == len(expr.arguments):
                arguments = [
                    self._expr(arg) if param.is_array else self._coerce(arg, param.param_type)
                    for arg, param in zip(expr.arguments, routine.parameters)
                ]
            text = f"{python_name(name)}({', '.join(arguments)})"
            awaited = True
        elif "." in name:
            raise self._error(f"unsupported function '{name}'", expr)
        else:
            text = f"{python_name(name)}({', '.join(arguments)})"
            awaited = False

        if not awaited:
            return text
        return f"await {text}" if statement else f"(await {text})"

    def _cast(self, expr: CastExpression) -> str:
        target = expr.target_type
        operand = self._expr(expr.expression)
        if target.kind == "int":
            converted = f"{RUNTIME}.to_int({operand})"
            if target.name in ("byte", "unsigned char"):
                return f"({converted} & 255)"
            return converted
        if target.kind == "float":
            return f"float({operand})"
        if target.kind == "bool":
            return f"bool({operand})"
        if target.kind == "str":
            return f"{RUNTIME}.format_value({operand})"
        return operand

