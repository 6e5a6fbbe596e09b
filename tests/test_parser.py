"""
Sketch Parser Test Suite
========================

Tests for the recursive descent parser: top-level declarations, types,
statements, expression precedence, and syntax errors.

Test Organization
-----------------
- TestDeclarations: globals, functions, prototypes, types, arrays
- TestStatements: control flow and local declarations
- TestExpressions: precedence, assignment, casts, member calls
- TestSyntaxErrors: fail-fast error reporting
"""

import pytest
from arduino_sim.dialect.parser import parse_source
from arduino_sim.dialect.ast import (
    VariableDeclaration,
    DeclarationStatement,
    ExpressionStatement,
    IfStatement,
    ForStatement,
    DoWhileStatement,
    SwitchStatement,
    ReturnStatement,
    BinaryExpression,
    BinaryOperator,
    UnaryExpression,
    UnaryOperator,
    AssignmentExpression,
    AssignmentOperator,
    TernaryExpression,
    CallExpression,
    ArraySubscript,
    IdentifierExpression,
    NumberLiteral,
    StringLiteral,
    InitializerList,
    CastExpression,
)
from arduino_sim.errors import SketchSyntaxError, MissingTokenError, UnexpectedTokenError


# =============================================================================
# Helpers
# =============================================================================

def body_of(source: str, name: str = "setup") -> list:
    """Parse and return the statements of one function."""
    program = parse_source(source, "test.ino")
    func = next(f for f in program.functions if f.name == name)
    return func.body.statements


def expression(text: str):
    """Parse a single expression statement inside setup()."""
    statements = body_of(f"void setup() {{ {text}; }}")
    assert isinstance(statements[0], ExpressionStatement)
    return statements[0].expression


# =============================================================================
# Declaration Tests
# =============================================================================

class TestDeclarations:
    """Top-level declarations."""

    def test_empty_program(self):
        assert parse_source("").declarations == []

    def test_functions_in_order(self):
        program = parse_source("void setup() {}\nvoid loop() {}")
        assert [f.name for f in program.functions] == ["setup", "loop"]

    def test_prototype_excluded_from_functions(self):
        program = parse_source("int add(int a, int b);\nint add(int a, int b) { return a + b; }")
        assert len(program.declarations) == 2
        assert program.declarations[0].is_forward_decl
        assert len(program.functions) == 1
        assert [p.name for p in program.functions[0].parameters] == ["a", "b"]

    def test_void_parameter_list(self):
        program = parse_source("void blink(void) {}")
        assert program.functions[0].parameters == []

    def test_array_and_reference_parameters(self):
        program = parse_source("void fill(int values[], int &count) {}")
        values, count = program.functions[0].parameters
        assert values.is_array
        assert not count.is_array
        assert count.name == "count"

    def test_global_declarators(self):
        program = parse_source("int a = 1, b[3];")
        a, b = program.declarations
        assert isinstance(a, VariableDeclaration)
        assert a.is_global
        assert isinstance(a.initializer, NumberLiteral)
        assert b.is_array
        assert isinstance(b.dimensions[0], NumberLiteral)

    def test_multi_word_type(self):
        program = parse_source("unsigned long last = 0;")
        assert program.declarations[0].var_type.name == "unsigned long"
        assert program.declarations[0].var_type.is_integer

    def test_unsigned_alone_is_unsigned_int(self):
        program = parse_source("unsigned x;")
        assert program.declarations[0].var_type.name == "unsigned int"

    def test_const_qualifier(self):
        decl = parse_source("const int LED = 13;").declarations[0]
        assert decl.var_type.is_const
        assert decl.var_type.kind == "int"

    def test_unsized_array_with_initializer(self):
        decl = parse_source("int leds[] = {2, 3, 4};").declarations[0]
        assert decl.dimensions == [None]
        assert isinstance(decl.initializer, InitializerList)
        assert [e.value for e in decl.initializer.elements] == [2, 3, 4]

    def test_two_dimensional_array(self):
        decl = parse_source("int grid[2][3] = {{1, 2, 3}, {4, 5, 6}};").declarations[0]
        assert len(decl.dimensions) == 2
        rows = decl.initializer.elements
        assert all(isinstance(row, InitializerList) for row in rows)

    def test_string_constructor_form(self):
        decl = parse_source('String name("board");').declarations[0]
        assert decl.var_type.kind == "str"
        assert isinstance(decl.initializer, StringLiteral)


# =============================================================================
# Statement Tests
# =============================================================================

class TestStatements:
    """Statements inside function bodies."""

    def test_local_declaration(self):
        statements = body_of("void setup() { int a = 1, b; }")
        assert isinstance(statements[0], DeclarationStatement)
        assert [d.name for d in statements[0].declarations] == ["a", "b"]
        assert not statements[0].declarations[0].is_global

    def test_static_local(self):
        statements = body_of("void setup() { static int count = 0; }")
        assert statements[0].declarations[0].is_static

    def test_if_else_chain(self):
        statements = body_of("void setup() { if (a) x = 1; else if (b) x = 2; else x = 3; }")
        first = statements[0]
        assert isinstance(first, IfStatement)
        assert isinstance(first.else_branch, IfStatement)
        assert first.else_branch.else_branch is not None

    def test_for_with_declaration_and_comma_update(self):
        statements = body_of("void setup() { for (int i = 0, j = 10; i < j; i++, j--) {} }")
        loop = statements[0]
        assert isinstance(loop, ForStatement)
        assert [d.name for d in loop.initializer] == ["i", "j"]
        assert len(loop.update) == 2

    def test_for_without_clauses(self):
        loop = body_of("void setup() { for (;;) { break; } }")[0]
        assert loop.initializer == []
        assert loop.condition is None
        assert loop.update == []

    def test_do_while(self):
        loop = body_of("void setup() { do { x++; } while (x < 3); }")[0]
        assert isinstance(loop, DoWhileStatement)
        assert isinstance(loop.condition, BinaryExpression)

    def test_switch_cases(self):
        switch = body_of(
            "void setup() { switch (m) { case 1: a(); case 2: b(); break; default: c(); } }"
        )[0]
        assert isinstance(switch, SwitchStatement)
        assert [c.is_default for c in switch.cases] == [False, False, True]
        assert len(switch.cases[1].statements) == 2

    def test_return_value(self):
        statements = body_of("int f() { return 1 + 2; }", "f")
        assert isinstance(statements[0], ReturnStatement)
        assert isinstance(statements[0].value, BinaryExpression)


# =============================================================================
# Expression Tests
# =============================================================================

class TestExpressions:
    """Expression parsing and precedence."""

    def test_multiplication_binds_tighter(self):
        expr = expression("x = 1 + 2 * 3")
        assert isinstance(expr, AssignmentExpression)
        assert expr.value.operator == BinaryOperator.ADD
        assert expr.value.right.operator == BinaryOperator.MULTIPLY

    def test_left_associative(self):
        expr = expression("x = 8 - 4 - 2")
        assert expr.value.left.operator == BinaryOperator.SUBTRACT
        assert expr.value.right.value == 2

    def test_assignment_right_associative(self):
        expr = expression("a = b = 0")
        assert isinstance(expr.value, AssignmentExpression)

    def test_compound_assignment(self):
        expr = expression("total += 5")
        assert expr.operator == AssignmentOperator.ADD_ASSIGN
        assert expr.operator.binary_operator == BinaryOperator.ADD

    def test_logical_precedence(self):
        expr = expression("r = a || b && c")
        assert expr.value.operator == BinaryOperator.LOGICAL_OR
        assert expr.value.right.operator == BinaryOperator.LOGICAL_AND

    def test_ternary(self):
        expr = expression("y = x > 5 ? 1 : 0")
        assert isinstance(expr.value, TernaryExpression)

    def test_postfix_and_prefix_increment(self):
        assert expression("i++").operator == UnaryOperator.POST_INCREMENT
        assert expression("--i").operator == UnaryOperator.PRE_DECREMENT

    def test_array_subscript(self):
        expr = expression("grid[1][2] = 5")
        assert isinstance(expr.target, ArraySubscript)
        assert isinstance(expr.target.array, ArraySubscript)

    def test_member_call(self):
        expr = expression('Serial.println("hi")')
        assert isinstance(expr, CallExpression)
        assert expr.function == "Serial.println"
        assert expr.arguments[0].value == "hi"

    def test_adjacent_strings_concatenate(self):
        expr = expression('Serial.print("a" "b")')
        assert expr.arguments[0].value == "ab"

    def test_c_style_cast(self):
        expr = expression("x = (int)3.7")
        assert isinstance(expr.value, CastExpression)
        assert expr.value.target_type.name == "int"

    def test_multi_word_cast(self):
        expr = expression("x = (unsigned long)y")
        assert expr.value.target_type.name == "unsigned long"

    def test_functional_cast(self):
        expr = expression("x = float(y)")
        assert isinstance(expr.value, CastExpression)
        assert expr.value.target_type.name == "float"

    def test_parenthesized_functional_cast(self):
        expr = expression("x = (int(y) + 1)")
        assert expr.value.operator == BinaryOperator.ADD
        assert isinstance(expr.value.left, CastExpression)

    def test_string_with_base_is_call(self):
        expr = expression("s = String(255, HEX)")
        assert isinstance(expr.value, CallExpression)
        assert expr.value.function == "String"
        assert len(expr.value.arguments) == 2

    def test_unary_minus(self):
        expr = expression("x = -y")
        assert isinstance(expr.value, UnaryExpression)
        assert expr.value.operator == UnaryOperator.NEGATE

    def test_identifier(self):
        expr = expression("digitalWrite(LED_BUILTIN, HIGH)")
        assert all(isinstance(a, IdentifierExpression) for a in expr.arguments)


# =============================================================================
# Syntax Error Tests
# =============================================================================

class TestSyntaxErrors:
    """The parser stops at the first error."""

    def test_missing_semicolon(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse_source("void setup() {\n  x = 1\n}", "blink.ino")
        error = exc_info.value
        assert error.expected == "';'"
        assert error.location.line == 3

    def test_missing_closing_brace(self):
        with pytest.raises(MissingTokenError):
            parse_source("void setup() { x = 1;")

    def test_unassignable_target(self):
        with pytest.raises(SketchSyntaxError, match="not assignable"):
            parse_source("void setup() { 5 = x; }")

    def test_increment_of_literal(self):
        with pytest.raises(SketchSyntaxError, match="not assignable"):
            parse_source("void setup() { 5++; }")

    def test_stray_else(self):
        with pytest.raises(UnexpectedTokenError):
            parse_source("void setup() { else x = 1; }")

    def test_member_without_call(self):
        with pytest.raises(UnexpectedTokenError):
            parse_source("void setup() { x = Serial.baud; }")

    def test_duplicate_default(self):
        with pytest.raises(SketchSyntaxError, match="multiple default"):
            parse_source("void setup() { switch (x) { default: break; default: break; } }")

    def test_statement_at_top_level(self):
        with pytest.raises(UnexpectedTokenError) as exc_info:
            parse_source("digitalWrite(13, HIGH);")
        assert exc_info.value.expected == "declaration"

    def test_error_shows_source_line(self):
        with pytest.raises(SketchSyntaxError) as exc_info:
            parse_source("void setup() {\n  int = 4;\n}")
        assert "int = 4;" in str(exc_info.value)
