"""
Sketch Abstract Syntax Tree (AST) Definitions
=============================================

This module defines the AST node types produced by the sketch parser and
consumed by the Python emitter.

Node Hierarchy
--------------
ASTNode (base)
├── ProgramNode - root node containing all top-level declarations
├── Declarations
│   ├── FunctionNode - function definition or prototype
│   ├── VariableDeclaration - global, local or static variable
│   └── ParameterNode - function parameter
├── Statements
│   ├── BlockStatement - compound statement { ... }
│   ├── DeclarationStatement - one or more local declarations
│   ├── IfStatement - if/else statement
│   ├── WhileStatement - while loop
│   ├── ForStatement - for loop
│   ├── DoWhileStatement - do-while loop
│   ├── SwitchStatement - switch statement
│   ├── CaseClause - case/default in switch
│   ├── ReturnStatement - return statement
│   ├── BreakStatement - break statement
│   ├── ContinueStatement - continue statement
│   ├── EmptyStatement - lone ';'
│   └── ExpressionStatement - expression as statement
└── Expressions
    ├── BinaryExpression - binary operators
    ├── UnaryExpression - unary operators (including ++/--)
    ├── AssignmentExpression - assignment (=, +=, etc.)
    ├── TernaryExpression - ternary operator (?:)
    ├── CallExpression - function call (Serial.println is one name)
    ├── ArraySubscript - array indexing [n]
    ├── IdentifierExpression - variable or constant reference
    ├── NumberLiteral - integer or floating constant
    ├── StringLiteral - string constant
    ├── CharLiteral - character constant
    ├── InitializerList - brace initializer { a, b, c }
    └── CastExpression - type cast
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Union

from arduino_sim.errors import SourceLocation


# =============================================================================
# Type Specifiers
# =============================================================================

# Every word of an integer type name is one of these ("unsigned long int")
INTEGER_WORDS = frozenset({"int", "long", "short", "byte", "char", "word", "unsigned", "signed"})
FLOAT_TYPES = frozenset({"float", "double"})
BOOL_TYPES = frozenset({"bool", "boolean"})


@dataclass(frozen=True)
class TypeSpec:
    """
    A declared type after qualifiers and multi-word names are folded.

    Attributes:
        name: Canonical type name ("int", "unsigned long", "String", ...)
        is_const: Declared with 'const'
        is_static: Declared with 'static'
    """
    name: str
    is_const: bool = False
    is_static: bool = False

    @property
    def is_integer(self) -> bool:
        return all(word in INTEGER_WORDS for word in self.name.split())

    @property
    def is_float(self) -> bool:
        return self.name in FLOAT_TYPES

    @property
    def is_void(self) -> bool:
        return self.name == "void"

    @property
    def kind(self) -> Optional[str]:
        """Python value kind held by this type: "int", "float", "bool", "str" or None."""
        if self.is_integer:
            return "int"
        if self.is_float:
            return "float"
        if self.name in BOOL_TYPES:
            return "bool"
        if self.name == "String":
            return "str"
        return None

    def __str__(self) -> str:
        return self.name


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all AST nodes.

    Attributes:
        location: Source location where this node appears
    """
    location: SourceLocation

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}@{self.location.line}:{self.location.column}"


@dataclass
class Expression(ASTNode):
    """Base class for all expression nodes."""
    pass


@dataclass
class Statement(ASTNode):
    """Base class for all statement nodes."""
    pass


@dataclass
class Declaration(ASTNode):
    """Base class for nodes that introduce names."""
    pass


# =============================================================================
# Program Root Node
# =============================================================================

@dataclass
class ProgramNode(ASTNode):
    """
    Root node of a parsed sketch.

    Attributes:
        declarations: Top-level functions and variables, in source order
    """
    declarations: list[Declaration] = field(default_factory=list)

    @property
    def functions(self) -> list["FunctionNode"]:
        """Function definitions (prototypes excluded)."""
        return [
            d for d in self.declarations
            if isinstance(d, FunctionNode) and not d.is_forward_decl
        ]


# =============================================================================
# Declaration Nodes
# =============================================================================

@dataclass
class ParameterNode(Declaration):
    """
    Function parameter declaration.

    Attributes:
        name: Parameter name
        param_type: The declared type
        is_array: True for 'int values[]' parameters
    """
    name: str = ""
    param_type: TypeSpec = field(default=None)
    is_array: bool = False


@dataclass
class VariableDeclaration(Declaration):
    """
    Variable declaration (global or local).

    Represents declarations like:
        int x;
        const int ledPin = 13;
        int leds[] = {2, 3, 4};
        int grid[2][3];
        static unsigned long last = 0;

    Attributes:
        name: Variable name
        var_type: The declared type
        dimensions: One entry per '[...]' suffix; None for an unsized '[]'
        initializer: Optional initialization expression
        is_global: True for file-scope variables
    """
    name: str = ""
    var_type: TypeSpec = field(default=None)
    dimensions: list[Optional["Expression"]] = field(default_factory=list)
    initializer: Optional[Expression] = None
    is_global: bool = False

    @property
    def is_array(self) -> bool:
        return bool(self.dimensions)

    @property
    def is_static(self) -> bool:
        return self.var_type.is_static


@dataclass
class FunctionNode(Declaration):
    """
    Function definition or prototype.

    Attributes:
        name: Function name
        return_type: The declared return type
        parameters: List of parameter declarations
        body: The function body (None for a prototype)
        is_forward_decl: True for a prototype such as 'void blink(int);'
    """
    name: str = ""
    return_type: TypeSpec = field(default=None)
    parameters: list[ParameterNode] = field(default_factory=list)
    body: Optional["BlockStatement"] = None
    is_forward_decl: bool = False


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class BlockStatement(Statement):
    """
    Block/compound statement enclosed in braces.

    Declarations may appear anywhere in a block, so they are kept inline
    with the other statements as DeclarationStatement entries.
    """
    statements: list[Statement] = field(default_factory=list)


@dataclass
class DeclarationStatement(Statement):
    """
    A local declaration such as 'int a = 1, b;'.

    Attributes:
        declarations: One VariableDeclaration per declarator
    """
    declarations: list[VariableDeclaration] = field(default_factory=list)


@dataclass
class ExpressionStatement(Statement):
    """Expression used as a statement (followed by semicolon)."""
    expression: Expression = None


@dataclass
class EmptyStatement(Statement):
    """A lone ';'."""
    pass


@dataclass
class IfStatement(Statement):
    """
    If statement with optional else clause.

    Attributes:
        condition: The condition expression
        then_branch: Statement executed if condition is true
        else_branch: Optional statement executed if condition is false
    """
    condition: Expression = None
    then_branch: Statement = None
    else_branch: Optional[Statement] = None


@dataclass
class WhileStatement(Statement):
    """While loop statement."""
    condition: Expression = None
    body: Statement = None


@dataclass
class ForStatement(Statement):
    """
    For loop statement.

    Attributes:
        initializer: Expressions or declarations run once before the loop
        condition: Optional loop condition (defaults to true)
        update: Comma-separated update expressions
        body: Loop body statement
    """
    initializer: list[Union[Expression, VariableDeclaration]] = field(default_factory=list)
    condition: Optional[Expression] = None
    update: list[Expression] = field(default_factory=list)
    body: Statement = None


@dataclass
class DoWhileStatement(Statement):
    """Do-while loop statement; the condition is checked after the body."""
    body: Statement = None
    condition: Expression = None


@dataclass
class CaseClause(Statement):
    """
    Case or default clause in a switch statement.

    Attributes:
        value: Case value expression (None for default)
        statements: Statements in this case
        is_default: True if this is the default case
    """
    value: Optional[Expression] = None
    statements: list[Statement] = field(default_factory=list)
    is_default: bool = False


@dataclass
class SwitchStatement(Statement):
    """Switch statement with C fallthrough semantics."""
    expression: Expression = None
    cases: list[CaseClause] = field(default_factory=list)


@dataclass
class ReturnStatement(Statement):
    """Return statement with optional value."""
    value: Optional[Expression] = None


@dataclass
class BreakStatement(Statement):
    """Break statement for exiting loops and switches."""
    pass


@dataclass
class ContinueStatement(Statement):
    """Continue statement for skipping to the next loop iteration."""
    pass


# =============================================================================
# Expression Nodes
# =============================================================================

class BinaryOperator(Enum):
    """Binary operator types."""
    # Arithmetic
    ADD = auto()        # +
    SUBTRACT = auto()   # -
    MULTIPLY = auto()   # *
    DIVIDE = auto()     # /
    MODULO = auto()     # %

    # Comparison
    EQUAL = auto()      # ==
    NOT_EQUAL = auto()  # !=
    LESS = auto()       # <
    GREATER = auto()    # >
    LESS_EQ = auto()    # <=
    GREATER_EQ = auto() # >=

    # Logical
    LOGICAL_AND = auto()  # &&
    LOGICAL_OR = auto()   # ||

    # Bitwise
    BITWISE_AND = auto()  # &
    BITWISE_OR = auto()   # |
    BITWISE_XOR = auto()  # ^
    LEFT_SHIFT = auto()   # <<
    RIGHT_SHIFT = auto()  # >>


class UnaryOperator(Enum):
    """Unary operator types."""
    NEGATE = auto()         # -x
    POSITIVE = auto()       # +x
    LOGICAL_NOT = auto()    # !x
    BITWISE_NOT = auto()    # ~x
    PRE_INCREMENT = auto()  # ++x
    PRE_DECREMENT = auto()  # --x
    POST_INCREMENT = auto() # x++
    POST_DECREMENT = auto() # x--


class AssignmentOperator(Enum):
    """Assignment operator types."""
    ASSIGN = auto()        # =
    ADD_ASSIGN = auto()    # +=
    SUB_ASSIGN = auto()    # -=
    MUL_ASSIGN = auto()    # *=
    DIV_ASSIGN = auto()    # /=
    MOD_ASSIGN = auto()    # %=
    AND_ASSIGN = auto()    # &=
    OR_ASSIGN = auto()     # |=
    XOR_ASSIGN = auto()    # ^=
    LSHIFT_ASSIGN = auto() # <<=
    RSHIFT_ASSIGN = auto() # >>=

    @property
    def binary_operator(self) -> Optional[BinaryOperator]:
        """The binary operator a compound assignment applies, or None for '='."""
        return _COMPOUND_TO_BINARY.get(self)


_COMPOUND_TO_BINARY = {
    AssignmentOperator.ADD_ASSIGN: BinaryOperator.ADD,
    AssignmentOperator.SUB_ASSIGN: BinaryOperator.SUBTRACT,
    AssignmentOperator.MUL_ASSIGN: BinaryOperator.MULTIPLY,
    AssignmentOperator.DIV_ASSIGN: BinaryOperator.DIVIDE,
    AssignmentOperator.MOD_ASSIGN: BinaryOperator.MODULO,
    AssignmentOperator.AND_ASSIGN: BinaryOperator.BITWISE_AND,
    AssignmentOperator.OR_ASSIGN: BinaryOperator.BITWISE_OR,
    AssignmentOperator.XOR_ASSIGN: BinaryOperator.BITWISE_XOR,
    AssignmentOperator.LSHIFT_ASSIGN: BinaryOperator.LEFT_SHIFT,
    AssignmentOperator.RSHIFT_ASSIGN: BinaryOperator.RIGHT_SHIFT,
}


@dataclass
class BinaryExpression(Expression):
    """Binary operation: left op right."""
    operator: BinaryOperator = None
    left: Expression = None
    right: Expression = None


@dataclass
class UnaryExpression(Expression):
    """Unary operation: op operand, or operand op for postfix ++/--."""
    operator: UnaryOperator = None
    operand: Expression = None


@dataclass
class AssignmentExpression(Expression):
    """
    Assignment expression.

    Attributes:
        operator: Assignment operator (=, +=, etc.)
        target: Left-hand side (identifier or array subscript)
        value: Right-hand side expression
    """
    operator: AssignmentOperator = None
    target: Expression = None
    value: Expression = None


@dataclass
class TernaryExpression(Expression):
    """Ternary conditional: condition ? true_expr : false_expr."""
    condition: Expression = None
    true_expr: Expression = None
    false_expr: Expression = None


@dataclass
class CallExpression(Expression):
    """
    Function call.

    Attributes:
        function: Called name; member calls keep their dotted form
                  ("Serial.println")
        arguments: Argument expressions
    """
    function: str = ""
    arguments: list[Expression] = field(default_factory=list)


@dataclass
class ArraySubscript(Expression):
    """Array subscript: array[index]."""
    array: Expression = None
    index: Expression = None


@dataclass
class IdentifierExpression(Expression):
    """Reference to a variable or named constant."""
    name: str = ""


@dataclass
class NumberLiteral(Expression):
    """Integer or floating point constant."""
    value: Union[int, float] = 0


@dataclass
class StringLiteral(Expression):
    """String constant."""
    value: str = ""


@dataclass
class CharLiteral(Expression):
    """Character constant; value is the character code."""
    value: int = 0


@dataclass
class InitializerList(Expression):
    """Brace initializer list, possibly nested: { {1, 2}, {3, 4} }."""
    elements: list[Expression] = field(default_factory=list)


@dataclass
class CastExpression(Expression):
    """Type cast: (int)x or int(x)."""
    target_type: TypeSpec = None
    expression: Expression = None
