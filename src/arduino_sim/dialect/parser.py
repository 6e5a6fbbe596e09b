"""
Sketch Recursive Descent Parser
===============================

This module implements a recursive descent parser for the sketch dialect.
It takes the token stream from the lexer (after constant expansion) and
builds an Abstract Syntax Tree (AST).

Grammar (Simplified EBNF)
-------------------------
program         ::= (function_def | prototype | variable_decl | ';')*
function_def    ::= type_spec IDENTIFIER '(' params? ')' block
prototype       ::= type_spec IDENTIFIER '(' params? ')' ';'
variable_decl   ::= type_spec declarator (',' declarator)* ';'
type_spec       ::= QUALIFIER* TYPE_KEYWORD+ QUALIFIER*
declarator      ::= IDENTIFIER ('[' expr? ']')* ('=' initializer)?
initializer     ::= '{' (initializer (',' initializer)* ','?)? '}' | expr

block           ::= '{' (variable_decl | statement)* '}'
statement       ::= if_stmt | while_stmt | for_stmt | do_stmt
                  | switch_stmt | return_stmt | break_stmt
                  | continue_stmt | block | expr_stmt | ';'

for_stmt        ::= 'for' '(' (decl | expr_list)? ';' expr? ';' expr_list? ')' statement
switch_stmt     ::= 'switch' '(' expr ')' '{' case_clause* '}'

Expression Precedence (lowest to highest)
-----------------------------------------
1.  assignment     =, +=, -=, etc.
2.  ternary        ?:
3.  logical_or     ||
4.  logical_and    &&
5.  bitwise_or     |
6.  bitwise_xor    ^
7.  bitwise_and    &
8.  equality       == !=
9.  relational     < > <= >=
10. shift          << >>
11. additive       + -
12. multiplicative * / %
13. unary          - + ! ~ ++ -- (type)
14. postfix        () [] ++ -- .member()
15. primary        IDENTIFIER, NUMBER, STRING, CHAR, type(expr), '(' expr ')'

Example Usage
-------------
>>> from arduino_sim.dialect.parser import parse_source
>>> program = parse_source('void loop() { delay(500); }')
>>> [f.name for f in program.functions]
['loop']
"""

from typing import Optional, Callable

from arduino_sim.errors import (
    SourceLocation,
    SketchSyntaxError,
    UnexpectedTokenError,
    MissingTokenError,
)
from arduino_sim.dialect.lexer import SketchLexer, Token, TokenType
from arduino_sim.dialect.ast import (
    TypeSpec,
    ProgramNode,
    FunctionNode,
    ParameterNode,
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
    CaseClause,
    ReturnStatement,
    BreakStatement,
    ContinueStatement,
    Expression,
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
    CharLiteral,
    InitializerList,
    CastExpression,
)


ASSIGNMENT_OPERATORS = {
    TokenType.ASSIGN: AssignmentOperator.ASSIGN,
    TokenType.PLUS_ASSIGN: AssignmentOperator.ADD_ASSIGN,
    TokenType.MINUS_ASSIGN: AssignmentOperator.SUB_ASSIGN,
    TokenType.STAR_ASSIGN: AssignmentOperator.MUL_ASSIGN,
    TokenType.SLASH_ASSIGN: AssignmentOperator.DIV_ASSIGN,
    TokenType.PERCENT_ASSIGN: AssignmentOperator.MOD_ASSIGN,
    TokenType.AND_ASSIGN: AssignmentOperator.AND_ASSIGN,
    TokenType.OR_ASSIGN: AssignmentOperator.OR_ASSIGN,
    TokenType.XOR_ASSIGN: AssignmentOperator.XOR_ASSIGN,
    TokenType.LSHIFT_ASSIGN: AssignmentOperator.LSHIFT_ASSIGN,
    TokenType.RSHIFT_ASSIGN: AssignmentOperator.RSHIFT_ASSIGN,
}

UNARY_OPERATORS = {
    TokenType.MINUS: UnaryOperator.NEGATE,
    TokenType.PLUS: UnaryOperator.POSITIVE,
    TokenType.NOT: UnaryOperator.LOGICAL_NOT,
    TokenType.TILDE: UnaryOperator.BITWISE_NOT,
    TokenType.INCREMENT: UnaryOperator.PRE_INCREMENT,
    TokenType.DECREMENT: UnaryOperator.PRE_DECREMENT,
}

# Words that may follow 'unsigned' / 'signed' / 'long' in a multi-word type
_TYPE_CONTINUATIONS = {
    "unsigned": {"int", "long", "char", "short"},
    "signed": {"int", "long", "char", "short"},
    "long": {"long", "int"},
    "short": {"int"},
    "unsigned long": {"long", "int"},
    "signed long": {"long", "int"},
    "unsigned short": {"int"},
}


class SketchParser:
    """
    Recursive descent parser for the sketch dialect.

    Usage:
        tokens = list(SketchLexer(source, filename).tokenize())
        program = SketchParser(tokens, filename, source.splitlines()).parse()

    The parser stops at the first error and raises it; sketches are small
    and one precise message is more useful than a cascade.
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source_lines: Optional[list[str]] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer, ending with EOF
            filename: Sketch name for error messages
            source_lines: Original source lines for error context
        """
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source_lines or []
        self._pos = 0

    def parse(self) -> ProgramNode:
        """
        Parse the token stream into an AST.

        Returns:
            ProgramNode containing all top-level declarations

        Raises:
            SketchSyntaxError: If parsing fails
        """
        declarations = []

        while not self._at_end():
            if self._match(TokenType.SEMICOLON):
                continue
            result = self._parse_top_level_declaration()
            if isinstance(result, list):
                declarations.extend(result)
            else:
                declarations.append(result)

        return ProgramNode(
            location=SourceLocation(self.filename, 1, 1),
            declarations=declarations,
        )

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self, offset: int = 0) -> Token:
        pos = self._pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def _advance(self) -> Token:
        if not self._at_end():
            token = self.tokens[self._pos]
            self._pos += 1
            return token
        return self.tokens[-1]

    def _check(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        """Consume the current token if it matches one of the types."""
        if self._check(*types):
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, message: Optional[str] = None) -> Token:
        """
        Expect and consume a specific token type.

        Raises:
            MissingTokenError: If the expected token is not found
        """
        if self._check(token_type):
            return self._advance()

        current = self._peek()
        if message is None:
            message = token_type.name.lower()

        raise MissingTokenError(
            message,
            current.location,
            self._get_source_line(current.line),
        )

    def _unexpected(self, expected: str) -> UnexpectedTokenError:
        token = self._peek()
        found = "end of input" if token.type == TokenType.EOF else str(token.value)
        return UnexpectedTokenError(
            found,
            expected=expected,
            location=token.location,
            source_line=self._get_source_line(token.line),
        )

    def _get_source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    # =========================================================================
    # Type Specifiers
    # =========================================================================

    def _is_type_start(self, offset: int = 0) -> bool:
        """True if a declaration starts at the given offset."""
        token = self._peek(offset)
        if token.type == TokenType.QUALIFIER:
            return True
        # 'int(x)' and 'String(x)' at statement start are expressions
        return token.type == TokenType.TYPE_KEYWORD and self._peek(offset + 1).type != TokenType.LPAREN

    def _parse_type_specifier(self) -> TypeSpec:
        """
        Parse qualifiers and a (possibly multi-word) type name.

        Examples: 'int', 'const int', 'static unsigned long', 'long long'.
        """
        is_const = False
        is_static = False

        def consume_qualifiers():
            nonlocal is_const, is_static
            while self._check(TokenType.QUALIFIER):
                word = self._advance().value
                if word == "const":
                    is_const = True
                elif word == "static":
                    is_static = True

        consume_qualifiers()

        if not self._check(TokenType.TYPE_KEYWORD):
            raise self._unexpected("type name")

        name = self._advance().value
        while self._check(TokenType.TYPE_KEYWORD) and self._peek().value in _TYPE_CONTINUATIONS.get(name, ()):
            name = f"{name} {self._advance().value}"

        if name in ("unsigned", "signed"):
            name = f"{name} int"

        consume_qualifiers()
        return TypeSpec(name=name, is_const=is_const, is_static=is_static)

    # =========================================================================
    # Top-Level Declaration Parsing
    # =========================================================================

    def _parse_top_level_declaration(self):
        """
        Parse a function definition, prototype or global variable(s).

        Returns:
            FunctionNode, or list[VariableDeclaration] for globals
        """
        if not self._is_type_start():
            raise self._unexpected("declaration")

        type_spec = self._parse_type_specifier()
        name_token = self._expect(TokenType.IDENTIFIER, "identifier")

        if self._check(TokenType.LPAREN):
            return self._parse_function(type_spec, name_token)

        declarations = [self._parse_declarator_rest(type_spec, name_token, is_global=True)]
        while self._match(TokenType.COMMA):
            name_token = self._expect(TokenType.IDENTIFIER, "identifier")
            declarations.append(self._parse_declarator_rest(type_spec, name_token, is_global=True))
        self._expect(TokenType.SEMICOLON, "';'")
        return declarations

    def _parse_function(self, return_type: TypeSpec, name_token: Token) -> FunctionNode:
        self._expect(TokenType.LPAREN, "'('")
        parameters = self._parse_parameter_list()
        self._expect(TokenType.RPAREN, "')'")

        if self._match(TokenType.SEMICOLON):
            return FunctionNode(
                location=name_token.location,
                name=name_token.value,
                return_type=return_type,
                parameters=parameters,
                is_forward_decl=True,
            )

        body = self._parse_block()
        return FunctionNode(
            location=name_token.location,
            name=name_token.value,
            return_type=return_type,
            parameters=parameters,
            body=body,
        )

    def _parse_parameter_list(self) -> list[ParameterNode]:
        if self._check(TokenType.RPAREN):
            return []
        if self._peek().value == "void" and self._peek(1).type == TokenType.RPAREN:
            self._advance()
            return []

        parameters = [self._parse_parameter()]
        while self._match(TokenType.COMMA):
            parameters.append(self._parse_parameter())
        return parameters

    def _parse_parameter(self) -> ParameterNode:
        location = self._peek().location
        param_type = self._parse_type_specifier()
        # C++ reference parameters are passed like values
        self._match(TokenType.AMPERSAND)

        name = ""
        if self._check(TokenType.IDENTIFIER):
            name = self._advance().value

        is_array = False
        while self._match(TokenType.LBRACKET):
            is_array = True
            if not self._check(TokenType.RBRACKET):
                self._parse_expression()
            self._expect(TokenType.RBRACKET, "']'")

        return ParameterNode(location=location, name=name, param_type=param_type, is_array=is_array)

    def _parse_declarator_rest(
        self,
        var_type: TypeSpec,
        name_token: Token,
        is_global: bool,
    ) -> VariableDeclaration:
        """Parse array suffixes and initializer after the declared name."""
        dimensions: list[Optional[Expression]] = []
        while self._match(TokenType.LBRACKET):
            if self._check(TokenType.RBRACKET):
                dimensions.append(None)
            else:
                dimensions.append(self._parse_expression())
            self._expect(TokenType.RBRACKET, "']'")

        initializer = None
        if self._match(TokenType.ASSIGN):
            initializer = self._parse_initializer()
        elif self._check(TokenType.LPAREN) and not dimensions:
            # Constructor form: String name("text");
            self._advance()
            initializer = self._parse_assignment()
            self._expect(TokenType.RPAREN, "')'")

        return VariableDeclaration(
            location=name_token.location,
            name=name_token.value,
            var_type=var_type,
            dimensions=dimensions,
            initializer=initializer,
            is_global=is_global,
        )

    def _parse_declarators(self, is_global: bool) -> list[VariableDeclaration]:
        var_type = self._parse_type_specifier()
        declarations = []
        while True:
            name_token = self._expect(TokenType.IDENTIFIER, "identifier")
            declarations.append(self._parse_declarator_rest(var_type, name_token, is_global))
            if not self._match(TokenType.COMMA):
                break
        return declarations

    def _parse_initializer(self) -> Expression:
        if not self._check(TokenType.LBRACE):
            return self._parse_assignment()

        location = self._advance().location
        elements = []
        while not self._check(TokenType.RBRACE):
            elements.append(self._parse_initializer())
            if not self._match(TokenType.COMMA):
                break
        self._expect(TokenType.RBRACE, "'}'")
        return InitializerList(location=location, elements=elements)

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_block(self) -> BlockStatement:
        """Parse a block statement { ... }."""
        location = self._peek().location
        self._expect(TokenType.LBRACE, "'{'")

        statements = []
        while not self._check(TokenType.RBRACE) and not self._at_end():
            statements.append(self._parse_statement())

        self._expect(TokenType.RBRACE, "'}'")
        return BlockStatement(location=location, statements=statements)

    def _parse_statement(self) -> Statement:
        """Parse any statement, including local declarations."""
        token = self._peek()

        if self._is_type_start():
            declarations = self._parse_declarators(is_global=False)
            self._expect(TokenType.SEMICOLON, "';'")
            return DeclarationStatement(location=token.location, declarations=declarations)

        if token.type == TokenType.IF:
            return self._parse_if_statement()
        if token.type == TokenType.WHILE:
            return self._parse_while_statement()
        if token.type == TokenType.FOR:
            return self._parse_for_statement()
        if token.type == TokenType.DO:
            return self._parse_do_while_statement()
        if token.type == TokenType.SWITCH:
            return self._parse_switch_statement()
        if token.type == TokenType.RETURN:
            return self._parse_return_statement()
        if token.type == TokenType.BREAK:
            self._advance()
            self._expect(TokenType.SEMICOLON, "';'")
            return BreakStatement(location=token.location)
        if token.type == TokenType.CONTINUE:
            self._advance()
            self._expect(TokenType.SEMICOLON, "';'")
            return ContinueStatement(location=token.location)
        if token.type == TokenType.LBRACE:
            return self._parse_block()
        if token.type == TokenType.SEMICOLON:
            self._advance()
            return EmptyStatement(location=token.location)
        if token.type in (TokenType.CASE, TokenType.DEFAULT, TokenType.ELSE):
            raise self._unexpected("statement")

        expression = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")
        return ExpressionStatement(location=token.location, expression=expression)

    def _parse_condition(self) -> Expression:
        self._expect(TokenType.LPAREN, "'('")
        condition = self._parse_expression()
        self._expect(TokenType.RPAREN, "')'")
        return condition

    def _parse_if_statement(self) -> IfStatement:
        location = self._advance().location
        condition = self._parse_condition()
        then_branch = self._parse_statement()

        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_statement()

        return IfStatement(
            location=location,
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_while_statement(self) -> WhileStatement:
        location = self._advance().location
        condition = self._parse_condition()
        body = self._parse_statement()
        return WhileStatement(location=location, condition=condition, body=body)

    def _parse_for_statement(self) -> ForStatement:
        """Parse for statement; init may declare, init and update may be comma lists."""
        location = self._advance().location
        self._expect(TokenType.LPAREN, "'('")

        initializer: list = []
        if self._is_type_start():
            initializer = self._parse_declarators(is_global=False)
        elif not self._check(TokenType.SEMICOLON):
            initializer = self._parse_expression_list()
        self._expect(TokenType.SEMICOLON, "';'")

        condition = None
        if not self._check(TokenType.SEMICOLON):
            condition = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")

        update: list[Expression] = []
        if not self._check(TokenType.RPAREN):
            update = self._parse_expression_list()
        self._expect(TokenType.RPAREN, "')'")

        body = self._parse_statement()

        return ForStatement(
            location=location,
            initializer=initializer,
            condition=condition,
            update=update,
            body=body,
        )

    def _parse_do_while_statement(self) -> DoWhileStatement:
        location = self._advance().location
        body = self._parse_statement()
        self._expect(TokenType.WHILE, "'while'")
        condition = self._parse_condition()
        self._expect(TokenType.SEMICOLON, "';'")
        return DoWhileStatement(location=location, body=body, condition=condition)

    def _parse_switch_statement(self) -> SwitchStatement:
        location = self._advance().location
        expression = self._parse_condition()
        self._expect(TokenType.LBRACE, "'{'")

        cases = []
        while not self._check(TokenType.RBRACE) and not self._at_end():
            cases.append(self._parse_case_clause())

        self._expect(TokenType.RBRACE, "'}'")

        if sum(1 for case in cases if case.is_default) > 1:
            raise SketchSyntaxError(
                "multiple default labels in one switch",
                location,
                source_line=self._get_source_line(location.line),
            )

        return SwitchStatement(location=location, expression=expression, cases=cases)

    def _parse_case_clause(self) -> CaseClause:
        location = self._peek().location
        is_default = False
        value = None

        if self._match(TokenType.CASE):
            value = self._parse_ternary()
            self._expect(TokenType.COLON, "':'")
        elif self._match(TokenType.DEFAULT):
            is_default = True
            self._expect(TokenType.COLON, "':'")
        else:
            raise self._unexpected("'case' or 'default'")

        statements = []
        while not self._check(TokenType.CASE, TokenType.DEFAULT, TokenType.RBRACE) and not self._at_end():
            statements.append(self._parse_statement())

        return CaseClause(
            location=location,
            value=value,
            statements=statements,
            is_default=is_default,
        )

    def _parse_return_statement(self) -> ReturnStatement:
        location = self._advance().location
        value = None
        if not self._check(TokenType.SEMICOLON):
            value = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")
        return ReturnStatement(location=location, value=value)

    # =========================================================================
    # Expression Parsing (Operator Precedence)
    # =========================================================================

    def _parse_expression_list(self) -> list[Expression]:
        """Comma-separated expressions, as used in for-loop headers."""
        expressions = [self._parse_expression()]
        while self._match(TokenType.COMMA):
            expressions.append(self._parse_expression())
        return expressions

    def _parse_expression(self) -> Expression:
        return self._parse_assignment()

    def _parse_assignment(self) -> Expression:
        """Parse assignment expression (right-associative)."""
        expr = self._parse_ternary()

        if self._peek().type in ASSIGNMENT_OPERATORS:
            op_token = self._advance()
            if not isinstance(expr, (IdentifierExpression, ArraySubscript)):
                raise SketchSyntaxError(
                    "left side of assignment is not assignable",
                    op_token.location,
                    source_line=self._get_source_line(op_token.line),
                )
            value = self._parse_assignment()
            return AssignmentExpression(
                location=expr.location,
                operator=ASSIGNMENT_OPERATORS[op_token.type],
                target=expr,
                value=value,
            )

        return expr

    def _parse_ternary(self) -> Expression:
        expr = self._parse_logical_or()

        if self._match(TokenType.QUESTION):
            true_expr = self._parse_expression()
            self._expect(TokenType.COLON, "':'")
            false_expr = self._parse_ternary()
            return TernaryExpression(
                location=expr.location,
                condition=expr,
                true_expr=true_expr,
                false_expr=false_expr,
            )

        return expr

    def _parse_logical_or(self) -> Expression:
        return self._parse_binary(
            self._parse_logical_and,
            {TokenType.OR: BinaryOperator.LOGICAL_OR},
        )

    def _parse_logical_and(self) -> Expression:
        return self._parse_binary(
            self._parse_bitwise_or,
            {TokenType.AND: BinaryOperator.LOGICAL_AND},
        )

    def _parse_bitwise_or(self) -> Expression:
        return self._parse_binary(
            self._parse_bitwise_xor,
            {TokenType.PIPE: BinaryOperator.BITWISE_OR},
        )

    def _parse_bitwise_xor(self) -> Expression:
        return self._parse_binary(
            self._parse_bitwise_and,
            {TokenType.CARET: BinaryOperator.BITWISE_XOR},
        )

    def _parse_bitwise_and(self) -> Expression:
        return self._parse_binary(
            self._parse_equality,
            {TokenType.AMPERSAND: BinaryOperator.BITWISE_AND},
        )

    def _parse_equality(self) -> Expression:
        return self._parse_binary(
            self._parse_relational,
            {
                TokenType.EQ: BinaryOperator.EQUAL,
                TokenType.NE: BinaryOperator.NOT_EQUAL,
            },
        )

    def _parse_relational(self) -> Expression:
        return self._parse_binary(
            self._parse_shift,
            {
                TokenType.LT: BinaryOperator.LESS,
                TokenType.GT: BinaryOperator.GREATER,
                TokenType.LE: BinaryOperator.LESS_EQ,
                TokenType.GE: BinaryOperator.GREATER_EQ,
            },
        )

    def _parse_shift(self) -> Expression:
        return self._parse_binary(
            self._parse_additive,
            {
                TokenType.LSHIFT: BinaryOperator.LEFT_SHIFT,
                TokenType.RSHIFT: BinaryOperator.RIGHT_SHIFT,
            },
        )

    def _parse_additive(self) -> Expression:
        return self._parse_binary(
            self._parse_multiplicative,
            {
                TokenType.PLUS: BinaryOperator.ADD,
                TokenType.MINUS: BinaryOperator.SUBTRACT,
            },
        )

    def _parse_multiplicative(self) -> Expression:
        return self._parse_binary(
            self._parse_unary,
            {
                TokenType.STAR: BinaryOperator.MULTIPLY,
                TokenType.SLASH: BinaryOperator.DIVIDE,
                TokenType.PERCENT: BinaryOperator.MODULO,
            },
        )

    def _parse_binary(
        self,
        operand_parser: Callable[[], Expression],
        operators: dict[TokenType, BinaryOperator],
    ) -> Expression:
        """
        Generic left-associative binary expression parser.

        Args:
            operand_parser: Function to parse operands
            operators: Map of token types to binary operators
        """
        expr = operand_parser()

        while self._peek().type in operators:
            op_token = self._advance()
            right = operand_parser()
            expr = BinaryExpression(
                location=expr.location,
                operator=operators[op_token.type],
                left=expr,
                right=right,
            )

        return expr

    def _parse_unary(self) -> Expression:
        token = self._peek()

        if token.type in UNARY_OPERATORS:
            self._advance()
            operand = self._parse_unary()
            operator = UNARY_OPERATORS[token.type]
            if operator in (UnaryOperator.PRE_INCREMENT, UnaryOperator.PRE_DECREMENT):
                self._require_assignable(operand, token)
            return UnaryExpression(location=token.location, operator=operator, operand=operand)

        # C-style cast: (int)x, but not a parenthesized functional cast (int(x) + 1)
        if (
            token.type == TokenType.LPAREN
            and self._peek(1).type == TokenType.TYPE_KEYWORD
            and self._peek(2).type != TokenType.LPAREN
        ):
            self._advance()
            target_type = self._parse_type_specifier()
            self._expect(TokenType.RPAREN, "')'")
            expression = self._parse_unary()
            return CastExpression(location=token.location, target_type=target_type, expression=expression)

        return self._parse_postfix()

    def _require_assignable(self, operand: Expression, op_token: Token) -> None:
        if not isinstance(operand, (IdentifierExpression, ArraySubscript)):
            raise SketchSyntaxError(
                f"operand of '{op_token.value}' is not assignable",
                op_token.location,
                source_line=self._get_source_line(op_token.line),
            )

    def _parse_postfix(self) -> Expression:
        """Parse postfix expression (calls, subscripts, ++, --, member calls)."""
        expr = self._parse_primary()

        while True:
            if self._check(TokenType.LPAREN):
                expr = self._parse_call(expr)

            elif self._match(TokenType.LBRACKET):
                index = self._parse_expression()
                self._expect(TokenType.RBRACKET, "']'")
                expr = ArraySubscript(location=expr.location, array=expr, index=index)

            elif self._check(TokenType.INCREMENT, TokenType.DECREMENT):
                op_token = self._advance()
                self._require_assignable(expr, op_token)
                operator = (
                    UnaryOperator.POST_INCREMENT
                    if op_token.type == TokenType.INCREMENT
                    else UnaryOperator.POST_DECREMENT
                )
                expr = UnaryExpression(location=expr.location, operator=operator, operand=expr)

            elif self._check(TokenType.DOT):
                # Only object.method(...) calls exist in the dialect (Serial.print)
                dot = self._advance()
                if not isinstance(expr, IdentifierExpression):
                    raise SketchSyntaxError(
                        "member access is only supported on names",
                        dot.location,
                        source_line=self._get_source_line(dot.line),
                    )
                member = self._expect(TokenType.IDENTIFIER, "member name")
                if not self._check(TokenType.LPAREN):
                    raise self._unexpected("'(' after member name")
                expr = IdentifierExpression(location=expr.location, name=f"{expr.name}.{member.value}")

            else:
                break

        return expr

    def _parse_call(self, callee: Expression) -> CallExpression:
        if not isinstance(callee, IdentifierExpression):
            raise SketchSyntaxError(
                "cannot call non-function",
                callee.location,
                source_line=self._get_source_line(callee.location.line),
            )
        self._expect(TokenType.LPAREN, "'('")

        arguments = []
        if not self._check(TokenType.RPAREN):
            while True:
                arguments.append(self._parse_assignment())
                if not self._match(TokenType.COMMA):
                    break

        self._expect(TokenType.RPAREN, "')'")

        return CallExpression(location=callee.location, function=callee.name, arguments=arguments)

    def _parse_primary(self) -> Expression:
        token = self._peek()

        if token.type == TokenType.NUMBER:
            self._advance()
            return NumberLiteral(location=token.location, value=token.value)

        if token.type == TokenType.CHAR_LITERAL:
            self._advance()
            return CharLiteral(location=token.location, value=token.value)

        if token.type == TokenType.STRING:
            self._advance()
            value = token.value
            # Adjacent literals concatenate: "abc" "def"
            while self._check(TokenType.STRING):
                value += self._advance().value
            return StringLiteral(location=token.location, value=value)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return IdentifierExpression(location=token.location, name=token.value)

        # Functional cast: int(x), float(x), String(x)
        if token.type == TokenType.TYPE_KEYWORD and self._peek(1).type == TokenType.LPAREN:
            target_type = TypeSpec(name=self._advance().value)
            self._advance()
            if target_type.name == "String" and self._check(TokenType.RPAREN):
                expression: Expression = StringLiteral(location=token.location, value="")
            else:
                expression = self._parse_expression()
            if target_type.name == "String" and self._check(TokenType.COMMA):
                # String(value, HEX) formats rather than converts
                arguments = [expression]
                while self._match(TokenType.COMMA):
                    arguments.append(self._parse_expression())
                self._expect(TokenType.RPAREN, "')'")
                return CallExpression(location=token.location, function="String", arguments=arguments)
            self._expect(TokenType.RPAREN, "')'")
            return CastExpression(location=token.location, target_type=target_type, expression=expression)

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN, "')'")
            return expr

        raise self._unexpected("expression")


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(source: str, filename: str = "<input>") -> ProgramNode:
    """
    Parse sketch source (without preprocessor directives) into an AST.

    Args:
        source: The sketch source
        filename: Sketch name for error messages

    Returns:
        The root ProgramNode of the AST

    Raises:
        SketchSyntaxError: If lexing or parsing fails
    """
    tokens = list(SketchLexer(source, filename).tokenize())
    return SketchParser(tokens, filename, source.splitlines()).parse()
