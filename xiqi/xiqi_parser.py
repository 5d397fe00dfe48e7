"""
The XIQI parser: a Pratt (precedence-climbing) parser over the lexer's tokens.

Parsing never stops at the first problem. Each failure appends a message to
`Parser.errors` and yields None for the construct, and parsing carries on
so a single pass reports every independent syntax error. Callers must
check the error list before evaluating the Program.
"""
import enum
import functools
import os
import sys
from typing import Callable, Dict, List, Optional, Tuple

from xiqi.xiqi_tokens import Token, TokenKind
from xiqi.xiqi_lexer import Lexer
from xiqi.xiqi_datatypes import INT64_MAX
from xiqi.xiqi_ast import (
    Program, Statement, LetStatement, ReturnStatement, ExpressionStatement, BlockStatement,
    Expression, Identifier, IntegerLiteral, Boolean, StringLiteral, PrefixExpression,
    InfixExpression, IfExpression, FunctionLiteral, CallExpression, ArrayLiteral,
    IndexExpression, AssignExpression, HashLiteral
)


class Precedence(enum.IntEnum):
    # fmt: off
    LOWEST      = enum.auto()
    ASSIGN      = enum.auto()  # =
    EQUALS      = enum.auto()  # == !=
    LESSGREATER = enum.auto()  # < > <= >=
    SUM         = enum.auto()  # + -
    PRODUCT     = enum.auto()  # * /
    PREFIX      = enum.auto()  # -x !x +x
    CALL        = enum.auto()  # f(x) a[i]
    # fmt: on


PRECEDENCES: Dict[TokenKind, Precedence] = {
    # fmt: off
    TokenKind.ASSIGN:   Precedence.ASSIGN,
    TokenKind.EQ:       Precedence.EQUALS,
    TokenKind.NOT_EQ:   Precedence.EQUALS,
    TokenKind.LT:       Precedence.LESSGREATER,
    TokenKind.GT:       Precedence.LESSGREATER,
    TokenKind.LEQ:      Precedence.LESSGREATER,
    TokenKind.GEQ:      Precedence.LESSGREATER,
    TokenKind.PLUS:     Precedence.SUM,
    TokenKind.MINUS:    Precedence.SUM,
    TokenKind.ASTERISK: Precedence.PRODUCT,
    TokenKind.SLASH:    Precedence.PRODUCT,
    TokenKind.LPAREN:   Precedence.CALL,
    TokenKind.LBRACKET: Precedence.CALL,
    # fmt: on
}


def traced(func):
    """Wraps a parse routine so it reports BEGIN/END lines when tracing is on."""
    name = func.__name__.lstrip('_')

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if not self.trace:
            return func(self, *args, **kwargs)
        self._trace_line(f"BEGIN {name}")
        self._trace_level += 1
        try:
            return func(self, *args, **kwargs)
        finally:
            self._trace_level -= 1
            self._trace_line(f"END {name}")
    return wrapper


class Parser:
    ParsePrefix = Callable[["Parser"], Optional[Expression]]
    ParseInfix = Callable[["Parser", Expression], Optional[Expression]]

    # Filled in below the class body; keyed by the closed TokenKind enum.
    PREFIX_PARSERS: Dict[TokenKind, "Parser.ParsePrefix"] = {}
    INFIX_PARSERS: Dict[TokenKind, "Parser.ParseInfix"] = {}

    def __init__(self, lexer: Lexer, trace: Optional[bool] = None):
        self.lexer = lexer
        self.errors: List[str] = []
        self.trace: bool = bool(os.environ.get("XIQI_TRACE")) if trace is None else trace
        self._trace_level = 0

        self.cur_token: Token = Token(TokenKind.ILLEGAL, "")
        self.peek_token: Token = Token(TokenKind.ILLEGAL, "")
        self._next_token()
        self._next_token()

    def _trace_line(self, text: str):
        print("\t" * self._trace_level + text, file=sys.stderr)

    # -----------------------------------------------------------------
    # Token cursor helpers
    # -----------------------------------------------------------------

    def _next_token(self) -> None:
        self.cur_token = self.peek_token
        self.peek_token = self.lexer.next_token()

    def _cur_token_is(self, kind: TokenKind) -> bool:
        return self.cur_token.kind == kind

    def _peek_token_is(self, kind: TokenKind) -> bool:
        return self.peek_token.kind == kind

    def _expect_peek(self, kind: TokenKind) -> bool:
        if self._peek_token_is(kind):
            self._next_token()
            return True
        self._peek_error(kind)
        return False

    def _peek_error(self, kind: TokenKind) -> None:
        self.errors.append(
            f"expected next token to be {kind}, got {self.peek_token.kind} instead"
        )

    def _no_prefix_parse_fn_error(self, kind: TokenKind) -> None:
        self.errors.append(f"no prefix parse function for {kind} found")

    def _peek_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.peek_token.kind, Precedence.LOWEST)

    def _cur_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.cur_token.kind, Precedence.LOWEST)

    # -----------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------

    def parse_program(self) -> Program:
        program = Program()
        while not self._cur_token_is(TokenKind.EOF):
            stmt = self._parse_statement()
            if stmt is not None:
                program.statements.append(stmt)
            self._next_token()
        return program

    def _parse_statement(self) -> Optional[Statement]:
        match self.cur_token.kind:
            case TokenKind.LET:
                return self._parse_let_statement()
            case TokenKind.RETURN:
                return self._parse_return_statement()
            case _:
                return self._parse_expression_statement()

    @traced
    def _parse_let_statement(self) -> Optional[LetStatement]:
        token = self.cur_token
        if not self._expect_peek(TokenKind.IDENT):
            return None
        name = Identifier(self.cur_token, self.cur_token.literal)
        if not self._expect_peek(TokenKind.ASSIGN):
            return None
        self._next_token()
        value = self.parse_expression(Precedence.LOWEST)
        if self._peek_token_is(TokenKind.SEMICOLON):
            self._next_token()
        return LetStatement(token, name, value)

    @traced
    def _parse_return_statement(self) -> ReturnStatement:
        token = self.cur_token
        if self._peek_token_is(TokenKind.SEMICOLON) or self._peek_token_is(TokenKind.RBRACE) \
                or self._peek_token_is(TokenKind.EOF):
            value = None
        else:
            self._next_token()
            value = self.parse_expression(Precedence.LOWEST)
        if self._peek_token_is(TokenKind.SEMICOLON):
            self._next_token()
        return ReturnStatement(token, value)

    @traced
    def _parse_expression_statement(self) -> ExpressionStatement:
        token = self.cur_token
        expression = self.parse_expression(Precedence.LOWEST)
        if self._peek_token_is(TokenKind.SEMICOLON):
            self._next_token()
        return ExpressionStatement(token, expression)

    @traced
    def _parse_block_statement(self) -> BlockStatement:
        block = BlockStatement(self.cur_token)
        self._next_token()
        while not self._cur_token_is(TokenKind.RBRACE) and not self._cur_token_is(TokenKind.EOF):
            stmt = self._parse_statement()
            if stmt is not None:
                block.statements.append(stmt)
            self._next_token()
        return block

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    @traced
    def parse_expression(self, precedence: Precedence = Precedence.LOWEST) -> Optional[Expression]:
        prefix = Parser.PREFIX_PARSERS.get(self.cur_token.kind)
        if prefix is None:
            self._no_prefix_parse_fn_error(self.cur_token.kind)
            return None
        left = prefix(self)

        while not self._peek_token_is(TokenKind.SEMICOLON) and precedence < self._peek_precedence():
            infix = Parser.INFIX_PARSERS.get(self.peek_token.kind)
            if infix is None:
                return left
            self._next_token()
            left = infix(self, left)
        return left

    def _parse_identifier(self) -> Expression:
        return Identifier(self.cur_token, self.cur_token.literal)

    @traced
    def _parse_integer_literal(self) -> Optional[Expression]:
        literal = self.cur_token.literal
        value = int(literal)
        if value > INT64_MAX:
            self.errors.append(f'could not parse "{literal}" as integer')
            return None
        return IntegerLiteral(self.cur_token, value)

    def _parse_string_literal(self) -> Expression:
        return StringLiteral(self.cur_token, self.cur_token.literal)

    def _parse_boolean(self) -> Expression:
        return Boolean(self.cur_token, self._cur_token_is(TokenKind.TRUE))

    @traced
    def _parse_prefix_expression(self) -> Expression:
        token = self.cur_token
        self._next_token()
        right = self.parse_expression(Precedence.PREFIX)
        return PrefixExpression(token, token.literal, right)

    @traced
    def _parse_infix_expression(self, left: Expression) -> Expression:
        token = self.cur_token
        precedence = self._cur_precedence()
        self._next_token()
        right = self.parse_expression(precedence)
        return InfixExpression(token, token.literal, left, right)

    @traced
    def _parse_grouped_expression(self) -> Optional[Expression]:
        self._next_token()
        exp = self.parse_expression(Precedence.LOWEST)
        if not self._expect_peek(TokenKind.RPAREN):
            return None
        return exp

    @traced
    def _parse_if_expression(self) -> Optional[Expression]:
        token = self.cur_token
        if not self._expect_peek(TokenKind.LPAREN):
            return None
        self._next_token()
        condition = self.parse_expression(Precedence.LOWEST)
        if not self._expect_peek(TokenKind.RPAREN):
            return None
        if not self._expect_peek(TokenKind.LBRACE):
            return None
        consequence = self._parse_block_statement()

        alternative = None
        if self._peek_token_is(TokenKind.ELSE):
            self._next_token()
            if not self._expect_peek(TokenKind.LBRACE):
                return None
            alternative = self._parse_block_statement()
        return IfExpression(token, condition, consequence, alternative)

    @traced
    def _parse_function_literal(self) -> Optional[Expression]:
        token = self.cur_token
        if not self._expect_peek(TokenKind.LPAREN):
            return None
        parameters = self._parse_function_parameters()
        if parameters is None:
            return None
        if not self._expect_peek(TokenKind.LBRACE):
            return None
        body = self._parse_block_statement()
        return FunctionLiteral(token, parameters, body)

    @traced
    def _parse_function_parameters(self) -> Optional[List[Identifier]]:
        identifiers: List[Identifier] = []
        if self._peek_token_is(TokenKind.RPAREN):
            self._next_token()
            return identifiers

        if not self._expect_peek(TokenKind.IDENT):
            return None
        identifiers.append(Identifier(self.cur_token, self.cur_token.literal))
        while self._peek_token_is(TokenKind.COMMA):
            self._next_token()
            if not self._expect_peek(TokenKind.IDENT):
                return None
            identifiers.append(Identifier(self.cur_token, self.cur_token.literal))

        if not self._expect_peek(TokenKind.RPAREN):
            return None
        return identifiers

    @traced
    def _parse_expression_list(self, end: TokenKind) -> Optional[List[Expression]]:
        """Parses `a, b, c` up to and including the closing `end` token."""
        items: List[Expression] = []
        if self._peek_token_is(end):
            self._next_token()
            return items

        self._next_token()
        items.append(self.parse_expression(Precedence.LOWEST))
        while self._peek_token_is(TokenKind.COMMA):
            self._next_token()
            self._next_token()
            items.append(self.parse_expression(Precedence.LOWEST))

        if not self._expect_peek(end):
            return None
        return items

    @traced
    def _parse_call_expression(self, function: Expression) -> Optional[Expression]:
        token = self.cur_token
        arguments = self._parse_expression_list(TokenKind.RPAREN)
        if arguments is None:
            return None
        return CallExpression(token, function, arguments)

    @traced
    def _parse_array_literal(self) -> Optional[Expression]:
        token = self.cur_token
        elements = self._parse_expression_list(TokenKind.RBRACKET)
        if elements is None:
            return None
        return ArrayLiteral(token, elements)

    @traced
    def _parse_index_expression(self, left: Expression) -> Optional[Expression]:
        token = self.cur_token
        self._next_token()
        index = self.parse_expression(Precedence.LOWEST)
        if not self._expect_peek(TokenKind.RBRACKET):
            return None
        return IndexExpression(token, left, index)

    @traced
    def _parse_assign_expression(self, left: Expression) -> Optional[Expression]:
        token = self.cur_token
        if not isinstance(left, Identifier):
            rendered = left.to_str_repr() if left is not None else ""
            self.errors.append(f"invalid assignment target {rendered}")
            return None
        self._next_token()
        # Right-associative: `a = b = 1` assigns b first.
        value = self.parse_expression(Precedence.LOWEST)
        return AssignExpression(token, left, value)

    @traced
    def _parse_hash_literal(self) -> Optional[Expression]:
        token = self.cur_token
        if not self._expect_peek(TokenKind.LBRACE):
            return None
        pairs: List[Tuple[Expression, Expression]] = []
        while not self._peek_token_is(TokenKind.RBRACE):
            self._next_token()
            key = self.parse_expression(Precedence.LOWEST)
            if not self._expect_peek(TokenKind.COLON):
                return None
            self._next_token()
            value = self.parse_expression(Precedence.LOWEST)
            pairs.append((key, value))
            if not self._peek_token_is(TokenKind.RBRACE) and not self._expect_peek(TokenKind.COMMA):
                return None
        if not self._expect_peek(TokenKind.RBRACE):
            return None
        return HashLiteral(token, pairs)

    @traced
    def _parse_block_expression(self) -> Expression:
        return self._parse_block_statement()


Parser.PREFIX_PARSERS = {
    # fmt: off
    TokenKind.IDENT:    Parser._parse_identifier,
    TokenKind.INT:      Parser._parse_integer_literal,
    TokenKind.STRING:   Parser._parse_string_literal,
    TokenKind.TRUE:     Parser._parse_boolean,
    TokenKind.FALSE:    Parser._parse_boolean,
    TokenKind.BANG:     Parser._parse_prefix_expression,
    TokenKind.MINUS:    Parser._parse_prefix_expression,
    TokenKind.PLUS:     Parser._parse_prefix_expression,
    TokenKind.LPAREN:   Parser._parse_grouped_expression,
    TokenKind.IF:       Parser._parse_if_expression,
    TokenKind.FUNCTION: Parser._parse_function_literal,
    TokenKind.LBRACKET: Parser._parse_array_literal,
    TokenKind.HASH:     Parser._parse_hash_literal,
    TokenKind.LBRACE:   Parser._parse_block_expression,
    # fmt: on
}

Parser.INFIX_PARSERS = {
    # fmt: off
    TokenKind.EQ:       Parser._parse_infix_expression,
    TokenKind.NOT_EQ:   Parser._parse_infix_expression,
    TokenKind.LT:       Parser._parse_infix_expression,
    TokenKind.GT:       Parser._parse_infix_expression,
    TokenKind.LEQ:      Parser._parse_infix_expression,
    TokenKind.GEQ:      Parser._parse_infix_expression,
    TokenKind.PLUS:     Parser._parse_infix_expression,
    TokenKind.MINUS:    Parser._parse_infix_expression,
    TokenKind.ASTERISK: Parser._parse_infix_expression,
    TokenKind.SLASH:    Parser._parse_infix_expression,
    TokenKind.LPAREN:   Parser._parse_call_expression,
    TokenKind.LBRACKET: Parser._parse_index_expression,
    TokenKind.ASSIGN:   Parser._parse_assign_expression,
    # fmt: on
}


def parse(source: str, trace: Optional[bool] = None) -> Tuple[Program, List[str]]:
    """Parses source text into a Program plus the ordered list of syntax errors."""
    parser = Parser(Lexer(source), trace=trace)
    program = parser.parse_program()
    return program, parser.errors
