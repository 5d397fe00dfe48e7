"""
Defines the abstract syntax tree produced by the XIQI parser.

Nodes are plain data: they are built once by the parser and never changed
afterwards. Each node keeps the token it was created from (for diagnostics)
and renders itself back into source-like text via the Printer.
"""

from abc import ABC
from typing import List, Optional, Tuple, Any

from xiqi.xiqi_tokens import Token, TokenKind


# =================================================================
# Abstract Base Classes
# =================================================================

class Node(ABC):
    """Base class for every AST node."""
    _fields: Tuple[str, ...] = ()

    def __init__(self, token: Token):
        self.token = token
        self._str_repr: Optional[str] = None

    def token_literal(self) -> str:
        return self.token.literal

    def to_str_repr(self) -> str:
        from xiqi.xiqi_printer import Printer
        if self._str_repr is None:
            self._str_repr = Printer().pformat(self)
        return self._str_repr

    def __str__(self) -> str:
        return self.to_str_repr()

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={getattr(self, name)!r}" for name in self._fields)
        return f"{type(self).__name__}({fields})"

    def __eq__(self, other: Any) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in self._fields)


class Statement(Node):
    """A node that appears in statement position."""
    pass


class Expression(Node):
    """A node that produces a value."""
    pass


# =================================================================
# Program and Statements
# =================================================================

class Program(Node):
    """The root node: an ordered list of top-level statements."""
    _fields = ("statements",)

    def __init__(self, statements: Optional[List[Statement]] = None):
        super().__init__(Token(TokenKind.EOF, ""))
        self.statements: List[Statement] = list(statements or [])

    def token_literal(self) -> str:
        if self.statements:
            return self.statements[0].token_literal()
        return ""


class LetStatement(Statement):
    """`let <name> = <value>;`"""
    _fields = ("name", "value")

    def __init__(self, token: Token, name: 'Identifier', value: Optional[Expression]):
        super().__init__(token)
        self.name = name
        self.value = value


class ReturnStatement(Statement):
    """`return <value>;` where the value may be absent."""
    _fields = ("value",)

    def __init__(self, token: Token, value: Optional[Expression] = None):
        super().__init__(token)
        self.value = value


class ExpressionStatement(Statement):
    """A statement consisting of a single expression."""
    _fields = ("expression",)

    def __init__(self, token: Token, expression: Optional[Expression]):
        super().__init__(token)
        self.expression = expression


class BlockStatement(Statement, Expression):
    """A brace-delimited sequence of statements.

    Used for if-branches and function bodies, and as an expression in its
    own right when a bare `{ ... }` appears in expression position.
    """
    _fields = ("statements",)

    def __init__(self, token: Token, statements: Optional[List[Statement]] = None):
        super().__init__(token)
        self.statements: List[Statement] = list(statements or [])


# =================================================================
# Expressions
# =================================================================

class Identifier(Expression):
    _fields = ("value",)

    def __init__(self, token: Token, value: str):
        super().__init__(token)
        self.value = value


class IntegerLiteral(Expression):
    _fields = ("value",)

    def __init__(self, token: Token, value: int):
        super().__init__(token)
        self.value = value


class Boolean(Expression):
    _fields = ("value",)

    def __init__(self, token: Token, value: bool):
        super().__init__(token)
        self.value = value


class StringLiteral(Expression):
    _fields = ("value",)

    def __init__(self, token: Token, value: str):
        super().__init__(token)
        self.value = value


class PrefixExpression(Expression):
    _fields = ("operator", "right")

    def __init__(self, token: Token, operator: str, right: Optional[Expression]):
        super().__init__(token)
        self.operator = operator
        self.right = right


class InfixExpression(Expression):
    _fields = ("operator", "left", "right")

    def __init__(self, token: Token, operator: str, left: Expression, right: Optional[Expression]):
        super().__init__(token)
        self.operator = operator
        self.left = left
        self.right = right


class IfExpression(Expression):
    _fields = ("condition", "consequence", "alternative")

    def __init__(self, token: Token, condition: Optional[Expression],
                 consequence: BlockStatement, alternative: Optional[BlockStatement] = None):
        super().__init__(token)
        self.condition = condition
        self.consequence = consequence
        self.alternative = alternative


class FunctionLiteral(Expression):
    _fields = ("parameters", "body")

    def __init__(self, token: Token, parameters: List[Identifier], body: BlockStatement):
        super().__init__(token)
        self.parameters = list(parameters)
        self.body = body


class CallExpression(Expression):
    _fields = ("function", "arguments")

    def __init__(self, token: Token, function: Expression, arguments: List[Expression]):
        super().__init__(token)
        self.function = function
        self.arguments = list(arguments)


class ArrayLiteral(Expression):
    _fields = ("elements",)

    def __init__(self, token: Token, elements: List[Expression]):
        super().__init__(token)
        self.elements = list(elements)


class IndexExpression(Expression):
    _fields = ("left", "index")

    def __init__(self, token: Token, left: Expression, index: Optional[Expression]):
        super().__init__(token)
        self.left = left
        self.index = index


class AssignExpression(Expression):
    """`<name> = <value>`: rebinds an existing name, walking outward."""
    _fields = ("name", "value")

    def __init__(self, token: Token, name: Identifier, value: Optional[Expression]):
        super().__init__(token)
        self.name = name
        self.value = value


class HashLiteral(Expression):
    """`hash{k: v, ...}`; pairs keep their source order."""
    _fields = ("pairs",)

    def __init__(self, token: Token, pairs: List[Tuple[Expression, Expression]]):
        super().__init__(token)
        self.pairs = list(pairs)
