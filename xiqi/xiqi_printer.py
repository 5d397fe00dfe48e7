"""
A printer for XIQI syntax trees and runtime values.

AST nodes are rendered back into source-like text (fully parenthesised
operator expressions), runtime values into their `inspect` form.
"""

from xiqi.xiqi_ast import (
    Program, LetStatement, ReturnStatement, ExpressionStatement, BlockStatement,
    Identifier, IntegerLiteral, Boolean, StringLiteral, PrefixExpression,
    InfixExpression, IfExpression, FunctionLiteral, CallExpression, ArrayLiteral,
    IndexExpression, AssignExpression, HashLiteral
)
from xiqi import xiqi_datatypes as dt


class Printer:
    """Formats XIQI nodes and values into readable strings."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        if obj is None:
            return self._pformat_none
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        # Default to Python's repr for unknown types
        return repr

    def _create_handlers(self):
        return {
            # Syntax tree
            Program: self._pformat_program,
            LetStatement: self._pformat_let,
            ReturnStatement: self._pformat_return,
            ExpressionStatement: self._pformat_expression_statement,
            BlockStatement: self._pformat_block,
            Identifier: self._pformat_literal,
            IntegerLiteral: self._pformat_literal,
            Boolean: self._pformat_literal,
            StringLiteral: self._pformat_string_literal,
            PrefixExpression: self._pformat_prefix,
            InfixExpression: self._pformat_infix,
            IfExpression: self._pformat_if,
            FunctionLiteral: self._pformat_function_literal,
            CallExpression: self._pformat_call,
            ArrayLiteral: self._pformat_array_literal,
            IndexExpression: self._pformat_index,
            AssignExpression: self._pformat_assign,
            HashLiteral: self._pformat_hash_literal,
            # Runtime values
            dt.Integer: self._pformat_integer,
            dt.Boolean: self._pformat_boolean,
            dt.String: self._pformat_string,
            dt.Null: self._pformat_null,
            dt.Array: self._pformat_array,
            dt.Hash: self._pformat_hash,
            dt.Function: self._pformat_function,
            dt.Builtin: self._pformat_builtin,
            dt.ReturnValue: self._pformat_return_value,
            dt.Error: self._pformat_error,
        }

    def _join(self, items, sep=", "):
        return sep.join(self.pformat(item) for item in items)

    def _pformat_none(self, obj):
        # A node the parser could not build.
        return ""

    # -----------------------------------------------------------------
    # Syntax tree
    # -----------------------------------------------------------------

    def _pformat_program(self, node):
        return "".join(self.pformat(s) for s in node.statements)

    def _pformat_let(self, node):
        return f"let {self.pformat(node.name)} = {self.pformat(node.value)};"

    def _pformat_return(self, node):
        if node.value is None:
            return "return;"
        return f"return {self.pformat(node.value)};"

    def _pformat_expression_statement(self, node):
        return self.pformat(node.expression)

    def _pformat_block(self, node):
        return "{" + "".join(self.pformat(s) for s in node.statements) + "}"

    def _pformat_literal(self, node):
        return node.token.literal

    def _pformat_string_literal(self, node):
        return f'"{node.value}"'

    def _pformat_prefix(self, node):
        return f"({node.operator}{self.pformat(node.right)})"

    def _pformat_infix(self, node):
        return f"({self.pformat(node.left)} {node.operator} {self.pformat(node.right)})"

    def _pformat_if(self, node):
        out = f"if ({self.pformat(node.condition)}) {self.pformat(node.consequence)}"
        if node.alternative is not None:
            out += f" else {self.pformat(node.alternative)}"
        return out

    def _pformat_function_literal(self, node):
        return f"{node.token.literal}({self._join(node.parameters)}) {self.pformat(node.body)}"

    def _pformat_call(self, node):
        return f"{self.pformat(node.function)}({self._join(node.arguments)})"

    def _pformat_array_literal(self, node):
        return f"[{self._join(node.elements)}]"

    def _pformat_index(self, node):
        return f"({self.pformat(node.left)}[{self.pformat(node.index)}])"

    def _pformat_assign(self, node):
        return f"{self.pformat(node.name)} = {self.pformat(node.value)}"

    def _pformat_hash_literal(self, node):
        pairs = ", ".join(f"{self.pformat(k)}: {self.pformat(v)}" for k, v in node.pairs)
        return f"hash{{{pairs}}}"

    # -----------------------------------------------------------------
    # Runtime values
    # -----------------------------------------------------------------

    def _pformat_integer(self, obj):
        return str(obj.value)

    def _pformat_boolean(self, obj):
        return 'true' if obj.value else 'false'

    def _pformat_string(self, obj):
        return obj.value

    def _pformat_null(self, obj):
        return 'null'

    def _pformat_array(self, obj):
        return f"[{self._join(obj.elements)}]"

    def _pformat_hash(self, obj):
        pairs = ", ".join(f"{self.pformat(p.key)}: {self.pformat(p.value)}" for p in obj.pairs.values())
        return f"{{{pairs}}}"

    def _pformat_function(self, obj):
        return f"fn({self._join(obj.parameters)}) {self.pformat(obj.body)}"

    def _pformat_builtin(self, obj):
        return f"builtin function {obj.name}"

    def _pformat_return_value(self, obj):
        return self.pformat(obj.value)

    def _pformat_error(self, obj):
        return f"ERROR: {obj.message}"
