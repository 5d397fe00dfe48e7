"""
The core XIQI interpreter: a tree-walking Evaluator over the parser's AST.

Runtime errors and `return` are not Python exceptions. They travel as
Error and ReturnValue objects through the normal return channel and are
intercepted at two boundaries:

  * a statement sequence at program level unwraps a ReturnValue and stops,
  * a block (if-branch, bare block, function body) hands both markers back
    untouched so they reach the program or the enclosing function call.
"""
import os
import sys
from typing import Any, Dict, List, Optional, Union

from xiqi import xiqi_ast as ast
from xiqi.xiqi_builtins import StdLib
from xiqi.xiqi_datatypes import (
    XiqiObject, Integer, Boolean, String, Null, Array, Hash, HashPair, Hashable,
    Function, Builtin, ReturnValue, Error, Environment,
    NULL, native_bool_to_boolean, is_signal
)


def new_error(message: str) -> Error:
    return Error(message)


def is_truthy(obj: XiqiObject) -> bool:
    # Only null and false are falsy; integer 0 is truthy.
    match obj:
        case Null():
            return False
        case Boolean(value=value):
            return value
        case _:
            return True


def unwrap_return(obj: Optional[XiqiObject]) -> XiqiObject:
    """Result of a function body: unwrap a ReturnValue, absent becomes null."""
    if isinstance(obj, ReturnValue):
        return obj.value
    if obj is None:
        return NULL
    return obj


def _or_null(obj: Optional[XiqiObject]) -> XiqiObject:
    return NULL if obj is None else obj


class Evaluator:
    """The XIQI execution engine."""
    def __init__(self):
        self.side_effects: List[Dict[str, Any]] = []
        self.builtins: Dict[str, Builtin] = StdLib(self).table()

    def _dbg(self, *parts):
        if os.environ.get("XIQI_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def eval(self, node: ast.Node, env: Environment) -> Optional[XiqiObject]:
        """Public entry point for evaluation.

        Returns None (absent) when the last statement produced no value,
        e.g. a program ending in a `let`.
        """
        return self._eval(node, env)

    def _eval(self, node: ast.Node, env: Environment) -> Optional[XiqiObject]:
        match node:
            # Statements
            case ast.Program():
                return self._eval_program(node.statements, env)
            case ast.ExpressionStatement():
                return self._eval(node.expression, env)
            case ast.BlockStatement():
                return _or_null(self._eval_block(node.statements, Environment.enclosed(env)))
            case ast.LetStatement():
                value = self._eval(node.value, env)
                if is_signal(value):
                    return value
                env.set_local(node.name.value, value)
                return None
            case ast.ReturnStatement():
                if node.value is None:
                    return ReturnValue(NULL)
                value = self._eval(node.value, env)
                if is_signal(value):
                    return value
                return ReturnValue(value)

            # Literals
            case ast.IntegerLiteral():
                return Integer(node.value)
            case ast.Boolean():
                return native_bool_to_boolean(node.value)
            case ast.StringLiteral():
                return String(node.value)
            case ast.ArrayLiteral():
                elements = self._eval_expressions(node.elements, env)
                if not isinstance(elements, list):
                    return elements
                return Array(elements)
            case ast.HashLiteral():
                return self._eval_hash_literal(node, env)
            case ast.FunctionLiteral():
                return Function(node.parameters, node.body, env)

            # Names
            case ast.Identifier():
                return self._eval_identifier(node, env)
            case ast.AssignExpression():
                value = self._eval(node.value, env)
                if is_signal(value):
                    return value
                return env.set(node.name.value, value)

            # Operators
            case ast.PrefixExpression():
                right = self._eval(node.right, env)
                if is_signal(right):
                    return right
                return self._eval_prefix_expression(node.operator, right)
            case ast.InfixExpression():
                left = self._eval(node.left, env)
                if is_signal(left):
                    return left
                right = self._eval(node.right, env)
                if is_signal(right):
                    return right
                return self._eval_infix_expression(node.operator, left, right)
            case ast.IndexExpression():
                left = self._eval(node.left, env)
                if is_signal(left):
                    return left
                index = self._eval(node.index, env)
                if is_signal(index):
                    return index
                return self._eval_index_expression(left, index)

            # Control flow
            case ast.IfExpression():
                return self._eval_if_expression(node, env)
            case ast.CallExpression():
                function = self._eval(node.function, env)
                if is_signal(function):
                    return function
                args = self._eval_expressions(node.arguments, env)
                if not isinstance(args, list):
                    return args
                return self.apply_function(function, args)

            case _:
                raise TypeError(f"cannot evaluate node of type {type(node).__name__}")

    # -----------------------------------------------------------------
    # Statement sequences
    # -----------------------------------------------------------------

    def _eval_program(self, statements: List[ast.Statement], env: Environment) -> Optional[XiqiObject]:
        result = None
        for stmt in statements:
            result = self._eval(stmt, env)
            match result:
                case ReturnValue():
                    return result.value
                case Error():
                    self._dbg("error", result.message)
                    return result
        return result

    def _eval_block(self, statements: List[ast.Statement], env: Environment) -> Optional[XiqiObject]:
        result = None
        for stmt in statements:
            result = self._eval(stmt, env)
            if is_signal(result):
                return result
        return result

    def _eval_expressions(self, exprs: List[ast.Expression], env: Environment) -> Union[List[XiqiObject], XiqiObject]:
        """Evaluates left to right; returns the first signal instead of a list."""
        values = []
        for expr in exprs:
            value = self._eval(expr, env)
            if is_signal(value):
                return value
            values.append(value)
        return values

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    def _eval_identifier(self, node: ast.Identifier, env: Environment) -> XiqiObject:
        value = env.get(node.value)
        if value is not None:
            return value
        builtin = self.builtins.get(node.value)
        if builtin is not None:
            return builtin
        return new_error(f"identifier not found: {node.value}")

    def _eval_prefix_expression(self, operator: str, right: XiqiObject) -> XiqiObject:
        match operator:
            case "!":
                return native_bool_to_boolean(not is_truthy(right))
            case "-":
                if not isinstance(right, Integer):
                    return new_error(f"unknown operator: -{right.type}")
                return Integer(-right.value)
            case "+":
                if not isinstance(right, Integer):
                    return new_error(f"unknown operator: +{right.type}")
                return right
            case _:
                return new_error(f"unknown operator: {operator}{right.type}")

    def _eval_infix_expression(self, operator: str, left: XiqiObject, right: XiqiObject) -> XiqiObject:
        match (left, right):
            case (Integer(), Integer()):
                return self._eval_integer_infix_expression(operator, left, right)
            case (Boolean(), Boolean()):
                return self._eval_boolean_infix_expression(operator, left, right)
            case (String(), _) | (_, String()) if operator == "+":
                return String(left.inspect() + right.inspect())
        if left.type != right.type:
            return new_error(f"type mismatch: {left.type} {operator} {right.type}")
        return new_error(f"unknown operator: {left.type} {operator} {right.type}")

    def _eval_integer_infix_expression(self, operator: str, left: Integer, right: Integer) -> XiqiObject:
        lv, rv = left.value, right.value
        match operator:
            case "+":
                return Integer(lv + rv)
            case "-":
                return Integer(lv - rv)
            case "*":
                return Integer(lv * rv)
            case "/":
                if rv == 0:
                    return new_error("division by zero")
                # Truncate toward zero rather than flooring.
                quotient = abs(lv) // abs(rv)
                return Integer(-quotient if (lv < 0) != (rv < 0) else quotient)
            case "<":
                return native_bool_to_boolean(lv < rv)
            case ">":
                return native_bool_to_boolean(lv > rv)
            case "<=":
                return native_bool_to_boolean(lv <= rv)
            case ">=":
                return native_bool_to_boolean(lv >= rv)
            case "==":
                return native_bool_to_boolean(lv == rv)
            case "!=":
                return native_bool_to_boolean(lv != rv)
            case _:
                return new_error(f"unknown operator: {left.type} {operator} {right.type}")

    def _eval_boolean_infix_expression(self, operator: str, left: Boolean, right: Boolean) -> XiqiObject:
        match operator:
            case "==":
                return native_bool_to_boolean(left.value == right.value)
            case "!=":
                return native_bool_to_boolean(left.value != right.value)
            case _:
                return new_error(f"unknown operator: {left.type} {operator} {right.type}")

    def _eval_if_expression(self, node: ast.IfExpression, env: Environment) -> XiqiObject:
        condition = self._eval(node.condition, env)
        if is_signal(condition):
            return condition
        if is_truthy(condition):
            return _or_null(self._eval_block(node.consequence.statements, Environment.enclosed(env)))
        if node.alternative is not None:
            return _or_null(self._eval_block(node.alternative.statements, Environment.enclosed(env)))
        return NULL

    def _eval_index_expression(self, left: XiqiObject, index: XiqiObject) -> XiqiObject:
        match (left, index):
            case (Array(), Integer()):
                idx = index.value
                if idx < 0 or idx >= len(left.elements):
                    return NULL
                return left.elements[idx]
            case (Hash(), Hashable()):
                value = left.get(index)
                return NULL if value is None else value
            case (Hash(), _):
                return new_error(f"unusable as hash key: {index.type}")
            case _:
                return new_error(f"index operator not supported: {left.type}")

    def _eval_hash_literal(self, node: ast.HashLiteral, env: Environment) -> XiqiObject:
        pairs = {}
        for key_node, value_node in node.pairs:
            key = self._eval(key_node, env)
            if is_signal(key):
                return key
            if not isinstance(key, Hashable):
                return new_error(f"unusable as hash key: {key.type}")
            value = self._eval(value_node, env)
            if is_signal(value):
                return value
            pairs[key.hash_key()] = HashPair(key, value)
        return Hash(pairs)

    # -----------------------------------------------------------------
    # Function application
    # -----------------------------------------------------------------

    def apply_function(self, function: XiqiObject, args: List[XiqiObject]) -> XiqiObject:
        match function:
            case Function():
                if len(args) != len(function.parameters):
                    return new_error(
                        f"wrong number of arguments. got={len(args)}, want={len(function.parameters)}"
                    )
                self._dbg("apply", [p.value for p in function.parameters], "argc", len(args))
                call_env = Environment.enclosed(function.env)
                for param, arg in zip(function.parameters, args):
                    call_env.set_local(param.value, arg)
                return unwrap_return(self._eval_block(function.body.statements, call_env))
            case Builtin():
                self._dbg("builtin", function.name, "argc", len(args))
                return function(*args)
            case _:
                return new_error(f"not a function: {function.type}")


def evaluate(node: ast.Node, env: Environment) -> Optional[XiqiObject]:
    """Evaluates a parsed Program (or any node) against an environment the caller owns."""
    return Evaluator().eval(node, env)
