from __future__ import annotations

import json
from typing import Any

import yaml

from xiqi import xiqi_ast as ast
from xiqi import xiqi_datatypes as dt


# --------------------------
# Helpers
# --------------------------

def _node_to_builtin(node: ast.Node | None) -> Any:
    # Syntax trees become {'tag': ..., <named children>} dictionaries.
    match node:
        case None:
            return None
        case ast.Program():
            return {'tag': 'program', 'statements': [_node_to_builtin(s) for s in node.statements]}
        case ast.LetStatement():
            return {'tag': 'let', 'name': node.name.value, 'value': _node_to_builtin(node.value)}
        case ast.ReturnStatement():
            return {'tag': 'return', 'value': _node_to_builtin(node.value)}
        case ast.ExpressionStatement():
            return {'tag': 'expr', 'expression': _node_to_builtin(node.expression)}
        case ast.BlockStatement():
            return {'tag': 'block', 'statements': [_node_to_builtin(s) for s in node.statements]}
        case ast.Identifier():
            return {'tag': 'ident', 'value': node.value}
        case ast.IntegerLiteral():
            return {'tag': 'int', 'value': node.value}
        case ast.Boolean():
            return {'tag': 'bool', 'value': node.value}
        case ast.StringLiteral():
            return {'tag': 'string', 'value': node.value}
        case ast.PrefixExpression():
            return {'tag': 'prefix', 'operator': node.operator, 'right': _node_to_builtin(node.right)}
        case ast.InfixExpression():
            return {
                'tag': 'infix',
                'operator': node.operator,
                'left': _node_to_builtin(node.left),
                'right': _node_to_builtin(node.right),
            }
        case ast.IfExpression():
            return {
                'tag': 'if',
                'condition': _node_to_builtin(node.condition),
                'consequence': _node_to_builtin(node.consequence),
                'alternative': _node_to_builtin(node.alternative),
            }
        case ast.FunctionLiteral():
            return {
                'tag': 'fn',
                'parameters': [p.value for p in node.parameters],
                'body': _node_to_builtin(node.body),
            }
        case ast.CallExpression():
            return {
                'tag': 'call',
                'function': _node_to_builtin(node.function),
                'arguments': [_node_to_builtin(a) for a in node.arguments],
            }
        case ast.ArrayLiteral():
            return {'tag': 'array', 'elements': [_node_to_builtin(e) for e in node.elements]}
        case ast.IndexExpression():
            return {'tag': 'index', 'left': _node_to_builtin(node.left), 'index': _node_to_builtin(node.index)}
        case ast.AssignExpression():
            return {'tag': 'assign', 'name': node.name.value, 'value': _node_to_builtin(node.value)}
        case ast.HashLiteral():
            return {
                'tag': 'hash',
                'pairs': [{'key': _node_to_builtin(k), 'value': _node_to_builtin(v)} for k, v in node.pairs],
            }
        case _:
            raise TypeError(f"cannot serialize node of type {type(node).__name__}")


def _value_to_builtin(obj: dt.XiqiObject | None) -> Any:
    match obj:
        case None | dt.Null():
            return None
        case dt.Integer() | dt.Boolean() | dt.String():
            return obj.value
        case dt.Array():
            return [_value_to_builtin(e) for e in obj.elements]
        case dt.Hash():
            # Pairs keep each key typed; 1 and "1" stay distinct.
            return [
                {'key': _value_to_builtin(pair.key), 'value': _value_to_builtin(pair.value)}
                for pair in obj.pairs.values()
            ]
        case dt.ReturnValue():
            return _value_to_builtin(obj.value)
        case dt.Error():
            return {'error': obj.message}
        case dt.Function() | dt.Builtin():
            return obj.inspect()
        case _:
            raise TypeError(f"cannot serialize value of type {type(obj).__name__}")


def to_builtin(obj: Any) -> Any:
    """Convert an AST node or runtime value into plain Python data."""
    if isinstance(obj, ast.Node):
        return _node_to_builtin(obj)
    return _value_to_builtin(obj)


# --------------------------
# Public API
# --------------------------

def serialize(obj: Any, *, fmt: str, pretty: bool = True) -> str:
    """
    Convert an AST node or runtime value into a textual representation.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = to_builtin(obj)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "serialize",
    "to_builtin",
]
