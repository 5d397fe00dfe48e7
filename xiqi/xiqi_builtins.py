"""
Native functions available to every XIQI program.

Built-ins are consulted by the evaluator only when an identifier has no
binding in the environment chain, so scripts may shadow them freely.
"""
import inspect
from typing import Dict

from xiqi.xiqi_datatypes import (
    XiqiObject, Integer, String, Array, Builtin, Error, ObjectType, NULL
)


def new_error(message: str) -> Error:
    return Error(message)


def _wrong_arity(got: int, want: int) -> Error:
    return new_error(f"wrong number of arguments. got={got}, want={want}")


def _not_array(name: str, arg: XiqiObject) -> Error:
    return new_error(f"argument to `{name}` must be ARRAY, got {arg.type}")


class StdLib:
    """Contains Python implementations for all XIQI built-ins.

    Every method named `_<name>` becomes the built-in `<name>`. The only
    stateful built-in is `puts`, which records its output as a side effect
    on the owning evaluator instead of writing to stdout directly.
    """
    def __init__(self, evaluator=None):
        self.evaluator = evaluator

    def table(self) -> Dict[str, Builtin]:
        builtins: Dict[str, Builtin] = {}
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                xiqi_name = name[1:]
                builtins[xiqi_name] = Builtin(member, xiqi_name)
        return builtins

    # --- Collections ---
    def _len(self, *args):
        if len(args) != 1:
            return _wrong_arity(len(args), 1)
        arg = args[0]
        match arg:
            case String():
                return Integer(len(arg.value.encode("utf-8")))
            case Array():
                return Integer(len(arg.elements))
            case _:
                return new_error(f"argument to `len` not supported, got {arg.type}")

    def _first(self, *args):
        if len(args) != 1:
            return _wrong_arity(len(args), 1)
        arr = args[0]
        if arr.type != ObjectType.ARRAY:
            return _not_array("first", arr)
        return arr.elements[0] if arr.elements else NULL

    def _last(self, *args):
        if len(args) != 1:
            return _wrong_arity(len(args), 1)
        arr = args[0]
        if arr.type != ObjectType.ARRAY:
            return _not_array("last", arr)
        return arr.elements[-1] if arr.elements else NULL

    def _rest(self, *args):
        if len(args) != 1:
            return _wrong_arity(len(args), 1)
        arr = args[0]
        if arr.type != ObjectType.ARRAY:
            return _not_array("rest", arr)
        if not arr.elements:
            return NULL
        return Array(arr.elements[1:])

    def _push(self, *args):
        if len(args) != 2:
            return _wrong_arity(len(args), 2)
        arr, value = args
        if arr.type != ObjectType.ARRAY:
            return _not_array("push", arr)
        return Array(arr.elements + (value,))

    # --- Side Effects and I/O ---
    def _puts(self, *args):
        """Generates a stdout side-effect event for the host application."""
        for arg in args:
            event = {"topics": ["stdout"], "message": arg.inspect()}
            if self.evaluator is not None:
                self.evaluator.side_effects.append(event)
        return NULL
