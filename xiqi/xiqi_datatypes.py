"""
Defines the runtime values of the XIQI language and the Environment.

Values form a closed set of variants, each tagged with an ObjectType:
Integer, Boolean, String, Null, Array, Hash, Function, Builtin and the two
control markers ReturnValue and Error. Values never change after they are
built; operations that "modify" arrays or hashes build new ones.
"""

import enum
from abc import ABC
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from xiqi.xiqi_ast import BlockStatement, Identifier

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
_UINT64_MASK = (1 << 64) - 1

FNV_OFFSET_BASIS = 0xcbf29ce484222325
FNV_PRIME = 0x100000001b3


def wrap_int64(value: int) -> int:
    """Wraps an arbitrary Python int into the signed 64-bit range."""
    value &= _UINT64_MASK
    if value > INT64_MAX:
        value -= 1 << 64
    return value


def fnv1a_64(data: bytes) -> int:
    h = FNV_OFFSET_BASIS
    for byte in data:
        h ^= byte
        h = (h * FNV_PRIME) & _UINT64_MASK
    return h


class ObjectType(enum.Enum):
    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    STRING = "STRING"
    NULL = "NULL"
    ARRAY = "ARRAY"
    HASH = "HASH"
    FUNCTION = "FUNCTION"
    BUILTIN = "BUILTIN"
    RETURN_VALUE = "RETURN_VALUE"
    ERROR = "ERROR"

    def __str__(self):
        return self.value


class HashKey(NamedTuple):
    """Identity of a hashable value inside a Hash: its type tag plus a 64-bit hash."""
    type: ObjectType
    value: int


# =================================================================
# Abstract Base Classes
# =================================================================

class XiqiObject(ABC):
    """Base class for every runtime value."""
    type: ObjectType

    def inspect(self) -> str:
        from xiqi.xiqi_printer import Printer
        return Printer().pformat(self)

    def __repr__(self) -> str:
        return f"<{self.type} {self.inspect()}>"


class Hashable(XiqiObject):
    """A value usable as a Hash key. The key is computed once per instance."""
    _hash_key: Optional[HashKey] = None

    def hash_key(self) -> HashKey:
        if self._hash_key is None:
            self._hash_key = HashKey(self.type, self._hash_value())
        return self._hash_key

    def _hash_value(self) -> int:
        raise NotImplementedError


# =================================================================
# Core Runtime Types
# =================================================================

class Integer(Hashable):
    type = ObjectType.INTEGER

    def __init__(self, value: int):
        self.value = wrap_int64(value)

    def _hash_value(self) -> int:
        return self.value & _UINT64_MASK

    def __eq__(self, other):
        return isinstance(other, Integer) and self.value == other.value

    def __hash__(self):
        return hash((self.type, self.value))


class Boolean(Hashable):
    type = ObjectType.BOOLEAN

    def __init__(self, value: bool):
        self.value = bool(value)

    def _hash_value(self) -> int:
        return 1 if self.value else 0

    def __eq__(self, other):
        return isinstance(other, Boolean) and self.value == other.value

    def __hash__(self):
        return hash((self.type, self.value))


class String(Hashable):
    type = ObjectType.STRING

    def __init__(self, value: str):
        self.value = value

    def _hash_value(self) -> int:
        return fnv1a_64(self.value.encode("utf-8"))

    def __eq__(self, other):
        return isinstance(other, String) and self.value == other.value

    def __hash__(self):
        return hash((self.type, self.value))


class Null(XiqiObject):
    type = ObjectType.NULL

    def __eq__(self, other):
        return isinstance(other, Null)

    def __hash__(self):
        return hash(self.type)


class Array(XiqiObject):
    """An ordered sequence of values. Never modified in place."""
    type = ObjectType.ARRAY

    def __init__(self, elements: List[XiqiObject]):
        self.elements: Tuple[XiqiObject, ...] = tuple(elements)

    def __len__(self) -> int:
        return len(self.elements)

    def __eq__(self, other):
        return isinstance(other, Array) and self.elements == other.elements

    def __hash__(self):
        return hash((self.type, self.elements))


class HashPair(NamedTuple):
    key: Hashable
    value: XiqiObject


class Hash(XiqiObject):
    """A mapping from HashKey to the original key and its value, in insertion order."""
    type = ObjectType.HASH

    def __init__(self, pairs: Dict[HashKey, HashPair]):
        self.pairs: Dict[HashKey, HashPair] = dict(pairs)

    def get(self, key: Hashable) -> Optional[XiqiObject]:
        pair = self.pairs.get(key.hash_key())
        return pair.value if pair is not None else None

    def __len__(self) -> int:
        return len(self.pairs)

    def __eq__(self, other):
        return isinstance(other, Hash) and self.pairs == other.pairs

    __hash__ = None


class Function(XiqiObject):
    """A closure: parameters, body and the environment it was defined in.

    The environment is held by reference, so the defining scope stays alive
    for as long as the function value does.
    """
    type = ObjectType.FUNCTION

    def __init__(self, parameters: List['Identifier'], body: 'BlockStatement', env: 'Environment'):
        self.parameters = list(parameters)
        self.body = body
        self.env = env

    def __eq__(self, other):
        if not isinstance(other, Function):
            return NotImplemented
        # Captured environments are not compared.
        return self.parameters == other.parameters and self.body == other.body

    __hash__ = None


class Builtin(XiqiObject):
    """A native function exposed to scripts."""
    type = ObjectType.BUILTIN

    def __init__(self, fn: Callable[..., XiqiObject], name: Optional[str] = None):
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "builtin")

    def __call__(self, *args: XiqiObject) -> XiqiObject:
        return self.fn(*args)

    def __eq__(self, other):
        return isinstance(other, Builtin) and self.fn == other.fn

    def __hash__(self):
        return hash((self.type, self.name))


class ReturnValue(XiqiObject):
    """Marks a value produced by a `return` statement while it unwinds."""
    type = ObjectType.RETURN_VALUE

    def __init__(self, value: XiqiObject):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, ReturnValue) and self.value == other.value

    __hash__ = None


class Error(XiqiObject):
    """Marks a failed evaluation. Flows through the evaluator like any value."""
    type = ObjectType.ERROR

    def __init__(self, message: str):
        self.message = message

    def __eq__(self, other):
        return isinstance(other, Error) and self.message == other.message

    def __hash__(self):
        return hash((self.type, self.message))


# Singletons
NULL = Null()
TRUE = Boolean(True)
FALSE = Boolean(False)


def native_bool_to_boolean(value: bool) -> Boolean:
    return TRUE if value else FALSE


def is_error(obj: Any) -> bool:
    return isinstance(obj, Error)


def is_signal(obj: Any) -> bool:
    """True for the control markers that must never be used as operands."""
    return isinstance(obj, (Error, ReturnValue))


# =================================================================
# Environment
# =================================================================

class Environment:
    """A scope frame: a mapping from names to values, chained to an outer frame.

    The root (global) frame has no outer frame. A fresh child frame is made
    for every block and every function call; for a call the outer frame is
    the function's captured environment, never the caller's.
    """
    def __init__(self, outer: Optional['Environment'] = None):
        self.store: Dict[str, XiqiObject] = {}
        self.outer: Optional['Environment'] = outer

    @classmethod
    def enclosed(cls, outer: 'Environment') -> 'Environment':
        return cls(outer=outer)

    def find_owner(self, name: str) -> Optional['Environment']:
        """Finds the frame in the chain (self -> outer -> ...) that binds name."""
        env: Optional[Environment] = self
        while env is not None:
            if name in env.store:
                return env
            env = env.outer
        return None

    def get(self, name: str) -> Optional[XiqiObject]:
        owner = self.find_owner(name)
        if owner is None:
            return None
        return owner.store[name]

    def set_local(self, name: str, value: XiqiObject) -> XiqiObject:
        """Binds name in this frame only, shadowing any outer binding."""
        self.store[name] = value
        return value

    def set(self, name: str, value: XiqiObject) -> XiqiObject:
        """Rebinds name in the nearest frame that owns it.

        An unbound name is created in the root frame.
        """
        owner = self.find_owner(name)
        if owner is None:
            owner = self.root
        owner.store[name] = value
        return value

    @property
    def root(self) -> 'Environment':
        env = self
        while env.outer is not None:
            env = env.outer
        return env

    def __contains__(self, name: str) -> bool:
        return self.find_owner(name) is not None

    def keys(self):
        """Returns a view of the names bound in this frame only."""
        return self.store.keys()

    def __repr__(self) -> str:
        keys = ', '.join(self.store.keys())
        outer_id = f", outer=#{id(self.outer)}" if self.outer else ""
        return f"<Environment bindings=[{keys}]{outer_id}>"
