"""
Defines the value model and error types for the moonload runtime.

Values come straight from lupa: ``None`` for nil, Python ``bool``, ``int`` and
``float`` for numbers, ``str`` for strings, and lupa table objects. Anything
else (functions, coroutines, userdata, Python objects handed to Lua) is
treated as opaque.
"""

import math
from enum import Enum
from typing import Any, List, Optional, Tuple

from lupa import LuaError, lua_type


class DataType(Enum):
    NIL = "nil"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    TABLE = "table"
    OPAQUE = "opaque"


def type_of(value: Any) -> DataType:
    """Classify a value produced by the interpreter."""
    if value is None:
        return DataType.NIL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return DataType.BOOLEAN
    if isinstance(value, (int, float)):
        return DataType.NUMBER
    if isinstance(value, str):
        return DataType.STRING
    if lua_type(value) == "table":
        return DataType.TABLE
    return DataType.OPAQUE


def is_table(value: Any) -> bool:
    return lua_type(value) == "table"


def _integral_key(key: Any) -> Optional[int]:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, float) and math.isfinite(key) and key.is_integer():
        return int(key)
    return None


# =================================================================
# Table access
# =================================================================

def read(table, key) -> Any:
    """
    ``table[key]``, with a read that fails counted as nil: an ``__index``
    metamethod that raises, or a string value that does not decode.
    """
    try:
        return table[key]
    except (LuaError, UnicodeDecodeError):
        return None


def lookup(table, key: str, strict: bool = True) -> Any:
    """
    Look up a string key: exact spelling first, then all-lowercase, then
    all-uppercase. Returns None when no variant is bound. Unless ``strict``,
    a variant whose read fails counts as unbound.
    """
    get = table.__getitem__ if strict else (lambda k: read(table, k))
    for variant in dict.fromkeys((key, key.lower(), key.upper())):
        value = get(variant)
        if value is not None:
            return value
    return None


def pairs(table) -> List[Tuple[Any, Any]]:
    """All key/value pairs, array part and map part alike."""
    return list(table.items())


def integer_entries(table) -> List[Tuple[int, Any]]:
    """Entries whose key is an integral number, ordered by key."""
    entries = []
    for key, value in table.items():
        index = _integral_key(key)
        if index is not None:
            entries.append((index, value))
    entries.sort(key=lambda kv: kv[0])
    return entries


def array_length(table) -> int:
    """Length of the contiguous 1..n prefix (a border that never guesses)."""
    n = 0
    while table[n + 1] is not None:
        n += 1
    return n


def is_sequence(table) -> bool:
    """True when the table's keys are exactly 1..n (an empty table counts)."""
    count = 0
    for _ in table.keys():
        count += 1
    return count == array_length(table)


# =================================================================
# Errors
# =================================================================

class LoaderError(Exception):
    """Base class for every error raised by moonload."""
    pass


class MissingKeyError(LoaderError, KeyError):
    def __init__(self, path: str):
        super().__init__(f"Key not found in script data: '{path}'")
        self.path = path

    def __str__(self):
        return self.args[0]


class TypeMismatchError(LoaderError, TypeError):
    def __init__(self, path: str, target: Any, reason: Optional[str] = None):
        name = getattr(target, "__name__", None) or repr(target)
        msg = f"Could not convert value at '{path}' to {name}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.path = path
        self.target = target
        self.reason = reason


class EntryNotFoundError(LoaderError):
    def __init__(self, path):
        super().__init__(f"Lua file not found: {path}")
        self.path = path


class MalformedEntryError(LoaderError):
    def __init__(self, path, kind: DataType):
        super().__init__(f"Lua file must return a table at top level (got {kind.value}): {path}")
        self.path = path
        self.kind = kind


class ScriptError(LoaderError):
    """The entry script raised while it was being executed."""
    def __init__(self, path, message: str):
        super().__init__(f"Error while running {path}: {message}")
        self.path = path


class RuntimeNotInitializedError(LoaderError, RuntimeError):
    def __init__(self, message: str = "Scripting runtime not initialized."):
        super().__init__(message)


class CircularRequireError(LoaderError):
    def __init__(self, name: str):
        super().__init__(f"Module '{name}' required itself while loading")
        self.name = name
