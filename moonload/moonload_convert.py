"""
Converts Lua values into instances of a requested static shape.

The converter never raises for bad data: ``Converter.convert`` always returns
a ``ConversionResult`` and leaves the Lua value tree untouched. Containers are
all-or-nothing; one element that fails to convert fails the container.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Literal, Optional, Tuple

from lupa import LuaError

from moonload.moonload_datatypes import DataType, type_of, lookup, pairs, integer_entries, array_length
from moonload.moonload_printer import format_number, to_print_string
from moonload.moonload_types import (
    TypeDescriptor, AnyType, Primitive, EnumType, Nullable, Sequence,
    StringKeyedMap, Composite, descriptor_for,
)

_INT_TEXT = re.compile(r"[+-]?\d+")
_FLOAT_TEXT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

Trail = Tuple[Any, ...]


class ConversionError(Exception):
    def __init__(self, reason: str, trail: Trail = ()):
        super().__init__(reason)
        self.reason = reason
        self.trail = trail


def format_trail(trail: Trail) -> str:
    out = ""
    for step in trail:
        if isinstance(step, int):
            out += f"[{step}]"
        else:
            out += f".{step}" if out else str(step)
    return out


@dataclass
class ConversionResult:
    """The outcome of one conversion."""
    status: Literal['success', 'failure']
    value: Any = None
    reason: Optional[str] = None
    trail: str = ""

    @property
    def ok(self) -> bool:
        return self.status == 'success'

    def format_error(self) -> str:
        if self.ok:
            return ""
        if self.trail:
            return f"at {self.trail}: {self.reason}"
        return str(self.reason)


def parse_text(text: str, kind: type) -> Any:
    """Invariant-culture parse of a string into int/float/bool; raises ValueError."""
    s = text.strip()
    if kind is int:
        if not _INT_TEXT.fullmatch(s):
            raise ValueError(f"not an integer: {text!r}")
        return int(s)
    if kind is float:
        if not _FLOAT_TEXT.fullmatch(s):
            raise ValueError(f"not a number: {text!r}")
        return float(s)
    if kind is bool:
        lowered = s.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ValueError(f"not a boolean: {text!r}")
    raise ValueError(f"cannot parse text as {kind.__name__}")


class Converter:
    """
    Recursive value-to-type conversion.

    ``identify`` maps a Lua table to a stable identity (``LuaHost.identity``);
    it is how a table met again along the same descent is recognised.
    """

    def __init__(self, identify: Callable[[Any], Any]):
        self._identify = identify
        self._handlers = {
            DataType.STRING: self._from_string,
            DataType.NUMBER: self._from_number,
            DataType.BOOLEAN: self._from_boolean,
            DataType.TABLE: self._from_table,
            DataType.OPAQUE: self._from_opaque,
        }

    def convert(self, value: Any, target: Any) -> ConversionResult:
        descriptor = descriptor_for(target)
        try:
            out = self._convert(value, descriptor, frozenset(), ())
        except ConversionError as e:
            return ConversionResult('failure', reason=e.reason, trail=format_trail(e.trail))
        except LuaError as e:
            # A metamethod raised while a table was read
            return ConversionResult('failure', reason=f"lua error: {e}")
        except UnicodeDecodeError as e:
            return ConversionResult('failure', reason=f"undecodable string: {e}")
        return ConversionResult('success', value=out)

    def _convert(self, value, target: TypeDescriptor, visiting: FrozenSet, trail: Trail):
        if isinstance(target, Nullable):
            if value is None:
                return None
            return self._convert(value, target.inner, visiting, trail)

        kind = type_of(value)
        if kind is DataType.NIL:
            raise ConversionError("value is nil", trail)
        if isinstance(target, AnyType):
            return value
        return self._handlers[kind](value, target, visiting, trail)

    # --- Scalars ---

    def _from_string(self, value: str, target, visiting, trail):
        if isinstance(target, Primitive):
            if target.kind is str:
                return value
            try:
                return parse_text(value, target.kind)
            except ValueError as e:
                raise ConversionError(str(e), trail)
        if isinstance(target, EnumType):
            member = target.by_name(value)
            if member is None:
                raise ConversionError(
                    f"{value!r} is not one of {', '.join(target.candidates)}", trail)
            return member
        raise ConversionError(f"cannot convert string to {target!r}", trail)

    def _from_number(self, value, target, visiting, trail):
        if isinstance(target, Primitive):
            kind = target.kind
            if kind is float:
                return float(value)
            if kind is int:
                if isinstance(value, int):
                    return value
                if not math.isfinite(value):
                    raise ConversionError(f"{format_number(value)} has no integer value", trail)
                return int(value)
            if kind is bool:
                return value != 0
            return format_number(value)
        if isinstance(target, EnumType):
            if isinstance(value, float) and not math.isfinite(value):
                raise ConversionError(f"{format_number(value)} is not an ordinal", trail)
            member = target.by_ordinal(int(value))
            if member is None:
                raise ConversionError(
                    f"ordinal {int(value)} out of range for {target.enum_cls.__name__}", trail)
            return member
        raise ConversionError(f"cannot convert number to {target!r}", trail)

    def _from_boolean(self, value: bool, target, visiting, trail):
        if isinstance(target, Primitive):
            if target.kind is bool:
                return value
            if target.kind is str:
                return to_print_string(value)
        raise ConversionError(f"cannot convert boolean to {target!r}", trail)

    def _from_opaque(self, value, target, visiting, trail):
        raise ConversionError(f"cannot convert {to_print_string(value)} to {target!r}", trail)

    # --- Tables ---

    def _from_table(self, table, target, visiting, trail):
        marker = self._identify(table)
        if marker in visiting:
            raise ConversionError("table refers back to itself", trail)
        visiting = visiting | {marker}

        if isinstance(target, StringKeyedMap):
            return self._table_to_map(table, target, visiting, trail)
        if isinstance(target, Sequence):
            return self._table_to_sequence(table, target, visiting, trail)
        if isinstance(target, Composite):
            return self._table_to_composite(table, target, visiting, trail)
        if isinstance(target, EnumType):
            raw = lookup(table, "value")
            if raw is None:
                raw = lookup(table, "_value")
            if raw is None:
                raise ConversionError(f"table has no value for {target!r}", trail)
            if type_of(raw) is not DataType.NUMBER:
                raise ConversionError(f"enum value for {target!r} must be a number", trail + ("value",))
            return self._convert(raw, target, visiting, trail + ("value",))
        raise ConversionError(f"cannot convert table to {target!r}", trail)

    def _table_to_map(self, table, target: StringKeyedMap, visiting, trail):
        out = {}
        for key, value in pairs(table):
            name = to_print_string(key)
            if name in out:
                raise ConversionError(f"duplicate key {name!r}", trail)
            out[name] = self._convert(value, target.value, visiting, trail + (name,))
        return out

    def _table_to_sequence(self, table, target: Sequence, visiting, trail):
        # A table with an array part is read as table[1..n]; other integral
        # keys are ignored. Only a table with no array part falls back to its
        # integral keys in ascending order.
        n = array_length(table)
        if n:
            entries = [(i, table[i]) for i in range(1, n + 1)]
        else:
            entries = integer_entries(table)
        items = [
            self._convert(value, target.element, visiting, trail + (index,))
            for index, value in entries
        ]
        return target.container(items)

    def _table_to_composite(self, table, target: Composite, visiting, trail):
        values = {}
        for f in target.fields:
            raw = lookup(table, f.key)
            if raw is None:
                try:
                    values[f.name] = f.default_value()
                except ValueError as e:
                    raise ConversionError(str(e), trail + (f.key,))
                continue
            values[f.name] = self._convert(raw, f.descriptor, visiting, trail + (f.key,))
        try:
            return target.build(values)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"could not build {target.name}: {e}", trail)
