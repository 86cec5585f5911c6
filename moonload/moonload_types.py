"""
Type descriptors: the static shapes a caller asks the converter to produce.

Descriptors are usually derived from ordinary annotations with
``descriptor_for`` (``int``, ``list[str]``, ``dict[str, Block]``, a
dataclass, ...). Dataclasses become composites whose schema is the class's
declared field list; nothing is discovered by probing instances.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import enum
import types
import typing
from typing import Any, Callable, Dict, Optional, Tuple


class TypeDescriptor:
    """Base class for every descriptor."""
    pass


class AnyType(TypeDescriptor):
    """Accepts any non-nil value and hands it back untouched."""

    def __repr__(self):
        return "Any"

    def __eq__(self, other):
        return isinstance(other, AnyType)

    def __hash__(self):
        return hash(AnyType)


ANY = AnyType()


class Primitive(TypeDescriptor):
    KINDS = (str, int, float, bool)

    def __init__(self, kind: type):
        if kind not in self.KINDS:
            raise TypeError(f"Not a primitive kind: {kind!r}")
        self.kind = kind

    def __repr__(self):
        return f"Primitive({self.kind.__name__})"

    def __eq__(self, other):
        return isinstance(other, Primitive) and other.kind is self.kind

    def __hash__(self):
        return hash((Primitive, self.kind))


class EnumType(TypeDescriptor):
    def __init__(self, enum_cls: type):
        self.enum_cls = enum_cls
        self.members = list(enum_cls)
        # Includes aliases; names compare case-insensitively
        self._by_name = {name.lower(): member for name, member in enum_cls.__members__.items()}

    @property
    def candidates(self):
        return [m.name for m in self.members]

    def by_name(self, text: str):
        return self._by_name.get(text.strip().lower())

    def by_ordinal(self, ordinal: int):
        if 0 <= ordinal < len(self.members):
            return self.members[ordinal]
        return None

    def __repr__(self):
        return f"Enum({self.enum_cls.__name__})"

    def __eq__(self, other):
        return isinstance(other, EnumType) and other.enum_cls is self.enum_cls

    def __hash__(self):
        return hash((EnumType, self.enum_cls))


class Nullable(TypeDescriptor):
    def __init__(self, inner: TypeDescriptor):
        self.inner = inner

    def __repr__(self):
        return f"Nullable({self.inner!r})"

    def __eq__(self, other):
        return isinstance(other, Nullable) and other.inner == self.inner

    def __hash__(self):
        return hash((Nullable, self.inner))


class Sequence(TypeDescriptor):
    def __init__(self, element: TypeDescriptor, container: type = list):
        self.element = element
        self.container = container

    def __repr__(self):
        return f"Sequence({self.element!r}, {self.container.__name__})"

    def __eq__(self, other):
        return (isinstance(other, Sequence) and other.element == self.element
                and other.container is self.container)

    def __hash__(self):
        return hash((Sequence, self.element, self.container))


class StringKeyedMap(TypeDescriptor):
    def __init__(self, value: TypeDescriptor):
        self.value = value

    def __repr__(self):
        return f"StringKeyedMap({self.value!r})"

    def __eq__(self, other):
        return isinstance(other, StringKeyedMap) and other.value == self.value

    def __hash__(self):
        return hash((StringKeyedMap, self.value))


_NO_DEFAULT = object()


@dataclasses.dataclass(frozen=True)
class Field:
    """One declared member of a composite."""
    name: str
    descriptor: TypeDescriptor
    key: str
    default: Any = _NO_DEFAULT
    default_factory: Optional[Callable[[], Any]] = None

    def default_value(self, _filling: frozenset = frozenset()):
        if self.default_factory is not None:
            return self.default_factory()
        if self.default is not _NO_DEFAULT:
            return self.default
        return zero_value(self.descriptor, _filling)


class Composite(TypeDescriptor):
    """
    A record-like target populated field by field.

    ``fields`` may be given as a callable so that the field list of a
    self-referencing schema is only built once the composite itself exists.
    """

    def __init__(self, name: str, factory: Callable[..., Any],
                 fields: 'Tuple[Field, ...] | Callable[[], Tuple[Field, ...]]'):
        self.name = name
        self.factory = factory
        self._fields = fields

    @property
    def fields(self) -> Tuple[Field, ...]:
        if callable(self._fields):
            self._fields = tuple(self._fields())
        return self._fields

    def build(self, values: Dict[str, Any]):
        return self.factory(**values)

    def __repr__(self):
        return f"Composite({self.name})"


# =================================================================
# Zero values
# =================================================================

def zero_value(descriptor: TypeDescriptor, _filling: frozenset = frozenset()) -> Any:
    """
    The value a required field takes when its key is absent. Raises
    ValueError for a composite that requires an instance of itself.
    """
    match descriptor:
        case Primitive(kind=kind):
            return kind()
        case EnumType(members=members):
            return members[0] if members else None
        case Sequence(container=container):
            return container()
        case StringKeyedMap():
            return {}
        case Composite():
            if id(descriptor) in _filling:
                raise ValueError(f"{descriptor.name} has no zero value: it requires itself")
            filling = _filling | {id(descriptor)}
            return descriptor.build({f.name: f.default_value(filling) for f in descriptor.fields})
        case _:
            return None


# =================================================================
# Deriving descriptors from annotations
# =================================================================

_registry: Dict[Any, TypeDescriptor] = {}


def register_composite(cls: type, fields: Dict[str, Any],
                       factory: Optional[Callable[..., Any]] = None,
                       keys: Optional[Dict[str, str]] = None) -> Composite:
    """
    Declare the schema of a class that is not a dataclass.

    ``fields`` maps attribute names to annotations; ``factory`` receives the
    converted values as keyword arguments (defaults to ``cls``). ``keys``
    optionally renames the table key looked up for an attribute.
    """
    keys = keys or {}

    def build_fields():
        return tuple(
            Field(name=name, descriptor=descriptor_for(tp), key=keys.get(name, name))
            for name, tp in fields.items()
        )

    composite = Composite(cls.__name__, factory or cls, build_fields)
    _registry[cls] = composite
    return composite


def _dataclass_composite(cls: type) -> Composite:
    def build_fields():
        hints = typing.get_type_hints(cls)
        out = []
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            out.append(Field(
                name=f.name,
                descriptor=descriptor_for(hints.get(f.name, Any)),
                key=f.metadata.get("key", f.name),
                default=f.default if f.default is not dataclasses.MISSING else _NO_DEFAULT,
                default_factory=f.default_factory if f.default_factory is not dataclasses.MISSING else None,
            ))
        return tuple(out)

    return Composite(cls.__name__, cls, build_fields)


def descriptor_for(tp: Any) -> TypeDescriptor:
    """Return the descriptor for an annotation (or pass a descriptor through)."""
    if isinstance(tp, TypeDescriptor):
        return tp
    if tp is Any or tp is object:
        return ANY
    try:
        cached = _registry.get(tp)
    except TypeError:
        cached = None  # unhashable annotation objects
    if cached is not None:
        return cached

    descriptor = _derive(tp)
    try:
        _registry[tp] = descriptor
    except TypeError:
        pass
    return descriptor


def _derive(tp: Any) -> TypeDescriptor:
    if tp in Primitive.KINDS:
        return Primitive(tp)
    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return EnumType(tp)
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        composite = _dataclass_composite(tp)
        # Registered before its fields resolve so recursive schemas terminate
        _registry[tp] = composite
        return composite

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin in (typing.Union, types.UnionType):
        members = [a for a in args if a is not type(None)]
        if len(members) == 1 and len(args) == 2:
            return Nullable(descriptor_for(members[0]))
        raise TypeError(f"Unsupported union annotation: {tp!r}")

    if tp in (list, tuple) or origin in (list, collections.abc.Sequence, collections.abc.MutableSequence):
        container = tuple if tp is tuple else list
        return Sequence(descriptor_for(args[0]) if args else ANY, container)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return Sequence(descriptor_for(args[0]), tuple)
        raise TypeError(f"Only homogeneous tuples (tuple[X, ...]) are supported: {tp!r}")

    if tp is dict or origin in (dict, collections.abc.Mapping, collections.abc.MutableMapping):
        if args:
            key_t, value_t = args
            if key_t is not str:
                raise TypeError(f"Mapping keys must be str: {tp!r}")
            return StringKeyedMap(descriptor_for(value_t))
        return StringKeyedMap(ANY)

    raise TypeError(f"Unsupported target type: {tp!r}")


__all__ = [
    "TypeDescriptor", "AnyType", "ANY", "Primitive", "EnumType", "Nullable",
    "Sequence", "StringKeyedMap", "Composite", "Field",
    "descriptor_for", "register_composite", "zero_value",
]
