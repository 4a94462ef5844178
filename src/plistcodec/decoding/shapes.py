"""Target shape descriptors for the type-directed decoder.

A shape says what Python value a plist value must be decoded into. Shapes
are small frozen dataclasses; the common ones are module constants
(``BOOL``, ``INT64``, ``UINT64``, ``FLOAT32``, ``STRING`` ...), containers
are built from them (``SequenceShape(STRING)``), and record shapes
describe dataclasses.

``shape_of`` derives a shape from a type annotation once and caches it::

    @dataclass
    class Bundle:
        size: Annotated[int, UINT64] = field(default=0, metadata={"plist": "size"})
        names: list[str] = field(default_factory=list)

    shape_of(Bundle)   # RecordShape(Bundle)
"""

from __future__ import annotations

import dataclasses
import types
import typing
from collections.abc import Callable, Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache
from typing import Annotated, Any, Union

from plistcodec.exceptions import ShapeError

from .tags import TAG_METADATA_KEY, FieldSpec, resolve_key

# Zero value for timestamp fields that are absent and have no default
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)


class Shape:
    """Base class for all shapes."""

    __slots__ = ()

    def describe(self) -> str:
        """Short name used in error messages."""
        raise NotImplementedError

    def zero(self) -> object:
        """Value used for an absent field that has no default."""
        raise NotImplementedError

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True, slots=True)
class DynamicShape(Shape):
    """Accept any value and expose it as plain Python objects."""

    def describe(self) -> str:
        return "any"

    def zero(self) -> object:
        return None


@dataclass(frozen=True, slots=True)
class BoolShape(Shape):
    def describe(self) -> str:
        return "bool"

    def zero(self) -> object:
        return False


@dataclass(frozen=True, slots=True)
class IntShape(Shape):
    """Integer of a declared width and signedness.

    Attributes:
        bits: Width in bits (8, 16, 32 or 64)
        signed: Whether negative values are allowed
    """

    bits: int = 64
    signed: bool = True

    def __post_init__(self) -> None:
        if self.bits not in (8, 16, 32, 64):
            raise ShapeError(f"Unsupported integer width: {self.bits}")

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def describe(self) -> str:
        return f"{'int' if self.signed else 'uint'}{self.bits}"

    def zero(self) -> object:
        return 0


@dataclass(frozen=True, slots=True)
class FloatShape(Shape):
    """Floating point target of single (32) or double (64) precision."""

    bits: int = 64

    def __post_init__(self) -> None:
        if self.bits not in (32, 64):
            raise ShapeError(f"Unsupported float width: {self.bits}")

    def describe(self) -> str:
        return f"float{self.bits}"

    def zero(self) -> object:
        return 0.0


@dataclass(frozen=True, slots=True)
class StringShape(Shape):
    def describe(self) -> str:
        return "string"

    def zero(self) -> object:
        return ""


@dataclass(frozen=True, slots=True)
class BytesShape(Shape):
    def describe(self) -> str:
        return "bytes"

    def zero(self) -> object:
        return b""


@dataclass(frozen=True, slots=True)
class TimestampShape(Shape):
    def describe(self) -> str:
        return "timestamp"

    def zero(self) -> object:
        return ZERO_TIME


@dataclass(frozen=True, slots=True)
class SequenceShape(Shape):
    """Ordered list of elements of one shape.

    Attributes:
        element: Shape of every element
        factory: Container type built from the decoded elements
    """

    element: Shape
    factory: Callable[..., Any] = list

    def describe(self) -> str:
        return f"{self.factory.__name__}[{self.element.describe()}]"

    def zero(self) -> object:
        return self.factory()


@dataclass(frozen=True, slots=True)
class MapShape(Shape):
    """String-keyed mapping with values of one shape."""

    value: Shape

    def describe(self) -> str:
        return f"dict[str, {self.value.describe()}]"

    def zero(self) -> object:
        return {}


@dataclass(frozen=True, slots=True)
class OptionalShape(Shape):
    """A shape whose absent value is None instead of the inner zero."""

    inner: Shape

    def describe(self) -> str:
        return f"{self.inner.describe()} | None"

    def zero(self) -> object:
        return None


@dataclass(frozen=True, slots=True)
class RecordShape(Shape):
    """A record with named fields, decoded from a dictionary.

    Attributes:
        factory: Callable receiving decoded fields as keyword arguments
        declared_fields: Explicit field specs; when omitted they are
            derived from the dataclass ``factory``
    """

    factory: Callable[..., Any]
    declared_fields: tuple[FieldSpec, ...] | None = None

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        if self.declared_fields is not None:
            return self.declared_fields
        return record_fields(self.factory)

    def describe(self) -> str:
        return getattr(self.factory, "__name__", repr(self.factory))

    def zero(self) -> object:
        return _zero_record(self, frozenset())


ANY = DynamicShape()
BOOL = BoolShape()
INT8 = IntShape(8)
INT16 = IntShape(16)
INT32 = IntShape(32)
INT64 = IntShape(64)
INT = INT64
UINT8 = IntShape(8, signed=False)
UINT16 = IntShape(16, signed=False)
UINT32 = IntShape(32, signed=False)
UINT64 = IntShape(64, signed=False)
FLOAT32 = FloatShape(32)
FLOAT64 = FloatShape(64)
STRING = StringShape()
BYTES = BytesShape()
TIMESTAMP = TimestampShape()

_SCALAR_TYPES: dict[object, Shape] = {
    Any: ANY,
    object: ANY,
    bool: BOOL,
    int: INT64,
    float: FLOAT64,
    str: STRING,
    bytes: BYTES,
    datetime: TIMESTAMP,
}

_SEQUENCE_ORIGINS = (list, Sequence, MutableSequence)
_MAP_ORIGINS = (dict, Mapping, MutableMapping)


@lru_cache(maxsize=None)
def shape_of(tp: object) -> Shape:
    """Derive a shape from a type annotation.

    Raises:
        ShapeError: If the annotation has no shape
    """
    if isinstance(tp, Shape):
        return tp
    if tp in _SCALAR_TYPES:
        return _SCALAR_TYPES[tp]

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is Annotated:
        for meta in args[1:]:
            if isinstance(meta, Shape):
                return meta
        return shape_of(args[0])

    if origin is Union or origin is types.UnionType:
        members = [arg for arg in args if arg is not type(None)]
        if len(members) == 1 and len(args) == 2:
            return OptionalShape(shape_of(members[0]))
        raise ShapeError(f"Unsupported union annotation: {tp!r}")

    if tp in _SEQUENCE_ORIGINS or tp is tuple:
        return SequenceShape(ANY, tuple if tp is tuple else list)
    if origin in _SEQUENCE_ORIGINS:
        return SequenceShape(shape_of(args[0]) if args else ANY)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return SequenceShape(shape_of(args[0]), tuple)
        raise ShapeError(f"Only homogeneous tuples are supported: {tp!r}")

    if tp in _MAP_ORIGINS:
        return MapShape(ANY)
    if origin in _MAP_ORIGINS:
        if args and args[0] not in (str, Any):
            raise ShapeError(f"Mapping keys must be str: {tp!r}")
        return MapShape(shape_of(args[1]) if args else ANY)

    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        return RecordShape(tp)

    raise ShapeError(f"Cannot decode plist values into {tp!r}")


@lru_cache(maxsize=None)
def record_fields(cls: type) -> tuple[FieldSpec, ...]:
    """Resolve the decodable fields of a dataclass, in declaration order."""
    if not dataclasses.is_dataclass(cls):
        raise ShapeError(f"{cls!r} is not a dataclass")
    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except NameError as e:
        raise ShapeError(f"Cannot resolve annotations of {cls.__name__}: {e}") from e

    specs = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        tag = f.metadata.get(TAG_METADATA_KEY)
        has_default = (
            f.default is not dataclasses.MISSING
            or f.default_factory is not dataclasses.MISSING
        )
        specs.append(
            FieldSpec(
                name=f.name,
                key=resolve_key(f.name, tag),
                shape=shape_of(hints[f.name]),
                has_default=has_default,
            )
        )
    return tuple(specs)


def _zero_record(shape: RecordShape, building: frozenset[object]) -> object:
    """Build a record with every field at its default or zero value."""
    if shape.factory in building:
        # Self-referencing record without a default
        return None
    building = building | {shape.factory}
    kwargs = {}
    for spec in shape.fields:
        if spec.has_default:
            continue
        if isinstance(spec.shape, RecordShape):
            kwargs[spec.name] = _zero_record(spec.shape, building)
        else:
            kwargs[spec.name] = spec.shape.zero()
    return shape.factory(**kwargs)
