"""Value model for decoded property lists.

A parsed plist is a tree of PlistValue nodes. PlistValue is a closed union
of frozen dataclasses, one per plist primitive, so consumers branch with
``match`` and every variant is spelled out. Trees are immutable once built
and compare structurally.

Numbers are kept in one canonical form: integers as Python ints (signed
64-bit, or an unsigned magnitude up to 128 bits when ``wide`` is set) and
reals as doubles. Narrowing to a concrete target width happens only in the
type-directed decoder.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import ClassVar, Union

from plistcodec.config import MAX_DEPTH_LIMIT
from plistcodec.exceptions import NestingTooDeepError

# Reference date for binary plist timestamps
BINARY_EPOCH = datetime(2001, 1, 1, tzinfo=UTC)

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
UINT128_MAX = (1 << 128) - 1


class ValueKind(Enum):
    """Kinds of plist values, one per PlistValue variant."""

    STRING = "string"
    INTEGER = "integer"
    REAL = "real"
    BOOLEAN = "boolean"
    DATE = "date"
    DATA = "data"
    ARRAY = "array"
    DICTIONARY = "dictionary"
    UID = "uid"


class UID(int):
    """Integer reference to another object in a keyed archive.

    Used for the plain-Python view of PlistUid values. It is never
    resolved into the object it points at.
    """

    def __repr__(self) -> str:
        return f"UID({int(self)})"


@dataclass(frozen=True, slots=True)
class PlistString:
    """A plist string."""

    kind: ClassVar[ValueKind] = ValueKind.STRING

    value: str


@dataclass(frozen=True, slots=True)
class PlistInteger:
    """A plist integer.

    Attributes:
        value: The integer value
        wide: True when the source stored it as a 128-bit magnitude
    """

    kind: ClassVar[ValueKind] = ValueKind.INTEGER

    value: int
    wide: bool = field(default=False, compare=False)


@dataclass(frozen=True, slots=True)
class PlistReal:
    """A plist real, always held at double precision."""

    kind: ClassVar[ValueKind] = ValueKind.REAL

    value: float


@dataclass(frozen=True, slots=True)
class PlistBoolean:
    kind: ClassVar[ValueKind] = ValueKind.BOOLEAN

    value: bool


@dataclass(frozen=True, slots=True)
class PlistDate:
    """A plist date as a timezone-aware UTC datetime."""

    kind: ClassVar[ValueKind] = ValueKind.DATE

    value: datetime


@dataclass(frozen=True, slots=True)
class PlistData:
    """An opaque byte blob.

    Attributes:
        value: The exact bytes, no padding
        from_xml: True when the blob came from an XML ``<data>`` element.
            Decoding such a blob into a bytes target yields its base64
            text rather than the raw bytes.
    """

    kind: ClassVar[ValueKind] = ValueKind.DATA

    value: bytes
    from_xml: bool = field(default=False, compare=False)


@dataclass(frozen=True, slots=True)
class PlistUid:
    """A keyed-archiver object reference (binary format only).

    The binary format stores UIDs in at most 16 bytes, so values must lie
    in [0, 2**128).
    """

    kind: ClassVar[ValueKind] = ValueKind.UID

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= UINT128_MAX:
            raise ValueError(f"UID out of range: {self.value}")


@dataclass(frozen=True, slots=True)
class PlistArray:
    """An ordered sequence of values."""

    kind: ClassVar[ValueKind] = ValueKind.ARRAY

    items: tuple[PlistValue, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[PlistValue]:
        return iter(self.items)

    def __getitem__(self, index: int) -> PlistValue:
        return self.items[index]


@dataclass(frozen=True, slots=True)
class PlistDict:
    """A string-keyed mapping of values in insertion order.

    The mapping must not be mutated after construction. Build instances
    with ``PlistDict.from_pairs`` when keys may repeat.
    """

    kind: ClassVar[ValueKind] = ValueKind.DICTIONARY

    entries: dict[str, PlistValue] = field(default_factory=dict)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, PlistValue]]) -> PlistDict:
        """Build a dictionary, letting later duplicate keys win."""
        entries: dict[str, PlistValue] = {}
        for key, value in pairs:
            entries[key] = value
        return cls(entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __getitem__(self, key: str) -> PlistValue:
        return self.entries[key]

    def get(self, key: str, default: PlistValue | None = None) -> PlistValue | None:
        return self.entries.get(key, default)

    def keys(self):
        return self.entries.keys()

    def items(self):
        return self.entries.items()

    def values(self):
        return self.entries.values()


PlistValue = Union[
    PlistString,
    PlistInteger,
    PlistReal,
    PlistBoolean,
    PlistDate,
    PlistData,
    PlistUid,
    PlistArray,
    PlistDict,
]

PLIST_VALUE_TYPES = (
    PlistString,
    PlistInteger,
    PlistReal,
    PlistBoolean,
    PlistDate,
    PlistData,
    PlistUid,
    PlistArray,
    PlistDict,
)


def to_python(value: PlistValue) -> object:
    """Expose a value tree as plain Python objects.

    Dictionaries become ``dict``, arrays ``list``, dates ``datetime``,
    data ``bytes`` and UIDs ``UID``. No other coercion is performed.

    Raises:
        NestingTooDeepError: If containers nest deeper than MAX_DEPTH_LIMIT
    """
    return _to_python(value, 0)


def _to_python(value: PlistValue, depth: int) -> object:
    match value:
        case PlistDict(entries=entries):
            _check_depth(depth)
            result = {}
            for key, item in entries.items():
                result[key] = _to_python(item, depth + 1)
            return result
        case PlistArray(items=items):
            _check_depth(depth)
            items_out = []
            for item in items:
                items_out.append(_to_python(item, depth + 1))
            return items_out
        case PlistUid(value=number):
            return UID(number)
        case PlistString() | PlistInteger() | PlistReal() | PlistBoolean():
            return value.value
        case PlistDate() | PlistData():
            return value.value
    raise TypeError(f"Not a plist value: {type(value).__name__}")


def from_python(obj: object) -> PlistValue:
    """Build a value tree from plain Python objects.

    Naive datetimes are taken to be UTC.

    Raises:
        TypeError: If an object (or a dictionary key) has no plist form
        OverflowError: If an integer doesn't fit 64-bit signed or
            128-bit unsigned
        ValueError: If a UID is outside [0, 2**128)
        NestingTooDeepError: If containers nest deeper than MAX_DEPTH_LIMIT
    """
    return _from_python(obj, 0)


def _from_python(obj: object, depth: int) -> PlistValue:
    if isinstance(obj, PLIST_VALUE_TYPES):
        return obj
    if isinstance(obj, bool):
        return PlistBoolean(obj)
    if isinstance(obj, UID):
        return PlistUid(int(obj))
    if isinstance(obj, int):
        if obj < INT64_MIN or obj > UINT128_MAX:
            raise OverflowError(f"Integer {obj} too large for a plist")
        return PlistInteger(obj, wide=obj > INT64_MAX)
    if isinstance(obj, float):
        return PlistReal(obj)
    if isinstance(obj, str):
        return PlistString(obj)
    if isinstance(obj, datetime):
        if obj.tzinfo is None:
            obj = obj.replace(tzinfo=UTC)
        return PlistDate(obj.astimezone(UTC))
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return PlistData(bytes(obj))
    if isinstance(obj, (list, tuple)):
        _check_depth(depth)
        items = []
        for item in obj:
            items.append(_from_python(item, depth + 1))
        return PlistArray(tuple(items))
    if isinstance(obj, Mapping):
        _check_depth(depth)
        entries: dict[str, PlistValue] = {}
        for key, item in obj.items():
            if not isinstance(key, str):
                raise TypeError(f"Dictionary keys must be strings, got {type(key).__name__}")
            entries[key] = _from_python(item, depth + 1)
        return PlistDict(entries)
    raise TypeError(f"Cannot represent {type(obj).__name__} in a plist")


def _check_depth(depth: int) -> None:
    if depth > MAX_DEPTH_LIMIT:
        raise NestingTooDeepError(MAX_DEPTH_LIMIT)
